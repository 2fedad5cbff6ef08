#!/usr/bin/env python3
"""
Run both payment services locally with uvicorn.

Usage:
    python run_services.py            # free the ports, start, wait for Ctrl+C
    python run_services.py --reload   # restart on code changes

Secrets (MIDTRANS_SERVER_KEY, SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)
are read from the environment or a .env file in this directory.
"""
import os
import sys
import subprocess
import time
import platform
import argparse
import socket

# --- Configuration ---
SERVICES = {
    "checkout-service": ("services.checkout_service.app.main:app", 8010),
    "notification-service": ("services.notification_service.app.main:app", 8011),
}

# --- Colors ---
class Colors:
    HEADER = '\033[95m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'

if platform.system() == "Windows":
    os.system('color')  # Enable ANSI colors in Windows terminal

def log(msg, color=Colors.ENDC, bold=False, end="\n"):
    prefix = Colors.BOLD if bold else ""
    print(f"{prefix}{color}{msg}{Colors.ENDC}", end=end, flush=True)

# --- Port Management ---

def get_process_on_port(port):
    """Finds the PID of the process listening on the given port."""
    try:
        if platform.system() == "Windows":
            result = subprocess.run(f'netstat -ano | findstr :{port}', shell=True,
                                    stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
            for line in result.stdout.strip().split('\n'):
                if f":{port}" in line and "LISTENING" in line:
                    return line.strip().split()[-1]
        else:
            result = subprocess.run(['lsof', '-t', f'-i:{port}'],
                                    stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
            if result.returncode == 0 and result.stdout:
                return result.stdout.strip().split('\n')[0]
    except OSError as e:
        log(f"Error checking port {port}: {e}", Colors.WARNING)
    return None

def kill_process(pid):
    try:
        if platform.system() == "Windows":
            subprocess.run(f"taskkill /F /PID {pid}", shell=True, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        else:
            subprocess.run(['kill', '-9', str(pid)], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        return True
    except OSError as e:
        log(f"  └─ Failed to kill PID {pid}: {e}", Colors.FAIL)
        return False

def free_ports():
    log("[1/3] Checking ports...", Colors.BLUE, bold=True)
    for name, (_, port) in SERVICES.items():
        pid = get_process_on_port(port)
        if not pid:
            log(f"✓ Port {port} ({name}): AVAILABLE", Colors.GREEN)
            continue
        log(f"✓ Port {port} ({name}): IN USE by PID {pid}, killing...", Colors.WARNING, end=" ")
        log("DONE" if kill_process(pid) else "FAILED", Colors.GREEN)

# --- Service Management ---

def start_services(reload=False):
    log("\n[2/3] Starting services...", Colors.BLUE, bold=True)
    processes = {}
    for name, (target, port) in SERVICES.items():
        cmd = [sys.executable, "-m", "uvicorn", target, "--port", str(port)]
        if reload:
            cmd.append("--reload")
        processes[name] = subprocess.Popen(cmd)
        log(f"✓ {name} -> http://localhost:{port}", Colors.CYAN)
    return processes

def wait_for_ports():
    log("\n[3/3] Verifying services...", Colors.BLUE, bold=True)
    for name, (_, port) in SERVICES.items():
        log(f"Checking {name} on port {port}...", end=" ")
        for _ in range(30):
            try:
                with socket.create_connection(("localhost", port), timeout=1):
                    log("UP", Colors.GREEN)
                    break
            except OSError:
                time.sleep(1)
        else:
            log("TIMEOUT", Colors.FAIL)

def stop_services(processes):
    for name, proc in processes.items():
        proc.terminate()
        try:
            proc.wait(timeout=10)
        except subprocess.TimeoutExpired:
            proc.kill()
        log(f"✓ {name} stopped", Colors.GREEN)

# --- Main ---

def main():
    parser = argparse.ArgumentParser(description="Free ports and run the payment services locally")
    parser.add_argument("--reload", action="store_true", help="Restart services on code changes")
    args = parser.parse_args()

    free_ports()
    processes = start_services(reload=args.reload)
    try:
        wait_for_ports()
        log("\nRunning. Ctrl+C to stop.", Colors.HEADER)
        while all(proc.poll() is None for proc in processes.values()):
            time.sleep(1)
        log("\nA service exited unexpectedly.", Colors.FAIL)
    except KeyboardInterrupt:
        log("\nStopping...", Colors.WARNING)
    finally:
        stop_services(processes)

if __name__ == "__main__":
    main()
