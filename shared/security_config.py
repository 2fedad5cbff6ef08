from fastapi import Request, Response, FastAPI
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import hashlib
import hmac

from shared.utils import CORS_HEADERS, SECURITY_HEADERS

# --- Rate Limiting ---
limiter = Limiter(key_func=get_remote_address)

def setup_rate_limiting(app: FastAPI):
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Security Headers Middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for key, value in SECURITY_HEADERS.items():
            response.headers[key] = value

        return response

# --- CORS Middleware ---
class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """
    Browser callers hit these functions directly, so every response
    (errors included) carries the same permissive headers, and a preflight
    is answered before any route runs.
    """
    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return PlainTextResponse("ok", headers=CORS_HEADERS)

        response = await call_next(request)
        for key, value in CORS_HEADERS.items():
            response.headers[key] = value
        return response

# --- Webhook Signatures ---
def compute_notification_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    """Midtrans signs notifications as sha512(order_id + status_code + gross_amount + server_key)."""
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()

def verify_notification_signature(
    order_id: str, status_code: str, gross_amount: str, signature_key: str, server_key: str
) -> bool:
    if not (order_id and status_code and gross_amount and signature_key and server_key):
        return False
    expected = compute_notification_signature(order_id, status_code, gross_amount, server_key)
    return hmac.compare_digest(expected, signature_key)
