from fastapi import FastAPI, Depends, HTTPException, status, Request
from datetime import datetime, timezone

from shared.utils import (
    get_settings, Settings, HealthResponse, ValidationError, setup_error_handlers
)
from shared.dependencies import get_gateway, get_order_store
from shared.logging_config import setup_logging, RequestLoggingMiddleware
from shared.security_config import SecurityHeadersMiddleware, CORSHeadersMiddleware
from shared.midtrans import MidtransClient
from shared.order_store import OrderStore
from shared.status_mapping import map_status

from services.notification_service.app.schemas import GatewayNotification, NotificationAck

# Setup Logging
logger = setup_logging("notification-service")

# Midtrans pushes these, so there is no rate limit here
app = FastAPI(title="Notification Service")

# Security Setup
setup_error_handlers(app)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(CORSHeadersMiddleware)

# Middleware
app.add_middleware(RequestLoggingMiddleware, service_name="notification-service")

# --- Endpoints ---

@app.post("/notifications", response_model=NotificationAck)
async def receive_notification(
    notification: GatewayNotification,
    request: Request,
    settings: Settings = Depends(get_settings),
    gateway: MidtransClient = Depends(get_gateway),
    store: OrderStore = Depends(get_order_store),
):
    logger.info(
        f"Received Midtrans Notification: {notification.model_dump_json(exclude_none=True, exclude={'signature_key'})}",
        extra={"request_id": getattr(request.state, "request_id", None)},
    )

    if not notification.order_id:
        raise ValidationError("Missing order_id in notification")

    if settings.MIDTRANS_VERIFY_SIGNATURE and not gateway.verify_signature(notification.model_dump()):
        logger.warning("Rejected notification with bad signature", extra={"order_id": notification.order_id})
        raise ValidationError("Invalid signature_key")

    new_status = map_status(notification.transaction_status, notification.fraud_status)
    logger.info(
        f"Order {notification.order_id} maps to {new_status.value}",
        extra={
            "order_id": notification.order_id,
            "transaction_status": notification.transaction_status,
            "fraud_status": notification.fraud_status,
            "order_status": new_status.value,
        },
    )

    await store.update_status(notification.order_id, new_status)

    return NotificationAck(message="OK", status=new_status.value)

@app.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)):
    supabase_status = "configured" if settings.SUPABASE_URL and settings.SUPABASE_SERVICE_ROLE_KEY else "missing"
    if settings.MIDTRANS_VERIFY_SIGNATURE:
        signature_status = "configured" if settings.MIDTRANS_SERVER_KEY else "missing"
    else:
        signature_status = "disabled"

    overall_status = "healthy" if supabase_status == "configured" and signature_status != "missing" else "unhealthy"

    if overall_status == "unhealthy":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service Unhealthy"
        )

    return HealthResponse(
        service="notification-service",
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        dependencies={
            "supabase": supabase_status,
            "signature_verification": signature_status,
        }
    )
