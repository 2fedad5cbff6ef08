from fastapi import FastAPI, Depends, HTTPException, status, Request
from fastapi.responses import JSONResponse
from datetime import datetime, timezone

from shared.utils import (
    get_settings, Settings, HealthResponse, ValidationError, setup_error_handlers
)
from shared.dependencies import get_gateway, get_order_store
from shared.logging_config import setup_logging, RequestLoggingMiddleware
from shared.security_config import (
    setup_rate_limiting, SecurityHeadersMiddleware, CORSHeadersMiddleware, limiter
)
from shared.midtrans import MidtransClient
from shared.order_store import OrderStore
from shared.status_mapping import OrderStatus, map_status

from services.checkout_service.app.schemas import CheckoutRequest, StatusCheckResponse

# Setup Logging
logger = setup_logging("checkout-service")

app = FastAPI(title="Checkout Service")

# Security Setup
setup_rate_limiting(app)
setup_error_handlers(app)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(CORSHeadersMiddleware)

# Middleware
app.add_middleware(RequestLoggingMiddleware, service_name="checkout-service")

# --- Handlers ---

async def create_session(checkout: CheckoutRequest, gateway: MidtransClient) -> JSONResponse:
    if checkout.amount is None:
        raise ValidationError("amount is required to create a payment session")

    status_code, data = await gateway.create_transaction(checkout.order_id, checkout.amount)
    if status_code == 200:
        logger.info("Payment session created", extra={"order_id": checkout.order_id})
    # Gateway failures are passed through with the gateway's own code and body
    return JSONResponse(content=data, status_code=status_code)

async def check_status(order_id: str, gateway: MidtransClient, store: OrderStore) -> JSONResponse:
    data = await gateway.get_status(order_id)
    if data is None:
        logger.info("Transaction not found at Midtrans", extra={"order_id": order_id})
        return JSONResponse(content=StatusCheckResponse(status="not_found").model_dump(exclude_none=True))

    transaction_status = data.get("transaction_status")
    fraud_status = data.get("fraud_status")
    new_status = map_status(transaction_status, fraud_status)
    logger.info(
        "Polled Midtrans status",
        extra={
            "order_id": order_id,
            "transaction_status": transaction_status,
            "fraud_status": fraud_status,
            "order_status": new_status.value,
        },
    )

    # A stale poll must not drag an already paid order back to pending
    if new_status != OrderStatus.PENDING_PAYMENT:
        await store.update_status(order_id, new_status)

    return JSONResponse(content=StatusCheckResponse(status=new_status.value, midtrans_data=data).model_dump())

# --- Endpoints ---

@app.post("/checkout")
@limiter.limit(lambda: get_settings().RATE_LIMIT)
async def checkout(
    checkout_request: CheckoutRequest,
    request: Request,
    gateway: MidtransClient = Depends(get_gateway),
    store: OrderStore = Depends(get_order_store),
):
    if checkout_request.is_status_check:
        return await check_status(checkout_request.order_id, gateway, store)
    return await create_session(checkout_request, gateway)

@app.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)):
    midtrans_status = "configured" if settings.MIDTRANS_SERVER_KEY else "missing"
    supabase_status = "configured" if settings.SUPABASE_URL and settings.SUPABASE_SERVICE_ROLE_KEY else "missing"

    overall_status = "healthy" if midtrans_status == "configured" and supabase_status == "configured" else "unhealthy"

    if overall_status == "unhealthy":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service Unhealthy"
        )

    return HealthResponse(
        service="checkout-service",
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        dependencies={
            "midtrans": midtrans_status,
            "supabase": supabase_status,
            "environment": "production" if settings.MIDTRANS_IS_PRODUCTION else "sandbox",
        }
    )
