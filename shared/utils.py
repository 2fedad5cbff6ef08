from datetime import datetime
from functools import lru_cache
from typing import Optional, Any
from fastapi import FastAPI, HTTPException, Request, status
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic_settings import BaseSettings
import logging

logger = logging.getLogger(__name__)

# --- Configuration ---
class Settings(BaseSettings):
    MIDTRANS_SERVER_KEY: str = ""
    MIDTRANS_IS_PRODUCTION: bool = False
    MIDTRANS_VERIFY_SIGNATURE: bool = False
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_ORDERS_TABLE: str = "orders"
    ENFORCE_MONOTONIC_STATUS: bool = False
    HTTP_TIMEOUT: float = 10.0
    RATE_LIMIT: str = "30/minute"

    class Config:
        env_file = ".env"

@lru_cache
def get_settings() -> Settings:
    return Settings()

# --- CORS ---
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Content-Security-Policy": "default-src 'self'; object-src 'none'; frame-ancestors 'none';",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

# --- Response Models ---
class ErrorResponse(BaseModel):
    error: str

class HealthResponse(BaseModel):
    service: str
    status: str
    timestamp: datetime
    version: str
    dependencies: Optional[dict] = None


# --- Exceptions ---
class AppException(HTTPException):
    def __init__(
        self,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        detail: str = "An error occurred",
        headers: Optional[dict] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)

class ValidationError(AppException):
    def __init__(self, detail: str = "Invalid request"):
        super().__init__(detail=detail)

class ConfigurationError(AppException):
    def __init__(self, detail: str = "Service not configured"):
        super().__init__(detail=detail)

class GatewayError(AppException):
    def __init__(self, detail: str = "Payment gateway error", payload: Any = None):
        super().__init__(detail=detail)
        self.payload = payload

class StorageError(AppException):
    def __init__(self, detail: str = "Order storage error"):
        super().__init__(detail=detail)


def error_response(message: str, status_code: int = status.HTTP_400_BAD_REQUEST, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        content=ErrorResponse(error=message).model_dump(),
        status_code=status_code,
        headers=headers or CORS_HEADERS,
    )

def setup_error_handlers(app: FastAPI):
    """
    Every failure leaves the service as {"error": message}:
    - domain errors (AppException) and body validation errors as 400
    - routing errors (404/405) keep their status code
    - anything unexpected as a generic 400; the detail only goes to the log
    """

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        logger.warning(f"{type(exc).__name__}: {exc.detail}", extra={"path": request.url.path})
        return error_response(str(exc.detail), exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(str(exc.detail), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(part for part in first.get("loc", ()) if isinstance(part, str) and part != "body")
            message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request body")
        else:
            message = "Invalid request body"
        return error_response(message)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error: {exc!r}", exc_info=exc, extra={"path": request.url.path})
        # Rendered outside the user middleware stack, so the headers are set here
        return error_response("Internal server error", headers={**CORS_HEADERS, **SECURITY_HEADERS})
