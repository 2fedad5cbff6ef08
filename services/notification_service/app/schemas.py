from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional

class GatewayNotification(BaseModel):
    """Midtrans HTTP notification. Unknown keys are kept but not used."""
    model_config = ConfigDict(extra="allow")

    order_id: Optional[str] = None
    transaction_status: Optional[str] = None
    fraud_status: Optional[str] = None
    status_code: Optional[str] = None
    gross_amount: Optional[str] = None
    signature_key: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_type: Optional[str] = None

    @field_validator('order_id', 'status_code', 'gross_amount', mode='before')
    def numbers_as_text(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

class NotificationAck(BaseModel):
    message: str = "OK"
    status: str
