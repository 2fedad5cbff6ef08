from pydantic import BaseModel, Field, AliasChoices, ConfigDict, field_validator
from typing import Optional, Any
from decimal import Decimal

CHECK_STATUS_ACTION = "check_status"

class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Front-ends send orderId, older callers order_id
    order_id: str = Field(..., min_length=1, validation_alias=AliasChoices("orderId", "order_id"))
    amount: Optional[Decimal] = Field(None, gt=0)
    action: Optional[str] = None

    @field_validator('order_id')
    def reject_blank_order_id(cls, v):
        # The id is an opaque key shared with Midtrans and the orders table: never rewritten
        if not v.strip():
            raise ValueError("order_id must not be empty")
        return v

    @property
    def is_status_check(self) -> bool:
        return self.action == CHECK_STATUS_ACTION

class StatusCheckResponse(BaseModel):
    status: str
    midtrans_data: Optional[Any] = None
