"""
Translation of Midtrans transaction states into order statuses.

Both the notification webhook and the checkout status poll go through
map_status, so an order never ends up with a status one path would not
have written for the same gateway data.
"""
from enum import Enum
from typing import Optional, FrozenSet


class OrderStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    CANCELLED = "cancelled"


class TransactionStatus(str, Enum):
    CAPTURE = "capture"
    SETTLEMENT = "settlement"
    PENDING = "pending"
    DENY = "deny"
    CANCEL = "cancel"
    EXPIRE = "expire"


class FraudStatus(str, Enum):
    ACCEPT = "accept"
    CHALLENGE = "challenge"


CANCELLED_TRANSACTION_STATES = frozenset({
    TransactionStatus.CANCEL.value,
    TransactionStatus.DENY.value,
    TransactionStatus.EXPIRE.value,
})


def map_status(transaction_status: Optional[str], fraud_status: Optional[str] = None) -> OrderStatus:
    """
    Map a gateway (transaction_status, fraud_status) pair to an OrderStatus.

    - capture is only paid once fraud screening accepted it; a challenge
      waits for manual review and any other verdict stays pending
    - settlement is paid
    - cancel, deny and expire cancel the order
    - pending and anything unrecognised stay pending_payment
    """
    if transaction_status == TransactionStatus.CAPTURE.value:
        if fraud_status == FraudStatus.ACCEPT.value:
            return OrderStatus.PAID
        if fraud_status == FraudStatus.CHALLENGE.value:
            # Held for manual review at the gateway
            return OrderStatus.PENDING_PAYMENT
        return OrderStatus.PENDING_PAYMENT

    if transaction_status == TransactionStatus.SETTLEMENT.value:
        return OrderStatus.PAID

    if transaction_status in CANCELLED_TRANSACTION_STATES:
        return OrderStatus.CANCELLED

    if transaction_status == TransactionStatus.PENDING.value:
        return OrderStatus.PENDING_PAYMENT

    return OrderStatus.PENDING_PAYMENT


# Statuses an order may hold right before being moved to the key status.
# paid and cancelled are final with respect to each other.
ALLOWED_PREDECESSORS = {
    OrderStatus.PENDING_PAYMENT: frozenset({OrderStatus.PENDING_PAYMENT}),
    OrderStatus.PAID: frozenset({OrderStatus.PENDING_PAYMENT, OrderStatus.PAID}),
    OrderStatus.CANCELLED: frozenset({OrderStatus.PENDING_PAYMENT, OrderStatus.CANCELLED}),
}


def allowed_predecessors(status: OrderStatus) -> FrozenSet[OrderStatus]:
    return ALLOWED_PREDECESSORS[status]
