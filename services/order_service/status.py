"""
Order lifecycle.

`pending` is the only initial state. Orders move forward along the
fulfilment chain (skipping ahead is allowed, going back is not), `restocking`
is an optional detour between processing and packed, and `cancelled` is
reachable from any non-terminal state.
"""
from enum import Enum

from shared.errors import ValidationError


class OrderStatus(str, Enum):
    PENDING = "pending"
    WAITING_FOR_CONFIRMATION = "waiting_for_confirmation"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    RESTOCKING = "restocking"
    PACKED = "packed"
    SENT_TO_LOGISTICS = "sent_to_logistics"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


FULFILMENT_CHAIN = [
    OrderStatus.PENDING,
    OrderStatus.WAITING_FOR_CONFIRMATION,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.RESTOCKING,
    OrderStatus.PACKED,
    OrderStatus.SENT_TO_LOGISTICS,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]
TERMINAL = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
INITIAL_STATUS = OrderStatus.PENDING


def can_transition(current: str, target: str) -> bool:
    try:
        current, target = OrderStatus(current), OrderStatus(target)
    except ValueError:
        return False
    if current in TERMINAL or current == target:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    return FULFILMENT_CHAIN.index(target) > FULFILMENT_CHAIN.index(current)


def ensure_transition(current: str, target: str) -> OrderStatus:
    if not can_transition(current, target):
        raise ValidationError(f"Cannot move order from '{current}' to '{target}'")
    return OrderStatus(target)


def effective_status(status: str, payment_status: str | None) -> str:
    """Status shown to users. A failed or cancelled payment displays as
    cancelled without touching the stored status."""
    if payment_status in (PaymentStatus.FAILED.value, PaymentStatus.CANCELLED.value):
        return OrderStatus.CANCELLED.value
    return status
