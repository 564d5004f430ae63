from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

PaymentMethod = Literal["cod", "online"]


class CustomerInfo(BaseModel):
    full_name: str | None = None
    phone: str | None = None
    email: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    notes: str | None = None


class CartItemIn(BaseModel):
    # Either reference works; price echoed by the client is ignored
    product_id: str | None = None
    slug: str | None = None
    quantity: int | None = None
    size: str | None = None
    color: str | None = None
    price: float | None = None


class CheckoutRequest(BaseModel):
    """Full cart checkout."""
    items: list[CartItemIn] = []
    customer: CustomerInfo | None = None
    payment_method: PaymentMethod = "cod"
    shipping: float = Field(default=0, ge=0)
    notes: str | None = None
    coupon_code: str | None = None
    source_tracking: dict | None = None


class PlaceOrderRequest(BaseModel):
    """Single-product shortcut used by the storefront's place-order button."""
    product_slug: str | None = None
    quantity: int | None = None
    size: str | None = None
    color: str | None = None
    customer: CustomerInfo | None = None
    payment_method: PaymentMethod = "cod"
    shipping: float = Field(default=0, ge=0)
    notes: str | None = None
    coupon_code: str | None = None
    source_tracking: dict | None = None

    def to_checkout(self) -> CheckoutRequest:
        items = []
        if self.product_slug:
            items.append(CartItemIn(slug=self.product_slug, quantity=self.quantity, size=self.size, color=self.color))
        return CheckoutRequest(
            items=items,
            customer=self.customer,
            payment_method=self.payment_method,
            shipping=self.shipping,
            notes=self.notes,
            coupon_code=self.coupon_code,
            source_tracking=self.source_tracking,
        )


class LineItem(BaseModel):
    product_id: str
    slug: str
    name: str
    price: float
    image: str = ""
    size: str | None = None
    color: str | None = None
    quantity: int


class OrderResponse(BaseModel):
    id: str
    custom_order_id: str
    created_at: datetime
    status: str
    order_type: str
    items: list[LineItem]
    subtotal: float
    discount_percentage: float | None
    discount_amount: float
    vat_tax_amount: float
    shipping: float
    total: float
    payment_method: str
    payment_status: str
    customer: CustomerInfo
    coupon_code: str | None
    affiliate_code: str | None
    affiliate_id: str | None
    affiliate_commission: float | None
    fraud_check: dict | None
    source_tracking: dict | None

    class Config:
        from_attributes = True


class StatusUpdate(BaseModel):
    status: str


class OrderStatusResponse(BaseModel):
    id: str
    status: str
    payment_status: str
    effective_status: str
