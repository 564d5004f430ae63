"""
Checkout intake: request validation, product resolution and pricing.

Prices always come from the stored product. Any price the client echoes back
from the browsing session is ignored.
"""
import re
import secrets
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import NotFoundError, ValidationError
from services.product_service.repository import ProductRepository
from .schemas import CheckoutRequest, LineItem

REQUIRED_CUSTOMER_FIELDS = {
    "full_name": "full name",
    "phone": "phone",
    "address_line1": "address line",
    "city": "city",
    "postal_code": "postal code",
}


@dataclass
class Pricing:
    items: list[LineItem]
    subtotal: float
    discount_amount: float
    discount_percentage: float | None
    vat_tax_amount: float
    shipping: float
    total: float


@dataclass
class ResolvedCart:
    products: dict = field(default_factory=dict) # product id -> Product
    lines: list = field(default_factory=list) # (product, CartItemIn)


def money(value: float) -> float:
    return round(value, 2)


def validate_request(request: CheckoutRequest) -> None:
    if not request.items:
        raise ValidationError("At least one product is required")
    for item in request.items:
        if not item.product_id and not item.slug:
            raise ValidationError("Each line item needs a product")
        if item.quantity is None or item.quantity <= 0:
            raise ValidationError("Valid quantity is required")

    customer = request.customer
    missing = [
        label for name, label in REQUIRED_CUSTOMER_FIELDS.items()
        if not customer or not (getattr(customer, name) or "").strip()
    ]
    if missing:
        raise ValidationError("Complete customer information is required", missing=missing)


async def resolve_products(db: AsyncSession, tenant_id: str, request: CheckoutRequest) -> ResolvedCart:
    cart = ResolvedCart()
    for item in request.items:
        ref = item.product_id or item.slug
        product = await ProductRepository.get_product_by_ref(db, tenant_id, ref)
        if not product:
            raise NotFoundError("Product not found", product=ref)
        cart.products[product.id] = product
        cart.lines.append((product, item))
    return cart


def unit_price(product) -> tuple[float, float]:
    """Returns (base price, discounted unit price)."""
    base = float(product.price or 0)
    percentage = float(product.discount_percentage or 0)
    if percentage > 0:
        return base, money(base * (1 - percentage / 100))
    return base, base


def price_order(cart: ResolvedCart, shipping: float, vat_percentage: float = 0.0) -> Pricing:
    items = []
    subtotal = 0.0
    discount_amount = 0.0
    for product, item in cart.lines:
        base, price = unit_price(product)
        subtotal += base * item.quantity
        discount_amount += (base - price) * item.quantity
        items.append(
            LineItem(
                product_id=product.id,
                slug=product.slug,
                name=product.name,
                price=price,
                image=(product.images or [""])[0],
                size=item.size,
                color=item.color,
                quantity=item.quantity,
            )
        )

    subtotal = money(subtotal)
    discount_amount = money(discount_amount)
    shipping = money(float(shipping or 0))
    vat_tax_amount = money((subtotal - discount_amount) * vat_percentage / 100) if vat_percentage else 0.0
    total = money(subtotal - discount_amount + vat_tax_amount + shipping)

    discount_percentage = None
    if len(cart.lines) == 1 and (cart.lines[0][0].discount_percentage or 0) > 0:
        discount_percentage = float(cart.lines[0][0].discount_percentage)

    return Pricing(
        items=items,
        subtotal=subtotal,
        discount_amount=discount_amount,
        discount_percentage=discount_percentage,
        vat_tax_amount=vat_tax_amount,
        shipping=shipping,
        total=total,
    )


def generate_custom_order_id(brand_name: str | None) -> str:
    """Tenant-prefixed order code, e.g. ACM-4827361."""
    letters = re.sub(r"[^A-Za-z]", "", brand_name or "")
    prefix = letters[:3].upper() if len(letters) >= 3 else "ORD"
    return f"{prefix}-{secrets.randbelow(9_000_000) + 1_000_000}"
