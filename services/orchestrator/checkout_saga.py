"""
Checkout as an ordered saga over one database session.

Nothing is written until persist_order; the order row, the stock decrements
and the ledger entries then commit together in commit_stock. Any failure
after persist_order rolls the whole transaction back.

Context keys read: db, tenant (TenantContext), request (CheckoutRequest).
Context keys written: cart, brand, pricing, plan, attribution, order.
"""
from datetime import datetime, timezone

import structlog

from shared.config.tenant import get_brand_config
from services.affiliate_service.commission import attribute_order
from services.blocklist_service.screener import screen_customer
from services.order_service import intake
from services.order_service.models import Order
from services.order_service.repository import OrderRepository
from services.order_service.status import OrderStatus, PaymentStatus
from services.product_service.models import new_id
from services.product_service.stock import aggregate_quantities, check_availability, commit_reservation
from .saga import SagaOrchestrator

logger = structlog.get_logger(__name__)

# --- ACTIONS ---

async def validate_request(ctx: dict):
    intake.validate_request(ctx["request"])

async def resolve_products(ctx: dict):
    db, tenant = ctx["db"], ctx["tenant"]
    ctx["cart"] = await intake.resolve_products(db, tenant.tenant_id, ctx["request"])

async def price_order(ctx: dict):
    db, tenant = ctx["db"], ctx["tenant"]
    brand = await get_brand_config(db, tenant.tenant_id)
    # plain values only; later steps may roll back and expire ORM instances
    ctx["brand"] = {
        "brand_name": brand.brand_name if brand else None,
        "contact_email": brand.contact_email if brand else None,
        "currency": brand.currency if brand else "USD",
        "vat_percentage": brand.vat_percentage if brand else 0.0,
        "meta_pixel_id": brand.meta_pixel_id if brand else None,
        "meta_capi_token": brand.meta_capi_token if brand else None,
    }
    ctx["pricing"] = intake.price_order(
        ctx["cart"], ctx["request"].shipping, ctx["brand"]["vat_percentage"] or 0.0
    )

async def check_stock(ctx: dict):
    cart = ctx["cart"]
    requested = aggregate_quantities((product.id, item.quantity) for product, item in cart.lines)
    ctx["plan"] = check_availability(cart.products, requested)

async def screen(ctx: dict):
    customer = ctx["request"].customer
    await screen_customer(ctx["db"], ctx["tenant"].tenant_id, customer.phone, customer.email)

async def attribute_affiliate(ctx: dict):
    tenant = ctx["tenant"]
    ctx["attribution"] = await attribute_order(ctx["db"], tenant.tenant_id, tenant.cookies, ctx["pricing"].total)

async def persist_order(ctx: dict):
    request, tenant, pricing = ctx["request"], ctx["tenant"], ctx["pricing"]
    attribution = ctx.get("attribution")
    now = datetime.now(timezone.utc)
    order = Order(
        id=new_id(),
        tenant_id=tenant.tenant_id,
        custom_order_id=intake.generate_custom_order_id(ctx["brand"]["brand_name"]),
        status=OrderStatus.PENDING.value,
        order_type="online",
        items=[item.model_dump() for item in pricing.items],
        subtotal=pricing.subtotal,
        discount_percentage=pricing.discount_percentage,
        discount_amount=pricing.discount_amount,
        vat_tax_amount=pricing.vat_tax_amount,
        shipping=pricing.shipping,
        total=pricing.total,
        payment_method=request.payment_method,
        payment_status=PaymentStatus.PENDING.value,
        customer={**request.customer.model_dump(), "notes": request.notes or request.customer.notes},
        coupon_code=request.coupon_code,
        affiliate_code=attribution.promo_code if attribution else None,
        affiliate_id=attribution.affiliate_id if attribution else None,
        affiliate_commission=attribution.amount if attribution else None,
        source_tracking=request.source_tracking,
        ip_address=tenant.client_ip,
        created_at=now,
        updated_at=now,
    )
    ctx["order"] = OrderRepository.add_order(ctx["db"], order)

async def commit_stock(ctx: dict):
    db, order = ctx["db"], ctx["order"]
    await commit_reservation(db, ctx["tenant"].tenant_id, ctx["plan"], order.id)
    await db.commit()
    logger.info("Order committed", order_id=order.id, custom_order_id=order.custom_order_id, total=order.total)


# --- COMPENSATIONS (Rollbacks) ---

async def discard_order(ctx: dict):
    # The order, stock decrements and ledger rows share one transaction
    await ctx["db"].rollback()
    ctx.pop("order", None)


# --- BUILDER FACTORY ---

def build_checkout_saga() -> SagaOrchestrator:
    saga = SagaOrchestrator()
    saga.add_step("validate_request", validate_request, None)
    saga.add_step("resolve_products", resolve_products, None) # Read-only, no rollback needed
    saga.add_step("price_order", price_order, None)
    saga.add_step("check_stock", check_stock, None)
    saga.add_step("screen_customer", screen, None)
    saga.add_step("attribute_affiliate", attribute_affiliate, None)
    saga.add_step("persist_order", persist_order, discard_order)
    saga.add_step("commit_stock", commit_stock, None)
    return saga
