"""
Stock reservation.

Availability is pre-checked before anything is written, and the commit is a
conditional decrement (`stock >= qty`) evaluated by the database, so two
concurrent checkouts against the last unit cannot both succeed. Every change
appends one StockTransaction to the ledger.
"""
from collections import OrderedDict

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import InsufficientStockError, NotFoundError, ValidationError
from .models import Product, StockTransaction

logger = structlog.get_logger(__name__)

_products = Product.__table__


def aggregate_quantities(lines) -> "OrderedDict[str, int]":
    """Sums requested quantities per product id, keeping line-item order."""
    totals: OrderedDict[str, int] = OrderedDict()
    for product_id, quantity in lines:
        totals[product_id] = totals.get(product_id, 0) + quantity
    return totals


def check_availability(products: dict, requested: dict) -> "OrderedDict[str, tuple[str, int]]":
    """Raises on the first short product; otherwise returns the reservation plan,
    product id -> (name, quantity), for stock-tracked products only."""
    plan: OrderedDict[str, tuple[str, int]] = OrderedDict()
    for product_id, quantity in requested.items():
        product = products[product_id]
        if product.stock is None:
            continue
        if product.stock < quantity:
            raise InsufficientStockError(product_id, available=product.stock, requested=quantity)
        plan[product_id] = (product.name, quantity)
    return plan


async def _conditional_change(db: AsyncSession, tenant_id: str, product_id: str, delta: int) -> int | None:
    """Applies `delta` to the stock counter, refusing to go below zero.

    Returns the new stock value, or None when the guard rejected the change.
    """
    stmt = (
        update(_products)
        .where(
            _products.c.tenant_id == tenant_id,
            _products.c.id == product_id,
            _products.c.stock.is_not(None),
            _products.c.stock + delta >= 0,
        )
        .values(stock=_products.c.stock + delta)
        .returning(_products.c.stock)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def _current_stock(db: AsyncSession, tenant_id: str, product_id: str) -> int | None:
    result = await db.execute(
        select(_products.c.stock).where(_products.c.tenant_id == tenant_id, _products.c.id == product_id)
    )
    return result.scalar_one_or_none()


async def commit_reservation(
    db: AsyncSession,
    tenant_id: str,
    plan: dict,
    order_id: str,
) -> list[StockTransaction]:
    """Decrements stock for an order inside the caller's transaction.

    The caller commits or rolls back; on InsufficientStockError nothing from
    this call should be committed.
    """
    entries = []
    for product_id, (product_name, quantity) in plan.items():
        new_stock = await _conditional_change(db, tenant_id, product_id, -quantity)
        if new_stock is None:
            available = await _current_stock(db, tenant_id, product_id)
            logger.warning(
                "Stock reservation lost a race",
                product_id=product_id,
                available=available,
                requested=quantity,
            )
            raise InsufficientStockError(product_id, available=available or 0, requested=quantity)

        entry = StockTransaction(
            tenant_id=tenant_id,
            product_id=product_id,
            product_name=product_name,
            type="order",
            quantity=-quantity,
            previous_stock=new_stock + quantity,
            new_stock=new_stock,
            order_id=order_id,
        )
        db.add(entry)
        entries.append(entry)
    return entries


async def apply_stock_change(
    db: AsyncSession,
    tenant_id: str,
    product_id: str,
    delta: int,
    type_: str,
    note: str | None = None,
) -> StockTransaction:
    """Restock or manual adjustment, committed immediately."""
    result = await db.execute(
        select(Product).where(Product.tenant_id == tenant_id, Product.id == product_id)
    )
    product = result.scalars().first()
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    if product.stock is None:
        raise ValidationError(f"Product {product.name} does not track stock")

    new_stock = await _conditional_change(db, tenant_id, product_id, delta)
    if new_stock is None:
        available = await _current_stock(db, tenant_id, product_id)
        raise InsufficientStockError(product_id, available=available or 0, requested=-delta)

    entry = StockTransaction(
        tenant_id=tenant_id,
        product_id=product_id,
        product_name=product.name,
        type=type_,
        quantity=delta,
        previous_stock=new_stock - delta,
        new_stock=new_stock,
        note=note,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    logger.info("Stock changed", product_id=product_id, type=type_, delta=delta, new_stock=new_stock)
    return entry
