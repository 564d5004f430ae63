import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String, JSON, UniqueConstraint
from shared.config.database import Base


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (UniqueConstraint("tenant_id", "slug", name="uq_products_tenant_slug"),)

    id = Column(String(32), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    slug = Column(String, nullable=False)
    name = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    discount_percentage = Column(Float, nullable=True)
    # NULL means the product does not track stock
    stock = Column(Integer, nullable=True)
    images = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class StockTransaction(Base):
    """Append-only stock ledger entry. Never updated or deleted."""
    __tablename__ = "inventory_transactions"

    id = Column(String(32), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    product_id = Column(String(32), nullable=False, index=True)
    product_name = Column(String, nullable=False)
    type = Column(String(16), nullable=False) # order, restock, adjustment
    quantity = Column(Integer, nullable=False) # signed delta
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    order_id = Column(String(32), nullable=True, index=True)
    note = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
