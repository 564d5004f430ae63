from sqlalchemy import Column, DateTime, Float, JSON, String

from shared.config.database import Base
from services.product_service.models import new_id, utcnow

class Order(Base):
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    custom_order_id = Column(String(32), nullable=False, index=True)
    status = Column(String(32), nullable=False, default="pending")
    order_type = Column(String(16), nullable=False, default="online") # online, offline
    items = Column(JSON, nullable=False, default=list)
    subtotal = Column(Float, nullable=False)
    discount_percentage = Column(Float, nullable=True)
    discount_amount = Column(Float, nullable=False, default=0.0)
    vat_tax_amount = Column(Float, nullable=False, default=0.0)
    shipping = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False) # recomputed server-side, never trusted from the client
    payment_method = Column(String(16), nullable=False, default="cod") # cod, online
    payment_status = Column(String(16), nullable=False, default="pending")
    customer = Column(JSON, nullable=False)
    coupon_code = Column(String, nullable=True)
    affiliate_code = Column(String, nullable=True)
    affiliate_id = Column(String(32), nullable=True, index=True)
    affiliate_commission = Column(Float, nullable=True)
    fraud_check = Column(JSON, nullable=True) # attached after creation
    source_tracking = Column(JSON, nullable=True)
    ip_address = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
