from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String, UniqueConstraint

from shared.config.database import Base
from services.product_service.models import new_id, utcnow


class Affiliate(Base):
    __tablename__ = "affiliates"
    __table_args__ = (UniqueConstraint("tenant_id", "promo_code", name="uq_affiliates_tenant_code"),)

    id = Column(String(32), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    user_id = Column(String(32), nullable=True)
    full_name = Column(String, nullable=True)
    promo_code = Column(String(32), nullable=False) # uppercase
    status = Column(String(16), nullable=False, default="active") # active, inactive, suspended
    # Tier derived from delivered sales; maintained outside checkout
    current_level = Column(Integer, nullable=False, default=1)
    total_orders = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class AffiliateSettings(Base):
    __tablename__ = "affiliate_settings"

    tenant_id = Column(String(64), primary_key=True)
    enabled = Column(Boolean, nullable=False, default=False)
    # {"1": {"enabled": true, "percentage": 5.0}, ... "5": {...}}
    commission_levels = Column(JSON, nullable=False, default=dict)
    cookie_expiry_days = Column(Integer, nullable=False, default=30)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class AffiliateCommission(Base):
    __tablename__ = "affiliate_commissions"
    # one commission per order
    __table_args__ = (UniqueConstraint("tenant_id", "order_id", name="uq_commissions_tenant_order"),)

    id = Column(String(32), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    affiliate_id = Column(String(32), nullable=False, index=True)
    order_id = Column(String(32), nullable=False)
    level = Column(Integer, nullable=False)
    order_total = Column(Float, nullable=False)
    commission_percentage = Column(Float, nullable=False)
    commission_amount = Column(Float, nullable=False)
    status = Column(String(16), nullable=False, default="pending") # pending until delivered
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
