from sqlalchemy import Boolean, Column, DateTime, String

from shared.config.database import Base
from services.product_service.models import new_id, utcnow


class BlockedCustomer(Base):
    __tablename__ = "blocked_customers"

    id = Column(String(32), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    phone = Column(String, nullable=True, index=True)
    email = Column(String, nullable=True, index=True) # stored lowercase
    reason = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
