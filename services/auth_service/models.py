from sqlalchemy import Boolean, Column, DateTime, String, UniqueConstraint
from sqlalchemy.sql import func

from shared.config.database import Base
from services.product_service.models import new_id

STAFF_ROLES = ("merchant", "admin", "staff")
NOTIFIED_ROLES = ("merchant", "admin")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),)

    id = Column(String(32), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default="staff")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
