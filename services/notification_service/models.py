from sqlalchemy import Boolean, Column, DateTime, String

from shared.config.database import Base
from services.product_service.models import new_id, utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(32), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    user_id = Column(String(32), nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    type = Column(String(16), nullable=False, default="info")
    read = Column(Boolean, nullable=False, default=False)
    link = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
