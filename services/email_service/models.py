from sqlalchemy import Boolean, Column, DateTime, JSON, String, UniqueConstraint

from shared.config.database import Base
from services.product_service.models import new_id, utcnow


class EmailProviderSettings(Base):
    __tablename__ = "email_provider_settings"

    tenant_id = Column(String(64), primary_key=True)
    default_provider_id = Column(String, nullable=True)
    fallback_provider_id = Column(String, nullable=True)
    # list of provider configs, secrets encrypted
    providers = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class EmailTemplate(Base):
    __tablename__ = "email_templates"
    __table_args__ = (UniqueConstraint("tenant_id", "event", name="uq_email_templates_tenant_event"),)

    id = Column(String(32), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    event = Column(String(32), nullable=False)
    name = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    html = Column(String, nullable=True)
    from_email = Column(String, nullable=True)
    from_name = Column(String, nullable=True)
    reply_to = Column(String, nullable=True)
    enabled = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
