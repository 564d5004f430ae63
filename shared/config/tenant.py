"""
Request-scoped tenant resolution.

The tenant id is resolved once per request and passed explicitly to every
service call through a TenantContext, never cached at module level.
"""
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy import Column, Float, String, select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import ValidationError
from .database import Base, get_db
from .settings import DEFAULT_TENANT_ID


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(64), primary_key=True)
    name = Column(String, nullable=False)
    domain = Column(String, unique=True, nullable=True, index=True)


@dataclass(frozen=True)
class TenantContext:
    tenant_id: str
    cookies: str | None = None
    client_ip: str | None = None


async def resolve_tenant_id(request: Request, db: AsyncSession) -> str | None:
    header_value = request.headers.get("X-Tenant-ID")
    if header_value:
        return header_value.strip()

    host = (request.headers.get("host") or "").split(":")[0].lower()
    if host:
        result = await db.execute(select(Tenant.id).where(Tenant.domain == host))
        tenant_id = result.scalars().first()
        if tenant_id:
            return tenant_id

    return DEFAULT_TENANT_ID or None


def client_ip_from(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


async def get_tenant(request: Request, db: AsyncSession = Depends(get_db)) -> TenantContext:
    tenant_id = await resolve_tenant_id(request, db)
    if not tenant_id:
        raise ValidationError("Tenant could not be resolved for this request")
    return TenantContext(
        tenant_id=tenant_id,
        cookies=request.headers.get("cookie"),
        client_ip=client_ip_from(request),
    )


class BrandConfig(Base):
    __tablename__ = "brand_configs"

    tenant_id = Column(String(64), primary_key=True)
    brand_name = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    vat_percentage = Column(Float, nullable=False, default=0.0)
    meta_pixel_id = Column(String, nullable=True)
    meta_capi_token = Column(String, nullable=True) # encrypted at rest


async def get_brand_config(db: AsyncSession, tenant_id: str) -> BrandConfig | None:
    result = await db.execute(select(BrandConfig).where(BrandConfig.tenant_id == tenant_id))
    return result.scalars().first()
