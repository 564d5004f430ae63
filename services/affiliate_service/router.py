from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.config.tenant import TenantContext, get_tenant
from services.auth_service.dependencies import require_staff
from .commission import get_settings
from .models import Affiliate, AffiliateCommission, AffiliateSettings
from .schemas import (
    AffiliateCreate,
    AffiliateResponse,
    AffiliateSettingsResponse,
    AffiliateSettingsUpdate,
    CommissionResponse,
)

router = APIRouter(prefix="/affiliates", tags=["Affiliates"], dependencies=[Depends(require_staff)])


@router.put("/settings", response_model=AffiliateSettingsResponse)
async def update_settings(
    payload: AffiliateSettingsUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    settings = await get_settings(db, tenant.tenant_id)
    if not settings:
        settings = AffiliateSettings(tenant_id=tenant.tenant_id)
        db.add(settings)
    settings.enabled = payload.enabled
    settings.commission_levels = {
        str(level): config.model_dump() for level, config in payload.commission_levels.items()
    }
    settings.cookie_expiry_days = payload.cookie_expiry_days
    await db.commit()
    await db.refresh(settings)
    return settings


@router.post("/", response_model=AffiliateResponse, status_code=status.HTTP_201_CREATED)
async def create_affiliate(
    payload: AffiliateCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    affiliate = Affiliate(
        tenant_id=tenant.tenant_id,
        promo_code=payload.promo_code.upper(),
        full_name=payload.full_name,
        user_id=payload.user_id,
        current_level=payload.current_level,
        status=payload.status,
    )
    db.add(affiliate)
    await db.commit()
    await db.refresh(affiliate)
    return affiliate


@router.get("/{affiliate_id}/commissions", response_model=list[CommissionResponse])
async def list_commissions(
    affiliate_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(AffiliateCommission)
        .where(AffiliateCommission.tenant_id == tenant.tenant_id, AffiliateCommission.affiliate_id == affiliate_id)
        .order_by(AffiliateCommission.created_at)
    )
    return result.scalars().all()
