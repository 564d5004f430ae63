"""
Affiliate attribution and tiered commission.

Attribution is best-effort: any failure here is logged and the order proceeds
without an affiliate.
"""
from dataclasses import dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .cookie import parse_affiliate_cookie
from .models import Affiliate, AffiliateSettings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Attribution:
    affiliate_id: str
    promo_code: str
    level: int
    percentage: float
    amount: float


def calculate_commission(order_total: float, level: int, settings: AffiliateSettings) -> tuple[float, float] | None:
    """Returns (percentage, amount) for the affiliate's tier, or None when the
    program or the tier is disabled."""
    if not settings or not settings.enabled:
        return None
    levels = settings.commission_levels or {}
    level_config = levels.get(str(level)) or levels.get(level)
    if not level_config or not level_config.get("enabled"):
        return None
    percentage = float(level_config.get("percentage") or 0)
    amount = round(order_total * percentage / 100, 2)
    return percentage, amount


async def get_settings(db: AsyncSession, tenant_id: str) -> AffiliateSettings | None:
    result = await db.execute(select(AffiliateSettings).where(AffiliateSettings.tenant_id == tenant_id))
    return result.scalars().first()


async def find_active_affiliate(db: AsyncSession, tenant_id: str, affiliate_id: str, promo_code: str | None):
    result = await db.execute(
        select(Affiliate).where(
            Affiliate.tenant_id == tenant_id,
            Affiliate.id == affiliate_id,
            Affiliate.status == "active",
        )
    )
    affiliate = result.scalars().first()
    if affiliate or not promo_code:
        return affiliate

    result = await db.execute(
        select(Affiliate).where(
            Affiliate.tenant_id == tenant_id,
            Affiliate.promo_code == promo_code.upper(),
            Affiliate.status == "active",
        )
    )
    return result.scalars().first()


async def attribute_order(
    db: AsyncSession,
    tenant_id: str,
    cookie_header: str | None,
    order_total: float,
) -> Attribution | None:
    try:
        cookie = parse_affiliate_cookie(cookie_header)
        if not cookie:
            return None

        settings = await get_settings(db, tenant_id)
        if not settings or not settings.enabled:
            logger.info("Affiliate program not enabled", tenant_id=tenant_id)
            return None

        affiliate = await find_active_affiliate(db, tenant_id, cookie.affiliate_id, cookie.promo_code)
        if not affiliate:
            logger.warning(
                "Affiliate not found",
                tenant_id=tenant_id,
                affiliate_id=cookie.affiliate_id,
                promo_code=cookie.promo_code,
            )
            return None

        level = affiliate.current_level or 1
        commission = calculate_commission(order_total, level, settings)
        if not commission or commission[1] <= 0:
            logger.warning(
                "No commission for affiliate",
                affiliate_id=affiliate.id,
                level=level,
                order_total=order_total,
            )
            return None

        percentage, amount = commission
        logger.info(
            "Affiliate commission calculated",
            affiliate_id=affiliate.id,
            promo_code=affiliate.promo_code,
            level=level,
            amount=amount,
        )
        return Attribution(
            affiliate_id=affiliate.id,
            promo_code=affiliate.promo_code,
            level=level,
            percentage=percentage,
            amount=amount,
        )
    except Exception as e:
        logger.error("Error processing affiliate attribution", tenant_id=tenant_id, error=str(e))
        await db.rollback()
        return None
