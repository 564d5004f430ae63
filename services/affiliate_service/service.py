import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.product_service.models import utcnow
from .models import Affiliate, AffiliateCommission

logger = structlog.get_logger(__name__)


class CommissionService:

    @staticmethod
    async def get_for_order(db: AsyncSession, tenant_id: str, order_id: str):
        result = await db.execute(
            select(AffiliateCommission).where(
                AffiliateCommission.tenant_id == tenant_id,
                AffiliateCommission.order_id == order_id,
            )
        )
        return result.scalars().first()

    @staticmethod
    async def record_commission(
        db: AsyncSession,
        tenant_id: str,
        order_id: str,
        affiliate_id: str,
        level: int,
        order_total: float,
        commission_percentage: float,
        commission_amount: float,
    ) -> AffiliateCommission | None:
        """Creates the pending commission for an order exactly once.

        Re-running for the same order returns the existing record without
        touching the affiliate's order counter again.
        """
        existing = await CommissionService.get_for_order(db, tenant_id, order_id)
        if existing:
            logger.info("Commission already recorded", order_id=order_id, commission_id=existing.id)
            return existing

        commission = AffiliateCommission(
            tenant_id=tenant_id,
            affiliate_id=affiliate_id,
            order_id=order_id,
            level=level,
            order_total=order_total,
            commission_percentage=commission_percentage,
            commission_amount=commission_amount,
            status="pending",
        )
        db.add(commission)
        try:
            # the INSERT goes first so a duplicate order id fails before the counter moves
            await db.flush()
            # Balance is credited on delivery; only the order counter moves here.
            await db.execute(
                update(Affiliate)
                .where(Affiliate.tenant_id == tenant_id, Affiliate.id == affiliate_id)
                .values(total_orders=Affiliate.total_orders + 1, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info("Commission recorded concurrently", order_id=order_id)
            return await CommissionService.get_for_order(db, tenant_id, order_id)

        await db.refresh(commission)
        logger.info(
            "Commission saved",
            commission_id=commission.id,
            affiliate_id=affiliate_id,
            order_id=order_id,
            amount=commission_amount,
        )
        return commission
