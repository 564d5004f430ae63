import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.tenant import TenantContext
from shared.errors import NotFoundError
from .repository import OrderRepository
from .status import effective_status, ensure_transition

logger = structlog.get_logger(__name__)


class OrderService:
    @staticmethod
    async def get_order(db: AsyncSession, tenant: TenantContext, order_id: str):
        order = await OrderRepository.get_order(db, tenant.tenant_id, order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    @staticmethod
    async def change_status(db: AsyncSession, tenant: TenantContext, order_id: str, target: str):
        order = await OrderService.get_order(db, tenant, order_id)
        new_status = ensure_transition(order.status, target)
        previous = order.status
        order = await OrderRepository.update_status(db, order, new_status.value)
        logger.info("Order status changed", order_id=order.id, previous=previous, status=order.status)
        return order

    @staticmethod
    def status_view(order) -> dict:
        return {
            "id": order.id,
            "status": order.status,
            "payment_status": order.payment_status,
            "effective_status": effective_status(order.status, order.payment_status),
        }
