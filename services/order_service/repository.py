from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from .models import Order

class OrderRepository:
    @staticmethod
    def add_order(db: AsyncSession, order: Order):
        """Stages the order in the caller's transaction; the checkout saga commits."""
        db.add(order)
        return order

    @staticmethod
    async def get_order(db: AsyncSession, tenant_id: str, order_id: str):
        result = await db.execute(select(Order).where(Order.tenant_id == tenant_id, Order.id == order_id))
        return result.scalars().first()

    @staticmethod
    async def attach_fraud_check(db: AsyncSession, tenant_id: str, order_id: str, snapshot: dict) -> bool:
        result = await db.execute(
            update(Order)
            .where(Order.tenant_id == tenant_id, Order.id == order_id)
            .values(fraud_check=snapshot)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount > 0

    @staticmethod
    async def update_status(db: AsyncSession, order: Order, status: str):
        order.status = status
        await db.commit()
        await db.refresh(order)
        return order
