from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import or_, select
from .models import Product, StockTransaction

class ProductRepository:

    @staticmethod
    async def create_product(db: AsyncSession, product: Product):
        db.add(product)
        await db.commit()
        await db.refresh(product)
        return product

    @staticmethod
    async def get_product_by_ref(db: AsyncSession, tenant_id: str, ref: str):
        """Looks a product up by slug or id within the tenant."""
        result = await db.execute(
            select(Product).where(
                Product.tenant_id == tenant_id,
                or_(Product.slug == ref, Product.id == ref),
            )
        )
        return result.scalars().first()

    @staticmethod
    async def list_ledger(db: AsyncSession, tenant_id: str, product_id: str):
        result = await db.execute(
            select(StockTransaction)
            .where(StockTransaction.tenant_id == tenant_id, StockTransaction.product_id == product_id)
            .order_by(StockTransaction.created_at, StockTransaction.id)
        )
        return result.scalars().all()
