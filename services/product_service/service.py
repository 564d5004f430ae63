from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.tenant import TenantContext
from shared.errors import NotFoundError
from .models import Product
from .repository import ProductRepository
from .schemas import ProductCreate
from .stock import apply_stock_change

class ProductService:

    @staticmethod
    async def create_product(db: AsyncSession, tenant: TenantContext, data: ProductCreate):
        product = Product(
            tenant_id=tenant.tenant_id,
            slug=data.slug,
            name=data.name,
            price=data.price,
            discount_percentage=data.discount_percentage,
            stock=data.stock,
            images=data.images,
        )
        return await ProductRepository.create_product(db, product)

    @staticmethod
    async def get_product(db: AsyncSession, tenant: TenantContext, ref: str):
        product = await ProductRepository.get_product_by_ref(db, tenant.tenant_id, ref)
        if not product:
            raise NotFoundError("Product not found")
        return product

    @staticmethod
    async def restock(db: AsyncSession, tenant: TenantContext, product_id: str, quantity: int, note: str | None = None):
        return await apply_stock_change(db, tenant.tenant_id, product_id, quantity, "restock", note)

    @staticmethod
    async def adjust(db: AsyncSession, tenant: TenantContext, product_id: str, delta: int, note: str | None = None):
        return await apply_stock_change(db, tenant.tenant_id, product_id, delta, "adjustment", note)

    @staticmethod
    async def ledger(db: AsyncSession, tenant: TenantContext, product_id: str):
        return await ProductRepository.list_ledger(db, tenant.tenant_id, product_id)
