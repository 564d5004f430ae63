from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import get_db
from shared.config.tenant import TenantContext, get_tenant
from shared.security.dependencies import verify_internal_api_key
from .schemas import ProductCreate, ProductResponse, StockAdjustment, StockTransactionResponse, StockUpdate
from .service import ProductService

router = APIRouter(prefix="/products", tags=["Products"], dependencies=[Depends(verify_internal_api_key)])


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product: ProductCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db)
):
    return await ProductService.create_product(db, tenant, product)

@router.get("/{ref}", response_model=ProductResponse)
async def get_product(
    ref: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db)
):
    return await ProductService.get_product(db, tenant, ref)

@router.post("/{product_id}/restock", response_model=StockTransactionResponse)
async def restock(
    product_id: str,
    payload: StockUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db)
):
    return await ProductService.restock(db, tenant, product_id, payload.quantity, payload.note)

@router.post("/{product_id}/adjust", response_model=StockTransactionResponse)
async def adjust_stock(
    product_id: str,
    payload: StockAdjustment,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db)
):
    return await ProductService.adjust(db, tenant, product_id, payload.delta, payload.note)

@router.get("/{product_id}/ledger", response_model=list[StockTransactionResponse])
async def stock_ledger(
    product_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db)
):
    return await ProductService.ledger(db, tenant, product_id)
