from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import get_db
from shared.config.tenant import TenantContext, get_tenant
from services.auth_service.dependencies import require_staff
from .schemas import OrderResponse, OrderStatusResponse, StatusUpdate
from .service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"], dependencies=[Depends(require_staff)])


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.get_order(db, tenant, order_id)

@router.patch("/{order_id}/status", response_model=OrderStatusResponse)
async def change_status(
    order_id: str,
    payload: StatusUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService.change_status(db, tenant, order_id, payload.status)
    return OrderService.status_view(order)
