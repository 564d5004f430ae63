from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.config.tenant import TenantContext, get_tenant
from services.auth_service.dependencies import require_staff
from .models import BlockedCustomer
from .schemas import BlockedCustomerCreate, BlockedCustomerResponse

router = APIRouter(prefix="/blocked-customers", tags=["Block list"], dependencies=[Depends(require_staff)])


@router.post("/", response_model=BlockedCustomerResponse, status_code=status.HTTP_201_CREATED)
async def block_customer(
    payload: BlockedCustomerCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    entry = BlockedCustomer(
        tenant_id=tenant.tenant_id,
        phone=payload.phone.strip() if payload.phone else None,
        email=payload.email.strip().lower() if payload.email else None,
        reason=payload.reason,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


@router.get("/", response_model=list[BlockedCustomerResponse])
async def list_blocked(tenant: TenantContext = Depends(get_tenant), db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(BlockedCustomer).where(BlockedCustomer.tenant_id == tenant.tenant_id).order_by(BlockedCustomer.created_at)
    )
    return result.scalars().all()


@router.delete("/{entry_id}", response_model=BlockedCustomerResponse)
async def unblock_customer(
    entry_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(BlockedCustomer).where(BlockedCustomer.tenant_id == tenant.tenant_id, BlockedCustomer.id == entry_id)
    )
    entry = result.scalars().first()
    if not entry:
        raise HTTPException(status_code=404, detail="Block-list entry not found")
    entry.is_active = False
    await db.commit()
    await db.refresh(entry)
    return entry
