from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.config.tenant import TenantContext, get_tenant
from shared.security.dependencies import get_current_user

from .models import User
from .repository import UserRepository


async def require_staff(
    claims: dict = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolves the JWT subject to an active staff user of the current tenant.

    A token issued for one store is rejected on every other store.
    """
    forbidden = HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a staff member of this store")
    if claims.get("tenant") != tenant.tenant_id:
        raise forbidden
    user = await UserRepository.get_by_id(db, tenant.tenant_id, claims["sub"])
    if not user or not user.is_active:
        raise forbidden
    return user
