from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.config.tenant import TenantContext, get_tenant
from shared.security.dependencies import verify_internal_api_key

from .dependencies import require_staff
from .models import User
from .schemas import TokenResponse, UserCreate, UserLogin, UserResponse
from .service import AuthService

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a staff account (internal only)",
    dependencies=[Depends(verify_internal_api_key)],
)
async def register(
    payload: UserCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    return await AuthService.register(db, tenant, payload)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Authenticate and receive a JWT access token",
)
async def login(
    payload: UserLogin,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    return await AuthService.login(db, tenant, payload)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get the current authenticated staff profile",
)
async def get_me(user: User = Depends(require_staff)):
    return user
