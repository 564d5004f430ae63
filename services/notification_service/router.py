from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from services.auth_service.dependencies import require_staff
from services.auth_service.models import User
from .schemas import NotificationResponse
from .service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/", response_model=list[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService.list_for_user(db, user.tenant_id, user.id, unread_only)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationService.mark_read(db, user.tenant_id, user.id, notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification
