from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from services.product_service.models import new_id
from .models import Notification
from .realtime import RealtimePort, user_room

logger = structlog.get_logger(__name__)


def new_order_notification(tenant_id: str, user_id: str, order: dict, created_at: datetime) -> Notification:
    customer_name = (order.get("customer") or {}).get("full_name") or "Customer"
    return Notification(
        id=new_id(),
        tenant_id=tenant_id,
        user_id=user_id,
        title="New Order Received",
        message=f"New order #{order['custom_order_id']} for {order['total']:.2f} from {customer_name}",
        type="info",
        read=False,
        link=f"/merchant/orders/{order['id']}",
        created_at=created_at,
    )


def notification_payload(notification: Notification) -> dict:
    return {
        "id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type,
        "read": notification.read,
        "link": notification.link,
        "createdAt": notification.created_at.isoformat(),
    }


async def push_notification(publisher: RealtimePort, notification: Notification) -> bool:
    """Publishes ahead of the durable write; failures are logged, not raised."""
    try:
        await publisher.publish(user_room(notification.user_id), "notification", notification_payload(notification))
        return True
    except Exception as e:
        logger.error("Failed to push notification", notification_id=notification.id, user_id=notification.user_id, error=str(e))
        return False


class NotificationService:
    @staticmethod
    async def save(db: AsyncSession, fields: dict) -> Notification:
        """Idempotent by notification id, so a retried write never duplicates."""
        existing = await db.get(Notification, fields["id"])
        if existing:
            return existing
        notification = Notification(**fields)
        db.add(notification)
        await db.commit()
        return notification

    @staticmethod
    async def list_for_user(db: AsyncSession, tenant_id: str, user_id: str, unread_only: bool = False):
        stmt = select(Notification).where(Notification.tenant_id == tenant_id, Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.read.is_(False))
        result = await db.execute(stmt.order_by(Notification.created_at.desc()))
        return result.scalars().all()

    @staticmethod
    async def mark_read(db: AsyncSession, tenant_id: str, user_id: str, notification_id: str):
        result = await db.execute(
            select(Notification).where(
                Notification.tenant_id == tenant_id,
                Notification.user_id == user_id,
                Notification.id == notification_id,
            )
        )
        notification = result.scalars().first()
        if notification:
            notification.read = True
            await db.commit()
            await db.refresh(notification)
        return notification


def notification_fields(notification: Notification) -> dict:
    return {
        "id": notification.id,
        "tenant_id": notification.tenant_id,
        "user_id": notification.user_id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type,
        "read": notification.read,
        "link": notification.link,
        "created_at": notification.created_at,
    }
