from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import NOTIFIED_ROLES, User


class UserRepository:

    @staticmethod
    async def create(db: AsyncSession, user: User) -> User:
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, tenant_id: str, user_id: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.tenant_id == tenant_id, User.id == user_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_email(db: AsyncSession, tenant_id: str, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.tenant_id == tenant_id, User.email == email.lower()))
        return result.scalars().first()

    @staticmethod
    async def list_order_recipients(db: AsyncSession, tenant_id: str) -> list[User]:
        """Active merchant/admin users who are told about new orders."""
        result = await db.execute(
            select(User).where(
                User.tenant_id == tenant_id,
                User.role.in_(NOTIFIED_ROLES),
                User.is_active.is_(True),
            )
        )
        return list(result.scalars().all())
