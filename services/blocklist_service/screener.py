"""
Block-list screening.

A match is the one hard gate of checkout. A failure of the screener itself is
not: availability of checkout wins over this soft fraud gate.
"""
import re

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import CustomerBlockedError
from .models import BlockedCustomer

logger = structlog.get_logger(__name__)


def normalize_phone(phone: str) -> str:
    """Digits only, last 11 digits."""
    return re.sub(r"\D", "", phone)[-11:]


def match_conditions(phone: str | None, email: str | None) -> list:
    conditions = []
    if phone:
        normalized = normalize_phone(phone)
        conditions.append(BlockedCustomer.phone == phone)
        if normalized:
            conditions.append(BlockedCustomer.phone == normalized)
            conditions.append(BlockedCustomer.phone.endswith(normalized[-10:], autoescape=True))
    if email:
        conditions.append(BlockedCustomer.email == email.strip().lower())
    return conditions


async def find_block(db: AsyncSession, tenant_id: str, phone: str | None, email: str | None):
    conditions = match_conditions(phone, email)
    if not conditions:
        return None
    result = await db.execute(
        select(BlockedCustomer).where(
            BlockedCustomer.tenant_id == tenant_id,
            BlockedCustomer.is_active.is_(True),
            or_(*conditions),
        )
    )
    return result.scalars().first()


async def screen_customer(db: AsyncSession, tenant_id: str, phone: str | None, email: str | None) -> None:
    """Raises CustomerBlockedError on a match; logs and returns on store failure."""
    try:
        blocked = await find_block(db, tenant_id, phone, email)
    except Exception as e:
        logger.error("Block-list check failed, allowing order", tenant_id=tenant_id, error=str(e))
        # nothing has been written yet; clear the failed read so checkout can continue
        await db.rollback()
        return

    if blocked:
        logger.warning(
            "Blocked customer attempted to place order",
            tenant_id=tenant_id,
            phone=phone,
            block_id=blocked.id,
        )
        raise CustomerBlockedError()
