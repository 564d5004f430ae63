from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.repository import OrderRepository
from .client import FraudCheckClient
from .normalize import normalize_fraud_response

logger = structlog.get_logger(__name__)


async def enrich_order(db: AsyncSession, client: FraudCheckClient, tenant_id: str, order_id: str, phone: str) -> dict | None:
    """Fetches the phone's delivery history and stores the snapshot on the order.

    Transport errors and timeouts propagate so the caller can retry.
    """
    phone = phone.strip()
    body = await client.check(phone)
    if body is None:
        return None

    snapshot = normalize_fraud_response(body, phone, datetime.now(timezone.utc).isoformat())
    if snapshot is None:
        logger.info("Fraud check response not recognised, skipping", order_id=order_id)
        return None

    updated = await OrderRepository.attach_fraud_check(db, tenant_id, order_id, snapshot)
    if not updated:
        logger.warning("Order vanished before fraud snapshot was stored", order_id=order_id)
    else:
        logger.info("Fraud snapshot stored", order_id=order_id, fraud_risk=snapshot["fraud_risk"])
    return snapshot
