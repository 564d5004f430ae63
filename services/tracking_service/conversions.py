"""
Server-side purchase events for the Meta Conversions API.

User data is normalised and SHA-256 hashed before it leaves the process. The
event id is derived from the order id so browser and server events deduplicate.
"""
import hashlib
import re
import time

import httpx
import structlog

from shared.config.settings import META_GRAPH_URL
from shared.security.secrets import SecretDecryptionError, decrypt_secret

logger = structlog.get_logger(__name__)

NON_DIGITS = re.compile(r"\D")


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _normalizers():
    return {
        "em": lambda v: v.strip().lower(),
        "ph": lambda v: NON_DIGITS.sub("", v),
        "fn": lambda v: v.strip().lower(),
        "ln": lambda v: v.strip().lower(),
        "ct": lambda v: v.replace(" ", "").lower(),
        "zp": lambda v: v.replace(" ", "").lower(),
    }


def hashed_user_data(customer: dict, client_ip: str | None = None) -> dict:
    full_name = (customer.get("full_name") or "").split()
    raw = {
        "em": customer.get("email"),
        "ph": customer.get("phone"),
        "fn": full_name[0] if full_name else None,
        "ln": " ".join(full_name[1:]) if len(full_name) > 1 else None,
        "ct": customer.get("city"),
        "zp": customer.get("postal_code"),
    }
    user_data = {}
    for key, normalize in _normalizers().items():
        value = raw[key]
        if value and normalize(value):
            user_data[key] = [sha256_hex(normalize(value))]
    if client_ip:
        user_data["client_ip_address"] = client_ip
    return user_data


def purchase_event(order: dict, currency: str, client_ip: str | None = None) -> dict:
    items = order.get("items") or []
    return {
        "event_name": "Purchase",
        "event_time": int(time.time()),
        "event_id": f"purchase_{order['id']}",
        "action_source": "website",
        "user_data": hashed_user_data(order.get("customer") or {}, client_ip),
        "custom_data": {
            "currency": currency,
            "value": order["total"],
            "content_ids": [item["product_id"] for item in items],
            "num_items": sum(item.get("quantity") or 1 for item in items),
            "content_type": "product",
            "order_id": order["id"],
        },
    }


class ConversionTracker:
    def __init__(self, graph_url: str = META_GRAPH_URL, client: httpx.AsyncClient | None = None, timeout: float = 10.0):
        self.graph_url = graph_url.rstrip("/")
        self.client = client
        self.timeout = timeout

    async def track_purchase(self, pixel_id: str | None, encrypted_token: str | None, order: dict, currency: str, client_ip: str | None = None) -> bool:
        """Sends a Purchase event. Returns False when tracking is not configured.

        HTTP failures raise so the caller can retry.
        """
        if not pixel_id or not encrypted_token:
            logger.info("Conversion tracking not configured, skipping", order_id=order["id"])
            return False
        try:
            token = decrypt_secret(encrypted_token)
        except SecretDecryptionError as e:
            logger.critical("Conversions API token could not be decrypted", order_id=order["id"], error=str(e))
            return False

        url = f"{self.graph_url}/{pixel_id}/events"
        body = {"data": [purchase_event(order, currency, client_ip)], "access_token": token}
        if self.client is not None:
            resp = await self.client.post(url, json=body, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=body)
        resp.raise_for_status()
        logger.info("Purchase conversion sent", order_id=order["id"], pixel_id=pixel_id)
        return True
