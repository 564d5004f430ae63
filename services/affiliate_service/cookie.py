"""
Affiliate attribution cookie decoding.

The cookie value is JSON `{"promoCode", "affiliateId", "timestamp", "expiry"}`
(expiry in epoch milliseconds), URL-encoded when set. Some cookie-setting paths
encode twice, so a second decode is attempted when the first result still looks
percent-encoded. Decoding never raises: a bad cookie means no attribution.
"""
import json
import time
from dataclasses import dataclass
from urllib.parse import parse_qs, unquote

import structlog

from shared.config.settings import AFFILIATE_COOKIE_NAME

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AffiliateCookie:
    promo_code: str
    affiliate_id: str
    expiry: int | None = None
    timestamp: int | None = None


def now_ms() -> int:
    return int(time.time() * 1000)


def extract_cookie_value(cookie_header: str | None, name: str = AFFILIATE_COOKIE_NAME) -> str | None:
    """Finds `name=` in a raw Cookie header. Names compare case-insensitively
    and the value may itself contain `=`."""
    if not cookie_header:
        return None
    prefix = f"{name.lower()}="
    for part in cookie_header.split(";"):
        part = part.strip()
        if part.lower().startswith(prefix):
            return part[len(prefix):].strip()
    return None


def _looks_encoded(value: str) -> bool:
    return value.startswith("%") or "%22" in value or "%7B" in value


def decode_cookie_value(raw: str) -> str:
    decoded = unquote(raw)
    if _looks_encoded(decoded):
        decoded = unquote(decoded)
    return decoded


def _parse_json(value: str) -> dict | None:
    try:
        data = json.loads(value)
    except (TypeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _parse_pairs(value: str) -> dict | None:
    """Fallback for `promoCode=...&affiliateId=...&expiry=...` values."""
    pairs = parse_qs(value, keep_blank_values=False)
    if not pairs:
        return None
    return {key: values[0] for key, values in pairs.items()}


def _as_int(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def parse_affiliate_cookie(cookie_header: str | None, now: int | None = None) -> AffiliateCookie | None:
    raw = extract_cookie_value(cookie_header)
    if not raw:
        return None

    value = decode_cookie_value(raw)
    data = _parse_json(value)
    if data is None:
        data = _parse_pairs(value)
    if not data:
        logger.warning("Affiliate cookie could not be parsed", preview=value[:200])
        return None

    promo_code = data.get("promoCode")
    affiliate_id = data.get("affiliateId")
    if not promo_code or not affiliate_id:
        logger.warning("Affiliate cookie missing required fields", keys=sorted(data.keys()))
        return None

    expiry = _as_int(data.get("expiry"))
    if "expiry" in data and data.get("expiry") not in (None, "") and expiry is None:
        logger.warning("Affiliate cookie has an unreadable expiry", expiry=data.get("expiry"))
        return None
    if expiry is not None and (now if now is not None else now_ms()) > expiry:
        logger.info("Affiliate cookie expired", expiry=expiry)
        return None

    return AffiliateCookie(
        promo_code=str(promo_code),
        affiliate_id=str(affiliate_id),
        expiry=expiry,
        timestamp=_as_int(data.get("timestamp")),
    )


def build_cookie_payload(promo_code: str, affiliate_id: str, expiry_days: int = 30) -> dict:
    now = now_ms()
    return {
        "promoCode": promo_code,
        "affiliateId": affiliate_id,
        "timestamp": now,
        "expiry": now + expiry_days * 24 * 60 * 60 * 1000,
    }
