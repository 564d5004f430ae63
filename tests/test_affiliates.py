import json
from urllib.parse import quote

from conftest import TENANT
from services.affiliate_service.commission import attribute_order, calculate_commission
from services.affiliate_service.cookie import extract_cookie_value, parse_affiliate_cookie
from services.affiliate_service.models import Affiliate, AffiliateSettings
from services.affiliate_service.service import CommissionService

NOW = 1_700_000_000_000
LEVELS = {
    "1": {"enabled": True, "percentage": 5},
    "2": {"enabled": True, "percentage": 7.5},
    "3": {"enabled": False, "percentage": 10},
}


def _cookie(payload, encode_times: int = 1) -> str:
    value = json.dumps(payload) if isinstance(payload, dict) else payload
    for _ in range(encode_times):
        value = quote(value, safe="")
    return f"session=abc; affiliate_ref={value}"


class TestCookie:
    def test_encoded_json(self):
        cookie = parse_affiliate_cookie(_cookie({"promoCode": "SAVE10", "affiliateId": "aff1", "expiry": NOW + 1}), now=NOW)
        assert (cookie.promo_code, cookie.affiliate_id) == ("SAVE10", "aff1")

    def test_double_encoded_json(self):
        header = _cookie({"promoCode": "SAVE10", "affiliateId": "aff1"}, encode_times=2)
        assert parse_affiliate_cookie(header, now=NOW).affiliate_id == "aff1"

    def test_key_value_fallback(self):
        header = "affiliate_ref=promoCode=SAVE10&affiliateId=aff1&expiry=" + str(NOW + 5)
        cookie = parse_affiliate_cookie(header, now=NOW)
        assert cookie.expiry == NOW + 5

    def test_expired(self):
        assert parse_affiliate_cookie(_cookie({"promoCode": "A", "affiliateId": "b", "expiry": NOW - 1}), now=NOW) is None

    def test_missing_fields_or_garbage(self):
        assert parse_affiliate_cookie(_cookie({"promoCode": "A"}), now=NOW) is None
        assert parse_affiliate_cookie(_cookie("%%%not-json"), now=NOW) is None
        assert parse_affiliate_cookie(None) is None
        assert parse_affiliate_cookie("session=abc") is None

    def test_cookie_name_is_case_insensitive(self):
        assert extract_cookie_value("Affiliate_Ref=x=y; other=1") == "x=y"


class TestCommission:
    def test_tiers(self):
        settings = AffiliateSettings(tenant_id=TENANT, enabled=True, commission_levels=LEVELS)
        assert calculate_commission(1000, 1, settings) == (5.0, 50.0)
        assert calculate_commission(1000, 2, settings) == (7.5, 75.0)
        assert calculate_commission(1000, 3, settings) is None
        assert calculate_commission(1000, 4, settings) is None

    def test_program_disabled(self):
        settings = AffiliateSettings(tenant_id=TENANT, enabled=False, commission_levels=LEVELS)
        assert calculate_commission(1000, 1, settings) is None

    async def test_attribution_falls_back_to_promo_code(self, session):
        session.add(AffiliateSettings(tenant_id=TENANT, enabled=True, commission_levels=LEVELS))
        session.add(Affiliate(id="aff1", tenant_id=TENANT, promo_code="SAVE10", current_level=2))
        await session.commit()

        header = _cookie({"promoCode": "save10", "affiliateId": "stale-id"})
        attribution = await attribute_order(session, TENANT, header, 1000)

        assert attribution.affiliate_id == "aff1"
        assert (attribution.level, attribution.amount) == (2, 75.0)

    async def test_inactive_affiliate_gets_nothing(self, session):
        session.add(AffiliateSettings(tenant_id=TENANT, enabled=True, commission_levels=LEVELS))
        session.add(Affiliate(id="aff1", tenant_id=TENANT, promo_code="SAVE10", status="suspended"))
        await session.commit()

        header = _cookie({"promoCode": "SAVE10", "affiliateId": "aff1"})
        assert await attribute_order(session, TENANT, header, 1000) is None

    async def test_record_commission_is_idempotent(self, session):
        session.add(Affiliate(id="aff1", tenant_id=TENANT, promo_code="SAVE10"))
        await session.commit()

        first = await CommissionService.record_commission(session, TENANT, "ord1", "aff1", 1, 1000, 5, 50)
        second = await CommissionService.record_commission(session, TENANT, "ord1", "aff1", 1, 1000, 5, 50)

        assert first.id == second.id
        affiliate = await session.get(Affiliate, "aff1")
        await session.refresh(affiliate)
        assert affiliate.total_orders == 1
        assert first.status == "pending"

    async def test_concurrent_duplicate_returns_the_stored_record(self, session, monkeypatch):
        session.add(Affiliate(id="aff1", tenant_id=TENANT, promo_code="SAVE10"))
        await session.commit()
        stored = await CommissionService.record_commission(session, TENANT, "ord1", "aff1", 1, 1000, 5, 50)
        stored_id = stored.id

        lookup = CommissionService.get_for_order
        calls = []

        async def miss_first_lookup(db, tenant_id, order_id):
            calls.append(order_id)
            # the other writer commits between this pre-check and our insert
            if len(calls) == 1:
                return None
            return await lookup(db, tenant_id, order_id)

        monkeypatch.setattr(CommissionService, "get_for_order", staticmethod(miss_first_lookup))

        again = await CommissionService.record_commission(session, TENANT, "ord1", "aff1", 1, 1000, 5, 50)

        assert again.id == stored_id
        assert len(calls) == 2
        affiliate = await session.get(Affiliate, "aff1")
        await session.refresh(affiliate)
        assert affiliate.total_orders == 1
