import pytest

from conftest import TENANT
from services.blocklist_service.models import BlockedCustomer
from services.blocklist_service.screener import normalize_phone, screen_customer
from shared.errors import CustomerBlockedError


class TestScreener:
    def test_normalize_phone(self):
        assert normalize_phone("+880 1712-345678") == "01712345678"
        assert normalize_phone("01712345678") == "01712345678"

    async def test_matches_on_last_ten_digits(self, session):
        session.add(BlockedCustomer(tenant_id=TENANT, phone="+8801712345678"))
        await session.commit()

        with pytest.raises(CustomerBlockedError):
            await screen_customer(session, TENANT, "01712345678", None)

    async def test_email_match_ignores_case(self, session):
        session.add(BlockedCustomer(tenant_id=TENANT, email="fraud@example.test"))
        await session.commit()

        with pytest.raises(CustomerBlockedError):
            await screen_customer(session, TENANT, None, " Fraud@Example.TEST")

    async def test_other_tenant_block_does_not_apply(self, session):
        session.add(BlockedCustomer(tenant_id="store-b", phone="01712345678"))
        await session.commit()

        await screen_customer(session, TENANT, "01712345678", None)

    async def test_store_failure_allows_order(self, session, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(session, "execute", broken)

        await screen_customer(session, TENANT, "01712345678", "jane@example.test")
