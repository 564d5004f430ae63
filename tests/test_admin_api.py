"""Staff-facing settings endpoints: block list, affiliates, email and notifications."""
from conftest import OTHER_TENANT, TENANT, add_staff, staff_headers
from services.email_service.models import EmailProviderSettings
from services.notification_service.models import Notification
from shared.security.secrets import decrypt_secret, looks_encrypted


class TestBlockListApi:
    async def test_block_and_unblock(self, client, session):
        headers = staff_headers(await add_staff(session))

        resp = await client.post("/blocked-customers/", json={"email": " Fraud@Example.TEST ", "reason": "chargebacks"}, headers=headers)
        assert resp.status_code == 201
        entry = resp.json()
        assert entry["email"] == "fraud@example.test"

        resp = await client.delete(f"/blocked-customers/{entry['id']}", headers=headers)
        assert resp.json()["is_active"] is False

    async def test_identifier_required(self, client, session):
        headers = staff_headers(await add_staff(session))
        resp = await client.post("/blocked-customers/", json={"reason": "nothing to match"}, headers=headers)
        assert resp.status_code == 400

    async def test_entries_are_tenant_scoped(self, client, session):
        headers = staff_headers(await add_staff(session))
        other = await add_staff(session, tenant_id=OTHER_TENANT)
        await client.post(
            "/blocked-customers/",
            json={"phone": "01712345678"},
            headers={**staff_headers(other), "X-Tenant-ID": OTHER_TENANT},
        )

        resp = await client.get("/blocked-customers/", headers=headers)
        assert resp.json() == []

    async def test_requires_staff(self, client):
        resp = await client.get("/blocked-customers/")
        assert resp.status_code == 401


class TestAffiliateApi:
    async def test_settings_and_affiliate(self, client, session):
        headers = staff_headers(await add_staff(session))

        resp = await client.put(
            "/affiliates/settings",
            json={"enabled": True, "commission_levels": {"1": {"percentage": 5}, "2": {"percentage": 8, "enabled": False}}},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["commission_levels"]["2"] == {"enabled": False, "percentage": 8.0}

        resp = await client.post("/affiliates/", json={"promo_code": "save10"}, headers=headers)
        assert resp.status_code == 201
        affiliate = resp.json()
        assert affiliate["promo_code"] == "SAVE10"

        resp = await client.get(f"/affiliates/{affiliate['id']}/commissions", headers=headers)
        assert resp.json() == []

    async def test_level_out_of_range(self, client, session):
        headers = staff_headers(await add_staff(session))
        resp = await client.put(
            "/affiliates/settings",
            json={"enabled": True, "commission_levels": {"6": {"percentage": 5}}},
            headers=headers,
        )
        assert resp.status_code == 400


class TestEmailSettingsApi:
    async def test_secrets_are_encrypted_and_masked(self, client, session):
        headers = staff_headers(await add_staff(session))
        body = {
            "default_provider_id": "sg",
            "providers": [{"id": "sg", "provider": "sendgrid", "api_key": "SG.secret", "from_email": "shop@acme.test"}],
        }

        resp = await client.put("/email/providers", json=body, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["providers"][0]["api_key"] == "ENCRYPTED"

        stored = await session.get(EmailProviderSettings, TENANT)
        ciphertext = stored.providers[0]["api_key"]
        assert looks_encrypted(ciphertext)
        assert decrypt_secret(ciphertext) == "SG.secret"

        # saving the masked form back keeps the stored credential
        body["providers"][0]["api_key"] = "ENCRYPTED"
        await client.put("/email/providers", json=body, headers=headers)
        session.expire_all()
        stored = await session.get(EmailProviderSettings, TENANT)
        assert stored.providers[0]["api_key"] == ciphertext

    async def test_unknown_provider_kind_rejected(self, client, session):
        headers = staff_headers(await add_staff(session))
        resp = await client.put("/email/providers", json={"providers": [{"id": "x", "provider": "mailgun"}]}, headers=headers)
        assert resp.status_code == 400

    async def test_template_upsert(self, client, session):
        headers = staff_headers(await add_staff(session))
        resp = await client.put(
            "/email/templates/order_confirmation",
            json={"subject": "Thanks for order {{orderId}}", "enabled": False},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Order Confirmation"
        assert resp.json()["enabled"] is False

        resp = await client.put("/email/templates/not_an_event", json={"subject": "x"}, headers=headers)
        assert resp.status_code == 400

    async def test_probe_unknown_provider(self, client, session):
        headers = staff_headers(await add_staff(session))
        resp = await client.post("/email/providers/missing/test", headers=headers)
        assert resp.status_code == 404


class TestNotificationsApi:
    async def test_list_and_mark_read(self, client, session):
        user = await add_staff(session)
        headers = staff_headers(user)
        session.add(Notification(id="n1", tenant_id=TENANT, user_id=user.id, title="New Order Received", message="m"))
        await session.commit()

        resp = await client.get("/notifications/", params={"unread_only": True}, headers=headers)
        assert [n["id"] for n in resp.json()] == ["n1"]

        resp = await client.post("/notifications/n1/read", headers=headers)
        assert resp.json()["read"] is True

        resp = await client.get("/notifications/", params={"unread_only": True}, headers=headers)
        assert resp.json() == []

    async def test_other_users_notification_not_found(self, client, session):
        user = await add_staff(session)
        session.add(Notification(id="n2", tenant_id=TENANT, user_id="someone-else", title="t", message="m"))
        await session.commit()

        resp = await client.post("/notifications/n2/read", headers=staff_headers(user))
        assert resp.status_code == 404
