"""End-to-end checkout through the HTTP API."""
import json
from urllib.parse import quote

from sqlalchemy import func, select, update

from conftest import TENANT, add_brand, add_product, add_staff, customer
from services.affiliate_service.cookie import build_cookie_payload
from services.affiliate_service.models import Affiliate, AffiliateCommission, AffiliateSettings
from services.blocklist_service.models import BlockedCustomer
from services.notification_service.models import Notification
from services.order_service.models import Order
from services.product_service.models import Product, StockTransaction
from services.orchestrator import checkout_saga
from shared.config.database import AsyncSessionLocal
from shared.config.tenant import Tenant


async def _count(db, model, **filters):
    stmt = select(func.count()).select_from(model)
    for name, value in filters.items():
        stmt = stmt.where(getattr(model, name) == value)
    return (await db.execute(stmt)).scalar_one()


async def _stock(db, product_id):
    return (await db.execute(select(Product.stock).where(Product.id == product_id))).scalar_one()


def _place(slug="classic-tee", quantity=1, **overrides):
    body = {"product_slug": slug, "quantity": quantity, "customer": customer(), "payment_method": "cod"}
    body.update(overrides)
    return body


async def _affiliate_setup(db, percentage=5.0):
    db.add(AffiliateSettings(
        tenant_id=TENANT,
        enabled=True,
        commission_levels={"1": {"enabled": True, "percentage": percentage}},
    ))
    affiliate = Affiliate(tenant_id=TENANT, promo_code="SUMMER5", full_name="Ref Partner", current_level=1)
    db.add(affiliate)
    await db.commit()
    await db.refresh(affiliate)
    return affiliate


def _cookie(affiliate, **overrides):
    payload = build_cookie_payload(affiliate.promo_code, affiliate.id)
    payload.update(overrides)
    return {"Cookie": f"theme=dark; affiliate_ref={quote(json.dumps(payload))}"}


class TestStockReservation:
    async def test_order_decrements_stock_and_writes_one_ledger_entry(self, client, session, task_queue):
        product = await add_product(session, stock=3)

        resp = await client.post("/orders/place", json=_place(quantity=2))
        await task_queue.join()

        assert resp.status_code == 201
        order = resp.json()
        assert order["status"] == "pending"
        assert order["payment_status"] == "pending"
        assert await _stock(session, product.id) == 1

        entries = (await session.execute(
            select(StockTransaction).where(StockTransaction.product_id == product.id)
        )).scalars().all()
        assert len(entries) == 1
        entry = entries[0]
        assert (entry.previous_stock, entry.new_stock, entry.quantity) == (3, 1, -2)
        assert entry.type == "order"
        assert entry.order_id == order["id"]

    async def test_insufficient_stock_is_rejected_without_side_effects(self, client, session):
        product = await add_product(session, stock=1)

        resp = await client.post("/orders/place", json=_place(quantity=2))

        assert resp.status_code == 409
        body = resp.json()
        assert body["error"] == "insufficient_stock"
        assert body["available"] == 1
        assert body["requested"] == 2
        assert await _stock(session, product.id) == 1
        assert await _count(session, Order) == 0
        assert await _count(session, StockTransaction) == 0

    async def test_stock_taken_after_the_check_rolls_the_order_back(self, client, session, monkeypatch):
        product = await add_product(session, stock=1)
        affiliate = await _affiliate_setup(session)
        screen = checkout_saga.screen

        async def screen_then_sell_out(ctx):
            await screen(ctx)
            # a concurrent checkout takes the last unit after the availability check
            async with AsyncSessionLocal() as other:
                await other.execute(update(Product).where(Product.id == product.id).values(stock=0))
                await other.commit()

        monkeypatch.setattr(checkout_saga, "screen", screen_then_sell_out)

        resp = await client.post("/orders/place", json=_place(), headers=_cookie(affiliate))

        assert resp.status_code == 409
        body = resp.json()
        assert body["error"] == "insufficient_stock"
        assert (body["available"], body["requested"]) == (0, 1)
        assert await _count(session, Order) == 0
        assert await _count(session, StockTransaction) == 0
        assert await _count(session, AffiliateCommission) == 0
        assert await _stock(session, product.id) == 0

    async def test_cart_lines_for_the_same_product_are_checked_together(self, client, session):
        product = await add_product(session, stock=3)
        body = {
            "items": [
                {"product_id": product.id, "quantity": 2, "size": "M"},
                {"slug": product.slug, "quantity": 2, "size": "L"},
            ],
            "customer": customer(),
        }

        resp = await client.post("/orders/", json=body)

        assert resp.status_code == 409
        assert resp.json()["requested"] == 4
        assert await _stock(session, product.id) == 3

    async def test_untracked_stock_never_blocks_and_writes_no_ledger(self, client, session, task_queue):
        await add_product(session, stock=None)

        resp = await client.post("/orders/place", json=_place(quantity=50))
        await task_queue.join()

        assert resp.status_code == 201
        assert await _count(session, StockTransaction) == 0

    async def test_stock_equals_initial_plus_ledger_deltas(self, client, session, task_queue):
        product = await add_product(session, stock=5)

        for quantity in (1, 2, 3):
            await client.post("/orders/place", json=_place(quantity=quantity))
        await task_queue.join()

        deltas = (await session.execute(
            select(func.coalesce(func.sum(StockTransaction.quantity), 0)).where(StockTransaction.product_id == product.id)
        )).scalar_one()
        assert await _stock(session, product.id) == 5 + deltas
        assert await _stock(session, product.id) == 2
        assert await _count(session, Order) == 2


class TestIntake:
    async def test_missing_customer_fields_are_rejected(self, client, session):
        await add_product(session)

        resp = await client.post("/orders/place", json=_place(customer=customer(city="", postal_code=None)))

        assert resp.status_code == 400
        assert resp.json()["missing"] == ["city", "postal code"]

    async def test_unknown_product_is_not_found(self, client):
        resp = await client.post("/orders/place", json=_place(slug="nope"))
        assert resp.status_code == 404

    async def test_zero_quantity_is_rejected(self, client, session):
        await add_product(session)
        resp = await client.post("/orders/place", json=_place(quantity=0))
        assert resp.status_code == 400

    async def test_malformed_body_maps_to_400(self, client):
        resp = await client.post("/orders/place", json={"product_slug": "x", "quantity": "many"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    async def test_client_prices_are_ignored_and_total_holds(self, client, session, task_queue):
        await add_brand(session, vat_percentage=10.0)
        product = await add_product(session, price=200.0, discount_percentage=10.0, stock=10)
        body = {
            "items": [{"product_id": product.id, "quantity": 2, "price": 0.01}],
            "customer": customer(),
            "shipping": 60,
        }

        resp = await client.post("/orders/", json=body)
        await task_queue.join()

        order = resp.json()
        assert order["items"][0]["price"] == 180.0
        assert order["subtotal"] == 400.0
        assert order["discount_amount"] == 40.0
        assert order["discount_percentage"] == 10.0
        assert order["vat_tax_amount"] == 36.0
        assert order["total"] == 456.0
        assert abs(order["total"] - (order["subtotal"] - order["discount_amount"] + order["vat_tax_amount"] + order["shipping"])) < 1e-2
        assert order["custom_order_id"].startswith("ACM-")

    async def test_tenant_is_required(self, client, session):
        await add_product(session)
        resp = await client.post("/orders/place", json=_place(), headers={"X-Tenant-ID": ""})
        assert resp.status_code == 400

    async def test_tenant_resolved_from_domain(self, client, session, task_queue):
        session.add(Tenant(id=TENANT, name="Acme", domain="shop.acme.test"))
        await session.commit()
        await add_product(session)

        resp = await client.post("/orders/place", json=_place(), headers={"X-Tenant-ID": "", "Host": "shop.acme.test"})
        await task_queue.join()

        assert resp.status_code == 201

    async def test_products_of_another_tenant_are_invisible(self, client, session):
        await add_product(session, tenant_id="store-b")
        resp = await client.post("/orders/place", json=_place())
        assert resp.status_code == 404


class TestBlockList:
    async def test_blocked_phone_is_rejected_before_anything_is_written(self, client, session):
        product = await add_product(session, stock=3)
        session.add(BlockedCustomer(tenant_id=TENANT, phone="01712345678", reason="chargebacks"))
        await session.commit()

        resp = await client.post("/orders/place", json=_place())

        assert resp.status_code == 403
        assert resp.json()["code"] == "CUSTOMER_BLOCKED"
        assert await _count(session, Order) == 0
        assert await _count(session, StockTransaction) == 0
        assert await _count(session, AffiliateCommission) == 0
        assert await _stock(session, product.id) == 3

    async def test_blocked_customer_with_affiliate_cookie_earns_no_commission(self, client, session, task_queue):
        await add_product(session)
        affiliate = await _affiliate_setup(session)
        session.add(BlockedCustomer(tenant_id=TENANT, phone="+8801712345678"))
        await session.commit()

        resp = await client.post("/orders/place", json=_place(), headers=_cookie(affiliate))
        await task_queue.join()

        assert resp.status_code == 403
        assert await _count(session, Order) == 0
        assert await _count(session, AffiliateCommission) == 0
        await session.refresh(affiliate)
        assert affiliate.total_orders == 0

    async def test_blocked_email_matches_case_insensitively(self, client, session):
        await add_product(session)
        session.add(BlockedCustomer(tenant_id=TENANT, email="jane@example.test"))
        await session.commit()

        resp = await client.post("/orders/place", json=_place(customer=customer(email="JANE@Example.test")))

        assert resp.status_code == 403

    async def test_inactive_entry_does_not_block(self, client, session, task_queue):
        await add_product(session)
        session.add(BlockedCustomer(tenant_id=TENANT, phone="01712345678", is_active=False))
        await session.commit()

        resp = await client.post("/orders/place", json=_place())
        await task_queue.join()

        assert resp.status_code == 201


class TestAffiliateAttribution:
    async def test_valid_cookie_sets_affiliate_and_records_commission(self, client, session, task_queue):
        affiliate = await _affiliate_setup(session, percentage=5.0)
        await add_product(session, price=1000.0, stock=5)

        resp = await client.post("/orders/place", json=_place(), headers=_cookie(affiliate))
        await task_queue.join()

        order = resp.json()
        assert order["total"] == 1000.0
        assert order["affiliate_id"] == affiliate.id
        assert order["affiliate_code"] == "SUMMER5"
        assert order["affiliate_commission"] == 50.0

        commissions = (await session.execute(select(AffiliateCommission))).scalars().all()
        assert len(commissions) == 1
        assert commissions[0].commission_amount == 50.0
        assert commissions[0].status == "pending"
        assert commissions[0].order_id == order["id"]

        await session.refresh(affiliate)
        assert affiliate.total_orders == 1

    async def test_expired_cookie_is_ignored(self, client, session, task_queue):
        affiliate = await _affiliate_setup(session)
        await add_product(session)

        resp = await client.post("/orders/place", json=_place(), headers=_cookie(affiliate, expiry=1))
        await task_queue.join()

        assert resp.status_code == 201
        assert resp.json()["affiliate_id"] is None
        assert await _count(session, AffiliateCommission) == 0

    async def test_garbage_cookie_is_ignored(self, client, session, task_queue):
        await _affiliate_setup(session)
        await add_product(session)

        resp = await client.post("/orders/place", json=_place(), headers={"Cookie": "affiliate_ref=%7Bnot-json"})
        await task_queue.join()

        assert resp.status_code == 201
        assert resp.json()["affiliate_id"] is None

    async def test_disabled_tier_gives_no_commission(self, client, session, task_queue):
        affiliate = await _affiliate_setup(session, percentage=0.0)
        await add_product(session)

        resp = await client.post("/orders/place", json=_place(), headers=_cookie(affiliate))
        await task_queue.join()

        assert resp.json()["affiliate_id"] is None


class TestFanout:
    async def test_staff_are_notified_in_realtime_and_durably(self, client, session, publisher, task_queue):
        staff = await add_staff(session)
        await add_product(session)

        resp = await client.post("/orders/place", json=_place())
        await task_queue.join()

        order = resp.json()
        events = [(room, event) for room, event, _ in publisher.events]
        assert (f"tenant:{TENANT}", "new-order") in events
        pushed = next(data for room, event, data in publisher.events if event == "new-order")
        assert pushed["id"] == order["id"]
        assert pushed["items"] == order["items"]
        assert pushed["customer"]["full_name"] == "Jane Doe"
        assert pushed["total"] == order["total"]
        assert (f"user:{staff.id}", "notification") in events

        notifications = (await session.execute(select(Notification))).scalars().all()
        assert len(notifications) == 1
        assert notifications[0].user_id == staff.id
        assert notifications[0].link == f"/merchant/orders/{order['id']}"
        pushed_id = next(data["id"] for _, event, data in publisher.events if event == "notification")
        assert notifications[0].id == pushed_id

    async def test_confirmation_and_admin_emails_are_sent(self, client, session, email_sender, task_queue):
        await add_staff(session)
        await add_product(session)

        await client.post("/orders/place", json=_place())
        await task_queue.join()

        by_event = {call["event"]: call for call in email_sender.calls}
        assert by_event["order_confirmation"]["to"] == ["jane@example.test"]
        assert by_event["admin_new_order_alert"]["to"] == ["owner@store.test"]
        assert by_event["order_confirmation"]["variables"]["customerName"] == "Jane Doe"

    async def test_no_customer_email_skips_confirmation(self, client, session, email_sender, task_queue):
        await add_product(session)

        resp = await client.post("/orders/place", json=_place(customer=customer(email=None)))
        await task_queue.join()

        assert resp.status_code == 201
        assert [call["event"] for call in email_sender.calls] == []

    async def test_realtime_outage_does_not_fail_checkout(self, client, session, publisher, task_queue):
        publisher.fail = True
        await add_staff(session)
        await add_product(session)

        resp = await client.post("/orders/place", json=_place())
        await task_queue.join()

        assert resp.status_code == 201
        assert await _count(session, Notification) == 1

    async def test_fraud_snapshot_is_attached_after_creation(self, client, session, fraud_handler, task_queue):
        fraud_handler.json = {
            "success": True,
            "data": {"phone": "01712345678", "total_parcel": 10, "success_parcel": 9, "cancel_parcel": 1, "score": 95, "response": {}},
        }
        await add_product(session)

        resp = await client.post("/orders/place", json=_place())
        assert resp.json()["fraud_check"] is None
        await task_queue.join()

        order = (await session.execute(select(Order))).scalars().one()
        assert order.fraud_check["fraud_risk"] == "low"
        assert order.fraud_check["total_parcels"] == 10
        assert json.loads(fraud_handler.requests[0].content) == {"phone": "+8801712345678"}

    async def test_cod_orders_send_purchase_conversion(self, client, session, capi_handler, task_queue):
        await add_brand(session, meta_pixel_id="PIXEL1", meta_capi_token="plain-token")
        await add_product(session)

        await client.post("/orders/place", json=_place())
        await task_queue.join()

        assert len(capi_handler.requests) == 1
        sent = json.loads(capi_handler.requests[0].content)
        assert capi_handler.requests[0].url.path == "/PIXEL1/events"
        assert sent["data"][0]["event_name"] == "Purchase"

    async def test_online_orders_send_no_conversion(self, client, session, capi_handler, task_queue):
        await add_brand(session, meta_pixel_id="PIXEL1", meta_capi_token="plain-token")
        await add_product(session)

        await client.post("/orders/place", json=_place(payment_method="online"))
        await task_queue.join()

        assert capi_handler.requests == []
