from conftest import OTHER_TENANT, TENANT, add_product, add_staff, customer, staff_headers


async def _place(client):
    body = {"product_slug": "classic-tee", "quantity": 1, "customer": customer()}
    return (await client.post("/orders/place", json=body)).json()


class TestStaffOrderEndpoints:
    async def test_reading_an_order_needs_a_token(self, client, session, task_queue):
        await add_product(session)
        order = await _place(client)
        await task_queue.join()

        resp = await client.get(f"/orders/{order['id']}")
        assert resp.status_code == 401

    async def test_staff_reads_own_tenant_orders(self, client, session, task_queue):
        staff = await add_staff(session)
        await add_product(session)
        order = await _place(client)
        await task_queue.join()

        resp = await client.get(f"/orders/{order['id']}", headers=staff_headers(staff))
        assert resp.status_code == 200
        assert resp.json()["custom_order_id"] == order["custom_order_id"]

    async def test_token_from_another_tenant_is_refused(self, client, session, task_queue):
        outsider = await add_staff(session, tenant_id=OTHER_TENANT, email="other@store.test")
        await add_product(session)
        order = await _place(client)
        await task_queue.join()

        resp = await client.get(f"/orders/{order['id']}", headers=staff_headers(outsider))
        assert resp.status_code == 403


class TestStatusChanges:
    async def test_forward_move_and_skip_are_allowed(self, client, session, task_queue):
        staff = await add_staff(session)
        await add_product(session)
        order = await _place(client)
        await task_queue.join()
        headers = staff_headers(staff)

        confirmed = await client.patch(f"/orders/{order['id']}/status", json={"status": "confirmed"}, headers=headers)
        shipped = await client.patch(f"/orders/{order['id']}/status", json={"status": "shipped"}, headers=headers)

        assert confirmed.json()["status"] == "confirmed"
        assert shipped.json()["status"] == "shipped"
        assert shipped.json()["effective_status"] == "shipped"

    async def test_backward_move_is_rejected(self, client, session, task_queue):
        staff = await add_staff(session)
        await add_product(session)
        order = await _place(client)
        await task_queue.join()
        headers = staff_headers(staff)

        await client.patch(f"/orders/{order['id']}/status", json={"status": "packed"}, headers=headers)
        resp = await client.patch(f"/orders/{order['id']}/status", json={"status": "confirmed"}, headers=headers)

        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    async def test_unknown_order_is_404(self, client, session):
        staff = await add_staff(session)
        resp = await client.get("/orders/doesnotexist", headers=staff_headers(staff))
        assert resp.status_code == 404
