from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from restaurant.models import MenuItem, OrderStatus, StaffStatus
from restaurant.utils.clock import utcnow
from tests.factories import auth, make_menu_item, make_order, make_user

CUSTOMER = auth(1, "customer")
OTHER_CUSTOMER = auth(2, "customer")
WAITER = auth(3, "staff")
MANAGER = auth(4, "staff", "manager")


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        session.add_all(
            [
                make_user(username="sam", email="sam@example.com"),
                make_user(username="jo", email="jo@example.com"),
                make_user(
                    username="lee",
                    email="lee@example.com",
                    first_name="Lee",
                    last_name="Chan",
                    roles=["staff"],
                    staff_status=StaffStatus.ACTIVE,
                ),
                make_user(
                    username="max",
                    email="max@example.com",
                    first_name="Max",
                    last_name="Ward",
                    roles=["staff", "manager"],
                    staff_status=StaffStatus.ACTIVE,
                ),
                make_menu_item(),
                make_menu_item(name="Jasmine Tea", category="Drinks", price=Decimal("2.50"), qty_on_hand=0),
            ]
        )
        await session.commit()
    return session_factory


async def _place(client, headers=CUSTOMER, quantity=2):
    return await client.post(
        "/orders",
        json={"tableNumber": 4, "items": [{"menuItemId": 1, "quantity": quantity}]},
        headers=headers,
    )


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_place_order(client, db, publisher):
    response = await client.post(
        "/orders",
        json={
            "tableNumber": 4,
            "items": [{"menuItemId": 1, "quantity": 2, "customizations": "no chili"}],
        },
        headers={**CUSTOMER, "X-Request-ID": "req-42"},
    )

    assert response.status_code == 201
    assert response.headers["X-Request-ID"] == "req-42"
    body = response.json()
    assert body["status"] == "placed"
    assert body["customerId"] == 1
    assert Decimal(body["subtotalAmount"]) == Decimal("25.98")
    assert Decimal(body["taxAmount"]) == Decimal("2.08")
    assert Decimal(body["totalAmount"]) == Decimal("28.06")
    assert body["items"][0]["nameSnapshot"] == "Har Gow"
    assert body["items"][0]["customizations"] == "no chili"
    assert body["placedAt"] is not None

    [(topic, key, event)] = publisher.events
    assert (topic, key, event.correlation_id) == ("order.placed", str(body["id"]), "req-42")


async def test_place_order_requires_identity(client, db):
    response = await client.post(
        "/orders", json={"tableNumber": 4, "items": [{"menuItemId": 1, "quantity": 1}]}
    )
    assert response.status_code == 401


async def test_place_order_schema_limits(client, db):
    response = await _place(client, quantity=11)
    assert response.status_code == 422


async def test_place_order_validation_failure(client, db, publisher):
    response = await client.post(
        "/orders",
        json={"tableNumber": 4, "items": [{"menuItemId": 2, "quantity": 1}]},
        headers=CUSTOMER,
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Order validation failed"
    assert "Item Jasmine Tea is not available" in body["details"]
    assert publisher.events == []


async def test_place_order_unknown_item(client, db):
    response = await client.post(
        "/orders",
        json={"tableNumber": 4, "items": [{"menuItemId": 77, "quantity": 1}]},
        headers=CUSTOMER,
    )
    assert response.status_code == 404


async def test_read_order_access(client, db):
    order_id = (await _place(client)).json()["id"]

    assert (await client.get(f"/orders/{order_id}", headers=CUSTOMER)).status_code == 200
    assert (await client.get(f"/orders/{order_id}", headers=OTHER_CUSTOMER)).status_code == 403
    assert (await client.get(f"/orders/{order_id}", headers=WAITER)).status_code == 200
    assert (await client.get("/orders/999", headers=WAITER)).status_code == 404


async def test_order_status(client, db):
    order_id = (await _place(client)).json()["id"]

    first = (await client.get(f"/orders/{order_id}/status", headers=CUSTOMER)).json()
    second = (await client.get(f"/orders/{order_id}/status", headers=CUSTOMER)).json()
    assert first == second
    assert first["status"] == "placed"
    assert first["estimatedReadyAt"] is not None


async def test_kitchen_flow(client, db, publisher):
    order_id = (await _place(client)).json()["id"]

    queue = (await client.get("/staff/orders", headers=WAITER)).json()
    assert [o["id"] for o in queue["orders"]] == [order_id]
    assert queue["pagination"] == {"limit": 50, "offset": 0, "count": 1}

    response = await client.patch(
        f"/staff/orders/{order_id}/status", json={"status": "in_kitchen"}, headers=WAITER
    )
    assert response.status_code == 200
    assert response.json()["status"] == "in_kitchen"

    menu = (await client.get("/menu")).json()
    assert next(m for m in menu if m["id"] == 1)["isAvailable"] is True

    response = await client.patch(
        f"/staff/orders/{order_id}/status", json={"status": "placed"}, headers=WAITER
    )
    assert response.status_code == 409
    assert response.json()["error"] == "Invalid status transition from in_kitchen to placed"

    assert publisher.topics() == ["order.placed", "order.status_changed"]


async def test_kitchen_entry_commits_stock(client, db, session_factory):
    order_id = (await _place(client, quantity=3)).json()["id"]
    await client.patch(f"/staff/orders/{order_id}/status", json={"status": "in_kitchen"}, headers=WAITER)

    low_stock = (await client.get("/staff/menu/low-stock", headers=WAITER)).json()
    assert [item["name"] for item in low_stock] == ["Jasmine Tea"]

    async with session_factory() as session:
        assert await session.scalar(select(MenuItem.qty_on_hand).where(MenuItem.id == 1)) == 7


async def test_customer_cannot_update_status(client, db):
    order_id = (await _place(client)).json()["id"]
    response = await client.patch(
        f"/staff/orders/{order_id}/status", json={"status": "in_kitchen"}, headers=CUSTOMER
    )
    assert response.status_code == 403


async def test_unknown_status_value(client, db):
    order_id = (await _place(client)).json()["id"]
    response = await client.patch(
        f"/staff/orders/{order_id}/status", json={"status": "eaten"}, headers=WAITER
    )
    assert response.status_code == 422


async def test_customer_history(client, db):
    for _ in range(3):
        await _place(client, quantity=1)

    response = await client.get("/customers/1/orders?limit=2", headers=CUSTOMER)
    assert response.status_code == 200
    body = response.json()
    assert len(body["orders"]) == 2
    assert body["orders"][0]["itemCount"] == 1
    assert body["pagination"] == {"limit": 2, "offset": 0, "count": 2}

    assert (await client.get("/customers/1/orders", headers=OTHER_CUSTOMER)).status_code == 403


async def test_confirm_requires_flag(client, db):
    order_id = (await _place(client)).json()["id"]
    response = await client.post(
        f"/orders/{order_id}/confirm", json={"confirmed": False}, headers=CUSTOMER
    )
    assert response.status_code == 400


async def test_menu_listing(client, db):
    response = await client.get("/menu")
    assert response.status_code == 200
    names = [item["name"] for item in response.json()]
    assert names == ["Jasmine Tea", "Har Gow"]

    available = (await client.get("/menu", params={"available": "true"})).json()
    assert [item["name"] for item in available] == ["Har Gow"]

    assert (await client.get("/menu/categories")).json() == ["Drinks", "Dumplings"]


async def test_menu_management(client, db):
    payload = {"name": "Egg Tart", "category": "Desserts", "price": "3.50", "qtyOnHand": 12}
    assert (await client.post("/staff/menu", json=payload, headers=CUSTOMER)).status_code == 403

    response = await client.post("/staff/menu", json=payload, headers=WAITER)
    assert response.status_code == 201
    item_id = response.json()["id"]

    response = await client.patch(f"/staff/menu/{item_id}", json={"price": "3.75"}, headers=WAITER)
    assert Decimal(response.json()["price"]) == Decimal("3.75")

    response = await client.post(f"/staff/menu/{item_id}/restock", json={"quantity": 8}, headers=WAITER)
    assert response.json()["qtyOnHand"] == 20

    response = await client.delete(f"/staff/menu/{item_id}", headers=WAITER)
    assert response.json()["isActive"] is False
    assert "Egg Tart" not in [item["name"] for item in (await client.get("/menu")).json()]


async def test_scheduling_flow(client, db):
    shift_day = (date.today() + timedelta(days=1)).isoformat()
    response = await client.post(
        "/staff/shifts",
        json={
            "shiftDate": shift_day,
            "timing": "evening",
            "startTime": "17:00:00",
            "endTime": "23:00:00",
            "requiredStaff": 1,
        },
        headers=MANAGER,
    )
    assert response.status_code == 201
    shift_id = response.json()["id"]

    members = (await client.get("/staff/members", headers=WAITER)).json()
    assert [m["username"] for m in members] == ["lee", "max"]

    response = await client.post(
        f"/staff/shifts/{shift_id}/assignments",
        json={"userId": 3, "workerRole": "server"},
        headers=WAITER,
    )
    assert response.status_code == 403

    response = await client.post(
        f"/staff/shifts/{shift_id}/assignments",
        json={"userId": 3, "workerRole": "server"},
        headers=MANAGER,
    )
    assert response.status_code == 201
    assert response.json()["shiftId"] == shift_id

    response = await client.post(
        f"/staff/shifts/{shift_id}/assignments", json={"userId": 4}, headers=MANAGER
    )
    assert response.status_code == 400
    assert "Shift is already fully staffed" in response.json()["details"]

    mine = (await client.get("/staff/me/assignments", headers=WAITER)).json()
    assert [(a["shift"]["id"], a["workerRole"]) for a in mine] == [(shift_id, "server")]

    shifts = (
        await client.get("/staff/shifts", params={"start": shift_day, "end": shift_day}, headers=WAITER)
    ).json()
    assert [len(s["assignments"]) for s in shifts] == [1]

    response = await client.delete(f"/staff/shifts/{shift_id}/assignments/3", headers=MANAGER)
    assert response.status_code == 204
    assert (await client.get("/staff/me/assignments", headers=WAITER)).json() == []


async def test_shift_application_flow(client, db):
    shift_day = (date.today() + timedelta(days=1)).isoformat()
    response = await client.post(
        "/staff/shifts",
        json={
            "shiftDate": shift_day,
            "timing": "evening",
            "startTime": "17:00:00",
            "endTime": "23:00:00",
            "requiredStaff": 2,
        },
        headers=MANAGER,
    )
    shift_id = response.json()["id"]

    response = await client.post(
        f"/staff/shifts/{shift_id}/applications", json={"workerRole": "server"}, headers=WAITER
    )
    assert response.status_code == 201
    application = response.json()
    assert (application["status"], application["userId"]) == ("applied", 3)
    assert application["shift"]["id"] == shift_id

    response = await client.post(f"/staff/shifts/{shift_id}/applications", json={}, headers=WAITER)
    assert response.status_code == 400
    assert response.json()["details"] == ["You have already applied to this shift"]

    assert (await client.get("/staff/applications", headers=WAITER)).status_code == 403
    pending = (
        await client.get("/staff/applications", params={"status": "applied"}, headers=MANAGER)
    ).json()
    assert [a["id"] for a in pending] == [application["id"]]
    mine = (await client.get("/staff/me/applications", headers=WAITER)).json()
    assert [a["shift"]["shiftDate"] for a in mine] == [shift_day]

    response = await client.post(f"/staff/applications/{application['id']}/approve", headers=WAITER)
    assert response.status_code == 403

    # lee has no worker roles on file
    response = await client.post(f"/staff/applications/{application['id']}/approve", headers=MANAGER)
    assert response.status_code == 400
    assert response.json()["details"] == ["Staff member does not have the required 'server' role"]

    response = await client.post(f"/staff/applications/{application['id']}/withdraw", headers=WAITER)
    assert response.json()["status"] == "withdrawn"
    response = await client.post(f"/staff/shifts/{shift_id}/applications", json={}, headers=WAITER)
    assert response.json()["id"] == application["id"]

    response = await client.post(f"/staff/applications/{application['id']}/approve", headers=MANAGER)
    assert response.status_code == 201
    assert (response.json()["shiftId"], response.json()["userId"]) == (shift_id, 3)

    schedule = (
        await client.get("/staff/schedule", params={"start": shift_day, "end": shift_day}, headers=WAITER)
    ).json()
    assert (schedule["startDate"], schedule["endDate"]) == (shift_day, shift_day)
    [day] = schedule["days"]
    assert day["day"] == shift_day
    assert day["night"] is None
    assert day["earlyMorning"] is None
    evening = day["evening"]
    assert (evening["id"], evening["requiredStaff"], evening["assignedCount"]) == (shift_id, 2, 1)
    assert evening["staff"] == [{"userId": 3, "name": "Lee Chan", "workerRole": None}]

    response = await client.post("/staff/applications/99/decline", headers=MANAGER)
    assert response.status_code == 404


async def test_time_off_flow(client, db):
    start = date.today() + timedelta(days=3)
    response = await client.post(
        "/staff/time-off",
        json={"startDate": start.isoformat(), "endDate": (start - timedelta(days=1)).isoformat()},
        headers=WAITER,
    )
    assert response.status_code == 400
    assert response.json()["details"] == ["End date must not be before start date"]

    response = await client.post(
        "/staff/time-off",
        json={
            "startDate": start.isoformat(),
            "endDate": (start + timedelta(days=2)).isoformat(),
            "reason": "Family visit",
        },
        headers=WAITER,
    )
    assert response.status_code == 201
    request = response.json()
    assert (request["status"], request["userId"], request["managerId"]) == ("pending", 3, None)

    assert [r["id"] for r in (await client.get("/staff/time-off", headers=WAITER)).json()] == [request["id"]]
    assert (await client.get("/staff/time-off", headers=CUSTOMER)).status_code == 403

    response = await client.post(f"/staff/time-off/{request['id']}/approve", headers=WAITER)
    assert response.status_code == 403
    response = await client.post(f"/staff/time-off/{request['id']}/approve", headers=MANAGER)
    assert response.status_code == 200
    assert (response.json()["status"], response.json()["managerId"]) == ("approved", 4)

    members = (await client.get("/staff/members", headers=MANAGER)).json()
    assert {m["username"]: m["staffStatus"] for m in members}["lee"] == "unavailable"

    response = await client.delete(f"/staff/time-off/{request['id']}", headers=WAITER)
    assert response.status_code == 400
    assert response.json()["details"] == ["Only pending requests can be withdrawn"]

    response = await client.post(
        "/staff/time-off",
        json={"startDate": start.isoformat(), "endDate": start.isoformat()},
        headers=MANAGER,
    )
    second = response.json()
    approved = (
        await client.get("/staff/time-off", params={"status": "approved"}, headers=MANAGER)
    ).json()
    assert [r["id"] for r in approved] == [request["id"]]

    response = await client.delete(f"/staff/time-off/{second['id']}", headers=MANAGER)
    assert response.status_code == 204
    response = await client.post(f"/staff/time-off/{second['id']}/deny", headers=MANAGER)
    assert response.status_code == 404


async def test_analytics_endpoints(client, db, session_factory):
    async with session_factory() as session:
        item = await session.get(MenuItem, 1)
        session.add(make_order([(item, 2)], status=OrderStatus.SERVED, created_at=utcnow()))
        await session.commit()

    response = await client.get("/staff/analytics/revenue", params={"period": "today"}, headers=WAITER)
    assert response.status_code == 403

    response = await client.get(
        "/staff/analytics/revenue", params={"period": "today", "compare": "true"}, headers=MANAGER
    )
    assert response.status_code == 200
    report = response.json()
    assert report["period"] == "today"
    assert report["totalOrders"] == 1
    assert Decimal(report["totalRevenue"]) == Decimal("25.98")
    assert Decimal(report["averageOrderValue"]) == Decimal("25.98")
    assert report["peakDay"]["orders"] == 1
    assert report["previous"]["revenueGrowth"] is None

    response = await client.get("/staff/analytics/revenue", params={"period": "custom"}, headers=MANAGER)
    assert response.status_code == 400
    assert response.json()["details"] == ["Custom period requires both start and end dates"]

    response = await client.get(
        "/staff/analytics/menu-performance", params={"period": "today"}, headers=MANAGER
    )
    assert response.status_code == 200
    performance = response.json()
    assert performance["totalItemsSold"] == 2
    [entry] = performance["items"]
    assert (entry["name"], entry["category"], entry["quantitySold"]) == ("Har Gow", "Dumplings", 2)
    assert [c["category"] for c in performance["categories"]] == ["Dumplings"]


async def test_metrics_endpoint(client, db):
    await client.get("/menu")
    response = await client.get("/metrics/")
    assert response.status_code == 200
    assert "http_requests_total" in response.text
