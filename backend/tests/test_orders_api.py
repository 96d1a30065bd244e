"""
API Tests — Orders router (envelope, status codes, filters, approval).
"""

import uuid

import pytest


def _payload(seeded_db, qty=10, **extra):
    body = {
        "customer_id": str(seeded_db["customer"].customer_id),
        "items": [{"product_id": str(seeded_db["widget"].product_id), "quantity": qty}],
    }
    body.update(extra)
    return body


@pytest.mark.asyncio
class TestOrdersAPI:
    async def test_create_returns_201_envelope(self, client, seeded_db):
        response = await client.post(
            "/api/v1/orders",
            json=_payload(seeded_db, promotion_id=str(seeded_db["ten_off"].promotion_id)),
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Order created successfully"
        order = body["data"]
        assert order["order_number"] == "ORD-00001"
        assert order["total_amount"] == 900.0
        assert order["discount_amount"] == 100.0
        assert order["customer"]["code"] == "CUST-1"
        assert order["promotion_applied"]["promotion_code"] == "TENOFF"
        assert len(order["items"]) == 1

    async def test_upsert_by_id_returns_200(self, client, seeded_db):
        created = (await client.post("/api/v1/orders", json=_payload(seeded_db, qty=1))).json()["data"]
        response = await client.post(
            "/api/v1/orders",
            json=_payload(seeded_db, qty=2, id=created["order_id"]),
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Order updated successfully"
        assert response.json()["data"]["order_number"] == created["order_number"]

    async def test_unknown_customer_is_404(self, client, seeded_db):
        body = _payload(seeded_db)
        body["customer_id"] = str(uuid.uuid4())
        response = await client.post("/api/v1/orders", json=body)
        assert response.status_code == 404
        assert response.json()["success"] is False
        assert response.json()["error"]["code"] == "customer_not_found"

    async def test_insufficient_stock_is_400(self, client, seeded_db):
        response = await client.post("/api/v1/orders", json=_payload(seeded_db, qty=500))
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "insufficient_inventory"
        assert "Available: 50" in response.json()["message"]

    async def test_zero_quantity_rejected_by_schema(self, client, seeded_db):
        response = await client.post("/api/v1/orders", json=_payload(seeded_db, qty=0))
        assert response.status_code == 422

    async def test_get_and_items(self, client, seeded_db):
        created = (await client.post("/api/v1/orders", json=_payload(seeded_db, qty=2))).json()["data"]

        response = await client.get(f"/api/v1/orders/{created['order_id']}")
        assert response.status_code == 200
        assert response.json()["data"]["order_id"] == created["order_id"]

        items = await client.get(f"/api/v1/orders/{created['order_id']}/items")
        assert items.status_code == 200
        assert items.json()["data"][0]["quantity"] == 2

    async def test_get_unknown_is_404(self, client, seeded_db):
        response = await client.get(f"/api/v1/orders/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["message"] == "Order not found"

    async def test_list_with_pagination_and_stats(self, client, seeded_db):
        for _ in range(3):
            await client.post("/api/v1/orders", json=_payload(seeded_db, qty=1))

        response = await client.get("/api/v1/orders", params={"page": 1, "limit": 2})
        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 2
        assert body["pagination"]["total_count"] == 3
        assert body["pagination"]["total_pages"] == 2
        assert body["pagination"]["has_next"] is True
        assert body["stats"]["total_orders"] == 3
        assert body["stats"]["active_orders"] == 3

    async def test_list_route_filter_adds_route_stats(self, client, seeded_db):
        await client.post("/api/v1/orders", json=_payload(seeded_db, qty=2))
        response = await client.get(
            "/api/v1/orders", params={"route_id": str(seeded_db["route"].route_id)}
        )
        stats = response.json()["stats"]
        assert stats["route_statistics"]["customers_in_routes"] == 1
        assert stats["route_statistics"]["total_order_value"] == 200.0

    async def test_list_rejects_bad_is_active(self, client, seeded_db):
        response = await client.get("/api/v1/orders", params={"is_active": "maybe"})
        assert response.status_code == 400

    async def test_update_and_delete(self, client, seeded_db):
        created = (await client.post("/api/v1/orders", json=_payload(seeded_db, qty=2))).json()["data"]

        updated = await client.put(
            f"/api/v1/orders/{created['order_id']}",
            json={"items": [{"product_id": str(seeded_db["widget"].product_id), "quantity": 3}]},
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["total_amount"] == 300.0

        deleted = await client.delete(f"/api/v1/orders/{created['order_id']}")
        assert deleted.status_code == 200
        assert deleted.json()["data"]["order_number"] == created["order_number"]
        assert (await client.get(f"/api/v1/orders/{created['order_id']}")).status_code == 404

    async def test_approve_then_conflict(self, client, seeded_db):
        created = (await client.post("/api/v1/orders", json=_payload(seeded_db, qty=1))).json()["data"]
        url = f"/api/v1/orders/{created['order_id']}/approve-or-reject"

        approved = await client.post(url, json={"action": "approved", "comments": "ok"})
        assert approved.status_code == 200
        assert approved.json()["message"] == "Order approved successfully"
        assert approved.json()["data"]["status"] == "confirmed"

        again = await client.post(url, json={"action": "rejected"})
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "invalid_state_transition"

    async def test_invalid_action_is_400(self, client, seeded_db):
        created = (await client.post("/api/v1/orders", json=_payload(seeded_db, qty=1))).json()["data"]
        response = await client.post(
            f"/api/v1/orders/{created['order_id']}/approve-or-reject", json={"action": "ship-it"}
        )
        assert response.status_code == 400

    async def test_missing_user_id_rejected(self, client, seeded_db, mock_user):
        mock_user.pop("user_id")
        response = await client.post("/api/v1/orders", json=_payload(seeded_db, qty=1))
        assert response.status_code == 400
        assert "user_id" in response.json()["message"]
