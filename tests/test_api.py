"""Tests for the HTTP routes of the relay."""

import json
import re

from sqlalchemy import text

from tests.conftest import INDEX_HTML, sample_order


class TestHealth:

    def test_health_is_plain_ok(self, client):
        res = client.get("/health")
        assert res.status_code == 200
        assert res.text == "OK"
        assert res.headers["content-type"].startswith("text/plain")


class TestFloorPlan:

    def test_default_floor_plan(self, client):
        res = client.get("/api/floor-plan")
        assert res.status_code == 200
        data = res.json()
        assert data["sections"] == [{"id": "sec-1", "name": "Main Hall", "isActive": True}]
        tables = {t["id"]: t for t in data["tables"]}
        assert set(tables) == {"tab-1", "tab-2"}
        assert tables["tab-1"]["sectionId"] == "sec-1"
        assert tables["tab-1"]["tableNumber"] == "1"
        assert tables["tab-1"]["capacity"] == 4
        assert tables["tab-1"]["status"] == "available"
        assert tables["tab-1"]["qrCodeUrl"] is None

    def test_create_section(self, client):
        res = client.post("/api/sections", json={"id": "sec-2", "name": "Patio"})
        assert res.status_code == 200
        assert res.json() == {"id": "sec-2", "name": "Patio", "isActive": True}

        sections = client.get("/api/floor-plan").json()["sections"]
        assert [s["id"] for s in sections] == ["sec-1", "sec-2"]

    def test_duplicate_section_rejected_without_side_effects(self, client):
        res = client.post("/api/sections", json={"id": "sec-1", "name": "Imposter"})
        assert res.status_code == 409
        assert res.json()["success"] is False

        sections = client.get("/api/floor-plan").json()["sections"]
        assert sections == [{"id": "sec-1", "name": "Main Hall", "isActive": True}]

        # The store keeps working afterwards
        assert client.post("/api/sections", json={"id": "sec-2", "name": "Patio"}).status_code == 200

    def test_malformed_section_rejected(self, client):
        res = client.post("/api/sections", json={"name": "No id"})
        assert res.status_code == 400
        assert "id" in res.json()["detail"]

    def test_created_table_visible_in_next_read(self, client):
        res = client.post("/api/tables", json={
            "id": "tab-3",
            "sectionId": "sec-1",
            "tableNumber": "3",
            "capacity": 6,
            "status": "cleaning",
        })
        assert res.status_code == 200
        assert res.json()["qrCodeUrl"] is None

        tables = {t["id"]: t for t in client.get("/api/floor-plan").json()["tables"]}
        assert tables["tab-3"]["status"] == "cleaning"
        assert tables["tab-3"]["capacity"] == 6

    def test_table_requires_status(self, client):
        res = client.post("/api/tables", json={
            "id": "tab-3",
            "sectionId": "sec-1",
            "tableNumber": "3",
            "capacity": 6,
        })
        assert res.status_code == 400

    def test_duplicate_table_rejected(self, client):
        res = client.post("/api/tables", json={
            "id": "tab-1",
            "sectionId": "sec-1",
            "tableNumber": "9",
            "capacity": 2,
            "status": "available",
        })
        assert res.status_code == 409

    def test_store_failure_on_create(self, client):
        async def drop_sections():
            async with client.app.state.store.engine.begin() as conn:
                await conn.execute(text("DROP TABLE sections"))

        client.portal.call(drop_sections)

        res = client.post("/api/sections", json={"id": "sec-2", "name": "Patio"})
        assert res.status_code == 503
        assert res.json()["success"] is False


class TestOrders:

    def test_submit_order(self, client):
        res = client.post("/api/order", json=sample_order())
        assert res.status_code == 200
        data = res.json()
        assert data["success"] is True
        assert data["message"] == "Order placed"
        assert re.match(r"^ord-\d+$", data["orderId"])

        orders = client.get("/api/orders").json()
        assert len(orders) == 1
        assert orders[0]["id"] == data["orderId"]
        assert orders[0]["tableId"] == "tab-1"
        assert orders[0]["status"] == "pending"
        assert json.loads(orders[0]["items"]) == [{"name": "X", "qty": 1}]

    def test_invalid_json_rejected(self, client):
        res = client.post(
            "/api/order",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert res.status_code == 400
        assert res.text == "Invalid Request"
        assert client.get("/api/orders").json() == []

    def test_empty_body_rejected(self, client):
        res = client.post("/api/order")
        assert res.status_code == 400

    def test_order_without_table_rejected(self, client):
        payload = sample_order()
        del payload["tableId"]

        res = client.post("/api/order", json=payload)
        assert res.status_code == 400
        assert client.get("/api/orders").json() == []

    def test_rejected_order_is_not_broadcast(self, client):
        client.post("/api/order", json={"items": []})

        assert client.get("/api/relay/stats").json()["messagesPublished"] == 0

    def test_rapid_orders_get_distinct_ids(self, client):
        ids = [client.post("/api/order", json=sample_order()).json()["orderId"] for _ in range(10)]
        assert len(set(ids)) == 10

    def test_store_failure_rejected_without_broadcast(self, client):
        async def drop_orders():
            async with client.app.state.store.engine.begin() as conn:
                await conn.execute(text("DROP TABLE orders"))

        client.portal.call(drop_orders)

        res = client.post("/api/order", json=sample_order())
        assert res.status_code == 400
        assert res.text == "Invalid Request"
        assert client.get("/api/relay/stats").json()["messagesPublished"] == 0


class TestMenuSync:

    def test_menu_acknowledged(self, client):
        res = client.post("/api/menu", json=[{"id": "m1", "name": "Idli"}, {"id": "m2", "name": "Vada"}])
        assert res.status_code == 200
        assert res.json() == {"success": True}

    def test_menu_must_be_array(self, client):
        res = client.post("/api/menu", json={"id": "m1"})
        assert res.status_code == 400
        assert res.json()["success"] is False


class TestStaticAssets:

    def test_root_serves_index(self, client):
        res = client.get("/")
        assert res.status_code == 200
        assert res.text == INDEX_HTML

    def test_asset_by_path(self, client):
        res = client.get("/app.js")
        assert res.status_code == 200
        assert "pos" in res.text

    def test_missing_asset(self, client):
        res = client.get("/assets/missing.css")
        assert res.status_code == 404
        assert res.text == "Not Found"


def test_relay_stats(client):
    client.post("/api/order", json=sample_order())

    stats = client.get("/api/relay/stats").json()
    assert stats["topic"] == "pos-updates"
    assert stats["messagesPublished"] == 1
    assert stats["activeSubscribers"] == 0
