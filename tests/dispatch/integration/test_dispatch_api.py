"""Integration tests for Dispatch API endpoints via TestClient."""

import pytest
from dispatch.api.errors import register_error_handlers
from dispatch.api.routes import delivery_router, driver_router
from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(delivery_router)
    app.include_router(driver_router)
    register_error_handlers(app)
    return TestClient(app)


def _create_delivery(client, count=3, **overrides):
    defaults = {
        "driver_id": "drv-api-001",
        "customer_id": "cust-api-001",
        "stops": [
            {
                "stop_type": "pickup" if i == 1 else "dropoff",
                "address": f"{i} Harbour Road",
                "latitude": 51.5,
                "longitude": -0.12,
                "contact_phone": "+44 20 7946 0000",
            }
            for i in range(1, count + 1)
        ],
    }
    defaults.update(overrides)
    response = client.post("/deliveries", json=defaults)
    assert response.status_code == 201
    return response.json()["delivery_id"]


def _stop_ids(client, delivery_id):
    return [s["stop_id"] for s in client.get(f"/deliveries/{delivery_id}/stops").json()]


class TestCreateDeliveryAPI:
    def test_create_returns_201(self, client):
        delivery_id = _create_delivery(client)
        response = client.get(f"/deliveries/{delivery_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "created"
        assert body["current_stop_index"] == 1
        assert body["total_stops"] == 3
        assert body["all_completed"] is False
        assert [s["stop_number"] for s in body["stops"]] == [1, 2, 3]
        assert body["stops"][0]["stop_type"] == "pickup"

    def test_empty_stops_rejected(self, client):
        response = client.post("/deliveries", json={"driver_id": "drv-api", "stops": []})
        assert response.status_code == 400

    def test_unknown_delivery_returns_404(self, client):
        response = client.get("/deliveries/does-not-exist")
        assert response.status_code == 404

    def test_driver_marked_busy(self, client):
        _create_delivery(client, driver_id="drv-api-busy")
        response = client.get("/drivers/drv-api-busy/availability")
        assert response.json() == {"driver_id": "drv-api-busy", "is_available": False}


class TestStopProgressAPI:
    def test_arrive_then_complete(self, client):
        delivery_id = _create_delivery(client)
        first = _stop_ids(client, delivery_id)[0]

        response = client.put(f"/deliveries/{delivery_id}/stops/{first}/arrive")
        assert response.status_code == 200
        assert response.json()["status"] == "arrived"

        response = client.put(
            f"/deliveries/{delivery_id}/stops/{first}/complete",
            json={"proof_photo_url": "https://cdn.example.com/proof.jpg"},
        )
        assert response.status_code == 200

        current = client.get(f"/deliveries/{delivery_id}/stops/current").json()
        assert current["stop_number"] == 2

    def test_full_route_delivers(self, client):
        delivery_id = _create_delivery(client, driver_id="drv-api-route")
        for stop_id in _stop_ids(client, delivery_id):
            response = client.put(f"/deliveries/{delivery_id}/stops/{stop_id}/complete", json={})
            assert response.status_code == 200

        body = client.get(f"/deliveries/{delivery_id}").json()
        assert body["status"] == "delivered"
        assert body["current_stop_index"] == 4
        assert body["all_completed"] is True
        assert client.get(f"/deliveries/{delivery_id}/stops/current").json() is None
        assert client.get("/drivers/drv-api-route/availability").json()["is_available"] is True

    def test_out_of_order_returns_409(self, client):
        delivery_id = _create_delivery(client)
        third = _stop_ids(client, delivery_id)[2]
        response = client.put(f"/deliveries/{delivery_id}/stops/{third}/arrive")
        assert response.status_code == 409
        assert "error" in response.json()

    def test_double_completion_returns_409(self, client):
        delivery_id = _create_delivery(client)
        first = _stop_ids(client, delivery_id)[0]
        assert client.put(f"/deliveries/{delivery_id}/stops/{first}/complete", json={}).status_code == 200
        response = client.put(f"/deliveries/{delivery_id}/stops/{first}/complete", json={})
        assert response.status_code == 409

    def test_fail_skips_stop(self, client):
        delivery_id = _create_delivery(client)
        first = _stop_ids(client, delivery_id)[0]
        response = client.put(
            f"/deliveries/{delivery_id}/stops/{first}/fail",
            json={"reason": "Recipient unreachable"},
        )
        assert response.status_code == 200
        remaining = client.get(f"/deliveries/{delivery_id}/stops/remaining").json()
        assert [s["stop_number"] for s in remaining] == [2, 3]

    def test_unknown_stop_returns_404(self, client):
        delivery_id = _create_delivery(client)
        response = client.put(f"/deliveries/{delivery_id}/stops/not-a-stop/arrive")
        assert response.status_code == 404


class TestCorrectionAndReorderAPI:
    def test_patch_fills_signature(self, client):
        delivery_id = _create_delivery(client)
        first = _stop_ids(client, delivery_id)[0]
        client.put(f"/deliveries/{delivery_id}/stops/{first}/complete", json={})
        response = client.patch(
            f"/deliveries/{delivery_id}/stops/{first}",
            json={"signature_url": "https://cdn.example.com/sig.png"},
        )
        assert response.status_code == 200
        stop = client.get(f"/deliveries/{delivery_id}/stops").json()[0]
        assert stop["signature_url"] == "https://cdn.example.com/sig.png"

    def test_patch_rewind_returns_409(self, client):
        delivery_id = _create_delivery(client)
        first = _stop_ids(client, delivery_id)[0]
        client.put(f"/deliveries/{delivery_id}/stops/{first}/complete", json={})
        response = client.patch(f"/deliveries/{delivery_id}/stops/{first}", json={"status": "pending"})
        assert response.status_code == 409

    def test_reorder(self, client):
        delivery_id = _create_delivery(client)
        stop_ids = _stop_ids(client, delivery_id)
        new_order = list(reversed(stop_ids))
        response = client.put(f"/deliveries/{delivery_id}/stops/order", json={"stop_ids": new_order})
        assert response.status_code == 200
        assert _stop_ids(client, delivery_id) == new_order

    def test_reorder_incomplete_list_returns_400(self, client):
        delivery_id = _create_delivery(client)
        stop_ids = _stop_ids(client, delivery_id)
        response = client.put(f"/deliveries/{delivery_id}/stops/order", json={"stop_ids": stop_ids[:2]})
        assert response.status_code == 400


class TestProgressAPI:
    def test_progress_from_projection(self, client):
        delivery_id = _create_delivery(client, count=4)
        stop_ids = _stop_ids(client, delivery_id)
        client.put(f"/deliveries/{delivery_id}/stops/{stop_ids[0]}/complete", json={})
        client.put(f"/deliveries/{delivery_id}/stops/{stop_ids[1]}/fail", json={"reason": "Closed"})

        body = client.get(f"/deliveries/{delivery_id}/progress").json()
        assert body["status"] == "in_transit"
        assert body["current_stop_index"] == 3
        assert body["completed_stops"] == 1
        assert body["failed_stops"] == 1
        assert body["progress"] == 25.0


class TestDriverAvailabilityAPI:
    def test_set_and_read(self, client):
        response = client.put("/drivers/drv-api-toggle/availability", json={"is_available": False})
        assert response.status_code == 200
        assert response.json()["is_available"] is False
        assert client.get("/drivers/drv-api-toggle/availability").json()["is_available"] is False

    def test_unknown_driver_available(self, client):
        assert client.get("/drivers/drv-api-ghost/availability").json()["is_available"] is True
