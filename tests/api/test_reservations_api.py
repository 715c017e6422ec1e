"""Test stock reservation API endpoints."""

import json

import pytest
from flask.testing import FlaskClient
from sqlalchemy.orm import Session

from app.services.stock_service import StockService


def _post(client: FlaskClient, url: str, payload: dict | None = None):
    payload = payload if payload is not None else {}
    return client.post(url, data=json.dumps(payload), content_type="application/json")


@pytest.fixture
def approved_without_store(client: FlaskClient, session: Session, make_part, make_store):
    """An auto-approved request for 3 units with no store, plus a stocked store."""
    part = make_part(unit_price="100.00")
    store = make_store()
    StockService(session).add_stock(part.id, store.id, 4)
    session.commit()
    part_id, store_id = part.id, store.id

    created = _post(client, "/api/spare-part-requests", {
        "service_request_id": "SR-5",
        "part_id": part_id,
        "quantity": 3,
        "requested_by": "tech-1",
    }).get_json()
    assert created["reservation_pending"] is True
    return created["request"]["id"], part_id, store_id


class TestReservationsAPI:
    """Test cases for reserving and releasing stock."""

    def test_reserve_and_release(self, client: FlaskClient, approved_without_store):
        request_id, part_id, store_id = approved_without_store

        response = _post(client, f"/api/spare-part-requests/{request_id}/reservations", {
            "reserved_by": "storekeeper-1",
            "store_id": store_id,
            "ttl_seconds": 600,
        })
        assert response.status_code == 201
        reservation = response.get_json()
        assert reservation["quantity"] == 3
        assert reservation["expires_at"] == "2024-01-15T12:10:00"
        assert client.get(f"/api/stock/{part_id}/{store_id}").get_json()["available"] == 1

        response = _post(client, f"/api/reservations/{reservation['id']}/release")
        assert response.status_code == 200
        released = response.get_json()
        assert released["is_active"] is False
        assert released["release_reason"] == "manual"

        # Releasing again is a no-op
        response = _post(client, f"/api/reservations/{reservation['id']}/release", {"reason": "cancelled"})
        assert response.status_code == 200
        assert response.get_json()["release_reason"] == "manual"
        assert client.get(f"/api/stock/{part_id}/{store_id}").get_json()["available"] == 4

        history = client.get(f"/api/spare-part-requests/{request_id}/reservations").get_json()
        assert [r["id"] for r in history] == [reservation["id"]]

    def test_second_active_reservation_conflicts(self, client: FlaskClient, approved_without_store):
        request_id, _, store_id = approved_without_store
        url = f"/api/spare-part-requests/{request_id}/reservations"
        assert _post(client, url, {"reserved_by": "sk-1", "store_id": store_id}).status_code == 201

        response = _post(client, url, {"reserved_by": "sk-1", "store_id": store_id})

        assert response.status_code == 409
        assert response.get_json()["code"] == "RESOURCE_CONFLICT"

    def test_insufficient_stock(self, client: FlaskClient, session: Session, approved_without_store, make_store):
        request_id, _, _ = approved_without_store
        empty_store = make_store()
        session.commit()
        empty_store_id = empty_store.id

        response = _post(client, f"/api/spare-part-requests/{request_id}/reservations", {
            "reserved_by": "sk-1",
            "store_id": empty_store_id,
        })

        assert response.status_code == 409
        data = response.get_json()
        assert data["code"] == "STOCK_UNAVAILABLE"
        assert data["retryable"] is True

    def test_release_consumed_reason_is_rejected(self, client: FlaskClient, approved_without_store):
        request_id, _, store_id = approved_without_store
        reservation = _post(client, f"/api/spare-part-requests/{request_id}/reservations", {
            "reserved_by": "sk-1",
            "store_id": store_id,
        }).get_json()

        response = _post(client, f"/api/reservations/{reservation['id']}/release", {"reason": "consumed"})

        assert response.status_code == 409
        assert response.get_json()["code"] == "INVALID_OPERATION"

    def test_release_unknown(self, client: FlaskClient, session: Session):
        assert _post(client, "/api/reservations/9999/release").status_code == 404
