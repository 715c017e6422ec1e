"""Test technician limit API endpoints."""

import json

from flask.testing import FlaskClient
from sqlalchemy.orm import Session


def _post(client: FlaskClient, url: str, payload: dict):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


class TestTechnicianLimitsAPI:
    """Test cases for limit policies and limit checks."""

    def test_create_list_and_deactivate(self, client: FlaskClient, session: Session):
        response = _post(client, "/api/technician-limits", {
            "technician_id": "tech-1",
            "scope": "total",
            "max_value_per_day": "3000.00",
        })
        assert response.status_code == 201
        limit = response.get_json()
        assert limit["scope"] == "total"
        assert limit["target_id"] is None
        assert limit["max_value_per_day"] == "3000.00"
        assert limit["is_active"] is True

        _post(client, "/api/technician-limits", {"technician_id": "tech-2", "scope": "total"})

        response = client.get("/api/technician-limits?technician_id=tech-1")
        assert [lim["id"] for lim in response.get_json()] == [limit["id"]]

        response = _post(client, f"/api/technician-limits/{limit['id']}/deactivate", {})
        assert response.status_code == 200
        assert response.get_json()["is_active"] is False

        assert client.get("/api/technician-limits?technician_id=tech-1").get_json() == []
        response = client.get("/api/technician-limits?technician_id=tech-1&include_inactive=true")
        assert len(response.get_json()) == 1

    def test_scope_target_mismatch(self, client: FlaskClient):
        response = _post(client, "/api/technician-limits", {
            "technician_id": "tech-1",
            "scope": "category",
        })

        assert response.status_code == 400

    def test_deactivate_unknown(self, client: FlaskClient, session: Session):
        response = _post(client, "/api/technician-limits/9999/deactivate", {})

        assert response.status_code == 404

    def test_check_reports_violation(self, client: FlaskClient, session: Session):
        _post(client, "/api/technician-limits", {
            "technician_id": "tech-1",
            "scope": "total",
            "max_value_per_day": "3000.00",
        })

        response = _post(client, "/api/technician-limits/check", {
            "technician_id": "tech-1",
            "quantity": 1,
            "estimated_cost": "5000.00",
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data["outcome"] == "limit_exceeded"
        assert data["requires_approval"] is True
        assert len(data["violations"]) == 1
        violation = data["violations"][0]
        assert violation["ceiling"] == "daily_value"
        assert violation["limit_value"] == "3000.00"
        assert violation["attempted_value"] == "5000.00"

    def test_check_within_default_auto_approval(self, client: FlaskClient, session: Session):
        response = _post(client, "/api/technician-limits/check", {
            "technician_id": "tech-9",
            "quantity": 1,
            "estimated_cost": "120.00",
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data["outcome"] == "auto_approvable"
        assert data["violations"] == []
        assert data["applicable_limit_ids"] == []
