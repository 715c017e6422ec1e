"""Tests for health check API endpoints."""

from unittest.mock import patch

from flask import Flask
from flask.testing import FlaskClient


class TestHealthEndpoints:
    """Test health check endpoints for Kubernetes probes."""

    def test_readyz_when_ready(self, client: FlaskClient):
        response = client.get("/api/health/readyz")

        assert response.status_code == 200
        assert response.json["status"] == "ready"
        assert response.json["ready"] is True

    def test_readyz_when_shutting_down(self, app: Flask, client: FlaskClient):
        """Readiness drops once the shutdown sequence has started."""
        with app.app_context():
            coordinator = app.container.shutdown_coordinator()
            coordinator.shutdown()

        response = client.get("/api/health/readyz")

        assert response.status_code == 503
        assert response.json["status"] == "shutting down"
        assert response.json["ready"] is False

    def test_readyz_when_database_unreachable(self, client: FlaskClient):
        with patch("app.api.health.check_db_connection", return_value=False):
            response = client.get("/api/health/readyz")

        assert response.status_code == 503
        assert response.json["status"] == "database unavailable"

    def test_healthz_always_returns_200(self, app: Flask, client: FlaskClient):
        """Liveness stays up during shutdown so the pod is not killed early."""
        assert client.get("/api/health/healthz").status_code == 200

        with app.app_context():
            app.container.shutdown_coordinator().shutdown()

        response = client.get("/api/health/healthz")
        assert response.status_code == 200
        assert response.json["status"] == "alive"
