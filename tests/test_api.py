"""
Tests for the Service API
=========================

Exercises the FastAPI routes through the test client.
"""

from pterodactyl_service.api import status_code_for
from pterodactyl_service.errors import (
    NotFoundError,
    OutOfStockError,
    RemoteApiError,
    ServiceError,
    ValidationError,
)
from pterodactyl_service.models import OrderStatus, Price


OWNER = {"X-User-Id": "7"}


class TestHealth:
    """Health endpoint."""

    def test_health(self, test_client):
        response = test_client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["panel_configured"] is True
        assert data["sso_enabled"] is True
        assert data["service"] == "pterodactyl"
        assert data["metadata"]["display_name"] == "Pterodactyl"


class TestAuth:
    """Session and ownership checks."""

    def test_missing_session(self, test_client):
        response = test_client.post("/pterodactyl/42/renew", json={"frequency": 1})
        assert response.status_code == 401

    def test_bad_session_header(self, test_client):
        response = test_client.get("/pterodactyl/42/buttons", headers={"X-User-Id": "abc"})
        assert response.status_code == 401

    def test_other_users_order(self, test_client, billing):
        response = test_client.post(
            "/pterodactyl/42/renew", json={"frequency": 1}, headers={"X-User-Id": "8"}
        )
        assert response.status_code == 403
        assert billing.for_order(42) == []

    def test_unknown_order(self, test_client):
        response = test_client.get("/pterodactyl/404/buttons", headers=OWNER)
        assert response.status_code == 404


class TestRenew:
    """Renewal route."""

    def test_redirects_to_invoice(self, test_client, billing):
        response = test_client.post(
            "/pterodactyl/42/renew", json={"frequency": 3}, headers=OWNER, follow_redirects=False
        )

        assert response.status_code == 303
        payment = billing.for_order(42)[0]
        assert response.headers["location"] == f"/invoice/{payment.id}"
        assert payment.amount == 30

    def test_frequency_out_of_range(self, test_client, billing):
        response = test_client.post("/pterodactyl/42/renew", json={"frequency": 13}, headers=OWNER)
        assert response.status_code == 422
        assert response.json()["success"] is False
        assert response.json()["message"].startswith("frequency")
        assert billing.for_order(42) == []


class TestCancel:
    """Cancellation routes."""

    def test_cancel(self, test_client, store):
        response = test_client.post(
            "/pterodactyl/42/cancel-service",
            json={"cancelled_at": "2024-01-01", "cancel_reason": "done"},
            headers=OWNER,
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Your service was cancelled"
        assert store.get_order(42).status == OrderStatus.CANCELLED

    def test_cancel_with_fee_redirects(self, test_client, order):
        order.price = Price(renewal_price=10, period=30, cancellation_fee=500)

        response = test_client.post(
            "/pterodactyl/42/cancel-service",
            json={"cancelled_at": "2024-01-01", "gateway": "paypal"},
            headers=OWNER,
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["location"].endswith("?gateway=paypal")
        assert order.status == OrderStatus.ACTIVE

    def test_cancel_twice_conflicts(self, test_client):
        body = {"cancelled_at": "2024-01-01"}
        test_client.post("/pterodactyl/42/cancel-service", json=body, headers=OWNER)
        response = test_client.post("/pterodactyl/42/cancel-service", json=body, headers=OWNER)

        assert response.status_code == 409
        assert response.json()["success"] is False

    def test_missing_cancelled_at(self, test_client, order):
        response = test_client.post("/pterodactyl/42/cancel-service", json={}, headers=OWNER)

        assert response.status_code == 422
        assert set(response.json()) == {"success", "message"}
        assert "cancelled_at" in response.json()["message"]
        assert order.status == OrderStatus.ACTIVE

    def test_reason_too_long(self, test_client):
        response = test_client.post(
            "/pterodactyl/42/cancel-service",
            json={"cancelled_at": "2024-01-01", "cancel_reason": "x" * 256},
            headers=OWNER,
        )
        assert response.status_code == 422

    def test_undo_active_order_conflicts(self, test_client):
        response = test_client.post("/pterodactyl/42/cancel-undo", headers=OWNER)
        assert response.status_code == 409

    def test_undo(self, test_client, order):
        order.cancel("2024-01-01")
        response = test_client.post("/pterodactyl/42/cancel-undo", headers=OWNER)

        assert response.status_code == 200
        assert order.status == OrderStatus.ACTIVE


class TestPanelRoutes:
    """Login and buttons."""

    def test_login_redirects(self, test_client):
        response = test_client.get(
            "/pterodactyl/42/login-to-panel", headers=OWNER, follow_redirects=False
        )
        assert response.status_code == 307
        assert response.headers["location"] == "https://panel.test/sso/abc"

    def test_login_remote_failure(self, test_client, mock_client):
        mock_client.request_sso_url.side_effect = RemoteApiError(500, "boom")
        response = test_client.get("/pterodactyl/42/login-to-panel", headers=OWNER)

        assert response.status_code == 502
        assert response.json()["success"] is False

    def test_buttons(self, test_client):
        response = test_client.get("/pterodactyl/42/buttons", headers=OWNER)
        names = [b["name"] for b in response.json()["buttons"]]
        assert names == ["Login to Panel", "10.0.0.5:25565"]


class TestCheckoutConfig:
    """Checkout form route."""

    def test_fields(self, test_client):
        response = test_client.get("/pterodactyl/packages/3/checkout-config")

        assert response.status_code == 200
        fields = response.json()["fields"]
        assert fields[0]["key"] == "location"
        assert fields[0]["options"] == {"1": "Amsterdam (5 left)"}
        assert [f["key"] for f in fields[1:]] == ["PLAYERS", "SERVER_JARFILE", "PVP", "DIFFICULTY"]

    def test_unknown_package(self, test_client):
        response = test_client.get("/pterodactyl/packages/77/checkout-config")
        assert response.status_code == 404

    def test_broken_egg(self, test_client, package):
        package.data["egg"] = "{not json"
        response = test_client.get("/pterodactyl/packages/3/checkout-config")
        assert response.status_code == 422


class TestStatusCodes:
    """Failure to HTTP status mapping."""

    def test_mapping(self):
        assert status_code_for(ValidationError("x")) == 422
        assert status_code_for(OutOfStockError("x")) == 409
        assert status_code_for(NotFoundError("x")) == 404
        assert status_code_for(RemoteApiError(500, "x")) == 502
        assert status_code_for(ServiceError("x")) == 400
