"""Integration tests for the API-token gate in front of the kiosk endpoints."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from errors import API_TOKEN_INVALID, API_TOKEN_MISSING, SESSION_INVALID
from models.device import Device, DeviceStatus
from models.loan import Loan
from services.auth import PUBLIC_OPERATIONS, verify_api_token
from tests.conftest import API_TOKEN, create_device

KIOSK_ROUTES = [
    ("get", "/api/devices"),
    ("get", "/api/loans/active"),
    ("get", "/api/borrowers/suggestions?q=max"),
    ("patch", "/api/loans/does-not-exist/return"),
]


class TestVerifyApiToken:
    def test_matching_token(self):
        assert verify_api_token(API_TOKEN) is True

    @pytest.mark.parametrize("token", [None, "", API_TOKEN + "x", API_TOKEN[:-1], "ü" * 40])
    def test_mismatch(self, token):
        assert verify_api_token(token) is False

    def test_short_configured_token_matches_nothing(self):
        assert verify_api_token("short", expected="short") is False


@pytest.mark.integration
class TestKioskGate:
    @pytest.mark.parametrize("method,path", KIOSK_ROUTES)
    def test_missing_token(self, client: TestClient, method, path):
        response = getattr(client, method)(path)

        assert response.status_code == 401
        assert response.json() == {"detail": API_TOKEN_MISSING, "kind": "unauthorized"}

    @pytest.mark.parametrize("method,path", KIOSK_ROUTES)
    def test_wrong_token(self, client: TestClient, method, path):
        response = getattr(client, method)(
            path, headers={"Authorization": "Bearer " + "x" * 40}
        )

        assert response.status_code == 401
        assert response.json() == {"detail": API_TOKEN_INVALID, "kind": "unauthorized"}

    def test_bare_token_header_is_accepted(self, client: TestClient):
        response = client.get("/api/devices", headers={"Authorization": API_TOKEN})
        assert response.status_code == 200

    def test_admin_session_is_not_a_token(self, admin_client: TestClient):
        assert admin_client.get("/api/loans/active").status_code == 401

    def test_token_is_not_an_admin_session(self, kiosk_client: TestClient):
        response = kiosk_client.get("/api/admin/devices")

        assert response.status_code == 401
        assert response.json()["detail"] == SESSION_INVALID

    def test_rejected_return_leaves_loan_open(
        self, client: TestClient, db_session: Session, device_on_loan: Device
    ):
        loan = db_session.query(Loan).one()

        response = client.patch(f"/api/loans/{loan.id}/return", json={})

        assert response.status_code == 401
        db_session.refresh(loan)
        assert loan.returned_at is None


@pytest.mark.integration
class TestVerifyTokenEndpoint:
    def test_valid_token(self, client: TestClient):
        response = client.post("/api/auth/verify-token", json={"token": API_TOKEN})

        assert response.status_code == 200
        assert response.json() == {"valid": True}

    def test_invalid_token(self, client: TestClient):
        response = client.post("/api/auth/verify-token", json={"token": "y" * 32})

        assert response.status_code == 401
        assert response.json() == {"detail": API_TOKEN_INVALID, "kind": "unauthorized"}

    def test_short_token_is_rejected_before_comparison(self, client: TestClient):
        response = client.post("/api/auth/verify-token", json={"token": "short"})
        assert response.status_code == 422


@pytest.mark.integration
class TestPublicDevices:
    def test_lists_devices_in_admin_order(self, kiosk_client: TestClient, db_session: Session):
        create_device(db_session, "F-02")
        create_device(db_session, "F-01", status=DeviceStatus.DEFECT)

        response = kiosk_client.get("/api/devices")

        assert response.status_code == 200
        assert [d["callSign"] for d in response.json()] == ["F-02", "F-01"]

    def test_status_filter(self, kiosk_client: TestClient, db_session: Session):
        create_device(db_session, "F-02")
        create_device(db_session, "F-01", status=DeviceStatus.DEFECT)

        response = kiosk_client.get("/api/devices?status=AVAILABLE")

        assert [d["callSign"] for d in response.json()] == ["F-02"]


def test_public_operations_name_real_endpoints():
    from main import app

    endpoint_names = {route.endpoint.__name__ for route in app.routes if hasattr(route, "endpoint")}
    assert PUBLIC_OPERATIONS <= endpoint_names
