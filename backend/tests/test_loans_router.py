"""Integration tests for the kiosk loan and borrower endpoints."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from errors import LOAN_ALREADY_RETURNED
from models.device import Device, DeviceStatus
from models.loan import Loan
from tests.conftest import create_device, create_loan


@pytest.mark.integration
class TestLoanEndpoints:
    def test_active_loans(self, kiosk_client: TestClient, device_on_loan: Device):
        response = kiosk_client.get("/api/loans/active")

        assert response.status_code == 200
        [loan] = response.json()
        assert loan["borrowerName"] == "Max Muster"
        assert loan["device"] == {
            "id": device_on_loan.id,
            "callSign": "F-02",
            "deviceType": "Handheld",
        }

    def test_return_loan(
        self, kiosk_client: TestClient, db_session: Session, device_on_loan: Device
    ):
        loan = db_session.query(Loan).one()

        response = kiosk_client.patch(
            f"/api/loans/{loan.id}/return", json={"returnNote": " all good "}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["returnNote"] == "all good"
        assert data["returnedAt"] is not None
        db_session.refresh(device_on_loan)
        assert device_on_loan.status == DeviceStatus.AVAILABLE
        assert kiosk_client.get("/api/loans/active").json() == []

    def test_return_twice(self, kiosk_client: TestClient, db_session: Session):
        device = create_device(db_session, "F-07")
        loan = create_loan(db_session, device, "Anna", returned_at=datetime(2026, 1, 2))

        response = kiosk_client.patch(f"/api/loans/{loan.id}/return", json={})

        assert response.status_code == 409
        assert response.json()["detail"] == LOAN_ALREADY_RETURNED

    def test_return_missing_loan(self, kiosk_client: TestClient):
        response = kiosk_client.patch("/api/loans/does-not-exist/return", json={})
        assert response.status_code == 404


@pytest.mark.integration
class TestBorrowerSuggestions:
    @pytest.fixture(autouse=True)
    def seed(self, db_session: Session):
        device = create_device(db_session, "F-01")
        create_loan(db_session, device, "Max Mustermann", borrowed_at=datetime(2026, 2, 1))
        create_loan(db_session, device, "Maxi Beispiel", borrowed_at=datetime(2026, 2, 2))

    def test_suggestions(self, kiosk_client: TestClient):
        response = kiosk_client.get("/api/borrowers/suggestions?q=max")

        assert response.status_code == 200
        assert [s["name"] for s in response.json()] == ["Maxi Beispiel", "Max Mustermann"]
        assert "lastUsed" in response.json()[0]

    def test_query_too_short(self, kiosk_client: TestClient):
        response = kiosk_client.get("/api/borrowers/suggestions?q=%20m%20")
        assert response.status_code == 400

    def test_percent_does_not_list_everyone(self, kiosk_client: TestClient):
        response = kiosk_client.get("/api/borrowers/suggestions?q=%25%25")
        assert response.json() == []

    def test_limit_bounds(self, kiosk_client: TestClient):
        assert kiosk_client.get("/api/borrowers/suggestions?q=max&limit=51").status_code == 422
        limited = kiosk_client.get("/api/borrowers/suggestions?q=max&limit=1")
        assert len(limited.json()) == 1
