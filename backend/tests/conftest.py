"""Shared pytest fixtures for the inventory API tests.

Provides an in-memory database per test, admin users with real bcrypt
hashes, device/loan factories, and a FastAPI test client wired to the test
database.
"""

import os

# CRITICAL: configure the app BEFORE any imports that read config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["API_TOKEN"] = "kiosk-test-token-0123456789abcdef"

from datetime import datetime, timedelta
from typing import Generator, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from models import AdminSession, AdminUser, Device, DeviceStatus, Loan  # noqa: F401
from services.session_store import SessionStore


ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "AdminPass123"
API_TOKEN = os.environ["API_TOKEN"]


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def test_engine():
    """Fresh in-memory SQLite database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(test_engine) -> Generator[Session, None, None]:
    """Database session bound to the per-test engine."""
    session_factory = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)
    session = session_factory()

    yield session

    session.close()


@pytest.fixture
def mock_db_session() -> MagicMock:
    """Create a mocked database session for unit tests.

    Returns a MagicMock that can be configured to simulate database
    responses without touching a real database.
    """
    mock_session = MagicMock(spec=Session)

    mock_session.commit.return_value = None
    mock_session.rollback.return_value = None
    mock_session.add.return_value = None

    return mock_session


@pytest.fixture
def session_store(db_session: Session) -> SessionStore:
    return SessionStore(db_session)


@pytest.fixture(autouse=True)
def reset_setup_state():
    """Setup completion is cached per process; start every test fresh."""
    from services.setup_service import reset_setup_cache

    reset_setup_cache()
    yield
    reset_setup_cache()


# ============================================================================
# Admin, Device & Loan Fixtures
# ============================================================================

@pytest.fixture
def test_admin(db_session: Session) -> AdminUser:
    """Create the local administrator.

    Password: AdminPass123
    """
    from services.auth import hash_password

    admin = AdminUser(
        username=ADMIN_USERNAME,
        password_hash=hash_password(ADMIN_PASSWORD),  # Real bcrypt hash
    )
    db_session.add(admin)
    db_session.commit()
    db_session.refresh(admin)
    return admin


@pytest.fixture
def test_device(db_session: Session) -> Device:
    return create_device(db_session, "F-01", "Handheld")


@pytest.fixture
def device_on_loan(db_session: Session) -> Device:
    """A device with one open loan."""
    device = create_device(db_session, "F-02", "Handheld", status=DeviceStatus.ON_LOAN)
    create_loan(db_session, device, "Max Muster")
    return device


# ============================================================================
# FastAPI Test Client
# ============================================================================

@pytest.fixture
def client(db_session: Session) -> TestClient:
    """Create FastAPI test client with overridden database dependency.

    This client uses the test database session instead of the production one.
    """
    # Import app here to avoid loading it for unit tests
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    # Clean up
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client: TestClient, test_admin: AdminUser) -> TestClient:
    """Test client holding a logged-in admin session cookie."""
    response = client.post(
        "/api/admin/auth/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200, response.text
    return client


@pytest.fixture
def kiosk_client(client: TestClient) -> TestClient:
    """Test client sending the kiosk API token, without an admin session."""
    client.headers["Authorization"] = f"Bearer {API_TOKEN}"
    return client


# ============================================================================
# Helper Functions
# ============================================================================

def create_device(
    db: Session,
    call_sign: str,
    device_type: str = "Handheld",
    *,
    status: DeviceStatus = DeviceStatus.AVAILABLE,
    serial_number: Optional[str] = None,
) -> Device:
    """Insert a device directly, bypassing the service layer."""
    device = Device(
        call_sign=call_sign,
        device_type=device_type,
        serial_number=serial_number,
        status=status,
    )
    db.add(device)
    db.commit()
    db.refresh(device)
    return device


def create_loan(
    db: Session,
    device: Device,
    borrower_name: str,
    *,
    borrowed_at: Optional[datetime] = None,
    returned_at: Optional[datetime] = None,
) -> Loan:
    """Insert a loan directly, bypassing the service layer."""
    loan = Loan(
        device_id=device.id,
        borrower_name=borrower_name,
        borrowed_at=borrowed_at or datetime(2026, 1, 1, 12, 0, 0),
        returned_at=returned_at,
    )
    db.add(loan)
    db.commit()
    db.refresh(loan)
    return loan


def days_ago(days: int) -> datetime:
    return datetime(2026, 6, 1, 12, 0, 0) - timedelta(days=days)
