"""Integration tests for authentication endpoints."""

import httpx
import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from config import SESSION_COOKIE_NAME
from database import get_db
from errors import INVALID_CREDENTIALS, SESSION_INVALID
from models.admin import AdminUser
from models.session import AdminSession
from services.auth import get_session_store, verify_password
from services.oidc_service import OIDCService
from services.session_store import SessionStore
from tests.conftest import ADMIN_PASSWORD, ADMIN_USERNAME


# ============================================================================
# Login / Session / Logout
# ============================================================================

@pytest.mark.integration
class TestLoginEndpoint:
    """Test POST /api/admin/auth/login."""

    def test_login_success_sets_cookie(self, client: TestClient, test_admin: AdminUser):
        response = client.post(
            "/api/admin/auth/login",
            json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
        )

        assert response.status_code == 200
        assert response.json() == {"username": ADMIN_USERNAME, "isValid": True}

        set_cookie = response.headers["set-cookie"]
        assert f"{SESSION_COOKIE_NAME}=" in set_cookie
        assert "HttpOnly" in set_cookie
        assert "SameSite=strict" in set_cookie

    def test_username_is_case_insensitive(self, client: TestClient, test_admin: AdminUser):
        response = client.post(
            "/api/admin/auth/login",
            json={"username": "  ADMIN ", "password": ADMIN_PASSWORD},
        )
        assert response.status_code == 200

    def test_unknown_user_and_wrong_password_look_identical(
        self, client: TestClient, test_admin: AdminUser
    ):
        unknown = client.post(
            "/api/admin/auth/login",
            json={"username": "nobody", "password": ADMIN_PASSWORD},
        )
        wrong = client.post(
            "/api/admin/auth/login",
            json={"username": ADMIN_USERNAME, "password": "WrongPass123"},
        )

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()
        assert unknown.json()["detail"] == INVALID_CREDENTIALS

    def test_failed_login_creates_no_session(
        self, client: TestClient, db_session: Session, test_admin: AdminUser
    ):
        client.post(
            "/api/admin/auth/login",
            json={"username": ADMIN_USERNAME, "password": "WrongPass123"},
        )
        assert db_session.query(AdminSession).count() == 0

    def test_login_replaces_existing_session_token(
        self, admin_client: TestClient, db_session: Session
    ):
        first_token = admin_client.cookies.get(SESSION_COOKIE_NAME)

        response = admin_client.post(
            "/api/admin/auth/login",
            json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
        )

        assert response.status_code == 200
        assert admin_client.cookies.get(SESSION_COOKIE_NAME) != first_token
        assert db_session.query(AdminSession).count() == 1


@pytest.mark.integration
def test_login_session_logout_flow(client: TestClient, test_admin: AdminUser):
    """login -> session valid -> logout -> admin routes refuse the old cookie."""
    login = client.post(
        "/api/admin/auth/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert login.status_code == 200
    old_token = client.cookies.get(SESSION_COOKIE_NAME)

    session = client.get("/api/admin/auth/session")
    assert session.status_code == 200
    assert session.json() == {"username": ADMIN_USERNAME, "isValid": True}

    logout = client.post("/api/admin/auth/logout")
    assert logout.status_code == 200
    assert logout.json() == {"message": "Logged out successfully"}

    assert client.get("/api/admin/auth/session").status_code == 401

    # Replaying the old cookie does not help either
    client.cookies.set(SESSION_COOKIE_NAME, old_token)
    replay = client.get("/api/admin/devices")
    assert replay.status_code == 401
    assert replay.json() == {"detail": SESSION_INVALID, "kind": "unauthorized"}


@pytest.mark.integration
class TestSessionGate:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/admin/devices"),
            ("get", "/api/admin/auth/session"),
            ("post", "/api/admin/auth/logout"),
            ("get", "/api/admin/history/dashboard"),
            ("get", "/api/admin/history/history"),
        ],
    )
    def test_admin_routes_require_session(self, client: TestClient, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401
        assert response.json()["detail"] == SESSION_INVALID

    def test_forged_cookie_is_rejected(self, client: TestClient):
        client.cookies.set(SESSION_COOKIE_NAME, "forged-token")
        response = client.get("/api/admin/devices")
        assert response.status_code == 401

    @pytest.mark.parametrize("path", ["/api/health", "/api/setup/status"])
    def test_public_routes(self, client: TestClient, path):
        assert client.get(path).status_code == 200

    def test_unauthorized_request_never_hits_devices(
        self, client: TestClient, db_session: Session
    ):
        response = client.post(
            "/api/admin/devices", json={"callSign": "F-99", "deviceType": "Handheld"}
        )
        assert response.status_code == 401
        assert db_session.query(AdminSession).count() == 0


# ============================================================================
# Change Credentials
# ============================================================================

@pytest.mark.integration
class TestChangeCredentialsEndpoint:
    """Test PATCH /api/admin/auth/credentials."""

    def test_change_password(
        self, admin_client: TestClient, db_session: Session, test_admin: AdminUser
    ):
        response = admin_client.patch(
            "/api/admin/auth/credentials",
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": "BrandNew456"},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Credentials updated", "username": ADMIN_USERNAME}
        db_session.refresh(test_admin)
        assert verify_password("BrandNew456", test_admin.password_hash)

    def test_change_username_updates_session(self, admin_client: TestClient):
        response = admin_client.patch(
            "/api/admin/auth/credentials",
            json={"currentPassword": ADMIN_PASSWORD, "newUsername": "Operator"},
        )

        assert response.status_code == 200
        assert response.json()["username"] == "operator"
        assert admin_client.get("/api/admin/auth/session").json()["username"] == "operator"

    def test_wrong_current_password(self, admin_client: TestClient):
        response = admin_client.patch(
            "/api/admin/auth/credentials",
            json={"currentPassword": "WrongPass123", "newPassword": "BrandNew456"},
        )
        assert response.status_code == 401

    def test_taken_username(self, admin_client: TestClient, db_session: Session):
        db_session.add(AdminUser(username="other", password_hash=None))
        db_session.commit()

        response = admin_client.patch(
            "/api/admin/auth/credentials",
            json={"currentPassword": ADMIN_PASSWORD, "newUsername": "other"},
        )
        assert response.status_code == 409

    def test_no_changes_rejected(self, admin_client: TestClient):
        response = admin_client.patch(
            "/api/admin/auth/credentials",
            json={"currentPassword": ADMIN_PASSWORD},
        )
        assert response.status_code == 422

    def test_requires_session(self, client: TestClient, test_admin: AdminUser):
        response = client.patch(
            "/api/admin/auth/credentials",
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": "BrandNew456"},
        )
        assert response.status_code == 401


# ============================================================================
# OIDC Endpoints
# ============================================================================

def _provider_client(profile: dict) -> httpx.Client:
    issuer = "https://id.example.org"

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/.well-known/openid-configuration":
            return httpx.Response(
                200,
                json={
                    "authorization_endpoint": f"{issuer}/authorize",
                    "token_endpoint": f"{issuer}/token",
                    "userinfo_endpoint": f"{issuer}/userinfo",
                },
            )
        if request.url.path == "/token":
            return httpx.Response(200, json={"access_token": "abc"})
        if request.url.path == "/userinfo":
            return httpx.Response(200, json=profile)
        return httpx.Response(404)

    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def oidc_client(client: TestClient) -> TestClient:
    """Client whose identity-provider calls go to an in-process fake."""
    from main import app
    from routers.auth import get_oidc_service

    def override(
        db: Session = Depends(get_db),
        store: SessionStore = Depends(get_session_store),
    ):
        with _provider_client({"sub": "sub-42", "preferred_username": "jdoe"}) as http:
            yield OIDCService(
                db,
                store,
                http,
                issuer_url="https://id.example.org",
                client_id="inventory",
                client_secret="s3cret",
            )

    app.dependency_overrides[get_oidc_service] = override
    return client


@pytest.mark.integration
class TestOIDCEndpoints:
    def test_full_redirect_flow(self, oidc_client: TestClient, db_session: Session):
        start = oidc_client.get(
            "/api/admin/auth/oidc/login?returnTo=/admin/history", follow_redirects=False
        )
        assert start.status_code == 302
        location = httpx.URL(start.headers["location"])
        assert location.host == "id.example.org"
        state = location.params["state"]

        callback = oidc_client.get(
            f"/api/admin/auth/oidc/callback?code=xyz&state={state}", follow_redirects=False
        )
        assert callback.status_code == 302
        assert callback.headers["location"].endswith("/admin/history")

        session = oidc_client.get("/api/admin/auth/session")
        assert session.json() == {"username": "jdoe", "isValid": True}
        assert db_session.query(AdminUser).filter(AdminUser.external_subject == "sub-42").count() == 1

    def test_callback_with_wrong_state(self, oidc_client: TestClient):
        oidc_client.get("/api/admin/auth/oidc/login", follow_redirects=False)

        response = oidc_client.get(
            "/api/admin/auth/oidc/callback?code=xyz&state=wrong", follow_redirects=False
        )

        assert response.status_code == 401
        assert response.json()["detail"] == INVALID_CREDENTIALS
        assert oidc_client.get("/api/admin/auth/session").status_code == 401

    def test_unconfigured_provider(self, client: TestClient):
        response = client.get("/api/admin/auth/oidc/login", follow_redirects=False)
        assert response.status_code == 401
