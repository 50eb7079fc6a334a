"""OpenID Connect login for administrators.

Authorization-code flow against the configured issuer: discovery document,
authorize redirect, code exchange, userinfo lookup. The external identity is
mapped onto an admin_users row and then logged in through the same
create_session path as local login. Every rejection surfaces as
InvalidCredentials; the internal reason is only logged.
"""

import logging
import secrets
from typing import Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from config import (
    OIDC_CALLBACK_URL,
    OIDC_CLIENT_ID,
    OIDC_CLIENT_SECRET,
    OIDC_HTTP_TIMEOUT_SECONDS,
    OIDC_ISSUER_URL,
    OIDC_SCOPE,
    PUBLIC_APP_URL,
)
from database import transaction
from errors import InvalidCredentials, InventoryError
from models.admin import AdminUser
from services.auth import Principal, create_session
from services.session_store import SessionState, SessionStore

logger = logging.getLogger(__name__)

DEFAULT_RETURN_PATH = "/admin"
DISPLAY_NAME_CLAIMS = ("preferred_username", "name", "email", "sub")
REQUIRED_ENDPOINTS = ("authorization_endpoint", "token_endpoint", "userinfo_endpoint")


def sanitize_return_to(path: Optional[str]) -> str:
    """Only same-origin absolute paths are allowed as post-login targets."""
    if not path or not path.startswith("/") or path.startswith("//"):
        return DEFAULT_RETURN_PATH
    return path


def build_frontend_redirect(path: str) -> str:
    return PUBLIC_APP_URL.rstrip("/") + sanitize_return_to(path)


def _display_name(profile: dict) -> Optional[str]:
    for claim in DISPLAY_NAME_CLAIMS:
        value = profile.get(claim)
        if isinstance(value, str) and value.strip():
            return value.strip()[:50]
    return None


class OIDCService:
    """Identity-provider bridge built on httpx."""

    def __init__(
        self,
        db: Session,
        store: SessionStore,
        http_client: Optional[httpx.Client] = None,
        *,
        issuer_url: str = OIDC_ISSUER_URL,
        client_id: str = OIDC_CLIENT_ID,
        client_secret: str = OIDC_CLIENT_SECRET,
        callback_url: str = OIDC_CALLBACK_URL,
        scope: str = OIDC_SCOPE,
    ):
        self.db = db
        self.store = store
        self.http = http_client or httpx.Client(timeout=OIDC_HTTP_TIMEOUT_SECONDS)
        self.issuer_url = issuer_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url
        self.scope = scope

    def get_openid_configuration(self) -> dict:
        """Fetch the discovery document and check the endpoints we rely on."""
        if not self.issuer_url or not self.client_id:
            raise ValueError("identity provider is not configured")

        response = self.http.get(f"{self.issuer_url}/.well-known/openid-configuration")
        response.raise_for_status()
        document = response.json()

        missing = [key for key in REQUIRED_ENDPOINTS if not document.get(key)]
        if missing:
            raise ValueError(f"discovery document lacks {', '.join(missing)}")
        return document

    def start_login(self, session: SessionState, return_to: Optional[str] = None) -> str:
        """Store a one-time state value in the session and return the authorize URL."""
        try:
            document = self.get_openid_configuration()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("oidc: discovery failed", extra={"error": str(exc)})
            raise InvalidCredentials()

        state = secrets.token_urlsafe(32)
        session.data["oidc_state"] = state
        session.data["return_to"] = sanitize_return_to(return_to)
        self.store.save(session)

        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "scope": self.scope,
            "state": state,
        }
        return f"{document['authorization_endpoint']}?{urlencode(params)}"

    def complete_login(
        self,
        session: SessionState,
        code: Optional[str],
        state: Optional[str],
    ) -> tuple[SessionState, str]:
        """
        Finish the authorization-code flow.

        Returns the new logged-in session and the frontend URL to redirect to.
        Raises: InvalidCredentials for every rejection
        """
        expected_state = session.data.pop("oidc_state", None)
        return_to = sanitize_return_to(session.data.pop("return_to", None))
        if session.token:
            # The state value is single use, even when the callback fails below
            self.store.save(session)

        if not code or not state or not expected_state:
            logger.warning("oidc: callback without code or state")
            raise InvalidCredentials()
        if not secrets.compare_digest(str(state), str(expected_state)):
            logger.warning("oidc: state mismatch")
            raise InvalidCredentials()

        try:
            document = self.get_openid_configuration()
            token_response = self.http.post(
                document["token_endpoint"],
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.callback_url,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                headers={"Accept": "application/json"},
            )
            token_response.raise_for_status()
            token_body = token_response.json()
            if not isinstance(token_body, dict):
                raise ValueError("token response is not a JSON object")
            access_token = token_body.get("access_token")
            if not access_token:
                raise ValueError("token response without access_token")

            userinfo_response = self.http.get(
                document["userinfo_endpoint"],
                headers={"Authorization": f"Bearer {access_token}"},
            )
            userinfo_response.raise_for_status()
            profile = userinfo_response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("oidc: code exchange failed", extra={"error": str(exc)})
            raise InvalidCredentials()

        if not isinstance(profile, dict):
            logger.warning("oidc: userinfo is not a JSON object")
            raise InvalidCredentials()
        display_name = _display_name(profile)
        if not display_name:
            logger.warning("oidc: profile lacks subject and display name")
            raise InvalidCredentials()
        # Without a subject the display name keys the federated account
        subject = profile.get("sub") or display_name

        principal = self._resolve_principal(str(subject), display_name)
        fresh = create_session(self.store, session, principal)
        logger.info("oidc: login complete", extra={"username": principal.username})
        return fresh, build_frontend_redirect(return_to)

    def _resolve_principal(self, subject: str, display_name: str) -> Principal:
        """Find or create the federated admin row for an external subject."""
        admin = (
            self.db.query(AdminUser)
            .filter(AdminUser.external_subject == subject)
            .first()
        )
        if admin is None:
            taken = (
                self.db.query(AdminUser.id)
                .filter(AdminUser.username == display_name)
                .first()
            )
            username = subject[:50] if taken else display_name
            try:
                with transaction(self.db):
                    admin = AdminUser(
                        username=username,
                        password_hash=None,
                        external_subject=subject,
                    )
                    self.db.add(admin)
            except InventoryError as exc:
                logger.warning("oidc: could not map identity", extra={"kind": exc.kind})
                raise InvalidCredentials()

        return Principal(user_id=admin.id, username=admin.username)
