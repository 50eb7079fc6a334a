import base64
from dataclasses import dataclass
from functools import lru_cache
import hashlib
import logging
import secrets
from typing import Optional

import bcrypt
from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from config import (
    API_TOKEN,
    API_TOKEN_MIN_LENGTH,
    BCRYPT_ROUNDS,
    IS_PRODUCTION,
    SESSION_COOKIE_NAME,
    SESSION_TIMEOUT_HOURS,
)
from database import get_db
from errors import API_TOKEN_INVALID, API_TOKEN_MISSING, OperationFailed, Unauthorized
from models.admin import AdminUser
from services.session_store import SessionState, SessionStore

logger = logging.getLogger(__name__)

# Operations reachable without an admin session. Keyed by endpoint function name.
# The kiosk ones are gated by the API token instead.
PUBLIC_OPERATIONS = frozenset(
    {
        "login",
        "oidc_login",
        "oidc_callback",
        "setup_status",
        "setup_first_admin",
        "health_check",
        "verify_token",
        "list_public_devices",
        "borrower_suggestions",
        "list_active_loans",
        "return_loan",
    }
)


@dataclass(frozen=True)
class Principal:
    user_id: str
    username: str


def _bcrypt_input(password: str) -> bytes:
    """Return bytes safe to pass into bcrypt.

    bcrypt only considers the first 72 bytes of input; many implementations
    also error on longer inputs. To avoid surprising truncation and crashes,
    we pre-hash long passwords with SHA-256 (base64 encoded, so the
    input never contains NUL bytes).
    """
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > 72:
        return base64.b64encode(hashlib.sha256(password_bytes).digest())
    return password_bytes


def hash_password(password: str) -> str:
    """Hash a password using bcrypt with the configured cost factor."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(_bcrypt_input(password), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash. Never raises."""
    try:
        return bcrypt.checkpw(
            _bcrypt_input(plain_password),
            hashed_password.encode("utf-8"),
        )
    except (ValueError, TypeError, AttributeError):
        return False


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Hash compared against when a username does not exist.

    Same cost factor as real hashes, computed once per process.
    """
    return hash_password("radio-inventory-timing-equalizer")


def validate_credentials(db: Session, username: str, password: str) -> Optional[Principal]:
    """Return the principal for a matching username/password pair, else None.

    Exactly one bcrypt comparison runs whether or not the username exists,
    so an unknown user and a wrong password take the same time.
    """
    admin = db.query(AdminUser).filter(AdminUser.username == username).first()

    stored_hash = admin.password_hash if admin is not None and admin.password_hash else None
    password_ok = verify_password(password, stored_hash or dummy_password_hash())

    if admin is None or stored_hash is None or not password_ok:
        logger.info("auth: credential check failed")
        return None

    return Principal(user_id=admin.id, username=admin.username)


def _principal_from_session(session: SessionState) -> Optional[Principal]:
    user_id = session.get("user_id")
    if not isinstance(user_id, str) or not user_id.strip():
        return None
    if session.get("is_admin") is not True:
        return None
    return Principal(user_id=user_id, username=session.get("username") or "")


def authorize(session: SessionState, operation: Optional[str] = None) -> Optional[Principal]:
    """Gate an operation on the given session.

    Public operations return None without inspecting the session. Otherwise
    the session must carry a non-blank user_id and is_admin set to True; any
    other shape fails with the same Unauthorized message.
    """
    if operation is not None and operation in PUBLIC_OPERATIONS:
        return None

    principal = _principal_from_session(session)
    if principal is None:
        raise Unauthorized()
    return principal


def create_session(store: SessionStore, session: SessionState, principal: Principal) -> SessionState:
    """Log a principal in on a freshly regenerated session.

    The token is regenerated before any principal data is written, so an
    attacker-known token never becomes authenticated. Returns the new session;
    ``session`` is left untouched.
    """
    fresh = store.regenerate(session)

    fresh.data.update(
        {
            "user_id": principal.user_id,
            "username": principal.username,
            "is_admin": True,
        }
    )
    store.save(fresh)

    logger.info("auth: session created", extra={"username": principal.username})
    return fresh


def destroy_session(store: SessionStore, session: SessionState) -> None:
    store.destroy(session)


def get_session_info(session: SessionState) -> dict:
    principal = _principal_from_session(session)
    if principal is None:
        raise Unauthorized()
    return {"username": principal.username, "isValid": True}


# ============================================================================
# Cookie handling and FastAPI dependencies
# ============================================================================

def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=SESSION_TIMEOUT_HOURS * 3600,
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="strict",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="strict",
        path="/",
    )


def get_session_store(db: Session = Depends(get_db)) -> SessionStore:
    return SessionStore(db)


def get_session_state(
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
) -> SessionState:
    """Resolve the request's session cookie, refreshing it while it is valid."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    try:
        session = store.load(token)
    except Exception:
        logger.exception("session: load failed")
        raise OperationFailed()

    if session.token:
        set_session_cookie(response, session.token)
    elif token:
        clear_session_cookie(response)
    return session


def authorize_request(
    request: Request,
    session: SessionState = Depends(get_session_state),
) -> Optional[Principal]:
    """App-wide gate: every route passes through here."""
    endpoint = request.scope.get("endpoint")
    return authorize(session, getattr(endpoint, "__name__", None))


def get_current_admin(session: SessionState = Depends(get_session_state)) -> Principal:
    """Principal for the current request; 401 without an admin session."""
    return authorize(session)


# ============================================================================
# Kiosk API token
# ============================================================================

def verify_api_token(token: Optional[str], expected: str = API_TOKEN) -> bool:
    """Constant-time check of a presented token against the configured one.

    A configured token shorter than API_TOKEN_MIN_LENGTH matches nothing.
    """
    if not token or len(expected) < API_TOKEN_MIN_LENGTH:
        return False
    return secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))


def _token_from_header(header: Optional[str]) -> Optional[str]:
    """Accept both "Bearer <token>" and the bare token."""
    if not header or not header.strip():
        return None
    scheme, _, credentials = header.strip().partition(" ")
    if scheme.lower() == "bearer":
        return credentials.strip() or None
    return header.strip()


def require_api_token(request: Request) -> None:
    """Gate for kiosk routes: the Authorization header must carry the API token."""
    token = _token_from_header(request.headers.get("Authorization"))
    if token is None:
        raise Unauthorized(API_TOKEN_MISSING)
    if not verify_api_token(token):
        logger.warning("auth: invalid api token", extra={"path": request.url.path})
        raise Unauthorized(API_TOKEN_INVALID)
