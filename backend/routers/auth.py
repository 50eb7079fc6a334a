from typing import Iterator, Optional

import httpx
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from config import (
    CREDENTIALS_RATE_LIMIT,
    LOGIN_RATE_LIMIT,
    OIDC_HTTP_TIMEOUT_SECONDS,
    RATE_LIMIT_ENABLED,
)
from database import get_db
from errors import InvalidCredentials
from schemas.auth import (
    ChangeCredentialsRequest,
    ChangeCredentialsResponse,
    LoginRequest,
    SessionResponse,
)
from schemas.common import MessageResponse
from services.auth import (
    clear_session_cookie,
    create_session,
    destroy_session,
    get_session_info,
    get_session_state,
    get_session_store,
    set_session_cookie,
    validate_credentials,
)
from services.credentials_service import CredentialsService
from services.oidc_service import OIDCService
from services.session_store import SessionState, SessionStore

limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)
router = APIRouter()


def get_oidc_http_client() -> Iterator[httpx.Client]:
    """HTTP client for identity-provider calls, closed after the request."""
    with httpx.Client(timeout=OIDC_HTTP_TIMEOUT_SECONDS) as client:
        yield client


def get_oidc_service(
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    http_client: httpx.Client = Depends(get_oidc_http_client),
) -> OIDCService:
    return OIDCService(db, store, http_client)


@router.post("/login", response_model=SessionResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
def login(
    request: Request,
    response: Response,
    payload: LoginRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    session: SessionState = Depends(get_session_state),
):
    """
    Log in with username and password and start a new session.

    Body: username, password
    Returns: username, isValid
    Raises: 401 with one message for unknown user and wrong password alike

    Rate limit: 5 requests per 15 minutes per IP.
    """
    principal = validate_credentials(db, payload.username, payload.password)
    if principal is None:
        raise InvalidCredentials()

    fresh = create_session(store, session, principal)
    set_session_cookie(response, fresh.token)
    return {"username": principal.username, "isValid": True}


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    store: SessionStore = Depends(get_session_store),
    session: SessionState = Depends(get_session_state),
):
    """
    Destroy the current session and clear the cookie.

    Returns: success message
    Raises: 500 if the session could not be removed
    """
    destroy_session(store, session)
    clear_session_cookie(response)
    return {"message": "Logged out successfully"}


@router.get("/session", response_model=SessionResponse)
def session_info(session: SessionState = Depends(get_session_state)):
    """
    Report whether the current session belongs to an administrator.

    Returns: username, isValid
    Raises: 401 if there is no valid admin session
    """
    return get_session_info(session)


@router.patch("/credentials", response_model=ChangeCredentialsResponse)
@limiter.limit(CREDENTIALS_RATE_LIMIT)
def change_credentials(
    request: Request,
    payload: ChangeCredentialsRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    session: SessionState = Depends(get_session_state),
):
    """
    Change the administrator's username and/or password.

    Body: currentPassword, newUsername?, newPassword?
    Returns: message, username
    Raises: 401 if the current password is wrong, 409 if the username is taken

    Rate limit: 10 requests per minute per IP.
    """
    service = CredentialsService(db, store)
    return service.change_credentials(
        session=session,
        current_password=payload.current_password,
        new_username=payload.new_username,
        new_password=payload.new_password,
    )


@router.get("/oidc/login")
def oidc_login(
    returnTo: Optional[str] = Query(None),
    session: SessionState = Depends(get_session_state),
    service: OIDCService = Depends(get_oidc_service),
):
    """
    Redirect to the identity provider's authorization endpoint.

    Query: returnTo (path to open after login, defaults to /admin)
    Raises: 401 if the provider cannot be reached or is not configured
    """
    authorization_url = service.start_login(session, returnTo)

    redirect = RedirectResponse(authorization_url, status_code=302)
    set_session_cookie(redirect, session.token)
    return redirect


@router.get("/oidc/callback")
def oidc_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    session: SessionState = Depends(get_session_state),
    service: OIDCService = Depends(get_oidc_service),
):
    """
    Complete identity-provider login and redirect back into the app.

    Query: code, state
    Raises: 401 for any failure (bad state, failed exchange, incomplete profile)
    """
    fresh, redirect_url = service.complete_login(session, code, state)

    redirect = RedirectResponse(redirect_url, status_code=302)
    set_session_cookie(redirect, fresh.token)
    return redirect
