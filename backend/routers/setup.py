from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from config import SETUP_RATE_LIMIT
from database import get_db
from routers.auth import limiter
from schemas.auth import SessionResponse, SetupRequest, SetupStatusResponse
from services.auth import get_session_state, get_session_store, set_session_cookie
from services.session_store import SessionState, SessionStore
from services.setup_service import SetupService

router = APIRouter()


@router.get("/status", response_model=SetupStatusResponse)
def setup_status(
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Whether an administrator account exists yet."""
    return {"isSetupComplete": SetupService(db, store).is_setup_complete()}


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(SETUP_RATE_LIMIT)
def setup_first_admin(
    request: Request,
    response: Response,
    payload: SetupRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    session: SessionState = Depends(get_session_state),
):
    """
    Create the first administrator and log them in.

    Body: username, password
    Returns: username, isValid
    Raises: 409 once an administrator exists

    Rate limit: 5 requests per 15 minutes per IP.
    """
    fresh = SetupService(db, store).create_first_admin(
        session=session,
        username=payload.username,
        password=payload.password,
    )
    set_session_cookie(response, fresh.token)
    return {"username": fresh.data["username"], "isValid": True}
