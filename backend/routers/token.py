from fastapi import APIRouter, Request

from config import VERIFY_TOKEN_RATE_LIMIT
from errors import API_TOKEN_INVALID, Unauthorized
from routers.auth import limiter
from schemas.auth import VerifyTokenRequest, VerifyTokenResponse
from services.auth import verify_api_token

router = APIRouter()


@router.post("/verify-token", response_model=VerifyTokenResponse)
@limiter.limit(VERIFY_TOKEN_RATE_LIMIT)
def verify_token(request: Request, payload: VerifyTokenRequest):
    """
    Let a kiosk check its configured API token before using it.

    Body: token (at least 32 characters)
    Returns: valid
    Raises: 401 if the token does not match

    Rate limit: 10 requests per minute per IP.
    """
    if not verify_api_token(payload.token):
        raise Unauthorized(API_TOKEN_INVALID)
    return {"valid": True}
