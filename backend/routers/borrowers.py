from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config import SUGGESTIONS_DEFAULT_LIMIT, SUGGESTIONS_MAX_LIMIT
from database import get_db
from errors import ValidationFailed
from schemas.loans import BorrowerSuggestion, clean_suggestion_query
from services.auth import require_api_token
from services.borrower_service import BorrowerService

router = APIRouter(dependencies=[Depends(require_api_token)])


@router.get("/suggestions", response_model=list[BorrowerSuggestion])
def borrower_suggestions(
    q: str = Query(...),
    limit: int = Query(SUGGESTIONS_DEFAULT_LIMIT, ge=1, le=SUGGESTIONS_MAX_LIMIT),
    db: Session = Depends(get_db),
):
    """
    Previously used borrower names containing q, most recent first.

    Query: q (2-100 characters), limit (default 10, max 50)
    """
    try:
        query = clean_suggestion_query(q)
    except ValueError as exc:
        raise ValidationFailed(str(exc))
    return BorrowerService(db).find_suggestions(query, limit)
