from datetime import datetime
from typing import Optional

from pydantic import field_validator

from config import SUGGESTIONS_MIN_QUERY_LENGTH
from schemas.common import CamelRequest, CamelResponse, sanitize_string

BORROWER_NAME_MAX_LENGTH = 100
RETURN_NOTE_MAX_LENGTH = 500


class ReturnLoanRequest(CamelRequest):
    return_note: Optional[str] = None

    @field_validator("return_note")
    @classmethod
    def clean_return_note(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_string(v, max_length=RETURN_NOTE_MAX_LENGTH, empty_to_none=True)


class LoanDevice(CamelResponse):
    id: str
    call_sign: str
    device_type: str


class ActiveLoanResponse(CamelResponse):
    id: str
    borrower_name: str
    borrowed_at: datetime
    device: LoanDevice


class ReturnLoanResponse(CamelResponse):
    id: str
    device_id: str
    borrower_name: str
    borrowed_at: datetime
    returned_at: Optional[datetime]
    return_note: Optional[str]


class BorrowerSuggestion(CamelResponse):
    name: str
    last_used: datetime


def clean_suggestion_query(query: str) -> str:
    """Trim and bound a suggestion query."""
    cleaned = sanitize_string(query, max_length=BORROWER_NAME_MAX_LENGTH)
    if len(cleaned) < SUGGESTIONS_MIN_QUERY_LENGTH:
        raise ValueError(
            f"Query must be at least {SUGGESTIONS_MIN_QUERY_LENGTH} characters long"
        )
    return cleaned
