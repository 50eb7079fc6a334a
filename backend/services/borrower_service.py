"""Borrower name suggestions for the loan form. Advisory data only."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import SUGGESTIONS_DEFAULT_LIMIT, SUGGESTIONS_MAX_LIMIT
from models.loan import Loan

LIKE_ESCAPE = "\\"


def escape_like_wildcards(value: str) -> str:
    """Escape the escape character and the LIKE wildcards % and _."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class BorrowerService:
    def __init__(self, db: Session):
        self.db = db

    def find_suggestions(self, query: str, limit: int = SUGGESTIONS_DEFAULT_LIMIT) -> list[dict]:
        """Distinct borrower names containing ``query``, most recently active first."""
        limit = max(1, min(limit, SUGGESTIONS_MAX_LIMIT))
        pattern = f"%{escape_like_wildcards(query)}%"
        last_borrowed = func.max(Loan.borrowed_at).label("last_used")

        rows = (
            self.db.query(Loan.borrower_name, last_borrowed)
            .filter(Loan.borrower_name.ilike(pattern, escape=LIKE_ESCAPE))
            .group_by(Loan.borrower_name)
            .order_by(last_borrowed.desc())
            .limit(limit)
            .all()
        )
        return [{"name": row.borrower_name, "last_used": row.last_used} for row in rows]
