from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from schemas.loans import ActiveLoanResponse, ReturnLoanRequest, ReturnLoanResponse
from services.auth import require_api_token
from services.loan_service import LoanService

router = APIRouter(dependencies=[Depends(require_api_token)])


@router.get("/active", response_model=list[ActiveLoanResponse])
def list_active_loans(
    take: Optional[int] = Query(None),
    skip: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    """Open loans, newest first."""
    return LoanService(db).list_active(take=take, skip=skip)


@router.patch("/{loan_id}/return", response_model=ReturnLoanResponse)
def return_loan(
    loan_id: str,
    payload: ReturnLoanRequest,
    db: Session = Depends(get_db),
):
    """
    Close a loan and make its device available again.

    Body: returnNote?
    Raises: 404 if the loan does not exist, 409 if it was already returned
    """
    return LoanService(db).return_loan(loan_id, payload.return_note)
