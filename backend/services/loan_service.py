"""Return path for loans.

Loan origination lives outside this service. Returning a loan closes it and
releases the device in the same transaction, so a device is ON_LOAN exactly
while it has one open loan.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session, contains_eager

from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, MAX_SKIP
from database import transaction, utcnow
from errors import (
    DEVICE_STATUS_CHANGED,
    LOAN_ALREADY_RETURNED,
    LOAN_NOT_FOUND,
    Conflict,
    NotFound,
)
from models.device import Device, DeviceStatus
from models.loan import Loan

logger = logging.getLogger(__name__)


class LoanService:
    def __init__(self, db: Session):
        self.db = db

    def list_active(self, take: Optional[int] = None, skip: Optional[int] = None) -> list[Loan]:
        limit = DEFAULT_PAGE_SIZE if take is None or take < 1 else min(take, MAX_PAGE_SIZE)
        offset = min(max(0, skip or 0), MAX_SKIP)
        return (
            self.db.query(Loan)
            .join(Loan.device)
            .options(contains_eager(Loan.device))
            .filter(Loan.returned_at.is_(None))
            .order_by(Loan.borrowed_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def return_loan(self, loan_id: str, return_note: Optional[str] = None) -> Loan:
        """
        Close an open loan and set its device back to AVAILABLE.

        Raises: NotFound if the loan does not exist, Conflict if it was already
        returned or the device is no longer ON_LOAN
        """
        with transaction(self.db, not_found_message=LOAN_NOT_FOUND):
            loan = (
                self.db.query(Loan)
                .filter(Loan.id == loan_id)
                .with_for_update()
                .first()
            )
            if loan is None:
                raise NotFound(LOAN_NOT_FOUND)
            if loan.returned_at is not None:
                raise Conflict(LOAN_ALREADY_RETURNED)

            # Conditional write: only a device still on loan is released
            released = (
                self.db.query(Device)
                .filter(Device.id == loan.device_id, Device.status == DeviceStatus.ON_LOAN)
                .update(
                    {Device.status: DeviceStatus.AVAILABLE, Device.updated_at: utcnow()},
                    synchronize_session=False,
                )
            )
            if released == 0:
                raise Conflict(DEVICE_STATUS_CHANGED)

            loan.returned_at = utcnow()
            loan.return_note = return_note
            self.db.flush()

        self.db.refresh(loan)
        logger.info(
            "loans: returned",
            extra={"loan_id": loan_id, "device_id": loan.device_id},
        )
        return loan
