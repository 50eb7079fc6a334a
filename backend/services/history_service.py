"""Dashboard counts and paginated loan history."""

import logging
import math
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session, contains_eager

from config import DASHBOARD_ACTIVE_LOANS_LIMIT
from database import transaction
from errors import (
    INVALID_DATE,
    INVALID_DATE_RANGE,
    INVALID_DEVICE_ID,
    INVALID_PAGINATION,
    ValidationFailed,
)
from models.device import Device, DeviceStatus
from models.loan import Loan
from schemas.history import HistoryFilters

logger = logging.getLogger(__name__)

_FIELD_MESSAGES = {
    "deviceId": INVALID_DEVICE_ID,
    "from": INVALID_DATE,
    "to": INVALID_DATE,
    "page": INVALID_PAGINATION,
    "pageSize": INVALID_PAGINATION,
}


def parse_history_filters(params: dict) -> HistoryFilters:
    """Validate raw history filters, reporting one fixed message per problem."""
    try:
        return HistoryFilters.model_validate(
            {key: value for key, value in params.items() if value is not None}
        )
    except ValidationError as exc:
        error = exc.errors()[0]
        field = error["loc"][0] if error["loc"] else None
        raise ValidationFailed(_FIELD_MESSAGES.get(field, INVALID_DATE_RANGE)) from None


class HistoryService:
    """Read-only aggregates over devices and loans."""

    def __init__(self, db: Session):
        self.db = db

    def get_dashboard_stats(self) -> dict:
        """Status counts plus the most recent open loans, read as one snapshot."""
        with transaction(self.db):
            counts = dict(
                self.db.query(Device.status, func.count(Device.id))
                .group_by(Device.status)
                .all()
            )
            active_loans = (
                self.db.query(Loan)
                .join(Loan.device)
                .options(contains_eager(Loan.device))
                .filter(Loan.returned_at.is_(None))
                .order_by(Loan.borrowed_at.desc())
                .limit(DASHBOARD_ACTIVE_LOANS_LIMIT)
                .all()
            )
            stats = {
                "available_count": counts.get(DeviceStatus.AVAILABLE, 0),
                "on_loan_count": counts.get(DeviceStatus.ON_LOAN, 0),
                "defect_count": counts.get(DeviceStatus.DEFECT, 0),
                "maintenance_count": counts.get(DeviceStatus.MAINTENANCE, 0),
                "active_loans": [
                    {
                        "id": loan.id,
                        "borrower_name": loan.borrower_name,
                        "borrowed_at": loan.borrowed_at,
                        "device": {
                            "call_sign": loan.device.call_sign,
                            "device_type": loan.device.device_type,
                        },
                    }
                    for loan in active_loans
                ],
            }

        logger.debug("history: dashboard stats", extra={"active_loans": len(active_loans)})
        return stats

    def get_history(
        self,
        filters: Optional[HistoryFilters] = None,
        **params,
    ) -> dict:
        """
        Paginated loan history, newest borrow first.

        Accepts either a validated HistoryFilters or the raw query parameters
        (deviceId, from, to, page, pageSize). The count and the page come from
        two separate queries with the same filter and are not guaranteed to
        be a single snapshot.
        """
        if filters is None:
            filters = parse_history_filters(params)

        conditions = []
        if filters.device_id:
            conditions.append(Loan.device_id == filters.device_id)
        if filters.date_from is not None:
            conditions.append(Loan.borrowed_at >= filters.date_from)
        if filters.date_to is not None:
            conditions.append(Loan.borrowed_at <= filters.date_to)

        with transaction(self.db):
            loans = (
                self.db.query(Loan)
                .join(Loan.device)
                .options(contains_eager(Loan.device))
                .filter(*conditions)
                .order_by(Loan.borrowed_at.desc())
                .offset((filters.page - 1) * filters.page_size)
                .limit(filters.page_size)
                .all()
            )
            data = [_history_item(loan) for loan in loans]

        total = self.db.query(func.count(Loan.id)).filter(*conditions).scalar() or 0

        return {
            "data": data,
            "meta": {
                "total": total,
                "page": filters.page,
                "page_size": filters.page_size,
                "total_pages": math.ceil(total / filters.page_size),
            },
        }


def _history_item(loan: Loan) -> dict:
    device = loan.device
    return {
        "id": loan.id,
        "borrower_name": loan.borrower_name,
        "borrowed_at": loan.borrowed_at,
        "returned_at": loan.returned_at,
        "return_note": loan.return_note,
        "device": {
            "id": device.id,
            "call_sign": device.call_sign,
            "serial_number": device.serial_number,
            "device_type": device.device_type,
            "status": device.status,
        },
    }
