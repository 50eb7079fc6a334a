import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config import (
    HISTORY_DEFAULT_PAGE_SIZE,
    HISTORY_MAX_PAGE,
    HISTORY_MAX_PAGE_SIZE,
    HISTORY_MAX_RANGE_DAYS,
)
from errors import INVALID_DATE_RANGE
from models.device import DeviceStatus
from schemas.common import CamelResponse

# Date and time are both required; the offset is optional and defaults to UTC
ISO_DATETIME = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2}(\.\d{1,6})?)?(Z|[+-]\d{2}:\d{2})?$"
)


class HistoryFilters(BaseModel):
    """Filters for the loan history. Keys use the query-string names."""

    model_config = ConfigDict(populate_by_name=True)

    device_id: Optional[str] = Field(None, alias="deviceId")
    date_from: Optional[datetime] = Field(None, alias="from")
    date_to: Optional[datetime] = Field(None, alias="to")
    page: int = Field(1, ge=1, le=HISTORY_MAX_PAGE)
    page_size: int = Field(HISTORY_DEFAULT_PAGE_SIZE, ge=1, alias="pageSize")

    @field_validator("device_id")
    @classmethod
    def validate_device_id(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return str(uuid.UUID(v))

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def require_iso_format(cls, v: Any) -> Any:
        # Epoch numbers and date-only strings would otherwise be coerced
        if v is None or isinstance(v, datetime):
            return v
        if not isinstance(v, str) or not ISO_DATETIME.match(v):
            raise ValueError("expected an ISO 8601 date-time")
        return v

    @field_validator("date_from", "date_to")
    @classmethod
    def to_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @field_validator("page_size")
    @classmethod
    def cap_page_size(cls, v: int) -> int:
        return min(v, HISTORY_MAX_PAGE_SIZE)

    @model_validator(mode="after")
    def validate_range(self) -> "HistoryFilters":
        # Order and span are reported together on purpose
        if self.date_from is not None and self.date_to is not None:
            if (
                self.date_from > self.date_to
                or self.date_to - self.date_from > timedelta(days=HISTORY_MAX_RANGE_DAYS)
            ):
                raise ValueError(INVALID_DATE_RANGE)
        return self


class LoanDeviceSummary(CamelResponse):
    call_sign: str
    device_type: str


class HistoryDevice(CamelResponse):
    id: str
    call_sign: str
    serial_number: Optional[str]
    device_type: str
    status: DeviceStatus


class ActiveLoanItem(CamelResponse):
    id: str
    borrower_name: str
    borrowed_at: datetime
    device: LoanDeviceSummary


class DashboardStatsResponse(CamelResponse):
    available_count: int
    on_loan_count: int
    defect_count: int
    maintenance_count: int
    active_loans: list[ActiveLoanItem]


class HistoryItem(CamelResponse):
    id: str
    borrower_name: str
    borrowed_at: datetime
    returned_at: Optional[datetime]
    return_note: Optional[str]
    device: HistoryDevice


class HistoryMeta(CamelResponse):
    total: int
    page: int
    page_size: int
    total_pages: int


class HistoryResponse(CamelResponse):
    data: list[HistoryItem]
    meta: HistoryMeta
