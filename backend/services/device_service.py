"""Inventory mutations and listing for devices."""

import logging
from dataclasses import dataclass, fields
from typing import Any, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, MAX_SKIP
from database import transaction
from errors import (
    CALL_SIGN_EXISTS,
    CALL_SIGN_REQUIRED,
    DEVICE_NOT_FOUND,
    DEVICE_ON_LOAN,
    DEVICE_TYPE_REQUIRED,
    ON_LOAN_NOT_SETTABLE,
    Conflict,
    NotFound,
    ValidationFailed,
)
from models.device import SETTABLE_STATUSES, Device, DeviceStatus
from models.loan import Loan

logger = logging.getLogger(__name__)


class _Unset:
    """Marker for a field that was not supplied at all."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class DeviceUpdate:
    """Partial device update.

    Each field is UNSET (leave alone), None (clear) or a new value.
    """

    call_sign: Any = UNSET
    serial_number: Any = UNSET
    device_type: Any = UNSET
    notes: Any = UNSET

    @classmethod
    def from_dict(cls, values: dict) -> "DeviceUpdate":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in values.items() if key in known})

    def changes(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


# Listing order follows the status declaration order, not the stored string
_STATUS_RANK = case(
    {status: rank for rank, status in enumerate(DeviceStatus)},
    value=Device.status,
)


class DeviceService:
    """Create, update, delete and list devices.

    Input problems are rejected before the store is touched. Every write runs
    inside ``database.transaction`` so store failures are classified the same
    way for all operations.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        *,
        call_sign: str,
        device_type: str,
        serial_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Device:
        if _is_blank(call_sign):
            raise ValidationFailed(CALL_SIGN_REQUIRED)
        if _is_blank(device_type):
            raise ValidationFailed(DEVICE_TYPE_REQUIRED)

        device = Device(
            call_sign=call_sign,
            device_type=device_type,
            serial_number=serial_number,
            notes=notes,
            status=DeviceStatus.AVAILABLE,
        )
        with transaction(self.db, conflict_message=CALL_SIGN_EXISTS):
            self.db.add(device)
            self.db.flush()

        logger.info("devices: created", extra={"device_id": device.id, "call_sign": call_sign})
        return device

    def update(self, device_id: str, update: DeviceUpdate) -> Device:
        changes = update.changes()
        if "call_sign" in changes and _is_blank(changes["call_sign"]):
            raise ValidationFailed(CALL_SIGN_REQUIRED)
        if "device_type" in changes and _is_blank(changes["device_type"]):
            raise ValidationFailed(DEVICE_TYPE_REQUIRED)

        with transaction(
            self.db,
            conflict_message=CALL_SIGN_EXISTS,
            not_found_message=DEVICE_NOT_FOUND,
        ):
            device = self.db.query(Device).filter(Device.id == device_id).one()
            for name, value in changes.items():
                setattr(device, name, value)
            self.db.flush()

        logger.info(
            "devices: updated",
            extra={"device_id": device_id, "fields": sorted(changes)},
        )
        return device

    def update_status(self, device_id: str, new_status: DeviceStatus) -> Device:
        """Set AVAILABLE, DEFECT or MAINTENANCE.

        ON_LOAN is rejected up front. A device that is currently on loan keeps
        its status until the loan is returned, so the open loan and the status
        never disagree.
        """
        new_status = DeviceStatus(new_status)
        if new_status not in SETTABLE_STATUSES:
            raise ValidationFailed(ON_LOAN_NOT_SETTABLE)

        with transaction(self.db, not_found_message=DEVICE_NOT_FOUND):
            device = (
                self.db.query(Device)
                .filter(Device.id == device_id)
                .with_for_update()
                .one()
            )
            if device.status == DeviceStatus.ON_LOAN:
                raise Conflict(DEVICE_ON_LOAN)
            device.status = new_status
            self.db.flush()

        logger.info(
            "devices: status changed",
            extra={"device_id": device_id, "status": new_status.value},
        )
        return device

    def delete(self, device_id: str, force: bool = False) -> None:
        """Delete a device and its loan history in one transaction.

        Raises: NotFound if absent, Conflict if on loan and not forced
        """
        with transaction(self.db, not_found_message=DEVICE_NOT_FOUND):
            device = (
                self.db.query(Device)
                .filter(Device.id == device_id)
                .with_for_update()
                .first()
            )
            if device is None:
                raise NotFound(DEVICE_NOT_FOUND)

            if device.status == DeviceStatus.ON_LOAN:
                if not force:
                    raise Conflict(DEVICE_ON_LOAN)
                logger.warning(
                    "devices: force-deleting device on loan",
                    extra={"device_id": device_id, "call_sign": device.call_sign},
                )

            loans_deleted = (
                self.db.query(Loan)
                .filter(Loan.device_id == device_id)
                .delete(synchronize_session=False)
            )
            self.db.query(Device).filter(Device.id == device_id).delete(
                synchronize_session=False
            )
            self.db.expunge(device)

        logger.info(
            "devices: deleted",
            extra={"device_id": device_id, "loans_deleted": loans_deleted, "force": force},
        )

    def find_all(
        self,
        status: Optional[DeviceStatus] = None,
        take: Optional[int] = None,
        skip: Optional[int] = None,
    ) -> list[Device]:
        """List devices grouped by status, then alphabetically by call sign."""
        limit = DEFAULT_PAGE_SIZE if take is None or take < 1 else min(take, MAX_PAGE_SIZE)
        offset = min(max(0, skip or 0), MAX_SKIP)

        query = self.db.query(Device)
        if status is not None:
            query = query.filter(Device.status == DeviceStatus(status))

        return (
            query.order_by(_STATUS_RANK.asc(), Device.call_sign.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def find_by_id(self, device_id: str) -> Optional[Device]:
        return self.db.query(Device).filter(Device.id == device_id).first()
