"""Loanable radio devices and their lifecycle status."""

import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, String
from sqlalchemy.orm import relationship

from database import Base, utcnow


class DeviceStatus(str, enum.Enum):
    """Lifecycle status. Declaration order is the listing sort order."""

    AVAILABLE = "AVAILABLE"
    ON_LOAN = "ON_LOAN"
    DEFECT = "DEFECT"
    MAINTENANCE = "MAINTENANCE"


# Statuses an administrator may set directly; ON_LOAN is owned by the loan flow
SETTABLE_STATUSES = frozenset(
    {DeviceStatus.AVAILABLE, DeviceStatus.DEFECT, DeviceStatus.MAINTENANCE}
)


def new_id() -> str:
    return str(uuid.uuid4())


class Device(Base):
    """A single radio that can be borrowed and returned."""

    __tablename__ = "devices"

    id = Column(String(36), primary_key=True, default=new_id)
    call_sign = Column(String(50), unique=True, nullable=False)
    serial_number = Column(String(100), nullable=True)
    device_type = Column(String(100), nullable=False)
    notes = Column(String(500), nullable=True)
    status = Column(
        Enum(DeviceStatus, name="device_status", native_enum=False, length=20),
        default=DeviceStatus.AVAILABLE,
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    loans = relationship("Loan", back_populates="device", passive_deletes=True)
