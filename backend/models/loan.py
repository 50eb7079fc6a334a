"""Loan records: one borrow-and-return cycle of a device."""

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from database import Base, utcnow
from models.device import new_id


class Loan(Base):
    """A loan is active while returned_at is null."""

    __tablename__ = "loans"

    id = Column(String(36), primary_key=True, default=new_id)
    device_id = Column(String(36), ForeignKey("devices.id"), nullable=False, index=True)
    borrower_name = Column(String(100), nullable=False)
    borrowed_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    returned_at = Column(DateTime, nullable=True, index=True)
    return_note = Column(String(500), nullable=True)

    device = relationship("Device", back_populates="loans")
