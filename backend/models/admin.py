"""Administrator accounts (local password or federated identity)."""

from sqlalchemy import Column, DateTime, String

from database import Base, utcnow
from models.device import new_id


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(50), unique=True, nullable=False, index=True)
    # Null for principals that only ever sign in through the identity provider
    password_hash = Column(String(255), nullable=True)
    external_subject = Column(String(255), unique=True, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
