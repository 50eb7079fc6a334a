"""Credential management for the logged-in administrator."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from database import transaction
from errors import (
    CURRENT_PASSWORD_INCORRECT,
    NO_CHANGES_REQUESTED,
    USERNAME_TAKEN,
    InvalidCredentials,
    ValidationFailed,
)
from models.admin import AdminUser
from services.auth import authorize, hash_password, verify_password
from services.session_store import SessionState, SessionStore

logger = logging.getLogger(__name__)


class CredentialsService:
    """Handles username and password changes."""

    def __init__(self, db: Session, store: SessionStore):
        self.db = db
        self.store = store

    def change_credentials(
        self,
        *,
        session: SessionState,
        current_password: str,
        new_username: Optional[str] = None,
        new_password: Optional[str] = None,
    ) -> dict:
        """
        Change username and/or password after re-verifying the current password.

        Username uniqueness is enforced by the unique constraint on write, not
        by a prior read. A username change is written back into the live
        session so it shows up without logging in again.
        """
        principal = authorize(session)

        if new_username is None and new_password is None:
            raise ValidationFailed(NO_CHANGES_REQUESTED)

        admin = self.db.query(AdminUser).filter(AdminUser.id == principal.user_id).first()
        if admin is None or not admin.password_hash:
            raise InvalidCredentials(CURRENT_PASSWORD_INCORRECT)
        if not verify_password(current_password, admin.password_hash):
            logger.info("credentials: current password mismatch", extra={"user_id": admin.id})
            raise InvalidCredentials(CURRENT_PASSWORD_INCORRECT)

        username_changed = new_username is not None and new_username != admin.username
        new_hash = hash_password(new_password) if new_password is not None else None

        with transaction(self.db, conflict_message=USERNAME_TAKEN):
            if username_changed:
                admin.username = new_username
            if new_hash is not None:
                admin.password_hash = new_hash
            self.db.flush()

        if username_changed:
            session.data["username"] = admin.username
            self.store.save(session)

        logger.info(
            "credentials: updated",
            extra={
                "user_id": admin.id,
                "username_changed": username_changed,
                "password_changed": new_hash is not None,
            },
        )
        return {"message": "Credentials updated", "username": admin.username}
