"""First-run setup: create the initial administrator."""

import logging

from sqlalchemy.orm import Session

from database import transaction
from errors import SETUP_ALREADY_COMPLETE, Conflict
from models.admin import AdminUser
from services.auth import Principal, create_session, hash_password
from services.session_store import SessionState, SessionStore

logger = logging.getLogger(__name__)

# Once an admin exists setup can never become incomplete again
_setup_complete = False


def reset_setup_cache() -> None:
    global _setup_complete
    _setup_complete = False


class SetupService:
    def __init__(self, db: Session, store: SessionStore):
        self.db = db
        self.store = store

    def is_setup_complete(self) -> bool:
        global _setup_complete
        if not _setup_complete:
            _setup_complete = self.db.query(AdminUser.id).first() is not None
        return _setup_complete

    def create_first_admin(
        self,
        *,
        session: SessionState,
        username: str,
        password: str,
    ) -> SessionState:
        """
        Create the first administrator and log them in.

        Returns the new logged-in session.
        Raises: Conflict if any administrator already exists
        """
        global _setup_complete

        if self.is_setup_complete():
            raise Conflict(SETUP_ALREADY_COMPLETE)

        password_hash = hash_password(password)
        with transaction(self.db, conflict_message=SETUP_ALREADY_COMPLETE):
            if self.db.query(AdminUser.id).first() is not None:
                raise Conflict(SETUP_ALREADY_COMPLETE)
            admin = AdminUser(username=username, password_hash=password_hash)
            self.db.add(admin)
            self.db.flush()
            principal = Principal(user_id=admin.id, username=admin.username)

        _setup_complete = True
        logger.info("setup: first admin created", extra={"username": username})

        return create_session(self.store, session, principal)
