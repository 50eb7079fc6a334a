"""Server-side session store.

The cookie only carries an opaque random token; the store keeps a SHA-256
hash of it together with the session data. Expiry is rolling: every load
and save pushes ``expires_at`` forward by the configured timeout.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from config import SESSION_TIMEOUT_HOURS
from database import transaction, utcnow
from errors import InventoryError, OperationFailed
from models.session import AdminSession

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


@dataclass
class SessionState:
    """Session resolved for one request, passed explicitly to every operation."""

    token: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


class SessionStore:
    """Load, save, regenerate and destroy sessions in the database."""

    def __init__(self, db: Session, timeout: timedelta = timedelta(hours=SESSION_TIMEOUT_HOURS)):
        self.db = db
        self.timeout = timeout

    def _find(self, token: str) -> Optional[AdminSession]:
        return (
            self.db.query(AdminSession)
            .filter(AdminSession.token_hash == hash_token(token))
            .first()
        )

    def load(self, token: Optional[str]) -> SessionState:
        """Resolve a cookie token. Unknown or expired tokens yield an empty session."""
        if not token:
            return SessionState()

        record = self._find(token)
        if record is None:
            return SessionState()

        now = utcnow()
        if record.expires_at <= now:
            self.db.delete(record)
            self.db.commit()
            logger.info("session: expired", extra={"session_id": record.id})
            return SessionState()

        record.expires_at = now + self.timeout
        self.db.commit()
        return SessionState(token=token, data=dict(record.data or {}))

    def regenerate(self, state: SessionState) -> SessionState:
        """Issue a fresh token with empty data and invalidate the old one.

        Returns a new SessionState; ``state`` itself is never modified, so a
        failure leaves the caller's session exactly as it was.
        """
        new_token = secrets.token_urlsafe(32)
        try:
            with transaction(self.db):
                if state.token:
                    self.db.query(AdminSession).filter(
                        AdminSession.token_hash == hash_token(state.token)
                    ).delete(synchronize_session=False)
                self.db.add(
                    AdminSession(
                        token_hash=hash_token(new_token),
                        data={},
                        expires_at=utcnow() + self.timeout,
                    )
                )
        except InventoryError as exc:
            logger.error("session: regenerate failed", extra={"kind": exc.kind})
            raise OperationFailed() from exc
        return SessionState(token=new_token, data={})

    def save(self, state: SessionState) -> None:
        """Persist session data and extend the rolling expiry.

        A state without a token gets one issued first.
        """
        if not state.token:
            state.token = secrets.token_urlsafe(32)

        try:
            with transaction(self.db):
                record = self._find(state.token)
                if record is None:
                    record = AdminSession(token_hash=hash_token(state.token))
                    self.db.add(record)
                # Assign a copy so the JSON column registers the change
                record.data = dict(state.data)
                record.expires_at = utcnow() + self.timeout
        except InventoryError as exc:
            logger.error("session: save failed", extra={"kind": exc.kind})
            raise OperationFailed() from exc

    def destroy(self, state: SessionState) -> None:
        """Delete the server-side record. Failures are raised, never swallowed."""
        if state.token:
            try:
                with transaction(self.db):
                    self.db.query(AdminSession).filter(
                        AdminSession.token_hash == hash_token(state.token)
                    ).delete(synchronize_session=False)
            except InventoryError as exc:
                logger.error("session: destroy failed", extra={"kind": exc.kind})
                raise OperationFailed() from exc
        state.token = None
        state.data = {}
