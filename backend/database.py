import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from config import DATABASE_URL, TRANSACTION_TIMEOUT_SECONDS
from errors import (
    Conflict,
    InventoryError,
    NotFound,
    OperationFailed,
    TransactionTimeout,
)

logger = logging.getLogger(__name__)

# SQLite needs check_same_thread disabled because FastAPI runs sync routes in a threadpool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()

# Postgres SQLSTATEs for statement timeout and lock timeout
_TIMEOUT_PGCODES = {"57014", "55P03"}
_UNIQUE_VIOLATION_PGCODE = "23505"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_db():
    """Dependency for getting database sessions in FastAPI routes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize the database and create all tables."""
    # Import models here to ensure they're registered with Base
    from models import AdminSession, AdminUser, Device, Loan  # noqa: F401

    Base.metadata.create_all(bind=engine)


def is_sqlite_session(session: Session) -> bool:
    """Return True when the session is bound to a SQLite engine or connection."""
    bind = session.get_bind()
    return bind.dialect.name == "sqlite"


def _apply_timeout(db: Session, timeout_seconds: float) -> None:
    milliseconds = int(timeout_seconds * 1000)
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        # Scoped to the current transaction only
        db.execute(text(f"SET LOCAL statement_timeout = {milliseconds}"))
    elif dialect == "sqlite":
        db.execute(text(f"PRAGMA busy_timeout = {milliseconds}"))


def _is_unique_violation(exc: sa_exc.IntegrityError) -> bool:
    orig = exc.orig
    if getattr(orig, "pgcode", None) == _UNIQUE_VIOLATION_PGCODE:
        return True
    message = str(orig).lower()
    return "unique constraint" in message or "duplicate key" in message


def _is_timeout(exc: sa_exc.SQLAlchemyError) -> bool:
    if isinstance(exc, sa_exc.TimeoutError):
        return True
    if isinstance(exc, sa_exc.DBAPIError):
        orig = exc.orig
        if getattr(orig, "pgcode", None) in _TIMEOUT_PGCODES:
            return True
        message = str(orig).lower()
        return "database is locked" in message or "statement timeout" in message
    return False


def classify_store_error(
    exc: Exception,
    *,
    conflict_message: Optional[str] = None,
    not_found_message: Optional[str] = None,
) -> InventoryError:
    """Map a store failure onto the error taxonomy.

    Already-classified errors pass through unchanged. The raw store error is
    logged here and never returned to the caller.
    """
    if isinstance(exc, InventoryError):
        return exc

    if isinstance(exc, sa_exc.IntegrityError) and _is_unique_violation(exc):
        logger.info("store: unique constraint violated", extra={"error": str(exc.orig)})
        return Conflict(conflict_message)

    if isinstance(exc, (sa_exc.NoResultFound, StaleDataError)):
        logger.info("store: record not found", extra={"error": str(exc)})
        return NotFound(not_found_message)

    if isinstance(exc, sa_exc.SQLAlchemyError) and _is_timeout(exc):
        logger.warning("store: transaction timed out", extra={"error": str(exc)})
        return TransactionTimeout()

    logger.error(
        "store: operation failed",
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return OperationFailed()


@contextmanager
def transaction(
    db: Session,
    *,
    timeout_seconds: float = TRANSACTION_TIMEOUT_SECONDS,
    conflict_message: Optional[str] = None,
    not_found_message: Optional[str] = None,
) -> Iterator[Session]:
    """Run a block of store work as one transaction.

    Commits when the block exits normally and rolls back on every error path.
    Store failures are re-raised as InventoryError subclasses; there is no
    retry.
    """
    try:
        _apply_timeout(db, timeout_seconds)
        yield db
        db.commit()
    except InventoryError:
        db.rollback()
        raise
    except sa_exc.SQLAlchemyError as exc:
        db.rollback()
        raise classify_store_error(
            exc,
            conflict_message=conflict_message,
            not_found_message=not_found_message,
        ) from exc
    except Exception:
        db.rollback()
        raise
