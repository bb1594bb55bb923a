"""Sessions and write units.

Each API request gets one session from get_db(); each mutation runs inside
one transaction(). Nothing is locked in the application: concurrent writers
race on the unique constraints (catalog id, user subject, list item and
list member keys) and the loser sees an IntegrityError. Two helpers turn
that into the behavior callers want:

- transaction(db, conflict_code=...) reports the duplicate as a 409
  ConflictError (adding an item or a member twice).
- insert_or_reread(db, row, reread) hands back the row the winner stored
  (get-or-create of media records and directory users).
"""

from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from watchtogether.db.engine import get_engine
from watchtogether.db.models import Base
from watchtogether.errors import ApiErrorCode, ConflictError
from watchtogether.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    # expire_on_commit=False: services build response models from rows
    # after the transaction has committed
    return sessionmaker(
        bind=engine or get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


_session_factory: sessionmaker[Session] | None = None


def get_session_factory() -> sessionmaker[Session]:
    """Process-wide session factory, created on first use."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory()
    return _session_factory


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, always closed."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(
    db: Session,
    *,
    conflict_code: ApiErrorCode | None = None,
    conflict_message: str = "Already exists",
) -> Generator[None, None, None]:
    """Commit the block's writes as one unit, or roll all of them back.

    With conflict_code set, a unique-constraint violation is raised as
    ConflictError(conflict_code, conflict_message) instead of IntegrityError.
    """
    try:
        yield
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if conflict_code is None:
            raise
        logger.info("unique_conflict", code=conflict_code.value)
        raise ConflictError(conflict_code, conflict_message) from e
    except Exception:
        db.rollback()
        raise


def insert_or_reread(db: Session, row: T, reread: Callable[[], T | None]) -> tuple[T, bool]:
    """Insert row, or return the equivalent row a concurrent writer stored.

    Returns (row, created). When the insert loses a race on a unique
    constraint, reread() must find the winner; if it finds nothing the
    IntegrityError is re-raised.
    """
    try:
        with transaction(db):
            db.add(row)
    except IntegrityError:
        winner = reread()
        if winner is None:
            raise
        logger.info("insert_race_lost", row_type=type(row).__name__)
        return winner, False
    return row, True


def init_db(engine: Engine | None = None) -> None:
    """Create any missing tables from the ORM models (SQLite/test databases).

    PostgreSQL deployments are migrated with Alembic instead.
    """
    Base.metadata.create_all(engine or get_engine())
