"""Database session management."""

import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Annotated

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from shopledger.core.config import settings
from shopledger.core.exceptions import LedgerError, PersistenceError

logger = logging.getLogger(__name__)

# Create engine - handle SQLite specially for check_same_thread
connect_args = {}
pool_config = {}

if settings.database_url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}
    pool_config = {
        "pool_pre_ping": True,
    }
else:
    # PostgreSQL/MySQL connection pooling configuration
    pool_config = {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,  # Recycle connections after 1 hour
    }

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    echo=False,
    **pool_config,
)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def install_sqlite_pragmas(target_engine) -> None:
    """Enable foreign key enforcement (and cascades) on a SQLite engine."""
    event.listen(target_engine, "connect", _enable_sqlite_foreign_keys)


if settings.database_url.startswith("sqlite"):
    install_sqlite_pragmas(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Type alias for dependency injection
DbSession = Annotated[Session, Depends(get_db)]


@contextmanager
def atomic(db: Session, action: str) -> Iterator[Session]:
    """Run a compound operation as one transaction.

    Commits when the block completes. Domain errors roll back and propagate
    unchanged; store failures roll back and surface as PersistenceError.
    """
    try:
        yield db
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}", exc_info=True)
        raise PersistenceError(f"Failed to {action}: {e.__class__.__name__}") from e
