"""Listings database session management."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from listing_fields.exceptions import DatabaseError
from listing_fields.store.models import StoreBase

log = logging.getLogger(__name__)

MEMORY = ":memory:"


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(db_path: Path | str) -> Engine:
    """Create a SQLAlchemy engine for the listings database.

    Args:
        db_path: Path to the SQLite file, or ``":memory:"``.

    Returns:
        SQLAlchemy engine with all tables created.
    """
    if str(db_path) == MEMORY:
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_path = Path(db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{db_path}",
            connect_args={
                "timeout": 30,
                "check_same_thread": False,
            },
        )
    event.listen(engine, "connect", _enable_foreign_keys)

    # Create missing tables
    StoreBase.metadata.create_all(engine)

    if str(db_path) != MEMORY:
        # Enable WAL mode for better concurrent access
        with engine.connect() as conn:
            conn.execute(text("PRAGMA journal_mode=WAL"))
            conn.commit()
    return engine


@contextmanager
def get_session(db_path: Path | str) -> Generator[Session, None, None]:
    """Open a session for the listings database.

    Commits on success and rolls back on error.

    Args:
        db_path: Path to the SQLite file, or ``":memory:"``.

    Yields:
        SQLAlchemy Session.

    Raises:
        DatabaseError: If the database cannot be opened or written.
    """
    try:
        engine = get_engine(db_path)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Cannot open listings database {db_path}: {e}") from e

    session = sessionmaker(bind=engine)()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise DatabaseError(str(e)) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
        engine.dispose()
