"""Shared pytest fixtures."""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.orm import sessionmaker

from listing_fields.schema import Schema
from listing_fields.store.session import MEMORY, get_engine

if TYPE_CHECKING:
    from collections.abc import Generator

    from sqlalchemy.orm import Session


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    path = Path(tempfile.mkdtemp())
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample config file pointing at a temp database."""
    config_path = temp_dir / "config.toml"
    config_path.write_text(f"""[paths]
database = "{temp_dir / 'listings.db'}"

[display]
colored_output = false

[search]
max_page_size = 50
default_page_size = 5
default_orderby = "title"
default_order = "asc"

[cache]
ttl_seconds = 60

[fields]
strict = true
""")
    return config_path


@pytest.fixture
def schema() -> Schema:
    """Fresh schema with the default fields and filters."""
    return Schema(defaults=True)


@pytest.fixture
def empty_schema() -> Schema:
    """Fresh schema with no fields or filters registered."""
    return Schema(defaults=False)


def _setup_session() -> Session:
    """Create an in-memory listings database and return a session."""
    engine = get_engine(MEMORY)
    return sessionmaker(bind=engine)()


@pytest.fixture
def session() -> Generator[Session, None, None]:
    db = _setup_session()
    try:
        yield db
    finally:
        db.close()
