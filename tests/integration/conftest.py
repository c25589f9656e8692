"""Integration test fixtures: a schema and a seeded listings database."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from listing_fields.schema import Schema
from listing_fields.store import (
    AttributeWriter,
    ListingStore,
    SqlAttachmentStore,
    TermRelations,
    get_session,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


# ---------------------------------------------------------------------------
# Listing data
# ---------------------------------------------------------------------------

LISTINGS = [
    {
        "title": "Cafe Luna",
        "content": "Espresso bar with late night hours",
        "created": "2024-01-10T09:00:00+00:00",
        "values": {"city": "Berlin", "price_range": "$$", "seats": "24", "amenities": ["wifi"]},
        "category": ["cafes"],
        "tag": ["wifi"],
    },
    {
        "title": "Pizza Roma",
        "content": "Wood-fired pizza",
        "created": "2024-03-05T12:00:00+00:00",
        "values": {
            "city": "Munich",
            "price_range": "$",
            "seats": "60",
            "amenities": ["wifi", "terrace"],
        },
        "category": ["restaurants"],
        "tag": ["wifi", "outdoor"],
    },
    {
        "title": "Bar Nord",
        "content": "Cocktails",
        "created": "2024-06-01T18:00:00+00:00",
        "values": {"city": "Berlin", "price_range": "$$$", "seats": "8", "zip": "10115"},
        "category": ["bars"],
        "tag": [],
    },
    {
        "title": "Draft Cafe",
        "content": "Not published yet",
        "created": "2024-07-01T08:00:00+00:00",
        "status": "draft",
        "values": {"city": "Berlin", "price_range": "$$"},
        "category": ["cafes"],
        "tag": [],
    },
]


def build_schema() -> Schema:
    """Default schema plus a numeric and a list-valued field with filters."""
    schema = Schema(defaults=True)
    schema.fields.register_field("seats", {"type": "number", "validation": {"min": 1}})
    schema.fields.register_field(
        "amenities", {"type": "multiselect", "options": ["wifi", "parking", "terrace"]}
    )
    schema.filters.register_filter("seats", {"operators": ["range", "equals"], "type": "range"})
    schema.filters.register_filter("amenities", {"operators": ["contains"], "type": "checkbox"})
    schema.filters.register_filter("city", {"operators": ["equals", "in"], "type": "text"})
    return schema


def seed(session: Session, schema: Schema) -> dict[str, int]:
    """Insert LISTINGS and return their ids by title."""
    listings = ListingStore(session)
    writer = AttributeWriter(schema.validator, SqlAttachmentStore(session))
    relations = TermRelations(session)
    ids: dict[str, int] = {}
    for data in LISTINGS:
        listing = listings.create(
            data["title"],
            data["content"],
            status=data.get("status", "publish"),
            created=data["created"],
        )
        result = writer.save(listing.id, data["values"])
        assert result.valid, result.error_messages()
        relations.assign_terms(listing.id, "category", data["category"])
        relations.assign_terms(listing.id, "tag", data["tag"])
        ids[data["title"]] = listing.id
    session.flush()
    return ids


@pytest.fixture
def listing_schema() -> Schema:
    return build_schema()


@pytest.fixture
def seeded(session: Session, listing_schema: Schema) -> dict[str, int]:
    """In-memory database holding LISTINGS."""
    return seed(session, listing_schema)


@pytest.fixture
def seeded_db(temp_dir: Path) -> Path:
    """On-disk database holding LISTINGS, for CLI tests."""
    db_path = temp_dir / "listings.db"
    with get_session(db_path) as session:
        seed(session, build_schema())
    return db_path
