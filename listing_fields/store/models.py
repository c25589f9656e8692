"""SQLAlchemy ORM models for listings, their attribute values and terms."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> str:
    """Current UTC time as ISO text (sorts chronologically)."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


class StoreBase(DeclarativeBase):
    """Base class for store ORM models."""

    pass


class Listing(StoreBase):
    """A content item that field values and terms attach to."""

    __tablename__ = "listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, default="")
    content: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(20), default="publish", server_default="publish")
    created: Mapped[str] = mapped_column(String(32), default=utc_now)
    modified: Mapped[str] = mapped_column(String(32), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index("ix_listings_status", "status"),
        Index("ix_listings_created", "created"),
    )

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, title='{self.title[:30]}')>"


class ListingAttribute(StoreBase):
    """Stored value of one field for one listing."""

    __tablename__ = "listing_attributes"

    listing_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("listings.id", ondelete="CASCADE"), primary_key=True
    )
    key: Mapped[str] = mapped_column(String(191), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("ix_listing_attributes_key", "key"),)

    def __repr__(self) -> str:
        return f"<ListingAttribute(listing_id={self.listing_id}, key='{self.key}')>"


class ListingTerm(StoreBase):
    """Multi-value taxonomy membership (category, tag, ...) for a listing."""

    __tablename__ = "listing_terms"

    listing_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("listings.id", ondelete="CASCADE"), primary_key=True
    )
    taxonomy: Mapped[str] = mapped_column(String(64), primary_key=True)
    term: Mapped[str] = mapped_column(String(191), primary_key=True)

    __table_args__ = (Index("ix_listing_terms_taxonomy_term", "taxonomy", "term"),)

    def __repr__(self) -> str:
        return f"<ListingTerm(listing_id={self.listing_id}, {self.taxonomy}='{self.term}')>"
