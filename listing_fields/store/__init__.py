"""SQLite-backed storage collaborators."""

from listing_fields.store.attachments import AttributeWriter, SqlAttachmentStore
from listing_fields.store.listings import ListingStore
from listing_fields.store.models import Listing, ListingAttribute, ListingTerm, StoreBase
from listing_fields.store.relations import TermRelations
from listing_fields.store.session import get_engine, get_session

__all__ = [
    "AttributeWriter",
    "Listing",
    "ListingAttribute",
    "ListingStore",
    "ListingTerm",
    "SqlAttachmentStore",
    "StoreBase",
    "TermRelations",
    "get_engine",
    "get_session",
]
