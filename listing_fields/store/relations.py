"""Taxonomy relations (categories, tags) for listings."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from listing_fields.cache import TTLCache
from listing_fields.fields.definitions import normalize_key
from listing_fields.store.models import Listing, ListingTerm

log = logging.getLogger(__name__)


def term_slug(term: str) -> str:
    """Normalise a term name: ``Coffee Shops`` -> ``coffee-shops``."""
    return normalize_key("-".join(str(term).split()))


class TermRelations:
    """Term membership backed by ``listing_terms``.

    ``term_counts`` is cached for the cache TTL; assigning terms invalidates
    the taxonomy's cached counts.
    """

    def __init__(
        self,
        session: Session,
        cache: TTLCache | None = None,
        ttl: float | None = None,
        statuses: Iterable[str] = ("publish",),
    ) -> None:
        self.session = session
        self.cache = cache if cache is not None else TTLCache()
        self.ttl = ttl
        self.statuses = tuple(statuses)

    def terms_for(self, item_id: int, taxonomy: str) -> list[str]:
        rows = self.session.scalars(
            select(ListingTerm.term)
            .where(ListingTerm.listing_id == item_id, ListingTerm.taxonomy == taxonomy)
            .order_by(ListingTerm.term)
        )
        return list(rows)

    def assign_terms(self, item_id: int, taxonomy: str, terms: Iterable[str]) -> None:
        """Replace the item's terms in ``taxonomy``."""
        slugs = list(dict.fromkeys(s for s in (term_slug(t) for t in terms) if s))
        self.session.execute(
            delete(ListingTerm).where(
                ListingTerm.listing_id == item_id, ListingTerm.taxonomy == taxonomy
            )
        )
        self.session.add_all(
            ListingTerm(listing_id=item_id, taxonomy=taxonomy, term=slug) for slug in slugs
        )
        self.session.flush()
        self.cache.forget(self._counts_key(taxonomy))
        log.debug("Assigned %s terms %s to listing %s", taxonomy, slugs, item_id)

    def term_counts(self, taxonomy: str) -> dict[str, int]:
        """Number of visible listings per term, most used first."""
        return self.cache.remember(
            self._counts_key(taxonomy), lambda: self._count_terms(taxonomy), self.ttl
        )

    def _count_terms(self, taxonomy: str) -> dict[str, int]:
        rows = self.session.execute(
            select(ListingTerm.term, func.count(ListingTerm.listing_id))
            .join(Listing, Listing.id == ListingTerm.listing_id)
            .where(ListingTerm.taxonomy == taxonomy, Listing.status.in_(self.statuses))
            .group_by(ListingTerm.term)
            .order_by(func.count(ListingTerm.listing_id).desc(), ListingTerm.term)
        )
        return {term: count for term, count in rows}

    @staticmethod
    def _counts_key(taxonomy: str) -> str:
        return f"term_counts:{taxonomy}"
