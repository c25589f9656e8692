"""Execute QueryPlans against the listings database."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import Float, and_, cast, delete, func, or_, select
from sqlalchemy.orm import Session, aliased

from listing_fields.exceptions import ListingNotFoundError
from listing_fields.fields.types import Operator, StorageKind
from listing_fields.search.filters import SourceKind
from listing_fields.search.plan import Predicate, QueryPlan, SortSpec
from listing_fields.store.models import Listing, ListingAttribute, ListingTerm, utc_now

log = logging.getLogger(__name__)


def _attribute_clause(key: str, condition):
    """Listings with an attribute ``key`` whose value matches ``condition``."""
    return Listing.id.in_(
        select(ListingAttribute.listing_id).where(ListingAttribute.key == key, condition)
    )


def _numeric(value: Any) -> float | None:
    return None if value is None else float(value)


def _range_condition(column, low: Any, high: Any):
    conditions = []
    if low is not None:
        conditions.append(column >= low)
    if high is not None:
        conditions.append(column <= high)
    return and_(*conditions)


def _span_clause(p: Predicate):
    """Overlap (ranges) or containment (single values) against a stored ``[start, end]`` pair.

    A missing side of the stored pair is open.
    """
    stored = ListingAttribute.value
    start = func.json_extract(stored, "$[0]")
    end = func.json_extract(stored, "$[1]")

    def overlaps(low: Any, high: Any):
        conditions = []
        if high is not None:
            conditions.append(or_(start.is_(None), start <= high))
        if low is not None:
            conditions.append(or_(end.is_(None), end >= low))
        return and_(*conditions)

    if p.operator is Operator.RANGE:
        return _attribute_clause(p.key, or_(*[overlaps(low, high) for low, high in p.values]))
    return _attribute_clause(p.key, or_(*[overlaps(v, v) for v in p.values]))


def _build_field_clause(p: Predicate):
    """Build a SQL clause for a field-sourced predicate."""
    if p.storage_kind is StorageKind.SPAN:
        return _span_clause(p)

    stored = ListingAttribute.value

    if p.storage_kind is StorageKind.LIST:
        # Stored value is a JSON array; match the encoded member, quotes included.
        members = [func.instr(stored, json.dumps(v, ensure_ascii=False)) > 0 for v in p.values]
        return _attribute_clause(p.key, or_(*members))

    numeric = p.storage_kind is StorageKind.NUMERIC
    column = cast(stored, Float) if numeric else stored
    convert = _numeric if numeric else (lambda v: v)

    if p.operator is Operator.RANGE:
        ranges = [_range_condition(column, convert(low), convert(high)) for low, high in p.values]
        return _attribute_clause(p.key, or_(*ranges))

    if p.operator is Operator.CONTAINS:
        return _attribute_clause(
            p.key, or_(*[stored.contains(v, autoescape=True) for v in p.values])
        )

    # equals / in
    return _attribute_clause(p.key, column.in_([convert(v) for v in p.values]))


def _build_taxonomy_clause(p: Predicate):
    """Build a clause for taxonomy membership.

    Terms live in the ListingTerm join table.
    """
    return Listing.id.in_(
        select(ListingTerm.listing_id).where(
            ListingTerm.taxonomy == p.key, ListingTerm.term.in_(list(p.values))
        )
    )


def _build_keyword_clause(p: Predicate):
    """Match title, content and the searchable fields' stored values."""
    alternatives = []
    for keyword in p.values:
        matches = [
            Listing.title.contains(keyword, autoescape=True),
            Listing.content.contains(keyword, autoescape=True),
        ]
        if p.fields:
            matches.append(
                Listing.id.in_(
                    select(ListingAttribute.listing_id).where(
                        ListingAttribute.key.in_(p.fields),
                        ListingAttribute.value.contains(keyword, autoescape=True),
                    )
                )
            )
        alternatives.append(or_(*matches))
    return or_(*alternatives)


def _build_structural_clause(p: Predicate):
    if p.key == "keyword":
        return _build_keyword_clause(p)
    if p.key == "date":
        day = func.substr(Listing.created, 1, 10)
        return or_(*[_range_condition(day, low, high) for low, high in p.values])
    if p.operator is Operator.CONTAINS:
        return or_(*[Listing.title.contains(v, autoescape=True) for v in p.values])
    return func.lower(Listing.title).in_([str(v).lower() for v in p.values])


def build_clause(p: Predicate):
    """Build the SQL clause for one predicate."""
    if p.source is SourceKind.FIELD:
        return _build_field_clause(p)
    if p.source is SourceKind.TAXONOMY:
        return _build_taxonomy_clause(p)
    return _build_structural_clause(p)


def _apply_sort(stmt, sort: SortSpec):
    if sort.key == "random":
        return stmt.order_by(func.random())

    if sort.field is not None:
        attr = aliased(ListingAttribute)
        stmt = stmt.outerjoin(attr, and_(attr.listing_id == Listing.id, attr.key == sort.field))
        column = cast(attr.value, Float) if sort.numeric else attr.value
    elif sort.key == "title":
        column = func.lower(Listing.title)
    elif sort.key == "modified":
        column = Listing.modified
    else:
        column = Listing.created

    ordered = column.desc() if sort.descending else column.asc()
    tiebreak = Listing.id.desc() if sort.descending else Listing.id.asc()
    return stmt.order_by(ordered.nulls_last(), tiebreak)


class ListingStore:
    """Content-item store over the ``listings`` table.

    Args:
        session: Open SQLAlchemy session.
        statuses: Listing statuses a search may return.
    """

    def __init__(self, session: Session, statuses: Iterable[str] = ("publish",)) -> None:
        self.session = session
        self.statuses = tuple(statuses)

    def create(
        self,
        title: str,
        content: str = "",
        *,
        status: str = "publish",
        created: str | None = None,
    ) -> Listing:
        listing = Listing(title=title, content=content, status=status)
        if created is not None:
            listing.created = created
            listing.modified = created
        self.session.add(listing)
        self.session.flush()
        return listing

    def get(self, item_id: int) -> Listing:
        listing = self.session.get(Listing, item_id)
        if listing is None:
            raise ListingNotFoundError(item_id)
        return listing

    def touch(self, item_id: int) -> None:
        self.get(item_id).modified = utc_now()

    def delete(self, item_id: int) -> None:
        """Delete a listing with its attribute values and terms."""
        listing = self.get(item_id)
        self.session.execute(delete(ListingAttribute).where(ListingAttribute.listing_id == item_id))
        self.session.execute(delete(ListingTerm).where(ListingTerm.listing_id == item_id))
        self.session.delete(listing)
        self.session.flush()

    def execute(self, plan: QueryPlan) -> tuple[list[int], int]:
        """Run a plan and return the page of listing ids plus the total count.

        The count rides along as a window column so a search is one query;
        only a page past the end needs a separate count.
        """
        conditions = [Listing.status.in_(self.statuses)]
        conditions.extend(build_clause(p) for p in plan.predicates)

        stmt = select(Listing.id, func.count().over().label("total")).where(and_(*conditions))
        stmt = _apply_sort(stmt, plan.sort)
        stmt = stmt.offset(plan.pagination.offset).limit(plan.pagination.limit)

        rows = self.session.execute(stmt).all()
        if rows:
            return [row.id for row in rows], rows[0].total

        if plan.pagination.offset == 0:
            return [], 0
        total = self.session.scalar(
            select(func.count()).select_from(Listing).where(and_(*conditions))
        )
        return [], total or 0
