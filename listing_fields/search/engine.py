"""Compile search criteria into query plans and execute them."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from listing_fields.exceptions import ListingFieldsError
from listing_fields.fields.definitions import ValidationRules, normalize_key
from listing_fields.fields.registry import FieldRegistry
from listing_fields.fields.types import FieldTypeHandler, Operator, StorageKind, clean_text
from listing_fields.search.criteria import Range, SearchCriteria
from listing_fields.search.filters import FilterDefinition, SourceKind
from listing_fields.search.plan import (
    Pagination,
    Predicate,
    QueryPlan,
    Relation,
    SearchResult,
    SortSpec,
)
from listing_fields.search.registry import FilterRegistry

if TYPE_CHECKING:
    from listing_fields.config import Config
    from listing_fields.store.protocols import ContentItemStore

log = logging.getLogger(__name__)

STRUCTURAL_SORTS: dict[str, str] = {
    "date": "Newest",
    "modified": "Recently updated",
    "title": "Title",
    "random": "Random",
}

DEFAULT_MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10
# Largest row offset a store must accept (signed 64-bit).
MAX_OFFSET = 2**63 - 1


def _parse_day(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        return None


class SearchQueryEngine:
    """Turns a SearchCriteria into a QueryPlan and runs it against a store.

    Bad input never fails a search: unknown filters, inactive filters and
    values that do not encode for their field are dropped and logged at
    debug level.
    """

    def __init__(
        self,
        fields: FieldRegistry,
        filters: FilterRegistry,
        store: ContentItemStore | None = None,
        *,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        default_orderby: str = "date",
        default_order: str = "desc",
    ) -> None:
        self.fields = fields
        self.filters = filters
        self.store = store
        self.max_page_size = max(1, max_page_size)
        self.default_page_size = min(max(1, default_page_size), self.max_page_size)
        self.default_orderby = default_orderby
        self.default_order = default_order

    @classmethod
    def from_config(
        cls,
        fields: FieldRegistry,
        filters: FilterRegistry,
        config: Config,
        store: ContentItemStore | None = None,
    ) -> SearchQueryEngine:
        return cls(
            fields,
            filters,
            store,
            max_page_size=config.max_page_size,
            default_page_size=config.default_page_size,
            default_orderby=config.default_orderby,
            default_order=config.default_order,
        )

    # -- compile ----------------------------------------------------------------

    def compile(self, criteria: SearchCriteria | Mapping[str, Any]) -> QueryPlan:
        """Compile criteria (or raw request parameters) into a QueryPlan."""
        if not isinstance(criteria, SearchCriteria):
            criteria = SearchCriteria.from_params(criteria)

        predicates: list[Predicate] = []
        if criteria.keyword.strip():
            predicates.append(self._keyword_predicate(criteria.keyword, "keyword"))

        for name, values in criteria.filters.items():
            definition = self.filters.resolve(name)
            if definition is None:
                log.debug("Ignoring unknown filter '%s'", name)
                continue
            if not definition.active:
                log.debug("Ignoring inactive filter '%s'", name)
                continue
            predicate = self._compile_filter(definition, values)
            if predicate is not None:
                predicates.append(predicate)

        return QueryPlan(
            predicates=tuple(predicates),
            sort=self.resolve_sort(criteria.orderby, criteria.order),
            pagination=self.paginate(criteria),
            relation=Relation.AND,
        )

    def _compile_filter(self, definition: FilterDefinition, values: list[Any]) -> Predicate | None:
        if definition.source is SourceKind.FIELD:
            return self._field_predicate(definition, values)
        if definition.source is SourceKind.TAXONOMY:
            return self._taxonomy_predicate(definition, values)
        return self._structural_predicate(definition, values)

    def _field_predicate(self, definition: FilterDefinition, values: list[Any]) -> Predicate | None:
        resolved = self.fields.handler_for(definition.source_key)
        if resolved is None:
            log.debug(
                "Filter '%s' is bound to missing field '%s'", definition.name, definition.source_key
            )
            return None
        field, handler = resolved
        # Search values are checked for type only, not the field's input rules.
        relaxed = dataclasses.replace(field, required=False, validation=ValidationRules())

        ranges = [v for v in values if isinstance(v, Range)]
        if ranges and definition.supports(Operator.RANGE):
            encoded = []
            for span in ranges:
                low = handler.encode_value(span.low, relaxed)
                high = handler.encode_value(span.high, relaxed)
                if low is None and high is None:
                    log.debug("Dropping range %r for filter '%s'", span, definition.name)
                    continue
                encoded.append((low, high))
            return self._predicate(definition, field.name, Operator.RANGE, encoded, handler)

        scalars = [v for v in values if not isinstance(v, Range)]
        if handler.storage_kind is StorageKind.LIST:
            operator = Operator.CONTAINS if definition.supports(Operator.CONTAINS) else Operator.IN
            members: list[str] = []
            for value in scalars:
                clean = handler.sanitize(value, relaxed)
                if handler.is_empty(clean) or handler.check(clean, relaxed):
                    log.debug("Dropping value %r for filter '%s'", value, definition.name)
                    continue
                members.extend(m for m in clean if m not in members)
            return self._predicate(definition, field.name, operator, members, handler)

        operator = self._scalar_operator(definition, len(scalars))
        if operator is None:
            return None
        encoded = []
        for value in scalars:
            if operator is Operator.CONTAINS:
                text = clean_text(value)
                stored = text or None
            else:
                stored = handler.encode_value(value, relaxed)
            if stored is None:
                log.debug("Dropping value %r for filter '%s'", value, definition.name)
                continue
            if stored not in encoded:
                encoded.append(stored)
        return self._predicate(definition, field.name, operator, encoded, handler)

    def _scalar_operator(self, definition: FilterDefinition, count: int) -> Operator | None:
        if count > 1 and definition.supports(Operator.IN):
            return Operator.IN
        for operator in (Operator.EQUALS, Operator.IN, Operator.CONTAINS):
            if definition.supports(operator):
                return operator
        return None

    def _predicate(
        self,
        definition: FilterDefinition,
        key: str,
        operator: Operator,
        values: list[Any],
        handler: FieldTypeHandler | None = None,
    ) -> Predicate | None:
        if not values:
            return None
        return Predicate(
            source=definition.source,
            key=key,
            operator=operator,
            values=tuple(values),
            storage_kind=handler.storage_kind if handler is not None else StorageKind.TEXT,
            relation=Relation.OR,
            filter_name=definition.name,
        )

    def _taxonomy_predicate(self, definition: FilterDefinition, values: list[Any]) -> Predicate | None:
        terms: list[str] = []
        for value in values:
            term = normalize_key(clean_text(value).replace(" ", "-"))
            if term and term not in terms:
                terms.append(term)
        operator = Operator.IN if len(terms) > 1 and definition.supports(Operator.IN) else Operator.EQUALS
        if not definition.supports(operator):
            operator = next(iter(definition.operators))
        return self._predicate(definition, definition.source_key, operator, terms)

    def _structural_predicate(
        self, definition: FilterDefinition, values: list[Any]
    ) -> Predicate | None:
        key = definition.source_key
        if key == "keyword":
            text = " ".join(clean_text(v) for v in values if not isinstance(v, Range))
            if not text.strip():
                return None
            return self._keyword_predicate(text, definition.name)

        if key == "date":
            ranges = []
            for value in values:
                if isinstance(value, Range):
                    low, high = _parse_day(value.low), _parse_day(value.high)
                else:
                    low = high = _parse_day(value)
                if low is None and high is None:
                    log.debug("Dropping date value %r for filter '%s'", value, definition.name)
                    continue
                ranges.append(
                    (low.isoformat() if low else None, high.isoformat() if high else None)
                )
            return self._predicate(definition, "date", Operator.RANGE, ranges)

        # title
        operator = Operator.CONTAINS if definition.supports(Operator.CONTAINS) else Operator.EQUALS
        titles = [clean_text(v) for v in values if not isinstance(v, Range) and clean_text(v)]
        return self._predicate(definition, key, operator, titles)

    def _keyword_predicate(self, keyword: str, filter_name: str) -> Predicate:
        """Match the keyword against title, content and every searchable field."""
        return Predicate(
            source=SourceKind.STRUCTURAL,
            key="keyword",
            operator=Operator.CONTAINS,
            values=(clean_text(keyword),),
            relation=Relation.OR,
            filter_name=filter_name,
            fields=tuple(f.name for f in self.fields.searchable_fields()),
        )

    # -- sorting and pagination ---------------------------------------------------

    def resolve_sort(self, orderby: str | None, order: str | None = None) -> SortSpec:
        """Map a sort key to a structural or field-backed ordering.

        Unknown keys fall back to the configured default, then to newest-first.
        """
        direction = str(order or self.default_order).strip().lower()
        if direction not in ("asc", "desc"):
            direction = "desc"

        for candidate in (orderby, self.default_orderby):
            if not candidate:
                continue
            key = normalize_key(candidate)
            if key in STRUCTURAL_SORTS:
                return SortSpec(key=key, direction=direction)
            resolved = self.fields.handler_for(key)
            if resolved is not None and resolved[1].supports("sortable"):
                field, handler = resolved
                return SortSpec(
                    key=field.name,
                    direction=direction,
                    field=field.name,
                    numeric=handler.storage_kind is StorageKind.NUMERIC,
                )
            log.debug("Unknown sort key '%s'", candidate)
        return SortSpec(key="date", direction="desc")

    def paginate(self, criteria: SearchCriteria) -> Pagination:
        """Clamp the requested window to ``[1, max_page_size]`` items.

        Offsets past ``MAX_OFFSET`` are pulled back so the window still fits.
        """
        size = criteria.limit or criteria.page_size or self.default_page_size
        size = min(max(1, size), self.max_page_size)
        if criteria.offset is not None:
            offset = max(0, criteria.offset)
        else:
            offset = (max(1, criteria.page or 1) - 1) * size
        return Pagination(offset=min(offset, MAX_OFFSET - size), limit=size)

    def orderby_options(self) -> dict[str, str]:
        """Available sort keys and their labels."""
        options = dict(STRUCTURAL_SORTS)
        for field in self.fields.list_fields():
            handler = self.fields.get_field_type(field.type)
            if handler is not None and handler.supports("sortable") and field.name not in options:
                options[field.name] = field.label
        return options

    # -- execute ----------------------------------------------------------------

    def search(self, criteria: SearchCriteria | Mapping[str, Any]) -> SearchResult:
        """Compile and execute a search with one read against the store."""
        if self.store is None:
            raise ListingFieldsError("No content item store attached to the search engine")
        plan = self.compile(criteria)
        item_ids, total = self.store.execute(plan)
        log.debug("Search matched %d item(s); returning %d", total, len(item_ids))
        return SearchResult(
            item_ids=list(item_ids)[: plan.pagination.limit],
            total=total,
            page=plan.pagination.page,
            page_size=plan.pagination.limit,
            plan=plan,
        )
