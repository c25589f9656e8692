"""Compiled query plans and search results."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from listing_fields.fields.types import Operator, StorageKind
from listing_fields.search.filters import SourceKind


class Relation(str, Enum):
    AND = "and"
    OR = "or"


@dataclass(frozen=True)
class Predicate:
    """One clause of a query plan.

    ``values`` are already in stored format. The values inside a predicate
    combine with ``relation`` (OR: any requested value matches); the plan
    combines its predicates with AND. For RANGE predicates each value is a
    ``(low, high)`` pair with ``None`` for an open side.

    ``fields`` lists the attribute names a keyword predicate also searches.
    """

    source: SourceKind
    key: str
    operator: Operator
    values: tuple[Any, ...]
    storage_kind: StorageKind = StorageKind.TEXT
    relation: Relation = Relation.OR
    filter_name: str = ""
    fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class SortSpec:
    """Ordering: a structural key (date, title, random, modified) or a field."""

    key: str = "date"
    direction: str = "desc"
    field: str | None = None
    numeric: bool = False

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


@dataclass(frozen=True)
class Pagination:
    offset: int = 0
    limit: int = 10

    @property
    def page(self) -> int:
        return self.offset // self.limit + 1


@dataclass(frozen=True)
class QueryPlan:
    predicates: tuple[Predicate, ...] = ()
    sort: SortSpec = field(default_factory=SortSpec)
    pagination: Pagination = field(default_factory=Pagination)
    relation: Relation = Relation.AND

    def is_unfiltered(self) -> bool:
        return not self.predicates

    def describe(self) -> list[str]:
        """Human-readable clause list, for debugging and the CLI."""
        lines = []
        for p in self.predicates:
            values = f" {p.relation.value.upper()} ".join(repr(v) for v in p.values)
            lines.append(f"{p.source.value}:{p.key} {p.operator.value} {values}")
        lines.append(f"order by {self.sort.key} {self.sort.direction}")
        lines.append(f"offset {self.pagination.offset} limit {self.pagination.limit}")
        return lines


@dataclass
class SearchResult:
    item_ids: list[int]
    total: int
    page: int
    page_size: int
    plan: QueryPlan | None = None

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size)) if self.page_size else 1

    @property
    def has_more(self) -> bool:
        return self.page < self.pages

    def __len__(self) -> int:
        return len(self.item_ids)
