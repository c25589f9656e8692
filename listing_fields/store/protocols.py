"""Contracts for the storage collaborators the core talks to."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from listing_fields.search.plan import QueryPlan


class AttachmentStore(Protocol):
    """Key/value store for ``(item_id, field_name) -> stored value``."""

    def get(self, item_id: int, key: str) -> str | None: ...
    def set(self, item_id: int, key: str, value: str | None) -> None: ...
    def delete(self, item_id: int, key: str) -> None: ...
    def get_all(self, item_id: int) -> dict[str, str]: ...


class ContentItemStore(Protocol):
    """Executes a query plan: ordered item ids for the page plus the total count."""

    def execute(self, plan: QueryPlan) -> tuple[list[int], int]: ...


class StructuralRelations(Protocol):
    """Taxonomy membership (categories, tags) of content items."""

    def terms_for(self, item_id: int, taxonomy: str) -> list[str]: ...
    def assign_terms(self, item_id: int, taxonomy: str, terms: Iterable[str]) -> None: ...
    def term_counts(self, taxonomy: str) -> Mapping[str, int]: ...
