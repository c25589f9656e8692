"""Catalog of what can be searched and filtered, and how."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from listing_fields.exceptions import (
    DuplicateNameError,
    FilterNotFoundError,
    InvalidConfigError,
    UnknownFieldError,
    UnsupportedOperatorError,
)
from listing_fields.fields.definitions import normalize_key
from listing_fields.fields.registry import FieldRegistry
from listing_fields.fields.types import Operator
from listing_fields.search.filters import (
    STRUCTURAL_OPERATORS,
    TAXONOMY_OPERATORS,
    FilterDefinition,
    SourceKind,
    build_filter,
)

log = logging.getLogger(__name__)


def _names(operators: frozenset[Operator]) -> frozenset[str]:
    return frozenset(op.value for op in operators)


class FilterRegistry:
    """Filter catalog bound to a FieldRegistry.

    Uses the same copy-on-write snapshot discipline as FieldRegistry:
    register during bootstrap, read concurrently afterwards.
    """

    def __init__(self, fields: FieldRegistry) -> None:
        self.fields = fields
        self._filters: Mapping[str, FilterDefinition] = MappingProxyType({})

    def __repr__(self) -> str:
        return f"<FilterRegistry(filters={len(self._filters)})>"

    def register_filter(
        self,
        definition: FilterDefinition | str,
        config: Mapping[str, Any] | None = None,
        *,
        replace: bool = False,
    ) -> FilterDefinition:
        """Register a filter.

        Args:
            definition: A FilterDefinition, or a filter name with ``config``.
            config: Filter attributes when ``definition`` is a name.
            replace: Overwrite an existing filter of the same name.

        Raises:
            InvalidConfigError: Empty name, empty operator set or bad config.
            DuplicateNameError: Name already registered and ``replace`` is false.
            UnknownFieldError: Field-sourced filter bound to an unregistered field.
            UnsupportedOperatorError: The source cannot evaluate a declared operator.
        """
        if isinstance(definition, str):
            name = normalize_key(definition)
            if not name:
                raise InvalidConfigError(definition, "filter name cannot be empty")
            try:
                definition = build_filter(name, config)
            except (TypeError, ValueError) as e:
                raise InvalidConfigError(name, str(e)) from e
        elif not normalize_key(definition.name):
            raise InvalidConfigError(definition.name, "filter name cannot be empty")

        name = definition.name
        if name in self._filters and not replace:
            raise DuplicateNameError("filter", name)
        if not definition.operators:
            raise InvalidConfigError(name, "filter must support at least one operator")

        self._check_operators(definition)

        self._filters = MappingProxyType({**self._filters, name: definition})
        log.debug(
            "Registered filter %s (%s:%s)", name, definition.source.value, definition.source_key
        )
        return definition

    def _check_operators(self, definition: FilterDefinition) -> None:
        if definition.source is SourceKind.FIELD:
            field = self.fields.get_field(definition.source_key)
            if field is None:
                raise UnknownFieldError(definition.name, definition.source_key)
            handler = self.fields.get_field_type(field.type)
            supported = handler.operators if handler is not None else frozenset()
            source_type = field.type
        elif definition.source is SourceKind.TAXONOMY:
            supported = TAXONOMY_OPERATORS
            source_type = "taxonomy"
        else:
            if definition.source_key not in STRUCTURAL_OPERATORS:
                raise InvalidConfigError(
                    definition.name, f"unknown structural key '{definition.source_key}'"
                )
            supported = STRUCTURAL_OPERATORS[definition.source_key]
            source_type = definition.source_key

        unsupported = definition.operators - supported
        if unsupported:
            raise UnsupportedOperatorError(definition.name, source_type, _names(unsupported))

    def unregister_filter(self, name: str) -> FilterDefinition:
        """Remove a filter.

        Raises:
            FilterNotFoundError: If the filter is not registered.
        """
        key = normalize_key(name)
        if key not in self._filters:
            raise FilterNotFoundError(key)
        filters = dict(self._filters)
        definition = filters.pop(key)
        self._filters = MappingProxyType(filters)
        return definition

    def get_filter(self, name: str) -> FilterDefinition | None:
        return self._filters.get(normalize_key(name))

    def has_filter(self, name: str) -> bool:
        return normalize_key(name) in self._filters

    def resolve(self, key: str) -> FilterDefinition | None:
        """Find a filter by name, falling back to its request parameter."""
        found = self.get_filter(key)
        if found is not None:
            return found
        for definition in self._filters.values():
            if definition.param == key:
                return definition
        return None

    def get_filters(
        self,
        *,
        type: str | None = None,
        source: SourceKind | str | None = None,
        operator: Operator | str | None = None,
        active_only: bool = True,
        order_by: str = "priority",
        descending: bool = False,
    ) -> list[FilterDefinition]:
        """List filters matching every given criterion, ordered by priority or name."""
        source = SourceKind(source) if source is not None else None
        operator = Operator(operator) if operator is not None else None
        filters = [
            f
            for f in self._filters.values()
            if (type is None or f.type == type)
            and (source is None or f.source is source)
            and (operator is None or operator in f.operators)
            and (not active_only or f.active)
        ]
        if order_by == "name":
            filters.sort(key=lambda f: f.name, reverse=descending)
        else:
            filters.sort(key=lambda f: f.priority, reverse=descending)
        return filters

    def active_filters(self, params: Mapping[str, Any]) -> list[FilterDefinition]:
        """Active filters whose request parameter carries a non-empty value."""
        return [
            f
            for f in self.get_filters()
            if params.get(f.param) not in (None, "", [], ())
        ]

    def reset(self) -> None:
        self._filters = MappingProxyType({})

    def __len__(self) -> int:
        return len(self._filters)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has_filter(name)

    def __iter__(self) -> Iterator[FilterDefinition]:
        return iter(list(self._filters.values()))
