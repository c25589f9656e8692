"""In-memory catalog of field definitions and field type handlers.

Registries are populated during a single-threaded bootstrap phase and are
read concurrently afterwards. Writes are not synchronized: every write
builds a new dict and swaps the reference, so readers always iterate an
immutable snapshot, but two concurrent writers can lose an update.
Registering while requests are being served is unsupported.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from listing_fields.exceptions import (
    DuplicateNameError,
    DuplicateTypeError,
    FieldNotFoundError,
    InvalidConfigError,
    UnknownTypeError,
)
from listing_fields.fields.definitions import FieldDefinition, build_definition, normalize_key
from listing_fields.fields.types import BUILTIN_HANDLERS, FieldTypeHandler

log = logging.getLogger(__name__)


class FieldRegistry:
    """Single source of truth for field and field-type metadata."""

    def __init__(self, *, builtin_types: bool = True) -> None:
        self._fields: Mapping[str, FieldDefinition] = MappingProxyType({})
        self._types: Mapping[str, FieldTypeHandler] = MappingProxyType({})
        if builtin_types:
            for handler_cls in BUILTIN_HANDLERS:
                self.register_field_type(handler_cls())

    def __repr__(self) -> str:
        return f"<FieldRegistry(fields={len(self._fields)}, types={len(self._types)})>"

    # -- field types ----------------------------------------------------------

    def register_field_type(self, handler: FieldTypeHandler, *, replace: bool = False) -> None:
        """Register a handler for ``handler.type_name``.

        Raises:
            InvalidConfigError: If the handler has no type name.
            DuplicateTypeError: If the type exists and ``replace`` is false.
        """
        type_name = handler.type_name
        if not type_name:
            raise InvalidConfigError(type(handler).__name__, "handler has no type_name")
        if type_name in self._types:
            if not replace:
                raise DuplicateTypeError(type_name)
            log.warning(
                "Replacing handler for field type '%s' (%s -> %s)",
                type_name,
                type(self._types[type_name]).__name__,
                type(handler).__name__,
            )
        self._types = MappingProxyType({**self._types, type_name: handler})
        log.debug("Registered field type %s", type_name)

    def get_field_type(self, type_name: str) -> FieldTypeHandler | None:
        return self._types.get(type_name)

    def has_field_type(self, type_name: str) -> bool:
        return type_name in self._types

    def field_types(self) -> Mapping[str, FieldTypeHandler]:
        return self._types

    # -- fields ---------------------------------------------------------------

    def register_field(
        self,
        name: str,
        config: Mapping[str, Any] | None = None,
        *,
        replace: bool = False,
    ) -> FieldDefinition:
        """Register a field definition.

        Args:
            name: Field name; normalised to a lowercase key.
            config: Definition attributes (see ``FieldDefinition``).
            replace: Overwrite an existing field of the same name.

        Returns:
            The stored FieldDefinition.

        Raises:
            InvalidConfigError: Empty name or malformed configuration.
            DuplicateNameError: Name already registered and ``replace`` is false.
            UnknownTypeError: ``type`` has no registered handler.
        """
        key = normalize_key(name)
        if not key:
            raise InvalidConfigError(str(name), "field name cannot be empty")
        if key in self._fields and not replace:
            raise DuplicateNameError("field", key)

        try:
            definition = build_definition(key, config)
        except (TypeError, ValueError) as e:
            raise InvalidConfigError(key, str(e)) from e

        if definition.type not in self._types:
            raise UnknownTypeError(key, definition.type)

        self._fields = MappingProxyType({**self._fields, key: definition})
        log.debug("Registered field %s (type=%s)", key, definition.type)
        return definition

    def unregister_field(self, name: str) -> FieldDefinition:
        """Remove a field.

        Raises:
            FieldNotFoundError: If the field is not registered.
        """
        key = normalize_key(name)
        if key not in self._fields:
            raise FieldNotFoundError(key)
        fields = dict(self._fields)
        definition = fields.pop(key)
        self._fields = MappingProxyType(fields)
        log.debug("Unregistered field %s", key)
        return definition

    def get_field(self, name: str) -> FieldDefinition | None:
        return self._fields.get(normalize_key(name))

    def has_field(self, name: str) -> bool:
        return normalize_key(name) in self._fields

    def handler_for(self, name: str) -> tuple[FieldDefinition, FieldTypeHandler] | None:
        """Resolve a field and its handler in one snapshot read."""
        definition = self.get_field(name)
        if definition is None:
            return None
        handler = self._types.get(definition.type)
        if handler is None:
            return None
        return definition, handler

    def list_fields(
        self,
        *,
        type: str | None = None,
        searchable: bool | None = None,
        filterable: bool | None = None,
        admin_only: bool | None = None,
        order_by: str = "priority",
        descending: bool = False,
    ) -> list[FieldDefinition]:
        """List fields matching every given criterion.

        ``order_by`` is ``priority`` (ties keep registration order) or
        ``name``.
        """
        fields = [
            f
            for f in self._fields.values()
            if (type is None or f.type == type)
            and (searchable is None or f.searchable is searchable)
            and (filterable is None or f.filterable is filterable)
            and (admin_only is None or f.admin_only is admin_only)
        ]
        if order_by == "name":
            fields.sort(key=lambda f: f.name, reverse=descending)
        else:
            fields.sort(key=lambda f: f.priority, reverse=descending)
        return fields

    def searchable_fields(self) -> list[FieldDefinition]:
        return self.list_fields(searchable=True)

    def filterable_fields(self) -> list[FieldDefinition]:
        return self.list_fields(filterable=True)

    def frontend_fields(self) -> list[FieldDefinition]:
        return self.list_fields(admin_only=False)

    def admin_fields(self) -> list[FieldDefinition]:
        return self.list_fields(admin_only=True)

    def reset(self) -> None:
        """Drop all fields, keeping registered types."""
        self._fields = MappingProxyType({})

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has_field(name)

    def __iter__(self) -> Iterator[FieldDefinition]:
        return iter(list(self._fields.values()))
