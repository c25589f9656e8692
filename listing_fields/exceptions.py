"""Exception hierarchy for listing-fields."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from pathlib import Path


class ListingFieldsError(Exception):
    """Base exception for all listing-fields errors.

    All exceptions in this package inherit from this class,
    allowing callers to catch all listing-fields errors with
    a single except clause.
    """

    pass


# Configuration Errors
class ConfigError(ListingFieldsError):
    """Configuration-related errors."""

    pass


class ConfigParseError(ConfigError):
    """Configuration file has invalid syntax."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid config at {path}: {detail}")


class ConfigValidationError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid config value for '{key}': {reason}")


# Registration Errors
class RegistrationError(ListingFieldsError):
    """A field, field type or filter could not be registered.

    The registry is left unchanged when one of these is raised.
    """

    pass


class DuplicateNameError(RegistrationError):
    """A field or filter with this name is already registered."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"{kind.capitalize()} '{name}' is already registered")


class DuplicateTypeError(RegistrationError):
    """A handler for this field type is already registered."""

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"Field type '{type_name}' is already registered")


class UnknownTypeError(RegistrationError):
    """Field definition references a type with no registered handler."""

    def __init__(self, field: str, type_name: str) -> None:
        self.field = field
        self.type_name = type_name
        super().__init__(f"Field '{field}' uses unknown type '{type_name}'")


class InvalidConfigError(RegistrationError):
    """Field or filter configuration is malformed."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid configuration for '{name}': {reason}")


class UnsupportedOperatorError(RegistrationError):
    """Filter declares operators its source field type cannot evaluate."""

    def __init__(self, filter_name: str, field_type: str, operators: frozenset[str]) -> None:
        self.filter_name = filter_name
        self.field_type = field_type
        self.operators = operators
        ops = ", ".join(sorted(operators))
        super().__init__(
            f"Filter '{filter_name}' uses operator(s) {ops} not supported by type '{field_type}'"
        )


class UnknownFieldError(RegistrationError):
    """Filter is bound to a field that is not registered."""

    def __init__(self, filter_name: str, field: str) -> None:
        self.filter_name = filter_name
        self.field = field
        super().__init__(f"Filter '{filter_name}' references unknown field '{field}'")


# Entity Not Found Errors
class NotFoundError(ListingFieldsError):
    """Requested entity not found."""

    pass


class FieldNotFoundError(NotFoundError):
    """Field is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Field not found: {name}")


class FilterNotFoundError(NotFoundError):
    """Filter is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Filter not found: {name}")


class GroupNotFoundError(NotFoundError):
    """Field group is not registered."""

    def __init__(self, group_id: str) -> None:
        self.group_id = group_id
        super().__init__(f"Field group not found: {group_id}")


class ListingNotFoundError(NotFoundError):
    """Listing doesn't exist."""

    def __init__(self, item_id: int) -> None:
        self.item_id = item_id
        super().__init__(f"Listing not found: {item_id}")


# Validation Errors
class ValidationError(ListingFieldsError):
    """Invalid value for a single field.

    Returned (not raised) by the validator so callers can collect and
    redisplay every failure at once.
    """

    def __init__(
        self,
        field: str,
        value: object,
        reason: str,
        messages: list[str] | None = None,
    ) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        self.messages = list(messages) if messages else [reason]
        super().__init__(f"Invalid {field}: {reason}")


class AggregateValidationError(ListingFieldsError):
    """Collection of per-field validation errors, keyed by field name."""

    def __init__(self, errors: Mapping[str, ValidationError] | None = None) -> None:
        self.errors: dict[str, ValidationError] = dict(errors or {})
        super().__init__(self._summary())

    def _summary(self) -> str:
        count = len(self.errors)
        names = ", ".join(self.errors)
        return f"{count} field(s) failed validation: {names}"

    def add(self, error: ValidationError) -> None:
        existing = self.errors.get(error.field)
        if existing is None:
            self.errors[error.field] = error
        else:
            existing.messages.extend(error.messages)
        self.args = (self._summary(),)

    def messages_for(self, field: str) -> list[str]:
        error = self.errors.get(field)
        return list(error.messages) if error else []

    def as_dict(self) -> dict[str, list[str]]:
        return {name: list(err.messages) for name, err in self.errors.items()}

    def __len__(self) -> int:
        return len(self.errors)

    def __contains__(self, field: object) -> bool:
        return field in self.errors

    def __iter__(self) -> Iterator[ValidationError]:
        return iter(self.errors.values())

    def __bool__(self) -> bool:
        return bool(self.errors)


# Search Errors
class SearchParseError(ListingFieldsError):
    """Raised when a search query string cannot be parsed."""

    def __init__(self, query: str, message: str) -> None:
        self.query = query
        super().__init__(f"Failed to parse search query '{query}': {message}")


# Database Errors
class DatabaseError(ListingFieldsError):
    """Database-related errors."""

    pass
