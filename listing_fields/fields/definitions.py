"""Schema data classes: field definitions, validation rules and groups."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

_KEY_INVALID = re.compile(r"[^a-z0-9_\-]")


class RenderContext(str, Enum):
    """Audience a field is rendered for."""

    ADMIN = "admin"
    PUBLIC_FORM = "public-form"
    DISPLAY = "display"

# Callback returning True/None when valid, False for a generic failure,
# or a message string (or list of strings) describing the failure.
RuleCallback = Callable[[Any, "FieldDefinition"], Any]


def normalize_key(name: str) -> str:
    """Normalise a field/filter name to a lowercase ``[a-z0-9_-]`` key."""
    return _KEY_INVALID.sub("", str(name).strip().lower())


def label_from_name(name: str) -> str:
    """Generate a human label from a key: ``price_range`` -> ``Price Range``."""
    return " ".join(part.capitalize() for part in re.split(r"[_\-]+", name) if part)


@dataclass(frozen=True)
class ValidationRules:
    """Declarative validation rules attached to a field.

    Attributes:
        pattern: Regular expression the string value must match.
        pattern_message: Message used when ``pattern`` fails.
        min_length: Minimum string length.
        max_length: Maximum string length.
        min: Lower bound for numeric/date values (or selection count).
        max: Upper bound for numeric/date values (or selection count).
        callback: Custom rule, see ``RuleCallback``.
    """

    pattern: str | None = None
    pattern_message: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    min: Any = None
    max: Any = None
    callback: RuleCallback | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | ValidationRules | None) -> ValidationRules:
        if data is None:
            return cls()
        if isinstance(data, ValidationRules):
            return data
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"unknown validation rule(s): {', '.join(sorted(unknown))}")
        return cls(**data)


@dataclass(frozen=True)
class FieldDefinition:
    """A named, typed attribute that can be attached to a listing.

    Definitions are schema, not data: they live in the registry for the
    process lifetime and are never persisted.
    """

    name: str
    type: str = "text"
    label: str = ""
    description: str = ""
    required: bool = False
    default: Any = None
    placeholder: str = ""
    options: Mapping[str, str] = field(default_factory=dict)
    validation: ValidationRules = field(default_factory=ValidationRules)
    searchable: bool = False
    filterable: bool = False
    admin_only: bool = False
    priority: int = 10
    group: str | None = None
    css_class: str = ""
    attributes: Mapping[str, Any] = field(default_factory=dict)
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze mutable mappings so a shared definition can't be edited in place.
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @property
    def html_id(self) -> str:
        return f"lf-field-{self.name}"

    @property
    def input_name(self) -> str:
        return f"lf_field_{self.name}"

    def setting(self, key: str, default: Any = None) -> Any:
        """Look up a type-specific setting from ``extra``."""
        return self.extra.get(key, default)


_BOOL_KEYS = ("required", "searchable", "filterable", "admin_only")
_STR_KEYS = ("type", "label", "description", "placeholder", "css_class")
_CONFIG_KEYS = frozenset(FieldDefinition.__dataclass_fields__) - {"name"}


def build_definition(name: str, config: Mapping[str, Any] | None) -> FieldDefinition:
    """Build a FieldDefinition from a loose configuration mapping.

    Options may be given as a mapping (value -> label) or as a sequence of
    values, in which case each value is its own label.

    Raises:
        ValueError: If the configuration is malformed. The caller turns
            this into ``InvalidConfigError``.
    """
    config = dict(config or {})
    unknown = set(config) - _CONFIG_KEYS
    if unknown:
        raise ValueError(f"unknown key(s): {', '.join(sorted(unknown))}")

    for key in _BOOL_KEYS:
        if key in config and not isinstance(config[key], bool):
            raise ValueError(f"'{key}' must be a boolean")
    for key in _STR_KEYS:
        if key in config and not isinstance(config[key], str):
            raise ValueError(f"'{key}' must be a string")

    priority = config.get("priority", 10)
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise ValueError("'priority' must be an integer")
    config["priority"] = abs(priority)

    options = config.get("options", {})
    if isinstance(options, Mapping):
        config["options"] = {str(k): str(v) for k, v in options.items()}
    elif isinstance(options, (list, tuple)):
        config["options"] = {str(v): str(v) for v in options}
    else:
        raise ValueError("'options' must be a mapping or a list")

    config["validation"] = ValidationRules.from_mapping(config.get("validation"))
    if config["validation"].pattern is not None:
        try:
            re.compile(config["validation"].pattern)
        except re.error as e:
            raise ValueError(f"invalid pattern: {e}") from e

    if not config.get("label"):
        config["label"] = label_from_name(name)

    return FieldDefinition(name=name, **config)


@dataclass(frozen=True)
class FieldGroup:
    """Named section of fields used for form layout.

    Member names that are not registered at render time are skipped.
    """

    id: str
    title: str = ""
    description: str = ""
    priority: int = 10
    collapsible: bool = False
    collapsed: bool = False
    fields: tuple[str, ...] = ()
