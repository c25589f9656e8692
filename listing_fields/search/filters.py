"""Filter definitions: named, searchable projections of fields or relations."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from listing_fields.fields.definitions import label_from_name, normalize_key
from listing_fields.fields.types import Operator


class SourceKind(str, Enum):
    """What a filter projects."""

    FIELD = "field"
    TAXONOMY = "taxonomy"
    STRUCTURAL = "structural"


# Structural keys and the operators each one can evaluate.
STRUCTURAL_OPERATORS: dict[str, frozenset[Operator]] = {
    "keyword": frozenset({Operator.CONTAINS}),
    "title": frozenset({Operator.EQUALS, Operator.CONTAINS}),
    "date": frozenset({Operator.EQUALS, Operator.RANGE}),
}

TAXONOMY_OPERATORS: frozenset[Operator] = frozenset({Operator.EQUALS, Operator.IN})

# UI control used by search forms.
FILTER_TYPES: frozenset[str] = frozenset({"text", "select", "checkbox", "radio", "range", "date"})


def to_operators(values: Iterable[Any]) -> frozenset[Operator]:
    """Coerce operator names into Operator members.

    Raises:
        ValueError: For an unknown operator name.
    """
    if isinstance(values, (str, Operator)):
        values = [values]
    operators = set()
    for value in values:
        try:
            operators.add(Operator(value))
        except ValueError:
            raise ValueError(f"unknown operator '{value}'") from None
    return frozenset(operators)


@dataclass(frozen=True)
class FilterDefinition:
    """A searchable filter.

    Attributes:
        name: Unique filter name.
        source: Field, taxonomy or structural source.
        source_key: Field name, taxonomy id or structural key; defaults to
            the filter name.
        operators: Operators the filter may apply.
        type: Search-form control (``select``, ``range``, ...).
        label: Human label, generated from the name when empty.
        param: Request parameter name, defaults to the filter name.
        priority: Ordering for ``get_filters``.
        active: Inactive filters are ignored by the query engine.
        multiple: Whether the control submits several values.
    """

    name: str
    source: SourceKind = SourceKind.FIELD
    source_key: str = ""
    operators: frozenset[Operator] = frozenset({Operator.EQUALS})
    type: str = "select"
    label: str = ""
    param: str = ""
    priority: int = 10
    active: bool = True
    multiple: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", SourceKind(self.source))
        object.__setattr__(self, "operators", to_operators(self.operators))
        if not self.source_key:
            object.__setattr__(self, "source_key", self.name)
        if not self.param:
            object.__setattr__(self, "param", self.name)
        if not self.label:
            object.__setattr__(self, "label", label_from_name(self.name))

    def supports(self, operator: Operator | str) -> bool:
        return Operator(operator) in self.operators


_FILTER_KEYS = frozenset(FilterDefinition.__dataclass_fields__) - {"name"}


def build_filter(name: str, config: Mapping[str, Any] | None) -> FilterDefinition:
    """Build a FilterDefinition from a loose configuration mapping.

    Raises:
        ValueError: If the configuration is malformed.
    """
    config = dict(config or {})
    unknown = set(config) - _FILTER_KEYS
    if unknown:
        raise ValueError(f"unknown key(s): {', '.join(sorted(unknown))}")
    if "source" in config:
        try:
            config["source"] = SourceKind(config["source"])
        except ValueError:
            raise ValueError(f"unknown source '{config['source']}'") from None
    if "operators" in config:
        config["operators"] = to_operators(config["operators"])
    if "type" in config and config["type"] not in FILTER_TYPES:
        raise ValueError(f"unknown filter type '{config['type']}'")
    priority = config.get("priority", 10)
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise ValueError("'priority' must be an integer")
    if "source_key" in config:
        config["source_key"] = normalize_key(config["source_key"])
    return FilterDefinition(name=name, **config)
