"""Search requests built from request parameters."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

KEYWORD_PARAMS = ("keyword", "s", "q")
ORDERBY_PARAMS = ("orderby", "sort")
PAGE_PARAMS = ("page", "paged")
PAGE_SIZE_PARAMS = ("page_size", "per_page")
RANGE_SEPARATOR = ".."

RESERVED_PARAMS: frozenset[str] = frozenset(
    {*KEYWORD_PARAMS, *ORDERBY_PARAMS, *PAGE_PARAMS, *PAGE_SIZE_PARAMS, "order", "offset", "limit"}
)


@dataclass(frozen=True)
class Range:
    """Inclusive bounds for a range filter; either side may be open."""

    low: Any = None
    high: Any = None

    def is_open(self) -> bool:
        return self.low in (None, "") and self.high in (None, "")


def parse_range(text: str) -> Range | None:
    """Parse ``low..high`` (either side optional); None when not a range."""
    if RANGE_SEPARATOR not in text:
        return None
    low, _, high = text.partition(RANGE_SEPARATOR)
    return Range(low.strip() or None, high.strip() or None)


def _to_int(value: Any) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _first(params: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        value = params.get(name)
        if value not in (None, ""):
            return value
    return None


def split_values(value: Any) -> list[Any]:
    """Expand a request value into a list of requested values.

    Lists and tuples are taken as-is. Strings are split on commas, and a
    ``low..high`` string becomes a Range.
    """
    if value is None:
        return []
    if isinstance(value, Range):
        return [value]
    if isinstance(value, (list, tuple, set)):
        items: list[Any] = []
        for item in value:
            items.extend(split_values(item))
        return items
    if isinstance(value, str):
        found = parse_range(value)
        if found is not None:
            return [] if found.is_open() else [found]
        return [part.strip() for part in value.split(",") if part.strip()]
    return [value]


@dataclass
class SearchCriteria:
    """One search request.

    ``filters`` maps a filter name (or request parameter) to the requested
    values; values for one filter are alternatives. Pagination is either
    ``page``/``page_size`` or ``offset``/``limit``; the engine clamps both.
    """

    filters: dict[str, list[Any]] = field(default_factory=dict)
    keyword: str = ""
    orderby: str | None = None
    order: str | None = None
    page: int = 1
    page_size: int | None = None
    offset: int | None = None
    limit: int | None = None

    def add(self, name: str, value: Any) -> None:
        values = split_values(value)
        if values:
            self.filters.setdefault(name, []).extend(values)

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> SearchCriteria:
        """Build criteria from request parameters.

        ``<name>_min``/``<name>_max`` pairs become a Range on ``<name>``.
        Malformed pagination values fall back to defaults.
        """
        criteria = cls()
        keyword = _first(params, KEYWORD_PARAMS)
        criteria.keyword = str(keyword).strip() if keyword is not None else ""
        orderby = _first(params, ORDERBY_PARAMS)
        criteria.orderby = str(orderby) if orderby is not None else None
        order = params.get("order")
        criteria.order = str(order) if order not in (None, "") else None
        criteria.page = _to_int(_first(params, PAGE_PARAMS)) or 1
        criteria.page_size = _to_int(_first(params, PAGE_SIZE_PARAMS))
        criteria.offset = _to_int(params.get("offset"))
        criteria.limit = _to_int(params.get("limit"))

        bounds: dict[str, dict[str, Any]] = {}
        for key, value in params.items():
            if key in RESERVED_PARAMS or value in (None, ""):
                continue
            if key.endswith(("_min", "_max")):
                bounds.setdefault(key[:-4], {})[key[-3:]] = value
                continue
            criteria.add(key, value)

        for name, pair in bounds.items():
            span = Range(pair.get("min"), pair.get("max"))
            if not span.is_open():
                criteria.filters.setdefault(name, []).append(span)
        return criteria
