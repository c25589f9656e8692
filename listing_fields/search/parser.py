"""Parse search query strings into SearchCriteria."""

from __future__ import annotations

from importlib import resources
from typing import Any

from lark import Lark, Token, Transformer, UnexpectedInput

from listing_fields.exceptions import SearchParseError
from listing_fields.search.criteria import (
    KEYWORD_PARAMS,
    ORDERBY_PARAMS,
    PAGE_PARAMS,
    PAGE_SIZE_PARAMS,
    Range,
    SearchCriteria,
)


def _load_grammar() -> str:
    """Load the Lark grammar from the package resources."""
    return resources.files("listing_fields.search").joinpath("grammar.lark").read_text()


_GRAMMAR_TEXT = _load_grammar()

_parser = Lark(
    _GRAMMAR_TEXT,
    parser="earley",
    ambiguity="resolve",
)


class _Pair:
    __slots__ = ("key", "values")

    def __init__(self, key: str, values: list[Any]) -> None:
        self.key = key
        self.values = values


class _Text(str):
    pass


class _CriteriaTransformer(Transformer):
    """Transform the Lark parse tree into SearchCriteria."""

    def start(self, items: list[Any]) -> SearchCriteria:
        criteria = SearchCriteria()
        words: list[str] = []
        for item in items:
            if isinstance(item, _Text):
                words.append(str(item))
            elif isinstance(item, _Pair):
                _apply_pair(criteria, item, words)
        criteria.keyword = " ".join(w for w in words if w)
        return criteria

    def pair(self, items: list[Any]) -> _Pair:
        key = str(items[0]).lower()
        return _Pair(key, items[1])

    def range(self, items: list[Any]) -> list[Range]:
        low: str | None = None
        high: str | None = None
        seen_sep = False
        for item in items:
            if isinstance(item, Token) and item.type == "RANGE_SEP":
                seen_sep = True
            elif seen_sep:
                high = str(item)
            else:
                low = str(item)
        return [Range(low, high)]

    def value_list(self, items: list[Any]) -> list[str]:
        return [str(item) for item in items]

    def text(self, items: list[Any]) -> _Text:
        return _Text(str(items[0]))

    def QUOTED(self, token: Token) -> str:
        raw = str(token)
        # Strip surrounding quotes
        if raw.startswith('"') and raw.endswith('"'):
            return raw[1:-1]
        return raw

    def KEY(self, token: Token) -> str:
        return str(token)

    def DATE(self, token: Token) -> str:
        return str(token)

    def NUMBER(self, token: Token) -> str:
        return str(token)

    def BARE(self, token: Token) -> str:
        return str(token)


def _to_int(values: list[Any]) -> int | None:
    try:
        return int(str(values[0]))
    except (IndexError, ValueError):
        return None


def _apply_pair(criteria: SearchCriteria, pair: _Pair, words: list[str]) -> None:
    key, values = pair.key, pair.values
    scalars = [v for v in values if not isinstance(v, Range)]
    if key in KEYWORD_PARAMS:
        words.extend(scalars)
    elif key in ORDERBY_PARAMS:
        criteria.orderby = scalars[0] if scalars else None
    elif key == "order":
        criteria.order = scalars[0] if scalars else None
    elif key in PAGE_PARAMS:
        criteria.page = _to_int(scalars) or 1
    elif key in PAGE_SIZE_PARAMS:
        criteria.page_size = _to_int(scalars)
    elif key == "offset":
        criteria.offset = _to_int(scalars)
    elif key == "limit":
        criteria.limit = _to_int(scalars)
    else:
        for value in values:
            if isinstance(value, Range) and value.is_open():
                continue
            criteria.filters.setdefault(key, []).append(value)


_transformer = _CriteriaTransformer()


def parse_criteria(query_string: str) -> SearchCriteria:
    """Parse a search query string into SearchCriteria.

    Args:
        query_string: Query such as ``cafe category:cafes price:10..50``.

    Returns:
        The parsed SearchCriteria. An empty query yields empty criteria.

    Raises:
        SearchParseError: If the query cannot be parsed.
    """
    query_string = query_string.strip()
    if not query_string:
        return SearchCriteria()

    try:
        tree = _parser.parse(query_string)
        return _transformer.transform(tree)
    except UnexpectedInput as e:
        raise SearchParseError(query_string, str(e)) from e
