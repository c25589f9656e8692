"""Filter registry, search criteria and query plan compilation."""

from listing_fields.search.criteria import Range, SearchCriteria
from listing_fields.search.engine import SearchQueryEngine
from listing_fields.search.filters import FilterDefinition, SourceKind, build_filter
from listing_fields.search.parser import parse_criteria
from listing_fields.search.plan import (
    Pagination,
    Predicate,
    QueryPlan,
    Relation,
    SearchResult,
    SortSpec,
)
from listing_fields.search.registry import FilterRegistry

__all__ = [
    "FilterDefinition",
    "FilterRegistry",
    "Pagination",
    "Predicate",
    "QueryPlan",
    "Range",
    "Relation",
    "SearchCriteria",
    "SearchQueryEngine",
    "SearchResult",
    "SortSpec",
    "SourceKind",
    "build_filter",
    "parse_criteria",
]
