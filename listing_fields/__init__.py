"""listing-fields: custom field schema, validation, rendering and search for listings."""

__version__ = "0.1.0"

from listing_fields.fields import (
    FieldDefinition,
    FieldGroup,
    FieldRegistry,
    FieldRenderer,
    FieldTypeHandler,
    FieldValidator,
    ProcessResult,
    RenderContext,
)
from listing_fields.schema import Schema
from listing_fields.search import (
    FilterDefinition,
    FilterRegistry,
    SearchCriteria,
    SearchQueryEngine,
    SearchResult,
    parse_criteria,
)

__all__ = [
    "FieldDefinition",
    "FieldGroup",
    "FieldRegistry",
    "FieldRenderer",
    "FieldTypeHandler",
    "FieldValidator",
    "FilterDefinition",
    "FilterRegistry",
    "ProcessResult",
    "RenderContext",
    "Schema",
    "SearchCriteria",
    "SearchQueryEngine",
    "SearchResult",
    "__version__",
    "parse_criteria",
]
