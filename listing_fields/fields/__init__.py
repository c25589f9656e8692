"""Field schema: definitions, type handlers, validation and rendering."""

from listing_fields.fields.definitions import (
    FieldDefinition,
    FieldGroup,
    RenderContext,
    ValidationRules,
    build_definition,
)
from listing_fields.fields.registry import FieldRegistry
from listing_fields.fields.renderer import FieldRenderer
from listing_fields.fields.types import FieldTypeHandler, Operator, StorageKind
from listing_fields.fields.validator import FieldValidator, ProcessResult

__all__ = [
    "FieldDefinition",
    "FieldGroup",
    "FieldRegistry",
    "FieldRenderer",
    "FieldTypeHandler",
    "FieldValidator",
    "Operator",
    "ProcessResult",
    "RenderContext",
    "StorageKind",
    "ValidationRules",
    "build_definition",
]
