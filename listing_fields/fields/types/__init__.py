"""Built-in field type handlers."""

from listing_fields.fields.types.base import (
    FieldTypeHandler,
    Operator,
    StorageKind,
    clean_multiline,
    clean_text,
)
from listing_fields.fields.types.choice import (
    CheckboxField,
    CheckboxGroupField,
    MultiSelectField,
    RadioField,
    SelectField,
)
from listing_fields.fields.types.dates import (
    DateField,
    DateRangeField,
    DateTimeField,
    TimeField,
)
from listing_fields.fields.types.files import FileField, GalleryField, ImageField
from listing_fields.fields.types.numeric import CurrencyField, DecimalField, NumberField
from listing_fields.fields.types.text import (
    ColorField,
    EmailField,
    HiddenField,
    PhoneField,
    RichTextField,
    TextareaField,
    TextField,
    UrlField,
)

BUILTIN_HANDLERS: tuple[type[FieldTypeHandler], ...] = (
    TextField,
    TextareaField,
    RichTextField,
    EmailField,
    UrlField,
    PhoneField,
    HiddenField,
    ColorField,
    NumberField,
    DecimalField,
    CurrencyField,
    DateField,
    DateTimeField,
    TimeField,
    DateRangeField,
    SelectField,
    RadioField,
    MultiSelectField,
    CheckboxGroupField,
    CheckboxField,
    FileField,
    ImageField,
    GalleryField,
)

__all__ = [
    "BUILTIN_HANDLERS",
    "CheckboxField",
    "CheckboxGroupField",
    "ColorField",
    "CurrencyField",
    "DateField",
    "DateRangeField",
    "DateTimeField",
    "DecimalField",
    "EmailField",
    "FieldTypeHandler",
    "FileField",
    "GalleryField",
    "HiddenField",
    "ImageField",
    "MultiSelectField",
    "NumberField",
    "Operator",
    "PhoneField",
    "RadioField",
    "RichTextField",
    "SelectField",
    "StorageKind",
    "TextField",
    "TextareaField",
    "TimeField",
    "UrlField",
    "clean_multiline",
    "clean_text",
]
