"""File and image reference field types."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import PurePosixPath
from typing import Any, ClassVar
from urllib.parse import urlsplit

from markupsafe import Markup

from listing_fields.fields import markup
from listing_fields.fields.definitions import FieldDefinition, RenderContext
from listing_fields.fields.types.base import (
    FieldTypeHandler,
    StorageKind,
    clean_text,
    dump_list,
    load_list,
    unique_texts,
)

_FILE_INPUT_TEMPLATE = """
{% if value %}<span class="lf-file-current">{{ filename }}</span>
<input type="hidden" name="{{ name }}_current" value="{{ value }}">{% endif %}
<input {{ attributes|attrs }}>{{ description }}
"""


def file_extension(reference: str) -> str:
    """Lower-case extension of a path or URL, without the dot."""
    path = urlsplit(reference).path or reference
    return PurePosixPath(path).suffix.lstrip(".").lower()


class FileField(FieldTypeHandler):
    """Reference to an uploaded file (storage path, URL or attachment id).

    Uploading itself belongs to the caller; this type only checks the
    reference's extension against ``extra['allowed_types']``.
    """

    type_name = "file"
    input_type = "file"
    operators = frozenset()
    features = {"searchable": False, "filterable": False, "sortable": False}
    default_allowed_types: ClassVar[tuple[str, ...]] = ()

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> str:
        return clean_text(value)

    def allowed_types(self, field: FieldDefinition) -> tuple[str, ...]:
        allowed = field.setting("allowed_types") or self.default_allowed_types
        return tuple(str(ext).lower().lstrip(".") for ext in allowed)

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        allowed = self.allowed_types(field)
        if value.isdigit() or not allowed:
            return []
        if file_extension(value) not in allowed:
            return [f"{field.label} must be one of these file types: {', '.join(allowed)}."]
        return []

    def render_input(self, field: FieldDefinition, value: Any, context: RenderContext) -> Markup:
        attributes = self.common_attributes(field, context)
        attributes.pop("placeholder", None)
        attributes["type"] = "file"
        allowed = self.allowed_types(field)
        if allowed:
            attributes["accept"] = ",".join(f".{ext}" for ext in allowed)
        if value and "required" in attributes:
            # Replacing an existing upload is optional.
            attributes.pop("required")
            attributes.pop("aria-required", None)
        return markup.render(
            _FILE_INPUT_TEMPLATE,
            attributes=attributes,
            value=value or "",
            name=field.input_name,
            filename=PurePosixPath(urlsplit(value or "").path).name,
            description=self.render_description(field),
        )

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if not value:
            return Markup("")
        name = PurePosixPath(urlsplit(value).path).name or value
        return markup.render(
            '<a class="lf-file-link" href="{{ href }}" download>{{ name }}</a>',
            href=value,
            name=name,
        )


class ImageField(FileField):
    """Reference to an image; displays as ``<img>``."""

    type_name = "image"
    default_allowed_types = ("jpg", "jpeg", "png", "gif", "webp")

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if not value:
            return Markup("")
        return markup.render(
            '<img class="lf-image" src="{{ src }}" alt="{{ alt }}" loading="lazy">',
            src=value,
            alt=field.setting("alt", field.label),
        )


_GALLERY_INPUT_TEMPLATE = """
<div class="lf-gallery-field"{% if max_images %} data-max-images="{{ max_images }}"{% endif %}>
<input {{ attributes|attrs }}>
{% if images %}<div class="lf-gallery-preview">{% for src in images %}<img class="lf-gallery-thumbnail" src="{{ src }}" alt="" loading="lazy">{% endfor %}</div>{% endif %}
</div>{{ description }}
"""

_GALLERY_DISPLAY_TEMPLATE = (
    '<div class="lf-gallery">{% for src in images %}'
    '<a class="lf-gallery-link" href="{{ src }}">'
    '<img class="lf-image" src="{{ src }}" alt="{{ alt }}" loading="lazy"></a>'
    "{% endfor %}</div>"
)


def _split_references(text: str) -> list[Any]:
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except ValueError:
            decoded = None
        if isinstance(decoded, list):
            return decoded
    return text.split(",")


class GalleryField(ImageField):
    """Ordered list of image references.

    Accepts a list, a JSON array or comma-separated text and keeps the
    given order. ``extra['max_images']`` caps the count (0 for no limit).
    """

    type_name = "gallery"
    input_type = "hidden"
    storage_kind = StorageKind.LIST
    default_value = ()

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = _split_references(value.strip())
        elif not isinstance(value, Iterable):
            value = [value]
        return unique_texts(value)

    def max_images(self, field: FieldDefinition) -> int:
        return max(0, int(field.setting("max_images", 0) or 0))

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        messages: list[str] = []
        limit = self.max_images(field)
        if limit and len(value) > limit:
            messages.append(f"{field.label} cannot contain more than {limit} images.")
        allowed = self.allowed_types(field)
        if allowed and any(
            not ref.isdigit() and file_extension(ref) not in allowed for ref in value
        ):
            messages.append(
                f"{field.label} images must be one of these file types: {', '.join(allowed)}."
            )
        return messages

    def to_storage(self, value: Any) -> str | None:
        return dump_list(value)

    def from_storage(self, stored: str | None) -> list[str]:
        return load_list(stored)

    def input_value(self, value: Any) -> str:
        return ",".join(value or ())

    def render_input(self, field: FieldDefinition, value: Any, context: RenderContext) -> Markup:
        attributes = self.common_attributes(field, context)
        attributes.pop("placeholder", None)
        attributes["type"] = "hidden"
        attributes["value"] = self.input_value(value)
        return markup.render(
            _GALLERY_INPUT_TEMPLATE,
            attributes=attributes,
            images=list(value or ()),
            max_images=self.max_images(field),
            description=self.render_description(field),
        )

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if not value:
            return Markup("")
        return markup.render(
            _GALLERY_DISPLAY_TEMPLATE,
            images=list(value),
            alt=field.setting("alt", field.label),
        )
