"""Field type handler contract and shared behavior."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from enum import Enum
from typing import Any, ClassVar

from markupsafe import Markup

from listing_fields.fields import markup
from listing_fields.fields.definitions import FieldDefinition, RenderContext


class Operator(str, Enum):
    """Comparison a filter can apply to a stored value."""

    EQUALS = "equals"
    RANGE = "range"
    CONTAINS = "contains"
    IN = "in"


class StorageKind(str, Enum):
    """How a stored value compares inside the content-item store.

    - ``text``: compare the stored string as-is (ISO dates sort correctly).
    - ``numeric``: cast the stored string to a number before comparing.
    - ``list``: the stored string is a JSON array of strings.
    - ``span``: the stored string is a JSON ``[start, end]`` pair; ranges
      match by overlap and single values by containment.
    """

    TEXT = "text"
    NUMERIC = "numeric"
    LIST = "list"
    SPAN = "span"


_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")
_INLINE_WS_RE = re.compile(r"[ \t]+")


def strip_tags(text: str) -> str:
    """Remove markup tags until none are left."""
    while True:
        stripped = _TAG_RE.sub("", text)
        if stripped == text:
            return stripped
        text = stripped


def single_value(value: Any) -> Any:
    """Collapse a repeated form value to its last entry, like a browser submission."""
    while isinstance(value, (list, tuple)):
        value = value[-1] if value else None
    return value


def clean_text(value: Any) -> str:
    """Strip tags and control characters and collapse whitespace."""
    value = single_value(value)
    if value is None:
        return ""
    text = _CONTROL_RE.sub("", strip_tags(str(value)))
    return _WHITESPACE_RE.sub(" ", text).strip()


def unique_texts(values: Iterable[Any]) -> list[str]:
    """Cleaned, non-empty texts in first-seen order without repeats."""
    seen: dict[str, None] = {}
    for item in values:
        text = clean_text(item)
        if text:
            seen.setdefault(text, None)
    return list(seen)


def dump_list(values: Any) -> str:
    """Encode a list value as a JSON array, keeping its order."""
    return json.dumps(list(values or ()), ensure_ascii=False)


def load_list(stored: str | None) -> list[str]:
    """Decode a JSON array written by ``dump_list``; anything else is empty."""
    if not stored:
        return []
    try:
        decoded = json.loads(stored)
    except ValueError:
        return []
    if not isinstance(decoded, list):
        return []
    return [str(v) for v in decoded]


def clean_multiline(value: Any) -> str:
    """Like clean_text but keeps line breaks."""
    value = single_value(value)
    if value is None:
        return ""
    text = strip_tags(str(value)).replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_RE.sub("", text)
    lines = [_INLINE_WS_RE.sub(" ", line).strip() for line in text.split("\n")]
    return "\n".join(lines).strip()


_INPUT_TEMPLATE = '<input {{ attributes|attrs }}>{{ description }}'
_DESCRIPTION_TEMPLATE = (
    '{% if text %}<p class="lf-field-description" id="{{ id }}-description">{{ text }}</p>{% endif %}'
)


class FieldTypeHandler:
    """Behavior for one field type.

    Handlers are stateless: every method receives the field definition it
    operates on, so one instance serves every field of its type.

    Subclasses set ``type_name`` and override the hooks they need:
    ``sanitize``, ``check`` (type-specific validation), ``to_storage`` /
    ``from_storage``, ``render_input`` and ``format_value``.
    """

    type_name: ClassVar[str] = ""
    input_type: ClassVar[str] = "text"
    operators: ClassVar[frozenset[Operator]] = frozenset(
        {Operator.EQUALS, Operator.CONTAINS, Operator.IN}
    )
    storage_kind: ClassVar[StorageKind] = StorageKind.TEXT
    features: ClassVar[dict[str, bool]] = {
        "searchable": True,
        "filterable": False,
        "sortable": False,
    }
    default_value: ClassVar[Any] = ""

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(type='{self.type_name}')>"

    def supports(self, feature: str) -> bool:
        return self.features.get(feature, False)

    # -- sanitize / validate -------------------------------------------------

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> Any:
        """Normalise raw input. Must be idempotent.

        Scalar types keep only the last of several submitted values.
        """
        return clean_text(value)

    def is_empty(self, value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, str):
            return value.strip() == ""
        if isinstance(value, (list, tuple, set, dict)):
            return len(value) == 0
        return False

    def required_message(self, field: FieldDefinition) -> str:
        return f"{field.label} is required."

    def validate(self, value: Any, field: FieldDefinition) -> list[str]:
        """Validate a sanitized value.

        Returns:
            List of human-readable messages; empty when the value is valid.
        """
        if self.is_empty(value):
            return [self.required_message(field)] if field.required else []
        messages = self.apply_rules(value, field)
        messages.extend(self.check(value, field))
        return messages

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        """Type-specific checks on a non-empty sanitized value."""
        return []

    def apply_rules(self, value: Any, field: FieldDefinition) -> list[str]:
        """Apply the declarative rules shared by all types."""
        rules = field.validation
        messages: list[str] = []

        if isinstance(value, str):
            if rules.min_length is not None and len(value) < rules.min_length:
                messages.append(f"{field.label} must be at least {rules.min_length} characters.")
            if rules.max_length is not None and len(value) > rules.max_length:
                messages.append(f"{field.label} must not exceed {rules.max_length} characters.")
            if rules.pattern is not None and not re.search(rules.pattern, value):
                messages.append(rules.pattern_message or f"{field.label} format is invalid.")

        if rules.callback is not None:
            result = rules.callback(value, field)
            if result is False:
                messages.append(f"{field.label} is invalid.")
            elif isinstance(result, str):
                messages.append(result)
            elif isinstance(result, (list, tuple)):
                messages.extend(str(m) for m in result)
        return messages

    # -- storage ------------------------------------------------------------

    def to_storage(self, value: Any) -> str | None:
        """Encode a sanitized value for the attachment store."""
        if value is None:
            return None
        return str(value)

    def from_storage(self, stored: str | None) -> Any:
        """Exact inverse of ``to_storage``."""
        if stored is None:
            return self.default_value
        return stored

    def encode_value(self, value: Any, field: FieldDefinition) -> str | None:
        """Stored form of one search value, or None when it is not a valid value."""
        if value is None:
            return None
        clean = self.sanitize(value, field)
        if self.is_empty(clean) or self.check(clean, field):
            return None
        return self.to_storage(clean)

    # -- rendering ------------------------------------------------------------

    def render(
        self,
        field: FieldDefinition,
        value: Any,
        context: RenderContext = RenderContext.PUBLIC_FORM,
    ) -> Markup:
        """Render ``value`` for the given context.

        Input contexts produce a form control; the display context produces
        the read-only formatted value.
        """
        if context is RenderContext.DISPLAY:
            return self.format_value(value, field)
        return self.render_input(field, value, context)

    def render_input(self, field: FieldDefinition, value: Any, context: RenderContext) -> Markup:
        attributes = self.common_attributes(field, context)
        attributes["type"] = self.input_type
        attributes["value"] = "" if value is None else self.input_value(value)
        return markup.render(
            _INPUT_TEMPLATE,
            attributes=attributes,
            description=self.render_description(field),
        )

    def input_value(self, value: Any) -> str:
        return str(value)

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if isinstance(value, (list, tuple)):
            return Markup.escape(", ".join(str(v) for v in value))
        return Markup.escape("" if value is None else str(value))

    def common_attributes(self, field: FieldDefinition, context: RenderContext) -> dict[str, Any]:
        attributes: dict[str, Any] = {"id": field.html_id, "name": field.input_name}
        if field.required and context is RenderContext.PUBLIC_FORM:
            attributes["required"] = True
            attributes["aria-required"] = "true"
        if field.placeholder:
            attributes["placeholder"] = field.placeholder
        if field.description:
            attributes["aria-describedby"] = f"{field.html_id}-description"
        if field.css_class:
            attributes["class"] = field.css_class
        attributes.update(field.attributes)
        return attributes

    def render_description(self, field: FieldDefinition) -> Markup:
        return markup.render(_DESCRIPTION_TEMPLATE, text=field.description, id=field.html_id)
