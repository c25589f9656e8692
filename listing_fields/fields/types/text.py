"""Free-text field types."""

from __future__ import annotations

import re
from typing import Any, ClassVar
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Comment
from markupsafe import Markup

from listing_fields.fields import markup
from listing_fields.fields.definitions import FieldDefinition, RenderContext
from listing_fields.fields.types.base import (
    FieldTypeHandler,
    clean_multiline,
    clean_text,
    single_value,
)


class TextField(FieldTypeHandler):
    """Single-line text."""

    type_name = "text"
    features = {"searchable": True, "filterable": True, "sortable": True}


_TEXTAREA_TEMPLATE = (
    "<textarea {{ attributes|attrs }}>{{ value }}</textarea>{{ description }}"
)


class TextareaField(FieldTypeHandler):
    """Multi-line text; line breaks survive sanitizing and display as ``<br>``."""

    type_name = "textarea"
    default_rows: ClassVar[int] = 5
    editor: ClassVar[str | None] = None

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> str:
        return clean_multiline(value)

    def render_input(self, field: FieldDefinition, value: Any, context: RenderContext) -> Markup:
        attributes = self.common_attributes(field, context)
        attributes.setdefault("rows", field.setting("rows", self.default_rows))
        if self.editor:
            attributes.setdefault("data-editor", self.editor)
        return markup.render(
            _TEXTAREA_TEMPLATE,
            attributes=attributes,
            value="" if value is None else str(value),
            description=self.render_description(field),
        )

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if value is None:
            return Markup("")
        return Markup("<br>\n").join(Markup.escape(line) for line in str(value).split("\n"))


# Tags kept in rich text with their allowed attributes; other tags are
# unwrapped so their text survives.
_RICH_TAGS: dict[str, frozenset[str]] = {
    "a": frozenset({"href", "title", "target", "rel"}),
    "img": frozenset({"src", "alt", "width", "height"}),
    **{
        tag: frozenset()
        for tag in (
            "p", "br", "strong", "b", "em", "i", "u", "s", "blockquote",
            "ul", "ol", "li", "h2", "h3", "h4", "h5", "h6", "hr", "code", "pre",
        )
    },
}
# Removed together with everything inside them.
_RICH_DROPPED = ("script", "style", "iframe", "object", "embed", "form", "noscript", "template")
_URL_ATTRIBUTES = frozenset({"href", "src"})
_SAFE_SCHEMES = frozenset({"", "http", "https", "mailto", "tel"})


def _safe_attribute(name: str, value: Any) -> bool:
    if name not in _URL_ATTRIBUTES:
        return True
    try:
        scheme = urlsplit(str(value).strip()).scheme
    except ValueError:
        return False
    return scheme.lower() in _SAFE_SCHEMES


def clean_html(value: Any) -> str:
    """Reduce markup to the rich text allowlist.

    Unknown tags are unwrapped. Attributes outside the allowlist go, which
    takes event handlers with them, as do links with other URL schemes.
    """
    value = single_value(value)
    if value is None:
        return ""
    soup = BeautifulSoup(str(value), "html.parser")
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    for tag in soup.find_all(list(_RICH_DROPPED)):
        # Nested dropped tags go with their parent.
        if not tag.decomposed:
            tag.decompose()
    for tag in soup.find_all(True):
        allowed = _RICH_TAGS.get(tag.name)
        if allowed is None:
            tag.unwrap()
            continue
        tag.attrs = {
            name: attr
            for name, attr in tag.attrs.items()
            if name in allowed and _safe_attribute(name, attr)
        }
    return str(soup).strip()


class RichTextField(TextareaField):
    """Formatted text kept as a restricted subset of HTML.

    Displays as markup after a second pass through the allowlist, so values
    written around the validator cannot inject scripts.
    """

    type_name = "richtext"
    default_rows = 10
    editor = "richtext"
    features = {"searchable": True, "filterable": False, "sortable": False}

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> str:
        return clean_html(value)

    def is_empty(self, value: Any) -> bool:
        if not isinstance(value, str):
            return super().is_empty(value)
        soup = BeautifulSoup(value, "html.parser")
        return not soup.get_text(strip=True) and soup.find("img") is None

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if not value:
            return Markup("")
        return Markup(clean_html(value))


class HiddenField(FieldTypeHandler):
    """Value carried through forms without a visible control."""

    type_name = "hidden"
    input_type = "hidden"
    features = {"searchable": False, "filterable": False, "sortable": False}

    def render_input(self, field: FieldDefinition, value: Any, context: RenderContext) -> Markup:
        attributes = {
            "type": "hidden",
            "id": field.html_id,
            "name": field.input_name,
            "value": "" if value is None else str(value),
        }
        return markup.render("<input {{ attributes|attrs }}>", attributes=attributes)


# Deliberately loose: one @, no whitespace, a dot in the domain.
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class EmailField(FieldTypeHandler):
    """E-mail address, normalised to lower case."""

    type_name = "email"
    input_type = "email"

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> str:
        return clean_text(value).replace(" ", "").lower()

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        if not _EMAIL_RE.match(value):
            return [f"{field.label} must be a valid email address."]
        return []

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if not value:
            return Markup("")
        return markup.render('<a href="mailto:{{ v }}">{{ v }}</a>', v=value)


class UrlField(FieldTypeHandler):
    """Absolute http(s) URL."""

    type_name = "url"
    input_type = "url"

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> str:
        return clean_text(value).replace(" ", "%20")

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            return [f"{field.label} must be a valid URL."]
        return []

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if not value:
            return Markup("")
        target = field.setting("link_target", "_blank")
        return markup.render(
            '<a href="{{ v }}" target="{{ target }}" rel="noopener noreferrer">{{ v }}</a>',
            v=value,
            target=target,
        )


_PHONE_STRIP_RE = re.compile(r"[^0-9+\-(). ]")


class PhoneField(FieldTypeHandler):
    """Telephone number; keeps digits and common separators."""

    type_name = "phone"
    input_type = "tel"

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> str:
        return " ".join(_PHONE_STRIP_RE.sub("", clean_text(value)).split())

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        digits = sum(ch.isdigit() for ch in value)
        if not 7 <= digits <= 15:
            return [f"{field.label} must be a valid phone number."]
        return []

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if not value:
            return Markup("")
        dial = re.sub(r"[^0-9+]", "", value)
        return markup.render('<a href="tel:{{ dial }}">{{ v }}</a>', dial=dial, v=value)


_COLOR_RE = re.compile(r"^#(?:[0-9a-f]{3}|[0-9a-f]{6})$")


class ColorField(FieldTypeHandler):
    """Hex colour such as ``#ff8800``."""

    type_name = "color"
    input_type = "color"
    features = {"searchable": False, "filterable": True, "sortable": False}

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> str:
        text = clean_text(value).lower()
        if text and not text.startswith("#"):
            text = f"#{text}"
        return text

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        if not _COLOR_RE.match(value):
            return [f"{field.label} must be a hex color like #ff8800."]
        return []

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if not value:
            return Markup("")
        return markup.render(
            '<span class="lf-color-swatch" style="background-color: {{ v }}"></span> {{ v }}',
            v=value,
        )
