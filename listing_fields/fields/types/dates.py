"""Date and time field types, stored as ISO-8601 text."""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import date, datetime, time
from typing import Any, ClassVar

from markupsafe import Markup

from listing_fields.fields import markup
from listing_fields.fields.definitions import FieldDefinition, RenderContext
from listing_fields.fields.types.base import (
    FieldTypeHandler,
    Operator,
    StorageKind,
    clean_text,
    single_value,
)


class DateField(FieldTypeHandler):
    """Calendar date.

    ISO text sorts chronologically, so range filters compare the stored
    strings directly.
    """

    type_name = "date"
    input_type = "date"
    operators = frozenset({Operator.EQUALS, Operator.RANGE, Operator.IN})
    storage_kind = StorageKind.TEXT
    features = {"searchable": False, "filterable": True, "sortable": True}
    default_value = None
    display_format: ClassVar[str] = "%B %d, %Y"
    invalid_message: ClassVar[str] = "{label} must be a valid date (YYYY-MM-DD)."

    def parse(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value))
        except ValueError:
            return None

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> Any:
        value = single_value(value)
        if value is None:
            return None
        if isinstance(value, str):
            value = clean_text(value)
            if value == "":
                return None
        parsed = self.parse(value)
        return clean_text(value) if parsed is None else parsed

    def is_valid(self, value: Any) -> bool:
        return isinstance(value, date) and not isinstance(value, datetime)

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        if not self.is_valid(value):
            return [self.invalid_message.format(label=field.label)]
        messages: list[str] = []
        rules = field.validation
        low = self.parse(rules.min) if rules.min is not None else None
        high = self.parse(rules.max) if rules.max is not None else None
        if low is not None and value < low:
            messages.append(f"{field.label} must be on or after {low.isoformat()}.")
        if high is not None and value > high:
            messages.append(f"{field.label} must be on or before {high.isoformat()}.")
        return messages

    def to_storage(self, value: Any) -> str | None:
        if value is None:
            return None
        if self.is_valid(value):
            return value.isoformat()
        return str(value)

    def from_storage(self, stored: str | None) -> Any:
        if stored is None or stored == "":
            return None
        parsed = self.parse(stored)
        return stored if parsed is None else parsed

    def input_value(self, value: Any) -> str:
        return self.to_storage(value) or ""

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if not self.is_valid(value):
            return Markup.escape("" if value is None else str(value))
        return Markup.escape(value.strftime(field.setting("format", self.display_format)))


class DateTimeField(DateField):
    """Date with time of day."""

    type_name = "datetime"
    input_type = "datetime-local"
    display_format = "%B %d, %Y %H:%M"
    invalid_message = "{label} must be a valid date and time."

    def parse(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime.combine(value, time())
        try:
            return datetime.fromisoformat(str(value))
        except ValueError:
            return None

    def is_valid(self, value: Any) -> bool:
        return isinstance(value, datetime)


class TimeField(DateField):
    """Time of day such as opening hours."""

    type_name = "time"
    input_type = "time"
    display_format = "%H:%M"
    invalid_message = "{label} must be a valid time (HH:MM)."

    def parse(self, value: Any) -> Any:
        if isinstance(value, time):
            return value
        if isinstance(value, datetime):
            return value.time()
        try:
            return time.fromisoformat(str(value))
        except ValueError:
            return None

    def is_valid(self, value: Any) -> bool:
        return isinstance(value, time)


_DATERANGE_TEMPLATE = """
<div class="lf-daterange" id="{{ id }}">
<span class="lf-daterange-start"><label for="{{ id }}-start">Start date</label> <input {{ start|attrs }}></span>
<span class="lf-daterange-end"><label for="{{ id }}-end">End date</label> <input {{ end|attrs }}></span>
</div>{{ description }}
"""

_SIDES = ("start", "end")


class DateRangeField(DateField):
    """Start and end dates, either of which may be left open.

    Input may be a ``{"start", "end"}`` mapping (as posted by the form), a
    pair, or ``start..end`` text; a single date is a one-day range. Stored
    as a JSON ``[start, end]`` pair so filters can match by overlap.
    """

    type_name = "daterange"
    input_type = "date"
    operators = frozenset({Operator.RANGE, Operator.EQUALS, Operator.IN})
    storage_kind = StorageKind.SPAN
    features = {"searchable": False, "filterable": True, "sortable": False}
    invalid_message = "{label} must be a date range (YYYY-MM-DD..YYYY-MM-DD)."

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            text = clean_text(value)
            if text == "":
                return None
            value = self._split(text)
        if isinstance(value, Mapping):
            parts = (value.get("start"), value.get("end"))
        elif isinstance(value, (list, tuple)) and len(value) == 2:
            parts = tuple(value)
        else:
            return clean_text(value)
        start, end = (self._side(part) for part in parts)
        if start is None and end is None:
            return None
        return (start, end)

    def _split(self, text: str) -> Any:
        if text[0] in "[{":
            try:
                return json.loads(text)
            except ValueError:
                return text
        if ".." in text:
            start, _, end = text.partition("..")
            return (start, end)
        return (text, text)

    def _side(self, value: Any) -> Any:
        if isinstance(value, date):
            return self.parse(value)
        text = "" if value is None else clean_text(value)
        if not text:
            return None
        parsed = self.parse(text)
        return text if parsed is None else parsed

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        if not isinstance(value, tuple):
            return [self.invalid_message.format(label=field.label)]
        messages = [
            f"{field.label} {side} date must be in YYYY-MM-DD format."
            for side, part in zip(_SIDES, value)
            if part is not None and not self.is_valid(part)
        ]
        if messages:
            return messages

        start, end = value
        if field.required and (start is None or end is None):
            return [f"{field.label} requires both start and end dates."]
        if start is not None and end is not None and end < start:
            messages.append(f"{field.label} end date cannot be before the start date.")
        rules = field.validation
        low = self.parse(rules.min) if rules.min is not None else None
        high = self.parse(rules.max) if rules.max is not None else None
        for side, part in zip(_SIDES, value):
            if part is None:
                continue
            if low is not None and part < low:
                messages.append(
                    f"{field.label} {side} date must be on or after {low.isoformat()}."
                )
            if high is not None and part > high:
                messages.append(
                    f"{field.label} {side} date must be on or before {high.isoformat()}."
                )
        return messages

    def to_storage(self, value: Any) -> str | None:
        if value is None:
            return None
        if not isinstance(value, tuple):
            return str(value)
        return json.dumps([self._side_storage(part) for part in value])

    def _side_storage(self, part: Any) -> str | None:
        if part is None:
            return None
        return part.isoformat() if self.is_valid(part) else str(part)

    def from_storage(self, stored: str | None) -> Any:
        if stored is None or stored == "":
            return None
        try:
            decoded = json.loads(stored)
        except ValueError:
            return stored
        if not isinstance(decoded, list) or len(decoded) != 2:
            return stored
        return tuple(None if part is None else self._side(part) for part in decoded)

    def encode_value(self, value: Any, field: FieldDefinition) -> str | None:
        """A search value is one date; ranges are matched by overlap."""
        if value is None:
            return None
        parsed = self.parse(clean_text(single_value(value)))
        return None if parsed is None else parsed.isoformat()

    def render_input(self, field: FieldDefinition, value: Any, context: RenderContext) -> Markup:
        common = self.common_attributes(field, context)
        common.pop("placeholder", None)
        rules = field.validation
        low = self.parse(rules.min) if rules.min is not None else None
        high = self.parse(rules.max) if rules.max is not None else None
        if low is not None:
            common["min"] = low.isoformat()
        if high is not None:
            common["max"] = high.isoformat()

        parts = value if isinstance(value, tuple) else (None, None)
        inputs = {}
        for side, part in zip(_SIDES, parts):
            inputs[side] = {
                **common,
                "type": "date",
                "id": f"{field.html_id}-{side}",
                "name": f"{field.input_name}[{side}]",
                "value": self._side_storage(part) or "",
            }
        return markup.render(
            _DATERANGE_TEMPLATE,
            id=field.html_id,
            start=inputs["start"],
            end=inputs["end"],
            description=self.render_description(field),
        )

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if not isinstance(value, tuple):
            return Markup.escape("" if value is None else str(value))
        display = field.setting("format", self.display_format)
        shown = [
            part.strftime(display) if self.is_valid(part) else str(part)
            for part in value
            if part is not None
        ]
        return Markup.escape(field.setting("separator", " - ").join(shown))
