"""Choice field types: select, radio, multi-valued lists and checkboxes."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from markupsafe import Markup

from listing_fields.fields import markup
from listing_fields.fields.definitions import FieldDefinition, RenderContext
from listing_fields.fields.types.base import (
    FieldTypeHandler,
    Operator,
    StorageKind,
    clean_text,
    dump_list,
    load_list,
    single_value,
    unique_texts,
)

_SELECT_TEMPLATE = """
<select {{ attributes|attrs }}>
{% if empty_option is not none %}<option value="">{{ empty_option }}</option>{% endif %}
{% for value, label in options %}
<option value="{{ value }}"{% if value in selected %} selected{% endif %}>{{ label }}</option>
{% endfor %}
</select>{{ description }}
"""

_RADIO_TEMPLATE = """
<fieldset class="lf-radio-group" id="{{ id }}"{% if required %} aria-required="true"{% endif %}>
{% for value, label in options %}
<label class="lf-radio-label"><input type="{{ input_type }}" name="{{ name }}" value="{{ value }}"
{%- if value in selected %} checked{% endif %}{% if required and input_type == 'radio' %} required{% endif %}> {{ label }}</label>
{% endfor %}
</fieldset>{{ description }}
"""


def _invalid_choice(field: FieldDefinition) -> str:
    return f"{field.label} contains an invalid selection."


class SelectField(FieldTypeHandler):
    """Single choice from the field's option set.

    Unknown values are a validation error rather than silently dropped, so
    stale option sets show up as data-quality problems.
    """

    type_name = "select"
    operators = frozenset({Operator.EQUALS, Operator.IN})
    features = {"searchable": False, "filterable": True, "sortable": True}

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> str:
        return clean_text(value)

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        if value not in field.options:
            return [_invalid_choice(field)]
        return []

    def render_input(self, field: FieldDefinition, value: Any, context: RenderContext) -> Markup:
        attributes = self.common_attributes(field, context)
        attributes.pop("placeholder", None)
        return markup.render(
            _SELECT_TEMPLATE,
            attributes=attributes,
            empty_option=field.setting("empty_option"),
            options=list(field.options.items()),
            selected={"" if value is None else str(value)},
            description=self.render_description(field),
        )

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if self.is_empty(value):
            return Markup("")
        return Markup.escape(field.options.get(str(value), str(value)))


class RadioField(SelectField):
    """Single choice rendered as a radio group."""

    type_name = "radio"

    def render_input(self, field: FieldDefinition, value: Any, context: RenderContext) -> Markup:
        return markup.render(
            _RADIO_TEMPLATE,
            id=field.html_id,
            name=field.input_name,
            input_type="radio",
            required=field.required and context is RenderContext.PUBLIC_FORM,
            options=list(field.options.items()),
            selected={"" if value is None else str(value)},
            description=self.render_description(field),
        )


class MultiSelectField(FieldTypeHandler):
    """Several choices; sanitizes to an ordered, de-duplicated list.

    Stored as a JSON array so the order survives the round trip and list
    membership can be matched on the stored text.
    """

    type_name = "multiselect"
    operators = frozenset({Operator.CONTAINS, Operator.IN})
    storage_kind = StorageKind.LIST
    features = {"searchable": False, "filterable": True, "sortable": False}
    default_value = ()

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return unique_texts([value])
        if isinstance(value, Iterable):
            return unique_texts(value)
        return unique_texts([value])

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        if not isinstance(value, list) or any(v not in field.options for v in value):
            return [_invalid_choice(field)]
        messages: list[str] = []
        rules = field.validation
        if rules.min is not None and len(value) < int(rules.min):
            messages.append(f"{field.label} requires at least {int(rules.min)} selection(s).")
        if rules.max is not None and len(value) > int(rules.max):
            messages.append(f"{field.label} allows at most {int(rules.max)} selection(s).")
        return messages

    def to_storage(self, value: Any) -> str | None:
        return dump_list(value)

    def from_storage(self, stored: str | None) -> list[str]:
        return load_list(stored)

    def labels(self, value: Any, field: FieldDefinition) -> list[str]:
        return [field.options.get(str(v), str(v)) for v in value or []]

    def render_input(self, field: FieldDefinition, value: Any, context: RenderContext) -> Markup:
        attributes = self.common_attributes(field, context)
        attributes.pop("placeholder", None)
        attributes["name"] = f"{field.input_name}[]"
        attributes["multiple"] = True
        return markup.render(
            _SELECT_TEMPLATE,
            attributes=attributes,
            empty_option=None,
            options=list(field.options.items()),
            selected={str(v) for v in value or []},
            description=self.render_description(field),
        )

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        labels = self.labels(value, field)
        if not labels:
            return Markup("")
        if field.setting("display", "inline") == "list":
            return markup.render(
                '<ul class="lf-value-list">{% for l in labels %}<li>{{ l }}</li>{% endfor %}</ul>',
                labels=labels,
            )
        return Markup.escape(", ".join(labels))


class CheckboxGroupField(MultiSelectField):
    """Several choices rendered as checkboxes; displays as a bulleted list."""

    type_name = "checkboxgroup"

    def render_input(self, field: FieldDefinition, value: Any, context: RenderContext) -> Markup:
        return markup.render(
            _RADIO_TEMPLATE,
            id=field.html_id,
            name=f"{field.input_name}[]",
            input_type="checkbox",
            required=field.required and context is RenderContext.PUBLIC_FORM,
            options=list(field.options.items()),
            selected={str(v) for v in value or []},
            description=self.render_description(field),
        )

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        labels = self.labels(value, field)
        if not labels:
            return Markup("")
        if field.setting("display", "list") == "inline":
            return Markup.escape(", ".join(labels))
        return markup.render(
            '<ul class="lf-value-list">{% for l in labels %}<li>{{ l }}</li>{% endfor %}</ul>',
            labels=labels,
        )


_TRUTHY = frozenset({"1", "true", "yes", "on"})

_CHECKBOX_TEMPLATE = """
<label class="lf-checkbox-label"><input {{ attributes|attrs }}> <span class="lf-checkbox-text">{{ text }}</span></label>{{ description }}
"""


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


class CheckboxField(FieldTypeHandler):
    """Single on/off flag."""

    type_name = "checkbox"
    input_type = "checkbox"
    operators = frozenset({Operator.EQUALS})
    features = {"searchable": False, "filterable": True, "sortable": False}
    default_value = False

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> bool:
        return to_bool(single_value(value))

    def is_empty(self, value: Any) -> bool:
        return not to_bool(value)

    def required_message(self, field: FieldDefinition) -> str:
        return f"{field.label} must be checked."

    def to_storage(self, value: Any) -> str | None:
        return "1" if to_bool(value) else "0"

    def from_storage(self, stored: str | None) -> bool:
        return to_bool(stored)

    def render_input(self, field: FieldDefinition, value: Any, context: RenderContext) -> Markup:
        attributes = self.common_attributes(field, context)
        attributes.pop("placeholder", None)
        attributes.update({"type": "checkbox", "value": "1", "checked": to_bool(value)})
        return markup.render(
            _CHECKBOX_TEMPLATE,
            attributes=attributes,
            text=field.setting("checkbox_label", field.label),
            description=self.render_description(field),
        )

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if to_bool(value):
            return Markup.escape(field.setting("yes_label", "Yes"))
        return Markup.escape(field.setting("no_label", "No"))
