"""Render field sets into HTML fragments for the editor, the public form and display."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from markupsafe import Markup

from listing_fields.exceptions import (
    AggregateValidationError,
    DuplicateNameError,
    GroupNotFoundError,
    InvalidConfigError,
    ValidationError,
)
from listing_fields.fields import markup
from listing_fields.fields.definitions import (
    FieldDefinition,
    FieldGroup,
    RenderContext,
    normalize_key,
)
from listing_fields.fields.registry import FieldRegistry

if TYPE_CHECKING:
    from listing_fields.store.protocols import AttachmentStore

log = logging.getLogger(__name__)

_FIELD_TEMPLATE = """
<div class="{{ classes|join(' ') }}" data-field-name="{{ name }}">
{% if label %}
<label class="lf-field-label" for="{{ id }}">{{ label }}{% if required %} <span class="lf-required" aria-hidden="true">*</span>{% endif %}</label>
{% endif %}
<div class="lf-field-input">{{ control }}</div>
{% if errors %}
<div class="lf-field-errors" id="{{ id }}-errors" role="alert">{% for message in errors %}<p>{{ message }}</p>{% endfor %}</div>
{% endif %}
</div>
"""

_DISPLAY_TEMPLATE = """
<div class="lf-display-field lf-display-field--{{ type }}" data-field-name="{{ name }}"><dt>{{ label }}</dt><dd>{{ value }}</dd></div>
"""

_GROUP_TEMPLATE = """
<section class="{{ classes|join(' ') }}" id="lf-group-{{ group.id }}" data-group="{{ group.id }}">
{% if group.title %}
<h3 class="lf-field-group-title">
{%- if group.collapsible %}<button type="button" class="lf-field-group-toggle" aria-expanded="{{ 'false' if group.collapsed else 'true' }}" aria-controls="lf-group-{{ group.id }}-body">{{ group.title }}</button>
{%- else %}{{ group.title }}{% endif %}</h3>
{% endif %}
{% if group.description %}
<p class="lf-field-group-description">{{ group.description }}</p>
{% endif %}
<div class="lf-field-group-body" id="lf-group-{{ group.id }}-body"{% if group.collapsed %} hidden{% endif %}>
{{ body }}
</div>
</section>
"""

_FORM_FIELDS_TEMPLATE = """
<div class="lf-fields lf-fields--{{ audience }}">
{% if token %}<input type="hidden" name="{{ token[0] }}" value="{{ token[1] }}">{% endif %}
{% if item_id is not none %}<input type="hidden" name="lf_item_id" value="{{ item_id }}">{% endif %}
{{ body }}
</div>
"""

_AUDIENCE = {RenderContext.ADMIN: "admin", RenderContext.PUBLIC_FORM: "frontend"}
_GROUP_KEYS = frozenset(FieldGroup.__dataclass_fields__) - {"id"}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return False


def _join(fragments: Iterable[Markup]) -> Markup:
    return Markup("\n").join(f for f in fragments if f)


class FieldRenderer:
    """Turns field definitions and values into markup fragments.

    The render context is an explicit argument on every call. Error state
    set with ``set_errors`` belongs to this instance, so use one renderer
    per request when redisplaying a failed submission.
    """

    def __init__(
        self,
        registry: FieldRegistry,
        attachments: AttachmentStore | None = None,
    ) -> None:
        self.registry = registry
        self.attachments = attachments
        self._groups: Mapping[str, FieldGroup] = MappingProxyType({})
        self._errors: dict[str, list[str]] = {}

    def for_request(self, attachments: AttachmentStore | None = None) -> FieldRenderer:
        """New renderer sharing this one's groups, with clean error state."""
        clone = FieldRenderer(self.registry, attachments or self.attachments)
        clone._groups = self._groups
        return clone

    # -- groups ---------------------------------------------------------------

    def register_group(
        self,
        group_id: str,
        config: Mapping[str, Any] | None = None,
        *,
        replace: bool = False,
    ) -> FieldGroup:
        """Register a named section of fields.

        Raises:
            InvalidConfigError: Empty id or unknown configuration keys.
            DuplicateNameError: Id already registered and ``replace`` is false.
        """
        key = normalize_key(group_id)
        if not key:
            raise InvalidConfigError(str(group_id), "group id cannot be empty")
        if key in self._groups and not replace:
            raise DuplicateNameError("group", key)
        config = dict(config or {})
        unknown = set(config) - _GROUP_KEYS
        if unknown:
            raise InvalidConfigError(key, f"unknown key(s): {', '.join(sorted(unknown))}")
        config["fields"] = tuple(normalize_key(n) for n in config.get("fields", ()))
        group = FieldGroup(id=key, **config)
        self._groups = MappingProxyType({**self._groups, key: group})
        log.debug("Registered field group %s", key)
        return group

    def unregister_group(self, group_id: str) -> FieldGroup:
        key = normalize_key(group_id)
        if key not in self._groups:
            raise GroupNotFoundError(key)
        groups = dict(self._groups)
        group = groups.pop(key)
        self._groups = MappingProxyType(groups)
        return group

    def get_group(self, group_id: str) -> FieldGroup | None:
        return self._groups.get(normalize_key(group_id))

    def groups(self) -> list[FieldGroup]:
        """Registered groups in priority order."""
        return sorted(self._groups.values(), key=lambda g: g.priority)

    # -- error state ----------------------------------------------------------

    def set_errors(
        self,
        errors: AggregateValidationError | Mapping[str, Any] | None,
    ) -> None:
        """Attach validation errors to subsequent renders.

        Accepts the validator's AggregateValidationError or a mapping of field
        name to a message, a list of messages or a ValidationError.
        """
        self._errors = {}
        if errors is None:
            return
        if isinstance(errors, AggregateValidationError):
            self._errors = errors.as_dict()
            return
        for name, value in errors.items():
            if isinstance(value, ValidationError):
                messages = list(value.messages)
            elif isinstance(value, str):
                messages = [value]
            else:
                messages = [str(m) for m in value]
            if messages:
                self._errors[normalize_key(name)] = messages

    def clear_errors(self) -> None:
        self._errors = {}

    @property
    def errors(self) -> dict[str, list[str]]:
        return {name: list(messages) for name, messages in self._errors.items()}

    # -- values ---------------------------------------------------------------

    def load_values(self, item_id: int) -> dict[str, Any]:
        """Read an item's stored values, decoded by each field's handler."""
        if self.attachments is None:
            return {}
        values: dict[str, Any] = {}
        for key, stored in self.attachments.get_all(item_id).items():
            resolved = self.registry.handler_for(key)
            values[key] = stored if resolved is None else resolved[1].from_storage(stored)
        return values

    def _merge(self, values: Mapping[str, Any] | None, item_id: int | None) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        if item_id is not None:
            merged.update(self.load_values(item_id))
        merged.update(values or {})
        return merged

    def _visible(self, definition: FieldDefinition, context: RenderContext) -> bool:
        return context is RenderContext.ADMIN or not definition.admin_only

    # -- rendering ------------------------------------------------------------

    def render_field(
        self,
        name: str,
        value: Any = None,
        context: RenderContext = RenderContext.ADMIN,
        item_id: int | None = None,
    ) -> Markup:
        """Render one field; unknown or hidden fields render as empty markup."""
        resolved = self.registry.handler_for(name)
        if resolved is None:
            log.debug("Not rendering unregistered field '%s'", name)
            return Markup("")
        definition, handler = resolved
        if not self._visible(definition, context):
            return Markup("")

        if value is None and item_id is not None and self.attachments is not None:
            stored = self.attachments.get(item_id, definition.name)
            if stored is not None:
                value = handler.from_storage(stored)

        if context is RenderContext.DISPLAY:
            if value is None:
                return Markup("")
            value = handler.sanitize(value, definition)
            if _is_blank(value):
                return Markup("")
            formatted = handler.format_value(value, definition)
            if not formatted:
                return Markup("")
            return markup.render(
                _DISPLAY_TEMPLATE,
                type=definition.type,
                name=definition.name,
                label=definition.label,
                value=formatted,
            )

        if value is None:
            value = definition.default if definition.default is not None else handler.default_value
        control = handler.render(definition, value, context)
        if handler.input_type == "hidden":
            return control

        errors = self._errors.get(definition.name, [])
        classes = [
            "lf-field",
            f"lf-field--{definition.type}",
            f"lf-field--{_AUDIENCE[context]}",
        ]
        if errors:
            classes.append("lf-field--has-error")
        if definition.required:
            classes.append("lf-field--required")
        return markup.render(
            _FIELD_TEMPLATE,
            classes=classes,
            name=definition.name,
            id=definition.html_id,
            label=definition.label,
            required=definition.required,
            control=control,
            errors=errors,
        )

    def _select(
        self,
        context: RenderContext,
        fields: Iterable[str] | None,
        exclude: Iterable[str] | None,
    ) -> list[FieldDefinition]:
        wanted = {normalize_key(n) for n in fields} if fields is not None else None
        excluded = {normalize_key(n) for n in exclude or ()}
        return [
            d
            for d in self.registry.list_fields()
            if (wanted is None or d.name in wanted)
            and d.name not in excluded
            and self._visible(d, context)
        ]

    def _layout(
        self, definitions: list[FieldDefinition]
    ) -> list[tuple[FieldGroup | None, list[FieldDefinition]]]:
        """Split definitions into groups (priority order) then the ungrouped rest.

        A group holds its listed members first, then fields that name the
        group in their own definition.
        """
        by_name = {d.name: d for d in definitions}
        placed: set[str] = set()
        sections: list[tuple[FieldGroup | None, list[FieldDefinition]]] = []
        for group in self.groups():
            members = [by_name[n] for n in group.fields if n in by_name and n not in placed]
            members.extend(
                d for d in definitions if d.group == group.id and d.name not in group.fields
                and d.name not in placed
            )
            if members:
                placed.update(d.name for d in members)
                sections.append((group, members))
        rest = [d for d in definitions if d.name not in placed]
        if rest:
            sections.append((None, rest))
        return sections

    def render_fields(
        self,
        values: Mapping[str, Any] | None = None,
        context: RenderContext = RenderContext.ADMIN,
        *,
        fields: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
        item_id: int | None = None,
    ) -> Markup:
        """Render every visible field, grouped by section.

        When ``item_id`` is given and a store is attached, stored values fill
        in anything missing from ``values``.
        """
        merged = self._merge(values, item_id)
        fragments: list[Markup] = []
        for group, members in self._layout(self._select(context, fields, exclude)):
            body = _join(self.render_field(d.name, merged.get(d.name), context) for d in members)
            if not body:
                continue
            if group is None or context is RenderContext.DISPLAY:
                fragments.append(body)
            else:
                fragments.append(self._render_section(group, body))
        return _join(fragments)

    def _render_section(self, group: FieldGroup, body: Markup) -> Markup:
        classes = ["lf-field-group", f"lf-field-group--{group.id}"]
        if group.collapsible:
            classes.append("lf-field-group--collapsible")
        if group.collapsed:
            classes.append("lf-field-group--collapsed")
        return markup.render(_GROUP_TEMPLATE, classes=classes, group=group, body=body)

    def render_group(
        self,
        group_id: str,
        values: Mapping[str, Any] | None = None,
        context: RenderContext = RenderContext.ADMIN,
        item_id: int | None = None,
    ) -> Markup:
        """Render one group; an unknown group or one with nothing visible is empty."""
        group = self.get_group(group_id)
        if group is None:
            return Markup("")
        merged = self._merge(values, item_id)
        members = [
            d for d in self._select(context, None, None)
            if d.name in group.fields or d.group == group.id
        ]
        order = {name: i for i, name in enumerate(group.fields)}
        members.sort(key=lambda d: order.get(d.name, len(order)))
        body = _join(self.render_field(d.name, merged.get(d.name), context) for d in members)
        if not body:
            return Markup("")
        if context is RenderContext.DISPLAY:
            return body
        return self._render_section(group, body)

    def render_admin_fields(
        self,
        values: Mapping[str, Any] | None = None,
        *,
        item_id: int | None = None,
        token: tuple[str, str] | None = None,
        fields: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
    ) -> Markup:
        """Editor fields plus the caller's anti-forgery token.

        The token is emitted as a hidden input only; checking it on submit
        is the caller's job.
        """
        body = self.render_fields(
            values, RenderContext.ADMIN, fields=fields, exclude=exclude, item_id=item_id
        )
        return markup.render(
            _FORM_FIELDS_TEMPLATE, audience="admin", token=token, item_id=None, body=body
        )

    def render_frontend_fields(
        self,
        values: Mapping[str, Any] | None = None,
        *,
        item_id: int | None = None,
        token: tuple[str, str] | None = None,
        fields: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
    ) -> Markup:
        """Public submission form fields; editing an item adds its id as a hidden input."""
        body = self.render_fields(
            values, RenderContext.PUBLIC_FORM, fields=fields, exclude=exclude, item_id=item_id
        )
        return markup.render(
            _FORM_FIELDS_TEMPLATE, audience="frontend", token=token, item_id=item_id, body=body
        )

    def render_display_fields(
        self,
        values: Mapping[str, Any] | None = None,
        *,
        item_id: int | None = None,
        fields: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
    ) -> Markup:
        """Read-only definition list of the non-empty public fields."""
        body = self.render_fields(
            values, RenderContext.DISPLAY, fields=fields, exclude=exclude, item_id=item_id
        )
        if not body:
            return Markup("")
        return markup.render('<dl class="lf-display-fields">\n{{ body }}\n</dl>', body=body)
