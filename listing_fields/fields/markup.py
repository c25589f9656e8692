"""Jinja2 environment shared by field handlers and the renderer."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from jinja2 import Environment, StrictUndefined, Template
from markupsafe import Markup, escape


def build_attributes(attributes: Mapping[str, Any]) -> Markup:
    """Render an HTML attribute string.

    ``True`` renders a bare attribute, ``False``/``None`` drop it and
    everything else is escaped into ``key="value"``.
    """
    parts: list[str] = []
    for key, value in attributes.items():
        if value is True:
            parts.append(str(escape(key)))
        elif value is not False and value is not None:
            parts.append(f'{escape(key)}="{escape(str(value))}"')
    return Markup(" ".join(parts))


def _make_env() -> Environment:
    """Create the autoescaping environment used for all field markup."""
    env = Environment(
        autoescape=True,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=False,
    )
    env.filters["attrs"] = build_attributes
    return env


_env = _make_env()
_compiled: dict[str, Template] = {}


def render(template_str: str, **context: Any) -> Markup:
    """Render a template string with autoescaping and return safe markup.

    Compiled templates are memoised by source text; templates are module
    constants so the memo stays small.
    """
    template = _compiled.get(template_str)
    if template is None:
        template = _env.from_string(template_str)
        _compiled[template_str] = template
    return Markup(template.render(**context).strip())
