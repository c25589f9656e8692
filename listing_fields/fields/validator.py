"""Sanitize and validate listing field values.

The validator is the single gate every write path goes through (admin
save, public submission, programmatic ingestion), so all of them see the
same semantics. Failures are returned as structured results and never
raised past this module.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from listing_fields.exceptions import AggregateValidationError, ValidationError
from listing_fields.fields.registry import FieldRegistry

log = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Outcome of ``FieldValidator.process_fields``."""

    valid: bool
    values: dict[str, Any] = field(default_factory=dict)
    errors: AggregateValidationError | None = None

    def error_messages(self) -> dict[str, list[str]]:
        return self.errors.as_dict() if self.errors is not None else {}


def _empty_like(value: Any) -> Any:
    """Empty value with the same shape as the input."""
    if isinstance(value, (list, tuple)):
        return []
    if isinstance(value, str):
        return ""
    return None


class FieldValidator:
    """Orchestrates sanitize -> validate across one or many fields.

    Unregistered field names pass through untouched so callers can attach
    ad-hoc metadata. Set ``strict`` (or pass ``skip_unregistered=False``)
    to report them as errors instead, which is useful while developing a
    schema since a typo in a field name is otherwise silent.
    """

    def __init__(self, registry: FieldRegistry, *, strict: bool = False) -> None:
        self.registry = registry
        self.strict = strict

    # -- single field ---------------------------------------------------------

    def validate_field(
        self, name: str, value: Any, sanitize: bool = True
    ) -> bool | ValidationError:
        """Validate one value.

        Returns:
            True when valid (or when the field is not registered), otherwise a
            ValidationError carrying every message for the field.
        """
        resolved = self.registry.handler_for(name)
        if resolved is None:
            log.debug("Field '%s' is not registered; passing value through", name)
            return True
        definition, handler = resolved

        if definition.required and handler.is_empty(value):
            return ValidationError(definition.name, value, handler.required_message(definition))

        clean = handler.sanitize(value, definition) if sanitize else value
        try:
            messages = handler.validate(clean, definition)
        except Exception as e:
            # A broken custom rule callback must not abort the whole form.
            log.warning("Validation of field '%s' raised: %s", definition.name, e)
            messages = [f"{definition.label} could not be validated."]

        if messages:
            return ValidationError(definition.name, value, messages[0], messages)
        return True

    def sanitize_field(self, name: str, value: Any) -> Any:
        """Apply only the sanitize step; unregistered fields pass through."""
        resolved = self.registry.handler_for(name)
        if resolved is None:
            return value
        definition, handler = resolved
        if definition.required and handler.is_empty(value):
            return _empty_like(value)
        return handler.sanitize(value, definition)

    # -- many fields ------------------------------------------------------------

    def _select_names(
        self,
        values: Mapping[str, Any],
        fields: Iterable[str] | None,
        exclude: Iterable[str] | None,
        include_registered: bool,
    ) -> list[str]:
        if fields:
            names = list(dict.fromkeys(fields))
        else:
            names = [f.name for f in self.registry.list_fields()] if include_registered else []
            names.extend(k for k in values if k not in names)
        excluded = set(exclude or ())
        return [n for n in names if n not in excluded]

    def validate_fields(
        self,
        values: Mapping[str, Any],
        *,
        fields: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
        sanitize: bool = True,
        skip_unregistered: bool | None = None,
    ) -> bool | AggregateValidationError:
        """Validate every registered field plus every submitted key.

        Every failure is collected; validation never stops at the first one.

        Args:
            values: Submitted values keyed by field name.
            fields: Restrict validation to these names.
            exclude: Names to leave out.
            sanitize: Sanitize each value before validating it.
            skip_unregistered: Pass unregistered keys through (default) or
                report them as errors. Defaults to ``not self.strict``.

        Returns:
            True, or an AggregateValidationError with one entry per failed field.
        """
        if skip_unregistered is None:
            skip_unregistered = not self.strict
        errors = AggregateValidationError()

        for name in self._select_names(values, fields, exclude, include_registered=True):
            if not self.registry.has_field(name):
                if name not in values:
                    continue
                if not skip_unregistered:
                    errors.add(ValidationError(name, values[name], f"Unknown field: {name}."))
                else:
                    log.debug("Skipping validation of unregistered field '%s'", name)
                continue
            result = self.validate_field(name, values.get(name), sanitize=sanitize)
            if isinstance(result, ValidationError):
                errors.add(result)

        if errors:
            log.debug("Validation failed for %d field(s): %s", len(errors), ", ".join(errors.errors))
            return errors
        return True

    def sanitize_fields(
        self,
        values: Mapping[str, Any],
        *,
        fields: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
    ) -> dict[str, Any]:
        """Sanitize every submitted key; unregistered keys are copied as-is."""
        names = [n for n in values if not fields or n in set(fields)]
        excluded = set(exclude or ())
        return {n: self.sanitize_field(n, values[n]) for n in names if n not in excluded}

    def process_fields(
        self,
        values: Mapping[str, Any],
        *,
        fields: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
        skip_unregistered: bool | None = None,
    ) -> ProcessResult:
        """Sanitize, validate and return the clean values in one call.

        This is the entry point every write path must use before persisting
        field values.
        """
        fields = list(fields) if fields is not None else None
        exclude = list(exclude) if exclude is not None else None
        sanitized = self.sanitize_fields(values, fields=fields, exclude=exclude)
        result = self.validate_fields(
            sanitized,
            fields=fields,
            exclude=exclude,
            sanitize=False,
            skip_unregistered=skip_unregistered,
        )
        if isinstance(result, AggregateValidationError):
            return ProcessResult(valid=False, values=sanitized, errors=result)
        return ProcessResult(valid=True, values=sanitized)

    def validate_required(self, values: Mapping[str, Any]) -> bool | AggregateValidationError:
        """Report every required field that is missing or empty."""
        errors = AggregateValidationError()
        for definition in self.registry.list_fields():
            if not definition.required:
                continue
            handler = self.registry.get_field_type(definition.type)
            value = values.get(definition.name)
            empty = handler.is_empty(value) if handler is not None else value in (None, "", [])
            if empty:
                message = (
                    handler.required_message(definition)
                    if handler is not None
                    else f"{definition.label} is required."
                )
                errors.add(ValidationError(definition.name, value, message))
        return errors if errors else True
