"""Numeric field types backed by ``decimal.Decimal``."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Any

from markupsafe import Markup

from listing_fields.fields.definitions import FieldDefinition
from listing_fields.fields.types.base import (
    FieldTypeHandler,
    Operator,
    StorageKind,
    clean_text,
    single_value,
)

# Locale-independent: "." is the only decimal separator accepted.
_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

# Largest decimal exponent accepted either way; plain notation stays short.
MAX_EXPONENT = 30


def to_decimal(value: Any) -> Decimal | None:
    """Parse a value into a finite Decimal, or None when it isn't numeric.

    Numbers whose exponent falls outside ``MAX_EXPONENT`` either way are
    treated as non-numeric.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, int):
        if value.bit_length() > 128:
            return None
        dec = Decimal(value)
    elif isinstance(value, float):
        dec = Decimal(repr(value))
    else:
        text = str(value).strip()
        if not _NUMBER_RE.match(text):
            return None
        try:
            dec = Decimal(text)
        except InvalidOperation:
            return None
    if not dec.is_finite() or not in_range(dec):
        return None
    return dec


def in_range(number: Decimal) -> bool:
    """True when plain notation of ``number`` stays within ``MAX_EXPONENT`` digits of the point."""
    if number.is_zero():
        return abs(number.as_tuple().exponent) <= MAX_EXPONENT
    return abs(number.adjusted()) <= MAX_EXPONENT


class NumberField(FieldTypeHandler):
    """Arbitrary-precision number.

    Sanitizing never coerces: empty input becomes ``None`` and anything
    that does not parse is kept as text so validation can report it.
    """

    type_name = "number"
    input_type = "number"
    operators = frozenset({Operator.EQUALS, Operator.RANGE, Operator.IN})
    storage_kind = StorageKind.NUMERIC
    features = {"searchable": False, "filterable": True, "sortable": True}
    default_value = None

    def sanitize(self, value: Any, field: FieldDefinition | None = None) -> Decimal | str | None:
        value = single_value(value)
        if value is None:
            return None
        if isinstance(value, str):
            value = clean_text(value)
            if value == "":
                return None
        number = self.parse(value)
        if number is None:
            return clean_text(value)
        try:
            return self.quantize(number, field)
        except InvalidOperation:
            return clean_text(value)

    def parse(self, value: Any) -> Decimal | None:
        return to_decimal(value)

    def quantize(self, number: Decimal, field: FieldDefinition | None) -> Decimal:
        return number

    def looks_numeric(self, value: Any) -> bool:
        return isinstance(value, str) and _NUMBER_RE.match(value.strip()) is not None

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        if not isinstance(value, Decimal):
            if self.looks_numeric(value):
                return [f"{field.label} is out of range."]
            return [f"{field.label} must be a number."]
        messages: list[str] = []
        rules = field.validation
        low = to_decimal(rules.min) if rules.min is not None else None
        high = to_decimal(rules.max) if rules.max is not None else None
        if low is not None and value < low:
            messages.append(f"{field.label} must be at least {low}.")
        if high is not None and value > high:
            messages.append(f"{field.label} must be no more than {high}.")
        return messages

    def to_storage(self, value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, Decimal):
            # Plain notation so stored values cast cleanly to numbers.
            return format(value, "f")
        return str(value)

    def from_storage(self, stored: str | None) -> Decimal | str | None:
        if stored is None or stored == "":
            return None
        number = to_decimal(stored)
        return stored if number is None else number

    def input_value(self, value: Any) -> str:
        return self.to_storage(value) or ""

    def format_value(self, value: Any, field: FieldDefinition) -> Markup:
        if not isinstance(value, Decimal):
            return Markup.escape("" if value is None else str(value))
        return Markup.escape(self.format_number(value, field))

    def format_number(self, value: Decimal, field: FieldDefinition) -> str:
        if value == value.to_integral_value():
            return f"{value.to_integral_value():,}"
        return f"{value:,}"


class DecimalField(NumberField):
    """Fixed-precision number; ``extra['precision']`` places (default 2)."""

    type_name = "decimal"

    def quantize(self, number: Decimal, field: FieldDefinition | None) -> Decimal:
        precision = int(field.setting("precision", 2)) if field is not None else 2
        # Room for every digit the exponent limit allows on both sides of the point.
        context = Context(prec=2 * MAX_EXPONENT + max(precision, 0) + 2)
        return number.quantize(
            Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP, context=context
        )

    def format_number(self, value: Decimal, field: FieldDefinition) -> str:
        return f"{value:,}"


_CURRENCY_NOISE_RE = re.compile(r"[\s,$€£¥]")


class CurrencyField(DecimalField):
    """Money amount with two decimal places.

    Accepts ``$1,234.5`` style input. Display uses ``extra['currency_symbol']``
    (default ``$``) placed per ``extra['symbol_position']`` (``before``/``after``).
    """

    type_name = "currency"

    def parse(self, value: Any) -> Decimal | None:
        if isinstance(value, str):
            value = _CURRENCY_NOISE_RE.sub("", value)
        return to_decimal(value)

    def looks_numeric(self, value: Any) -> bool:
        if isinstance(value, str):
            value = _CURRENCY_NOISE_RE.sub("", value)
        return super().looks_numeric(value)

    def check(self, value: Any, field: FieldDefinition) -> list[str]:
        messages = super().check(value, field)
        if (
            isinstance(value, Decimal)
            and value < 0
            and not field.setting("allow_negative", False)
        ):
            messages.append(f"{field.label} cannot be negative.")
        return messages

    def format_number(self, value: Decimal, field: FieldDefinition) -> str:
        symbol = field.setting("currency_symbol", "$")
        amount = f"{abs(value):,.2f}"
        sign = "-" if value < 0 else ""
        if field.setting("symbol_position", "before") == "after":
            return f"{sign}{amount} {symbol}"
        return f"{sign}{symbol}{amount}"
