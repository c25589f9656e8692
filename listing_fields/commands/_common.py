"""Helpers shared by the listing-fields commands."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from listing_fields.cli import Context
from listing_fields.exceptions import ListingFieldsError
from listing_fields.schema import Schema
from listing_fields.utils.output import error

EXIT_SUCCESS = 0
EXIT_INVALID = 1
EXIT_SCHEMA_ERROR = 2
EXIT_DATABASE_ERROR = 3


def load_schema(ctx: Context) -> Schema:
    """Build the command's schema, exiting on a broken schema file."""
    try:
        return ctx.schema
    except ListingFieldsError as e:
        error(f"Cannot load schema: {e}", hint="Check the [paths] schema file in your config")
        raise SystemExit(EXIT_SCHEMA_ERROR)


def parse_assignments(assignments: tuple[str, ...]) -> dict[str, Any]:
    """Turn ``key=value`` arguments into a dict; repeated keys collect into a list."""
    values: dict[str, Any] = {}
    for item in assignments:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            error(f"Invalid assignment: {item}", hint="Use key=value")
            raise SystemExit(EXIT_INVALID)
        key = key.strip()
        if key in values:
            existing = values[key]
            values[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            values[key] = value
    return values


def read_json_object(source: Path | None) -> dict[str, Any]:
    """Read a JSON object from a file, or from stdin when ``source`` is ``-``."""
    if source is None:
        return {}
    try:
        if str(source) == "-":
            data = json.load(sys.stdin)
        else:
            data = json.loads(source.read_text())
    except (OSError, json.JSONDecodeError) as e:
        error(f"Cannot read JSON input: {e}")
        raise SystemExit(EXIT_INVALID)
    if not isinstance(data, dict):
        error("JSON input must be an object of field name to value")
        raise SystemExit(EXIT_INVALID)
    return data
