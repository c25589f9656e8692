"""Write a starter configuration (and optionally a starter schema file)."""

from __future__ import annotations

import re
from importlib import resources
from pathlib import Path

import click
import tomli_w

from listing_fields.cli import Context, pass_context
from listing_fields.commands._common import EXIT_INVALID
from listing_fields.config import get_default_config_path
from listing_fields.defaults import STARTER_SCHEMA
from listing_fields.schema import Schema
from listing_fields.utils.output import console, create_table, error, info, success

_SCHEMA_LINE_RE = re.compile(r"^# schema = .*$", re.MULTILINE)


def _load_example_config() -> str:
    """Load the example configuration from package data."""
    return resources.files("listing_fields").joinpath("config.example.toml").read_text()


def _config_text(schema_path: Path | None) -> str:
    """Example config, pointing ``[paths] schema`` at ``schema_path`` when given."""
    text = _load_example_config()
    if schema_path is None:
        return text
    line = tomli_w.dumps({"schema": str(schema_path)}).strip()
    return _SCHEMA_LINE_RE.sub(lambda _: line, text, count=1)


def _check_starter_schema() -> Schema:
    """Register the starter schema on top of the defaults; registration errors propagate."""
    schema = Schema(defaults=True)
    schema.load(STARTER_SCHEMA)
    return schema


def _print_starter_summary(schema: Schema) -> None:
    table = create_table(title="Starter schema")
    table.add_column("Field", style="field.name")
    table.add_column("Type")
    table.add_column("Filter")
    for name in STARTER_SCHEMA["fields"]:
        field = schema.fields.get_field(name)
        table.add_row(name, field.type, "yes" if schema.filters.has_filter(name) else "")
    console.print(table)


@click.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=False,
    help="Overwrite existing files",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output path for config file (default: ~/.config/listing-fields/config.toml)",
)
@click.option(
    "--schema",
    "with_schema",
    is_flag=True,
    default=False,
    help="Also write schema.toml with example fields, filters and groups next to the config",
)
@pass_context
def cli(ctx: Context, force: bool, output: Path | None, with_schema: bool) -> None:
    """Create a configuration file with default settings.

    With --schema, a starter schema file (a rich text description, seats,
    amenities, an open season date range and a photo gallery) is written
    beside it and the config's [paths] schema points at it.

    \b
    Examples:
      listing-fields init-config
      listing-fields init-config --output ./listing-fields.toml --schema
    """
    config_path = output if output is not None else get_default_config_path()
    config_path = config_path.expanduser().resolve()
    schema_path = config_path.with_name("schema.toml") if with_schema else None

    for path in (config_path, schema_path):
        if path is not None and path.exists() and not force:
            error(f"File already exists: {path}", hint="Use --force to overwrite")
            raise SystemExit(EXIT_INVALID)

    config_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        if schema_path is not None:
            schema = _check_starter_schema()
            with open(schema_path, "wb") as f:
                tomli_w.dump(STARTER_SCHEMA, f)
        config_path.write_text(_config_text(schema_path))
    except OSError as e:
        error(f"Failed to write config file: {e}")
        raise SystemExit(EXIT_INVALID)

    success(f"Created config file: {config_path}")
    if schema_path is not None:
        success(f"Created schema file: {schema_path}")
        _print_starter_summary(schema)
        info("Edit the schema file to define your own fields.")
    else:
        info("Edit this file to customize your settings.")
