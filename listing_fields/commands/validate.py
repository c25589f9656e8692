"""Validate field values without storing them."""

from __future__ import annotations

import json
from pathlib import Path

import click

from listing_fields.cli import Context, pass_context
from listing_fields.commands._common import (
    EXIT_INVALID,
    EXIT_SUCCESS,
    load_schema,
    parse_assignments,
    read_json_object,
)
from listing_fields.fields.validator import FieldValidator
from listing_fields.utils.output import console, create_table, success


@click.command("validate")
@click.argument("assignments", nargs=-1)
@click.option(
    "--json",
    "json_input",
    type=click.Path(dir_okay=False, allow_dash=True, path_type=Path),
    default=None,
    help="Read values from a JSON object file ('-' for stdin)",
)
@click.option(
    "--partial",
    is_flag=True,
    default=False,
    help="Only validate the submitted fields (skip missing required ones)",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Report unregistered field names as errors",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format (default: table)",
)
@pass_context
def cli(
    ctx: Context,
    assignments: tuple[str, ...],
    json_input: Path | None,
    partial: bool,
    strict: bool,
    output_format: str,
) -> None:
    """Sanitize and validate field values, reporting every failure.

    Values come from KEY=VALUE arguments and/or a JSON object. Repeat a
    key to submit several values (for checkbox fields).

    \b
    Examples:
      listing-fields validate email=info@example.com price_range='$$'
      echo '{"phone": "abc"}' | listing-fields validate --json -
    """
    schema = load_schema(ctx)
    values = read_json_object(json_input)
    values.update(parse_assignments(assignments))

    validator = schema.validator
    if strict and not validator.strict:
        validator = FieldValidator(schema.fields, strict=True)

    result = validator.process_fields(values, fields=list(values) if partial else None)
    messages = result.error_messages()

    if output_format == "json":
        click.echo(
            json.dumps(
                {"valid": result.valid, "values": result.values, "errors": messages},
                indent=2,
                default=str,
            )
        )
    elif result.valid:
        success(f"All {len(result.values)} value(s) are valid")
    else:
        table = create_table(title=f"Validation failed ({len(messages)} field(s))")
        table.add_column("Field", style="field.name")
        table.add_column("Problem", style="error")
        for name, field_messages in messages.items():
            for message in field_messages:
                table.add_row(name, message)
        console.print(table)

    raise SystemExit(EXIT_SUCCESS if result.valid else EXIT_INVALID)
