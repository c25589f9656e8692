"""List the registered listing fields."""

from __future__ import annotations

import json

import click

from listing_fields.cli import Context, pass_context
from listing_fields.commands._common import load_schema
from listing_fields.utils.output import console, create_table, info


def _flags(definition) -> str:
    flags = [
        name
        for name in ("required", "searchable", "filterable", "admin_only")
        if getattr(definition, name)
    ]
    return ", ".join(flags)


@click.command("fields")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format (default: table)",
)
@click.option("--type", "-t", "field_type", default=None, help="Only fields of this type")
@click.option("--types", "show_types", is_flag=True, default=False, help="List field types instead")
@pass_context
def cli(ctx: Context, output_format: str, field_type: str | None, show_types: bool) -> None:
    """Show the registered fields in display order."""
    schema = load_schema(ctx)

    if show_types:
        table = create_table(title="Field types")
        table.add_column("Type", style="field.type")
        table.add_column("Storage")
        table.add_column("Operators")
        for name, handler in sorted(schema.fields.field_types().items()):
            operators = ", ".join(sorted(op.value for op in handler.operators))
            table.add_row(name, handler.storage_kind.value, operators)
        console.print(table)
        return

    definitions = schema.fields.list_fields(type=field_type)
    if output_format == "json":
        data = [
            {
                "name": d.name,
                "type": d.type,
                "label": d.label,
                "required": d.required,
                "searchable": d.searchable,
                "filterable": d.filterable,
                "admin_only": d.admin_only,
                "priority": d.priority,
                "group": d.group,
                "options": dict(d.options),
            }
            for d in definitions
        ]
        click.echo(json.dumps(data, indent=2))
        return

    if not definitions:
        info("No fields registered")
        return

    table = create_table(title=f"Fields ({len(definitions)})")
    table.add_column("Name", style="field.name")
    table.add_column("Type", style="field.type")
    table.add_column("Label")
    table.add_column("Priority", justify="right")
    table.add_column("Flags")
    for d in definitions:
        table.add_row(d.name, d.type, d.label, str(d.priority), _flags(d))
    console.print(table)
