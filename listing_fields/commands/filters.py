"""List the registered search filters."""

from __future__ import annotations

import json

import click

from listing_fields.cli import Context, pass_context
from listing_fields.commands._common import load_schema
from listing_fields.utils.output import console, create_table, info


@click.command("filters")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format (default: table)",
)
@click.option("--all", "show_all", is_flag=True, default=False, help="Include inactive filters")
@click.option("--sorts", is_flag=True, default=False, help="List the sort keys instead")
@pass_context
def cli(ctx: Context, output_format: str, show_all: bool, sorts: bool) -> None:
    """Show the search filters and the query parameter each one reads."""
    schema = load_schema(ctx)

    if sorts:
        options = schema.engine().orderby_options()
        if output_format == "json":
            click.echo(json.dumps(options, indent=2))
            return
        table = create_table(title="Sort keys")
        table.add_column("Key", style="field.name")
        table.add_column("Label")
        for key, label in options.items():
            table.add_row(key, label)
        console.print(table)
        return

    definitions = schema.filters.get_filters(active_only=not show_all)
    if output_format == "json":
        data = [
            {
                "name": d.name,
                "source": d.source.value,
                "source_key": d.source_key,
                "param": d.param,
                "type": d.type,
                "operators": sorted(op.value for op in d.operators),
                "multiple": d.multiple,
                "active": d.active,
                "priority": d.priority,
            }
            for d in definitions
        ]
        click.echo(json.dumps(data, indent=2))
        return

    if not definitions:
        info("No filters registered")
        return

    table = create_table(title=f"Filters ({len(definitions)})")
    table.add_column("Name", style="field.name")
    table.add_column("Param")
    table.add_column("Source")
    table.add_column("Type", style="field.type")
    table.add_column("Operators")
    for d in definitions:
        name = d.name if d.active else f"{d.name} (inactive)"
        table.add_row(
            name,
            d.param,
            f"{d.source.value}:{d.source_key}",
            d.type,
            ", ".join(sorted(op.value for op in d.operators)),
        )
    console.print(table)
