"""Show a listing with its field values."""

from __future__ import annotations

import json

import click

from listing_fields.cli import Context, pass_context
from listing_fields.commands._common import EXIT_DATABASE_ERROR, EXIT_INVALID, load_schema
from listing_fields.exceptions import DatabaseError, ListingNotFoundError
from listing_fields.fields.definitions import RenderContext
from listing_fields.store import ListingStore, SqlAttachmentStore, TermRelations, get_session
from listing_fields.utils.output import console, create_table, error


@click.command("show")
@click.argument("item_id", type=int)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "html", "json"]),
    default="table",
    help="Output format (default: table)",
)
@click.option(
    "--context",
    "render_context",
    type=click.Choice([c.value for c in RenderContext]),
    default=RenderContext.DISPLAY.value,
    help="Audience for --format html (default: display)",
)
@pass_context
def cli(ctx: Context, item_id: int, output_format: str, render_context: str) -> None:
    """Render one listing's fields.

    \b
    Output formats:
      --format table   Field values as a table (default)
      --format html    HTML fragment for --context display, admin or public-form
      --format json    Stored values as JSON
    """
    schema = load_schema(ctx)

    try:
        with get_session(ctx.database) as session:
            listing = ListingStore(session).get(item_id)
            renderer = schema.renderer(SqlAttachmentStore(session))
            relations = TermRelations(session)
            terms = {
                "category": relations.terms_for(item_id, "category"),
                "tag": relations.terms_for(item_id, "tag"),
            }
            values = renderer.load_values(item_id)

            if output_format == "html":
                context = RenderContext(render_context)
                if context is RenderContext.ADMIN:
                    html = renderer.render_admin_fields(item_id=item_id)
                elif context is RenderContext.PUBLIC_FORM:
                    html = renderer.render_frontend_fields(item_id=item_id)
                else:
                    html = renderer.render_display_fields(item_id=item_id)
                click.echo(str(html))
                return

            if output_format == "json":
                data = {
                    "id": listing.id,
                    "title": listing.title,
                    "status": listing.status,
                    "created": listing.created,
                    "modified": listing.modified,
                    "terms": terms,
                    "values": values,
                }
                click.echo(json.dumps(data, indent=2, default=str))
                return

            table = create_table(title=f"{listing.title} (#{listing.id}, {listing.status})")
            table.add_column("Field", style="field.name")
            table.add_column("Value")
            for definition in schema.fields.list_fields():
                if definition.name in values:
                    table.add_row(definition.label, _display(values[definition.name]))
            for key in sorted(set(values) - {d.name for d in schema.fields}):
                table.add_row(f"{key} [dim](unregistered)[/dim]", _display(values[key]))
            for taxonomy, names in terms.items():
                if names:
                    table.add_row(f"[dim]{taxonomy}[/dim]", ", ".join(names))
            console.print(table)
    except ListingNotFoundError as e:
        error(str(e))
        raise SystemExit(EXIT_INVALID)
    except DatabaseError as e:
        error(f"Database error: {e}")
        raise SystemExit(EXIT_DATABASE_ERROR)


def _display(value) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)
