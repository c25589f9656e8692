"""Search listings with the filter query language."""

from __future__ import annotations

import json

import click
from sqlalchemy import select

from listing_fields.cli import Context, pass_context
from listing_fields.commands._common import (
    EXIT_DATABASE_ERROR,
    EXIT_INVALID,
    EXIT_SUCCESS,
    load_schema,
)
from listing_fields.exceptions import DatabaseError, SearchParseError
from listing_fields.search.parser import parse_criteria
from listing_fields.store import Listing, ListingStore, SqlAttachmentStore, get_session
from listing_fields.utils.output import console, create_table, error, info, verbose

# Field columns shown next to id and title when --columns is not given
DEFAULT_COLUMNS = "city,price_range"


@click.command("search")
@click.argument("query", nargs=-1)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "ids", "json"]),
    default="table",
    help="Output format (default: table)",
)
@click.option("--page", "-p", type=int, default=None, help="Result page (overrides page:)")
@click.option("--limit", "-l", type=int, default=None, help="Page size (overrides per_page:)")
@click.option(
    "--columns",
    "-C",
    default=None,
    help=f"Comma-separated field columns for table output (default: {DEFAULT_COLUMNS})",
)
@click.option(
    "--explain",
    is_flag=True,
    default=False,
    help="Print the compiled query plan instead of running it",
)
@pass_context
def cli(
    ctx: Context,
    query: tuple[str, ...],
    output_format: str,
    page: int | None,
    limit: int | None,
    columns: str | None,
    explain: bool,
) -> None:
    """Search listings by keyword, fields, categories and dates.

    QUERY words are joined with spaces. Bare words are keywords;
    name:value pairs use a filter. Commas give alternatives and
    a..b gives a range. Unknown filters and bad values are ignored.

    \b
    Syntax examples:
      listing-fields search coffee
      listing-fields search category:cafes city:Berlin
      listing-fields search 'price_range:$,$$ orderby:title order:asc'
      listing-fields search date:2024-01-01..2024-06-30 per_page:20
      listing-fields search 'keyword:"late night" page:2'
    """
    schema = load_schema(ctx)
    query_string = " ".join(query)

    try:
        criteria = parse_criteria(query_string)
    except SearchParseError as e:
        error(f"Invalid search query: {e}")
        raise SystemExit(EXIT_INVALID)

    if page is not None:
        criteria.page = page
        criteria.offset = None
    if limit is not None:
        criteria.page_size = limit
        criteria.limit = None

    if explain:
        for line in schema.engine().compile(criteria).describe():
            console.print(line, markup=False)
        raise SystemExit(EXIT_SUCCESS)

    col_list = [c.strip() for c in (columns or DEFAULT_COLUMNS).split(",") if c.strip()]
    for c in col_list:
        if not schema.fields.has_field(c):
            error(
                f"Unknown field column: {c}",
                hint=f"Available: {', '.join(d.name for d in schema.fields)}",
            )
            raise SystemExit(EXIT_INVALID)

    try:
        with get_session(ctx.database) as session:
            result = schema.engine(ListingStore(session)).search(criteria)
            verbose(
                f"Matched {result.total} listing(s) with "
                f"{len(result.plan.predicates)} predicate(s)"
            )

            if not result.item_ids:
                info(f"No results for: {query_string or '(all listings)'}")
                raise SystemExit(EXIT_SUCCESS)

            if output_format == "ids":
                for item_id in result.item_ids:
                    click.echo(str(item_id))
                raise SystemExit(EXIT_SUCCESS)

            titles = dict(
                session.execute(
                    select(Listing.id, Listing.title).where(Listing.id.in_(result.item_ids))
                ).all()
            )
            renderer = schema.renderer(SqlAttachmentStore(session))
            rows = [
                (item_id, titles.get(item_id, ""), renderer.load_values(item_id))
                for item_id in result.item_ids
            ]

            if output_format == "json":
                data = {
                    "total": result.total,
                    "page": result.page,
                    "pages": result.pages,
                    "page_size": result.page_size,
                    "items": [
                        {"id": item_id, "title": title, "values": values}
                        for item_id, title, values in rows
                    ],
                }
                click.echo(json.dumps(data, indent=2, default=str))
            else:
                _print_table(schema, rows, col_list, result, query_string)
    except DatabaseError as e:
        error(f"Database error: {e}")
        raise SystemExit(EXIT_DATABASE_ERROR)

    raise SystemExit(EXIT_SUCCESS)


def _print_table(schema, rows, col_list, result, query_string: str) -> None:
    table = create_table(
        title=f"{query_string or 'All listings'}: {result.total} result(s), "
        f"page {result.page}/{result.pages}"
    )
    table.add_column("ID", justify="right")
    table.add_column("Title", style="field.name")
    for c in col_list:
        table.add_column(schema.fields.get_field(c).label)
    for item_id, title, values in rows:
        cells = []
        for c in col_list:
            value = values.get(c)
            if isinstance(value, (list, tuple)):
                value = ", ".join(str(v) for v in value)
            cells.append("" if value is None else str(value))
        table.add_row(str(item_id), title, *cells)
    console.print(table)
