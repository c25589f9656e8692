"""Create or update a listing's field values."""

from __future__ import annotations

from pathlib import Path

import click

from listing_fields.cli import Context, pass_context
from listing_fields.commands._common import (
    EXIT_DATABASE_ERROR,
    EXIT_INVALID,
    load_schema,
    parse_assignments,
    read_json_object,
)
from listing_fields.exceptions import DatabaseError, ListingNotFoundError
from listing_fields.fields.validator import ProcessResult
from listing_fields.store import (
    AttributeWriter,
    ListingStore,
    SqlAttachmentStore,
    TermRelations,
    get_session,
)
from listing_fields.utils.output import console, create_table, error, info, success


@click.command("set")
@click.argument("assignments", nargs=-1)
@click.option("--id", "-i", "item_id", type=int, default=None, help="Listing to update")
@click.option("--new", "new_title", default=None, help="Create a new listing with this title")
@click.option("--content", default=None, help="Listing description text")
@click.option(
    "--status",
    type=click.Choice(["publish", "draft", "pending"]),
    default=None,
    help="Listing status",
)
@click.option("--category", "categories", multiple=True, help="Replace categories (repeatable)")
@click.option("--tag", "tags", multiple=True, help="Replace tags (repeatable)")
@click.option(
    "--json",
    "json_input",
    type=click.Path(dir_okay=False, allow_dash=True, path_type=Path),
    default=None,
    help="Read values from a JSON object file ('-' for stdin)",
)
@pass_context
def cli(
    ctx: Context,
    assignments: tuple[str, ...],
    item_id: int | None,
    new_title: str | None,
    content: str | None,
    status: str | None,
    categories: tuple[str, ...],
    tags: tuple[str, ...],
    json_input: Path | None,
) -> None:
    """Validate and store field values for a listing.

    Only the submitted fields are written; an empty value removes a stored
    one. Nothing is written when any value fails validation.

    \b
    Examples:
      listing-fields set --new "Cafe Luna" --category cafes city=Berlin price_range='$$'
      listing-fields set --id 12 phone='+49 30 1234567' hours=
    """
    if item_id is None and new_title is None:
        error("Give --id ITEM_ID or --new TITLE")
        raise SystemExit(EXIT_INVALID)
    if item_id is not None and new_title is not None:
        error("Give either --id or --new, not both")
        raise SystemExit(EXIT_INVALID)

    schema = load_schema(ctx)
    values = read_json_object(json_input)
    values.update(parse_assignments(assignments))

    try:
        with get_session(ctx.database) as session:
            listings = ListingStore(session)
            if new_title is not None:
                listing = listings.create(new_title, content or "", status=status or "publish")
            else:
                listing = listings.get(item_id)
                if content is not None:
                    listing.content = content
                if status is not None:
                    listing.status = status

            writer = AttributeWriter(schema.validator, SqlAttachmentStore(session))
            # New listings must satisfy required fields; updates only touch what was sent.
            if new_title is not None:
                result = writer.save(listing.id, values)
            elif values:
                result = writer.save(listing.id, values, fields=list(values))
            else:
                result = ProcessResult(valid=True)
            if not result.valid:
                session.rollback()
                table = create_table(title="Nothing saved")
                table.add_column("Field", style="field.name")
                table.add_column("Problem", style="error")
                for name, messages in result.error_messages().items():
                    for message in messages:
                        table.add_row(name, message)
                console.print(table)
                raise SystemExit(EXIT_INVALID)

            relations = TermRelations(session, ttl=ctx.config.cache_ttl if ctx.config else None)
            if categories:
                relations.assign_terms(listing.id, "category", categories)
            if tags:
                relations.assign_terms(listing.id, "tag", tags)
            listings.touch(listing.id)
            listing_id = listing.id
    except ListingNotFoundError as e:
        error(str(e))
        raise SystemExit(EXIT_INVALID)
    except DatabaseError as e:
        error(f"Database error: {e}")
        raise SystemExit(EXIT_DATABASE_ERROR)

    if new_title is not None:
        success(f"Created listing {listing_id}: {new_title}")
    else:
        success(f"Updated listing {listing_id}")
    if values:
        info(f"Saved {len(values)} field value(s)")
