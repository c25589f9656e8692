"""Command-line interface for listing-fields."""

from __future__ import annotations

import os
from pathlib import Path

import click

from listing_fields import __version__
from listing_fields.config import Config, load_config
from listing_fields.schema import Schema
from listing_fields.utils.output import (
    error,
    set_color,
    set_verbosity,
    warning,
)


class Context:
    """Shared context for all commands."""

    def __init__(self) -> None:
        self.config: Config | None = None
        self.verbose: bool = False
        self.debug: bool = False
        self.quiet: bool = False
        self._schema: Schema | None = None

    @property
    def schema(self) -> Schema:
        """Schema built from the loaded config on first use."""
        if self._schema is None:
            self._schema = Schema(self.config if self.config is not None else Config())
        return self._schema

    @property
    def database(self) -> Path:
        config = self.config if self.config is not None else Config()
        return config.database


pass_context = click.make_pass_decorator(Context, ensure=True)


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    help="Path to config file (default: ~/.config/listing-fields/config.toml)",
)
@click.option(
    "--database",
    "-d",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the listings database (overrides config)",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug output (implies --verbose)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="Suppress non-error output",
)
@click.version_option(version=__version__, prog_name="listing-fields")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    database: Path | None,
    no_color: bool,
    verbose: bool,
    debug: bool,
    quiet: bool,
) -> None:
    """listing-fields: Custom fields, validation and search for directory listings.

    Define listing fields and search filters, validate and store field
    values, render them as HTML fragments and search listings with a
    compact query language.

    Configuration is loaded from ~/.config/listing-fields/config.toml by default.
    Use --config to specify an alternative configuration file.

    Examples:

        # Show the registered fields
        listing-fields fields

        # Find cafes in Berlin, cheapest first
        listing-fields search 'category:cafes city:Berlin orderby:price_range order:asc'
    """
    # Initialize context
    ctx.ensure_object(Context)
    app_ctx = ctx.obj
    app_ctx.verbose = verbose or debug
    app_ctx.debug = debug
    app_ctx.quiet = quiet

    # Configure module-level verbosity for output helpers
    set_verbosity(verbose=verbose, debug=debug)

    # Configure color output: disabled by --no-color, NO_COLOR env, or config
    disable_color = no_color or os.environ.get("NO_COLOR") is not None

    if disable_color:
        set_color(False)

    # Load configuration
    try:
        loaded_config, warnings = load_config(config)
        app_ctx.config = loaded_config

        # Override database if --database is specified
        if database is not None:
            loaded_config.database = database.expanduser().resolve()

        # Apply config settings
        if not disable_color and not loaded_config.colored_output:
            set_color(False)

        # Show warnings unless quiet
        if not quiet:
            for warn in warnings:
                warning(warn)

    except Exception as e:
        error(str(e))
        ctx.exit(1)


@cli.command("help")
@click.argument("command", required=False, nargs=-1)
@click.pass_context
def help_cmd(ctx: click.Context, command: tuple[str, ...]) -> None:
    """Show help for a command."""
    group = cli
    # Resolve subcommand chain
    for name in command:
        cmd = group.get_command(ctx, name)
        if cmd is None:
            error(f"Unknown command: {name}")
            ctx.exit(1)
            return
        if isinstance(cmd, click.Group):
            group = cmd
        else:
            click.echo(cmd.get_help(ctx))
            return
    # Print group help
    click.echo(group.get_help(ctx))


def register_commands() -> None:
    """Register all commands from the commands package."""
    from listing_fields.commands import discover_commands

    for command in discover_commands():
        cli.add_command(command)


# Register commands on import
register_commands()
