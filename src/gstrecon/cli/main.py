"""Main CLI entry point."""

import logging

import click
from gstrecon.config import load_settings
from gstrecon.database.factories import create_sqlite_database
from gstrecon.domain.errors import ValidationError

# Import and register all commands at module level
from gstrecon.cli.commands import company, invoice, rule, gstr2b, record


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides GSTRECON_DB_PATH environment variable)",
    envvar="GSTRECON_DB_PATH",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """gstrecon - GSTR-2B reconciliation.

    Import GSTR-2B statements downloaded from the GST portal and match every
    line against the vendor invoices in your books.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = load_settings()
        except ValidationError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["settings"] = settings
        ctx.call_on_close(db.disconnect)


# Register all commands
company.register_commands(cli)
invoice.register_commands(cli)
rule.register_commands(cli)
gstr2b.register_commands(cli)
record.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
