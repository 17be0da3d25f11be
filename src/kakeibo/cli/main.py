"""Main CLI entry point."""

import logging

import click
from kakeibo.config import load_settings
from kakeibo.database.factories import create_sqlite_database

# Import and register all commands at module level
from kakeibo.cli.commands import (
    account,
    category,
    history,
    import_cmd,
    init_categories,
    mapping,
    rule,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides KAKEIBO_DB_PATH environment variable)",
    envvar="KAKEIBO_DB_PATH",
)
@click.option("-v", "--verbose", is_flag=True, help="Log pipeline progress to stderr")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """Kakeibo - household ledger statement import.

    Import CSV statements from banks, card issuers and payment apps,
    review and categorize the rows, and commit them to the ledger as
    one batch that can be rolled back.
    """
    ctx.ensure_object(dict)

    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = load_settings(database_path=db_path)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        db = create_sqlite_database(database_path=settings.database_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["settings"] = settings
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
category.register_commands(cli)
init_categories.register_commands(cli)
rule.register_commands(cli)
mapping.register_commands(cli)
import_cmd.register_commands(cli)
history.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
