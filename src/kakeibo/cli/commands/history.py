"""Import history and rollback commands."""

import click
from kakeibo.importing.commit import CommitCoordinator, ImportHistoryService
from kakeibo.domain.errors import import_not_found


@click.group()
def history_group():
    """Inspect and undo past imports."""
    pass


@history_group.command("list")
@click.pass_context
def list_imports(ctx):
    """List past imports, newest first."""
    service = ImportHistoryService(ctx.obj["db"])

    histories = service.list_imports()
    if not histories:
        click.echo("No imports found.")
        return

    click.echo("\nImports:")
    click.echo("-" * 80)
    for h in histories:
        click.echo(
            f"{h.import_id} | {h.imported_at:%Y-%m-%d %H:%M} | {h.file_name} ({h.source or '-'}) | "
            f"{h.committed_count} committed, {h.skipped_duplicate_count} duplicate, "
            f"{h.invalid_count} invalid of {h.total_row_count}"
        )


@history_group.command("rollback")
@click.argument("import_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def rollback_import(ctx, import_id: str, yes: bool):
    """Remove every transaction of an import and its history record."""
    db = ctx.obj["db"]
    history = ImportHistoryService(db).get_import(import_id)
    if history is None:
        click.echo(f"Error: {import_not_found(import_id)}", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(
        f"Remove the {history.committed_count} transactions imported from '{history.file_name}'?"
    ):
        click.echo("Rollback cancelled.")
        return

    try:
        removed = CommitCoordinator(db).rollback(history)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    click.echo(f"Rolled back import {import_id}: removed {removed} transactions")


def register_commands(cli):
    """Register history commands with main CLI."""
    cli.add_command(history_group, name="history")
