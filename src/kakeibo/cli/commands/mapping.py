"""Saved column mapping commands."""

import click
from kakeibo.domain.errors import DomainError
from kakeibo.importing.column_map import FIELDS, ManualMapping
from kakeibo.importing.formats import ImportFormat
from kakeibo.importing.saved_mappings import MappingService
from kakeibo.cli.error_handling import handle_domain_error

FORMAT_CHOICES = [fmt.value for fmt in ImportFormat if fmt != ImportFormat.UNKNOWN]


@click.group()
def mapping_group():
    """Manage saved column mappings."""
    pass


@mapping_group.command("save")
@click.argument("name", metavar="MAPPING_NAME")
@click.option(
    "--map",
    "pairs",
    multiple=True,
    required=True,
    help=f"Column mapping field=index, field one of: {', '.join(FIELDS)}",
)
@click.option(
    "--format",
    "format_name",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    help="Format to use when importing with this mapping",
)
@click.pass_context
def save_mapping(ctx, name: str, pairs: tuple[str, ...], format_name: str | None):
    """Save a column mapping for later imports.

    Saving under an existing name replaces that mapping.

    Examples:
        kakeibo mapping save "家計簿アプリ" --map date=0 --map amount=3 --map description=2
        kakeibo mapping save "りそなCSV" --format bank_generic --map debit=3 --map credit=4
    """
    service = MappingService(ctx.obj["db"])
    try:
        mapping = ManualMapping.from_pairs(pairs)
        fmt = ImportFormat(format_name.lower()) if format_name else None
        mapping_id = service.save_mapping(name, mapping, format_hint=fmt)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Saved mapping '{name.strip()}' (ID: {mapping_id})")


@mapping_group.command("list")
@click.pass_context
def list_mappings(ctx):
    """List saved column mappings."""
    service = MappingService(ctx.obj["db"])

    mappings = service.list_mappings()
    if not mappings:
        click.echo("No saved mappings found.")
        return

    click.echo("\nSaved mappings:")
    click.echo("-" * 60)
    for saved in mappings:
        columns = ", ".join(
            f"{field}={getattr(saved, field)}" for field in FIELDS if getattr(saved, field) is not None
        )
        hint = f" | Format: {saved.format_hint}" if saved.format_hint else ""
        click.echo(f"{saved.name:20s} | {columns}{hint}")


@mapping_group.command("delete")
@click.argument("name", metavar="MAPPING_NAME")
@click.pass_context
def delete_mapping(ctx, name: str):
    """Delete a saved column mapping."""
    service = MappingService(ctx.obj["db"])
    try:
        service.delete_mapping(name)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted mapping '{name}'")


def register_commands(cli):
    """Register mapping commands with main CLI."""
    cli.add_command(mapping_group, name="mapping")
