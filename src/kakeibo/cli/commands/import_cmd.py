"""CSV import command."""

from pathlib import Path

import click
from kakeibo.domain.category import CategoryService
from kakeibo.domain.account import AccountService
from kakeibo.domain.errors import DomainError
from kakeibo.importing.column_map import FIELDS, ManualMapping
from kakeibo.importing.commit import CommitCoordinator
from kakeibo.importing.drafts import DraftRow
from kakeibo.importing.formats import ImportFormat
from kakeibo.importing.saved_mappings import MappingService
from kakeibo.importing.session import ImportSession, ImportSummary, PreviewFilter
from kakeibo.integration.remote_classifier import RemoteClassifier
from kakeibo.utils.text_normalizer import normalize
from kakeibo.cli.error_handling import handle_domain_error

FORMAT_CHOICES = [fmt.value for fmt in ImportFormat if fmt != ImportFormat.UNKNOWN]


def format_row(row: DraftRow, categories: CategoryService) -> str:
    """Format a draft row for display."""
    if row.occurred_on is None:
        return f"  #{row.row_index:<4d} invalid: {row.invalid_reason} | {','.join(row.raw_cells)}"

    category_id = row.resolved_category_id
    category = categories.format_category_path(category_id) if category_id is not None else "-"
    note = f" ({row.duplicate_of})" if row.duplicate_of else ""
    return (
        f"  #{row.row_index:<4d} {row.occurred_on.isoformat()} {row.kind.value:8s} "
        f"{row.amount:>10,d}  {row.description[:40]:40s} {category} [{row.status.value}{note}]"
    )


def print_summary(summary: ImportSummary, categories: CategoryService) -> None:
    """Print the pre-commit summary with diagnostic samples."""
    click.echo(f"\nSummary for {summary.file_name} ({summary.format.value}):")
    click.echo(f"  Rows:        {summary.total}")
    click.echo(f"  Valid:       {summary.valid}")
    click.echo(f"  Resolved:    {summary.user_resolved}")
    click.echo(f"  Unresolved:  {summary.unresolved - summary.user_resolved}")
    click.echo(f"  Duplicates:  {summary.duplicate}")
    click.echo(f"  Invalid:     {summary.invalid}")
    click.echo(f"  To commit:   {summary.committable}")

    if summary.invalid_samples:
        click.echo("\nInvalid rows:")
        for row in summary.invalid_samples:
            click.echo(format_row(row, categories))
        if summary.invalid_truncated:
            click.echo(f"  ... and {summary.invalid_truncated} more")

    if summary.unresolved_samples:
        click.echo("\nRows without a category (skipped on commit):")
        for row in summary.unresolved_samples:
            click.echo(format_row(row, categories))
        if summary.unresolved_truncated:
            click.echo(f"  ... and {summary.unresolved_truncated} more")


def apply_category_choices(
    ctx, session: ImportSession, choices: tuple[str, ...], learn: bool, apply_to_ledger: bool
) -> None:
    """Resolve description groups from ``description=Category`` options."""
    db = ctx.obj["db"]
    categories = CategoryService(db)
    groups = session.groups()

    for choice in choices:
        description, sep, category_path = choice.rpartition("=")
        if not sep or not description.strip() or not category_path.strip():
            click.echo(f"Error: Invalid category choice '{choice}'. Use \"description=Category\"", err=True)
            ctx.exit(1)

        key = normalize(description)
        matching = [g for g in groups if g.key == key]
        if not matching:
            click.echo(f"Warning: No rows with description '{description}'", err=True)
            continue

        for group in matching:
            category = categories.find_category(category_path.strip(), group.kind)
            if category is None:
                click.echo(
                    f"Error: No {group.kind.value} category '{category_path}' found", err=True
                )
                ctx.exit(1)
            try:
                changed = session.resolve_group(
                    group.description,
                    group.kind,
                    category.id,
                    learn=learn,
                    apply_to_ledger=apply_to_ledger,
                )
            except ValueError as e:
                handle_domain_error(ctx, e)
                return
            click.echo(f"Categorized {changed} rows of '{group.description}' as '{category_path}'")


@click.command("import")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "format_name",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    help="Statement format (detected when omitted)",
)
@click.option("--account", help="Account name or ID the statement belongs to")
@click.option(
    "--map",
    "mappings",
    multiple=True,
    help=f"Manual column mapping field=index, field one of: {', '.join(FIELDS)}",
)
@click.option("--mapping", "mapping_name", help="Apply a saved column mapping (see 'kakeibo mapping')")
@click.option(
    "--category",
    "category_choices",
    multiple=True,
    help="Categorize all rows with a description: \"description=Category\"",
)
@click.option("--learn", is_flag=True, help="Create rules from --category choices")
@click.option(
    "--apply-to-ledger",
    is_flag=True,
    help="Also recategorize existing transactions with the same description",
)
@click.option(
    "--show",
    type=click.Choice([f.value for f in PreviewFilter], case_sensitive=False),
    help="Print the rows matching a filter before the summary",
)
@click.option("--yes", is_flag=True, help="Commit without asking for confirmation")
@click.pass_context
def import_csv(
    ctx,
    csv_file: str,
    format_name: str | None,
    account: str | None,
    mappings: tuple[str, ...],
    mapping_name: str | None,
    category_choices: tuple[str, ...],
    learn: bool,
    apply_to_ledger: bool,
    show: str | None,
    yes: bool,
):
    """Import transactions from a CSV statement.

    The format is detected from the file unless --format is given. Rows
    whose category cannot be suggested stay unresolved and are skipped
    unless categorized with --category.

    Examples:
        kakeibo import statement.csv --account "Amazonカード"
        kakeibo import export.csv --format bank_generic --map date=1 --map amount=4
        kakeibo import export.csv --mapping "家計簿アプリ"
        kakeibo import paypay.csv --category "セブン-イレブン=コンビニ" --learn
    """
    db = ctx.obj["db"]
    settings = ctx.obj.get("settings")
    categories = CategoryService(db)
    session = ImportSession(db, settings=settings)
    path = Path(csv_file)

    try:
        manual = ManualMapping()
        format_hint = None
        if mapping_name:
            manual, format_hint = MappingService(db).load_mapping(mapping_name)
        manual = manual.overlay(ManualMapping.from_pairs(mappings))

        session.load_file(path.read_bytes(), path.name)
        if format_name:
            session.choose_format(ImportFormat(format_name.lower()))
        elif format_hint is not None:
            session.choose_format(format_hint)
        if account:
            session.choose_account(AccountService(db).resolve_account(account).id)
        session.set_manual_mapping(manual)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    for previous in session.previous_import():
        click.echo(
            f"Warning: this file was already imported on {previous.imported_at:%Y-%m-%d} "
            f"(import {previous.import_id})",
            err=True,
        )

    session.advance()
    detection = session.detection
    click.echo(
        f"Format: {detection.format.value} (confidence {detection.confidence:.2f}; {detection.reason})"
    )

    if settings is not None and settings.classifier_url:
        with RemoteClassifier(settings.classifier_url, timeout=settings.classifier_timeout) as classifier:
            session.enrich_with(classifier)

    if show:
        rows = session.preview(PreviewFilter(show.lower()))
        click.echo(f"\n{show.capitalize()} rows ({len(rows)}):")
        for row in rows:
            click.echo(format_row(row, categories))

    session.advance()
    if category_choices:
        apply_category_choices(ctx, session, category_choices, learn, apply_to_ledger)

    session.advance()
    summary = session.summary()
    print_summary(summary, categories)

    if summary.committable == 0:
        click.echo("\nNothing to commit.")
        return

    if not yes and not click.confirm(f"\nCommit {summary.committable} transactions?"):
        click.echo("Import cancelled.")
        return

    try:
        result = session.confirm_commit(CommitCoordinator(db))
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo("\nImport complete:")
    click.echo(f"  Import ID: {result.import_id}")
    click.echo(f"  Imported: {result.committed_count} transactions")
    click.echo(f"  Skipped: {result.skipped_duplicate_count} duplicates")
    if result.invalid_count:
        click.echo(f"  Invalid: {result.invalid_count}")
    if result.unresolved_skipped_count:
        click.echo(f"  Uncategorized (skipped): {result.unresolved_skipped_count}")


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_csv)
