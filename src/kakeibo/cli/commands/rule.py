"""Classification rule commands."""

import click
from kakeibo.domain.category import CategoryService
from kakeibo.domain.classification import USER_PRIORITY, ClassificationRuleEngine
from kakeibo.domain.entities import MatchType, TransactionKind
from kakeibo.cli.error_handling import handle_domain_error


@click.group()
def rule_group():
    """Manage keyword classification rules."""
    pass


@rule_group.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include disabled rules")
@click.pass_context
def list_rules(ctx, show_all: bool):
    """List rules in evaluation order (priority, then creation order)."""
    db = ctx.obj["db"]
    engine = ClassificationRuleEngine(db)
    categories = CategoryService(db)

    rules = [r for r in engine.list_rules() if show_all or r.enabled]
    if not rules:
        click.echo("No rules found. Run 'init-categories' to install the default rules.")
        return

    click.echo("\nRules:")
    click.echo("-" * 80)
    for r in rules:
        category = categories.get_category(r.target_category_id)
        target = categories.format_category_path(category.id) if category else "(missing)"
        state = "" if r.enabled else " [disabled]"
        click.echo(
            f"ID: {r.id:4d} | {r.priority:3d} | {r.kind.value:7s} | "
            f"{r.match_type.value:8s} '{r.keyword}' -> {target} ({r.origin.value}){state}"
        )


@rule_group.command("add")
@click.argument("keyword")
@click.argument("category_path")
@click.option(
    "--type",
    "kind",
    type=click.Choice(["expense", "income"], case_sensitive=False),
    default="expense",
    help="Transaction kind the rule applies to (default: expense)",
)
@click.option(
    "--match",
    "match_type",
    type=click.Choice([m.value for m in MatchType], case_sensitive=False),
    default=MatchType.CONTAINS.value,
    help="How the keyword is matched (default: contains)",
)
@click.option("--priority", type=int, default=USER_PRIORITY, help="Higher priorities are tried first")
@click.pass_context
def add_rule(ctx, keyword: str, category_path: str, kind: str, match_type: str, priority: int):
    """Add a rule mapping KEYWORD to CATEGORY_PATH.

    Examples:
        kakeibo rule add "成城石井" "食費 > スーパー"
        kakeibo rule add "ACME" "給与" --type income --match prefix
    """
    db = ctx.obj["db"]
    engine = ClassificationRuleEngine(db)
    txn_kind = TransactionKind(kind.lower())

    category = CategoryService(db).find_category(category_path, txn_kind)
    if category is None:
        click.echo(f"Error: Category '{category_path}' not found", err=True)
        ctx.exit(1)

    try:
        rule_id = engine.add_rule(
            keyword,
            category.id,
            kind=txn_kind,
            match_type=MatchType(match_type.lower()),
            priority=priority,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created rule {rule_id}: '{keyword}' -> '{category_path}'")


def _set_enabled(ctx, rule_id: int, enabled: bool) -> None:
    engine = ClassificationRuleEngine(ctx.obj["db"])
    try:
        engine.set_enabled(rule_id, enabled)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Rule {rule_id} {'enabled' if enabled else 'disabled'}")


@rule_group.command("enable")
@click.argument("rule_id", type=int)
@click.pass_context
def enable_rule(ctx, rule_id: int):
    """Enable a rule."""
    _set_enabled(ctx, rule_id, True)


@rule_group.command("disable")
@click.argument("rule_id", type=int)
@click.pass_context
def disable_rule(ctx, rule_id: int):
    """Disable a rule."""
    _set_enabled(ctx, rule_id, False)


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
