"""Initialize default categories and classification rules."""

import click
from kakeibo.domain.category import CategoryService
from kakeibo.domain.classification import ClassificationRuleEngine
from kakeibo.domain.entities import TransactionKind

EXPENSE = TransactionKind.EXPENSE
INCOME = TransactionKind.INCOME
TRANSFER = TransactionKind.TRANSFER

# Initial category tree structure: (name, parent, kind)
INITIAL_CATEGORIES = [
    # Root categories
    ("食費", None, EXPENSE),
    ("買い物", None, EXPENSE),
    ("交通", None, EXPENSE),
    ("車", None, EXPENSE),
    ("通信・サブスク", None, EXPENSE),
    ("趣味・娯楽", None, EXPENSE),
    ("住まい", None, EXPENSE),
    ("医療", None, EXPENSE),
    ("その他", None, EXPENSE),
    ("収入", None, INCOME),
    ("振替", None, TRANSFER),
    # 食費
    ("コンビニ", "食費", EXPENSE),
    ("スーパー", "食費", EXPENSE),
    ("外食", "食費", EXPENSE),
    ("カフェ", "食費", EXPENSE),
    ("デリバリー", "食費", EXPENSE),
    # 買い物
    ("Amazon", "買い物", EXPENSE),
    ("衣服", "買い物", EXPENSE),
    ("家具・インテリア", "買い物", EXPENSE),
    ("雑貨", "買い物", EXPENSE),
    ("ドラッグストア", "買い物", EXPENSE),
    # 交通
    ("電車・駅", "交通", EXPENSE),
    ("交通費", "交通", EXPENSE),
    ("タクシー", "交通", EXPENSE),
    # 車
    ("ガソリン", "車", EXPENSE),
    ("高速道路", "車", EXPENSE),
    ("駐車場", "車", EXPENSE),
    # 通信・サブスク
    ("通信費", "通信・サブスク", EXPENSE),
    ("サブスク・デジタル", "通信・サブスク", EXPENSE),
    # 趣味・娯楽
    ("娯楽", "趣味・娯楽", EXPENSE),
    ("イベント", "趣味・娯楽", EXPENSE),
    # 住まい
    ("家賃", "住まい", EXPENSE),
    ("水道・光熱費", "住まい", EXPENSE),
    # 医療
    ("病院", "医療", EXPENSE),
    # その他
    ("現金入出金", "その他", EXPENSE),
    ("未分類", "その他", EXPENSE),
    # 収入
    ("給与", "収入", INCOME),
    ("賞与", "収入", INCOME),
    ("利息", "収入", INCOME),
    ("ポイント還元", "収入", INCOME),
    ("還付金", "収入", INCOME),
    ("副業", "収入", INCOME),
    ("受け取り", "収入", INCOME),
    # 振替
    ("チャージ", "振替", TRANSFER),
    ("口座間振替", "振替", TRANSFER),
]


@click.command("init-categories")
@click.option("--force", is_flag=True, help="Create missing defaults even if categories exist")
@click.option("--no-rules", is_flag=True, help="Do not install the default classification rules")
@click.pass_context
def init_categories(ctx, force: bool, no_rules: bool):
    """Initialize database with default category tree and keyword rules."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    # Check if categories already exist
    existing = service.list_categories()
    if existing and not force:
        click.echo("Categories already exist. Use --force to overwrite.")
        return

    click.echo("Creating initial category tree...")

    # Create categories in order: parents first, then children
    root_categories = [entry for entry in INITIAL_CATEGORIES if entry[1] is None]
    child_categories = [entry for entry in INITIAL_CATEGORIES if entry[1] is not None]

    created = 0
    errors = 0

    for category_name, parent_name, kind in root_categories + child_categories:
        try:
            service.create_category(name=category_name, parent_path=parent_name, kind=kind)
            created += 1
        except ValueError as e:
            click.echo(f"Warning: Could not create category '{category_name}': {e}", err=True)
            errors += 1

    if errors == 0:
        click.echo(f"Successfully created {created} categories.")
    else:
        click.echo(f"Created {created} categories with {errors} errors.")

    if not no_rules:
        engine = ClassificationRuleEngine(db)
        rules = engine.bootstrap()
        if rules:
            click.echo(f"Installed {rules} default classification rules.")
        else:
            click.echo("Classification rules already exist; defaults not installed.")


def register_commands(cli):
    """Register init-categories command with main CLI."""
    cli.add_command(init_categories)
