"""Tests for the CSV import command."""

import pytest
from kakeibo.cli.main import cli
from kakeibo.domain.entities import TransactionKind


def run_import(cli_runner, temp_db, csv_file, *args, input=None):
    return cli_runner.invoke(
        cli,
        ["--db-path", temp_db.database_path, "import", str(csv_file), *args],
        input=input,
    )


def test_import_successful(cli_runner, temp_db, sample_account, card_rules, fixtures_dir):
    """Test importing a fully categorized card statement."""
    result = run_import(
        cli_runner, temp_db, fixtures_dir / "smbc_card_202508.csv", "--account", "Amazonカード", "--yes"
    )

    assert result.exit_code == 0, result.output
    assert "Format: smbc_card" in result.output
    assert "Import complete" in result.output
    assert "Imported: 8 transactions" in result.output
    assert "Skipped: 0 duplicates" in result.output

    transactions = temp_db.list_transactions()
    assert len(transactions) == 8
    assert {t.account_id for t in transactions} == {sample_account.id}


def test_import_duplicate_detection(cli_runner, temp_db, card_rules, fixtures_dir):
    """A second import of the same statement finds only duplicates."""
    csv_file = fixtures_dir / "smbc_card_202508.csv"
    assert run_import(cli_runner, temp_db, csv_file, "--yes").exit_code == 0

    result = run_import(cli_runner, temp_db, csv_file, "--yes")

    assert result.exit_code == 0
    assert "already imported" in result.output
    assert "Duplicates:  8" in result.output
    assert "Nothing to commit." in result.output
    assert len(temp_db.list_transactions()) == 8


def test_import_categorize_and_learn(cli_runner, temp_db, default_rules, sample_categories, fixtures_dir):
    """--category resolves description groups and --learn keeps the choice."""
    result = run_import(
        cli_runner,
        temp_db,
        fixtures_dir / "smbc_card_202508.csv",
        "--category", "大阪第一交通堺営業所=タクシー",
        "--category", "ＡＶＡＬＯＮ＊ＵＳＥＮ=通信・サブスク > サブスク・デジタル",
        "--learn",
        "--yes",
    )

    assert result.exit_code == 0, result.output
    assert "Categorized 1 rows of '大阪第一交通堺営業所' as 'タクシー'" in result.output
    assert "Imported: 8 transactions" in result.output

    default_rules.refresh()
    assert default_rules.suggest(["大阪第一交通堺営業所"], TransactionKind.EXPENSE) == sample_categories["タクシー"]


def test_import_unresolved_rows_skipped(cli_runner, temp_db, default_rules, fixtures_dir):
    """Rows without a category are reported and not committed."""
    result = run_import(cli_runner, temp_db, fixtures_dir / "resona_202508.csv", "--yes")

    assert result.exit_code == 0, result.output
    assert "Invalid rows:" in result.output
    assert "Neither debit nor credit is populated" in result.output
    assert "Rows without a category" in result.output
    assert "Imported: 1 transactions" in result.output
    assert "Uncategorized (skipped): 2" in result.output


def test_import_show_filter(cli_runner, temp_db, default_rules, fixtures_dir):
    result = run_import(
        cli_runner, temp_db, fixtures_dir / "paypay_202508.csv", "--show", "unresolved", "--yes"
    )

    assert result.exit_code == 0, result.output
    assert "Unresolved rows (3):" in result.output
    assert "居酒屋たぬき" in result.output


def test_import_cancelled(cli_runner, temp_db, card_rules, fixtures_dir):
    result = run_import(cli_runner, temp_db, fixtures_dir / "smbc_card_202508.csv", input="n\n")

    assert result.exit_code == 0
    assert "Import cancelled." in result.output
    assert temp_db.list_transactions() == []


def test_import_forced_format_and_mapping(cli_runner, temp_db, default_rules, fixtures_dir):
    result = run_import(
        cli_runner,
        temp_db,
        fixtures_dir / "bank_generic.csv",
        "--format", "bank_generic",
        "--map", "description=1",
        "--category", "Salary ACME=給与",
        "--yes",
    )

    assert result.exit_code == 0, result.output
    assert "Format: bank_generic" in result.output
    assert "Imported: 1 transactions" in result.output
    [txn] = temp_db.list_transactions()
    assert txn.kind == TransactionKind.INCOME
    assert txn.amount == 250000


def test_import_remote_suggestions(cli_runner, temp_db, default_rules, sample_categories, fixtures_dir, monkeypatch):
    """With a classifier configured, its suggestions categorize rows."""

    class FakeClassifier:
        def __init__(self, base_url, timeout=30.0):
            self.base_url = base_url

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            return None

        def suggest(self, rows, categories):
            return {row.row_index: sample_categories["外食"] for row in rows if "居酒屋" in row.description}

    monkeypatch.setattr("kakeibo.cli.commands.import_cmd.RemoteClassifier", FakeClassifier)
    monkeypatch.setenv("KAKEIBO_CLASSIFIER_URL", "http://classifier.test")

    result = run_import(cli_runner, temp_db, fixtures_dir / "paypay_202508.csv", "--yes")

    assert result.exit_code == 0, result.output
    assert "Imported: 3 transactions" in result.output


@pytest.mark.parametrize(
    "args, message",
    [
        (["--account", "Nope"], "not found"),
        (["--map", "date=x"], "must be an integer"),
        (["--category", "no separator"], "Invalid category choice"),
        (["--category", "大阪第一交通堺営業所=Nope"], "No expense category 'Nope' found"),
    ],
)
def test_import_errors(cli_runner, temp_db, default_rules, fixtures_dir, args, message):
    result = run_import(cli_runner, temp_db, fixtures_dir / "smbc_card_202508.csv", *args, "--yes")

    assert result.exit_code == 1
    assert message in result.output
    assert temp_db.list_transactions() == []


def test_import_missing_file(cli_runner, temp_db, fixtures_dir):
    result = run_import(cli_runner, temp_db, fixtures_dir / "missing.csv")

    assert result.exit_code != 0
