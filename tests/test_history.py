"""Tests for import history commands."""

from kakeibo.cli.main import cli


def import_card(cli_runner, temp_db, fixtures_dir):
    return cli_runner.invoke(
        cli,
        ["--db-path", temp_db.database_path, "import", str(fixtures_dir / "smbc_card_202508.csv"), "--yes"],
    )


def test_history_list_empty(cli_runner, temp_db):
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "history", "list"])

    assert result.exit_code == 0
    assert "No imports found" in result.output


def test_history_list(cli_runner, temp_db, card_rules, fixtures_dir):
    import_card(cli_runner, temp_db, fixtures_dir)

    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "history", "list"])

    assert result.exit_code == 0
    assert "smbc_card_202508.csv (smbc_card)" in result.output
    assert "8 committed, 0 duplicate, 0 invalid of 8" in result.output


def test_history_rollback(cli_runner, temp_db, card_rules, fixtures_dir):
    import_card(cli_runner, temp_db, fixtures_dir)
    [history] = temp_db.list_import_histories()

    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "history", "rollback", history.import_id, "--yes"]
    )

    assert result.exit_code == 0, result.output
    assert "removed 8 transactions" in result.output
    assert temp_db.list_transactions() == []
    assert temp_db.list_import_histories() == []

    again = import_card(cli_runner, temp_db, fixtures_dir)
    assert "Imported: 8 transactions" in again.output


def test_history_rollback_cancelled(cli_runner, temp_db, card_rules, fixtures_dir):
    import_card(cli_runner, temp_db, fixtures_dir)
    [history] = temp_db.list_import_histories()

    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "history", "rollback", history.import_id], input="n\n"
    )

    assert "Rollback cancelled." in result.output
    assert len(temp_db.list_transactions()) == 8


def test_history_rollback_unknown(cli_runner, temp_db):
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "history", "rollback", "nope", "--yes"]
    )

    assert result.exit_code == 1
    assert "not found" in result.output
