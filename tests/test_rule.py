"""Tests for rule commands."""

from kakeibo.cli.main import cli
from kakeibo.domain.entities import MatchType, RuleOrigin, TransactionKind


def invoke(cli_runner, temp_db, *args):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "rule", *args])


def test_rule_list_empty(cli_runner, temp_db):
    result = invoke(cli_runner, temp_db, "list")

    assert result.exit_code == 0
    assert "No rules found" in result.output


def test_rule_list(cli_runner, temp_db, default_rules):
    result = invoke(cli_runner, temp_db, "list")

    assert result.exit_code == 0
    assert "'amazon' -> 買い物 > Amazon (bootstrap)" in result.output


def test_rule_add(cli_runner, temp_db, sample_categories):
    result = invoke(
        cli_runner, temp_db, "add", "成城石井", "食費 > スーパー", "--match", "prefix", "--priority", "120"
    )

    assert result.exit_code == 0, result.output
    assert "Created rule" in result.output
    [rule] = temp_db.list_rules()
    assert rule.keyword == "成城石井"
    assert rule.match_type == MatchType.PREFIX
    assert rule.priority == 120
    assert rule.origin == RuleOrigin.USER
    assert rule.target_category_id == sample_categories["スーパー"]


def test_rule_add_income(cli_runner, temp_db, sample_categories):
    result = invoke(cli_runner, temp_db, "add", "ACME", "給与", "--type", "income")

    assert result.exit_code == 0, result.output
    [rule] = temp_db.list_rules()
    assert rule.kind == TransactionKind.INCOME


def test_rule_add_unknown_category(cli_runner, temp_db, sample_categories):
    result = invoke(cli_runner, temp_db, "add", "ACME", "給与")

    assert result.exit_code == 1
    assert "not found" in result.output


def test_rule_add_conflict(cli_runner, temp_db, default_rules):
    result = invoke(cli_runner, temp_db, "add", "ＡＭＡＺＯＮ", "雑貨")

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_rule_disable_and_enable(cli_runner, temp_db, default_rules):
    rule_id = temp_db.list_rules()[0].id

    result = invoke(cli_runner, temp_db, "disable", str(rule_id))
    assert result.exit_code == 0
    assert f"Rule {rule_id} disabled" in result.output
    assert not temp_db.get_rule(rule_id).enabled

    listed = invoke(cli_runner, temp_db, "list")
    assert f"ID: {rule_id:4d}" not in listed.output
    listed_all = invoke(cli_runner, temp_db, "list", "--all")
    assert "[disabled]" in listed_all.output

    result = invoke(cli_runner, temp_db, "enable", str(rule_id))
    assert result.exit_code == 0
    assert temp_db.get_rule(rule_id).enabled


def test_rule_disable_unknown(cli_runner, temp_db):
    result = invoke(cli_runner, temp_db, "disable", "999")

    assert result.exit_code == 1
    assert "not found" in result.output
