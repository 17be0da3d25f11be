"""Tests for saved column mappings."""

import pytest
from kakeibo.cli.main import cli
from kakeibo.domain.entities import TransactionKind
from kakeibo.domain.errors import NotFoundError, ValidationError
from kakeibo.importing.column_map import ManualMapping
from kakeibo.importing.formats import ImportFormat
from kakeibo.importing.saved_mappings import MappingService


@pytest.fixture
def mapping_service(temp_db):
    return MappingService(temp_db)


def invoke(cli_runner, temp_db, *args):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])


class TestMappingService:
    def test_save_and_load(self, mapping_service):
        mapping_id = mapping_service.save_mapping(
            "銀行CSV", ManualMapping(date=0, description=1, debit=2, credit=3), ImportFormat.BANK_GENERIC
        )

        assert mapping_id > 0
        mapping, hint = mapping_service.load_mapping("銀行CSV")
        assert mapping == ManualMapping(date=0, description=1, debit=2, credit=3)
        assert hint == ImportFormat.BANK_GENERIC

    def test_save_replaces_same_name(self, mapping_service):
        first = mapping_service.save_mapping("app", ManualMapping(amount=3), ImportFormat.APP_EXPORT)
        second = mapping_service.save_mapping("app", ManualMapping(description=2))

        assert first == second
        [saved] = mapping_service.list_mappings()
        assert saved.amount is None
        assert saved.description == 2
        assert saved.format_hint is None

    def test_list_ordered_by_name(self, mapping_service):
        mapping_service.save_mapping("b", ManualMapping(date=0))
        mapping_service.save_mapping("a", ManualMapping(date=1))

        assert [m.name for m in mapping_service.list_mappings()] == ["a", "b"]

    def test_empty_mapping_rejected(self, mapping_service):
        with pytest.raises(ValidationError, match="at least one column"):
            mapping_service.save_mapping("empty", ManualMapping())

    def test_blank_name_rejected(self, mapping_service):
        with pytest.raises(ValidationError, match="must not be empty"):
            mapping_service.save_mapping("  ", ManualMapping(date=0))

    def test_unknown_name(self, mapping_service):
        with pytest.raises(NotFoundError, match="Saved mapping 'nope' not found"):
            mapping_service.load_mapping("nope")
        with pytest.raises(NotFoundError):
            mapping_service.delete_mapping("nope")

    def test_delete(self, mapping_service):
        mapping_service.save_mapping("old", ManualMapping(date=0))
        mapping_service.delete_mapping("old")

        assert mapping_service.list_mappings() == []


def test_overlay_keeps_unset_fields():
    saved = ManualMapping(date=0, debit=3, credit=2)
    merged = saved.overlay(ManualMapping(debit=2, credit=3))

    assert merged == ManualMapping(date=0, debit=2, credit=3)
    assert saved.overlay(None) is saved


def test_mapping_save_and_list(cli_runner, temp_db):
    result = invoke(
        cli_runner, temp_db, "mapping", "save", "銀行CSV", "--format", "bank_generic", "--map", "description=1"
    )
    assert result.exit_code == 0, result.output
    assert "Saved mapping '銀行CSV'" in result.output

    result = invoke(cli_runner, temp_db, "mapping", "list")
    assert result.exit_code == 0, result.output
    assert "description=1" in result.output
    assert "Format: bank_generic" in result.output


def test_mapping_list_empty(cli_runner, temp_db):
    result = invoke(cli_runner, temp_db, "mapping", "list")

    assert result.exit_code == 0
    assert "No saved mappings found" in result.output


def test_mapping_save_invalid_pair(cli_runner, temp_db):
    result = invoke(cli_runner, temp_db, "mapping", "save", "bad", "--map", "when=0")

    assert result.exit_code == 1
    assert "Invalid mapping 'when=0'" in result.output
    assert temp_db.list_mappings() == []


def test_mapping_delete(cli_runner, temp_db, mapping_service):
    mapping_service.save_mapping("old", ManualMapping(date=0))

    result = invoke(cli_runner, temp_db, "mapping", "delete", "old")
    assert result.exit_code == 0, result.output
    assert "Deleted mapping 'old'" in result.output

    result = invoke(cli_runner, temp_db, "mapping", "delete", "old")
    assert result.exit_code == 1
    assert "not found" in result.output


def test_import_with_saved_mapping(cli_runner, temp_db, default_rules, mapping_service, fixtures_dir):
    """The saved format and columns are used as if given on the command line."""
    mapping_service.save_mapping("銀行CSV", ManualMapping(description=1), ImportFormat.BANK_GENERIC)

    result = invoke(
        cli_runner,
        temp_db,
        "import",
        str(fixtures_dir / "bank_generic.csv"),
        "--mapping", "銀行CSV",
        "--category", "Salary ACME=給与",
        "--yes",
    )

    assert result.exit_code == 0, result.output
    assert "Format: bank_generic" in result.output
    assert "Imported: 1 transactions" in result.output
    [txn] = temp_db.list_transactions()
    assert txn.kind == TransactionKind.INCOME
    assert txn.amount == 250000


def test_import_map_overrides_saved_mapping(cli_runner, temp_db, default_rules, mapping_service, fixtures_dir):
    """--map wins over the same field of a saved mapping."""
    mapping_service.save_mapping("swapped", ManualMapping(description=1, debit=3, credit=2))

    result = invoke(
        cli_runner,
        temp_db,
        "import",
        str(fixtures_dir / "bank_generic.csv"),
        "--mapping", "swapped",
        "--map", "debit=2",
        "--map", "credit=3",
        "--category", "Salary ACME=給与",
        "--yes",
    )

    assert result.exit_code == 0, result.output
    [txn] = temp_db.list_transactions()
    assert txn.kind == TransactionKind.INCOME


def test_import_unknown_saved_mapping(cli_runner, temp_db, default_rules, fixtures_dir):
    result = invoke(
        cli_runner, temp_db, "import", str(fixtures_dir / "bank_generic.csv"), "--mapping", "nope", "--yes"
    )

    assert result.exit_code == 1
    assert "Saved mapping 'nope' not found" in result.output
    assert temp_db.list_transactions() == []
