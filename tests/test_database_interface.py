"""Tests for Database interface returning domain models."""

import pytest
from datetime import date, datetime

from kakeibo.domain import entities
from kakeibo.domain.entities import MatchType, NewImportHistory, NewTransaction, RuleOrigin, TransactionKind


def history(import_id="batch-1", fingerprint="f" * 64, committed=1):
    return NewImportHistory(
        import_id=import_id,
        file_fingerprint=fingerprint,
        file_name="smbc_card_202508.csv",
        source="smbc_card",
        total_row_count=2,
        committed_count=committed,
        skipped_duplicate_count=1,
        invalid_count=0,
    )


def txn(description="AMAZON.CO.JP", import_id=None, source_id=None):
    return NewTransaction(
        occurred_on=date(2025, 7, 11),
        kind=TransactionKind.EXPENSE,
        amount=816,
        description=description,
        category_id=None,
        source="smbc_card",
        source_id=source_id,
        import_id=import_id,
    )


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_get_account_returns_domain_model(self, temp_db):
        account_id = temp_db.create_account(name="Amazonカード", bank_name="三井住友カード")

        account = temp_db.get_account(account_id)

        assert isinstance(account, entities.Account)
        assert account.id == account_id
        assert account.name == "Amazonカード"
        assert isinstance(account.created_at, datetime)
        assert temp_db.get_account(999) is None

    def test_category_kind_round_trip(self, temp_db):
        category_id = temp_db.create_category(name="収入", kind=TransactionKind.INCOME)

        category = temp_db.get_category(category_id)

        assert isinstance(category, entities.Category)
        assert category.kind == TransactionKind.INCOME
        assert category.parent_id is None

    def test_category_path(self, temp_db):
        root = temp_db.create_category(name="食費")
        child = temp_db.create_category(name="外食", parent_id=root)

        assert temp_db.get_category_by_path("食費 > 外食").id == child
        assert temp_db.get_category_by_path("食費>外食").id == child
        assert temp_db.get_category_by_path("外食") is None
        assert [c.id for c in temp_db.list_all_categories()] == [root, child]

    def test_transaction_round_trip(self, temp_db):
        txn_id = temp_db.create_transaction(txn(import_id="batch-1", source_id="abc"))

        stored = temp_db.get_transaction(txn_id)

        assert isinstance(stored, entities.Transaction)
        assert stored.kind == TransactionKind.EXPENSE
        assert stored.amount == 816
        assert stored.source == "smbc_card"
        assert stored.source_id == "abc"
        assert stored.import_id == "batch-1"

    def test_list_transactions_by_import(self, temp_db):
        temp_db.create_transaction(txn(import_id="a"))
        temp_db.create_transaction(txn(import_id="b"))

        assert len(temp_db.list_transactions(import_id="a")) == 1

    def test_rules(self, temp_db):
        category_id = temp_db.create_category(name="Amazon")
        rule_id = temp_db.create_rule(
            keyword="amazon",
            match_type=MatchType.PREFIX,
            target_category_id=category_id,
            kind=TransactionKind.EXPENSE,
            priority=10,
            origin=RuleOrigin.BOOTSTRAP,
        )

        rule = temp_db.get_rule(rule_id)
        assert isinstance(rule, entities.ClassificationRule)
        assert rule.match_type == MatchType.PREFIX
        assert rule.origin == RuleOrigin.BOOTSTRAP
        assert rule.enabled

        temp_db.update_rule_enabled(rule_id, False)
        assert not temp_db.get_rule(rule_id).enabled
        assert [r.id for r in temp_db.list_rules()] == [rule_id]


class TestImportBatches:
    """Tests for atomic import batch writes."""

    def test_commit_import(self, temp_db):
        ids = temp_db.commit_import([txn("A", import_id="batch-1"), txn("B", import_id="batch-1")], history())

        assert len(ids) == 2
        assert [temp_db.get_transaction(i).description for i in ids] == ["A", "B"]
        stored = temp_db.get_import_history("batch-1")
        assert isinstance(stored, entities.ImportHistory)
        assert stored.committed_count == 1
        assert isinstance(stored.imported_at, datetime)

    def test_commit_import_is_atomic(self, temp_db):
        temp_db.commit_import([], history())

        # the second batch reuses the import ID and must fail as a whole
        with pytest.raises(Exception):
            temp_db.commit_import([txn(import_id="batch-1")], history())

        assert temp_db.list_transactions() == []
        assert len(temp_db.list_import_histories()) == 1

    def test_histories_by_fingerprint(self, temp_db):
        temp_db.commit_import([], history("one", "f" * 64))
        temp_db.commit_import([], history("two", "e" * 64))
        temp_db.commit_import([], history("three", "f" * 64))

        assert [h.import_id for h in temp_db.find_import_histories_by_fingerprint("f" * 64)] == ["one", "three"]
        assert [h.import_id for h in temp_db.list_import_histories()] == ["three", "two", "one"]

    def test_rollback_import(self, temp_db):
        temp_db.commit_import([txn(import_id="batch-1")], history())
        legacy = temp_db.create_transaction(txn(source_id="f" * 64))
        kept = temp_db.create_transaction(txn(import_id="batch-2"))
        same_file = temp_db.create_transaction(txn(import_id="batch-3", source_id="f" * 64))

        assert temp_db.rollback_import("batch-1", "f" * 64) == 2
        assert temp_db.get_transaction(legacy) is None
        assert temp_db.get_transaction(kept) is not None
        assert temp_db.get_transaction(same_file) is not None
        assert temp_db.get_import_history("batch-1") is None

    def test_rollback_unknown_import(self, temp_db):
        kept = temp_db.create_transaction(txn(source_id="f" * 64))

        with pytest.raises(ValueError):
            temp_db.rollback_import("nope", "f" * 64)

        assert temp_db.get_transaction(kept) is not None
