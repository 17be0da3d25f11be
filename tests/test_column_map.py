"""Tests for column mapping."""

import pytest
from datetime import date

from kakeibo.domain.entities import TransactionKind
from kakeibo.domain.errors import RowInvalid, ValidationError
from kakeibo.importing.column_map import ColumnMap, ManualMapping, build_column_map
from kakeibo.importing.formats import ImportFormat


def test_vendor_format_uses_fixed_columns():
    """Vendor layouts ignore the header and use their fixed table."""
    rows = [["取引日", "出金金額（円）", "入金金額（円）"], ["2025/08/01", "480", "-"]]
    cmap = build_column_map(rows, ImportFormat.PAYPAY)
    assert (cmap.date, cmap.debit, cmap.credit, cmap.description, cmap.partner) == (0, 1, 2, 7, 8)
    assert cmap.has_header


def test_generic_header_heuristics_japanese():
    """Japanese headers are mapped by keyword."""
    rows = [["取扱日付", "入払区分", "お支払金額", "お預り金額", "摘要", "残高"]]
    cmap = build_column_map(rows, ImportFormat.BANK_GENERIC)
    assert cmap.date == 0
    assert cmap.type == 1
    assert cmap.debit == 2
    assert cmap.credit == 3
    assert cmap.description == 4
    assert cmap.amount is None


def test_generic_header_heuristics_english():
    """English headers are mapped by keyword."""
    rows = [["Description", "Amount", "Category", "Date"]]
    cmap = build_column_map(rows, ImportFormat.CARD_GENERIC)
    assert (cmap.date, cmap.amount, cmap.description, cmap.category) == (3, 1, 0, 2)


def test_type_column_not_taken_as_debit():
    """入出金区分 is the type column even though it contains 出金."""
    rows = [["日付", "入出金区分", "金額", "内容"]]
    cmap = build_column_map(rows, ImportFormat.BANK_GENERIC)
    assert cmap.type == 1
    assert cmap.debit is None
    assert cmap.amount == 2


def test_positional_default_without_header():
    """Without a header, date/description/amount are columns 0/1/2."""
    rows = [["2025/07/04", "SHOP", "816"]]
    cmap = build_column_map(rows, ImportFormat.CARD_GENERIC)
    assert (cmap.date, cmap.description, cmap.amount) == (0, 1, 2)
    assert not cmap.has_header


def test_manual_mapping_overrides_everything():
    """Set fields of a manual mapping always win."""
    rows = [["日付", "内容", "金額"]]
    override = ManualMapping.from_pairs(["amount=1", "description=2"])
    cmap = build_column_map(rows, ImportFormat.CARD_GENERIC, override)
    assert (cmap.date, cmap.amount, cmap.description) == (0, 1, 2)

    vendor = build_column_map(rows, ImportFormat.SMBC_CARD, ManualMapping(description=4))
    assert vendor.description == 4
    assert vendor.amount == 2


@pytest.mark.parametrize("pairs", [["date"], ["color=1"], ["date=x"], ["date=-1"]])
def test_manual_mapping_rejects_bad_pairs(pairs):
    """Unknown fields and bad indices are rejected."""
    with pytest.raises(ValidationError):
        ManualMapping.from_pairs(pairs)


def test_manual_mapping_is_empty():
    assert ManualMapping().is_empty()
    assert not ManualMapping(date=0).is_empty()


class TestPickers:
    """Tests for reading fields from rows."""

    def test_card_row(self):
        cmap = build_column_map([], ImportFormat.SMBC_CARD)
        row = ["2025/07/04", "ＡＭＡＺＯＮ．ＣＯ．ＪＰ", "816", "１", "１", "816", ""]
        assert cmap.pick_date(row) == date(2025, 7, 4)
        assert cmap.pick_description(row) == "AMAZON.CO.JP"
        assert cmap.pick_type_amount(row) == (TransactionKind.EXPENSE, 816)

    def test_card_refund_is_expense_amount(self):
        cmap = build_column_map([], ImportFormat.SMBC_CARD)
        assert cmap.pick_type_amount(["2025/07/04", "SHOP", "-816"]) == (TransactionKind.EXPENSE, 816)

    def test_partner_and_content_combined(self):
        cmap = build_column_map([], ImportFormat.PAYPAY)
        row = ["2025/08/01 08:12:45", "480", "-", "-", "-", "-", "-", "支払い", "セブン‐イレブン　渋谷店"]
        assert cmap.pick_description(row) == "セブン-イレブン 渋谷店 (支払い)"

    def test_category_label(self):
        cmap = build_column_map([], ImportFormat.APP_EXPORT)
        assert cmap.pick_category(["2025-08-01", "支出", "1200", "外食", "ランチ"]) == "外食"
        assert cmap.pick_category(["2025-08-01", "支出", "1200", "", "ランチ"]) is None

    @pytest.mark.parametrize("row", [["", "SHOP", "816"], ["2025/13/45", "SHOP", "816"], []])
    def test_bad_date_is_row_invalid(self, row):
        cmap = ColumnMap(format=ImportFormat.CARD_GENERIC, date=0, description=1, amount=2)
        with pytest.raises(RowInvalid):
            cmap.pick_date(row)

    def test_missing_amount_is_row_invalid(self):
        cmap = ColumnMap(format=ImportFormat.CARD_GENERIC, date=0, description=1, amount=2)
        with pytest.raises(RowInvalid, match="Missing amount"):
            cmap.pick_type_amount(["2025/07/04", "SHOP"])

    def test_resona_wide_row(self):
        cmap = build_column_map([], ImportFormat.RESONA_BANK)
        row = [""] * 20
        row[13], row[14], row[15], row[16], row[17], row[19] = "入金", "2025", "8", "25", "250000", "給与"
        assert cmap.pick_date(row) == date(2025, 8, 25)
        assert cmap.pick_description(row) == "給与"
        assert cmap.pick_type_amount(row) == (TransactionKind.INCOME, 250000)
