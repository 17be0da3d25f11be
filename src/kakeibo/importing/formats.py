"""Statement formats and the heuristics that recognise them.

Each known export layout is one member of the closed :class:`ImportFormat`
enum, paired in :data:`LAYOUTS` with a fixed column table (or None when the
columns are guessed from the header) and the function that turns a row into
a transaction kind and amount.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Mapping, Optional, Sequence

from kakeibo.domain.entities import TransactionKind
from kakeibo.domain.errors import RowInvalid
from kakeibo.utils.amount_parser import is_negative_amount, parse_amount
from kakeibo.utils.date_parser import parse_date
from kakeibo.utils.text_normalizer import clean_text, normalize

if TYPE_CHECKING:
    from kakeibo.importing.column_map import ColumnMap

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.6


class ImportFormat(str, Enum):
    """Known statement layouts, in tie-break order."""

    APP_EXPORT = "app_export"
    RESONA_BANK = "resona_bank"
    SMBC_CARD = "smbc_card"
    PAYPAY = "paypay"
    BANK_GENERIC = "bank_generic"
    CARD_GENERIC = "card_generic"
    UNKNOWN = "unknown"

    @property
    def is_generic(self) -> bool:
        return self in (ImportFormat.BANK_GENERIC, ImportFormat.CARD_GENERIC, ImportFormat.UNKNOWN)


# Row-to-(kind, amount) resolvers

def _amount_cell(row: Sequence[str], cmap: "ColumnMap", field: str) -> Optional[int]:
    """Parse an optional amount cell; empty, "-" and zero cells count as absent."""
    text = cmap.cell(row, field)
    if not text or not clean_text(text).strip("-"):
        return None
    try:
        value = parse_amount(text)
    except ValueError:
        raise RowInvalid(f"Invalid {field} amount '{text}'")
    return abs(value) if value else None


def _required_amount(row: Sequence[str], cmap: "ColumnMap") -> tuple[int, str]:
    text = cmap.cell(row, "amount")
    if not text:
        raise RowInvalid("Missing amount")
    try:
        value = parse_amount(text)
    except ValueError:
        raise RowInvalid(f"Invalid amount '{text}'")
    if value == 0:
        raise RowInvalid("Amount is zero")
    return value, text


def _debit_credit(row: Sequence[str], cmap: "ColumnMap") -> tuple[TransactionKind, int]:
    debit = _amount_cell(row, cmap, "debit")
    credit = _amount_cell(row, cmap, "credit")
    if debit is not None and credit is not None:
        raise RowInvalid("Both debit and credit are populated")
    if debit is not None:
        return TransactionKind.EXPENSE, debit
    if credit is not None:
        return TransactionKind.INCOME, credit
    raise RowInvalid("Neither debit nor credit is populated")


_EXPENSE_TYPE_WORDS = ("出金", "支払", "引落", "debit", "withdraw")
_INCOME_TYPE_WORDS = ("入金", "預入", "受取", "利息", "credit", "deposit")


def _kind_from_type_cell(text: str) -> Optional[TransactionKind]:
    key = normalize(text)
    if not key:
        return None
    if any(word in key for word in _EXPENSE_TYPE_WORDS):
        return TransactionKind.EXPENSE
    if any(word in key for word in _INCOME_TYPE_WORDS):
        return TransactionKind.INCOME
    return None


def resolve_card(row: Sequence[str], cmap: "ColumnMap") -> tuple[TransactionKind, int]:
    """Card statements: every row is an expense."""
    if cmap.has_debit_credit:
        return _debit_credit(row, cmap)
    value, _ = _required_amount(row, cmap)
    return TransactionKind.EXPENSE, abs(value)


def resolve_bank(row: Sequence[str], cmap: "ColumnMap") -> tuple[TransactionKind, int]:
    """Bank statements: debit/credit columns, else type column, else sign."""
    if cmap.has_debit_credit:
        return _debit_credit(row, cmap)
    value, text = _required_amount(row, cmap)
    kind = _kind_from_type_cell(cmap.cell(row, "type"))
    if kind is None:
        kind = TransactionKind.EXPENSE if is_negative_amount(text) else TransactionKind.INCOME
    return kind, abs(value)


def resolve_resona(row: Sequence[str], cmap: "ColumnMap") -> tuple[TransactionKind, int]:
    """Resona exports, including the legacy wide layout."""
    if is_resona_wide_row(row):
        try:
            value = parse_amount(row[RESONA_WIDE_AMOUNT])
        except ValueError:
            raise RowInvalid(f"Invalid amount '{row[RESONA_WIDE_AMOUNT]}'")
        if value == 0:
            raise RowInvalid("Amount is zero")
        kind = (
            TransactionKind.INCOME
            if clean_text(row[RESONA_WIDE_TYPE]) == "入金"
            else TransactionKind.EXPENSE
        )
        return kind, abs(value)
    return resolve_bank(row, cmap)


_CHARGE_WORDS = ("チャージ", "charge")


def resolve_paypay(row: Sequence[str], cmap: "ColumnMap") -> tuple[TransactionKind, int]:
    """PayPay: out/in columns; top-ups (チャージ) are transfers into the wallet."""
    kind, amount = _debit_credit(row, cmap)
    content = normalize(cmap.cell(row, "description"))
    if any(word in content for word in _CHARGE_WORDS):
        return TransactionKind.TRANSFER, amount
    return kind, amount


def resolve_app_export(row: Sequence[str], cmap: "ColumnMap") -> tuple[TransactionKind, int]:
    """This application's own export: kind column 収入/支出/振替, else sign."""
    value, _ = _required_amount(row, cmap)
    kind_text = normalize(cmap.cell(row, "type"))
    if "収入" in kind_text or "income" in kind_text:
        return TransactionKind.INCOME, abs(value)
    if "支出" in kind_text or "expense" in kind_text:
        return TransactionKind.EXPENSE, abs(value)
    if "振替" in kind_text or "transfer" in kind_text:
        return TransactionKind.TRANSFER, abs(value)
    return (TransactionKind.EXPENSE if value < 0 else TransactionKind.INCOME), abs(value)


Resolver = Callable[[Sequence[str], "ColumnMap"], tuple[TransactionKind, int]]


@dataclass(frozen=True)
class FormatLayout:
    """Column table and amount/kind resolution of one format.

    Attributes:
        columns: Fixed field -> column index table, or None when columns are
            guessed from the header row
        single_amount: True when the statement has one amount column and
            every row has the same direction
        resolve: Turns a row into (kind, non-negative amount)
    """

    columns: Optional[Mapping[str, int]]
    single_amount: bool
    resolve: Resolver


APP_EXPORT_HEADER = ["日付", "種類", "金額", "カテゴリ", "メモ"]

RESONA_WIDE_MIN_CELLS = 20
RESONA_WIDE_TYPE = 13
RESONA_WIDE_YEAR = 14
RESONA_WIDE_AMOUNT = 17
RESONA_WIDE_DESCRIPTION = 19

LAYOUTS: dict[ImportFormat, FormatLayout] = {
    ImportFormat.APP_EXPORT: FormatLayout(
        columns={"date": 0, "type": 1, "amount": 2, "category": 3, "description": 4},
        single_amount=False,
        resolve=resolve_app_export,
    ),
    ImportFormat.RESONA_BANK: FormatLayout(columns=None, single_amount=False, resolve=resolve_resona),
    ImportFormat.SMBC_CARD: FormatLayout(
        columns={"date": 0, "description": 1, "amount": 2},
        single_amount=True,
        resolve=resolve_card,
    ),
    ImportFormat.PAYPAY: FormatLayout(
        columns={"date": 0, "debit": 1, "credit": 2, "description": 7, "partner": 8},
        single_amount=False,
        resolve=resolve_paypay,
    ),
    ImportFormat.BANK_GENERIC: FormatLayout(columns=None, single_amount=False, resolve=resolve_bank),
    ImportFormat.CARD_GENERIC: FormatLayout(columns=None, single_amount=True, resolve=resolve_card),
    ImportFormat.UNKNOWN: FormatLayout(columns=None, single_amount=False, resolve=resolve_bank),
}


# Structural row helpers

_HEADER_WORDS = (
    "日付", "取引日", "利用日", "取扱日付", "種類", "金額", "摘要", "カテゴリ", "メモ",
    "date", "amount", "category", "description",
)


def _parses_as_date(text: str) -> bool:
    try:
        parse_date(text)
    except ValueError:
        return False
    return True


def _parses_as_amount(text: str) -> bool:
    try:
        parse_amount(text)
    except ValueError:
        return False
    return True


def is_header_row(row: Sequence[str]) -> bool:
    """A row naming columns rather than holding data."""
    if not row or _parses_as_date(row[0]):
        return False
    joined = normalize(",".join(row))
    return any(word in joined for word in _HEADER_WORDS)


def is_personal_info_row(row: Sequence[str]) -> bool:
    """Card statement preamble: holder name with honorific and masked card number."""
    if len(row) < 2:
        return False
    joined = clean_text(",".join(row))
    return "****" in joined or "様" in joined


def is_total_row(row: Sequence[str]) -> bool:
    """Card statement summary: empty date column with an amount in column 5."""
    if len(row) < 6 or row[0].strip():
        return False
    return _parses_as_amount(row[5])


def is_resona_wide_row(row: Sequence[str]) -> bool:
    """Legacy Resona rows carry y/m/d split over columns 14-16."""
    return len(row) >= RESONA_WIDE_MIN_CELLS


# Scorers

def _header_cells(rows: Sequence[Sequence[str]]) -> list[str]:
    return [clean_text(cell) for cell in rows[0]] if rows else []


def score_app_export(rows: Sequence[Sequence[str]]) -> tuple[float, str]:
    if _header_cells(rows) == APP_EXPORT_HEADER:
        return 1.0, "header matches the application export"
    return 0.0, ""


def score_paypay(rows: Sequence[Sequence[str]]) -> tuple[float, str]:
    header = _header_cells(rows)
    hits = sum(1 for word in ("取引日", "出金金額(円)", "取引番号") if word in header)
    if hits == 3:
        return 0.95, "PayPay header columns present"
    if hits == 2:
        return 0.5, "most PayPay header columns present"
    return 0.0, ""


def score_resona(rows: Sequence[Sequence[str]]) -> tuple[float, str]:
    if not rows:
        return 0.0, ""
    joined = ",".join(_header_cells(rows))
    if ("取扱日付" in joined and "摘要" in joined) or ("日付" in joined and "入払区分" in joined):
        return 0.9, "Resona header columns present"

    wide = [row for row in rows if is_resona_wide_row(row)]
    if not wide:
        return 0.0, ""
    consistent = sum(
        1
        for row in wide
        if _parses_as_date("/".join(row[RESONA_WIDE_YEAR:RESONA_WIDE_YEAR + 3]))
        and _parses_as_amount(row[RESONA_WIDE_AMOUNT])
    )
    share = consistent / len(rows)
    if share >= 0.5:
        return 0.8 * share, f"{consistent} legacy Resona rows"
    return 0.0, ""


_CARD_KEYWORDS = ("amazon", "master", "visa", "三井住友", "smbc")


def score_smbc_card(rows: Sequence[Sequence[str]]) -> tuple[float, str]:
    if not rows:
        return 0.0, ""
    score = 0.0
    reasons = []

    top = normalize(",".join(rows[0]))
    if "****" in top:
        score += 0.4
        reasons.append("masked card number")
    if any(word in top for word in _CARD_KEYWORDS) and ("様" in top or "さま" in top):
        score += 0.3
        reasons.append("card holder line")

    data_rows = [
        row for row in rows
        if len(row) >= 6 and _parses_as_date(row[0]) and _parses_as_amount(row[2])
    ]
    if data_rows:
        shaped = sum(1 for row in data_rows if clean_text(row[2]) == clean_text(row[5]))
        score += 0.35 * shaped / len(data_rows)
        if shaped:
            reasons.append(f"{shaped}/{len(data_rows)} rows with matching amount columns")

        last = rows[-1]
        if is_total_row(last):
            total = parse_amount(last[5])
            if total == sum(parse_amount(row[2]) for row in data_rows):
                score += 0.3
                reasons.append("summary row equals the sum of rows")

    return min(score, 1.0), ", ".join(reasons)


_DATE_WORDS = ("日付", "利用日", "取引日", "date")
_AMOUNT_WORDS = ("金額", "支払", "amount")
_DEBIT_WORDS = ("出金", "支払", "debit", "withdrawal")
_CREDIT_WORDS = ("入金", "預入", "credit", "deposit")


def _header_has(header: Sequence[str], words: Sequence[str]) -> bool:
    return any(word in cell for cell in header for word in words)


def _score_generic(rows: Sequence[Sequence[str]]) -> tuple[ImportFormat, float, str]:
    header = [normalize(cell) for cell in rows[0]] if rows else []
    if _header_has(header, _DATE_WORDS) and _header_has(header, _AMOUNT_WORDS + _DEBIT_WORDS):
        if _header_has(header, _DEBIT_WORDS) and _header_has(header, _CREDIT_WORDS):
            return ImportFormat.BANK_GENERIC, 0.5, "date and separate debit/credit columns"
        return ImportFormat.CARD_GENERIC, 0.5, "date and amount columns"

    dated = sum(1 for row in rows if row and _parses_as_date(row[0]))
    if rows and dated:
        return ImportFormat.CARD_GENERIC, 0.3 * dated / len(rows), "dates in the first column"
    return ImportFormat.UNKNOWN, 0.0, ""


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of format detection."""

    format: ImportFormat
    confidence: float
    reason: str = ""


_SCORERS: dict[ImportFormat, Callable[[Sequence[Sequence[str]]], tuple[float, str]]] = {
    ImportFormat.APP_EXPORT: score_app_export,
    ImportFormat.RESONA_BANK: score_resona,
    ImportFormat.SMBC_CARD: score_smbc_card,
    ImportFormat.PAYPAY: score_paypay,
}

_DECLARATION_ORDER = {fmt: i for i, fmt in enumerate(ImportFormat)}


class FormatDetector:
    """Scores every known layout against a parsed file.

    Detection is read-only and deterministic: the same rows always give the
    same result.
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        """Initialize the detector.

        Args:
            threshold: Confidence a vendor format must exceed to be selected
        """
        self.threshold = threshold

    def score_all(self, rows: Sequence[Sequence[str]]) -> list[DetectionResult]:
        """Score all candidates, best first; ties keep declaration order."""
        results = []
        for fmt, scorer in _SCORERS.items():
            confidence, reason = scorer(rows)
            results.append(DetectionResult(fmt, round(confidence, 4), reason))

        generic_fmt, confidence, reason = _score_generic(rows)
        for fmt in (ImportFormat.BANK_GENERIC, ImportFormat.CARD_GENERIC):
            if fmt == generic_fmt:
                results.append(DetectionResult(fmt, round(confidence, 4), reason))
            else:
                results.append(DetectionResult(fmt, 0.0, ""))

        return sorted(results, key=lambda r: (-r.confidence, _DECLARATION_ORDER[r.format]))

    def detect(
        self, rows: Sequence[Sequence[str]], preselected: Optional[ImportFormat] = None
    ) -> DetectionResult:
        """Pick the format for a file.

        Args:
            rows: Parsed rows
            preselected: Format chosen by the user. A vendor format is kept
                as is; a generic one may be upgraded to a vendor format
                scoring above the threshold.

        Returns:
            DetectionResult; format is UNKNOWN when nothing fits
        """
        ranked = self.score_all(rows)
        scores = {r.format: r for r in ranked}

        if preselected is not None and not preselected.is_generic:
            chosen = DetectionResult(
                preselected, scores[preselected].confidence, "selected explicitly"
            )
            logger.info("Using explicitly selected format %s", preselected.value)
            return chosen

        vendor = [r for r in ranked if not r.format.is_generic and r.confidence > self.threshold]
        if vendor:
            result = vendor[0]
        elif preselected is not None:
            result = scores.get(preselected) or DetectionResult(preselected, 0.0, "")
            result = DetectionResult(result.format, result.confidence, "selected explicitly")
        else:
            generic = [r for r in ranked if r.format.is_generic and r.confidence > 0]
            result = generic[0] if generic else DetectionResult(ImportFormat.UNKNOWN, 0.0, "no format matched")

        logger.info(
            "Detected format %s (confidence %.2f): %s",
            result.format.value,
            result.confidence,
            result.reason,
        )
        return result
