"""Column index resolution for parsed statement rows."""

import datetime
import logging
from dataclasses import dataclass, fields, replace
from typing import Optional, Sequence

from kakeibo.domain.entities import TransactionKind
from kakeibo.domain.errors import RowInvalid, ValidationError
from kakeibo.importing.formats import (
    LAYOUTS,
    RESONA_WIDE_DESCRIPTION,
    RESONA_WIDE_YEAR,
    ImportFormat,
    is_header_row,
    is_resona_wide_row,
)
from kakeibo.utils.date_parser import parse_date
from kakeibo.utils.text_normalizer import clean_text, normalize

logger = logging.getLogger(__name__)

FIELDS = ("date", "amount", "debit", "credit", "type", "description", "category", "partner")

# Header keywords per field, claimed in this order so that e.g. "入出金区分"
# becomes the type column and not the debit column.
_HEADER_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("date", ("日付", "取引日", "利用日", "年月日", "取扱日付", "date")),
    ("type", ("入出金", "入払区分", "区分", "種別", "種類", "type")),
    ("category", ("カテゴリ", "category")),
    ("debit", ("出金", "支出", "お支払金額", "debit", "withdrawal")),
    ("credit", ("入金", "収入", "お預り金額", "credit", "deposit")),
    ("amount", ("金額", "利用金額", "支払金額", "amount")),
    ("description", ("摘要", "内容", "メモ", "店名", "店舗", "加盟店", "利用先", "取引先", "description", "details", "memo")),
]


@dataclass(frozen=True)
class ManualMapping:
    """User-supplied column indices; set fields always win over heuristics."""

    date: Optional[int] = None
    amount: Optional[int] = None
    debit: Optional[int] = None
    credit: Optional[int] = None
    type: Optional[int] = None
    description: Optional[int] = None
    category: Optional[int] = None
    partner: Optional[int] = None

    @classmethod
    def from_pairs(cls, pairs: Sequence[str]) -> "ManualMapping":
        """Build a mapping from ``field=index`` strings.

        Raises:
            ValidationError: On unknown fields or non-integer indices
        """
        values: dict[str, int] = {}
        for pair in pairs:
            name, sep, raw = pair.partition("=")
            name = name.strip()
            if not sep or name not in FIELDS:
                raise ValidationError(
                    f"Invalid mapping '{pair}'. Use field=index with field one of: {', '.join(FIELDS)}"
                )
            try:
                index = int(raw)
            except ValueError:
                raise ValidationError(f"Column index for '{name}' must be an integer, got '{raw}'")
            if index < 0:
                raise ValidationError(f"Column index for '{name}' must not be negative")
            values[name] = index
        return cls(**values)

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def overlay(self, other: Optional["ManualMapping"]) -> "ManualMapping":
        """Return a copy with every field set in ``other`` replaced."""
        if other is None:
            return self
        return replace(self, **{name: getattr(other, name) for name in FIELDS if getattr(other, name) is not None})


@dataclass(frozen=True)
class ColumnMap:
    """Which column holds which field for one batch.

    The same map is used for every row of the batch.
    """

    format: ImportFormat
    date: Optional[int] = None
    amount: Optional[int] = None
    debit: Optional[int] = None
    credit: Optional[int] = None
    type: Optional[int] = None
    description: Optional[int] = None
    category: Optional[int] = None
    partner: Optional[int] = None
    has_header: bool = False

    @property
    def has_debit_credit(self) -> bool:
        return self.debit is not None or self.credit is not None

    def apply(self, override: Optional[ManualMapping]) -> "ColumnMap":
        """Return a copy with every field set in ``override`` replaced."""
        if override is None:
            return self
        changes = {
            name: getattr(override, name)
            for name in FIELDS
            if getattr(override, name) is not None
        }
        return replace(self, **changes)

    def cell(self, row: Sequence[str], field: str) -> str:
        """Return the stripped cell for ``field``, or "" when unmapped or missing."""
        index = getattr(self, field)
        if index is None or index >= len(row):
            return ""
        return row[index].strip()

    def pick_date(self, row: Sequence[str]) -> datetime.date:
        """Parse the row's date.

        Raises:
            RowInvalid: If the date is missing or unparseable
        """
        if self.format == ImportFormat.RESONA_BANK and is_resona_wide_row(row):
            text = "/".join(row[RESONA_WIDE_YEAR:RESONA_WIDE_YEAR + 3])
        else:
            text = self.cell(row, "date")
        if not text:
            raise RowInvalid("Missing date")
        try:
            return parse_date(text)
        except ValueError:
            raise RowInvalid(f"Invalid date '{text}'")

    def pick_description(self, row: Sequence[str]) -> str:
        """Return the display description of the row (width-folded, case kept)."""
        if self.format == ImportFormat.RESONA_BANK and is_resona_wide_row(row):
            return clean_text(row[RESONA_WIDE_DESCRIPTION])

        description = clean_text(self.cell(row, "description"))
        partner = clean_text(self.cell(row, "partner"))
        if partner:
            return f"{partner} ({description})" if description else partner
        return description

    def pick_category(self, row: Sequence[str]) -> Optional[str]:
        """Return the category label the file itself carries, if any."""
        label = clean_text(self.cell(row, "category"))
        return label or None

    def pick_type_amount(
        self, row: Sequence[str], fmt: Optional[ImportFormat] = None
    ) -> tuple[TransactionKind, int]:
        """Resolve the row's transaction kind and non-negative amount.

        Args:
            row: Parsed row
            fmt: Format whose rules apply, defaults to the map's format

        Raises:
            RowInvalid: If no unambiguous amount and direction can be found
        """
        layout = LAYOUTS[fmt or self.format]
        return layout.resolve(row, self)


def _find_header_columns(header: Sequence[str]) -> dict[str, int]:
    cells = [normalize(cell) for cell in header]
    found: dict[str, int] = {}
    claimed: set[int] = set()
    for name, keywords in _HEADER_KEYWORDS:
        keys = [normalize(k) for k in keywords]
        for index, cell in enumerate(cells):
            if index in claimed or not cell:
                continue
            if any(key in cell for key in keys):
                found[name] = index
                claimed.add(index)
                break
    return found


def build_column_map(
    rows: Sequence[Sequence[str]],
    fmt: ImportFormat,
    override: Optional[ManualMapping] = None,
) -> ColumnMap:
    """Work out the column map for a batch.

    Vendor formats use their fixed table. Generic formats read the header
    row when there is one and fall back to date/description/amount in
    columns 0/1/2 otherwise. A manual override wins over both.

    Args:
        rows: Parsed rows of the file
        fmt: Selected format
        override: Optional manual mapping

    Returns:
        ColumnMap
    """
    has_header = bool(rows) and is_header_row(rows[0])
    layout = LAYOUTS[fmt]

    if layout.columns is not None:
        cmap = ColumnMap(format=fmt, has_header=has_header, **layout.columns)
    elif has_header:
        columns = _find_header_columns(rows[0])
        if "date" not in columns:
            columns["date"] = 0
        if not {"amount", "debit", "credit"} & columns.keys():
            columns["amount"] = 2
        cmap = ColumnMap(format=fmt, has_header=True, **columns)
    else:
        cmap = ColumnMap(format=fmt, date=0, description=1, amount=2, has_header=False)

    cmap = cmap.apply(override)
    logger.debug("Column map for %s: %s", fmt.value, cmap)
    return cmap
