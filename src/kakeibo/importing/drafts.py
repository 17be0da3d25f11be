"""Draft rows: candidate transactions built from parsed statement rows."""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

from kakeibo.database.base import Database
from kakeibo.domain.classification import ClassificationRuleEngine
from kakeibo.domain.entities import Category, Transaction, TransactionKind
from kakeibo.domain.errors import RowInvalid
from kakeibo.importing.column_map import ColumnMap
from kakeibo.importing.formats import ImportFormat, is_personal_info_row, is_total_row
from kakeibo.utils.text_normalizer import normalize

logger = logging.getLogger(__name__)

DUPLICATE_OF_LEDGER = "ledger"
DUPLICATE_OF_BATCH = "batch"


class RowStatus(str, Enum):
    """Where a draft row stands on its way to the ledger."""

    VALID = "valid"
    INVALID = "invalid"
    DUPLICATE = "duplicate"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class DraftRow:
    """One candidate transaction parsed from one input row.

    ``fingerprint`` is computed once when the row is built and is not
    recomputed when the category changes later. Invalid rows have no
    fingerprint, date, kind or amount.
    """

    row_index: int
    raw_cells: tuple[str, ...]
    status: RowStatus
    occurred_on: Optional[date] = None
    amount: Optional[int] = None
    kind: Optional[TransactionKind] = None
    description: str = ""
    raw_category: Optional[str] = None
    suggested_category_id: Optional[int] = None
    final_category_id: Optional[int] = None
    fingerprint: Optional[str] = None
    invalid_reason: Optional[str] = None
    duplicate_of: Optional[str] = None
    source: Optional[str] = None

    @property
    def resolved_category_id(self) -> Optional[int]:
        """The user's choice when set, else the suggestion."""
        if self.final_category_id is not None:
            return self.final_category_id
        return self.suggested_category_id

    @property
    def is_user_resolved(self) -> bool:
        return self.status == RowStatus.UNRESOLVED and self.final_category_id is not None

    @property
    def is_committable(self) -> bool:
        return self.status == RowStatus.VALID or self.is_user_resolved


def fingerprint(
    occurred_on: date,
    kind: TransactionKind,
    amount: int,
    category_name: Optional[str],
    description: Optional[str],
    from_account_id: Optional[int] = None,
    to_account_id: Optional[int] = None,
    source: Optional[str] = None,
) -> str:
    """Build the duplicate-detection key of a transaction.

    Day, kind, amount, normalized category name and normalized description;
    transfers add both account IDs and imported rows add their source.
    """
    parts = [
        occurred_on.isoformat(),
        kind.value,
        str(amount),
        normalize(category_name),
        normalize(description),
    ]
    if kind == TransactionKind.TRANSFER:
        parts.append("" if from_account_id is None else str(from_account_id))
        parts.append("" if to_account_id is None else str(to_account_id))
    if source:
        parts.append(normalize(source))
    return "|".join(parts)


def transaction_fingerprint(txn: Transaction, category_names: Mapping[int, str]) -> str:
    """Fingerprint of a ledger transaction."""
    category_name = category_names.get(txn.category_id) if txn.category_id is not None else None
    return fingerprint(
        txn.occurred_on,
        txn.kind,
        txn.amount,
        category_name,
        txn.description,
        from_account_id=txn.account_id,
        to_account_id=txn.to_account_id,
        source=txn.source,
    )


class DuplicateIndex:
    """Immutable snapshot of ledger fingerprints plus the category catalog.

    Rows of the batch being built are tracked in a :class:`BatchOverlay`,
    never added to the snapshot itself.
    """

    def __init__(self, fingerprints: Iterable[str] = (), categories: Sequence[Category] = ()):
        self._fingerprints = frozenset(fingerprints)
        self._categories = tuple(categories)
        self._names = {cat.id: cat.name for cat in self._categories}

    def __contains__(self, key: object) -> bool:
        return key in self._fingerprints

    def __len__(self) -> int:
        return len(self._fingerprints)

    @property
    def categories(self) -> tuple[Category, ...]:
        return self._categories

    def category_name(self, category_id: Optional[int]) -> Optional[str]:
        if category_id is None:
            return None
        return self._names.get(category_id)

    def find_category_id(self, name: Optional[str], kind: TransactionKind) -> Optional[int]:
        """Match a category label from a file to a known category of ``kind``."""
        key = normalize(name)
        if not key:
            return None
        for cat in self._categories:
            if cat.kind == kind and normalize(cat.name) == key:
                return cat.id
        return None

    def overlay(self) -> "BatchOverlay":
        """Start tracking fingerprints of a new batch."""
        return BatchOverlay(self)


@dataclass
class BatchOverlay:
    """Fingerprints seen so far in one batch, layered over a snapshot."""

    index: DuplicateIndex
    seen: set[str] = field(default_factory=set)

    def check(self, key: str) -> Optional[str]:
        """Return what ``key`` duplicates ("ledger" or "batch"), recording it if new."""
        if key in self.index:
            return DUPLICATE_OF_LEDGER
        if key in self.seen:
            return DUPLICATE_OF_BATCH
        self.seen.add(key)
        return None


def build_duplicate_index(db: Database) -> DuplicateIndex:
    """Snapshot the ledger's fingerprints and categories.

    Imported transactions contribute both their current fingerprint and
    the draft fingerprint stored when they were committed, so a row whose
    category was chosen by hand or by the remote classifier still matches
    the same row in a later import.
    """
    categories = db.list_all_categories()
    names = {cat.id: cat.name for cat in categories}
    fingerprints = set()
    for txn in db.list_transactions():
        fingerprints.add(transaction_fingerprint(txn, names))
        if txn.import_fingerprint:
            fingerprints.add(txn.import_fingerprint)
    logger.debug("Duplicate index holds %d fingerprints", len(fingerprints))
    return DuplicateIndex(fingerprints, categories)


class DraftBuilder:
    """Turns parsed rows into draft rows with suggestions and duplicate flags."""

    def __init__(self, engine: ClassificationRuleEngine, index: DuplicateIndex):
        """Initialize the builder.

        Args:
            engine: Rule engine used for category suggestions
            index: Ledger snapshot used for duplicate detection
        """
        self.engine = engine
        self.index = index

    def _skip(self, i: int, row: Sequence[str], fmt: ImportFormat, column_map: ColumnMap) -> bool:
        if not any(cell.strip() for cell in row):
            return True
        if i == 0 and column_map.has_header:
            return True
        if i == 0 and is_personal_info_row(row):
            return True
        return fmt == ImportFormat.SMBC_CARD and is_total_row(row)

    def build_row(
        self,
        i: int,
        row: Sequence[str],
        fmt: ImportFormat,
        column_map: ColumnMap,
        overlay: BatchOverlay,
        source: Optional[str] = None,
        account_id: Optional[int] = None,
    ) -> DraftRow:
        """Build the draft for a single row.

        Order: parse, classify, fingerprint, then check for duplicates.
        """
        cells = tuple(row)
        try:
            occurred_on = column_map.pick_date(row)
            kind, amount = column_map.pick_type_amount(row, fmt)
        except RowInvalid as e:
            return DraftRow(
                row_index=i,
                raw_cells=cells,
                status=RowStatus.INVALID,
                invalid_reason=e.reason,
                source=source,
            )

        description = column_map.pick_description(row)
        raw_category = column_map.pick_category(row)

        suggested = self.engine.suggest([description, raw_category], kind)
        if suggested is None and kind != TransactionKind.TRANSFER:
            suggested = self.index.find_category_id(raw_category, kind)

        category_name = self.index.category_name(suggested) if suggested is not None else None
        if category_name is None:
            category_name = raw_category or ""

        from_account_id, to_account_id = None, None
        if kind == TransactionKind.TRANSFER:
            to_account_id = account_id
        key = fingerprint(
            occurred_on,
            kind,
            amount,
            category_name,
            description,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            source=source,
        )

        duplicate_of = overlay.check(key)
        if duplicate_of is not None:
            status = RowStatus.DUPLICATE
        elif suggested is not None:
            status = RowStatus.VALID
        else:
            status = RowStatus.UNRESOLVED

        return DraftRow(
            row_index=i,
            raw_cells=cells,
            status=status,
            occurred_on=occurred_on,
            amount=amount,
            kind=kind,
            description=description,
            raw_category=raw_category,
            suggested_category_id=suggested,
            fingerprint=key,
            duplicate_of=duplicate_of,
            source=source,
        )

    def build(
        self,
        rows: Sequence[Sequence[str]],
        fmt: ImportFormat,
        column_map: ColumnMap,
        source: Optional[str] = None,
        account_id: Optional[int] = None,
    ) -> list[DraftRow]:
        """Build drafts for a whole batch.

        Header, card holder and summary rows are skipped. Every row is read
        with the same column map.

        Args:
            rows: Parsed rows
            fmt: Resolved format
            column_map: Column map of the batch
            source: Source identifier stamped on the rows (the format)
            account_id: Account the statement belongs to

        Returns:
            Draft rows in file order
        """
        overlay = self.index.overlay()
        drafts = []
        for i, row in enumerate(rows):
            if self._skip(i, row, fmt, column_map):
                continue
            drafts.append(
                self.build_row(i, row, fmt, column_map, overlay, source=source, account_id=account_id)
            )

        counts = {status: 0 for status in RowStatus}
        for draft in drafts:
            counts[draft.status] += 1
        logger.info(
            "Built %d drafts: %d valid, %d unresolved, %d duplicate, %d invalid",
            len(drafts),
            counts[RowStatus.VALID],
            counts[RowStatus.UNRESOLVED],
            counts[RowStatus.DUPLICATE],
            counts[RowStatus.INVALID],
        )
        return drafts


@dataclass(frozen=True)
class DescriptionGroup:
    """Rows sharing a normalized description and kind, resolved together."""

    key: str
    kind: TransactionKind
    description: str
    row_indices: tuple[int, ...]
    suggested_category_id: Optional[int] = None
    final_category_id: Optional[int] = None

    @property
    def count(self) -> int:
        return len(self.row_indices)


def group_key(description: Optional[str], kind: TransactionKind) -> tuple[str, TransactionKind]:
    return normalize(description), kind


def group_rows(rows: Iterable[DraftRow]) -> list[DescriptionGroup]:
    """Group resolvable rows (valid or unresolved) by description and kind.

    Groups come out in order of first appearance. The suggestion and final
    category of a group are those of its first row.
    """
    order: list[tuple[str, TransactionKind]] = []
    members: dict[tuple[str, TransactionKind], list[DraftRow]] = {}
    for row in rows:
        if row.status not in (RowStatus.VALID, RowStatus.UNRESOLVED) or row.kind is None:
            continue
        key = group_key(row.description, row.kind)
        if key not in members:
            order.append(key)
            members[key] = []
        members[key].append(row)

    groups = []
    for key in order:
        first = members[key][0]
        groups.append(
            DescriptionGroup(
                key=key[0],
                kind=key[1],
                description=first.description,
                row_indices=tuple(r.row_index for r in members[key]),
                suggested_category_id=first.suggested_category_id,
                final_category_id=first.final_category_id,
            )
        )
    return groups
