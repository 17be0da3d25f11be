"""Domain model entities for kakeibo.

These are pure data classes representing business concepts, independent of
database schema. The import pipeline only ever sees these types; the ORM
models stay behind the database layer.
"""

from dataclasses import dataclass
from datetime import datetime, date
from enum import Enum
from typing import Optional


class TransactionKind(str, Enum):
    """Direction of a ledger entry."""

    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"


class MatchType(str, Enum):
    """How a classification rule keyword is compared against text."""

    CONTAINS = "contains"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    EXACT = "exact"


class RuleOrigin(str, Enum):
    """Where a classification rule came from."""

    BOOTSTRAP = "bootstrap"
    USER = "user"
    LEARNED = "learned"


@dataclass(frozen=True)
class Account:
    """Bank, card or wallet account domain entity."""

    id: int
    name: str
    bank_name: str
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Category domain entity with hierarchical structure."""

    id: int
    name: str
    parent_id: Optional[int]
    created_at: datetime
    kind: TransactionKind = TransactionKind.EXPENSE


@dataclass(frozen=True)
class Transaction:
    """Ledger transaction domain entity.

    ``amount`` is a non-negative integer in minor currency units; the
    direction lives in ``kind``.
    """

    id: int
    occurred_on: date
    kind: TransactionKind
    amount: int
    description: str
    category_id: Optional[int]
    account_id: Optional[int]
    created_at: datetime
    to_account_id: Optional[int] = None
    source: Optional[str] = None
    source_id: Optional[str] = None
    import_id: Optional[str] = None
    import_fingerprint: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class NewTransaction:
    """A transaction that has not been written to the ledger yet."""

    occurred_on: date
    kind: TransactionKind
    amount: int
    description: str
    category_id: Optional[int]
    account_id: Optional[int] = None
    to_account_id: Optional[int] = None
    source: Optional[str] = None
    source_id: Optional[str] = None
    import_id: Optional[str] = None
    import_fingerprint: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ClassificationRule:
    """Keyword to category mapping used to suggest categories."""

    id: int
    keyword: str
    match_type: MatchType
    target_category_id: Optional[int]
    kind: TransactionKind
    priority: int
    enabled: bool
    origin: RuleOrigin
    created_at: datetime


@dataclass(frozen=True)
class ImportHistory:
    """One record per committed import batch."""

    id: int
    import_id: str
    file_fingerprint: str
    file_name: str
    source: Optional[str]
    imported_at: datetime
    total_row_count: int
    committed_count: int
    skipped_duplicate_count: int
    invalid_count: int


@dataclass(frozen=True)
class NewImportHistory:
    """Import history record that is written together with its batch."""

    import_id: str
    file_fingerprint: str
    file_name: str
    source: Optional[str]
    total_row_count: int
    committed_count: int
    skipped_duplicate_count: int
    invalid_count: int


@dataclass(frozen=True)
class SavedMapping:
    """A named set of column indices kept for reuse across imports.

    ``format_hint`` is the import format the mapping was made for, if any.
    """

    id: int
    name: str
    format_hint: Optional[str]
    date: Optional[int]
    amount: Optional[int]
    debit: Optional[int]
    credit: Optional[int]
    type: Optional[int]
    description: Optional[int]
    category: Optional[int]
    partner: Optional[int]
    created_at: datetime
