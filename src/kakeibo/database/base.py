"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Any
from datetime import date

# Import entities directly to avoid circular import through domain/__init__.py
from kakeibo.domain.entities import (
    Account,
    Category,
    Transaction,
    TransactionKind,
    NewTransaction,
    ClassificationRule,
    MatchType,
    RuleOrigin,
    ImportHistory,
    NewImportHistory,
    SavedMapping,
)


class Database(ABC):
    """Abstract database interface for kakeibo.

    Besides the CRUD operations this is the ledger collaborator of the import
    pipeline: ``commit_import`` and ``rollback_import`` are the only write
    paths that touch more than one row and must each be a single transaction.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Account operations
    @abstractmethod
    def create_account(self, name: str, bank_name: str) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_name(self, name: str) -> Optional[Account]:
        """Get account by name."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    # Category operations
    @abstractmethod
    def create_category(
        self,
        name: str,
        parent_id: Optional[int] = None,
        kind: TransactionKind = TransactionKind.EXPENSE,
    ) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_path(self, path: str) -> Optional[Category]:
        """Get category by path (e.g., '食費 > 外食')."""
        pass

    @abstractmethod
    def list_categories(self, parent_id: Optional[int] = None) -> list[Category]:
        """List categories, optionally filtered by parent."""
        pass

    @abstractmethod
    def list_all_categories(self) -> list[Category]:
        """List every category regardless of depth."""
        pass

    @abstractmethod
    def get_category_tree(self) -> list[dict[str, Any]]:
        """Get full category tree with hierarchy.

        Returns a list of dictionaries with category data and nested 'children' lists.
        """
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(self, transaction: NewTransaction) -> int:
        """Create a transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def update_transaction_category(self, transaction_id: int, category_id: Optional[int]) -> None:
        """Update transaction category."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        kind: Optional[TransactionKind] = None,
        account_id: Optional[int] = None,
        import_id: Optional[str] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters, oldest first."""
        pass

    # Classification rule operations
    @abstractmethod
    def create_rule(
        self,
        keyword: str,
        match_type: MatchType,
        target_category_id: Optional[int],
        kind: TransactionKind,
        priority: int,
        origin: RuleOrigin,
        enabled: bool = True,
    ) -> int:
        """Create a classification rule. Returns rule ID."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[ClassificationRule]:
        """Get classification rule by ID."""
        pass

    @abstractmethod
    def list_rules(self) -> list[ClassificationRule]:
        """List all classification rules in creation order."""
        pass

    @abstractmethod
    def update_rule_enabled(self, rule_id: int, enabled: bool) -> None:
        """Enable or disable a classification rule."""
        pass

    # Saved column mapping operations
    @abstractmethod
    def save_mapping(self, name: str, format_hint: Optional[str], columns: dict[str, Optional[int]]) -> int:
        """Create or replace the mapping called ``name``. Returns mapping ID."""
        pass

    @abstractmethod
    def get_mapping_by_name(self, name: str) -> Optional[SavedMapping]:
        """Get saved mapping by name."""
        pass

    @abstractmethod
    def list_mappings(self) -> list[SavedMapping]:
        """List saved mappings ordered by name."""
        pass

    @abstractmethod
    def delete_mapping(self, name: str) -> None:
        """Delete the saved mapping called ``name``.

        Raises:
            ValueError: If no mapping has that name
        """
        pass

    # Import history operations
    @abstractmethod
    def get_import_history(self, import_id: str) -> Optional[ImportHistory]:
        """Get import history by import ID."""
        pass

    @abstractmethod
    def list_import_histories(self) -> list[ImportHistory]:
        """List import histories, newest first."""
        pass

    @abstractmethod
    def find_import_histories_by_fingerprint(self, file_fingerprint: str) -> list[ImportHistory]:
        """List import histories of files with the given content fingerprint."""
        pass

    @abstractmethod
    def commit_import(
        self, transactions: list[NewTransaction], history: NewImportHistory
    ) -> list[int]:
        """Write a batch of transactions and its history record atomically.

        Returns:
            IDs of the created transactions, in input order

        Raises:
            Any database error; nothing of the batch is persisted in that case.
        """
        pass

    @abstractmethod
    def rollback_import(self, import_id: str, file_fingerprint: str) -> int:
        """Delete a batch's transactions and its history record atomically.

        Transactions stamped with ``import_id`` are removed, as are legacy
        transactions without an import ID whose ``source_id`` equals
        ``file_fingerprint``.

        Returns:
            Number of transactions removed

        Raises:
            ValueError: If no history record exists for ``import_id``
            Any database error; nothing is deleted in that case.
        """
        pass
