"""Transaction domain service."""

import logging
from typing import TYPE_CHECKING, Optional
from datetime import date

from kakeibo.domain.entities import (
    NewTransaction,
    Transaction as TransactionEntity,
    TransactionKind,
)
from kakeibo.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    category_kind_mismatch,
    category_not_found,
)
from kakeibo.utils.text_normalizer import normalize

if TYPE_CHECKING:
    from kakeibo.database.base import Database

logger = logging.getLogger(__name__)


class TransactionService:
    """Service for managing ledger transactions."""

    def __init__(self, db: "Database"):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_transaction(self, transaction: NewTransaction) -> int:
        """Create a transaction.

        Args:
            transaction: Pending transaction

        Returns:
            Transaction ID

        Raises:
            ValidationError: If the amount is negative, a transfer lacks its
                destination, or the category kind does not match
            NotFoundError: If an account or the category doesn't exist
        """
        if transaction.amount < 0:
            raise ValidationError("Amount must not be negative; use the kind for direction")

        for account_id in (transaction.account_id, transaction.to_account_id):
            if account_id is not None and self.db.get_account(account_id) is None:
                raise NotFoundError(account_not_found(account_id))

        if transaction.kind == TransactionKind.TRANSFER and transaction.to_account_id is None:
            raise ValidationError("Transfer requires a destination account")

        self._check_category(transaction.category_id, transaction.kind)
        return self.db.create_transaction(transaction)

    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        kind: Optional[TransactionKind] = None,
        account_id: Optional[int] = None,
        import_id: Optional[str] = None,
    ) -> list[TransactionEntity]:
        """List transactions with optional filters."""
        return self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            kind=kind,
            account_id=account_id,
            import_id=import_id,
        )

    def reapply_category(
        self, description: str, kind: TransactionKind, category_id: int
    ) -> list[int]:
        """Assign a category to every ledger transaction with a matching description.

        Matching compares normalized descriptions and requires the same kind.
        Transactions that already carry ``category_id`` are left untouched.

        Returns:
            IDs of the transactions that were updated
        """
        self._check_category(category_id, kind)
        key = normalize(description)
        if not key:
            return []

        updated = []
        for txn in self.db.list_transactions(kind=kind):
            if txn.category_id == category_id:
                continue
            if normalize(txn.description) == key:
                self.db.update_transaction_category(txn.id, category_id)
                updated.append(txn.id)

        if updated:
            logger.info(
                "Re-categorized %d existing transactions matching '%s'", len(updated), description
            )
        return updated

    def _check_category(self, category_id: Optional[int], kind: TransactionKind) -> None:
        if category_id is None:
            return
        category = self.db.get_category(category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))
        if category.kind != kind:
            raise ValidationError(
                category_kind_mismatch(category.name, category.kind.value, kind.value)
            )
