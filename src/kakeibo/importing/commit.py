"""Atomic commit and rollback of import batches."""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from kakeibo.database.base import Database
from kakeibo.domain.entities import ImportHistory, NewImportHistory, NewTransaction, TransactionKind
from kakeibo.domain.errors import CommitFailed, InvalidTransitionError, RollbackFailed, ValidationError
from kakeibo.importing.drafts import DraftRow, DuplicateIndex, RowStatus, build_duplicate_index, fingerprint
from kakeibo.importing.session import ImportSession, WizardStep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitResult:
    """Outcome of committing one import batch."""

    import_id: str
    committed_count: int
    skipped_duplicate_count: int
    invalid_count: int
    unresolved_skipped_count: int
    transaction_ids: tuple[int, ...]


class CommitCoordinator:
    """Writes committable draft rows and their import history in one transaction."""

    def __init__(self, db: Database):
        self.db = db

    def _to_transaction(
        self, row: DraftRow, import_id: str, account_id: Optional[int], file_fingerprint: str
    ) -> NewTransaction:
        assert row.occurred_on is not None and row.kind is not None and row.amount is not None
        if row.kind == TransactionKind.TRANSFER:
            from_account_id, to_account_id = None, account_id
        else:
            from_account_id, to_account_id = account_id, None
        return NewTransaction(
            occurred_on=row.occurred_on,
            kind=row.kind,
            amount=row.amount,
            description=row.description,
            category_id=row.resolved_category_id,
            account_id=from_account_id,
            to_account_id=to_account_id,
            source=row.source,
            source_id=file_fingerprint,
            import_id=import_id,
            import_fingerprint=row.fingerprint,
        )

    def _resolved_fingerprint(
        self, row: DraftRow, ledger: DuplicateIndex, account_id: Optional[int]
    ) -> Optional[str]:
        """Fingerprint of the row as it will be stored, with the user's category."""
        if row.final_category_id is None or row.occurred_on is None:
            return row.fingerprint
        assert row.kind is not None and row.amount is not None
        return fingerprint(
            row.occurred_on,
            row.kind,
            row.amount,
            ledger.category_name(row.final_category_id),
            row.description,
            to_account_id=account_id if row.kind == TransactionKind.TRANSFER else None,
            source=row.source,
        )

    def commit(self, session: ImportSession) -> CommitResult:
        """Commit the session's committable rows.

        Valid rows and unresolved rows the user gave a category are written;
        duplicates, invalid rows and unresolved rows without a category are
        counted and skipped. Fingerprints are checked against the ledger once
        more, also with the user's category, so rows committed since the
        preview or re-categorized the same way as before are not written twice.

        Args:
            session: Import session at its summary step

        Returns:
            CommitResult with the new import ID and transaction IDs

        Raises:
            InvalidTransitionError: If the session is not at its summary step
            CommitFailed: If the write failed; nothing of the batch is stored
        """
        if session.step != WizardStep.SUMMARY:
            raise InvalidTransitionError(
                f"Only a session at the summary step can be committed (now at '{session.step.value}')"
            )
        if session.tokenized is None:
            raise ValidationError("Nothing to commit: no file has been read")

        import_id = uuid.uuid4().hex
        file_fingerprint = session.tokenized.fingerprint

        try:
            ledger = build_duplicate_index(self.db)
        except Exception as e:
            raise CommitFailed(e) from e

        transactions = []
        duplicates = invalid = unresolved = 0
        for row in session.drafts:
            if row.status == RowStatus.DUPLICATE:
                duplicates += 1
            elif row.status == RowStatus.INVALID:
                invalid += 1
            elif not row.is_committable:
                unresolved += 1
            elif row.fingerprint in ledger or (
                self._resolved_fingerprint(row, ledger, session.account_id) in ledger
            ):
                duplicates += 1
            else:
                transactions.append(
                    self._to_transaction(row, import_id, session.account_id, file_fingerprint)
                )

        history = NewImportHistory(
            import_id=import_id,
            file_fingerprint=file_fingerprint,
            file_name=session.file_name or "",
            source=session.format.value if session.format else None,
            total_row_count=len(session.drafts),
            committed_count=len(transactions),
            skipped_duplicate_count=duplicates,
            invalid_count=invalid,
        )

        try:
            ids = self.db.commit_import(transactions, history)
        except Exception as e:
            logger.error("Commit of import %s failed: %s", import_id, e)
            raise CommitFailed(e) from e

        logger.info(
            "Committed import %s: %d committed, %d duplicate, %d invalid, %d unresolved",
            import_id,
            len(ids),
            duplicates,
            invalid,
            unresolved,
        )
        return CommitResult(
            import_id=import_id,
            committed_count=len(ids),
            skipped_duplicate_count=duplicates,
            invalid_count=invalid,
            unresolved_skipped_count=unresolved,
            transaction_ids=tuple(ids),
        )

    def rollback(self, history: ImportHistory) -> int:
        """Remove every transaction of an import batch and its history record.

        Transactions stamped with the batch's import ID are removed, as are
        unstamped legacy transactions whose source ID is the batch's file
        fingerprint. Other batches of the same file are left alone.

        Returns:
            Number of transactions removed

        Raises:
            RollbackFailed: If anything could not be removed; nothing is removed then
        """
        try:
            removed = self.db.rollback_import(history.import_id, history.file_fingerprint)
        except Exception as e:
            logger.error("Rollback of import %s failed: %s", history.import_id, e)
            raise RollbackFailed(history.import_id, e) from e
        logger.info("Rolled back import %s: %d transactions removed", history.import_id, removed)
        return removed


class ImportHistoryService:
    """Read access to past import batches."""

    def __init__(self, db: Database):
        self.db = db

    def list_imports(self) -> list[ImportHistory]:
        """List import batches, newest first."""
        return self.db.list_import_histories()

    def get_import(self, import_id: str) -> Optional[ImportHistory]:
        return self.db.get_import_history(import_id)

    def find_by_fingerprint(self, file_fingerprint: str) -> list[ImportHistory]:
        return self.db.find_import_histories_by_fingerprint(file_fingerprint)
