"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, including the string columns that
back the domain enums.
"""

from kakeibo.domain import entities as domain
from kakeibo.database.models import (
    Account as ORMAccount,
    Category as ORMCategory,
    Transaction as ORMTransaction,
    ClassificationRule as ORMClassificationRule,
    ImportHistory as ORMImportHistory,
    SavedMapping as ORMSavedMapping,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        created_at=orm_account.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        parent_id=orm_category.parent_id,
        created_at=orm_category.created_at,
        kind=domain.TransactionKind(orm_category.kind),
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        occurred_on=orm_transaction.occurred_on,
        kind=domain.TransactionKind(orm_transaction.kind),
        amount=orm_transaction.amount,
        description=orm_transaction.description or "",
        category_id=orm_transaction.category_id,
        account_id=orm_transaction.account_id,
        created_at=orm_transaction.created_at,
        to_account_id=orm_transaction.to_account_id,
        source=orm_transaction.source,
        source_id=orm_transaction.source_id,
        import_id=orm_transaction.import_id,
        import_fingerprint=orm_transaction.import_fingerprint,
        notes=orm_transaction.notes,
    )


def new_transaction_to_orm(txn: domain.NewTransaction) -> ORMTransaction:
    """Convert a pending domain transaction to a SQLAlchemy Transaction model."""
    return ORMTransaction(
        occurred_on=txn.occurred_on,
        kind=txn.kind.value,
        amount=txn.amount,
        description=txn.description,
        category_id=txn.category_id,
        account_id=txn.account_id,
        to_account_id=txn.to_account_id,
        source=txn.source,
        source_id=txn.source_id,
        import_id=txn.import_id,
        import_fingerprint=txn.import_fingerprint,
        notes=txn.notes,
    )


def rule_to_domain(orm_rule: ORMClassificationRule) -> domain.ClassificationRule:
    """Convert SQLAlchemy ClassificationRule model to domain entity."""
    return domain.ClassificationRule(
        id=orm_rule.id,
        keyword=orm_rule.keyword,
        match_type=domain.MatchType(orm_rule.match_type),
        target_category_id=orm_rule.target_category_id,
        kind=domain.TransactionKind(orm_rule.kind),
        priority=orm_rule.priority,
        enabled=orm_rule.enabled,
        origin=domain.RuleOrigin(orm_rule.origin),
        created_at=orm_rule.created_at,
    )


def import_history_to_domain(orm_history: ORMImportHistory) -> domain.ImportHistory:
    """Convert SQLAlchemy ImportHistory model to domain entity."""
    return domain.ImportHistory(
        id=orm_history.id,
        import_id=orm_history.import_id,
        file_fingerprint=orm_history.file_fingerprint,
        file_name=orm_history.file_name,
        source=orm_history.source,
        imported_at=orm_history.imported_at,
        total_row_count=orm_history.total_row_count,
        committed_count=orm_history.committed_count,
        skipped_duplicate_count=orm_history.skipped_duplicate_count,
        invalid_count=orm_history.invalid_count,
    )


def new_import_history_to_orm(history: domain.NewImportHistory) -> ORMImportHistory:
    """Convert a pending import history record to a SQLAlchemy model."""
    return ORMImportHistory(
        import_id=history.import_id,
        file_fingerprint=history.file_fingerprint,
        file_name=history.file_name,
        source=history.source,
        total_row_count=history.total_row_count,
        committed_count=history.committed_count,
        skipped_duplicate_count=history.skipped_duplicate_count,
        invalid_count=history.invalid_count,
    )


MAPPING_COLUMNS = ("date", "amount", "debit", "credit", "type", "description", "category", "partner")


def saved_mapping_to_domain(orm_mapping: ORMSavedMapping) -> domain.SavedMapping:
    """Convert SQLAlchemy SavedMapping model to domain entity."""
    return domain.SavedMapping(
        id=orm_mapping.id,
        name=orm_mapping.name,
        format_hint=orm_mapping.format_hint,
        created_at=orm_mapping.created_at,
        **{field: getattr(orm_mapping, f"{field}_index") for field in MAPPING_COLUMNS},
    )
