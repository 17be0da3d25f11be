"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as two rules claiming the same keyword."""


class DecodeError(DomainError):
    """No candidate character encoding decoded the file cleanly."""

    def __init__(self, attempted: list[str]):
        self.attempted = list(attempted)
        super().__init__(
            "Could not decode file with any of: " + ", ".join(self.attempted)
        )


class RowInvalid(DomainError):
    """A single input row could not be turned into a transaction.

    Raised while building drafts and caught per row; the reason is kept on
    the draft for display.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class CommitFailed(DomainError):
    """The atomic ledger write for an import batch failed."""

    def __init__(self, cause: BaseException | str):
        self.cause = cause
        super().__init__(f"Import commit failed: {cause}")


class RollbackFailed(DomainError):
    """An import batch could not be removed completely."""

    def __init__(self, import_id: str, cause: BaseException | str):
        self.import_id = import_id
        self.cause = cause
        super().__init__(f"Rollback of import {import_id} failed: {cause}")


class InvalidTransitionError(DomainError):
    """The import wizard was asked to do something its current step forbids."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def rule_not_found(rule_id: int) -> str:
    """Return message for missing classification rule."""
    return f"Classification rule {rule_id} not found"


def import_not_found(import_id: str) -> str:
    """Return message for missing import history record."""
    return f"Import '{import_id}' not found"


def mapping_not_found(name: str) -> str:
    """Return message for missing saved column mapping."""
    return f"Saved mapping '{name}' not found"


def rule_keyword_conflict(keyword: str, kind: str, existing_rule_id: Optional[int]) -> str:
    """Return message when a rule for the same keyword and kind already exists."""
    return (
        f"A {kind} rule for keyword '{keyword}' already exists "
        f"(rule {existing_rule_id})"
    )


def category_kind_mismatch(category_name: str, category_kind: str, kind: str) -> str:
    """Return message when a category cannot be used for a transaction kind."""
    return f"Category '{category_name}' is a {category_kind} category, not {kind}"
