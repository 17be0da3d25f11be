"""Domain layer for kakeibo application."""

from kakeibo.domain.transaction import TransactionService
from kakeibo.domain.category import CategoryService
from kakeibo.domain.account import AccountService
from kakeibo.domain.classification import ClassificationRuleEngine

__all__ = [
    "TransactionService",
    "CategoryService",
    "AccountService",
    "ClassificationRuleEngine",
]
