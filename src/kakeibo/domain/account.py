"""Account domain service."""

from typing import TYPE_CHECKING, Optional

from kakeibo.domain.entities import Account as AccountEntity
from kakeibo.domain.errors import ConflictError, NotFoundError

if TYPE_CHECKING:
    from kakeibo.database.base import Database


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: "Database"):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(self, name: str, bank_name: str) -> int:
        """Create a new account.

        Args:
            name: Account name
            bank_name: Bank, card issuer or wallet provider

        Returns:
            Account ID

        Raises:
            ConflictError: If account name already exists
        """
        if self.db.get_account_by_name(name) is not None:
            raise ConflictError(f"Account with name '{name}' already exists")

        return self.db.create_account(name=name, bank_name=bank_name)

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def resolve_account(self, name_or_id: str) -> AccountEntity:
        """Resolve an account given either its numeric ID or its name.

        Raises:
            NotFoundError: If no account matches
        """
        if name_or_id.isdigit():
            account = self.db.get_account(int(name_or_id))
            if account is not None:
                return account
        account = self.db.get_account_by_name(name_or_id)
        if account is None:
            raise NotFoundError(f"Account '{name_or_id}' not found")
        return account

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts.

        Returns:
            List of account entities
        """
        return self.db.list_accounts()
