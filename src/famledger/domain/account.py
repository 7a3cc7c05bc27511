"""Account domain service."""

import logging
from decimal import Decimal
from typing import Any, Optional

from famledger.database.base import Database
from famledger.domain import finance_logic
from famledger.domain.entities import Account as AccountEntity, TransactionFilter
from famledger.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    group_not_found,
    user_not_found,
)
from famledger.domain.transaction import TransactionService

logger = logging.getLogger(__name__)


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def _check_users(self, user_ids: list[int]) -> None:
        if not user_ids:
            raise ValidationError("An account needs at least one user")
        for user_id in user_ids:
            if self.db.get_user(user_id) is None:
                raise NotFoundError(user_not_found(user_id))

    def create_account(self, name: str, type: str, user_ids: list[int], group_id: int) -> int:
        """Create a new account.

        Args:
            name: Account name
            type: Account type (payroll, savings, cash, investments, ...)
            user_ids: Owning user IDs (at least one)
            group_id: Group the account belongs to

        Returns:
            Account ID

        Raises:
            ValidationError: If a required field is missing
            NotFoundError: If the group or a user does not exist
        """
        if not name or not name.strip():
            raise ValidationError("Account name is required")
        if not type or not type.strip():
            raise ValidationError("Account type is required")
        if group_id is None:
            raise ValidationError("Group is required")
        if self.db.get_group(group_id) is None:
            raise NotFoundError(group_not_found(group_id))
        self._check_users(user_ids)

        account_id = self.db.create_account(
            name=name.strip(),
            type=type.strip().lower(),
            user_ids=list(dict.fromkeys(user_ids)),
            group_id=group_id,
        )
        logger.info("Created account %s (%s)", account_id, name)
        return account_id

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def list_accounts(
        self, group_id: Optional[int] = None, user_id: Optional[int] = None
    ) -> list[AccountEntity]:
        return self.db.list_accounts(group_id=group_id, user_id=user_id)

    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        type: Optional[str] = None,
        user_ids: Optional[list[int]] = None,
    ) -> None:
        """Update an account's name, type or owners.

        Raises:
            NotFoundError: If the account or a user does not exist
            ValidationError: If a supplied field is empty
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        fields: dict[str, Any] = {}
        if name is not None:
            if not name.strip():
                raise ValidationError("Account name cannot be empty")
            fields["name"] = name.strip()
        if type is not None:
            if not type.strip():
                raise ValidationError("Account type cannot be empty")
            fields["type"] = type.strip().lower()
        if user_ids is not None:
            self._check_users(user_ids)
            fields["user_ids"] = list(dict.fromkeys(user_ids))
        if fields:
            self.db.update_account(account_id, **fields)
            logger.info("Updated account %s", account_id)

    def delete_account(self, account_id: int) -> int:
        """Delete an account together with every transaction touching it.

        Transfers into the account are removed as well. Users that had it as
        default account get their default cleared.

        Returns:
            Number of transactions removed

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))

        removed = TransactionService(self.db).delete_by_account(account_id)
        for user in self.db.list_users(group_id=account.group_id):
            if user.default_account_id == account_id:
                self.db.update_user(user.id, default_account_id=None)
        self.db.delete_account(account_id)
        logger.info("Deleted account %s and %d transactions", account_id, removed)
        return removed

    def get_balance(self, account_id: int) -> Decimal:
        """Balance derived from all transactions touching the account."""
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        transactions = self.db.list_transactions(TransactionFilter(account_id=account_id))
        return finance_logic.calculate_account_balance(account_id, transactions)

    def list_with_balances(
        self, group_id: Optional[int] = None, user_id: Optional[int] = None
    ) -> list[tuple[AccountEntity, Decimal]]:
        """Accounts paired with their derived balances."""
        accounts = self.db.list_accounts(group_id=group_id, user_id=user_id)
        transactions = self.db.list_transactions(TransactionFilter(group_id=group_id))
        return [
            (account, finance_logic.calculate_account_balance(account.id, transactions))
            for account in accounts
        ]

    def get_default_accounts(self, group_id: int) -> list[AccountEntity]:
        """Accounts set as default by at least one user of the group."""
        return finance_logic.get_default_accounts(
            self.db.list_accounts(group_id=group_id), self.db.list_users(group_id=group_id)
        )
