"""User domain service."""

import logging
import re
from typing import Any, Optional

from famledger.database.base import Database
from famledger.domain.entities import ROLES, User
from famledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    duplicate_email,
    user_not_found,
)
from famledger.domain.transaction import TransactionService

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Name is required")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters")
    return cleaned


def _clean_email(email: str) -> str:
    cleaned = (email or "").strip().lower()
    if not _EMAIL.match(cleaned):
        raise ValidationError(f"Invalid email address '{email}'")
    return cleaned


class UserService:
    """Service for managing users."""

    def __init__(self, db: Database):
        """Initialize user service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require_user(self, user_id: int) -> User:
        user = self.db.get_user(user_id)
        if user is None:
            raise NotFoundError(user_not_found(user_id))
        return user

    def create_user(
        self, name: str, email: str, group_id: Optional[int] = None, role: str = "member"
    ) -> int:
        """Create a user.

        If ``group_id`` is given the user is also added to the group's member
        list.

        Returns:
            User ID

        Raises:
            ValidationError: If name, email or role are invalid
            ConflictError: If the email is already used
        """
        clean_name = _clean_name(name)
        clean_email = _clean_email(email)
        if role not in ROLES:
            raise ValidationError(f"Invalid role '{role}'. Expected one of: {', '.join(ROLES)}")
        if self.db.get_user_by_email(clean_email) is not None:
            raise ConflictError(duplicate_email(clean_email))

        group = None
        if group_id is not None:
            group = self.db.get_group(group_id)
            if group is None:
                raise NotFoundError(f"Group {group_id} not found")

        user_id = self.db.create_user(name=clean_name, email=clean_email, group_id=group_id, role=role)
        if group is not None:
            self.db.update_group(group_id, user_ids=[*group.user_ids, user_id])
        logger.info("Created user %s (%s)", user_id, clean_email)
        return user_id

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get_user(user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.get_user_by_email(email.strip().lower())

    def list_users(self, group_id: Optional[int] = None) -> list[User]:
        return self.db.list_users(group_id=group_id)

    def update_profile(
        self, user_id: int, name: Optional[str] = None, email: Optional[str] = None
    ) -> User:
        """Update a user's name and/or email.

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If the new name or email is invalid
            ConflictError: If the new email belongs to another user
        """
        self._require_user(user_id)
        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = _clean_name(name)
        if email is not None:
            clean_email = _clean_email(email)
            existing = self.db.get_user_by_email(clean_email)
            if existing is not None and existing.id != user_id:
                raise ConflictError(duplicate_email(clean_email))
            fields["email"] = clean_email
        if fields:
            self.db.update_user(user_id, **fields)
            logger.info("Updated profile of user %s", user_id)
        return self._require_user(user_id)

    def set_role(self, user_id: int, role: str) -> None:
        if role not in ROLES:
            raise ValidationError(f"Invalid role '{role}'. Expected one of: {', '.join(ROLES)}")
        self._require_user(user_id)
        self.db.update_user(user_id, role=role)
        logger.info("User %s is now %s", user_id, role)

    def set_budget_start_date(self, user_id: int, day: Optional[int]) -> None:
        if day is not None and not 1 <= day <= 31:
            raise ValidationError("Budget start day must be between 1 and 31")
        self._require_user(user_id)
        self.db.update_user(user_id, budget_start_date=day)

    def set_default_account(self, user_id: int, account_id: Optional[int]) -> None:
        """Set (or clear with None) the user's default account.

        Raises:
            NotFoundError: If the user or account does not exist
            ValidationError: If the user does not own the account
        """
        self._require_user(user_id)
        if account_id is not None:
            account = self.db.get_account(account_id)
            if account is None:
                raise NotFoundError(account_not_found(account_id))
            if user_id not in account.user_ids:
                raise ValidationError(f"User {user_id} does not own account {account_id}")
        self.db.update_user(user_id, default_account_id=account_id)
        logger.info("Default account of user %s set to %s", user_id, account_id)

    def delete_user(self, user_id: int) -> None:
        """Delete a user and everything that belongs only to them.

        Budgets, transactions and budget periods are deleted. Accounts and
        recurring series the user owns alone are deleted; shared ones just
        lose the user. The user is also removed from their group.
        """
        user = self._require_user(user_id)

        budgets = self.db.delete_budgets_for_user(user_id)
        transactions = self.db.delete_transactions_for_user(user_id)

        for series in self.db.list_series():
            if user_id not in series.user_ids:
                continue
            remaining = [u for u in series.user_ids if u != user_id]
            if remaining:
                self.db.update_series(series.id, user_ids=remaining)
            else:
                self.db.delete_series(series.id)

        for account in self.db.list_accounts(user_id=user_id):
            remaining = [u for u in account.user_ids if u != user_id]
            if remaining:
                self.db.update_account(account.id, user_ids=remaining)
            else:
                TransactionService(self.db).delete_by_account(account.id)
                self.db.delete_account(account.id)

        if user.group_id is not None:
            group = self.db.get_group(user.group_id)
            if group is not None:
                self.db.update_group(
                    group.id, user_ids=[u for u in group.user_ids if u != user_id]
                )

        self.db.delete_user(user_id)
        logger.info(
            "Deleted user %s with %d budgets and %d transactions", user_id, budgets, transactions
        )
