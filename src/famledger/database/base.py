"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Any
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from famledger.domain.entities import (
    Group,
    User,
    Account,
    Category,
    Transaction,
    TransactionFilter,
    Budget,
    BudgetPeriod,
    RecurringSeries,
)


class Database(ABC):
    """Abstract database interface for famledger.

    ``update_*`` methods accept keyword arguments naming the columns to
    change and raise NotFoundError when the row does not exist.
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

    # Group operations
    @abstractmethod
    def create_group(
        self,
        name: str,
        user_ids: list[int],
        description: Optional[str] = None,
        plan: Optional[dict[str, Any]] = None,
    ) -> int:
        """Create a group. Returns group ID."""
        pass

    @abstractmethod
    def get_group(self, group_id: int) -> Optional[Group]:
        """Get group by ID."""
        pass

    @abstractmethod
    def list_groups(self) -> list[Group]:
        """List all groups."""
        pass

    @abstractmethod
    def update_group(self, group_id: int, **fields: Any) -> None:
        """Update group columns."""
        pass

    @abstractmethod
    def delete_group(self, group_id: int) -> None:
        """Delete a group."""
        pass

    # User operations
    @abstractmethod
    def create_user(
        self, name: str, email: str, group_id: Optional[int] = None, role: str = "member"
    ) -> int:
        """Create a user. Returns user ID."""
        pass

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        pass

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by (lowercased) email."""
        pass

    @abstractmethod
    def list_users(self, group_id: Optional[int] = None) -> list[User]:
        """List users, optionally filtered by group."""
        pass

    @abstractmethod
    def update_user(self, user_id: int, **fields: Any) -> None:
        """Update user columns."""
        pass

    @abstractmethod
    def delete_user(self, user_id: int) -> None:
        """Delete a user row."""
        pass

    @abstractmethod
    def get_legacy_periods(self, user_id: int) -> list[dict[str, Any]]:
        """Get the legacy JSON budget period list stored on the user."""
        pass

    @abstractmethod
    def set_legacy_periods(self, user_id: int, periods: Optional[list[dict[str, Any]]]) -> None:
        """Replace the legacy JSON budget period list stored on the user."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self, name: str, type: str, user_ids: list[int], group_id: Optional[int] = None
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(
        self, group_id: Optional[int] = None, user_id: Optional[int] = None
    ) -> list[Account]:
        """List accounts, optionally filtered by group and/or owning user."""
        pass

    @abstractmethod
    def update_account(self, account_id: int, **fields: Any) -> None:
        """Update account columns."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account row."""
        pass

    # Category operations
    @abstractmethod
    def create_category(
        self, key: str, label: str, color: str, icon: str, group_id: Optional[int] = None
    ) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_key(self, group_id: Optional[int], key: str) -> Optional[Category]:
        """Get category by key within a group."""
        pass

    @abstractmethod
    def list_categories(self, group_id: Optional[int] = None) -> list[Category]:
        """List categories, optionally filtered by group."""
        pass

    @abstractmethod
    def update_category(self, category_id: int, **fields: Any) -> None:
        """Update category columns."""
        pass

    @abstractmethod
    def delete_category(self, category_id: int) -> None:
        """Delete a category."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        description: str,
        type: str,
        amount: Decimal,
        category: str,
        date: date,
        account_id: int,
        to_account_id: Optional[int] = None,
        user_id: Optional[int] = None,
        group_id: Optional[int] = None,
        recurring_series_id: Optional[int] = None,
        frequency: Optional[str] = None,
    ) -> int:
        """Create a transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(self, filters: Optional[TransactionFilter] = None) -> list[Transaction]:
        """List transactions matching filters, newest first, honoring limit/offset."""
        pass

    @abstractmethod
    def count_transactions(self, filters: Optional[TransactionFilter] = None) -> int:
        """Count transactions matching filters, ignoring limit/offset."""
        pass

    @abstractmethod
    def list_series_transactions(self, series_id: int) -> list[Transaction]:
        """List transactions generated by a recurring series."""
        pass

    @abstractmethod
    def update_transaction(self, transaction_id: int, **fields: Any) -> None:
        """Update transaction columns."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction."""
        pass

    @abstractmethod
    def delete_transactions_for_account(self, account_id: int) -> int:
        """Delete transactions with the account as source or destination. Returns count."""
        pass

    @abstractmethod
    def delete_transactions_for_user(self, user_id: int) -> int:
        """Delete all transactions owned by a user. Returns count."""
        pass

    @abstractmethod
    def count_transactions_with_category(self, group_id: Optional[int], key: str) -> int:
        """Count transactions in a group using a category key."""
        pass

    # Budget operations
    @abstractmethod
    def create_budget(
        self,
        description: str,
        amount: Decimal,
        type: str,
        categories: list[str],
        user_id: int,
        group_id: Optional[int] = None,
        icon: Optional[str] = None,
    ) -> int:
        """Create a budget. Returns budget ID."""
        pass

    @abstractmethod
    def get_budget(self, budget_id: int) -> Optional[Budget]:
        """Get budget by ID."""
        pass

    @abstractmethod
    def list_budgets(
        self, user_id: Optional[int] = None, group_id: Optional[int] = None
    ) -> list[Budget]:
        """List budgets, optionally filtered by user and/or group."""
        pass

    @abstractmethod
    def update_budget(self, budget_id: int, **fields: Any) -> None:
        """Update budget columns."""
        pass

    @abstractmethod
    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget."""
        pass

    @abstractmethod
    def delete_budgets_for_user(self, user_id: int) -> int:
        """Delete all budgets owned by a user. Returns count."""
        pass

    @abstractmethod
    def mark_budgets_stale(self, user_id: int) -> None:
        """Clear the cached balance timestamp on every budget of a user."""
        pass

    # Budget period operations
    @abstractmethod
    def create_period(
        self,
        user_id: int,
        start_date: date,
        end_date: Optional[date] = None,
        is_active: bool = False,
    ) -> int:
        """Create a budget period. Returns period ID."""
        pass

    @abstractmethod
    def get_period(self, period_id: int) -> Optional[BudgetPeriod]:
        """Get budget period by ID."""
        pass

    @abstractmethod
    def list_periods(self, user_id: int) -> list[BudgetPeriod]:
        """List a user's periods, newest start date first."""
        pass

    @abstractmethod
    def update_period(self, period_id: int, **fields: Any) -> None:
        """Update budget period columns."""
        pass

    @abstractmethod
    def delete_period(self, period_id: int) -> None:
        """Delete a budget period."""
        pass

    # Recurring series operations
    @abstractmethod
    def create_series(
        self,
        description: str,
        amount: Decimal,
        type: str,
        category: str,
        account_id: int,
        user_ids: list[int],
        frequency: str,
        start_date: date,
        due_day: int,
        due_date: Optional[date] = None,
        end_date: Optional[date] = None,
        group_id: Optional[int] = None,
    ) -> int:
        """Create a recurring series. Returns series ID."""
        pass

    @abstractmethod
    def get_series(self, series_id: int) -> Optional[RecurringSeries]:
        """Get recurring series by ID."""
        pass

    @abstractmethod
    def list_series(
        self, group_id: Optional[int] = None, active_only: bool = False
    ) -> list[RecurringSeries]:
        """List recurring series, optionally filtered by group and activity."""
        pass

    @abstractmethod
    def update_series(self, series_id: int, **fields: Any) -> None:
        """Update recurring series columns."""
        pass

    @abstractmethod
    def delete_series(self, series_id: int) -> None:
        """Delete a recurring series, unlinking its transactions."""
        pass
