"""Budget domain service."""

import logging
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from famledger.database.base import Database
from famledger.domain import finance_logic
from famledger.domain.entities import (
    BUDGET_TYPES,
    Budget,
    BudgetPeriod,
    BudgetProgress,
    TransactionFilter,
    UserBudgetSummary,
)
from famledger.domain.errors import (
    NotFoundError,
    ValidationError,
    budget_not_found,
    group_not_found,
    user_not_found,
)
from famledger.domain.transaction import to_amount

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 2
DEFAULT_CACHE_MAX_AGE = timedelta(hours=1)


def _clean_description(description: Optional[str]) -> str:
    cleaned = (description or "").strip()
    if len(cleaned) < MIN_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Budget description must be at least {MIN_DESCRIPTION_LENGTH} characters"
        )
    return cleaned


def _clean_type(budget_type: str) -> str:
    if budget_type not in BUDGET_TYPES:
        raise ValidationError(
            f"Invalid budget type '{budget_type}'. Expected one of: {', '.join(BUDGET_TYPES)}"
        )
    return budget_type


def _clean_categories(categories: Optional[list[str]]) -> list[str]:
    cleaned = [c.strip().lower() for c in (categories or []) if c and c.strip()]
    if not cleaned:
        raise ValidationError("A budget needs at least one category")
    return list(dict.fromkeys(cleaned))


def _active(periods: list[BudgetPeriod]) -> Optional[BudgetPeriod]:
    return next((p for p in periods if p.is_active), None)


class BudgetService:
    """Service for managing budgets and their progress.

    Progress is always measured over the owner's active budget period.
    Without an active period a budget shows no spending.
    """

    def __init__(self, db: Database):
        """Initialize budget service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require_budget(self, budget_id: int) -> Budget:
        budget = self.db.get_budget(budget_id)
        if budget is None:
            raise NotFoundError(budget_not_found(budget_id))
        return budget

    def create_budget(
        self,
        description: str,
        amount: Decimal | int | str,
        type: str,
        categories: list[str],
        user_id: int,
        group_id: Optional[int] = None,
        icon: Optional[str] = None,
    ) -> int:
        """Create a budget.

        Args:
            description: Budget name, at least two characters
            amount: Budgeted amount, greater than zero
            type: monthly or annually
            categories: Category keys the budget tracks
            user_id: Owning user
            group_id: Owning group, defaults to the user's group
            icon: Optional icon name

        Returns:
            Budget ID

        Raises:
            ValidationError: If a field is invalid
            NotFoundError: If the user or group does not exist
        """
        clean_description = _clean_description(description)
        clean_amount = to_amount(amount)
        clean_type = _clean_type(type)
        clean_categories = _clean_categories(categories)

        user = self.db.get_user(user_id)
        if user is None:
            raise NotFoundError(user_not_found(user_id))
        if group_id is None:
            group_id = user.group_id
        elif self.db.get_group(group_id) is None:
            raise NotFoundError(group_not_found(group_id))

        budget_id = self.db.create_budget(
            description=clean_description,
            amount=clean_amount,
            type=clean_type,
            categories=clean_categories,
            user_id=user_id,
            group_id=group_id,
            icon=icon,
        )
        logger.info("Created budget %s (%s) for user %s", budget_id, clean_description, user_id)
        return budget_id

    def get_budget(self, budget_id: int) -> Optional[Budget]:
        return self.db.get_budget(budget_id)

    def list_budgets(
        self, user_id: Optional[int] = None, group_id: Optional[int] = None
    ) -> list[Budget]:
        return self.db.list_budgets(user_id=user_id, group_id=group_id)

    def update_budget(
        self,
        budget_id: int,
        description: Optional[str] = None,
        amount: Decimal | int | str | None = None,
        type: Optional[str] = None,
        categories: Optional[list[str]] = None,
        icon: Optional[str] = None,
    ) -> Budget:
        """Update the supplied fields of a budget, validating each like create."""
        self._require_budget(budget_id)
        fields: dict[str, Any] = {}
        if description is not None:
            fields["description"] = _clean_description(description)
        if amount is not None:
            fields["amount"] = to_amount(amount)
        if type is not None:
            fields["type"] = _clean_type(type)
        if categories is not None:
            fields["categories"] = _clean_categories(categories)
        if icon is not None:
            fields["icon"] = icon
        if fields:
            # Cached balance no longer matches the new amount or categories
            fields["balance_updated_at"] = None
            self.db.update_budget(budget_id, **fields)
            logger.info("Updated budget %s", budget_id)
        return self._require_budget(budget_id)

    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget.

        Raises:
            NotFoundError: If the budget does not exist
        """
        budget = self._require_budget(budget_id)
        self.db.delete_budget(budget_id)
        logger.info("Deleted budget %s of user %s", budget_id, budget.user_id)

    def get_budget_period_dates(self, user_id: int) -> tuple[Optional[date], Optional[date]]:
        """Start and end of the user's active period, or (None, None)."""
        period = _active(self.db.list_periods(user_id))
        if period is None:
            return None, None
        return period.start_date, period.end_date

    def get_progress(self, budget_id: int, today: Optional[date] = None) -> BudgetProgress:
        """Progress of a budget over its owner's active period."""
        budget = self._require_budget(budget_id)
        start, end = self.get_budget_period_dates(budget.user_id)
        transactions = self.db.list_transactions(TransactionFilter(user_id=budget.user_id))
        budget_transactions = finance_logic.filter_transactions_for_budget(
            transactions, budget, start, end, today=today
        )
        return finance_logic.calculate_budget_progress(budget, budget_transactions)

    def get_user_summary(self, user_id: int, today: Optional[date] = None) -> UserBudgetSummary:
        user = self.db.get_user(user_id)
        if user is None:
            raise NotFoundError(user_not_found(user_id))
        return finance_logic.calculate_user_budget_summary(
            user,
            self.db.list_budgets(user_id=user_id),
            self.db.list_transactions(TransactionFilter(user_id=user_id)),
            _active(self.db.list_periods(user_id)),
            today=today,
        )

    def get_group_summaries(
        self, group_id: int, today: Optional[date] = None
    ) -> dict[int, UserBudgetSummary]:
        """Budget summary of every member of a group, keyed by user id."""
        if self.db.get_group(group_id) is None:
            raise NotFoundError(group_not_found(group_id))
        users = self.db.list_users(group_id=group_id)
        return finance_logic.build_budgets_by_user(
            users,
            self.db.list_budgets(group_id=group_id),
            self.db.list_transactions(TransactionFilter(group_id=group_id)),
            {user.id: _active(self.db.list_periods(user.id)) for user in users},
            today=today,
        )

    def refresh_cached_balance(self, budget_id: int, today: Optional[date] = None) -> Decimal:
        """Recompute and store the remaining amount of a budget."""
        progress = self.get_progress(budget_id, today=today)
        self.db.update_budget(
            budget_id,
            cached_balance=progress.remaining,
            balance_updated_at=datetime.now(UTC),
        )
        logger.debug("Refreshed cached balance of budget %s: %s", budget_id, progress.remaining)
        return progress.remaining

    @staticmethod
    def is_cache_stale(
        budget: Budget,
        max_age: timedelta = DEFAULT_CACHE_MAX_AGE,
        now: Optional[datetime] = None,
    ) -> bool:
        """Whether the cached balance is missing or older than ``max_age``."""
        if budget.cached_balance is None or budget.balance_updated_at is None:
            return True
        updated_at = budget.balance_updated_at
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=UTC)
        return (now or datetime.now(UTC)) - updated_at > max_age
