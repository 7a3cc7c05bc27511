"""Budget period lifecycle: start, close, delete and legacy migration."""

import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from dateutil import parser as date_parser

from famledger.database.base import Database
from famledger.domain import finance_logic
from famledger.domain.entities import (
    Budget,
    BudgetPeriod,
    PeriodTotals,
    Transaction,
    TransactionFilter,
)
from famledger.domain.errors import (
    DomainError,
    NotFoundError,
    ValidationError,
    period_not_found,
    user_not_found,
)

logger = logging.getLogger(__name__)

ZERO = finance_logic.ZERO


def calculate_period_totals(
    transactions: Iterable[Transaction],
    period: BudgetPeriod,
    budgets: Iterable[Budget],
    today: Optional[date] = None,
) -> PeriodTotals:
    """Spent, saved and per-category spending of a period.

    Only the period owner's transactions and budgets (with amount > 0)
    count. Income refills a budget and spent is clamped at zero per budget.
    ``category_spending`` sums expenses and transfers only. A transaction
    in two budgets counts once per budget.
    """
    in_period = [
        t
        for t in finance_logic.filter_transactions_by_period(
            transactions, period.start_date, period.end_date, today=today
        )
        if t.user_id == period.user_id
    ]

    total_budget = total_spent = ZERO
    category_spending: dict[str, Decimal] = defaultdict(lambda: ZERO)

    for budget in budgets:
        if budget.user_id != period.user_id or budget.amount <= 0:
            continue
        total_budget += budget.amount
        budget_transactions = finance_logic.filter_by_categories(in_period, budget.categories)
        spent = ZERO
        for t in budget_transactions:
            if t.type == "income":
                spent -= t.amount
            else:
                spent += t.amount
                category_spending[t.category] += t.amount
        total_spent += max(ZERO, spent)

    return PeriodTotals(
        total_spent=finance_logic.round_money(total_spent),
        total_saved=finance_logic.round_money(max(ZERO, total_budget - total_spent)),
        category_spending={k: finance_logic.round_money(v) for k, v in category_spending.items()},
    )


def _parse_legacy_date(value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return finance_logic.as_date(value)
    return date_parser.isoparse(str(value)).date()


def _parse_legacy_amount(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


class BudgetPeriodService:
    """Service for a user's budget periods.

    At most one period per user is active. Closing a period stores its
    totals and opens the next one the following day.
    """

    def __init__(self, db: Database):
        """Initialize budget period service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require_user(self, user_id: int) -> None:
        if self.db.get_user(user_id) is None:
            raise NotFoundError(user_not_found(user_id))

    def _require_owned_period(self, user_id: int, period_id: int) -> BudgetPeriod:
        period = self.db.get_period(period_id)
        if period is None or period.user_id != user_id:
            raise NotFoundError(period_not_found(period_id))
        return period

    def list_periods(self, user_id: int) -> list[BudgetPeriod]:
        """All periods of a user, newest start date first."""
        return self.db.list_periods(user_id)

    def get_period(self, period_id: int) -> Optional[BudgetPeriod]:
        return self.db.get_period(period_id)

    def get_active_period(self, user_id: int) -> Optional[BudgetPeriod]:
        return next((p for p in self.db.list_periods(user_id) if p.is_active), None)

    def get_active_periods(self, user_ids: Iterable[int]) -> dict[int, Optional[BudgetPeriod]]:
        return {user_id: self.get_active_period(user_id) for user_id in user_ids}

    def create_period(self, user_id: int, start_date: date) -> BudgetPeriod:
        """Start a new active period.

        Every existing period is deactivated. The previously active one, if
        still open, is closed the day before ``start_date``.

        Raises:
            ValidationError: If the start date is missing
            NotFoundError: If the user does not exist
        """
        if start_date is None:
            raise ValidationError("Start date is required")
        start_date = finance_logic.as_date(start_date)
        self._require_user(user_id)

        for period in self.db.list_periods(user_id):
            if period.is_active and period.end_date is None:
                self.db.update_period(
                    period.id, is_active=False, end_date=start_date - timedelta(days=1)
                )
            elif period.is_active:
                self.db.update_period(period.id, is_active=False)

        period_id = self.db.create_period(user_id=user_id, start_date=start_date, is_active=True)
        self.db.mark_budgets_stale(user_id)
        logger.info("Started budget period %s for user %s on %s", period_id, user_id, start_date)
        return self.db.get_period(period_id)

    def close_period(
        self, user_id: int, period_id: int, end_date: date, today: Optional[date] = None
    ) -> BudgetPeriod:
        """Close a period, store its totals and open the next one.

        The next period starts the day after ``end_date``. Failing to open it
        is logged and does not undo the closure.

        Raises:
            NotFoundError: If the period does not belong to the user
            ValidationError: If the end date precedes the start date
        """
        if end_date is None:
            raise ValidationError("End date is required")
        end_date = finance_logic.as_date(end_date)
        period = self._require_owned_period(user_id, period_id)
        if end_date < period.start_date:
            raise ValidationError("End date must be on or after start date")

        closed = BudgetPeriod(
            id=period.id, user_id=user_id, start_date=period.start_date, end_date=end_date
        )
        totals = self.calculate_totals_for(closed, today=today)
        self.db.update_period(
            period_id,
            end_date=end_date,
            is_active=False,
            total_spent=totals.total_spent,
            total_saved=totals.total_saved,
            category_spending=totals.category_spending,
        )
        logger.info(
            "Closed budget period %s of user %s on %s (spent %s, saved %s)",
            period_id,
            user_id,
            end_date,
            totals.total_spent,
            totals.total_saved,
        )

        try:
            self.create_period(user_id, end_date + timedelta(days=1))
        except DomainError:
            logger.warning(
                "Failed to open the period following %s for user %s", period_id, user_id, exc_info=True
            )

        return self.db.get_period(period_id)

    def delete_period(self, user_id: int, period_id: int) -> None:
        """Delete a period permanently.

        Raises:
            NotFoundError: If the period does not belong to the user
        """
        self._require_owned_period(user_id, period_id)
        self.db.delete_period(period_id)
        self.db.mark_budgets_stale(user_id)
        logger.info("Deleted budget period %s of user %s", period_id, user_id)

    def calculate_totals_for(self, period: BudgetPeriod, today: Optional[date] = None) -> PeriodTotals:
        return calculate_period_totals(
            self.db.list_transactions(TransactionFilter(user_id=period.user_id)),
            period,
            self.db.list_budgets(user_id=period.user_id),
            today=today,
        )

    def preview_period(
        self, user_id: int, period_id: int, today: Optional[date] = None
    ) -> PeriodTotals:
        """Totals a period would store if closed now. Nothing is persisted."""
        return self.calculate_totals_for(self._require_owned_period(user_id, period_id), today=today)

    def migrate_legacy_periods(self, user_id: int) -> int:
        """Copy the legacy JSON period list of a user into the periods table.

        Periods already present with the same start date are skipped, so the
        migration can run more than once. The JSON list is cleared afterwards.

        Returns:
            Number of periods created
        """
        self._require_user(user_id)
        legacy = self.db.get_legacy_periods(user_id)
        if not legacy:
            return 0

        existing = {p.start_date for p in self.db.list_periods(user_id)}
        created = 0
        for entry in sorted(legacy, key=lambda p: str(p.get("start_date") or "")):
            try:
                start = _parse_legacy_date(entry.get("start_date"))
                end = _parse_legacy_date(entry.get("end_date"))
            except (ValueError, OverflowError):
                logger.warning("Skipping legacy period with invalid dates for user %s: %s", user_id, entry)
                continue
            if start is None or start in existing:
                continue

            period_id = self.db.create_period(
                user_id=user_id, start_date=start, end_date=end, is_active=bool(entry.get("is_active"))
            )
            fields: dict[str, Any] = {}
            for key in ("total_spent", "total_saved"):
                amount = _parse_legacy_amount(entry.get(key))
                if amount is not None:
                    fields[key] = amount
            if entry.get("category_spending"):
                fields["category_spending"] = {
                    k: _parse_legacy_amount(v) or ZERO for k, v in entry["category_spending"].items()
                }
            if fields:
                self.db.update_period(period_id, **fields)
            existing.add(start)
            created += 1

        self._keep_single_active(user_id)
        self.db.set_legacy_periods(user_id, [])
        logger.info("Migrated %d legacy budget periods for user %s", created, user_id)
        return created

    def _keep_single_active(self, user_id: int) -> None:
        active = [p for p in self.db.list_periods(user_id) if p.is_active]
        # list_periods is newest first: keep the most recent active one
        for period in active[1:]:
            self.db.update_period(period.id, is_active=False)
