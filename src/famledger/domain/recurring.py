"""Recurring transaction series: scheduling, execution and reconciliation."""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional

from famledger.database.base import Database
from famledger.domain import finance_logic
from famledger.domain.entities import FREQUENCIES, RecurringSeries
from famledger.domain.errors import (
    DomainError,
    NotFoundError,
    ValidationError,
    account_not_found,
    series_not_found,
    user_not_found,
)
from famledger.domain.transaction import TransactionService, to_amount

logger = logging.getLogger(__name__)

SERIES_TYPES = ("income", "expense")
DEFAULT_MAX_DAYS_OVERDUE = 7


@dataclass
class ExecutionFailure:
    series_id: int
    description: str
    error: str


@dataclass
class ExecutionResult:
    """Summary of a batch execution of due series."""

    processed: int = 0
    successful: int = 0
    failed: int = 0
    total_amount: Decimal = finance_logic.ZERO
    transaction_ids: list[int] = field(default_factory=list)
    executed_series_ids: list[int] = field(default_factory=list)
    failures: list[ExecutionFailure] = field(default_factory=list)
    dry_run: bool = False


@dataclass(frozen=True)
class Reconciliation:
    """Payments made by a series compared with its schedule."""

    series_id: int
    expected_executions: int
    actual_executions: int
    missed_payments: int
    expected_total: Decimal
    total_paid: Decimal
    difference: Decimal
    success_rate: float


@dataclass(frozen=True)
class MissedExecution:
    series: RecurringSeries
    due_date: date
    days_overdue: int


def _validate_due_day(frequency: str, due_day: int) -> None:
    if frequency in ("weekly", "biweekly"):
        if not 1 <= due_day <= 7:
            raise ValidationError("Due day must be between 1 (Monday) and 7 (Sunday) for weekly series")
    elif not 1 <= due_day <= 31:
        raise ValidationError("Due day must be between 1 and 31")


def _validate_frequency(frequency: str) -> None:
    if frequency not in FREQUENCIES:
        raise ValidationError(
            f"Invalid frequency '{frequency}'. Expected one of: {', '.join(FREQUENCIES)}"
        )


def _validate_type(series_type: str) -> None:
    if series_type not in SERIES_TYPES:
        raise ValidationError(
            f"Invalid series type '{series_type}'. Expected one of: {', '.join(SERIES_TYPES)}"
        )


def scheduled_dates(series: RecurringSeries, until: date) -> list[date]:
    """Every date the series should have run from its start through ``until``."""
    if series.start_date is None:
        return []
    last = min(until, series.end_date) if series.end_date else until
    dates = []
    current = series.start_date
    while current <= last:
        dates.append(current)
        if series.frequency == "once":
            break
        current = finance_logic.advance_due_date(current, series.frequency, series.due_day)
    return dates


class RecurringService:
    """Service for recurring transaction series.

    A series remembers its next scheduled run in ``due_date``. Executing it
    records a linked transaction and moves ``due_date`` one occurrence
    forward. One-off series are deactivated after their single run.
    """

    def __init__(self, db: Database):
        """Initialize recurring service.

        Args:
            db: Database instance
        """
        self.db = db
        self.transactions = TransactionService(db)

    def _require_series(self, series_id: int) -> RecurringSeries:
        series = self.db.get_series(series_id)
        if series is None:
            raise NotFoundError(series_not_found(series_id))
        return series

    def _check_users(self, user_ids: list[int]) -> None:
        if not user_ids:
            raise ValidationError("A recurring series needs at least one user")
        for user_id in user_ids:
            if self.db.get_user(user_id) is None:
                raise NotFoundError(user_not_found(user_id))

    def create_series(
        self,
        description: str,
        amount: Decimal | int | str,
        type: str,
        category: str,
        account_id: int,
        user_ids: list[int],
        frequency: str,
        start_date: date,
        due_day: int,
        end_date: Optional[date] = None,
        group_id: Optional[int] = None,
        due_date: Optional[date] = None,
    ) -> int:
        """Create a recurring series.

        Args:
            description: Series description
            amount: Amount of each execution
            type: income or expense
            category: Category key of generated transactions
            account_id: Account generated transactions hit
            user_ids: Users sharing the series
            frequency: once, weekly, biweekly, monthly or yearly
            start_date: First scheduled date
            due_day: ISO weekday for weekly series, day of month otherwise
            end_date: Optional last date
            group_id: Owning group, defaults to the account's group
            due_date: First execution date, defaults to ``start_date``

        Returns:
            Series ID

        Raises:
            ValidationError: If a field is invalid
            NotFoundError: If the account or a user does not exist
        """
        if not description or not description.strip():
            raise ValidationError("Description is required")
        clean_amount = to_amount(amount)
        _validate_type(type)
        _validate_frequency(frequency)
        _validate_due_day(frequency, due_day)
        if not category or not category.strip():
            raise ValidationError("Category is required")
        if start_date is None:
            raise ValidationError("Start date is required")
        if end_date is not None and end_date < start_date:
            raise ValidationError("End date must be on or after start date")
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        self._check_users(user_ids)

        series_id = self.db.create_series(
            description=description.strip(),
            amount=clean_amount,
            type=type,
            category=category.strip().lower(),
            account_id=account_id,
            user_ids=list(dict.fromkeys(user_ids)),
            frequency=frequency,
            start_date=start_date,
            due_day=due_day,
            due_date=due_date or start_date,
            end_date=end_date,
            group_id=group_id if group_id is not None else account.group_id,
        )
        logger.info("Created %s recurring series %s (%s)", frequency, series_id, description)
        return series_id

    def get_series(self, series_id: int) -> Optional[RecurringSeries]:
        return self.db.get_series(series_id)

    def list_series(
        self,
        user_id: Optional[int] = None,
        group_id: Optional[int] = None,
        active_only: bool = False,
    ) -> list[RecurringSeries]:
        series = self.db.list_series(group_id=group_id, active_only=active_only)
        if user_id is not None:
            series = [s for s in series if finance_logic.has_access(s, user_id)]
        return series

    def update_series(self, series_id: int, **changes: Any) -> RecurringSeries:
        """Update a series, validating the merged state like create_series."""
        current = self._require_series(series_id)
        allowed = {
            "description",
            "amount",
            "type",
            "category",
            "account_id",
            "user_ids",
            "frequency",
            "start_date",
            "end_date",
            "due_day",
            "due_date",
            "is_active",
        }
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        if "description" in changes:
            if not changes["description"] or not changes["description"].strip():
                raise ValidationError("Description is required")
            changes["description"] = changes["description"].strip()
        if "amount" in changes:
            changes["amount"] = to_amount(changes["amount"])
        if "type" in changes:
            _validate_type(changes["type"])
        if "category" in changes:
            if not changes["category"] or not changes["category"].strip():
                raise ValidationError("Category is required")
            changes["category"] = changes["category"].strip().lower()
        if "account_id" in changes and self.db.get_account(changes["account_id"]) is None:
            raise NotFoundError(account_not_found(changes["account_id"]))
        if "user_ids" in changes:
            self._check_users(changes["user_ids"])
            changes["user_ids"] = list(dict.fromkeys(changes["user_ids"]))

        frequency = changes.get("frequency", current.frequency)
        _validate_frequency(frequency)
        _validate_due_day(frequency, changes.get("due_day", current.due_day))
        if "start_date" in changes and changes["start_date"] is None:
            raise ValidationError("Start date is required")
        start_date = changes.get("start_date", current.start_date)
        end_date = changes.get("end_date", current.end_date)
        if start_date is not None and end_date is not None and end_date < start_date:
            raise ValidationError("End date must be on or after start date")

        self.db.update_series(series_id, **changes)
        logger.info("Updated recurring series %s", series_id)
        return self._require_series(series_id)

    def delete_series(self, series_id: int) -> None:
        """Delete a series. Transactions it generated are kept but unlinked."""
        self._require_series(series_id)
        self.db.delete_series(series_id)
        logger.info("Deleted recurring series %s", series_id)

    def toggle_active(self, series_id: int) -> RecurringSeries:
        series = self._require_series(series_id)
        self.db.update_series(series_id, is_active=not series.is_active)
        logger.info(
            "Recurring series %s is now %s", series_id, "inactive" if series.is_active else "active"
        )
        return self._require_series(series_id)

    def execute_series(self, series_id: int, today: Optional[date] = None) -> int:
        """Record one execution of a series.

        The transaction is dated on the series' scheduled ``due_date``.

        Returns:
            ID of the created transaction

        Raises:
            NotFoundError: If the series does not exist
            ValidationError: If the series is inactive or has no account group
        """
        today = today or date.today()
        series = self._require_series(series_id)
        if not series.is_active:
            raise ValidationError(f"Recurring series {series_id} is not active")

        due = series.due_date or series.start_date or today
        transaction_id = self.transactions.create_transaction(
            description=series.description,
            amount=series.amount,
            type=series.type,
            category=series.category,
            date=due,
            account_id=series.account_id,
            group_id=series.group_id,
            user_id=series.user_ids[0] if series.user_ids else None,
            recurring_series_id=series.id,
            frequency=series.frequency,
        )

        fields: dict[str, Any] = {
            "total_executions": series.total_executions + 1,
            "transaction_ids": [*series.transaction_ids, transaction_id],
        }
        if series.frequency == "once":
            fields["is_active"] = False
        else:
            next_due = finance_logic.advance_due_date(due, series.frequency, series.due_day)
            fields["due_date"] = next_due
            if series.end_date is not None and next_due > series.end_date:
                fields["is_active"] = False
        self.db.update_series(series_id, **fields)

        logger.info(
            "Executed recurring series %s on %s: transaction %s", series_id, due, transaction_id
        )
        return transaction_id

    def get_due_series(
        self,
        today: Optional[date] = None,
        max_days_overdue: int = DEFAULT_MAX_DAYS_OVERDUE,
        group_id: Optional[int] = None,
    ) -> list[RecurringSeries]:
        """Active series due today or overdue by at most ``max_days_overdue`` days."""
        today = today or date.today()
        due = []
        for series in self.db.list_series(group_id=group_id, active_only=True):
            if series.due_date is None:
                continue
            days_until = (series.due_date - today).days
            if -max_days_overdue <= days_until <= 0:
                due.append(series)
        return due

    def execute_all_due(
        self,
        today: Optional[date] = None,
        dry_run: bool = False,
        max_days_overdue: int = DEFAULT_MAX_DAYS_OVERDUE,
        group_id: Optional[int] = None,
    ) -> ExecutionResult:
        """Execute every due series once.

        A failing series is recorded in the result and does not stop the
        batch. With ``dry_run`` nothing is written.
        """
        today = today or date.today()
        result = ExecutionResult(dry_run=dry_run)

        for series in self.get_due_series(today, max_days_overdue, group_id=group_id):
            result.processed += 1
            if dry_run:
                result.successful += 1
                result.total_amount += series.amount
                result.executed_series_ids.append(series.id)
                continue
            try:
                transaction_id = self.execute_series(series.id, today=today)
            except DomainError as e:
                logger.error("Recurring series %s failed: %s", series.id, e)
                result.failed += 1
                result.failures.append(
                    ExecutionFailure(series_id=series.id, description=series.description, error=str(e))
                )
                continue
            result.successful += 1
            result.total_amount += series.amount
            result.transaction_ids.append(transaction_id)
            result.executed_series_ids.append(series.id)

        logger.info(
            "Recurring execution%s: %d processed, %d successful, %d failed",
            " (dry run)" if dry_run else "",
            result.processed,
            result.successful,
            result.failed,
        )
        return result

    def get_reconciliation(self, series_id: int, today: Optional[date] = None) -> Reconciliation:
        """Compare linked transactions with the schedule up to today."""
        today = today or date.today()
        series = self._require_series(series_id)
        expected = len(scheduled_dates(series, today))
        transactions = self.db.list_series_transactions(series_id)
        actual = len(transactions)
        total_paid = sum((t.amount for t in transactions), finance_logic.ZERO)
        expected_total = series.amount * expected

        return Reconciliation(
            series_id=series_id,
            expected_executions=expected,
            actual_executions=actual,
            missed_payments=max(0, expected - actual),
            expected_total=finance_logic.round_money(expected_total),
            total_paid=finance_logic.round_money(total_paid),
            difference=finance_logic.round_money(expected_total - total_paid),
            success_rate=min(100.0, actual / expected * 100) if expected else 100.0,
        )

    def find_missed_executions(
        self,
        today: Optional[date] = None,
        max_days_overdue: int = DEFAULT_MAX_DAYS_OVERDUE,
        group_id: Optional[int] = None,
    ) -> list[MissedExecution]:
        """Active series whose due date is too old for automatic execution."""
        today = today or date.today()
        cutoff = today - timedelta(days=max_days_overdue)
        missed = [
            MissedExecution(series=s, due_date=s.due_date, days_overdue=(today - s.due_date).days)
            for s in self.db.list_series(group_id=group_id, active_only=True)
            if s.due_date is not None and s.due_date < cutoff
        ]
        return sorted(missed, key=lambda m: m.days_overdue, reverse=True)

    def get_totals(
        self, user_id: Optional[int] = None, group_id: Optional[int] = None
    ) -> dict[str, Decimal]:
        """Monthly income, expenses and net of the active series a user shares."""
        return finance_logic.calculate_recurring_totals(
            self.list_series(user_id=user_id, group_id=group_id, active_only=True)
        )
