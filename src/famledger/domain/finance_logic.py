"""Pure finance calculations.

Everything here works on domain entities already loaded in memory: no
database access and no side effects. Services load the data, call these
functions and persist the results.

Money is always Decimal. Percentages are floats.
"""

import calendar
import re
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Sequence

from dateutil.relativedelta import relativedelta

from famledger.domain.entities import (
    Account,
    Budget,
    BudgetPeriod,
    BudgetProgress,
    Category,
    CategoryBreakdownItem,
    OverviewMetrics,
    RecurringSeries,
    Transaction,
    User,
    UserBudgetSummary,
)

ZERO = Decimal("0")
CENT = Decimal("0.01")

DEFAULT_CATEGORY_COLOR = "#6B7280"
DEFAULT_CATEGORY_ICON = "default"
COLOR_PALETTE = (
    "#EF4444",
    "#F97316",
    "#F59E0B",
    "#EAB308",
    "#84CC16",
    "#22C55E",
    "#10B981",
    "#14B8A6",
    "#06B6D4",
    "#0EA5E9",
    "#3B82F6",
    "#6366F1",
    "#8B5CF6",
    "#A855F7",
    "#D946EF",
    "#EC4899",
    "#F43F5E",
    DEFAULT_CATEGORY_COLOR,
)
_HEX_COLOR = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")

FREQUENCY_LABELS = {
    "once": "Una tantum",
    "weekly": "Settimanale",
    "biweekly": "Quindicinale",
    "monthly": "Mensile",
    "yearly": "Annuale",
}

# Average number of occurrences per month
_MONTHLY_FACTORS = {
    "weekly": Decimal("4.33"),
    "biweekly": Decimal("2.17"),
    "monthly": Decimal("1"),
}


def round_money(value: Decimal) -> Decimal:
    """Round a Decimal amount to cents."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def as_date(value: date | datetime | None) -> Optional[date]:
    """Normalize a date or datetime to a date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def _id_set(account_ids: int | Iterable[int]) -> set[int]:
    if isinstance(account_ids, int):
        return {account_ids}
    return set(account_ids)


def _percentage(part: Decimal, whole: Decimal) -> float:
    if whole <= 0:
        return 0.0
    return float(part / whole * 100)


# Transactions


def filter_transactions_by_period(
    transactions: Iterable[Transaction],
    start: date | datetime | None,
    end: date | datetime | None = None,
    today: Optional[date] = None,
) -> list[Transaction]:
    """Keep transactions dated from ``start`` through ``end`` (both inclusive).

    A missing end means "up to today". A missing start yields nothing.
    """
    start_day = as_date(start)
    if start_day is None:
        return []
    end_day = as_date(end) or today or date.today()
    return [t for t in transactions if t.date is not None and start_day <= t.date <= end_day]


def filter_by_categories(
    transactions: Iterable[Transaction], categories: Iterable[str]
) -> list[Transaction]:
    category_set = set(categories)
    return [t for t in transactions if t.category in category_set]


def calculate_overview_metrics(
    transactions: Iterable[Transaction],
    user_account_ids: Iterable[int],
    user_id: Optional[int] = None,
) -> OverviewMetrics:
    """Compute earned, spent and transferred totals from a user's point of view.

    Transfers between two of the user's own accounts are neutral. A transfer
    out of the user's accounts counts as spent and a transfer in counts as
    earned.
    """
    account_set = set(user_account_ids)
    earned = spent = transferred = ZERO

    for t in transactions:
        if user_id is not None and t.user_id != user_id:
            continue

        if t.type == "income" and t.account_id in account_set:
            earned += t.amount
        elif t.type == "expense" and t.account_id in account_set:
            spent += t.amount
        elif t.type == "transfer":
            from_user = t.account_id in account_set
            to_user = t.to_account_id is not None and t.to_account_id in account_set

            if from_user:
                transferred += t.amount

            if from_user and to_user:
                continue
            if from_user:
                spent += t.amount
            elif to_user:
                earned += t.amount

    return OverviewMetrics(
        total_earned=earned,
        total_spent=spent,
        total_transferred=transferred,
        total_balance=earned - spent,
    )


def calculate_category_breakdown(
    transactions: Iterable[Transaction],
) -> list[CategoryBreakdownItem]:
    """Build the NET breakdown per category (spent minus received).

    Percentages are shares of the total positive NET; categories with a
    non-positive NET get 0%. The result is sorted by absolute NET, largest
    first.
    """
    totals: dict[str, dict[str, Decimal | int]] = {}
    for t in transactions:
        if t.type == "transfer":
            continue
        entry = totals.setdefault(t.category, {"spent": ZERO, "received": ZERO, "count": 0})
        if t.type == "expense":
            entry["spent"] += t.amount
            entry["count"] += 1
        elif t.type == "income":
            entry["received"] += t.amount
            entry["count"] += 1

    nets = {cat: data["spent"] - data["received"] for cat, data in totals.items()}
    total_positive = sum((net for net in nets.values() if net > 0), ZERO)

    items = [
        CategoryBreakdownItem(
            category=cat,
            spent=data["spent"],
            received=data["received"],
            net=nets[cat],
            percentage=_percentage(nets[cat], total_positive) if nets[cat] > 0 else 0.0,
            count=data["count"],
        )
        for cat, data in totals.items()
    ]
    return sorted(items, key=lambda item: abs(item.net), reverse=True)


def calculate_annual_category_spending(
    transactions: Iterable[Transaction], year: int | str | None = None
) -> list[CategoryBreakdownItem]:
    """Category breakdown for one calendar year, or all time with ``year="all"``."""
    if year == "all":
        return calculate_category_breakdown(transactions)
    target_year = year if year is not None else date.today().year
    return calculate_category_breakdown(
        t for t in transactions if t.date is not None and t.date.year == target_year
    )


def aggregate_category_spending(
    transactions: Iterable[Transaction],
) -> list[tuple[str, Decimal, Decimal]]:
    """Aggregate (category, spent, income) rows; spent covers expenses and transfers."""
    spent: dict[str, Decimal] = defaultdict(lambda: ZERO)
    income: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        if t.type == "income":
            income[t.category] += t.amount
        else:
            spent[t.category] += t.amount
    categories = sorted(set(spent) | set(income))
    return [(cat, spent[cat], income[cat]) for cat in categories]


# Accounts


def calculate_account_balance(account_id: int, transactions: Iterable[Transaction]) -> Decimal:
    """Derive an account balance from every transaction touching it.

    A transaction with a destination moves money from its source to its
    destination whatever its type. Otherwise income adds and expense
    subtracts.
    """
    balance = ZERO
    for t in transactions:
        is_source = t.account_id == account_id
        is_destination = t.to_account_id is not None and t.to_account_id == account_id
        if not is_source and not is_destination:
            continue

        if t.to_account_id is not None:
            if is_source:
                balance -= t.amount
            else:
                balance += t.amount
        elif t.type == "income":
            balance += t.amount
        elif t.type == "expense":
            balance -= t.amount

    return round_money(balance)


def calculate_aggregated_balance(balances: Iterable[Decimal]) -> Decimal:
    return round_money(sum(balances, ZERO))


def calculate_historical_balance(
    transactions: Iterable[Transaction],
    account_ids: int | Iterable[int],
    current_balance: Decimal,
    target_date: date | datetime | None,
) -> Decimal:
    """Balance at the beginning of ``target_date``.

    Starts from the current balance and reverses every transaction dated on
    or after the target day.
    """
    target = as_date(target_date)
    if target is None:
        return current_balance
    accounts = _id_set(account_ids)

    balance = current_balance
    for t in transactions:
        if t.date is None or t.date < target:
            continue
        is_source = t.account_id in accounts
        is_destination = t.to_account_id is not None and t.to_account_id in accounts

        if t.type == "expense" and is_source:
            balance += t.amount
        elif t.type == "income" and is_source:
            balance -= t.amount
        elif t.type == "transfer":
            if is_source:
                balance += t.amount
            if is_destination:
                balance -= t.amount

    return balance


def calculate_period_total_spent(
    transactions: Iterable[Transaction], account_ids: int | Iterable[int]
) -> Decimal:
    """Expenses plus outgoing transfers from the given account(s)."""
    accounts = _id_set(account_ids)
    return sum(
        (t.amount for t in transactions if t.account_id in accounts and t.type in ("expense", "transfer")),
        ZERO,
    )


def calculate_period_total_income(
    transactions: Iterable[Transaction], account_ids: int | Iterable[int]
) -> Decimal:
    """Income plus incoming transfers to the given account(s)."""
    accounts = _id_set(account_ids)
    total = ZERO
    for t in transactions:
        if t.type == "income" and t.account_id in accounts:
            total += t.amount
        elif t.type == "transfer" and t.to_account_id in accounts:
            total += t.amount
    return total


def calculate_period_total_transfers(
    transactions: Iterable[Transaction], account_ids: int | Iterable[int]
) -> Decimal:
    """Sum of transfers in or out of the given account(s)."""
    accounts = _id_set(account_ids)
    return sum(
        (
            t.amount
            for t in transactions
            if t.type == "transfer" and (t.account_id in accounts or t.to_account_id in accounts)
        ),
        ZERO,
    )


def get_default_accounts(accounts: Iterable[Account], users: Iterable[User]) -> list[Account]:
    """Accounts that at least one of the users has set as default."""
    default_ids = {u.default_account_id for u in users if u.default_account_id is not None}
    return [a for a in accounts if a.id in default_ids]


# Budgets


def filter_transactions_for_budget(
    transactions: Iterable[Transaction],
    budget: Budget,
    period_start: date | datetime | None,
    period_end: date | datetime | None,
    today: Optional[date] = None,
) -> list[Transaction]:
    if period_start is None:
        return []
    in_period = filter_transactions_by_period(transactions, period_start, period_end, today=today)
    return filter_by_categories(in_period, budget.categories)


def _budget_progress(budget: Budget, raw_spent: Decimal, transaction_count: int) -> BudgetProgress:
    spent = max(ZERO, raw_spent)
    return BudgetProgress(
        id=budget.id,
        description=budget.description,
        amount=budget.amount,
        spent=spent,
        remaining=budget.amount - spent,
        percentage=_percentage(spent, budget.amount),
        categories=tuple(budget.categories),
        transaction_count=transaction_count,
    )


def calculate_budget_progress(
    budget: Budget, transactions: Sequence[Transaction]
) -> BudgetProgress:
    """Progress of one budget over already-filtered transactions.

    Income refills the budget while expenses and transfers consume it. Spent
    never drops below zero. Remaining may go negative and the percentage is
    not capped at 100.
    """
    raw_spent = ZERO
    for t in transactions:
        if t.type == "income":
            raw_spent -= t.amount
        else:
            raw_spent += t.amount
    return _budget_progress(budget, raw_spent, len(transactions))


def calculate_budgets_with_progress(
    budgets: Iterable[Budget],
    transactions: Sequence[Transaction],
    period_start: date | datetime | None,
    period_end: date | datetime | None,
    today: Optional[date] = None,
) -> list[BudgetProgress]:
    results = []
    for budget in budgets:
        if budget.amount <= 0:
            continue
        budget_transactions = filter_transactions_for_budget(
            transactions, budget, period_start, period_end, today=today
        )
        results.append(calculate_budget_progress(budget, budget_transactions))
    return results


def _summarize(
    user: User,
    progress: list[BudgetProgress],
    active_period: Optional[BudgetPeriod],
) -> UserBudgetSummary:
    total_budget = sum((p.amount for p in progress), ZERO)
    total_spent = sum((p.spent for p in progress), ZERO)
    return UserBudgetSummary(
        user=user,
        budgets=tuple(progress),
        active_period=active_period,
        period_start=active_period.start_date if active_period else None,
        period_end=active_period.end_date if active_period else None,
        total_budget=total_budget,
        total_spent=total_spent,
        total_remaining=total_budget - total_spent,
        overall_percentage=_percentage(total_spent, total_budget),
    )


def calculate_user_budget_summary(
    user: User,
    budgets: Iterable[Budget],
    transactions: Sequence[Transaction],
    active_period: Optional[BudgetPeriod],
    today: Optional[date] = None,
) -> UserBudgetSummary:
    """Progress of every budget of a user within their active period."""
    period_start = active_period.start_date if active_period else None
    period_end = active_period.end_date if active_period else None
    progress = calculate_budgets_with_progress(
        budgets, transactions, period_start, period_end, today=today
    )
    return _summarize(user, progress, active_period)


def calculate_user_budget_summary_from_aggregation(
    user: User,
    budgets: Iterable[Budget],
    spending_rows: Iterable[tuple[str, Decimal, Decimal]],
    active_period: Optional[BudgetPeriod],
) -> UserBudgetSummary:
    """Same as calculate_user_budget_summary but from (category, spent, income) rows.

    Transaction counts are not available from aggregated rows and are 0.
    """
    by_category = {category: (spent, income) for category, spent, income in spending_rows}
    progress = []
    for budget in budgets:
        if budget.amount <= 0:
            continue
        raw_spent = ZERO
        for category in budget.categories:
            if category in by_category:
                spent, income = by_category[category]
                raw_spent += spent - income
        progress.append(_budget_progress(budget, raw_spent, 0))
    return _summarize(user, progress, active_period)


def build_budgets_by_user(
    users: Iterable[User],
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    periods_by_user: dict[int, Optional[BudgetPeriod]],
    today: Optional[date] = None,
) -> dict[int, UserBudgetSummary]:
    """Budget summary for each user, keyed by user id."""
    budgets_by_user: dict[int, list[Budget]] = defaultdict(list)
    for budget in budgets:
        budgets_by_user[budget.user_id].append(budget)

    transactions_by_user: dict[int, list[Transaction]] = defaultdict(list)
    for t in transactions:
        if t.user_id is not None:
            transactions_by_user[t.user_id].append(t)

    return {
        user.id: calculate_user_budget_summary(
            user,
            budgets_by_user.get(user.id, []),
            transactions_by_user.get(user.id, []),
            periods_by_user.get(user.id),
            today=today,
        )
        for user in users
    }


# Categories


def find_category(categories: Iterable[Category], identifier: int | str) -> Optional[Category]:
    """Find a category by id, key, or case-insensitive label."""
    text = str(identifier)
    for category in categories:
        if (
            str(category.id) == text
            or category.key == text
            or category.label.lower() == text.lower()
        ):
            return category
    return None


def get_category_color(categories: Iterable[Category], identifier: int | str) -> str:
    category = find_category(categories, identifier)
    return category.color if category and category.color else DEFAULT_CATEGORY_COLOR


def get_category_icon(categories: Iterable[Category], identifier: int | str) -> str:
    category = find_category(categories, identifier)
    return category.icon if category and category.icon else DEFAULT_CATEGORY_ICON


def get_category_label(categories: Iterable[Category], identifier: int | str) -> str:
    category = find_category(categories, identifier)
    return category.label if category and category.label else str(identifier)


def is_valid_color(color: str) -> bool:
    return bool(color) and _HEX_COLOR.match(color) is not None


# Recurring series


def _clamped(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def calculate_next_execution_date(series: RecurringSeries, today: Optional[date] = None) -> date:
    """Next date a series is expected to run, derived from its due day.

    Weekly and biweekly series use ``due_day`` as an ISO weekday (1=Monday).
    Monthly series clamp ``due_day`` to the month length. Yearly series
    reuse the month of ``start_date``. One-off series run on ``start_date``
    or today if that is already past.
    """
    today = today or date.today()

    if series.frequency in ("weekly", "biweekly"):
        span = 7 if series.frequency == "weekly" else 14
        days_until = series.due_day - today.isoweekday()
        if days_until <= 0:
            days_until += span
        return today + timedelta(days=days_until)

    if series.frequency == "monthly":
        if today.day < series.due_day:
            return _clamped(today.year, today.month, series.due_day)
        next_month = today + relativedelta(months=1)
        return _clamped(next_month.year, next_month.month, series.due_day)

    if series.frequency == "yearly":
        if series.start_date is None:
            return today
        this_year = _clamped(today.year, series.start_date.month, series.due_day)
        if this_year > today:
            return this_year
        return _clamped(today.year + 1, series.start_date.month, series.due_day)

    if series.start_date is None:
        return today
    return series.start_date if series.start_date > today else today


def calculate_days_until_due(series: RecurringSeries, today: Optional[date] = None) -> int:
    today = today or date.today()
    return (calculate_next_execution_date(series, today) - today).days


def is_series_due(series: RecurringSeries, today: Optional[date] = None) -> bool:
    if not series.is_active:
        return False
    today = today or date.today()
    return calculate_next_execution_date(series, today) <= today


def get_frequency_label(frequency: str) -> str:
    return FREQUENCY_LABELS.get(frequency, frequency)


def advance_due_date(due_date: date, frequency: str, due_day: Optional[int] = None) -> date:
    """Move a scheduled due date forward by one occurrence.

    Monthly and yearly dates land on ``due_day`` (default: the day of
    ``due_date``) clamped to the month length, so a series due on the 31st
    returns to the 31st after a short month.

    Raises:
        ValueError: For one-off series, which have no next occurrence
    """
    if frequency == "weekly":
        return due_date + timedelta(days=7)
    if frequency == "biweekly":
        return due_date + timedelta(days=14)
    day = due_day or due_date.day
    if frequency == "monthly":
        next_month = due_date.replace(day=1) + relativedelta(months=1)
        return _clamped(next_month.year, next_month.month, day)
    if frequency == "yearly":
        return _clamped(due_date.year + 1, due_date.month, day)
    raise ValueError(f"Unsupported frequency: {frequency}")


def calculate_monthly_amount(series: RecurringSeries) -> Decimal:
    """Normalize a series amount to a monthly figure."""
    if series.frequency == "yearly":
        return series.amount / 12
    return series.amount * _MONTHLY_FACTORS.get(series.frequency, Decimal("1"))


def calculate_recurring_totals(series: Iterable[RecurringSeries]) -> dict[str, Decimal]:
    """Monthly income, expenses and net over active series."""
    income = expenses = ZERO
    for s in series:
        if not s.is_active:
            continue
        monthly = calculate_monthly_amount(s)
        if s.type == "income":
            income += monthly
        elif s.type == "expense":
            expenses += monthly
    return {
        "total_income": round_money(income),
        "total_expenses": round_money(expenses),
        "net_monthly": round_money(income - expenses),
    }


def has_access(series: RecurringSeries, user_id: int) -> bool:
    return user_id in series.user_ids


def get_associated_users(series: RecurringSeries, users: Iterable[User]) -> list[User]:
    return [u for u in users if u.id in series.user_ids]


def group_series_by_user(
    series: Sequence[RecurringSeries], users: Iterable[User]
) -> dict[int, tuple[User, list[RecurringSeries]]]:
    """Map user id to (user, series) for users that own at least one series."""
    grouped = {}
    for user in users:
        user_series = [s for s in series if user.id in s.user_ids]
        if user_series:
            grouped[user.id] = (user, user_series)
    return grouped
