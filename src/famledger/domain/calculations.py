"""Financial summary calculations and Italian display formatting."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from famledger.domain.entities import Budget, Transaction
from famledger.domain.finance_logic import ZERO, round_money

MONTH_NAMES = (
    "Gennaio",
    "Febbraio",
    "Marzo",
    "Aprile",
    "Maggio",
    "Giugno",
    "Luglio",
    "Agosto",
    "Settembre",
    "Ottobre",
    "Novembre",
    "Dicembre",
)
SHORT_MONTHS = ("gen", "feb", "mar", "apr", "mag", "giu", "lug", "ago", "set", "ott", "nov", "dic")

WARNING_THRESHOLD = 80.0
DANGER_THRESHOLD = 100.0


@dataclass(frozen=True)
class BudgetStatus:
    spent: Decimal
    remaining: Decimal
    percentage: float
    is_over_budget: bool
    status: str


@dataclass(frozen=True)
class MonthlyFinancials:
    total_income: Decimal
    total_expenses: Decimal
    total_transfers: Decimal
    net_income: Decimal
    savings_rate: float
    transaction_count: int


def _pct(value: Decimal | float) -> float:
    return round(float(value), 2)


def short_day_label(day: date, with_month: bool = True) -> str:
    """``5 gen`` style label, or just the day number."""
    if with_month:
        return f"{day.day} {SHORT_MONTHS[day.month - 1]}"
    return str(day.day)


def calculate_budget_status(budget: Budget, spent: Decimal) -> BudgetStatus:
    """Display status of a budget: safe, warning (>= 80%) or danger (>= 100%).

    Unlike BudgetProgress, remaining is clamped at zero here.
    """
    percentage = float(spent / budget.amount * 100) if budget.amount > 0 else 0.0
    if percentage >= DANGER_THRESHOLD:
        status = "danger"
    elif percentage >= WARNING_THRESHOLD:
        status = "warning"
    else:
        status = "safe"
    return BudgetStatus(
        spent=round_money(spent),
        remaining=round_money(max(ZERO, budget.amount - spent)),
        percentage=_pct(percentage),
        is_over_budget=spent > budget.amount,
        status=status,
    )


def calculate_monthly_financials(transactions: Iterable[Transaction]) -> MonthlyFinancials:
    income = expenses = transfers = ZERO
    count = 0
    for t in transactions:
        count += 1
        if t.type == "income":
            income += t.amount
        elif t.type == "expense":
            expenses += t.amount
        elif t.type == "transfer":
            transfers += t.amount
    net = income - expenses
    return MonthlyFinancials(
        total_income=round_money(income),
        total_expenses=round_money(expenses),
        total_transfers=round_money(transfers),
        net_income=round_money(net),
        savings_rate=_pct(net / income * 100) if income > 0 else 0.0,
        transaction_count=count,
    )


def calculate_average_daily_spending(transactions: Iterable[Transaction], days: int) -> Decimal:
    if days <= 0:
        return ZERO
    total = sum((t.amount for t in transactions if t.type == "expense"), ZERO)
    return round_money(total / days)


def calculate_savings_rate(income: Decimal, expenses: Decimal) -> float:
    if income <= 0:
        return 0.0
    return _pct((income - expenses) / income * 100)


def calculate_budget_utilization(spent: Decimal, budgeted: Decimal) -> float:
    if budgeted <= 0:
        return 0.0
    return _pct(spent / budgeted * 100)


def calculate_days_remaining(end_date: date, today: Optional[date] = None) -> int:
    """Days left until ``end_date`` (0 once it has passed)."""
    today = today or date.today()
    return max(0, (end_date - today).days)


def calculate_monthly_burn_rate(
    total_spent: Decimal, days_elapsed: int, days_remaining: int
) -> Decimal:
    """Projected spending at the end of the period at the current daily rate."""
    if days_elapsed <= 0:
        return ZERO
    return round_money(total_spent / days_elapsed * (days_elapsed + days_remaining))


def calculate_percentage_change(previous: Decimal, current: Decimal) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return _pct((current - previous) / previous * 100)


def format_currency(value: Decimal | int | float, symbol: str = "€") -> str:
    """Format an amount the Italian way, e.g. ``1.234,56 €``."""
    amount = round_money(Decimal(str(value)))
    grouped = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    sign = "-" if amount < 0 else ""
    return f"{sign}{grouped} {symbol}"
