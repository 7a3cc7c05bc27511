"""Chart view models: cumulative spending lines, category and daily bars.

Coordinates target a fixed 350x180 SVG canvas. Values are floats rounded to
two decimals since they only feed rendering.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from famledger.domain.calculations import short_day_label
from famledger.domain.entities import Budget, Transaction
from famledger.domain.finance_logic import ZERO, round_money

CHART_WIDTH = 350
CHART_HEIGHT = 180
# Vertical room used by the line, leaving padding at the top
PLOT_HEIGHT = 170


@dataclass(frozen=True)
class CumulativePoint:
    day: str
    cumulative: float
    date: date
    is_future: bool


@dataclass(frozen=True)
class LinePoint:
    day: str
    value: float
    x: float
    y: float
    is_future: bool


@dataclass(frozen=True)
class LineChartData:
    data: list[LinePoint]
    max_value: float
    current_total: float
    path_d: str


@dataclass(frozen=True)
class CategoryChartData:
    categories: list[str]
    values: list[float]
    total: float
    percentages: list[float]


@dataclass(frozen=True)
class PeriodComparison:
    current_total: float
    previous_total: float
    difference: float
    percentage_change: float
    is_higher: bool


def _money(value: Decimal) -> float:
    return float(round_money(value))


def _by_day(transactions: Iterable[Transaction]) -> dict[date, list[Transaction]]:
    grouped: dict[date, list[Transaction]] = defaultdict(list)
    for t in transactions:
        if t.date is not None:
            grouped[t.date].append(t)
    return grouped


def _fmt(value: float) -> str:
    return f"{value:g}"


def calculate_cumulative_spending(
    transactions: Iterable[Transaction],
    period_days: int,
    start: date,
    today: Optional[date] = None,
) -> list[CumulativePoint]:
    """One point per day of the period with the running total of amounts.

    The month is shown in the label on the first day and on the 1st of each
    month. Days after ``today`` are flagged as future.
    """
    today = today or date.today()
    by_day = _by_day(transactions)
    running = ZERO
    points = []
    for i in range(period_days):
        day = start + timedelta(days=i)
        running += sum((t.amount for t in by_day.get(day, ())), ZERO)
        points.append(
            CumulativePoint(
                day=short_day_label(day, with_month=i == 0 or day.day == 1),
                cumulative=_money(running),
                date=day,
                is_future=day > today,
            )
        )
    return points


def create_smooth_path(points: Sequence[LinePoint]) -> str:
    """SVG path through the points using cubic bezier segments."""
    if not points:
        return ""
    segments = [f"M {_fmt(points[0].x)} {_fmt(points[0].y)}"]
    for prev, point in zip(points, points[1:]):
        dx = point.x - prev.x
        segments.append(
            f"C {_fmt(prev.x + dx / 3)} {_fmt(prev.y)}, "
            f"{_fmt(prev.x + dx * 2 / 3)} {_fmt(point.y)}, "
            f"{_fmt(point.x)} {_fmt(point.y)}"
        )
    return " ".join(segments)


def prepare_line_chart_data(
    transactions: Iterable[Transaction],
    budget: Budget,
    period_days: int,
    start: date,
    today: Optional[date] = None,
) -> LineChartData:
    """Cumulative spending mapped onto the chart canvas.

    The y axis tops out at the budget amount; spending beyond it is drawn
    at the top edge.
    """
    cumulative = calculate_cumulative_spending(transactions, period_days, start, today=today)
    max_value = float(budget.amount) if budget.amount else 1.0

    data = []
    for index, point in enumerate(cumulative):
        percentage = min(point.cumulative / max_value * 100, 100.0)
        x = index / (period_days - 1) * CHART_WIDTH if period_days > 1 else CHART_WIDTH / 2
        data.append(
            LinePoint(
                day=point.day,
                value=point.cumulative,
                x=x,
                y=CHART_HEIGHT - percentage / 100 * PLOT_HEIGHT,
                is_future=point.is_future,
            )
        )

    visible = [p for p in data if not p.is_future]
    return LineChartData(
        data=data,
        max_value=max_value,
        current_total=visible[-1].value if visible else 0.0,
        path_d=create_smooth_path(visible),
    )


def prepare_category_chart_data(
    transactions: Iterable[Transaction], categories: Iterable[str]
) -> CategoryChartData:
    """Expense and transfer totals for the given categories, largest first."""
    wanted = set(categories)
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        if t.type in ("expense", "transfer") and t.category in wanted:
            totals[t.category] += t.amount

    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    total = sum(totals.values(), ZERO)
    return CategoryChartData(
        categories=[category for category, _ in ordered],
        values=[_money(amount) for _, amount in ordered],
        total=_money(total),
        percentages=[
            round(float(amount / total * 100), 2) if total > 0 else 0.0 for _, amount in ordered
        ],
    )


def _daily_rows(
    transactions: Iterable[Transaction],
    period_days: int,
    start: date,
    keep,
) -> list[dict[str, float | str]]:
    by_day = _by_day(transactions)
    rows = []
    for i in range(period_days):
        day = start + timedelta(days=i)
        previous = day - timedelta(days=1)
        row: dict[str, float | str] = {
            "day": short_day_label(day, with_month=i == 0 or day.month != previous.month)
        }
        for t in by_day.get(day, ()):
            if keep(t):
                row[t.category] = float(row.get(t.category, 0.0)) + float(t.amount)
        rows.append(row)
    return rows


def prepare_daily_expense_data(
    transactions: Iterable[Transaction],
    categories: Iterable[str],
    period_days: int,
    start: date,
) -> list[dict[str, float | str]]:
    """Per-day expense totals by category, for stacked bar charts."""
    wanted = set(categories)
    return _daily_rows(
        transactions, period_days, start, lambda t: t.type == "expense" and t.category in wanted
    )


def prepare_daily_income_data(
    transactions: Iterable[Transaction], period_days: int, start: date
) -> list[dict[str, float | str]]:
    return _daily_rows(transactions, period_days, start, lambda t: t.type == "income")


def calculate_period_comparison(
    current: Iterable[Transaction],
    previous: Iterable[Transaction],
    type: str = "all",
) -> PeriodComparison:
    """Compare totals of two periods for one transaction type (or ``all``)."""

    def total(transactions: Iterable[Transaction]) -> Decimal:
        return sum(
            (t.amount for t in transactions if type == "all" or t.type == type), ZERO
        )

    current_total = total(current)
    previous_total = total(previous)
    difference = current_total - previous_total
    if previous_total > 0:
        change = float(difference / previous_total * 100)
    else:
        change = 100.0 if current_total > 0 else 0.0
    return PeriodComparison(
        current_total=_money(current_total),
        previous_total=_money(previous_total),
        difference=_money(difference),
        percentage_change=round(change, 2),
        is_higher=difference > 0,
    )
