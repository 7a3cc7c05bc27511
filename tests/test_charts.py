"""Tests for chart view models."""

from datetime import date
from decimal import Decimal

import pytest

from famledger.domain import charts
from famledger.domain.entities import Budget, Transaction


def _txn(amount, day, type="expense", category="spesa"):
    return Transaction(
        id=1, description="x", type=type, amount=Decimal(str(amount)),
        category=category, date=day, account_id=1,
    )


def test_cumulative_spending_runs_over_every_day():
    txns = [_txn(10, date(2025, 1, 30)), _txn(5, date(2025, 2, 1)), _txn(2.5, date(2025, 2, 1))]
    points = charts.calculate_cumulative_spending(txns, 4, date(2025, 1, 30), today=date(2025, 1, 31))

    assert [p.cumulative for p in points] == [10.0, 10.0, 17.5, 17.5]
    assert [p.day for p in points] == ["30 gen", "31", "1 feb", "2"]
    assert [p.is_future for p in points] == [False, False, True, True]


def test_line_chart_caps_at_budget_and_hides_future():
    budget = Budget(id=1, description="b", amount=Decimal("20"), type="monthly", categories=("spesa",), user_id=1)
    txns = [_txn(10, date(2025, 1, 1)), _txn(30, date(2025, 1, 2))]
    chart = charts.prepare_line_chart_data(txns, budget, 3, date(2025, 1, 1), today=date(2025, 1, 2))

    assert chart.max_value == 20.0
    assert chart.current_total == 40.0
    assert [p.x for p in chart.data] == [0.0, 175.0, 350.0]
    # Half the budget, then capped at the top
    assert chart.data[0].y == pytest.approx(charts.CHART_HEIGHT - charts.PLOT_HEIGHT / 2)
    assert chart.data[1].y == pytest.approx(charts.CHART_HEIGHT - charts.PLOT_HEIGHT)
    assert chart.path_d.startswith("M 0 95")
    assert chart.path_d.count("C ") == 1


def test_smooth_path_empty():
    assert charts.create_smooth_path([]) == ""


def test_category_chart_data_sorted_with_percentages():
    txns = [
        _txn(30, date(2025, 1, 1), category="casa"),
        _txn(10, date(2025, 1, 1), category="spesa"),
        _txn(60, date(2025, 1, 2), type="transfer", category="casa"),
        _txn(99, date(2025, 1, 2), type="income", category="spesa"),
        _txn(5, date(2025, 1, 2), category="svago"),
    ]
    data = charts.prepare_category_chart_data(txns, ["casa", "spesa"])
    assert data.categories == ["casa", "spesa"]
    assert data.values == [90.0, 10.0]
    assert data.total == 100.0
    assert data.percentages == [90.0, 10.0]


def test_daily_expense_and_income_rows():
    txns = [
        _txn(10, date(2025, 1, 31)),
        _txn(4, date(2025, 1, 31)),
        _txn(7, date(2025, 2, 1), category="casa"),
        _txn(500, date(2025, 2, 1), type="income", category="stipendio"),
    ]
    expenses = charts.prepare_daily_expense_data(txns, ["spesa", "casa"], 2, date(2025, 1, 31))
    assert expenses == [{"day": "31 gen", "spesa": 14.0}, {"day": "1 feb", "casa": 7.0}]

    income = charts.prepare_daily_income_data(txns, 2, date(2025, 1, 31))
    assert income == [{"day": "31 gen"}, {"day": "1 feb", "stipendio": 500.0}]


def test_period_comparison():
    current = [_txn(150, date(2025, 2, 1))]
    previous = [_txn(100, date(2025, 1, 1)), _txn(40, date(2025, 1, 1), type="income")]

    comparison = charts.calculate_period_comparison(current, previous, type="expense")
    assert comparison.difference == 50.0
    assert comparison.percentage_change == 50.0
    assert comparison.is_higher

    from_nothing = charts.calculate_period_comparison(current, [], type="expense")
    assert from_nothing.percentage_change == 100.0
