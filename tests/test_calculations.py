"""Tests for summary calculations and Italian formatting."""

from datetime import date
from decimal import Decimal

import pytest

from famledger.domain import calculations
from famledger.domain.entities import Budget, Transaction


def _txn(amount, type="expense"):
    return Transaction(
        id=1, description="x", type=type, amount=Decimal(str(amount)),
        category="spesa", date=date(2025, 1, 1), account_id=1,
    )


def _budget(amount):
    return Budget(
        id=1, description="Spesa", amount=Decimal(str(amount)), type="monthly",
        categories=("spesa",), user_id=1,
    )


@pytest.mark.parametrize(
    "spent,status",
    [(Decimal("50"), "safe"), (Decimal("80"), "warning"), (Decimal("100"), "danger")],
)
def test_budget_status_thresholds(spent, status):
    assert calculations.calculate_budget_status(_budget(100), spent).status == status


def test_budget_status_clamps_remaining():
    result = calculations.calculate_budget_status(_budget(100), Decimal("130"))
    assert result.remaining == Decimal("0.00")
    assert result.is_over_budget
    assert result.percentage == 130.0


def test_monthly_financials():
    result = calculations.calculate_monthly_financials(
        [_txn(2000, "income"), _txn(500), _txn(300, "transfer")]
    )
    assert result.total_income == Decimal("2000.00")
    assert result.total_expenses == Decimal("500.00")
    assert result.total_transfers == Decimal("300.00")
    assert result.net_income == Decimal("1500.00")
    assert result.savings_rate == 75.0
    assert result.transaction_count == 3


def test_rates_and_changes():
    assert calculations.calculate_savings_rate(Decimal("0"), Decimal("10")) == 0.0
    assert calculations.calculate_budget_utilization(Decimal("25"), Decimal("200")) == 12.5
    assert calculations.calculate_percentage_change(Decimal("0"), Decimal("5")) == 100.0
    assert calculations.calculate_percentage_change(Decimal("200"), Decimal("150")) == -25.0
    assert calculations.calculate_average_daily_spending([_txn(90)], 30) == Decimal("3.00")
    assert calculations.calculate_average_daily_spending([_txn(90)], 0) == Decimal("0")


def test_days_remaining_and_burn_rate():
    assert calculations.calculate_days_remaining(date(2025, 1, 31), today=date(2025, 1, 21)) == 10
    assert calculations.calculate_days_remaining(date(2025, 1, 1), today=date(2025, 1, 21)) == 0
    assert calculations.calculate_monthly_burn_rate(Decimal("100"), 10, 20) == Decimal("300.00")
    assert calculations.calculate_monthly_burn_rate(Decimal("100"), 0, 20) == Decimal("0")


def test_format_currency_italian_style():
    assert calculations.format_currency(Decimal("1234.5")) == "1.234,50 €"
    assert calculations.format_currency(-7) == "-7,00 €"
    assert calculations.format_currency(Decimal("1000000"), symbol="$") == "1.000.000,00 $"


def test_short_day_label():
    assert calculations.short_day_label(date(2025, 3, 5)) == "5 mar"
    assert calculations.short_day_label(date(2025, 3, 5), with_month=False) == "5"
