"""Tests for the budget service."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from famledger.domain.budget import BudgetService
from famledger.domain.entities import Budget
from famledger.domain.errors import NotFoundError, ValidationError


def test_create_budget_normalizes_categories(budget_service, family):
    budget_id = budget_service.create_budget(
        "Spesa", "400", "monthly", ["Spesa", "spesa", "CASA"], family["anna"].id
    )
    budget = budget_service.get_budget(budget_id)
    assert budget.categories == ("spesa", "casa")
    assert budget.group_id == family["group"].id
    assert budget.amount == Decimal("400")


@pytest.mark.parametrize(
    "description,amount,budget_type",
    [("S", 100, "monthly"), ("Spesa", 0, "monthly"), ("Spesa", 100, "weekly")],
)
def test_create_budget_validation(budget_service, family, description, amount, budget_type):
    with pytest.raises(ValidationError):
        budget_service.create_budget(description, amount, budget_type, ["spesa"], family["anna"].id)


def test_create_budget_unknown_user(budget_service):
    with pytest.raises(NotFoundError):
        budget_service.create_budget("Spesa", 100, "monthly", ["spesa"], 999)


def test_progress_without_active_period_is_empty(budget_service, family, accounts, add_transaction):
    budget_id = budget_service.create_budget("Spesa", 100, "monthly", ["spesa"], family["anna"].id)
    add_transaction(40, account=accounts["shared"])
    progress = budget_service.get_progress(budget_id)
    assert progress.spent == Decimal("0")
    assert progress.transaction_count == 0


def test_progress_within_active_period(budget_service, period_service, family, accounts, add_transaction):
    anna = family["anna"]
    budget_id = budget_service.create_budget("Spesa", 200, "monthly", ["spesa", "casa"], anna.id)
    period_service.create_period(anna.id, date(2025, 1, 1))

    add_transaction(50, category="spesa", day=date(2025, 1, 3), account=accounts["shared"])
    add_transaction(80, category="casa", day=date(2025, 1, 4), account=accounts["shared"])
    add_transaction(10, type="income", category="spesa", day=date(2025, 1, 5), account=accounts["shared"])
    add_transaction(999, category="svago", day=date(2025, 1, 5), account=accounts["shared"])
    add_transaction(70, category="spesa", day=date(2024, 12, 31), account=accounts["shared"])
    # Another user's spending does not count
    add_transaction(40, category="spesa", day=date(2025, 1, 5), account=accounts["shared"], user=family["marco"])

    progress = budget_service.get_progress(budget_id, today=date(2025, 1, 20))
    assert progress.spent == Decimal("120")
    assert progress.remaining == Decimal("80")
    assert progress.percentage == pytest.approx(60.0)
    assert progress.transaction_count == 3


def test_user_and_group_summaries(budget_service, period_service, family, accounts, add_transaction):
    anna, marco = family["anna"], family["marco"]
    budget_service.create_budget("Spesa", 100, "monthly", ["spesa"], anna.id)
    budget_service.create_budget("Casa", 300, "monthly", ["casa"], anna.id)
    budget_service.create_budget("Svago", 50, "monthly", ["svago"], marco.id)
    period_service.create_period(anna.id, date(2025, 1, 1))
    add_transaction(150, category="spesa", day=date(2025, 1, 2), account=accounts["shared"])

    summary = budget_service.get_user_summary(anna.id, today=date(2025, 1, 10))
    assert summary.total_budget == Decimal("400")
    assert summary.total_spent == Decimal("150")
    assert summary.total_remaining == Decimal("250")
    assert summary.period_start == date(2025, 1, 1)

    summaries = budget_service.get_group_summaries(family["group"].id, today=date(2025, 1, 10))
    assert set(summaries) == {anna.id, marco.id}
    assert summaries[marco.id].active_period is None
    assert summaries[marco.id].total_spent == Decimal("0")


def test_update_budget_resets_cache(budget_service, family):
    budget_id = budget_service.create_budget("Spesa", 100, "monthly", ["spesa"], family["anna"].id)
    budget_service.refresh_cached_balance(budget_id)

    updated = budget_service.update_budget(budget_id, amount="150", categories=["Spesa", "casa"])
    assert updated.amount == Decimal("150")
    assert updated.categories == ("spesa", "casa")
    assert updated.balance_updated_at is None


def test_refresh_cached_balance(budget_service, period_service, family, accounts, add_transaction):
    anna = family["anna"]
    budget_id = budget_service.create_budget("Spesa", 100, "monthly", ["spesa"], anna.id)
    period_service.create_period(anna.id, date(2025, 1, 1))
    add_transaction(30, day=date(2025, 1, 2), account=accounts["shared"])

    remaining = budget_service.refresh_cached_balance(budget_id, today=date(2025, 1, 10))
    budget = budget_service.get_budget(budget_id)
    assert remaining == Decimal("70")
    assert budget.cached_balance == Decimal("70")
    assert not BudgetService.is_cache_stale(budget, now=budget.balance_updated_at.replace(tzinfo=timezone.utc))


def test_is_cache_stale():
    updated_at = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    budget = Budget(
        id=1, description="b", amount=Decimal("1"), type="monthly", categories=(), user_id=1,
        cached_balance=Decimal("1"), balance_updated_at=updated_at,
    )
    assert not BudgetService.is_cache_stale(budget, now=updated_at + timedelta(minutes=30))
    assert BudgetService.is_cache_stale(budget, now=updated_at + timedelta(hours=2))
    assert BudgetService.is_cache_stale(Budget(id=2, description="b", amount=Decimal("1"), type="monthly", categories=(), user_id=1))


def test_delete_account_marks_budgets_stale(
    budget_service, period_service, account_service, family, accounts, add_transaction
):
    anna = family["anna"]
    budget_id = budget_service.create_budget("Spesa", 100, "monthly", ["spesa"], anna.id)
    period_service.create_period(anna.id, date(2025, 1, 1))
    add_transaction(30, day=date(2025, 1, 2), account=accounts["payroll"])
    budget_service.refresh_cached_balance(budget_id, today=date(2025, 1, 10))
    assert budget_service.get_budget(budget_id).balance_updated_at is not None

    account_service.delete_account(accounts["payroll"].id)

    assert BudgetService.is_cache_stale(budget_service.get_budget(budget_id))


def test_delete_user_marks_budgets_of_other_spenders_stale(
    budget_service, period_service, user_service, family, accounts, add_transaction
):
    marco = family["marco"]
    budget_id = budget_service.create_budget("Spesa", 100, "monthly", ["spesa"], marco.id)
    period_service.create_period(marco.id, date(2025, 1, 1))
    # Marco spends from an account owned by Anna alone
    add_transaction(20, day=date(2025, 1, 3), account=accounts["payroll"], user=marco)
    budget_service.refresh_cached_balance(budget_id, today=date(2025, 1, 10))

    user_service.delete_user(family["anna"].id)

    assert BudgetService.is_cache_stale(budget_service.get_budget(budget_id))


def test_delete_budget(budget_service, family):
    budget_id = budget_service.create_budget("Spesa", 100, "monthly", ["spesa"], family["anna"].id)
    budget_service.delete_budget(budget_id)
    assert budget_service.get_budget(budget_id) is None
    with pytest.raises(NotFoundError):
        budget_service.delete_budget(budget_id)
