"""Tests for budget periods."""

from datetime import date
from decimal import Decimal

import pytest

from famledger.domain.budget_period import calculate_period_totals
from famledger.domain.entities import Budget, BudgetPeriod, Transaction
from famledger.domain.errors import NotFoundError, ValidationError


def _txn(amount, category="spesa", type="expense", day=date(2025, 1, 10), user_id=1):
    return Transaction(
        id=1, description="x", type=type, amount=Decimal(str(amount)), category=category,
        date=day, account_id=1, user_id=user_id,
    )


def _budget(amount, categories, user_id=1):
    return Budget(
        id=1, description="b", amount=Decimal(str(amount)), type="monthly",
        categories=tuple(categories), user_id=user_id,
    )


def test_period_totals_count_each_budget():
    period = BudgetPeriod(id=1, user_id=1, start_date=date(2025, 1, 1), end_date=date(2025, 1, 31))
    txns = [
        _txn(60, "spesa"),
        _txn(30, "casa"),
        _txn(20, "spesa", type="income"),
        _txn(500, "spesa", user_id=2),
        _txn(45, "spesa", day=date(2025, 2, 1)),
    ]
    budgets = [_budget(100, ["spesa"]), _budget(200, ["spesa", "casa"]), _budget(0, ["casa"])]

    totals = calculate_period_totals(txns, period, budgets)

    # 40 for the first budget, 70 for the second
    assert totals.total_spent == Decimal("110.00")
    assert totals.total_saved == Decimal("190.00")
    assert totals.category_spending == {"spesa": Decimal("120.00"), "casa": Decimal("30.00")}


def test_period_totals_saved_never_negative():
    period = BudgetPeriod(id=1, user_id=1, start_date=date(2025, 1, 1), end_date=date(2025, 1, 31))
    totals = calculate_period_totals([_txn(500)], period, [_budget(100, ["spesa"])])
    assert totals.total_saved == Decimal("0.00")


def test_create_period_closes_previous(period_service, family):
    anna = family["anna"]
    first = period_service.create_period(anna.id, date(2025, 1, 1))
    second = period_service.create_period(anna.id, date(2025, 2, 1))

    periods = period_service.list_periods(anna.id)
    assert [p.id for p in periods] == [second.id, first.id]
    previous = period_service.get_period(first.id)
    assert not previous.is_active
    assert previous.end_date == date(2025, 1, 31)
    assert period_service.get_active_period(anna.id).id == second.id


def test_create_period_requires_date(period_service, family):
    with pytest.raises(ValidationError):
        period_service.create_period(family["anna"].id, None)


def test_close_period_stores_totals_and_opens_next(
    period_service, budget_service, family, accounts, add_transaction
):
    anna = family["anna"]
    budget_service.create_budget("Spesa", 300, "monthly", ["spesa"], anna.id)
    period = period_service.create_period(anna.id, date(2025, 1, 1))
    add_transaction(120, day=date(2025, 1, 15), account=accounts["shared"])

    closed = period_service.close_period(anna.id, period.id, date(2025, 1, 26))

    assert closed.end_date == date(2025, 1, 26)
    assert not closed.is_active
    assert closed.total_spent == Decimal("120")
    assert closed.total_saved == Decimal("180")
    assert closed.category_spending == {"spesa": Decimal("120.00")}

    active = period_service.get_active_period(anna.id)
    assert active.start_date == date(2025, 1, 27)
    assert active.end_date is None


def test_close_period_rejects_end_before_start(period_service, family):
    anna = family["anna"]
    period = period_service.create_period(anna.id, date(2025, 1, 10))
    with pytest.raises(ValidationError):
        period_service.close_period(anna.id, period.id, date(2025, 1, 9))


def test_periods_are_owned(period_service, family):
    period = period_service.create_period(family["anna"].id, date(2025, 1, 1))
    with pytest.raises(NotFoundError):
        period_service.close_period(family["marco"].id, period.id, date(2025, 1, 31))
    with pytest.raises(NotFoundError):
        period_service.delete_period(family["marco"].id, period.id)


def test_delete_period(period_service, family):
    anna = family["anna"]
    period = period_service.create_period(anna.id, date(2025, 1, 1))
    period_service.delete_period(anna.id, period.id)
    assert period_service.list_periods(anna.id) == []


def test_preview_period_does_not_persist(period_service, budget_service, family, accounts, add_transaction):
    anna = family["anna"]
    budget_service.create_budget("Spesa", 100, "monthly", ["spesa"], anna.id)
    period = period_service.create_period(anna.id, date(2025, 1, 1))
    add_transaction(25, day=date(2025, 1, 5), account=accounts["shared"])

    preview = period_service.preview_period(anna.id, period.id, today=date(2025, 1, 20))
    assert preview.total_spent == Decimal("25.00")
    assert period_service.get_period(period.id).total_spent is None


def test_migrate_legacy_periods(temp_db, period_service, family):
    anna = family["anna"]
    period_service.create_period(anna.id, date(2025, 1, 1))
    temp_db.set_legacy_periods(
        anna.id,
        [
            {"start_date": "2024-11-01", "end_date": "2024-11-30", "is_active": False, "total_spent": "250.5"},
            {"start_date": "2024-12-01T00:00:00Z", "end_date": "2024-12-31", "is_active": True,
             "category_spending": {"spesa": 80}},
            # Already present
            {"start_date": "2025-01-01", "is_active": True},
            {"start_date": "not a date"},
        ],
    )

    created = period_service.migrate_legacy_periods(anna.id)

    assert created == 2
    periods = period_service.list_periods(anna.id)
    assert [p.start_date for p in periods] == [date(2025, 1, 1), date(2024, 12, 1), date(2024, 11, 1)]
    assert [p.is_active for p in periods] == [True, False, False]
    assert periods[2].total_spent == Decimal("250.50")
    assert periods[1].category_spending == {"spesa": Decimal("80")}
    assert temp_db.get_legacy_periods(anna.id) == []

    assert period_service.migrate_legacy_periods(anna.id) == 0
