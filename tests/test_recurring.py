"""Tests for recurring series."""

from datetime import date
from decimal import Decimal

import pytest

from famledger.domain.errors import NotFoundError, ValidationError
from famledger.domain.recurring import scheduled_dates


@pytest.fixture
def rent(recurring_service, family, accounts):
    """Monthly rent on the shared account, due on the 5th."""
    series_id = recurring_service.create_series(
        description="Affitto",
        amount=800,
        type="expense",
        category="casa",
        account_id=accounts["shared"].id,
        user_ids=[family["anna"].id, family["marco"].id],
        frequency="monthly",
        start_date=date(2025, 1, 5),
        due_day=5,
    )
    return recurring_service.get_series(series_id)


def test_create_series_defaults(rent, family):
    assert rent.due_date == date(2025, 1, 5)
    assert rent.group_id == family["group"].id
    assert rent.is_active
    assert rent.total_executions == 0


@pytest.mark.parametrize(
    "changes",
    [
        {"type": "transfer"},
        {"frequency": "daily"},
        {"frequency": "weekly", "due_day": 9},
        {"due_day": 0},
        {"user_ids": []},
        {"amount": 0},
    ],
)
def test_create_series_validation(recurring_service, family, accounts, changes):
    params = dict(
        description="Palestra",
        amount=30,
        type="expense",
        category="svago",
        account_id=accounts["shared"].id,
        user_ids=[family["anna"].id],
        frequency="monthly",
        start_date=date(2025, 1, 1),
        due_day=1,
    )
    params.update(changes)
    with pytest.raises(ValidationError):
        recurring_service.create_series(**params)


def test_execute_series_advances_due_date(recurring_service, transaction_service, rent, family):
    transaction_id = recurring_service.execute_series(rent.id, today=date(2025, 1, 6))

    txn = transaction_service.get_transaction(transaction_id)
    assert txn.date == date(2025, 1, 5)
    assert txn.recurring_series_id == rent.id
    assert txn.frequency == "monthly"
    assert txn.user_id == family["anna"].id

    series = recurring_service.get_series(rent.id)
    assert series.due_date == date(2025, 2, 5)
    assert series.total_executions == 1
    assert series.transaction_ids == (transaction_id,)


def test_once_series_deactivates_after_run(recurring_service, family, accounts):
    series_id = recurring_service.create_series(
        description="Bollo auto",
        amount=250,
        type="expense",
        category="casa",
        account_id=accounts["shared"].id,
        user_ids=[family["anna"].id],
        frequency="once",
        start_date=date(2025, 3, 1),
        due_day=1,
    )
    recurring_service.execute_series(series_id)
    assert not recurring_service.get_series(series_id).is_active
    with pytest.raises(ValidationError, match="not active"):
        recurring_service.execute_series(series_id)


def test_series_past_end_date_deactivates(recurring_service, family, accounts):
    series_id = recurring_service.create_series(
        description="Rata",
        amount=100,
        type="expense",
        category="casa",
        account_id=accounts["shared"].id,
        user_ids=[family["anna"].id],
        frequency="monthly",
        start_date=date(2025, 1, 10),
        due_day=10,
        end_date=date(2025, 2, 1),
    )
    recurring_service.execute_series(series_id)
    assert not recurring_service.get_series(series_id).is_active


def test_due_series_window(recurring_service, rent):
    assert recurring_service.get_due_series(today=date(2025, 1, 4)) == []
    assert [s.id for s in recurring_service.get_due_series(today=date(2025, 1, 5))] == [rent.id]
    assert [s.id for s in recurring_service.get_due_series(today=date(2025, 1, 12))] == [rent.id]
    assert recurring_service.get_due_series(today=date(2025, 1, 13)) == []


def test_execute_all_due_dry_run_writes_nothing(recurring_service, transaction_service, rent):
    result = recurring_service.execute_all_due(today=date(2025, 1, 5), dry_run=True)

    assert result.dry_run
    assert result.processed == 1
    assert result.successful == 1
    assert result.total_amount == Decimal("800")
    assert result.transaction_ids == []
    assert transaction_service.list_transactions().total == 0


def test_execute_all_due_records_failures(temp_db, recurring_service, rent, family, accounts):
    broken_id = recurring_service.create_series(
        description="Orfana",
        amount=10,
        type="expense",
        category="svago",
        account_id=accounts["shared"].id,
        user_ids=[family["anna"].id],
        frequency="monthly",
        start_date=date(2025, 1, 5),
        due_day=5,
    )
    # A series whose group is gone cannot create transactions
    temp_db.update_series(broken_id, group_id=None)

    result = recurring_service.execute_all_due(today=date(2025, 1, 5))

    assert result.processed == 2
    assert result.successful == 1
    assert result.failed == 1
    assert result.failures[0].series_id == broken_id
    assert result.executed_series_ids == [rent.id]


def test_reconciliation(recurring_service, rent):
    recurring_service.execute_series(rent.id)

    rec = recurring_service.get_reconciliation(rent.id, today=date(2025, 3, 10))
    assert rec.expected_executions == 3
    assert rec.actual_executions == 1
    assert rec.missed_payments == 2
    assert rec.expected_total == Decimal("2400.00")
    assert rec.total_paid == Decimal("800.00")
    assert rec.difference == Decimal("1600.00")
    assert rec.success_rate == pytest.approx(100 / 3)


def test_scheduled_dates_stop_at_end(rent):
    assert scheduled_dates(rent, date(2025, 3, 4)) == [date(2025, 1, 5), date(2025, 2, 5)]


def test_find_missed_executions(recurring_service, rent):
    assert recurring_service.find_missed_executions(today=date(2025, 1, 12)) == []
    missed = recurring_service.find_missed_executions(today=date(2025, 1, 20))
    assert [m.series.id for m in missed] == [rent.id]
    assert missed[0].days_overdue == 15


def test_list_series_by_user(recurring_service, rent, family):
    assert [s.id for s in recurring_service.list_series(user_id=family["marco"].id)] == [rent.id]
    recurring_service.update_series(rent.id, user_ids=[family["anna"].id])
    assert recurring_service.list_series(user_id=family["marco"].id) == []


def test_update_series_validates_merged_due_day(recurring_service, rent):
    recurring_service.update_series(rent.id, due_day=20)
    with pytest.raises(ValidationError):
        recurring_service.update_series(rent.id, frequency="weekly")
    updated = recurring_service.update_series(rent.id, frequency="weekly", due_day=1, amount="750")
    assert updated.frequency == "weekly"
    assert updated.amount == Decimal("750")


@pytest.mark.parametrize(
    "changes, message",
    [
        ({"category": None}, "Category is required"),
        ({"category": "  "}, "Category is required"),
        ({"description": ""}, "Description is required"),
        ({"end_date": date(2024, 12, 31)}, "End date must be on or after start date"),
        ({"start_date": date(2025, 6, 1), "end_date": date(2025, 5, 1)}, "End date must be on or after start date"),
    ],
)
def test_update_series_validates_merged_state(recurring_service, rent, changes, message):
    with pytest.raises(ValidationError, match=message):
        recurring_service.update_series(rent.id, **changes)
    assert recurring_service.get_series(rent.id) == rent


def test_update_series_end_date_checked_against_new_start(recurring_service, rent):
    recurring_service.update_series(rent.id, end_date=date(2025, 12, 5))
    with pytest.raises(ValidationError, match="End date"):
        recurring_service.update_series(rent.id, start_date=date(2026, 1, 5))


def test_month_end_series_keeps_its_due_day(recurring_service, transaction_service, family, accounts):
    series_id = recurring_service.create_series(
        description="Mutuo",
        amount=600,
        type="expense",
        category="casa",
        account_id=accounts["shared"].id,
        user_ids=[family["anna"].id],
        frequency="monthly",
        start_date=date(2025, 1, 31),
        due_day=31,
    )

    executed = [recurring_service.execute_series(series_id) for _ in range(2)]

    assert [transaction_service.get_transaction(t).date for t in executed] == [
        date(2025, 1, 31),
        date(2025, 2, 28),
    ]
    series = recurring_service.get_series(series_id)
    assert series.due_date == date(2025, 3, 31)
    assert scheduled_dates(series, date(2025, 4, 30)) == [
        date(2025, 1, 31),
        date(2025, 2, 28),
        date(2025, 3, 31),
        date(2025, 4, 30),
    ]


def test_toggle_and_delete(recurring_service, rent):
    assert not recurring_service.toggle_active(rent.id).is_active
    assert recurring_service.toggle_active(rent.id).is_active
    recurring_service.delete_series(rent.id)
    with pytest.raises(NotFoundError):
        recurring_service.delete_series(rent.id)


def test_totals_for_user(recurring_service, rent, family):
    totals = recurring_service.get_totals(user_id=family["marco"].id)
    assert totals["total_expenses"] == Decimal("800.00")
    assert totals["net_monthly"] == Decimal("-800.00")
