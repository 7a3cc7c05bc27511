"""Tests for permission-checked actions."""

from datetime import date
from decimal import Decimal

import pytest

from famledger import actions
from famledger.domain.errors import DomainError


@pytest.fixture
def anna(family):
    return family["anna"]


@pytest.fixture
def marco(family):
    return family["marco"]


def test_actions_require_an_actor(temp_db, marco):
    result = actions.create_budget_action(temp_db, None, "Spesa", 100, "monthly", ["spesa"], marco.id)
    assert not result.ok
    assert result.error == actions.NOT_AUTHENTICATED


def test_member_creates_own_budget(temp_db, marco):
    result = actions.create_budget_action(temp_db, marco, "Spesa", "250", "monthly", ["spesa"], marco.id)
    assert result.ok
    assert result.data.amount == Decimal("250")
    assert result.data.user_id == marco.id


def test_member_cannot_create_budget_for_others(temp_db, anna, marco):
    result = actions.create_budget_action(temp_db, marco, "Spesa", 100, "monthly", ["spesa"], anna.id)
    assert result.error == "You cannot create budgets for other users"


def test_admin_creates_budget_for_member(temp_db, anna, marco):
    result = actions.create_budget_action(temp_db, anna, "Spesa", 100, "monthly", ["spesa"], marco.id)
    assert result.ok


def test_validation_errors_become_results(temp_db, marco):
    result = actions.create_budget_action(temp_db, marco, "Spesa", -5, "monthly", ["spesa"], marco.id)
    assert not result.ok
    assert result.data is None
    with pytest.raises(DomainError):
        result.unwrap()


def test_transaction_actions(temp_db, anna, marco, accounts, categories):
    created = actions.create_transaction_action(
        temp_db, marco, "Pane", "3.50", "expense", "spesa", date(2025, 1, 10), accounts["shared"].id, marco.id
    )
    assert created.ok
    assert created.data.group_id == marco.group_id

    denied = actions.create_transaction_action(
        temp_db, marco, "Pane", 3, "expense", "spesa", date(2025, 1, 10), accounts["shared"].id, anna.id
    )
    assert denied.error == actions.PERMISSION_DENIED

    reassigned = actions.update_transaction_action(temp_db, marco, created.data.id, user_id=anna.id)
    assert reassigned.error == "You cannot assign the transaction to another user"

    updated = actions.update_transaction_action(temp_db, marco, created.data.id, description="Pane e latte")
    assert updated.data.description == "Pane e latte"

    deleted = actions.delete_transaction_action(temp_db, marco, created.data.id)
    assert deleted.data == {"id": created.data.id}

    missing = actions.delete_transaction_action(temp_db, marco, created.data.id)
    assert "not found" in missing.error


def test_member_account_ownership_rules(temp_db, anna, marco):
    without_self = actions.create_account_action(temp_db, marco, "Conto", "checking", [anna.id])
    assert without_self.error == "You must include yourself in the account"

    shared = actions.create_account_action(temp_db, marco, "Conto", "checking", [marco.id, anna.id])
    assert shared.error == "You cannot assign the account to other users"

    own = actions.create_account_action(temp_db, marco, "Conto Marco", "checking", [marco.id])
    assert own.ok
    assert own.data.group_id == marco.group_id


def test_member_cannot_touch_accounts_they_do_not_own(temp_db, marco, accounts):
    result = actions.delete_account_action(temp_db, marco, accounts["savings"].id)
    assert result.error == "You cannot delete this account"


def test_delete_account_reports_removed_transactions(temp_db, anna, accounts, add_transaction):
    add_transaction(10, account=accounts["savings"])
    result = actions.delete_account_action(temp_db, anna, accounts["savings"].id)
    assert result.data == {"id": accounts["savings"].id, "transactions_removed": 1}


def test_only_admins_delete_categories(temp_db, anna, marco, categories):
    category_id = categories["svago"].id
    assert actions.delete_category_action(temp_db, marco, category_id).error == (
        "Only admins can delete categories"
    )
    assert actions.delete_category_action(temp_db, anna, category_id).data == {"id": category_id}


def test_member_creates_category_in_own_group(temp_db, marco):
    result = actions.create_category_action(temp_db, marco, "Animali", "Animali", "paw", "#a855f7")
    assert result.ok
    assert result.data.group_id == marco.group_id
    assert result.data.color == "#A855F7"


def test_recurring_execution_requires_series_access(temp_db, anna, marco, accounts):
    created = actions.create_recurring_series_action(
        temp_db,
        anna,
        "Palestra",
        40,
        "expense",
        "svago",
        accounts["payroll"].id,
        [anna.id],
        "monthly",
        date(2025, 1, 3),
        3,
    )
    assert created.ok

    denied = actions.execute_recurring_series_action(temp_db, marco, created.data.id)
    assert denied.error == "You cannot execute this recurring series"

    executed = actions.execute_recurring_series_action(temp_db, anna, created.data.id)
    assert executed.data.recurring_series_id == created.data.id
    assert executed.data.date == date(2025, 1, 3)


def test_period_actions_are_scoped_to_the_owner(temp_db, anna, marco):
    assert actions.start_period_action(temp_db, marco, anna.id, date(2025, 1, 1)).error == (
        "You cannot manage periods of other users"
    )
    started = actions.start_period_action(temp_db, marco, marco.id, date(2025, 1, 1))
    assert started.data.is_active

    periods = actions.get_user_periods_action(temp_db, anna, marco.id)
    assert [p.id for p in periods.data] == [started.data.id]


def test_user_deletion_rules(temp_db, anna, marco):
    assert actions.delete_user_action(temp_db, marco, anna.id).error == "Only admins can delete users"
    assert actions.delete_user_action(temp_db, anna, anna.id).error == "You cannot delete yourself"
    assert actions.delete_user_action(temp_db, anna, marco.id).data == {"id": marco.id}


@pytest.fixture
def luca(user_service, group_service):
    """Admin of another family group."""
    luca_id = user_service.create_user("Luca", "luca@example.com", role="admin")
    group_service.create_group("Bianchi", [luca_id])
    return user_service.get_user(luca_id)


def test_admin_cannot_reach_users_of_another_group(temp_db, budget_service, anna, luca, accounts):
    budget_id = budget_service.create_budget("Spesa", 100, "monthly", ["spesa"], anna.id)

    deleted = actions.delete_budget_action(temp_db, luca, budget_id)
    assert deleted.error == "You cannot delete this budget"
    assert budget_service.get_budget(budget_id) is not None

    created = actions.create_transaction_action(
        temp_db, luca, "Pane", 3, "expense", "spesa", date(2025, 1, 10), accounts["shared"].id, anna.id
    )
    assert created.error == actions.PERMISSION_DENIED

    account = actions.delete_account_action(temp_db, luca, accounts["payroll"].id)
    assert account.error == "You cannot delete this account"

    user = actions.delete_user_action(temp_db, luca, anna.id)
    assert user.error == "You cannot delete users of another group"


def test_superadmin_reaches_every_group(temp_db, user_service, budget_service, anna, luca):
    user_service.set_role(luca.id, "superadmin")
    budget_id = budget_service.create_budget("Spesa", 100, "monthly", ["spesa"], anna.id)

    result = actions.delete_budget_action(temp_db, user_service.get_user(luca.id), budget_id)
    assert result.data == {"id": budget_id}


def test_update_budget_rejects_unknown_fields(temp_db, budget_service, anna, marco):
    budget_id = budget_service.create_budget("Spesa", 100, "monthly", ["spesa"], marco.id)

    result = actions.update_budget_action(temp_db, anna, budget_id, user_id=anna.id)
    assert result.error == "Cannot update field(s): user_id"
    assert budget_service.get_budget(budget_id).user_id == marco.id

    renamed = actions.update_budget_action(temp_db, anna, budget_id, description="Spesa casa")
    assert renamed.data.description == "Spesa casa"
