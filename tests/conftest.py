"""Shared pytest fixtures for famledger tests."""

import logging
import os
import tempfile
from datetime import date

import pytest

from famledger.database.factories import create_sqlite_database
from famledger.domain.account import AccountService
from famledger.domain.budget import BudgetService
from famledger.domain.budget_period import BudgetPeriodService
from famledger.domain.category import CategoryService
from famledger.domain.group import GroupService
from famledger.domain.recurring import RecurringService
from famledger.domain.transaction import TransactionService
from famledger.domain.user import UserService


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config lookup at an empty location so user files never leak in."""
    monkeypatch.setenv("FAMLEDGER_CONFIG", str(tmp_path / "missing-config.yaml"))
    monkeypatch.delenv("FAMLEDGER_DB_PATH", raising=False)


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo the root logger changes made by CLI invocations."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def user_service(temp_db):
    return UserService(temp_db)


@pytest.fixture
def group_service(temp_db):
    return GroupService(temp_db)


@pytest.fixture
def account_service(temp_db):
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    return CategoryService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    return TransactionService(temp_db)


@pytest.fixture
def budget_service(temp_db):
    return BudgetService(temp_db)


@pytest.fixture
def period_service(temp_db):
    return BudgetPeriodService(temp_db)


@pytest.fixture
def recurring_service(temp_db):
    return RecurringService(temp_db)


@pytest.fixture
def family(user_service, group_service):
    """A group with an admin (Anna) and a member (Marco)."""
    anna_id = user_service.create_user("Anna", "anna@example.com", role="admin")
    marco_id = user_service.create_user("Marco", "marco@example.com")
    group_id = group_service.create_group("Rossi", [anna_id, marco_id])
    return {
        "group": group_service.get_group(group_id),
        "anna": user_service.get_user(anna_id),
        "marco": user_service.get_user(marco_id),
    }


@pytest.fixture
def accounts(account_service, family):
    """A shared checking account, Anna's payroll account and Anna's savings."""
    anna, marco = family["anna"], family["marco"]
    group_id = family["group"].id
    shared_id = account_service.create_account("Conto comune", "checking", [anna.id, marco.id], group_id)
    payroll_id = account_service.create_account("Stipendio Anna", "payroll", [anna.id], group_id)
    savings_id = account_service.create_account("Risparmi", "savings", [anna.id], group_id)
    return {
        "shared": account_service.get_account(shared_id),
        "payroll": account_service.get_account(payroll_id),
        "savings": account_service.get_account(savings_id),
    }


@pytest.fixture
def categories(category_service, family):
    """A handful of categories in the family group, keyed by category key."""
    group_id = family["group"].id
    specs = [
        ("spesa", "Spesa", "cart", "#22C55E"),
        ("casa", "Casa", "home", "#3B82F6"),
        ("svago", "Svago", "party", "#F97316"),
        ("stipendio", "Stipendio", "wallet", "#10B981"),
        ("risparmio", "Risparmio", "piggy", "#8B5CF6"),
    ]
    result = {}
    for key, label, icon, color in specs:
        category_id = category_service.create_category(key, label, icon, color, group_id)
        result[key] = category_service.get_category(category_id)
    return result


@pytest.fixture
def add_transaction(transaction_service, family):
    """Factory creating a transaction in the family group and returning it."""

    def _add(
        amount,
        type="expense",
        category="spesa",
        day=date(2025, 1, 10),
        account=None,
        user=None,
        to_account=None,
        description="Test",
    ):
        transaction_id = transaction_service.create_transaction(
            description=description,
            amount=amount,
            type=type,
            category=category,
            date=day,
            account_id=account.id,
            group_id=family["group"].id,
            user_id=(user or family["anna"]).id,
            to_account_id=to_account.id if to_account else None,
        )
        return transaction_service.get_transaction(transaction_id)

    return _add


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
