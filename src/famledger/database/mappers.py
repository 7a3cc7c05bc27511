"""Mapper functions to convert SQLAlchemy models into domain entities.

JSON columns come back as plain lists and dicts; they are frozen into tuples
here so domain entities stay immutable.
"""

from decimal import Decimal
from typing import Any, Optional

from famledger.domain import entities as domain
from famledger.database.models import (
    Group as ORMGroup,
    User as ORMUser,
    Account as ORMAccount,
    Category as ORMCategory,
    Transaction as ORMTransaction,
    Budget as ORMBudget,
    BudgetPeriod as ORMBudgetPeriod,
    RecurringSeries as ORMRecurringSeries,
)


def _ids(value: Optional[list[Any]]) -> tuple[int, ...]:
    return tuple(int(v) for v in (value or []))


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


def group_to_domain(orm_group: ORMGroup) -> domain.Group:
    """Convert SQLAlchemy Group model to domain Group entity."""
    return domain.Group(
        id=orm_group.id,
        name=orm_group.name,
        description=orm_group.description,
        user_ids=_ids(orm_group.user_ids),
        plan=dict(orm_group.plan or domain.DEFAULT_PLAN),
        is_active=orm_group.is_active,
        created_at=orm_group.created_at,
    )


def user_to_domain(orm_user: ORMUser) -> domain.User:
    """Convert SQLAlchemy User model to domain User entity."""
    return domain.User(
        id=orm_user.id,
        name=orm_user.name,
        email=orm_user.email,
        group_id=orm_user.group_id,
        role=orm_user.role,
        default_account_id=orm_user.default_account_id,
        budget_start_date=orm_user.budget_start_date,
        created_at=orm_user.created_at,
    )


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        type=orm_account.type,
        user_ids=_ids(orm_account.user_ids),
        group_id=orm_account.group_id,
        created_at=orm_account.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        key=orm_category.key,
        label=orm_category.label,
        color=orm_category.color,
        icon=orm_category.icon,
        group_id=orm_category.group_id,
        created_at=orm_category.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        description=orm_transaction.description,
        type=orm_transaction.type,
        amount=_decimal(orm_transaction.amount),
        category=orm_transaction.category,
        date=orm_transaction.date,
        account_id=orm_transaction.account_id,
        to_account_id=orm_transaction.to_account_id,
        user_id=orm_transaction.user_id,
        group_id=orm_transaction.group_id,
        recurring_series_id=orm_transaction.recurring_series_id,
        frequency=orm_transaction.frequency,
        created_at=orm_transaction.created_at,
    )


def budget_to_domain(orm_budget: ORMBudget) -> domain.Budget:
    """Convert SQLAlchemy Budget model to domain Budget entity."""
    return domain.Budget(
        id=orm_budget.id,
        description=orm_budget.description,
        amount=_decimal(orm_budget.amount),
        type=orm_budget.type,
        categories=tuple(orm_budget.categories or []),
        user_id=orm_budget.user_id,
        group_id=orm_budget.group_id,
        icon=orm_budget.icon,
        cached_balance=_decimal(orm_budget.cached_balance),
        balance_updated_at=orm_budget.balance_updated_at,
        created_at=orm_budget.created_at,
    )


def budget_period_to_domain(orm_period: ORMBudgetPeriod) -> domain.BudgetPeriod:
    """Convert SQLAlchemy BudgetPeriod model to domain BudgetPeriod entity."""
    return domain.BudgetPeriod(
        id=orm_period.id,
        user_id=orm_period.user_id,
        start_date=orm_period.start_date,
        end_date=orm_period.end_date,
        is_active=orm_period.is_active,
        total_spent=_decimal(orm_period.total_spent),
        total_saved=_decimal(orm_period.total_saved),
        category_spending={
            key: Decimal(str(value))
            for key, value in (orm_period.category_spending or {}).items()
        },
        created_at=orm_period.created_at,
        updated_at=orm_period.updated_at,
    )


def recurring_series_to_domain(orm_series: ORMRecurringSeries) -> domain.RecurringSeries:
    """Convert SQLAlchemy RecurringSeries model to domain RecurringSeries entity."""
    return domain.RecurringSeries(
        id=orm_series.id,
        description=orm_series.description,
        amount=_decimal(orm_series.amount),
        type=orm_series.type,
        category=orm_series.category,
        account_id=orm_series.account_id,
        user_ids=_ids(orm_series.user_ids),
        group_id=orm_series.group_id,
        frequency=orm_series.frequency,
        start_date=orm_series.start_date,
        end_date=orm_series.end_date,
        due_day=orm_series.due_day,
        due_date=orm_series.due_date,
        is_active=orm_series.is_active,
        total_executions=orm_series.total_executions,
        transaction_ids=_ids(orm_series.transaction_ids),
        created_at=orm_series.created_at,
    )
