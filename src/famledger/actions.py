"""Mutation entry points that check the acting user's permissions.

Every action takes the database and the acting user, runs the matching
service call and returns an ``ActionResult``. Validation and permission
failures come back as ``ActionResult.error``; they are never raised.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from famledger.database.base import Database
from famledger.domain import permissions
from famledger.domain.account import AccountService
from famledger.domain.budget import BudgetService
from famledger.domain.budget_period import BudgetPeriodService
from famledger.domain.category import CategoryService
from famledger.domain.entities import (
    Account,
    Budget,
    BudgetPeriod,
    Category,
    PeriodTotals,
    RecurringSeries,
    Transaction,
    User,
)
from famledger.domain.errors import (
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    account_not_found,
    budget_not_found,
    category_not_found,
    series_not_found,
    transaction_not_found,
    user_not_found,
)
from famledger.domain.recurring import RecurringService
from famledger.domain.results import ActionResult, run_action
from famledger.domain.transaction import TransactionService
from famledger.domain.user import UserService

NOT_AUTHENTICATED = "Not authenticated"
PERMISSION_DENIED = "Permission denied"

_BUDGET_UPDATABLE = ("description", "amount", "type", "categories", "icon")


def _require_actor(actor: Optional[User]) -> User:
    if actor is None:
        raise PermissionDeniedError(NOT_AUTHENTICATED)
    return actor


def _load_target(db: Database, user_id: int) -> User:
    target = db.get_user(user_id)
    if target is None:
        raise NotFoundError(user_not_found(user_id))
    return target


def _check_user_access(
    db: Database, actor: Optional[User], user_id: Optional[int], message: str = PERMISSION_DENIED
) -> None:
    actor = _require_actor(actor)
    if user_id is None:
        raise ValidationError("User is required")
    if permissions.is_member(actor) and user_id != actor.id:
        raise PermissionDeniedError(message)
    if not permissions.can_access_user_data(actor, _load_target(db, user_id)):
        raise PermissionDeniedError(message)


def _check_any_access(db: Database, actor: Optional[User], user_ids: Iterable[int], message: str) -> None:
    """Members must be among ``user_ids``; admins need one of them in their group."""
    actor = _require_actor(actor)
    user_ids = list(user_ids)
    if permissions.is_member(actor):
        allowed = actor.id in user_ids
    else:
        allowed = any(
            permissions.can_access_user_data(actor, db.get_user(u)) for u in user_ids
        )
    if not allowed:
        raise PermissionDeniedError(message)


def _check_assignable(db: Database, actor: Optional[User], user_ids: Iterable[int], what: str) -> None:
    """Members may only assign things to themselves, admins to their group."""
    actor = _require_actor(actor)
    user_ids = list(user_ids)
    if permissions.is_member(actor):
        if actor.id not in user_ids:
            raise PermissionDeniedError(f"You must include yourself in the {what}")
        if any(u != actor.id for u in user_ids):
            raise PermissionDeniedError(f"You cannot assign the {what} to other users")
    for user_id in user_ids:
        if not permissions.can_access_user_data(actor, _load_target(db, user_id)):
            raise PermissionDeniedError(PERMISSION_DENIED)


def _check_group(actor: Optional[User], group_id: Optional[int]) -> None:
    actor = _require_actor(actor)
    if not permissions.is_superadmin(actor) and group_id != actor.group_id:
        raise PermissionDeniedError("You cannot manage data of another group")


# Budgets


def create_budget_action(
    db: Database,
    actor: Optional[User],
    description: str,
    amount: Decimal | int | str,
    type: str,
    categories: list[str],
    user_id: int,
    icon: Optional[str] = None,
) -> ActionResult[Budget]:
    def run() -> Budget:
        _check_user_access(db, actor, user_id, "You cannot create budgets for other users")
        service = BudgetService(db)
        budget_id = service.create_budget(
            description, amount, type, categories, user_id=user_id, icon=icon
        )
        return service.get_budget(budget_id)

    return run_action(run, "Failed to create budget")


def update_budget_action(
    db: Database, actor: Optional[User], budget_id: int, **changes: Any
) -> ActionResult[Budget]:
    def run() -> Budget:
        service = BudgetService(db)
        budget = service.get_budget(budget_id)
        if budget is None:
            raise NotFoundError(budget_not_found(budget_id))
        _check_user_access(db, actor, budget.user_id, "You cannot modify this budget")
        unknown = set(changes) - set(_BUDGET_UPDATABLE)
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        return service.update_budget(budget_id, **changes)

    return run_action(run, "Failed to update budget")


def delete_budget_action(
    db: Database, actor: Optional[User], budget_id: int
) -> ActionResult[dict[str, int]]:
    def run() -> dict[str, int]:
        service = BudgetService(db)
        budget = service.get_budget(budget_id)
        if budget is None:
            raise NotFoundError(budget_not_found(budget_id))
        _check_user_access(db, actor, budget.user_id, "You cannot delete this budget")
        service.delete_budget(budget_id)
        return {"id": budget_id}

    return run_action(run, "Failed to delete budget")


# Budget periods


def start_period_action(
    db: Database, actor: Optional[User], user_id: int, start_date: date
) -> ActionResult[BudgetPeriod]:
    def run() -> BudgetPeriod:
        _check_user_access(db, actor, user_id, "You cannot manage periods of other users")
        return BudgetPeriodService(db).create_period(user_id, start_date)

    return run_action(run, "Failed to start budget period")


def close_period_action(
    db: Database, actor: Optional[User], user_id: int, period_id: int, end_date: date
) -> ActionResult[BudgetPeriod]:
    def run() -> BudgetPeriod:
        _check_user_access(db, actor, user_id, "You cannot close this period")
        return BudgetPeriodService(db).close_period(user_id, period_id, end_date)

    return run_action(run, "Failed to close budget period")


def delete_period_action(
    db: Database, actor: Optional[User], user_id: int, period_id: int
) -> ActionResult[dict[str, int]]:
    def run() -> dict[str, int]:
        _check_user_access(db, actor, user_id, "You cannot delete this period")
        BudgetPeriodService(db).delete_period(user_id, period_id)
        return {"id": period_id}

    return run_action(run, "Failed to delete budget period")


def get_user_periods_action(
    db: Database, actor: Optional[User], user_id: int
) -> ActionResult[list[BudgetPeriod]]:
    def run() -> list[BudgetPeriod]:
        _check_user_access(db, actor, user_id, "You cannot view periods of other users")
        return BudgetPeriodService(db).list_periods(user_id)

    return run_action(run, "Failed to load budget periods")


def get_active_period_action(
    db: Database, actor: Optional[User], user_id: int
) -> ActionResult[Optional[BudgetPeriod]]:
    def run() -> Optional[BudgetPeriod]:
        _check_user_access(db, actor, user_id)
        return BudgetPeriodService(db).get_active_period(user_id)

    return run_action(run, "Failed to load active period")


def get_period_preview_action(
    db: Database, actor: Optional[User], user_id: int, period_id: int
) -> ActionResult[PeriodTotals]:
    def run() -> PeriodTotals:
        _check_user_access(db, actor, user_id)
        return BudgetPeriodService(db).preview_period(user_id, period_id)

    return run_action(run, "Failed to preview budget period")


# Transactions


def create_transaction_action(
    db: Database,
    actor: Optional[User],
    description: str,
    amount: Decimal | int | str,
    type: str,
    category: str,
    date: date,
    account_id: int,
    user_id: int,
    to_account_id: Optional[int] = None,
    group_id: Optional[int] = None,
) -> ActionResult[Transaction]:
    def run() -> Transaction:
        _check_user_access(db, actor, user_id)
        service = TransactionService(db)
        transaction_id = service.create_transaction(
            description=description,
            amount=amount,
            type=type,
            category=category,
            date=date,
            account_id=account_id,
            group_id=group_id if group_id is not None else actor.group_id,
            user_id=user_id,
            to_account_id=to_account_id,
        )
        return service.get_transaction(transaction_id)

    return run_action(run, "Failed to create transaction")


def update_transaction_action(
    db: Database, actor: Optional[User], transaction_id: int, **changes: Any
) -> ActionResult[Transaction]:
    def run() -> Transaction:
        service = TransactionService(db)
        existing = service.get_transaction(transaction_id)
        if existing is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if existing.user_id is None:
            raise ValidationError("The transaction has no assigned user")
        _check_user_access(db, actor, existing.user_id)
        new_user = changes.get("user_id")
        if new_user is not None and new_user != existing.user_id:
            if permissions.is_member(actor):
                raise PermissionDeniedError("You cannot assign the transaction to another user")
            _check_user_access(db, actor, new_user)
        return service.update_transaction(transaction_id, **changes)

    return run_action(run, "Failed to update transaction")


def delete_transaction_action(
    db: Database, actor: Optional[User], transaction_id: int
) -> ActionResult[dict[str, int]]:
    def run() -> dict[str, int]:
        service = TransactionService(db)
        existing = service.get_transaction(transaction_id)
        if existing is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if existing.user_id is None:
            raise ValidationError("The transaction has no assigned user")
        _check_user_access(db, actor, existing.user_id)
        service.delete_transaction(transaction_id)
        return {"id": transaction_id}

    return run_action(run, "Failed to delete transaction")


# Accounts


def create_account_action(
    db: Database,
    actor: Optional[User],
    name: str,
    type: str,
    user_ids: list[int],
    group_id: Optional[int] = None,
) -> ActionResult[Account]:
    def run() -> Account:
        _check_assignable(db, actor, user_ids, "account")
        group = group_id if group_id is not None else actor.group_id
        _check_group(actor, group)
        service = AccountService(db)
        return service.get_account(service.create_account(name, type, user_ids, group))

    return run_action(run, "Failed to create account")


def update_account_action(
    db: Database,
    actor: Optional[User],
    account_id: int,
    name: Optional[str] = None,
    type: Optional[str] = None,
    user_ids: Optional[list[int]] = None,
) -> ActionResult[Account]:
    def run() -> Account:
        service = AccountService(db)
        account = service.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        _check_any_access(db, actor, account.user_ids, "You cannot modify this account")
        if user_ids is not None:
            _check_assignable(db, actor, user_ids, "account")
        service.update_account(account_id, name=name, type=type, user_ids=user_ids)
        return service.get_account(account_id)

    return run_action(run, "Failed to update account")


def delete_account_action(
    db: Database, actor: Optional[User], account_id: int
) -> ActionResult[dict[str, int]]:
    def run() -> dict[str, int]:
        service = AccountService(db)
        account = service.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        _check_any_access(db, actor, account.user_ids, "You cannot delete this account")
        removed = service.delete_account(account_id)
        return {"id": account_id, "transactions_removed": removed}

    return run_action(run, "Failed to delete account")


# Categories


def create_category_action(
    db: Database,
    actor: Optional[User],
    key: str,
    label: str,
    icon: str,
    color: str,
) -> ActionResult[Category]:
    def run() -> Category:
        current = _require_actor(actor)
        if current.group_id is None:
            raise ValidationError("You must belong to a group to create categories")
        service = CategoryService(db)
        return service.get_category(
            service.create_category(key, label, icon, color, group_id=current.group_id)
        )

    return run_action(run, "Failed to create category")


def update_category_action(
    db: Database,
    actor: Optional[User],
    category_id: int,
    label: Optional[str] = None,
    icon: Optional[str] = None,
    color: Optional[str] = None,
) -> ActionResult[Category]:
    def run() -> Category:
        service = CategoryService(db)
        category = service.get_category(category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))
        _check_group(actor, category.group_id)
        service.update_category(category_id, label=label, icon=icon, color=color)
        return service.get_category(category_id)

    return run_action(run, "Failed to update category")


def delete_category_action(
    db: Database, actor: Optional[User], category_id: int, force: bool = False
) -> ActionResult[dict[str, int]]:
    def run() -> dict[str, int]:
        service = CategoryService(db)
        category = service.get_category(category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))
        _check_group(actor, category.group_id)
        if not permissions.is_admin(actor):
            raise PermissionDeniedError("Only admins can delete categories")
        service.delete_category(category_id, force=force)
        return {"id": category_id}

    return run_action(run, "Failed to delete category")


def get_all_categories_action(db: Database, actor: Optional[User]) -> ActionResult[list[Category]]:
    def run() -> list[Category]:
        current = _require_actor(actor)
        return CategoryService(db).list_categories(group_id=current.group_id)

    return run_action(run, "Failed to load categories")


# Recurring series


def _require_series(service: RecurringService, series_id: int) -> RecurringSeries:
    series = service.get_series(series_id)
    if series is None:
        raise NotFoundError(series_not_found(series_id))
    return series


def create_recurring_series_action(
    db: Database,
    actor: Optional[User],
    description: str,
    amount: Decimal | int | str,
    type: str,
    category: str,
    account_id: int,
    user_ids: list[int],
    frequency: str,
    start_date: date,
    due_day: int,
    end_date: Optional[date] = None,
) -> ActionResult[RecurringSeries]:
    def run() -> RecurringSeries:
        _check_assignable(db, actor, user_ids, "recurring series")
        service = RecurringService(db)
        series_id = service.create_series(
            description=description,
            amount=amount,
            type=type,
            category=category,
            account_id=account_id,
            user_ids=user_ids,
            frequency=frequency,
            start_date=start_date,
            due_day=due_day,
            end_date=end_date,
        )
        return service.get_series(series_id)

    return run_action(run, "Failed to create recurring series")


def update_recurring_series_action(
    db: Database, actor: Optional[User], series_id: int, **changes: Any
) -> ActionResult[RecurringSeries]:
    def run() -> RecurringSeries:
        service = RecurringService(db)
        series = _require_series(service, series_id)
        _check_any_access(db, actor, series.user_ids, "You cannot modify this recurring series")
        if "user_ids" in changes:
            _check_assignable(db, actor, changes["user_ids"], "recurring series")
        return service.update_series(series_id, **changes)

    return run_action(run, "Failed to update recurring series")


def delete_recurring_series_action(
    db: Database, actor: Optional[User], series_id: int
) -> ActionResult[dict[str, int]]:
    def run() -> dict[str, int]:
        service = RecurringService(db)
        series = _require_series(service, series_id)
        _check_any_access(db, actor, series.user_ids, "You cannot delete this recurring series")
        service.delete_series(series_id)
        return {"id": series_id}

    return run_action(run, "Failed to delete recurring series")


def toggle_recurring_series_active_action(
    db: Database, actor: Optional[User], series_id: int
) -> ActionResult[RecurringSeries]:
    def run() -> RecurringSeries:
        service = RecurringService(db)
        series = _require_series(service, series_id)
        _check_any_access(db, actor, series.user_ids, "You cannot modify this recurring series")
        return service.toggle_active(series_id)

    return run_action(run, "Failed to toggle recurring series")


def execute_recurring_series_action(
    db: Database, actor: Optional[User], series_id: int, today: Optional[date] = None
) -> ActionResult[Transaction]:
    def run() -> Transaction:
        service = RecurringService(db)
        series = _require_series(service, series_id)
        _check_any_access(db, actor, series.user_ids, "You cannot execute this recurring series")
        transaction_id = service.execute_series(series_id, today=today)
        return TransactionService(db).get_transaction(transaction_id)

    return run_action(run, "Failed to execute recurring series")


# Users


def update_user_profile_action(
    db: Database,
    actor: Optional[User],
    user_id: int,
    name: Optional[str] = None,
    email: Optional[str] = None,
) -> ActionResult[User]:
    def run() -> User:
        _check_user_access(db, actor, user_id, "You cannot modify this profile")
        return UserService(db).update_profile(user_id, name=name, email=email)

    return run_action(run, "Failed to update profile")


def delete_user_action(
    db: Database, actor: Optional[User], user_id: int
) -> ActionResult[dict[str, int]]:
    def run() -> dict[str, int]:
        current = _require_actor(actor)
        if not permissions.is_admin(current):
            raise PermissionDeniedError("Only admins can delete users")
        if current.id == user_id:
            raise ValidationError("You cannot delete yourself")
        _check_user_access(db, current, user_id, "You cannot delete users of another group")
        UserService(db).delete_user(user_id)
        return {"id": user_id}

    return run_action(run, "Failed to delete user")
