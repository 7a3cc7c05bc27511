"""Resolve users, accounts and categories given by id or by name."""

from typing import Optional

from famledger.database.base import Database
from famledger.domain.entities import Account, Category, User
from famledger.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    category_not_found,
    user_not_found,
)


def _as_id(value: str | int) -> Optional[int]:
    if isinstance(value, int):
        return value
    text = str(value).strip()
    return int(text) if text.isdigit() else None


def resolve_user(db: Database, user: str | int) -> User:
    """Find a user by ID, email or (case-insensitive) name.

    Raises:
        NotFoundError: If no user matches
        ValidationError: If a name matches more than one user
    """
    user_id = _as_id(user)
    if user_id is not None:
        found = db.get_user(user_id)
        if found is None:
            raise NotFoundError(user_not_found(user_id))
        return found

    text = str(user).strip()
    if "@" in text:
        found = db.get_user_by_email(text.lower())
        if found is None:
            raise NotFoundError(f"User '{text}' not found")
        return found

    matches = [u for u in db.list_users() if u.name.lower() == text.lower()]
    if not matches:
        raise NotFoundError(f"User '{text}' not found")
    if len(matches) > 1:
        raise ValidationError(f"More than one user is named '{text}'; use the ID or email")
    return matches[0]


def resolve_account(db: Database, account: str | int, group_id: Optional[int] = None) -> Account:
    """Find an account by ID or exact name, optionally within a group."""
    account_id = _as_id(account)
    if account_id is not None:
        found = db.get_account(account_id)
        if found is None:
            raise NotFoundError(account_not_found(account_id))
        return found

    matches = [a for a in db.list_accounts(group_id=group_id) if a.name == str(account).strip()]
    if not matches:
        raise NotFoundError(f"Account '{account}' not found")
    if len(matches) > 1:
        raise ValidationError(f"More than one account is named '{account}'; use the ID")
    return matches[0]


def resolve_category(db: Database, category: str | int, group_id: Optional[int] = None) -> Category:
    """Find a category by ID, key or label."""
    category_id = _as_id(category)
    if category_id is not None:
        found = db.get_category(category_id)
        if found is None:
            raise NotFoundError(category_not_found(category_id))
        return found

    text = str(category).strip()
    found = db.get_category_by_key(group_id, text.lower()) if group_id is not None else None
    if found is not None:
        return found
    for candidate in db.list_categories(group_id=group_id):
        if candidate.key == text.lower() or candidate.label.lower() == text.lower():
            return candidate
    raise NotFoundError(category_not_found(text))
