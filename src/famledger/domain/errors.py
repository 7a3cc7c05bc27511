"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class PermissionDeniedError(DomainError):
    """Acting user is not allowed to touch the target data."""


def group_not_found(group_id: int) -> str:
    """Return message for missing group."""
    return f"Group {group_id} not found"


def user_not_found(user_id: int) -> str:
    """Return message for missing user."""
    return f"User {user_id} not found"


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(identifier: int | str) -> str:
    """Return message for missing category by ID or key."""
    if isinstance(identifier, int):
        return f"Category {identifier} not found"
    return f"Category '{identifier}' not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def budget_not_found(budget_id: int) -> str:
    """Return message for missing budget."""
    return f"Budget {budget_id} not found"


def period_not_found(period_id: int) -> str:
    """Return message for missing budget period."""
    return f"Budget period {period_id} not found"


def series_not_found(series_id: int) -> str:
    """Return message for missing recurring series."""
    return f"Recurring series {series_id} not found"


def duplicate_email(email: str) -> str:
    """Return message for an email already in use."""
    return f"Email '{email}' is already in use"


def duplicate_category_key(key: str, group_id: int) -> str:
    """Return message for a category key already used in a group."""
    return f"Category key '{key}' already exists in group {group_id}"


def transfer_requires_destination() -> str:
    """Return message for a transfer without a distinct destination account."""
    return "Transfer transactions require a destination account different from the source"


def category_delete_blocked(key: str, transaction_count: int, budget_count: int) -> str:
    """Return message when a category is still referenced."""
    parts = []
    if transaction_count > 0:
        parts.append(
            f"{transaction_count} transaction{'s' if transaction_count != 1 else ''}"
        )
    if budget_count > 0:
        parts.append(f"{budget_count} budget{'s' if budget_count != 1 else ''}")
    return (
        f"Cannot delete category '{key}': it is used by {', '.join(parts)}. "
        "Use --force to delete it anyway."
    )


def group_delete_blocked(group_id: int, member_count: int) -> str:
    """Return message when a group still has members."""
    return (
        f"Cannot delete group {group_id}: it still has {member_count} "
        f"member{'s' if member_count != 1 else ''}"
    )
