"""Transaction domain service."""

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from famledger.database.base import Database
from famledger.domain.entities import (
    TRANSACTION_TYPES,
    Transaction as TransactionEntity,
    TransactionFilter,
    TransactionPage,
)
from famledger.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    transaction_not_found,
    transfer_requires_destination,
    user_not_found,
)

logger = logging.getLogger(__name__)

_UPDATABLE = (
    "description",
    "amount",
    "type",
    "category",
    "date",
    "account_id",
    "to_account_id",
    "user_id",
    "group_id",
)


def to_amount(value: Decimal | int | str | float) -> Decimal:
    """Coerce a user-supplied amount to a positive Decimal.

    Raises:
        ValidationError: If the value is not a number greater than zero
    """
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid amount '{value}'") from e
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    return amount


class TransactionService:
    """Service for managing transactions."""

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db

    def _validate(self, txn: TransactionEntity) -> None:
        """Check a complete (new or merged) transaction against business rules."""
        if not txn.description or not txn.description.strip():
            raise ValidationError("Description is required")
        if txn.type not in TRANSACTION_TYPES:
            raise ValidationError(
                f"Invalid transaction type '{txn.type}'. Expected one of: {', '.join(TRANSACTION_TYPES)}"
            )
        if not txn.category or not txn.category.strip():
            raise ValidationError("Category is required")
        if txn.date is None:
            raise ValidationError("Date is required")
        if txn.account_id is None:
            raise ValidationError("Account is required")
        if txn.group_id is None:
            raise ValidationError("Group is required")
        if self.db.get_account(txn.account_id) is None:
            raise NotFoundError(account_not_found(txn.account_id))
        if txn.user_id is not None and self.db.get_user(txn.user_id) is None:
            raise NotFoundError(user_not_found(txn.user_id))

        if txn.type == "transfer":
            if txn.to_account_id is None or txn.to_account_id == txn.account_id:
                raise ValidationError(transfer_requires_destination())
            if self.db.get_account(txn.to_account_id) is None:
                raise NotFoundError(account_not_found(txn.to_account_id))
        elif txn.to_account_id is not None:
            raise ValidationError("Only transfer transactions can have a destination account")

    def _touch_budgets(self, *user_ids: Optional[int]) -> None:
        for user_id in {u for u in user_ids if u is not None}:
            self.db.mark_budgets_stale(user_id)

    def create_transaction(
        self,
        description: str,
        amount: Decimal | int | str,
        type: str,
        category: str,
        date: date,
        account_id: int,
        group_id: int,
        user_id: Optional[int] = None,
        to_account_id: Optional[int] = None,
        recurring_series_id: Optional[int] = None,
        frequency: Optional[str] = None,
    ) -> int:
        """Create a transaction.

        Args:
            description: What the transaction was for
            amount: Positive amount; the type decides the direction
            type: income, expense or transfer
            category: Category key
            date: Transaction date
            account_id: Source account
            group_id: Owning group
            user_id: Owning user (optional)
            to_account_id: Destination account, required for transfers only
            recurring_series_id: Series that generated the transaction, if any
            frequency: Frequency of that series, if any

        Returns:
            Transaction ID

        Raises:
            ValidationError: If a business rule is violated
            NotFoundError: If an account or the user does not exist
        """
        candidate = TransactionEntity(
            id=0,
            description=(description or "").strip(),
            type=type,
            amount=to_amount(amount),
            category=(category or "").strip().lower(),
            date=date,
            account_id=account_id,
            to_account_id=to_account_id,
            user_id=user_id,
            group_id=group_id,
            recurring_series_id=recurring_series_id,
            frequency=frequency,
        )
        self._validate(candidate)

        transaction_id = self.db.create_transaction(
            description=candidate.description,
            type=candidate.type,
            amount=candidate.amount,
            category=candidate.category,
            date=candidate.date,
            account_id=candidate.account_id,
            to_account_id=candidate.to_account_id,
            user_id=candidate.user_id,
            group_id=candidate.group_id,
            recurring_series_id=candidate.recurring_series_id,
            frequency=candidate.frequency,
        )
        self._touch_budgets(user_id)
        logger.info(
            "Created %s transaction %s of %s on account %s",
            type,
            transaction_id,
            candidate.amount,
            account_id,
        )
        return transaction_id

    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        return self.db.get_transaction(transaction_id)

    def list_transactions(self, filters: Optional[TransactionFilter] = None) -> TransactionPage:
        """List transactions matching filters, newest first.

        Returns:
            TransactionPage with the requested slice, the total count of
            matches and whether more rows follow the slice
        """
        filters = filters or TransactionFilter()
        if filters.limit is not None and filters.limit < 0:
            raise ValidationError("Limit cannot be negative")
        if filters.offset < 0:
            raise ValidationError("Offset cannot be negative")
        items = self.db.list_transactions(filters)
        total = self.db.count_transactions(filters)
        return TransactionPage(
            items=tuple(items),
            total=total,
            has_more=filters.offset + len(items) < total,
        )

    def update_transaction(self, transaction_id: int, **changes: Any) -> TransactionEntity:
        """Update a transaction.

        The transfer rule is checked against the merged state, so switching
        a transfer to an expense must also clear ``to_account_id``.

        Raises:
            NotFoundError: If the transaction does not exist
            ValidationError: If an unknown field is given or a rule is violated
        """
        current = self.db.get_transaction(transaction_id)
        if current is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        unknown = set(changes) - set(_UPDATABLE)
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        if "amount" in changes:
            changes["amount"] = to_amount(changes["amount"])
        if "description" in changes and changes["description"] is not None:
            changes["description"] = changes["description"].strip()
        if "category" in changes and changes["category"] is not None:
            changes["category"] = changes["category"].strip().lower()

        merged = replace(current, **changes)
        self._validate(merged)
        self.db.update_transaction(transaction_id, **changes)
        self._touch_budgets(current.user_id, merged.user_id)
        logger.info("Updated transaction %s", transaction_id)
        return self.db.get_transaction(transaction_id)

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        current = self.db.get_transaction(transaction_id)
        if current is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        self.db.delete_transaction(transaction_id)
        self._touch_budgets(current.user_id)
        logger.info("Deleted transaction %s", transaction_id)

    def delete_by_account(self, account_id: int) -> int:
        """Delete every transaction with the account as source or destination.

        Budgets of every user owning one of those transactions are marked stale.
        """
        owners = {t.user_id for t in self.db.list_transactions(TransactionFilter(account_id=account_id))}
        removed = self.db.delete_transactions_for_account(account_id)
        self._touch_budgets(*owners)
        logger.info("Deleted %d transactions of account %s", removed, account_id)
        return removed

    def delete_by_user(self, user_id: int) -> int:
        """Delete every transaction owned by a user."""
        removed = self.db.delete_transactions_for_user(user_id)
        self._touch_budgets(user_id)
        logger.info("Deleted %d transactions of user %s", removed, user_id)
        return removed
