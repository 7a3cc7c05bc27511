"""List view models: transactions grouped by day, month navigation and
optimistic list updates."""

import itertools
import logging
from collections import OrderedDict
from dataclasses import dataclass, is_dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from famledger.domain.calculations import MONTH_NAMES, SHORT_MONTHS
from famledger.domain.entities import Transaction
from famledger.domain.finance_logic import ZERO, as_date
from famledger.domain.results import ActionResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class DailyTotal:
    total: Decimal
    count: int


def day_label(day: date, today: Optional[date] = None) -> str:
    """``Oggi``, ``Ieri`` or ``d mmm yyyy`` (e.g. ``5 gen 2025``)."""
    today = today or date.today()
    delta = (today - day).days
    if delta == 0:
        return "Oggi"
    if delta == 1:
        return "Ieri"
    return f"{day.day} {SHORT_MONTHS[day.month - 1]} {day.year}"


def group_transactions_by_date(
    transactions: Iterable[Transaction], today: Optional[date] = None
) -> "OrderedDict[str, list[Transaction]]":
    """Group transactions under a day label, newest day first.

    Transactions without a usable date are left out.
    """
    dated = []
    for t in transactions:
        try:
            day = as_date(t.date)
        except (TypeError, ValueError):
            day = None
        if isinstance(day, date):
            dated.append((day, t))

    dated.sort(key=lambda pair: pair[0], reverse=True)
    grouped: OrderedDict[str, list[Transaction]] = OrderedDict()
    for day, items in itertools.groupby(dated, key=lambda pair: pair[0]):
        grouped[day_label(day, today)] = [t for _, t in items]
    return grouped


def calculate_daily_totals(grouped: dict[str, list[Transaction]]) -> dict[str, DailyTotal]:
    """Net total per day: income adds, expenses subtract, transfers are ignored."""
    totals = {}
    for label, transactions in grouped.items():
        total = ZERO
        for t in transactions:
            if t.type == "income":
                total += t.amount
            elif t.type == "expense":
                total -= t.amount
        totals[label] = DailyTotal(total=total, count=len(transactions))
    return totals


def filter_by_month(transactions: Iterable[Transaction], year: int, month: int) -> list[Transaction]:
    return [
        t for t in transactions if t.date is not None and t.date.year == year and t.date.month == month
    ]


def get_month_label(year: int, month: int) -> str:
    return f"{MONTH_NAMES[month - 1]} {year}"


def get_previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def get_next_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def _item_id(item: Any) -> Any:
    return item["id"] if isinstance(item, dict) else item.id


def _has_id(item: Any) -> bool:
    if isinstance(item, dict):
        return "id" in item
    return hasattr(item, "id")


def _with_changes(item: T, changes: dict[str, Any]) -> T:
    if isinstance(item, dict):
        return {**item, **changes}
    if is_dataclass(item):
        return replace(item, **changes)
    raise TypeError(f"Cannot apply changes to {type(item).__name__}")


class OptimisticList(Generic[T]):
    """Local list state that applies mutations before the server confirms them.

    Every mutation snapshots the list, applies the change and returns a
    token. ``commit`` settles the change with the server's version of the
    item, ``rollback`` restores the snapshot. Items are dataclasses or dicts
    with an ``id``.
    """

    def __init__(self, items: Iterable[T] = ()):
        self._items: list[T] = list(items)
        self._snapshots: dict[int, list[T]] = {}
        self._pending: dict[int, tuple[str, Any]] = {}
        self._tokens = itertools.count(1)
        self._temp_ids = itertools.count(-1, -1)

    @property
    def items(self) -> list[T]:
        return list(self._items)

    @property
    def pending(self) -> int:
        return len(self._snapshots)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def _begin(self, kind: str, item_id: Any) -> int:
        token = next(self._tokens)
        self._snapshots[token] = list(self._items)
        self._pending[token] = (kind, item_id)
        return token

    def _index(self, item_id: Any) -> int:
        for index, item in enumerate(self._items):
            if _item_id(item) == item_id:
                return index
        raise KeyError(item_id)

    def temporary_id(self) -> int:
        """Negative id for items not yet saved."""
        return next(self._temp_ids)

    def add(self, item: T) -> int:
        """Insert an item at the top of the list."""
        token = self._begin("add", _item_id(item))
        self._items.insert(0, item)
        return token

    def update(self, item_id: Any, **changes: Any) -> int:
        index = self._index(item_id)
        token = self._begin("update", item_id)
        self._items[index] = _with_changes(self._items[index], changes)
        return token

    def remove(self, item_id: Any) -> int:
        index = self._index(item_id)
        token = self._begin("remove", item_id)
        del self._items[index]
        return token

    def commit(self, token: int, server_item: Optional[T] = None) -> None:
        """Confirm a mutation, replacing the optimistic item with ``server_item``."""
        self._snapshots.pop(token)
        kind, item_id = self._pending.pop(token)
        if server_item is None or kind == "remove":
            return
        try:
            self._items[self._index(item_id)] = server_item
        except KeyError:
            self._items.insert(0, server_item)

    def rollback(self, token: int) -> None:
        """Undo a mutation by restoring the list as it was before it."""
        self._pending.pop(token)
        self._items = self._snapshots.pop(token)
        # Later pending snapshots were taken on top of the undone change
        for later in [t for t in self._snapshots if t > token]:
            self._snapshots.pop(later)
            self._pending.pop(later)

    def settle(self, token: int, result: ActionResult[T]) -> ActionResult[T]:
        """Commit or roll back according to an action result."""
        if result.ok:
            self.commit(token, result.data if _has_id(result.data) else None)
        else:
            logger.debug("Rolling back optimistic change %s: %s", token, result.error)
            self.rollback(token)
        return result

    def apply(self, token: int, mutation: Callable[[], ActionResult[T]]) -> ActionResult[T]:
        """Run ``mutation`` for an already applied optimistic change and settle it."""
        return self.settle(token, mutation())
