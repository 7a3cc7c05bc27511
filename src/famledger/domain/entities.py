"""Domain model entities for famledger.

These are pure data classes representing business concepts, independent of
the database schema. Services and the pure finance logic only ever see these
types, never ORM rows.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Optional

TRANSACTION_TYPES = ("income", "expense", "transfer")
BUDGET_TYPES = ("monthly", "annually")
FREQUENCIES = ("once", "weekly", "biweekly", "monthly", "yearly")
ROLES = ("superadmin", "admin", "member")

DEFAULT_PLAN = {"type": "free", "name": "Free Plan"}


@dataclass(frozen=True)
class Group:
    """Family group domain entity."""

    id: int
    name: str
    user_ids: tuple[int, ...]
    plan: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_PLAN))
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class User:
    """User domain entity."""

    id: int
    name: str
    email: str
    group_id: Optional[int] = None
    role: str = "member"
    default_account_id: Optional[int] = None
    budget_start_date: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Account:
    """Account domain entity.

    The balance is not part of the entity: it is always derived from the
    transactions touching the account.
    """

    id: int
    name: str
    type: str
    user_ids: tuple[int, ...]
    group_id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Category:
    """Category domain entity."""

    id: int
    key: str
    label: str
    color: str
    icon: str
    group_id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity."""

    id: int
    description: str
    type: str
    amount: Decimal
    category: str
    date: date
    account_id: int
    to_account_id: Optional[int] = None
    user_id: Optional[int] = None
    group_id: Optional[int] = None
    recurring_series_id: Optional[int] = None
    frequency: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Budget:
    """Budget domain entity."""

    id: int
    description: str
    amount: Decimal
    type: str
    categories: tuple[str, ...]
    user_id: int
    group_id: Optional[int] = None
    icon: Optional[str] = None
    cached_balance: Optional[Decimal] = None
    balance_updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class BudgetPeriod:
    """Budget period domain entity."""

    id: int
    user_id: int
    start_date: date
    end_date: Optional[date] = None
    is_active: bool = False
    total_spent: Optional[Decimal] = None
    total_saved: Optional[Decimal] = None
    category_spending: dict[str, Decimal] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class RecurringSeries:
    """Recurring transaction series domain entity."""

    id: int
    description: str
    amount: Decimal
    type: str
    category: str
    account_id: int
    user_ids: tuple[int, ...]
    frequency: str
    start_date: date
    due_day: int
    due_date: Optional[date] = None
    end_date: Optional[date] = None
    group_id: Optional[int] = None
    is_active: bool = True
    total_executions: int = 0
    transaction_ids: tuple[int, ...] = ()
    created_at: Optional[datetime] = None


# Derived values


@dataclass(frozen=True)
class OverviewMetrics:
    """Earned/spent/transferred totals over a set of transactions."""

    total_earned: Decimal
    total_spent: Decimal
    total_transferred: Decimal
    total_balance: Decimal


@dataclass(frozen=True)
class CategoryBreakdownItem:
    """NET spending for a single category."""

    category: str
    spent: Decimal
    received: Decimal
    net: Decimal
    percentage: float
    count: int


@dataclass(frozen=True)
class BudgetProgress:
    """Progress of a single budget over a period."""

    id: int
    description: str
    amount: Decimal
    spent: Decimal
    remaining: Decimal
    percentage: float
    categories: tuple[str, ...]
    transaction_count: int


@dataclass(frozen=True)
class UserBudgetSummary:
    """All budget progress for one user in their active period."""

    user: User
    budgets: tuple[BudgetProgress, ...]
    active_period: Optional[BudgetPeriod]
    period_start: Optional[date]
    period_end: Optional[date]
    total_budget: Decimal
    total_spent: Decimal
    total_remaining: Decimal
    overall_percentage: float


@dataclass(frozen=True)
class PeriodTotals:
    """Totals stored on a budget period when it is closed."""

    total_spent: Decimal
    total_saved: Decimal
    category_spending: dict[str, Decimal]


@dataclass(frozen=True)
class TransactionFilter:
    """Query options for listing transactions."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category: Optional[str] = None
    type: Optional[str] = None
    account_id: Optional[int] = None
    user_id: Optional[int] = None
    group_id: Optional[int] = None
    limit: Optional[int] = None
    offset: int = 0


@dataclass(frozen=True)
class TransactionPage:
    """One page of transactions plus paging information."""

    items: tuple[Transaction, ...]
    total: int
    has_more: bool
