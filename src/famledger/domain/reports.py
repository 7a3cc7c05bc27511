"""Report calculations: account types, period summaries and category statistics."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from famledger.database.base import Database
from famledger.domain import finance_logic
from famledger.domain.entities import (
    Account,
    BudgetPeriod,
    Category,
    CategoryBreakdownItem,
    OverviewMetrics,
    Transaction,
    TransactionFilter,
    User,
)
from famledger.domain.errors import NotFoundError, ValidationError, group_not_found

logger = logging.getLogger(__name__)

ZERO = finance_logic.ZERO
DEFAULT_STAT_COLOR = "#cbd5e1"
PAYROLL = "payroll"


@dataclass
class AccountTypeSummary:
    type: str
    total_earned: Decimal = ZERO
    total_spent: Decimal = ZERO
    total_balance: Decimal = ZERO


@dataclass
class AccountTypeMetrics:
    earned: Decimal = ZERO
    spent: Decimal = ZERO
    start_balance: Decimal = ZERO
    end_balance: Decimal = ZERO


@dataclass
class PeriodSummary:
    """Flows and per-account-type balances of one budget period."""

    id: int
    name: str
    user_id: int
    start_date: date
    end_date: date
    total_earned: Decimal
    total_spent: Decimal
    metrics_by_account_type: dict[str, AccountTypeMetrics]


@dataclass
class CategoryStat:
    id: str
    name: str
    type: str
    total: Decimal
    color: str


@dataclass
class EnrichedPeriod:
    """Budget period with payroll-account totals and sequential balances."""

    period: BudgetPeriod
    user_name: str
    transactions: list[Transaction]
    period_total_spent: Decimal
    period_total_income: Decimal
    period_total_transfers: Decimal
    start_balance: Optional[Decimal] = None
    end_balance: Optional[Decimal] = None


@dataclass
class ReportOverview:
    metrics: OverviewMetrics
    account_types: list[AccountTypeSummary]
    categories: list[CategoryBreakdownItem]
    category_stats: dict[str, list[CategoryStat]] = field(default_factory=dict)
    transaction_count: int = 0


def normalize_account_type(account_type: Optional[str]) -> str:
    if not account_type:
        return "other"
    lower = account_type.lower()
    if lower in ("investment", "investments"):
        return "investments"
    return lower


def format_date_short(day: date) -> str:
    return day.strftime("%d/%m/%Y")


def calculate_account_type_summary(
    transactions: Iterable[Transaction],
    accounts: Sequence[Account],
    balances: dict[int, Decimal],
) -> list[AccountTypeSummary]:
    """Earned, spent and balance per account type.

    A transfer between accounts of different types is spent for the source
    type and earned for the destination type. Transfers within one type
    cancel out and are ignored.
    """
    accounts_by_id = {a.id: a for a in accounts}
    summaries: dict[str, AccountTypeSummary] = {}

    def summary_for(account_type: str) -> AccountTypeSummary:
        if account_type not in summaries:
            summaries[account_type] = AccountTypeSummary(type=account_type)
        return summaries[account_type]

    for account in accounts:
        summary_for(normalize_account_type(account.type)).total_balance += balances.get(
            account.id, ZERO
        )

    for t in transactions:
        account = accounts_by_id.get(t.account_id)
        if account is None:
            continue
        source_type = normalize_account_type(account.type)
        summary = summary_for(source_type)

        if t.type == "income":
            summary.total_earned += t.amount
        elif t.type == "expense":
            summary.total_spent += t.amount
        elif t.type == "transfer" and t.to_account_id is not None:
            destination = accounts_by_id.get(t.to_account_id)
            destination_type = normalize_account_type(destination.type) if destination else None
            if destination_type == source_type:
                continue
            summary.total_spent += t.amount
            if destination_type is not None:
                summary_for(destination_type).total_earned += t.amount

    return list(summaries.values())


def calculate_period_summaries(
    periods: Iterable[BudgetPeriod],
    transactions: Sequence[Transaction],
    accounts: Sequence[Account],
    balances: dict[int, Decimal],
    today: Optional[date] = None,
) -> list[PeriodSummary]:
    """Summaries of budget periods, newest first.

    Balances per user and account type start from the current balances and
    are rolled back one period at a time: a period's start balance is its
    end balance minus its net flow, and becomes the end balance of the
    previous period. Shared accounts count fully for each owner.
    """
    today = today or date.today()
    accounts_by_id = {a.id: a for a in accounts}

    running: dict[int, dict[str, Decimal]] = defaultdict(lambda: defaultdict(lambda: ZERO))
    for account in accounts:
        account_type = normalize_account_type(account.type)
        for user_id in account.user_ids:
            running[user_id][account_type] += balances.get(account.id, ZERO)

    summaries = []
    for period in sorted(periods, key=lambda p: p.start_date, reverse=True):
        end = period.end_date or today
        period_transactions = [
            t
            for t in finance_logic.filter_transactions_by_period(transactions, period.start_date, end)
            if t.user_id == period.user_id
        ]

        metrics: dict[str, AccountTypeMetrics] = defaultdict(AccountTypeMetrics)
        for t in period_transactions:
            account = accounts_by_id.get(t.account_id)
            if account is None:
                continue
            source_type = normalize_account_type(account.type)
            if t.type == "income":
                metrics[source_type].earned += t.amount
            elif t.type == "expense":
                metrics[source_type].spent += t.amount
            elif t.type == "transfer" and t.to_account_id is not None:
                destination = accounts_by_id.get(t.to_account_id)
                destination_type = normalize_account_type(destination.type) if destination else None
                if destination_type == source_type:
                    continue
                metrics[source_type].spent += t.amount
                if destination_type is not None:
                    metrics[destination_type].earned += t.amount

        user_balances = running[period.user_id]
        for account_type in set(metrics) | set(user_balances):
            entry = metrics[account_type]
            entry.end_balance = user_balances[account_type]
            entry.start_balance = entry.end_balance - (entry.earned - entry.spent)
            user_balances[account_type] = entry.start_balance

        end_label = format_date_short(period.end_date) if period.end_date else "Present"
        summaries.append(
            PeriodSummary(
                id=period.id,
                name=f"{format_date_short(period.start_date)} - {end_label}",
                user_id=period.user_id,
                start_date=period.start_date,
                end_date=end,
                total_earned=sum(
                    (t.amount for t in period_transactions if t.type == "income"), ZERO
                ),
                total_spent=sum(
                    (t.amount for t in period_transactions if t.type == "expense"), ZERO
                ),
                metrics_by_account_type=dict(metrics),
            )
        )
    return summaries


def calculate_category_stats(
    transactions: Iterable[Transaction], categories: Sequence[Category]
) -> dict[str, list[CategoryStat]]:
    """Income and expense totals per category, each sorted largest first."""
    by_key = {c.key.lower(): c for c in categories}
    stats: dict[tuple[str, str], CategoryStat] = {}

    for t in transactions:
        if t.type == "transfer":
            continue
        category = by_key.get(t.category.lower())
        stat_id = str(category.id) if category else t.category
        stat = stats.get((stat_id, t.type))
        if stat is None:
            stat = stats[(stat_id, t.type)] = CategoryStat(
                id=stat_id,
                name=category.label if category else t.category,
                type=t.type,
                total=ZERO,
                color=category.color if category and category.color else DEFAULT_STAT_COLOR,
            )
        stat.total += t.amount

    ordered = sorted(stats.values(), key=lambda s: s.total, reverse=True)
    return {
        "income": [s for s in ordered if s.type == "income"],
        "expense": [s for s in ordered if s.type == "expense"],
    }


def enrich_budget_periods(
    periods: Iterable[BudgetPeriod],
    users: Iterable[User],
    transactions: Sequence[Transaction],
    accounts: Sequence[Account],
    balances: dict[int, Decimal],
    today: Optional[date] = None,
) -> list[EnrichedPeriod]:
    """Attach payroll-account totals and balances to each period.

    Only payroll accounts are considered. For each user the balance at the
    start of their first period is reconstructed from the current balance,
    then carried forward period by period (end = start + income - spent).
    Users without payroll accounts get no balances.
    """
    names = {u.id: u.name for u in users}
    payroll_by_user: dict[int, set[int]] = defaultdict(set)
    for account in accounts:
        if account.type != PAYROLL:
            continue
        for user_id in account.user_ids:
            payroll_by_user[user_id].add(account.id)

    by_user: dict[int, list[EnrichedPeriod]] = defaultdict(list)
    for period in periods:
        user_transactions = [
            t
            for t in finance_logic.filter_transactions_by_period(
                transactions, period.start_date, period.end_date, today=today
            )
            if t.user_id == period.user_id
        ]
        payroll = payroll_by_user.get(period.user_id, set())
        by_user[period.user_id].append(
            EnrichedPeriod(
                period=period,
                user_name=names.get(period.user_id, "Unknown User"),
                transactions=sorted(user_transactions, key=lambda t: t.amount, reverse=True),
                period_total_spent=finance_logic.calculate_period_total_spent(user_transactions, payroll)
                if payroll
                else ZERO,
                period_total_income=finance_logic.calculate_period_total_income(user_transactions, payroll)
                if payroll
                else ZERO,
                period_total_transfers=finance_logic.calculate_period_total_transfers(
                    user_transactions, payroll
                )
                if payroll
                else ZERO,
            )
        )

    enriched = []
    for user_id, user_periods in by_user.items():
        user_periods.sort(key=lambda e: e.period.start_date)
        payroll = payroll_by_user.get(user_id)
        if payroll:
            current = finance_logic.calculate_aggregated_balance(
                balances.get(account_id, ZERO) for account_id in payroll
            )
            running = finance_logic.calculate_historical_balance(
                transactions, payroll, current, user_periods[0].period.start_date
            )
            for entry in user_periods:
                entry.start_balance = running
                entry.end_balance = running + entry.period_total_income - entry.period_total_spent
                running = entry.end_balance
        enriched.extend(user_periods)
    return enriched


class ReportsService:
    """Loads group data and runs the report calculations over it."""

    def __init__(self, db: Database):
        """Initialize reports service.

        Args:
            db: Database instance
        """
        self.db = db

    def _load(self, group_id: int) -> tuple[list[Account], list[Transaction], dict[int, Decimal]]:
        if self.db.get_group(group_id) is None:
            raise NotFoundError(group_not_found(group_id))
        accounts = self.db.list_accounts(group_id=group_id)
        transactions = self.db.list_transactions(TransactionFilter(group_id=group_id))
        balances = {
            a.id: finance_logic.calculate_account_balance(a.id, transactions) for a in accounts
        }
        return accounts, transactions, balances

    def _periods(self, group_id: int, user_id: Optional[int]) -> list[BudgetPeriod]:
        users = self.db.list_users(group_id=group_id)
        if user_id is not None:
            users = [u for u in users if u.id == user_id]
        return [p for u in users for p in self.db.list_periods(u.id)]

    def get_overview(
        self,
        group_id: int,
        user_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        today: Optional[date] = None,
    ) -> ReportOverview:
        """Overview metrics, account types and categories for a group.

        With ``user_id`` only that user's transactions and accounts count.
        ``start`` and ``end`` bound the transactions (both inclusive).
        """
        if start is not None and end is not None and start > end:
            raise ValidationError("Start date must be on or before end date")
        accounts, transactions, balances = self._load(group_id)

        if start is not None:
            transactions = finance_logic.filter_transactions_by_period(
                transactions, start, end, today=today
            )
        elif end is not None:
            transactions = [t for t in transactions if t.date <= end]
        if user_id is not None:
            transactions = [t for t in transactions if t.user_id == user_id]
            accounts = [a for a in accounts if user_id in a.user_ids]

        categories = self.db.list_categories(group_id=group_id)
        logger.debug(
            "Building report overview for group %s over %d transactions", group_id, len(transactions)
        )
        return ReportOverview(
            metrics=finance_logic.calculate_overview_metrics(
                transactions, [a.id for a in accounts], user_id=user_id
            ),
            account_types=calculate_account_type_summary(transactions, accounts, balances),
            categories=finance_logic.calculate_category_breakdown(transactions),
            category_stats=calculate_category_stats(transactions, categories),
            transaction_count=len(transactions),
        )

    def get_category_stats(
        self, group_id: int, start: Optional[date] = None, end: Optional[date] = None
    ) -> dict[str, list[CategoryStat]]:
        _, transactions, _ = self._load(group_id)
        if start is not None:
            transactions = finance_logic.filter_transactions_by_period(transactions, start, end)
        return calculate_category_stats(transactions, self.db.list_categories(group_id=group_id))

    def get_period_summaries(
        self, group_id: int, user_id: Optional[int] = None, today: Optional[date] = None
    ) -> list[PeriodSummary]:
        accounts, transactions, balances = self._load(group_id)
        return calculate_period_summaries(
            self._periods(group_id, user_id), transactions, accounts, balances, today=today
        )

    def get_enriched_periods(
        self, group_id: int, user_id: Optional[int] = None, today: Optional[date] = None
    ) -> list[EnrichedPeriod]:
        accounts, transactions, balances = self._load(group_id)
        return enrich_budget_periods(
            self._periods(group_id, user_id),
            self.db.list_users(group_id=group_id),
            transactions,
            accounts,
            balances,
            today=today,
        )
