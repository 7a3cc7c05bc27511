"""Tests for group reports."""

from datetime import date
from decimal import Decimal

import pytest

from famledger.domain.errors import NotFoundError, ValidationError
from famledger.domain.reports import DEFAULT_STAT_COLOR, ReportsService, normalize_account_type


@pytest.fixture
def reports(temp_db):
    return ReportsService(temp_db)


@pytest.fixture
def january(add_transaction, family, accounts, categories):
    """Anna's salary month plus one shared expense paid by Marco."""
    add_transaction(2000, type="income", category="stipendio", day=date(2025, 1, 1), account=accounts["payroll"])
    add_transaction(300, category="spesa", day=date(2025, 1, 10), account=accounts["payroll"])
    add_transaction(
        500,
        type="transfer",
        category="risparmio",
        day=date(2025, 1, 15),
        account=accounts["payroll"],
        to_account=accounts["savings"],
    )
    add_transaction(100, category="casa", day=date(2025, 1, 12), account=accounts["shared"], user=family["marco"])
    add_transaction(50, category="svago", day=date(2025, 2, 3), account=accounts["shared"])


def test_normalize_account_type():
    assert normalize_account_type(None) == "other"
    assert normalize_account_type("Investment") == "investments"
    assert normalize_account_type("Savings") == "savings"


def test_overview_for_group(reports, family, january):
    overview = reports.get_overview(family["group"].id, start=date(2025, 1, 1), end=date(2025, 1, 31))

    assert overview.transaction_count == 4
    assert overview.metrics.total_earned == Decimal("2000")
    assert overview.metrics.total_spent == Decimal("400")
    assert overview.metrics.total_balance == Decimal("1600")

    types = {s.type: s for s in overview.account_types}
    assert types["payroll"].total_earned == Decimal("2000")
    assert types["payroll"].total_spent == Decimal("800")
    assert types["payroll"].total_balance == Decimal("1200")
    assert types["savings"].total_earned == Decimal("500")
    assert types["checking"].total_spent == Decimal("100")
    # Balances always reflect every transaction, not just the range
    assert types["checking"].total_balance == Decimal("-150")

    stats = overview.category_stats
    assert [(s.name, s.total) for s in stats["income"]] == [("Stipendio", Decimal("2000"))]
    assert [(s.name, s.total) for s in stats["expense"]] == [
        ("Spesa", Decimal("300")),
        ("Casa", Decimal("100")),
    ]
    assert stats["expense"][0].color == "#22C55E"


def test_overview_for_one_user(reports, family, january):
    overview = reports.get_overview(
        family["group"].id, user_id=family["marco"].id, start=date(2025, 1, 1), end=date(2025, 1, 31)
    )
    assert overview.transaction_count == 1
    assert overview.metrics.total_spent == Decimal("100")
    assert [s.type for s in overview.account_types] == ["checking"]


def test_overview_rejects_inverted_range(reports, family):
    with pytest.raises(ValidationError):
        reports.get_overview(family["group"].id, start=date(2025, 2, 1), end=date(2025, 1, 1))


def test_overview_unknown_group(reports):
    with pytest.raises(NotFoundError):
        reports.get_overview(999)


def test_category_stats_fall_back_for_unknown_keys(reports, family, accounts, add_transaction, january):
    add_transaction(20, category="regali", day=date(2025, 2, 5), account=accounts["shared"])

    stats = reports.get_category_stats(family["group"].id)

    expense = [(s.name, s.total) for s in stats["expense"]]
    assert expense == [
        ("Spesa", Decimal("300")),
        ("Casa", Decimal("100")),
        ("Svago", Decimal("50")),
        ("regali", Decimal("20")),
    ]
    assert stats["expense"][-1].id == "regali"
    assert stats["expense"][-1].color == DEFAULT_STAT_COLOR


def test_period_summaries_roll_balances_back(reports, period_service, family, january):
    anna = family["anna"]
    period_service.create_period(anna.id, date(2025, 1, 1))
    period_service.create_period(anna.id, date(2025, 2, 1))

    current, previous = reports.get_period_summaries(
        family["group"].id, user_id=anna.id, today=date(2025, 2, 10)
    )

    assert current.name == "01/02/2025 - Present"
    assert current.end_date == date(2025, 2, 10)
    assert current.total_spent == Decimal("50")
    checking = current.metrics_by_account_type["checking"]
    assert checking.end_balance == Decimal("-150")
    assert checking.start_balance == Decimal("-100")

    assert previous.name == "01/01/2025 - 31/01/2025"
    assert previous.total_earned == Decimal("2000")
    assert previous.total_spent == Decimal("300")
    payroll = previous.metrics_by_account_type["payroll"]
    assert payroll.earned == Decimal("2000")
    assert payroll.spent == Decimal("800")
    assert payroll.end_balance == Decimal("1200")
    assert payroll.start_balance == Decimal("0")


def test_enriched_periods_use_payroll_accounts(reports, period_service, family, january):
    anna = family["anna"]
    period_service.create_period(anna.id, date(2025, 1, 1))
    period_service.create_period(anna.id, date(2025, 2, 1))

    first, second = reports.get_enriched_periods(family["group"].id, today=date(2025, 2, 10))

    assert first.user_name == "Anna"
    assert first.period_total_income == Decimal("2000")
    assert first.period_total_spent == Decimal("800")
    assert first.period_total_transfers == Decimal("500")
    assert first.start_balance == Decimal("0")
    assert first.end_balance == Decimal("1200")
    assert first.transactions[0].amount == Decimal("2000")

    assert second.period_total_spent == Decimal("0")
    assert second.start_balance == Decimal("1200")
    assert second.end_balance == Decimal("1200")
