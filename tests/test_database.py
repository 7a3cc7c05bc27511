"""Tests for Database interface returning domain models."""

from datetime import date, datetime
from decimal import Decimal

from famledger.domain import entities
from famledger.domain.entities import TransactionFilter


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_get_user_returns_domain_model(self, temp_db):
        """Test that get_user returns a domain User entity."""
        user_id = temp_db.create_user(name="Anna", email="anna@example.com", role="admin")

        user = temp_db.get_user(user_id)

        assert isinstance(user, entities.User)
        assert user.name == "Anna"
        assert user.role == "admin"
        assert isinstance(user.created_at, datetime)

    def test_account_owners_round_trip_as_tuple(self, temp_db):
        """Test that the JSON owner list comes back as a tuple of ints."""
        anna = temp_db.create_user(name="Anna", email="anna@example.com")
        marco = temp_db.create_user(name="Marco", email="marco@example.com")
        account_id = temp_db.create_account(name="Conto", type="checking", user_ids=[anna, marco])

        account = temp_db.get_account(account_id)

        assert isinstance(account, entities.Account)
        assert account.user_ids == (anna, marco)

    def test_list_accounts_filters_by_owner(self, temp_db):
        anna = temp_db.create_user(name="Anna", email="anna@example.com")
        marco = temp_db.create_user(name="Marco", email="marco@example.com")
        temp_db.create_account(name="Zeta", type="checking", user_ids=[anna])
        temp_db.create_account(name="Alfa", type="savings", user_ids=[anna, marco])

        assert [a.name for a in temp_db.list_accounts()] == ["Alfa", "Zeta"]
        assert [a.name for a in temp_db.list_accounts(user_id=marco)] == ["Alfa"]

    def test_transaction_amounts_are_decimals(self, temp_db):
        """Test that amounts come back as Decimal, not float."""
        anna = temp_db.create_user(name="Anna", email="anna@example.com")
        account_id = temp_db.create_account(name="Conto", type="checking", user_ids=[anna])
        transaction_id = temp_db.create_transaction(
            description="Pane",
            type="expense",
            amount=Decimal("2.35"),
            category="spesa",
            date=date(2025, 1, 10),
            account_id=account_id,
            user_id=anna,
        )

        txn = temp_db.get_transaction(transaction_id)

        assert isinstance(txn, entities.Transaction)
        assert txn.amount == Decimal("2.35")
        assert isinstance(txn.amount, Decimal)
        assert txn.date == date(2025, 1, 10)

    def test_list_transactions_filters_and_pages(self, temp_db):
        anna = temp_db.create_user(name="Anna", email="anna@example.com")
        checking = temp_db.create_account(name="Conto", type="checking", user_ids=[anna])
        savings = temp_db.create_account(name="Risparmi", type="savings", user_ids=[anna])
        for day in (1, 2, 3):
            temp_db.create_transaction(
                description=f"Spesa {day}",
                type="expense",
                amount=Decimal("10"),
                category="spesa",
                date=date(2025, 1, day),
                account_id=checking,
            )
        temp_db.create_transaction(
            description="Risparmio",
            type="transfer",
            amount=Decimal("100"),
            category="risparmio",
            date=date(2025, 1, 4),
            account_id=checking,
            to_account_id=savings,
        )

        newest_first = temp_db.list_transactions()
        assert [t.date.day for t in newest_first] == [4, 3, 2, 1]

        # Either side of a transfer matches the account filter
        assert len(temp_db.list_transactions(TransactionFilter(account_id=savings))) == 1

        page = temp_db.list_transactions(TransactionFilter(type="expense", limit=2, offset=1))
        assert [t.date.day for t in page] == [2, 1]
        assert temp_db.count_transactions(TransactionFilter(type="expense", limit=2)) == 3

    def test_period_category_spending_maps_to_decimals(self, temp_db):
        anna = temp_db.create_user(name="Anna", email="anna@example.com")
        period_id = temp_db.create_period(user_id=anna, start_date=date(2025, 1, 1), is_active=True)

        temp_db.update_period(period_id, category_spending={"spesa": Decimal("12.50")})

        period = temp_db.get_period(period_id)
        assert isinstance(period, entities.BudgetPeriod)
        assert period.category_spending == {"spesa": Decimal("12.50")}
        assert period.end_date is None
