"""SQLAlchemy models for famledger database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Group(Base):
    """Family group model."""

    __tablename__ = "groups"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    # Member ids, kept in sync with users.group_id
    user_ids = Column(JSON, nullable=False, default=list)
    plan = Column(JSON, nullable=False, default=lambda: {"type": "free", "name": "Free Plan"})
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class User(Base):
    """User model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True)
    role = Column(String, default="member", nullable=False)
    default_account_id = Column(Integer, nullable=True)
    budget_start_date = Column(Integer, nullable=True)
    # Legacy storage: list of period dicts, superseded by the budget_periods table
    budget_periods = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    periods = relationship("BudgetPeriod", back_populates="user", cascade="all, delete-orphan")


class Account(Base):
    """Account model. Balances are derived from transactions, never stored."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    user_ids = Column(JSON, nullable=False, default=list)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class Category(Base):
    """Category model, keyed per group."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    key = Column(String, nullable=False)
    label = Column(String, nullable=False)
    color = Column(String, nullable=False)
    icon = Column(String, nullable=False)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("group_id", "key", name="uq_group_category_key"),)


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    description = Column(String, nullable=False)
    type = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    to_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True)
    recurring_series_id = Column(Integer, ForeignKey("recurring_series.id"), nullable=True)
    frequency = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class Budget(Base):
    """Budget model."""

    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True)
    description = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String, nullable=False)
    icon = Column(String, nullable=True)
    categories = Column(JSON, nullable=False, default=list)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True)
    cached_balance = Column(Numeric(12, 2), nullable=True)
    balance_updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class BudgetPeriod(Base):
    """Budget period model."""

    __tablename__ = "budget_periods"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=False, nullable=False)
    total_spent = Column(Numeric(12, 2), nullable=True)
    total_saved = Column(Numeric(12, 2), nullable=True)
    # Category key -> amount, stored as strings to keep Decimal precision
    category_spending = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    user = relationship("User", back_populates="periods")


class RecurringSeries(Base):
    """Recurring transaction series model."""

    __tablename__ = "recurring_series"

    id = Column(Integer, primary_key=True)
    description = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String, nullable=False)
    category = Column(String, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    user_ids = Column(JSON, nullable=False, default=list)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True)
    frequency = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    due_day = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    total_executions = Column(Integer, default=0, nullable=False)
    transaction_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
