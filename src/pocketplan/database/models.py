"""SQLAlchemy models for the pocketplan database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    Float,
    JSON,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Wallet(Base):
    """Per-user wallet model."""

    __tablename__ = "wallet"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, unique=True, nullable=False)
    balance = Column(Numeric(12, 2), default=0, nullable=False)
    income = Column(Numeric(12, 2), default=0, nullable=False)
    monthly_percentage_target = Column(Numeric(5, 2), default=0, nullable=False)
    paycheck_date = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    expenses = relationship("Expense", back_populates="wallet")
    subscriptions = relationship("Subscription", back_populates="wallet")
    limits = relationship("WalletLimit", back_populates="wallet", cascade="all, delete-orphan")


class ExpenseLocation(Base):
    """Location an expense can point at."""

    __tablename__ = "expense_locations"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    kind = Column(String, nullable=True)
    longitude = Column(Float, nullable=True)
    latitude = Column(Float, nullable=True)


class Expense(Base):
    """Ledger entry model."""

    __tablename__ = "expense"

    id = Column(Integer, primary_key=True)
    wallet_id = Column(Integer, ForeignKey("wallet.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    category = Column(String, nullable=False, default="")
    date = Column(DateTime, nullable=False, index=True)
    schedule = Column(Boolean, default=False, nullable=False)
    balance_before_interaction = Column(Numeric(12, 2), default=0, nullable=False)
    subscription_id = Column(
        Integer, ForeignKey("subscriptions.id", ondelete="SET NULL"), nullable=True
    )
    note = Column(String, nullable=True)
    shop = Column(String, nullable=True)
    tags = Column(JSON, nullable=True)
    spontaneous_rate = Column(Numeric(3, 2), default=0, nullable=False)
    location_id = Column(Integer, ForeignKey("expense_locations.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    wallet = relationship("Wallet", back_populates="expenses")
    subscription = relationship("Subscription", back_populates="expenses")
    location = relationship("ExpenseLocation")
    subexpenses = relationship(
        "SubExpense",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="SubExpense.id",
    )


class SubExpense(Base):
    """Line item of an expense."""

    __tablename__ = "expense_subexpenses"

    id = Column(Integer, primary_key=True)
    expense_id = Column(Integer, ForeignKey("expense.id", ondelete="CASCADE"), nullable=False)
    description = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String, nullable=True)

    # Relationships
    expense = relationship("Expense", back_populates="subexpenses")


class Subscription(Base):
    """Recurring charge model."""

    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True)
    wallet_id = Column(Integer, ForeignKey("wallet.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String, nullable=False)
    billing_cycle = Column(String, nullable=False)
    date_start = Column(Date, nullable=False)
    date_end = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    next_billing_date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    wallet = relationship("Wallet", back_populates="subscriptions")
    expenses = relationship("Expense", back_populates="subscription", passive_deletes=True)


class WalletLimit(Base):
    """Spending limit model."""

    __tablename__ = "wallet_limits"

    id = Column(Integer, primary_key=True)
    wallet_id = Column(Integer, ForeignKey("wallet.id"), nullable=False)
    category = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    range = Column(String, nullable=False)
    is_auto_generated = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    wallet = relationship("Wallet", back_populates="limits")


class NotificationRecipient(Base):
    """Push token and notification preferences of a user."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, unique=True, nullable=False)
    token = Column(String, nullable=True)
    is_enabled = Column(Boolean, default=True, nullable=False)
    enabled_notifications = Column(JSON, nullable=True)


class NotificationHistory(Base):
    """Dispatched notification log."""

    __tablename__ = "notifications_history"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    body = Column(String, nullable=False)
    data = Column(JSON, nullable=True)
    sent_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


def create_database_engine(database_url: str) -> Engine:
    """Create an engine for ``database_url`` and make sure the schema exists.

    SQLite connections start every transaction with ``BEGIN IMMEDIATE`` so
    concurrent writers queue on the database lock instead of failing when a
    read transaction tries to upgrade to a write.
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            # pysqlite's own transaction handling would defer BEGIN
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    else:
        engine = create_engine(database_url, echo=False)

    Base.metadata.create_all(engine)
    return engine
