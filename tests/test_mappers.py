"""Tests for database mappers."""

from datetime import datetime, date, UTC
from decimal import Decimal

from pocketplan.database.models import (
    Expense as ORMExpense,
    NotificationRecipient as ORMNotificationRecipient,
    SubExpense as ORMSubExpense,
    Subscription as ORMSubscription,
    Wallet as ORMWallet,
    WalletLimit as ORMWalletLimit,
)
from pocketplan.database.mappers import (
    expense_to_domain,
    limit_to_domain,
    recipient_to_domain,
    subscription_to_domain,
    wallet_to_domain,
)
from pocketplan.domain.entities import (
    BillingCycle,
    Expense,
    ExpenseType,
    LimitRange,
    SubExpense,
    Wallet,
)


def _orm_expense(**overrides):
    values = dict(
        id=7,
        wallet_id=1,
        amount=Decimal("42.00"),
        type="expense",
        description="Groceries",
        category="food",
        date=datetime(2025, 3, 12, 10, 0),
        schedule=False,
        balance_before_interaction=Decimal("1000.00"),
        subscription_id=None,
        note=None,
        shop="Lidl",
        tags=["weekly"],
        spontaneous_rate=Decimal("0.25"),
        location_id=None,
        created_at=datetime.now(UTC),
    )
    values.update(overrides)
    return ORMExpense(**values)


def test_wallet_to_domain():
    """Test converting ORM Wallet to domain Wallet."""
    orm_wallet = ORMWallet(
        id=1,
        user_id="alice",
        balance=Decimal("1000.00"),
        income=None,
        monthly_percentage_target=50,
        paycheck_date="end",
        created_at=datetime.now(UTC),
    )
    wallet = wallet_to_domain(orm_wallet)

    assert isinstance(wallet, Wallet)
    assert wallet.balance == Decimal("1000")
    assert wallet.income == Decimal("0")
    assert wallet.monthly_percentage_target == Decimal("50")
    assert wallet.paycheck_date == "end"


class TestExpenseMapper:
    """Tests for Expense mapper."""

    def test_expense_to_domain(self):
        expense = expense_to_domain(_orm_expense())

        assert isinstance(expense, Expense)
        assert expense.type == ExpenseType.EXPENSE
        assert expense.tags == ("weekly",)
        assert expense.spontaneous_rate == Decimal("0.25")
        assert expense.subexpenses == ()

    def test_subexpenses_only_on_request(self):
        orm_expense = _orm_expense(
            subexpenses=[ORMSubExpense(id=3, expense_id=7, description="Bread", amount=Decimal("4.50"))]
        )

        assert expense_to_domain(orm_expense).subexpenses == ()
        detailed = expense_to_domain(orm_expense, with_subexpenses=True)
        assert detailed.subexpenses == (
            SubExpense(id=3, expense_id=7, description="Bread", amount=Decimal("4.50"), category=None),
        )

    def test_empty_optional_fields(self):
        expense = expense_to_domain(_orm_expense(description=None, category=None, tags=None))
        assert expense.description == ""
        assert expense.category == ""
        assert expense.tags == ()


def test_subscription_to_domain():
    orm_subscription = ORMSubscription(
        id=2,
        wallet_id=1,
        amount=Decimal("49.99"),
        description="Netflix",
        billing_cycle="monthly",
        date_start=date(2025, 1, 5),
        date_end=None,
        is_active=True,
        next_billing_date=date(2025, 4, 5),
        created_at=datetime.now(UTC),
    )
    subscription = subscription_to_domain(orm_subscription)

    assert subscription.billing_cycle == BillingCycle.MONTHLY
    assert subscription.is_active is True
    assert subscription.next_billing_date == date(2025, 4, 5)


def test_limit_to_domain():
    orm_limit = ORMWalletLimit(
        id=4,
        wallet_id=1,
        category="food",
        amount=Decimal("800.00"),
        range="weekly",
        is_auto_generated=False,
        created_at=datetime.now(UTC),
    )
    limit = limit_to_domain(orm_limit)
    assert limit.range == LimitRange.WEEKLY
    assert limit.amount == Decimal("800")


def test_recipient_to_domain():
    orm_recipient = ORMNotificationRecipient(
        id=1, user_id="alice", token="t", is_enabled=True, enabled_notifications=None
    )
    recipient = recipient_to_domain(orm_recipient)
    assert recipient.enabled_notifications == {}
