"""Tests for Database interface returning domain models."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from pocketplan.domain import entities


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_get_wallet_returns_domain_model(self, temp_db):
        """Test that get_wallet returns a domain Wallet entity."""
        wallet_id = temp_db.create_wallet("alice")

        wallet = temp_db.get_wallet(wallet_id)

        assert isinstance(wallet, entities.Wallet)
        assert wallet.user_id == "alice"
        assert wallet.balance == Decimal("0")
        assert isinstance(wallet.created_at, datetime)
        assert temp_db.get_wallet_by_user("alice") == wallet
        assert temp_db.get_wallet_by_user("bob") is None

    def test_apply_balance_delta(self, temp_db):
        wallet_id = temp_db.create_wallet("alice")

        assert temp_db.apply_balance_delta(wallet_id, Decimal("100.50")) == Decimal("100.50")
        assert temp_db.apply_balance_delta(wallet_id, Decimal("-0.50")) == Decimal("100.00")
        assert temp_db.get_wallet(wallet_id).balance == Decimal("100")

    def test_apply_balance_delta_unknown_wallet(self, temp_db):
        with pytest.raises(ValueError):
            temp_db.apply_balance_delta(999, Decimal("1"))

    def test_expense_round_trip(self, temp_db):
        """Test that get_expense returns a domain Expense entity."""
        wallet_id = temp_db.create_wallet("alice")
        expense_id = temp_db.create_expense(
            wallet_id=wallet_id,
            amount=Decimal("12.34"),
            type=entities.ExpenseType.EXPENSE,
            description="Coffee",
            category="food:coffee",
            date=datetime(2025, 3, 12, 8, 0),
            schedule=True,
            balance_before_interaction=Decimal("0"),
            tags=["morning"],
        )
        temp_db.add_subexpense(expense_id, "Croissant", Decimal("4.00"))

        expense = temp_db.get_expense(expense_id)
        assert isinstance(expense, entities.Expense)
        assert expense.type == entities.ExpenseType.EXPENSE
        assert expense.tags == ("morning",)
        assert [s.description for s in expense.subexpenses] == ["Croissant"]

        assert [e.id for e in temp_db.due_scheduled_expenses(datetime(2025, 3, 13))] == [expense_id]
        assert temp_db.due_scheduled_expenses(datetime(2025, 3, 12)) == []

    def test_mark_realized_only_once(self, temp_db):
        wallet_id = temp_db.create_wallet("alice")
        expense_id = temp_db.create_expense(
            wallet_id=wallet_id,
            amount=Decimal("10"),
            type=entities.ExpenseType.EXPENSE,
            description="Rent",
            category="home",
            date=datetime(2025, 3, 1),
            schedule=True,
            balance_before_interaction=Decimal("0"),
        )

        assert temp_db.mark_realized(expense_id) is True
        assert temp_db.mark_realized(expense_id) is False
        assert temp_db.get_expense(expense_id).schedule is False

    def test_claim_billing_cycle_only_once(self, temp_db):
        wallet_id = temp_db.create_wallet("alice")
        subscription_id = temp_db.create_subscription(
            wallet_id=wallet_id,
            amount=Decimal("49.99"),
            description="Netflix",
            billing_cycle=entities.BillingCycle.MONTHLY,
            date_start=date(2025, 2, 12),
            next_billing_date=date(2025, 3, 12),
        )

        assert [s.id for s in temp_db.due_subscriptions(date(2025, 3, 12))] == [subscription_id]
        assert temp_db.claim_billing_cycle(subscription_id, date(2025, 3, 12), date(2025, 4, 12))
        assert not temp_db.claim_billing_cycle(subscription_id, date(2025, 3, 12), date(2025, 4, 12))

        subscription = temp_db.get_subscription(subscription_id)
        assert isinstance(subscription, entities.Subscription)
        assert subscription.next_billing_date == date(2025, 4, 12)
        assert temp_db.due_subscriptions(date(2025, 3, 12)) == []

    def test_atomic_rolls_back(self, temp_db):
        with pytest.raises(RuntimeError):
            with temp_db.atomic():
                temp_db.create_wallet("alice")
                raise RuntimeError("abort")

        assert temp_db.get_wallet_by_user("alice") is None

    def test_nested_atomic_joins_outer_unit(self, temp_db):
        with pytest.raises(RuntimeError):
            with temp_db.atomic():
                with temp_db.atomic():
                    temp_db.create_wallet("alice")
                raise RuntimeError("abort")

        assert temp_db.list_wallets() == []
