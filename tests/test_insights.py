"""Tests for notification insights."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from pocketplan.domain.entities import ExpenseType
from pocketplan.domain.insights import INSIGHT_BUILDERS, InsightService, hour_label


def test_hour_label():
    assert hour_label(0) == "12AM"
    assert hour_label(7) == "7AM"
    assert hour_label(12) == "12PM"
    assert hour_label(19) == "7PM"


def test_every_builder_exists():
    for method in INSIGHT_BUILDERS.values():
        assert callable(getattr(InsightService, method))


@pytest.mark.parametrize("method", sorted(INSIGHT_BUILDERS.values()))
def test_missing_wallet_gives_nothing(insight_service, method):
    assert getattr(insight_service, method)("nobody") is None


class TestMoneyLeftToday:
    """Tests for the daily allowance message."""

    def test_weekday(self, wallet, insight_service):
        insight = insight_service.money_left_today("alice")

        assert insight.title == "Today's Budget"
        assert insight.body == (
            "You can spend 22.58zł today to stay on daily budget. "
            "Weekly: 158.06zł, Monthly: 700.00zł left."
        )
        assert insight.data == {"canSpendToday": "22.58", "constraint": "daily"}

    def test_weekend(self, wallet, insight_service):
        insight = insight_service.money_left_today("alice", date(2025, 3, 15))
        assert insight.body.startswith("Weekend spending: You can spend 22.58zł today.")

    def test_tight_budget(self, wallet, insight_service, expense_service):
        expense_service.create_expense("alice", Decimal("20"), "Lunch")
        insight = insight_service.money_left_today("alice")

        assert insight.body.startswith("Budget tight! You have 0.00zł left")
        assert insight.body.endswith("Total balance: 980.00zł.")

    def test_tight_weekend_budget(self, wallet, insight_service, expense_service):
        expense_service.create_expense("alice", Decimal("20"), "Lunch", date=datetime(2025, 3, 15, 12))
        insight = insight_service.money_left_today("alice", date(2025, 3, 15))
        assert insight.body.startswith("Weekend budget alert! Only 0.00zł left")


class TestBudgetAlert:
    """Tests for limit and low balance warnings."""

    def test_limit_nearly_used(self, wallet, insight_service, limit_service, expense_service):
        limit = limit_service.create_limit("alice", "food", Decimal("100"))
        expense_service.create_expense("alice", Decimal("75"), "Groceries", category="food:groceries")

        insight = insight_service.budget_alert("alice")

        assert insight.title == "Budget Alert"
        assert insight.body == "Food at 75% of monthly limit. 25.00zł remaining for the next 19 days."
        assert insight.data == {"limitId": limit.id, "category": "food"}

    def test_limit_exceeded_is_not_an_alert(self, wallet, insight_service, limit_service, expense_service):
        limit_service.create_limit("alice", "food", Decimal("100"))
        expense_service.create_expense("alice", Decimal("120"), "Feast", category="food")
        assert insight_service.budget_alert("alice") is None

    def test_low_balance(self, wallet, insight_service, wallet_service):
        wallet_service.edit_balance("alice", Decimal("50"))
        insight = insight_service.budget_alert("alice")

        assert insight.title == "Low Balance Warning"
        assert insight.body == (
            "50.00zł remaining. 7 days until next predicted income. Plan your expenses carefully!"
        )

    def test_healthy_wallet(self, wallet, insight_service):
        assert insight_service.budget_alert("alice") is None


class TestDaysToNextIncome:
    """Tests for the income prediction."""

    def test_monthly_pattern(self, wallet_service, expense_service, insight_service, clock):
        clock.set(datetime(2025, 1, 1, 10, 0))
        wallet_service.create_wallet("dave", Decimal("0"))
        clock.set(datetime(2025, 3, 12, 10, 0))
        expense_service.create_expense("dave", Decimal("3000"), "Salary", type=ExpenseType.INCOME, date=datetime(2025, 2, 14, 9))
        expense_service.create_expense("dave", Decimal("3000"), "Salary", type=ExpenseType.INCOME, date=datetime(2025, 3, 10, 9))

        wallet = wallet_service.get_wallet("dave")
        assert insight_service.days_to_next_income(wallet, date(2025, 3, 12)) == 22

    def test_irregular_income(self, wallet, wallet_service, expense_service, insight_service):
        expense_service.create_expense("alice", Decimal("100"), "Gift", type=ExpenseType.INCOME, date=datetime(2025, 3, 10))
        assert insight_service.days_to_next_income(wallet_service.get_wallet("alice"), date(2025, 3, 12)) == 7


def test_subscription_reminder(wallet, insight_service, subscription_service):
    subscription = subscription_service.create_subscription(
        "alice", Decimal("50"), "Netflix", next_billing=date(2025, 3, 13)
    )
    insight = insight_service.subscription_reminder("alice")

    assert insight.title == "Subscription Reminder"
    assert insight.body == "Netflix - 50.00zł will be charged tomorrow. Current balance: 1000.00zł."
    assert insight.data == {"subscriptionId": subscription.id}


def test_no_subscription_reminder_for_cancelled(wallet, insight_service, subscription_service):
    subscription = subscription_service.create_subscription(
        "alice", Decimal("50"), "Netflix", next_billing=date(2025, 3, 13)
    )
    subscription_service.cancel_subscription("alice", subscription.id)
    assert insight_service.subscription_reminder("alice") is None


class TestDailyUpdate:
    """Tests for the evening summary."""

    def test_no_spending(self, wallet, insight_service):
        insight = insight_service.daily_update("alice")
        assert insight.title == "Daily Finance Update"
        assert insight.body == "No spending recorded today! Keep it up! Balance: 1000.00zł"

    def test_no_spending_after_spending_yesterday(self, wallet, insight_service, expense_service):
        expense_service.create_expense("alice", Decimal("40"), "Dinner", date=datetime(2025, 3, 11, 19))
        insight = insight_service.daily_update("alice")
        assert insight.body == "No spending recorded today! You spent 40.00zł yesterday. Balance: 960.00zł"

    def test_compared_with_yesterday(self, wallet, insight_service, expense_service):
        expense_service.create_expense("alice", Decimal("40"), "Dinner", date=datetime(2025, 3, 11, 19))
        expense_service.create_expense("alice", Decimal("20"), "Lunch", date=datetime(2025, 3, 12, 9))
        expense_service.create_expense("alice", Decimal("30"), "Books", date=datetime(2025, 3, 12, 9, 30))

        insight = insight_service.daily_update("alice")
        assert insight.body == (
            "Spent 50.00zł today on 2 transactions. 25% more than yesterday. Balance: 910.00zł"
        )


class TestSpendingPattern:
    """Tests for the peak purchase hour."""

    def test_peak_hour(self, wallet, insight_service, expense_service):
        for day in range(1, 6):
            expense_service.create_expense("alice", Decimal("40"), "Dinner", category="food", date=datetime(2025, 3, day, 19))
            expense_service.create_expense("alice", Decimal("10"), "Bus", category="transport", date=datetime(2025, 3, day, 8))

        insight = insight_service.spending_pattern("alice")

        assert insight.title == "Spending Pattern Detected"
        assert insight.body == (
            "You tend to make more purchases around 7PM, spending an average of 40.00zł. "
            "Most common category: food."
        )
        assert insight.data == {"hour": 19, "category": "food"}

    def test_needs_five_purchases(self, wallet, insight_service, expense_service):
        for day in range(1, 5):
            expense_service.create_expense("alice", Decimal("40"), "Dinner", date=datetime(2025, 3, day, 19))
        assert insight_service.spending_pattern("alice") is None


class TestUnusualSpending:
    """Tests for the spending spike alert."""

    def test_spike_over_average(self, wallet, insight_service, expense_service):
        expense_service.create_expense("alice", Decimal("30"), "Groceries", date=datetime(2025, 3, 1, 10))
        expense_service.create_expense("alice", Decimal("50"), "Jacket")

        insight = insight_service.unusual_spending("alice")

        assert insight.title == "Unusual Spending Detected"
        assert insight.body == "50.00zł spent today is 50.0x your daily average of 1.00zł!"
        assert insight.data == {"spentToday": "50.00", "ratio": "50.0"}

    def test_exactly_twice_the_average(self, wallet, insight_service, expense_service):
        # 600 over 30 days is 20 a day
        expense_service.create_expense("alice", Decimal("600"), "Laptop", date=datetime(2025, 3, 2, 10))
        expense_service.create_expense("alice", Decimal("40"), "Dinner")

        insight = insight_service.unusual_spending("alice")

        assert insight is not None
        assert insight.data == {"spentToday": "40.00", "ratio": "2.0"}

    def test_spike_without_history(self, wallet, insight_service, expense_service):
        expense_service.create_expense("alice", Decimal("25"), "Jacket")
        insight = insight_service.unusual_spending("alice")

        assert insight.body == "25.00zł spent today after no spending in the last 30 days!"
        assert insight.data["ratio"] is None

    def test_small_amount_ignored(self, wallet, insight_service, expense_service):
        expense_service.create_expense("alice", Decimal("15"), "Snack")
        assert insight_service.unusual_spending("alice") is None

    def test_ordinary_day_ignored(self, wallet, insight_service, expense_service):
        expense_service.create_expense("alice", Decimal("900"), "Rent", date=datetime(2025, 3, 1, 10))
        expense_service.create_expense("alice", Decimal("40"), "Groceries")
        assert insight_service.unusual_spending("alice") is None


class TestReports:
    """Tests for weekly and monthly summaries."""

    def test_weekly_report(self, wallet, insight_service, expense_service):
        expense_service.create_expense("alice", Decimal("20"), "Lunch", date=datetime(2025, 3, 10, 12))
        expense_service.create_expense("alice", Decimal("30"), "Dinner", date=datetime(2025, 3, 11, 19))
        expense_service.create_expense("alice", Decimal("99"), "Last week", date=datetime(2025, 3, 9, 19))

        insight = insight_service.weekly_report("alice")

        assert insight.title == "Weekly Spendings Report"
        assert insight.body.startswith("You have spent 50.00zł this week, and earned 1000.00zł")
        assert "at most 30.00zł and at least 20.00zł" in insight.body
        assert insight.data == {"count": 2}

    def test_monthly_report(self, wallet, insight_service, expense_service):
        expense_service.create_expense("alice", Decimal("20"), "Lunch", date=datetime(2025, 3, 1, 12))
        expense_service.create_expense("alice", Decimal("99"), "February", date=datetime(2025, 2, 28, 12))

        insight = insight_service.monthly_report("alice")

        assert insight.title == "Monthly Spendings Report"
        assert insight.body.startswith("You spent 20.00zł this month, on average 20.00zł on 1 entries")
        assert insight.data == {"count": 1}

    def test_expense_analysis_needs_data(self, wallet, insight_service):
        assert insight_service.expense_analysis("alice") is None
