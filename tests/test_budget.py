"""Tests for budget estimation and the daily allowance."""

from datetime import date, datetime
from decimal import Decimal

from pocketplan.domain.budget import (
    BudgetCalculator,
    BudgetInputs,
    daily_allowance,
    monthly_budget,
)


def inputs(**overrides):
    values = dict(
        income=Decimal("0"),
        monthly_percentage_target=Decimal("0"),
        monthly_limits=(),
        three_month_expense=Decimal("0"),
        balance=Decimal("0"),
    )
    values.update(overrides)
    return BudgetInputs(**values)


class TestMonthlyBudget:
    """The first positive source wins."""

    def test_income_target(self):
        budget = monthly_budget(
            inputs(income=Decimal("5000"), monthly_percentage_target=Decimal("20"), balance=Decimal("100"))
        )
        assert budget == (Decimal("1000"), "income")

    def test_limits(self):
        budget = monthly_budget(inputs(monthly_limits=(Decimal("300"), Decimal("200"))))
        assert budget == (Decimal("500"), "limits")

    def test_history(self):
        budget = monthly_budget(inputs(three_month_expense=Decimal("900"), balance=Decimal("5000")))
        assert budget == (Decimal("300"), "history")

    def test_balance(self):
        budget = monthly_budget(inputs(balance=Decimal("1000")))
        assert budget == (Decimal("700.0"), "balance")

    def test_nothing_known(self):
        assert monthly_budget(inputs()) == (Decimal("0"), None)

    def test_income_without_target_falls_through(self):
        budget = monthly_budget(inputs(income=Decimal("5000"), monthly_limits=(Decimal("50"),)))
        assert budget == (Decimal("50"), "limits")


class TestDailyAllowance:
    """Tests for the tightest-budget rule."""

    def test_daily_is_tightest(self):
        allowance = daily_allowance(
            Decimal("100"), Decimal("30"),
            Decimal("700"), Decimal("200"), 5,
            Decimal("3000"), Decimal("1000"), 20,
        )
        assert allowance.can_spend_today == Decimal("70.00")
        assert allowance.constraint == "daily"
        assert allowance.remaining_weekly == Decimal("500.00")
        assert allowance.remaining_monthly == Decimal("2000.00")

    def test_monthly_is_tightest(self):
        allowance = daily_allowance(
            Decimal("100"), Decimal("0"),
            Decimal("700"), Decimal("0"), 5,
            Decimal("3000"), Decimal("2900"), 20,
        )
        assert allowance.can_spend_today == Decimal("5.00")
        assert allowance.constraint == "monthly"

    def test_tie_prefers_shorter_period(self):
        allowance = daily_allowance(
            Decimal("100"), Decimal("0"),
            Decimal("500"), Decimal("0"), 5,
            Decimal("2000"), Decimal("0"), 20,
        )
        assert allowance.constraint == "daily"

    def test_overspent_never_negative(self):
        allowance = daily_allowance(
            Decimal("10"), Decimal("50"),
            Decimal("70"), Decimal("90"), 3,
            Decimal("300"), Decimal("400"), 10,
        )
        assert allowance.can_spend_today == Decimal("0.00")
        assert allowance.remaining_daily == Decimal("0.00")
        assert allowance.remaining_weekly == Decimal("0.00")
        assert allowance.remaining_monthly == Decimal("0.00")


class TestBudgetCalculator:
    """Tests for budget status computed from the ledger."""

    def test_balance_based_status(self, wallet, temp_db, clock):
        status = BudgetCalculator(temp_db, clock).status(wallet)

        assert status.source == "balance"
        assert status.monthly_budget == Decimal("700.00")
        assert status.daily_budget == Decimal("22.58")
        assert status.weekly_budget == Decimal("158.06")
        assert status.days_left_month == 20
        assert status.days_left_week == 5
        assert status.allowance.can_spend_today == Decimal("22.58")
        assert status.allowance.constraint == "daily"

    def test_income_based_status(self, wallet, wallet_service, expense_service, temp_db, clock):
        wallet_service.update_settings("alice", income=Decimal("3100"), monthly_percentage_target=Decimal("10"))
        expense_service.create_expense("alice", Decimal("50"), "Shoes", date=datetime(2025, 3, 1, 12))
        expense_service.create_expense("alice", Decimal("20"), "Lunch", date=datetime(2025, 3, 10, 12))
        expense_service.create_expense("alice", Decimal("4"), "Coffee", date=datetime(2025, 3, 12, 8))

        status = BudgetCalculator(temp_db, clock).status(wallet_service.get_wallet("alice"))

        assert status.source == "income"
        assert status.monthly_budget == Decimal("310.00")
        assert status.daily_budget == Decimal("10.00")
        assert status.weekly_budget == Decimal("70.00")
        assert status.spent_today == Decimal("4")
        assert status.spent_week == Decimal("24")
        assert status.spent_month == Decimal("74")
        assert status.allowance.can_spend_today == Decimal("6.00")
        assert status.allowance.constraint == "daily"

    def test_sunday_has_one_day_left_in_week(self, wallet, temp_db, clock):
        status = BudgetCalculator(temp_db, clock).status(wallet, date(2025, 3, 16))
        assert status.days_left_week == 1
        assert status.days_left_month == 16
