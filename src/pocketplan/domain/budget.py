"""Budget estimation and the daily spending allowance.

The monthly budget comes from the first source in ``BUDGET_SOURCES`` that
yields a positive amount. Daily and weekly budgets are derived from it, and
what can still be spent today is the tightest of the three remaining budgets
spread over the days left in their period.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from pocketplan.database.base import Database
from pocketplan.domain.entities import ExpenseType, LimitRange, Wallet
from pocketplan.utils.date_parser import days_in_month, end_of_day, start_of_day

ZERO = Decimal("0")
CENT = Decimal("0.01")


@dataclass(frozen=True)
class BudgetInputs:
    """Everything the budget sources may look at."""

    income: Decimal
    monthly_percentage_target: Decimal
    monthly_limits: tuple[Decimal, ...]
    three_month_expense: Decimal
    balance: Decimal


def income_target_budget(inputs: BudgetInputs) -> Decimal:
    return inputs.income * inputs.monthly_percentage_target / 100


def limits_budget(inputs: BudgetInputs) -> Decimal:
    return sum(inputs.monthly_limits, ZERO)


def historical_budget(inputs: BudgetInputs) -> Decimal:
    return inputs.three_month_expense / 3


def balance_budget(inputs: BudgetInputs) -> Decimal:
    return inputs.balance * Decimal("0.7")


BUDGET_SOURCES: tuple[tuple[str, Callable[[BudgetInputs], Decimal]], ...] = (
    ("income", income_target_budget),
    ("limits", limits_budget),
    ("history", historical_budget),
    ("balance", balance_budget),
)


def monthly_budget(
    inputs: BudgetInputs,
    sources: tuple[tuple[str, Callable[[BudgetInputs], Decimal]], ...] = BUDGET_SOURCES,
) -> tuple[Decimal, Optional[str]]:
    """Return the first positive budget and the name of the source that gave it."""
    for name, source in sources:
        amount = source(inputs)
        if amount > 0:
            return amount, name
    return ZERO, None


@dataclass(frozen=True)
class Allowance:
    """Result of :func:`daily_allowance`."""

    can_spend_today: Decimal
    constraint: str
    remaining_daily: Decimal
    remaining_weekly: Decimal
    remaining_monthly: Decimal


def daily_allowance(
    daily_budget: Decimal,
    spent_today: Decimal,
    weekly_budget: Decimal,
    spent_week: Decimal,
    days_left_week: int,
    monthly_budget: Decimal,
    spent_month: Decimal,
    days_left_month: int,
) -> Allowance:
    """What can be spent today without breaking any of the three budgets.

    ``constraint`` names the budget that produced the minimum; on a tie the
    shorter period wins.
    """
    remaining_daily = max(ZERO, Decimal(daily_budget) - Decimal(spent_today))
    remaining_weekly = max(ZERO, Decimal(weekly_budget) - Decimal(spent_week))
    remaining_monthly = max(ZERO, Decimal(monthly_budget) - Decimal(spent_month))

    from_weekly = remaining_weekly / days_left_week if days_left_week > 0 else ZERO
    from_monthly = remaining_monthly / days_left_month if days_left_month > 0 else ZERO

    constraint, amount = min(
        (("daily", remaining_daily), ("weekly", from_weekly), ("monthly", from_monthly)),
        key=lambda candidate: candidate[1],
    )
    return Allowance(
        can_spend_today=amount.quantize(CENT),
        constraint=constraint,
        remaining_daily=remaining_daily.quantize(CENT),
        remaining_weekly=remaining_weekly.quantize(CENT),
        remaining_monthly=remaining_monthly.quantize(CENT),
    )


@dataclass(frozen=True)
class BudgetStatus:
    """A wallet's budgets and allowance for one day."""

    monthly_budget: Decimal
    source: Optional[str]
    daily_budget: Decimal
    weekly_budget: Decimal
    spent_today: Decimal
    spent_week: Decimal
    spent_month: Decimal
    days_left_week: int
    days_left_month: int
    allowance: Allowance


class BudgetCalculator:
    """Computes budget status of a wallet from the ledger."""

    def __init__(self, db: Database, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or datetime.now

    def inputs_for(self, wallet: Wallet, today: date) -> BudgetInputs:
        limits = self.db.list_limits(wallet.id, LimitRange.MONTHLY)
        three_month_expense = self.db.sum_expenses(
            wallet.id,
            start_of_day(today - relativedelta(months=3)),
            end_of_day(today),
            ExpenseType.EXPENSE,
        )
        return BudgetInputs(
            income=wallet.income,
            monthly_percentage_target=wallet.monthly_percentage_target,
            monthly_limits=tuple(limit.amount for limit in limits),
            three_month_expense=three_month_expense,
            balance=wallet.balance,
        )

    def status(self, wallet: Wallet, today: Optional[date] = None) -> BudgetStatus:
        """Budget status of ``wallet`` on ``today``.

        The weekly budget is seven days' worth of the daily budget, so spending
        earlier in the month does not shrink it. Older releases divided the
        remaining monthly budget by the weeks left instead. Days left include
        today and weeks start on Monday.
        """
        today = today or self.clock().date()
        budget, source = monthly_budget(self.inputs_for(wallet, today))

        month_days = days_in_month(today)
        daily_budget = budget / month_days
        weekly_budget = budget * 7 / month_days
        days_left_month = month_days - today.day + 1
        days_left_week = 7 - today.weekday()

        week_start = today - timedelta(days=today.weekday())
        month_start = today.replace(day=1)
        spent_today = self.db.sum_expenses(wallet.id, start_of_day(today), end_of_day(today))
        spent_week = self.db.sum_expenses(wallet.id, start_of_day(week_start), end_of_day(today))
        spent_month = self.db.sum_expenses(wallet.id, start_of_day(month_start), end_of_day(today))

        allowance = daily_allowance(
            daily_budget,
            spent_today,
            weekly_budget,
            spent_week,
            days_left_week,
            budget,
            spent_month,
            days_left_month,
        )
        return BudgetStatus(
            monthly_budget=budget.quantize(CENT),
            source=source,
            daily_budget=daily_budget.quantize(CENT),
            weekly_budget=weekly_budget.quantize(CENT),
            spent_today=spent_today,
            spent_week=spent_week,
            spent_month=spent_month,
            days_left_week=days_left_week,
            days_left_month=days_left_month,
            allowance=allowance,
        )
