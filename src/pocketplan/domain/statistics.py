"""Spending statistics for chart screens."""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from statistics import median
from typing import Optional

from pocketplan.database.base import Database
from pocketplan.domain.entities import Expense, ExpenseType, LimitRange
from pocketplan.domain.errors import InvalidRangeError, NotFoundError, invalid_range, wallet_not_found
from pocketplan.utils.date_parser import end_of_day, start_of_day

ZERO = Decimal("0")
CENT = Decimal("0.01")


@dataclass(frozen=True)
class LegendEntry:
    category: str
    count: int
    total: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class WeekdayStats:
    day: int  # ISO weekday, 1 = Monday
    count: int
    total: Decimal
    avg: Decimal
    median: Decimal


@dataclass(frozen=True)
class DailyTotal:
    date: date
    total: Decimal


@dataclass(frozen=True)
class Streak:
    start: date
    end: date
    length: int


@dataclass(frozen=True)
class MonthLimitReport:
    month: str
    total_spent: Decimal
    general_limit: Decimal
    general_limit_exceeded: bool
    categories: tuple[tuple[str, Decimal, Decimal, bool], ...]


def topic(category: str) -> str:
    """Top-level part of a ``topic:subtopic`` category."""
    return category.split(":", 1)[0]


class StatisticsService:
    """Read-only aggregates over a wallet's realized expenses."""

    def __init__(self, db: Database):
        self.db = db

    def _expenses(self, user_id: str, start: date, end: date) -> list[Expense]:
        if start > end:
            raise InvalidRangeError(invalid_range(start, end))
        wallet = self.db.get_wallet_by_user(user_id)
        if wallet is None:
            raise NotFoundError(wallet_not_found(user_id))
        return self.db.expenses_in_range(
            wallet.id, start_of_day(start), end_of_day(end), ExpenseType.EXPENSE
        )

    def legend(self, user_id: str, start: date, end: date, detailed: bool = True) -> list[LegendEntry]:
        """Spending per category (or per topic when not ``detailed``), largest first."""
        expenses = self._expenses(user_id, start, end)
        grand_total = sum((e.amount for e in expenses), ZERO)
        totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[str, int] = defaultdict(int)
        for expense in expenses:
            key = expense.category if detailed else topic(expense.category)
            totals[key] += expense.amount
            counts[key] += 1
        entries = [
            LegendEntry(
                category=key,
                count=counts[key],
                total=total,
                percentage=(total / grand_total * 100).quantize(CENT) if grand_total else ZERO,
            )
            for key, total in totals.items()
        ]
        return sorted(entries, key=lambda e: e.total, reverse=True)

    def day_of_week(self, user_id: str, start: date, end: date) -> list[WeekdayStats]:
        """Count, total, average and median per ISO weekday; all seven days present."""
        amounts: dict[int, list[Decimal]] = defaultdict(list)
        for expense in self._expenses(user_id, start, end):
            amounts[expense.date.isoweekday()].append(expense.amount)
        result = []
        for day in range(1, 8):
            values = amounts.get(day, [])
            total = sum(values, ZERO)
            result.append(
                WeekdayStats(
                    day=day,
                    count=len(values),
                    total=total,
                    avg=(total / len(values)).quantize(CENT) if values else ZERO,
                    median=Decimal(median(values)).quantize(CENT) if values else ZERO,
                )
            )
        return result

    def spendings_by_day(self, user_id: str, start: date, end: date) -> list[DailyTotal]:
        """Total spent on each day that had spending."""
        totals: dict[date, Decimal] = defaultdict(lambda: ZERO)
        for expense in self._expenses(user_id, start, end):
            totals[expense.date.date()] += expense.amount
        return [DailyTotal(date=day, total=totals[day]) for day in sorted(totals)]

    def zero_expense_days(self, user_id: str, start: date, end: date) -> list[date]:
        """Days in the range without any expense."""
        spent_on = {e.date.date() for e in self._expenses(user_id, start, end)}
        days = []
        day = start
        while day <= end:
            if day not in spent_on:
                days.append(day)
            day += timedelta(days=1)
        return days

    def no_spending_streaks(self, user_id: str, start: date, end: date) -> list[Streak]:
        """Runs of at least two consecutive days without spending."""
        streaks: list[Streak] = []
        current: Optional[list[date]] = None
        for day in self.zero_expense_days(user_id, start, end):
            if current and (day - current[-1]).days == 1:
                current.append(day)
            else:
                if current:
                    streaks.append(Streak(current[0], current[-1], len(current)))
                current = [day]
        if current:
            streaks.append(Streak(current[0], current[-1], len(current)))
        return [s for s in streaks if s.length > 1]

    def average_daily_spending(self, user_id: str, start: date, end: date) -> Decimal:
        total = sum((e.amount for e in self._expenses(user_id, start, end)), ZERO)
        days = (end - start).days + 1
        return (total / days).quantize(CENT)

    def spending_limits(self, user_id: str, start: date, end: date) -> list[MonthLimitReport]:
        """Monthly spending compared with the general target and topic limits."""
        expenses = self._expenses(user_id, start, end)
        wallet = self.db.get_wallet_by_user(user_id)
        general_limit = (wallet.income * wallet.monthly_percentage_target / 100).quantize(CENT)
        limits = {limit.category: limit.amount for limit in self.db.list_limits(wallet.id, LimitRange.MONTHLY)}

        by_month: dict[str, list[Expense]] = defaultdict(list)
        for expense in expenses:
            by_month[f"{expense.date:%Y-%m}"].append(expense)

        reports = []
        for month in sorted(by_month):
            month_expenses = by_month[month]
            total = sum((e.amount for e in month_expenses), ZERO)
            per_topic: dict[str, Decimal] = defaultdict(lambda: ZERO)
            for expense in month_expenses:
                per_topic[topic(expense.category)] += expense.amount
            categories = tuple(
                (name, spent, limits[name], spent > limits[name])
                for name, spent in sorted(per_topic.items())
                if name in limits
            )
            reports.append(
                MonthLimitReport(
                    month=month,
                    total_spent=total,
                    general_limit=general_limit,
                    general_limit_exceeded=general_limit > 0 and total > general_limit,
                    categories=categories,
                )
            )
        return reports
