"""Tests for the statistics service."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from pocketplan.domain.entities import ExpenseType
from pocketplan.domain.errors import InvalidRangeError, NotFoundError
from pocketplan.domain.statistics import Streak, topic

START = date(2025, 3, 1)
END = date(2025, 3, 7)


@pytest.fixture
def week(wallet, expense_service):
    """First week of March: Monday twice, Wednesday and Thursday."""
    expense_service.create_expense("alice", Decimal("30"), "Market", category="food:groceries", date=datetime(2025, 3, 3, 9))
    expense_service.create_expense("alice", Decimal("50"), "Dinner", category="food:restaurant", date=datetime(2025, 3, 3, 20))
    expense_service.create_expense("alice", Decimal("20"), "Train", category="transport", date=datetime(2025, 3, 5, 7))
    expense_service.create_expense("alice", Decimal("10"), "Bread", category="food:groceries", date=datetime(2025, 3, 6, 8))
    expense_service.create_expense(
        "alice", Decimal("900"), "Salary", type=ExpenseType.INCOME, category="income", date=datetime(2025, 3, 4, 8)
    )


def test_topic():
    assert topic("food:groceries") == "food"
    assert topic("transport") == "transport"


def test_legend_by_category(week, statistics_service):
    legend = statistics_service.legend("alice", START, END)

    assert [(e.category, e.count, e.total, e.percentage) for e in legend] == [
        ("food:restaurant", 1, Decimal("50"), Decimal("45.45")),
        ("food:groceries", 2, Decimal("40"), Decimal("36.36")),
        ("transport", 1, Decimal("20"), Decimal("18.18")),
    ]


def test_legend_by_topic(week, statistics_service):
    legend = statistics_service.legend("alice", START, END, detailed=False)
    assert [(e.category, e.total, e.percentage) for e in legend] == [
        ("food", Decimal("90"), Decimal("81.82")),
        ("transport", Decimal("20"), Decimal("18.18")),
    ]


def test_day_of_week(week, statistics_service):
    days = statistics_service.day_of_week("alice", START, END)

    assert [d.day for d in days] == [1, 2, 3, 4, 5, 6, 7]
    monday = days[0]
    assert (monday.count, monday.total, monday.avg, monday.median) == (
        2, Decimal("80"), Decimal("40.00"), Decimal("40.00")
    )
    assert days[2].count == 1
    assert days[6].count == 0
    assert days[6].avg == Decimal("0")


def test_spendings_by_day(week, statistics_service):
    totals = statistics_service.spendings_by_day("alice", START, END)
    assert [(t.date, t.total) for t in totals] == [
        (date(2025, 3, 3), Decimal("80")),
        (date(2025, 3, 5), Decimal("20")),
        (date(2025, 3, 6), Decimal("10")),
    ]


def test_zero_expense_days_ignore_income(week, statistics_service):
    days = statistics_service.zero_expense_days("alice", START, END)
    assert days == [date(2025, 3, 1), date(2025, 3, 2), date(2025, 3, 4), date(2025, 3, 7)]


def test_no_spending_streaks(week, statistics_service):
    streaks = statistics_service.no_spending_streaks("alice", START, END)
    assert streaks == [Streak(date(2025, 3, 1), date(2025, 3, 2), 2)]


def test_average_daily_spending(week, statistics_service):
    assert statistics_service.average_daily_spending("alice", START, END) == Decimal("15.71")


def test_spending_limits(week, wallet_service, limit_service, statistics_service):
    wallet_service.update_settings("alice", income=Decimal("1000"), monthly_percentage_target=Decimal("10"))
    limit_service.create_limit("alice", "food", Decimal("80"))

    reports = statistics_service.spending_limits("alice", date(2025, 3, 1), date(2025, 3, 31))

    assert len(reports) == 1
    report = reports[0]
    assert report.month == "2025-03"
    assert report.total_spent == Decimal("110")
    assert report.general_limit == Decimal("100.00")
    assert report.general_limit_exceeded is True
    assert report.categories == (("food", Decimal("90"), Decimal("80"), True),)


def test_reversed_range(wallet, statistics_service):
    with pytest.raises(InvalidRangeError):
        statistics_service.legend("alice", END, START)


def test_missing_wallet(statistics_service):
    with pytest.raises(NotFoundError):
        statistics_service.legend("nobody", START, END)
