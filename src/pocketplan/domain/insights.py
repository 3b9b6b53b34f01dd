"""Notification insights.

Each method looks at one user's wallet and returns an :class:`Insight` ready
to be pushed, or None when there is nothing worth saying. Nothing here
writes to the database.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Optional

from dateutil.relativedelta import relativedelta

from pocketplan.database.base import Database
from pocketplan.domain.analysis import ExpenseAnalysisService, truncate_message
from pocketplan.domain.budget import BudgetCalculator
from pocketplan.domain.entities import ExpenseType, LimitRange, Wallet
from pocketplan.domain.limits import LimitService
from pocketplan.domain.wallet import WalletService
from pocketplan.utils.amount_parser import format_amount
from pocketplan.utils.date_parser import days_in_month, end_of_day, start_of_day

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

TIGHT_BUDGET = Decimal("10")
LIMIT_WARNING_PERCENT = Decimal("70")
LOW_BALANCE = Decimal("100")
DEFAULT_DAYS_TO_INCOME = 7
MIN_PURCHASES_PER_HOUR = 5
UNUSUAL_FACTOR = Decimal("2")
UNUSUAL_MINIMUM = Decimal("20")
UNUSUAL_WINDOW_DAYS = 30


@dataclass(frozen=True)
class Insight:
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


def hour_label(hour: int) -> str:
    """24-hour clock hour as ``"7AM"`` / ``"12PM"``."""
    return f"{hour % 12 or 12}{'PM' if hour >= 12 else 'AM'}"


class InsightService:
    """Builds notification insights from the ledger."""

    def __init__(
        self,
        db: Database,
        clock: Optional[Callable[[], datetime]] = None,
        currency: str = "zł",
    ):
        self.db = db
        self.clock = clock or datetime.now
        self.currency = currency
        self.budget = BudgetCalculator(db, self.clock)
        self.limits = LimitService(db, self.clock)
        self.wallets = WalletService(db, clock=self.clock)
        self.analysis = ExpenseAnalysisService(db, self.clock, currency)

    def _money(self, amount: Decimal) -> str:
        return format_amount(amount, self.currency)

    def _wallet(self, user_id: str) -> Optional[Wallet]:
        wallet = self.db.get_wallet_by_user(user_id)
        if wallet is None:
            logger.debug("No wallet found for user %s", user_id)
        return wallet

    def _spent(self, wallet_id: int, day: date) -> tuple[Decimal, int]:
        entries = self.db.expenses_in_range(
            wallet_id, start_of_day(day), end_of_day(day), ExpenseType.EXPENSE
        )
        return sum((e.amount for e in entries), ZERO), len(entries)

    def _insight(self, title: str, body: str, **data: Any) -> Insight:
        return Insight(title=title, body=truncate_message(body), data=data)

    def money_left_today(self, user_id: str, today: Optional[date] = None) -> Optional[Insight]:
        """What can still be spent today and which budget limits it."""
        wallet = self._wallet(user_id)
        if wallet is None:
            return None
        today = today or self.clock().date()
        status = self.budget.status(wallet, today)
        allowance = status.allowance
        can_spend = self._money(allowance.can_spend_today)
        weekend = today.weekday() >= 5

        if allowance.can_spend_today < TIGHT_BUDGET:
            if weekend:
                body = (
                    f"Weekend budget alert! Only {can_spend} left to spend today based on "
                    f"your {allowance.constraint} budget. Balance: {self._money(wallet.balance)}."
                )
            else:
                body = (
                    f"Budget tight! You have {can_spend} left to spend today based on your "
                    f"{allowance.constraint} budget. Total balance: {self._money(wallet.balance)}."
                )
        elif weekend:
            body = (
                f"Weekend spending: You can spend {can_spend} today. "
                f"Weekly: {self._money(allowance.remaining_weekly)}, "
                f"Monthly: {self._money(allowance.remaining_monthly)} remaining."
            )
        else:
            body = (
                f"You can spend {can_spend} today to stay on {allowance.constraint} budget. "
                f"Weekly: {self._money(allowance.remaining_weekly)}, "
                f"Monthly: {self._money(allowance.remaining_monthly)} left."
            )
        return self._insight(
            "Today's Budget",
            body,
            canSpendToday=str(allowance.can_spend_today),
            constraint=allowance.constraint,
        )

    def budget_alert(self, user_id: str, today: Optional[date] = None) -> Optional[Insight]:
        """Warn about a monthly limit that is 70% used, or else about a low balance."""
        wallet = self._wallet(user_id)
        if wallet is None:
            return None
        today = today or self.clock().date()
        days_left = days_in_month(today) - today.day

        for limit, spent in self.limits.limit_usage(user_id, LimitRange.MONTHLY, today):
            percent_used = spent / limit.amount * 100
            if LIMIT_WARNING_PERCENT <= percent_used < 100:
                body = (
                    f"{limit.category.capitalize()} at {percent_used:.0f}% of monthly limit. "
                    f"{self._money(limit.amount - spent)} remaining for the next {days_left} days."
                )
                return self._insight("Budget Alert", body, limitId=limit.id, category=limit.category)

        if wallet.balance < LOW_BALANCE:
            days_to_income = self.days_to_next_income(wallet, today)
            body = (
                f"{self._money(wallet.balance)} remaining. {days_to_income} days until next "
                f"predicted income. Plan your expenses carefully!"
            )
            return self._insight("Low Balance Warning", body, daysToIncome=days_to_income)
        return None

    def days_to_next_income(self, wallet: Wallet, today: date) -> int:
        """Days until the next income, predicted from the last two incomes.

        Only a gap of 21-34 days between them counts as a monthly pattern;
        anything else, or a prediction in the past, falls back to a week.
        """
        incomes = self.db.expenses_in_range(
            wallet.id,
            start_of_day(today - relativedelta(months=1)),
            end_of_day(today),
            ExpenseType.INCOME,
        )
        if len(incomes) < 2:
            return DEFAULT_DAYS_TO_INCOME
        incomes.sort(key=lambda e: e.date, reverse=True)
        last, previous = incomes[0].date.date(), incomes[1].date.date()
        gap = (last - previous).days
        if not 20 < gap < 35:
            return DEFAULT_DAYS_TO_INCOME
        days = (last + timedelta(days=gap) - today).days
        return days if days >= 0 else DEFAULT_DAYS_TO_INCOME

    def subscription_reminder(self, user_id: str, today: Optional[date] = None) -> Optional[Insight]:
        """Remind about an active subscription charged tomorrow."""
        wallet = self._wallet(user_id)
        if wallet is None:
            return None
        today = today or self.clock().date()
        tomorrow = today + timedelta(days=1)
        for subscription in self.db.list_subscriptions(wallet.id):
            if subscription.is_active and subscription.next_billing_date == tomorrow:
                body = (
                    f"{subscription.description} - {self._money(subscription.amount)} will be "
                    f"charged tomorrow. Current balance: {self._money(wallet.balance)}."
                )
                return self._insight(
                    "Subscription Reminder", body, subscriptionId=subscription.id
                )
        return None

    def daily_update(self, user_id: str, today: Optional[date] = None) -> Optional[Insight]:
        """Today's spending compared with yesterday's."""
        wallet = self._wallet(user_id)
        if wallet is None:
            return None
        today = today or self.clock().date()
        spent_today, count = self._spent(wallet.id, today)
        spent_yesterday, _ = self._spent(wallet.id, today - timedelta(days=1))
        balance = self._money(wallet.balance)

        if spent_today <= 0:
            if spent_yesterday > 0:
                tail = f"You spent {self._money(spent_yesterday)} yesterday."
            else:
                tail = "Keep it up!"
            body = f"No spending recorded today! {tail} Balance: {balance}"
        else:
            change = ""
            if spent_yesterday > 0:
                percent = (spent_today - spent_yesterday) / spent_yesterday * 100
                direction = "more" if percent > 0 else "less"
                change = f" {abs(percent):.0f}% {direction} than yesterday."
            plural = "" if count == 1 else "s"
            body = (
                f"Spent {self._money(spent_today)} today on {count} transaction{plural}."
                f"{change} Balance: {balance}"
            )
        return self._insight("Daily Finance Update", body, spentToday=str(spent_today))

    def spending_pattern(self, user_id: str, today: Optional[date] = None) -> Optional[Insight]:
        """The hour of day with the highest average purchase over the last month.

        Only hours with at least five purchases are considered.
        """
        wallet = self._wallet(user_id)
        if wallet is None:
            return None
        today = today or self.clock().date()
        entries = self.db.expenses_in_range(
            wallet.id,
            start_of_day(today - relativedelta(months=1)),
            end_of_day(today),
            ExpenseType.EXPENSE,
        )
        by_hour = defaultdict(list)
        for entry in entries:
            by_hour[entry.date.hour].append(entry)

        best_hour, best_average = None, ZERO
        for hour in sorted(by_hour):
            hour_entries = by_hour[hour]
            if len(hour_entries) < MIN_PURCHASES_PER_HOUR:
                continue
            average = sum((e.amount for e in hour_entries), ZERO) / len(hour_entries)
            if average > best_average:
                best_hour, best_average = hour, average
        if best_hour is None:
            return None

        categories = Counter(e.category for e in by_hour[best_hour] if e.category)
        top_category = categories.most_common(1)[0][0] if categories else None
        body = (
            f"You tend to make more purchases around {hour_label(best_hour)}, spending an "
            f"average of {self._money(best_average)}"
        )
        body += f". Most common category: {top_category}." if top_category else "."
        return self._insight(
            "Spending Pattern Detected", body, hour=best_hour, category=top_category
        )

    def unusual_spending(self, user_id: str, today: Optional[date] = None) -> Optional[Insight]:
        """Flag a day that costs at least twice the trailing 30-day daily average.

        Days under 20 are never flagged. With no spending in the window the
        ratio is undefined and reported as such.
        """
        wallet = self._wallet(user_id)
        if wallet is None:
            return None
        today = today or self.clock().date()
        spent_today, _ = self._spent(wallet.id, today)
        if spent_today <= 0:
            return None

        yesterday = today - timedelta(days=1)
        window_start = today - timedelta(days=UNUSUAL_WINDOW_DAYS)
        window_total = self.db.sum_expenses(
            wallet.id, start_of_day(window_start), end_of_day(yesterday), ExpenseType.EXPENSE
        )
        average = window_total / UNUSUAL_WINDOW_DAYS
        if spent_today < average * UNUSUAL_FACTOR or spent_today < UNUSUAL_MINIMUM:
            return None

        if average > 0:
            ratio = spent_today / average
            body = (
                f"{self._money(spent_today)} spent today is {ratio:.1f}x your daily average "
                f"of {self._money(average)}!"
            )
        else:
            ratio = None
            body = (
                f"{self._money(spent_today)} spent today after no spending in the last "
                f"{UNUSUAL_WINDOW_DAYS} days!"
            )
        return self._insight(
            "Unusual Spending Detected",
            body,
            spentToday=str(spent_today),
            ratio=None if ratio is None else f"{ratio:.1f}",
        )

    def weekly_report(self, user_id: str, today: Optional[date] = None) -> Optional[Insight]:
        """Summary of the ISO week containing ``today``."""
        if self._wallet(user_id) is None:
            return None
        today = today or self.clock().date()
        monday = today - timedelta(days=today.weekday())
        stats = self.wallets.get_statistics(user_id, monday, monday + timedelta(days=6))
        body = "\n".join(
            [
                f"You have spent {self._money(stats.expense)} this week, and earned {self._money(stats.income)}",
                f"You have {self._money(stats.last_balance)} left in your wallet.",
                f"You spent at most {self._money(stats.max)} and at least {self._money(stats.min)} in a single transaction.",
                f"Your average was {self._money(stats.average)} with a total of {stats.count} transactions.",
            ]
        )
        return self._insight("Weekly Spendings Report", body, count=stats.count)

    def monthly_report(self, user_id: str, today: Optional[date] = None) -> Optional[Insight]:
        """Summary of the calendar month containing ``today``."""
        if self._wallet(user_id) is None:
            return None
        today = today or self.clock().date()
        first = today.replace(day=1)
        last = today.replace(day=days_in_month(today))
        stats = self.wallets.get_statistics(user_id, first, last)
        body = (
            f"You spent {self._money(stats.expense)} this month, on average "
            f"{self._money(stats.average)} on {stats.count} entries, least/most "
            f"({self._money(stats.min)}, {self._money(stats.max)}), you earned "
            f"{self._money(stats.income)}"
        )
        return self._insight("Monthly Spendings Report", body, count=stats.count)

    def expense_analysis(self, user_id: str, today: Optional[date] = None) -> Optional[Insight]:
        result = self.analysis.analyze(user_id, today)
        if result is None:
            return None
        return self._insight(result.title, result.body, groups=len(result.groups))


# Notification type -> InsightService method
INSIGHT_BUILDERS = {
    "moneyLeftToday": "money_left_today",
    "budgetAlerts": "budget_alert",
    "subscriptionReminders": "subscription_reminder",
    "dailyInsights": "daily_update",
    "spendingPatterns": "spending_pattern",
    "unusualSpending": "unusual_spending",
    "weeklyReport": "weekly_report",
    "monthlyReport": "monthly_report",
    "expenseAnalysis": "expense_analysis",
}
