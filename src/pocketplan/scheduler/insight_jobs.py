"""Notification jobs built on the insight engine."""

import logging
from datetime import datetime
from typing import Callable, Optional

from pocketplan.domain.entities import BatchResult
from pocketplan.domain.insights import InsightService
from pocketplan.domain.notifications import NotificationService
from pocketplan.scheduler.base import BaseScheduler
from pocketplan.utils.date_parser import is_last_day_of_month

logger = logging.getLogger(__name__)


class InsightJobs(BaseScheduler):
    def __init__(
        self,
        notifications: NotificationService,
        insights: InsightService,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(notifications)
        self.insights = insights
        self.clock = clock or datetime.now

    def _run(self, job: str, notification_type: str, build) -> BatchResult:
        today = self.clock().date()
        logger.info("Running %s notifications", job)
        result = self.for_each_recipient(
            job, notification_type, lambda recipient: build(recipient.user_id, today)
        )
        logger.info("%s: %d sent, %d skipped, %d failed", job, result.processed, result.skipped, result.failed)
        return result

    def money_left_today(self) -> BatchResult:
        return self._run("money_left_today", "moneyLeftToday", self.insights.money_left_today)

    def budget_alerts(self) -> BatchResult:
        return self._run("budget_alerts", "budgetAlerts", self.insights.budget_alert)

    def subscription_reminders(self) -> BatchResult:
        return self._run(
            "subscription_reminders", "subscriptionReminders", self.insights.subscription_reminder
        )

    def daily_insights(self) -> BatchResult:
        return self._run("daily_insights", "dailyInsights", self.insights.daily_update)

    def spending_pattern_insights(self) -> BatchResult:
        return self._run(
            "spending_pattern_insights", "spendingPatterns", self.insights.spending_pattern
        )

    def unusual_spending_alert(self) -> BatchResult:
        return self._run("unusual_spending_alert", "unusualSpending", self.insights.unusual_spending)

    def weekly_report(self) -> BatchResult:
        return self._run("weekly_report", "weeklyReport", self.insights.weekly_report)

    def monthly_report(self) -> BatchResult:
        # Scheduled on days 28-31; only the last one reports.
        if not is_last_day_of_month(self.clock().date()):
            return BatchResult(job="monthly_report")
        return self._run("monthly_report", "monthlyReport", self.insights.monthly_report)

    def expense_description_analysis(self) -> BatchResult:
        return self._run(
            "expense_description_analysis", "expenseAnalysis", self.insights.expense_analysis
        )
