"""Cron-like job runner.

Jobs are plain callables returning a :class:`BatchResult`. ``run_pending``
fires every job whose schedule matches the current minute, one after the
other on the calling thread, and never twice in the same minute.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Callable, Optional

from pocketplan.config import Config, get_config
from pocketplan.database.base import Database
from pocketplan.domain.entities import BatchResult
from pocketplan.domain.expense import ExpenseService
from pocketplan.domain.insights import InsightService
from pocketplan.domain.notifications import NotificationDispatcher, NotificationService
from pocketplan.domain.subscription import SubscriptionService
from pocketplan.scheduler.insight_jobs import InsightJobs
from pocketplan.scheduler.ledger_jobs import LedgerJobs

logger = logging.getLogger(__name__)

Job = Callable[[], BatchResult]


@dataclass(frozen=True)
class JobSchedule:
    """When a job runs: a minute and hour, optionally restricted by weekday or day of month.

    ``weekdays`` use ``datetime.weekday()`` numbering (Monday is 0).
    """

    minute: int
    hour: int
    weekdays: Optional[frozenset[int]] = None
    days_of_month: Optional[frozenset[int]] = None

    def matches(self, dt: datetime) -> bool:
        if dt.minute != self.minute or dt.hour != self.hour:
            return False
        if self.weekdays is not None and dt.weekday() not in self.weekdays:
            return False
        if self.days_of_month is not None and dt.day not in self.days_of_month:
            return False
        return True


MONDAY, TUESDAY, SUNDAY = 0, 1, 6

DEFAULT_SCHEDULES: dict[str, JobSchedule] = {
    "realize_scheduled_transactions": JobSchedule(0, 0),
    "bill_subscriptions": JobSchedule(0, 0),
    "process_paychecks": JobSchedule(0, 0),
    "money_left_today": JobSchedule(0, 7),
    "budget_alerts": JobSchedule(0, 7),
    "subscription_reminders": JobSchedule(0, 7),
    "expense_description_analysis": JobSchedule(0, 7, weekdays=frozenset({TUESDAY})),
    "spending_pattern_insights": JobSchedule(0, 18, weekdays=frozenset({MONDAY})),
    "unusual_spending_alert": JobSchedule(0, 19),
    "daily_insights": JobSchedule(0, 20),
    "weekly_report": JobSchedule(0, 14, weekdays=frozenset({SUNDAY})),
    "monthly_report": JobSchedule(0, 14, days_of_month=frozenset({28, 29, 30, 31})),
}


class Scheduler:
    """Registry of named jobs and their schedules."""

    def __init__(self, timezone: tzinfo, clock: Optional[Callable[[], datetime]] = None):
        self.timezone = timezone
        self.clock = clock or (lambda: datetime.now(self.timezone))
        self.jobs: dict[str, tuple[Job, JobSchedule]] = {}
        self._last_run: dict[str, datetime] = {}

    def register(self, name: str, job: Job, schedule: JobSchedule) -> None:
        if name in self.jobs:
            raise ValueError(f"Job {name!r} is already registered")
        self.jobs[name] = (job, schedule)

    def run_job(self, name: str) -> BatchResult:
        """Run one job now, whatever its schedule.

        A job that raises is logged and reported as a single failure.

        Raises:
            KeyError: If no job has that name
        """
        job, _ = self.jobs[name]
        logger.info("Starting job %s", name)
        try:
            result = job()
        except Exception:
            logger.exception("Job %s failed", name)
            return BatchResult(job=name, failed=1)
        logger.info(
            "Finished job %s: %d processed, %d skipped, %d failed",
            name,
            result.processed,
            result.skipped,
            result.failed,
        )
        return result

    def _local(self, now: Optional[datetime]) -> datetime:
        now = now or self.clock()
        if now.tzinfo is not None:
            now = now.astimezone(self.timezone)
        return now.replace(second=0, microsecond=0)

    def due_jobs(self, now: Optional[datetime] = None) -> list[str]:
        minute = self._local(now)
        return [
            name
            for name, (_, schedule) in self.jobs.items()
            if schedule.matches(minute) and self._last_run.get(name) != minute
        ]

    def run_pending(self, now: Optional[datetime] = None) -> list[BatchResult]:
        """Run every job due in the current minute that hasn't run in it yet."""
        minute = self._local(now)
        results = []
        for name in self.due_jobs(minute):
            self._last_run[name] = minute
            results.append(self.run_job(name))
        return results

    def run_forever(self, poll_seconds: float = 30, stop: Optional[threading.Event] = None) -> None:
        """Poll for due jobs until ``stop`` is set."""
        stop = stop or threading.Event()
        logger.info("Scheduler started with %d jobs (%s)", len(self.jobs), self.timezone)
        while not stop.is_set():
            self.run_pending()
            stop.wait(poll_seconds)
        logger.info("Scheduler stopped")


def build_scheduler(
    db: Database,
    config: Optional[Config] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    schedules: Optional[dict[str, JobSchedule]] = None,
) -> Scheduler:
    """Wire services and register every job with its schedule."""
    config = config or get_config()
    timezone = config.tzinfo
    local_now = config.local_now

    expenses = ExpenseService(db, clock=local_now)
    subscriptions = SubscriptionService(db, expense_service=expenses, clock=local_now)
    notifications = NotificationService(db, dispatcher)
    insights = InsightService(db, clock=local_now, currency=config.currency)

    ledger = LedgerJobs(db, expenses, subscriptions, clock=local_now)
    notify = InsightJobs(notifications, insights, clock=local_now)

    scheduler = Scheduler(timezone)
    schedules = schedules or DEFAULT_SCHEDULES
    for name, schedule in schedules.items():
        owner = ledger if hasattr(ledger, name) else notify
        scheduler.register(name, getattr(owner, name), schedule)
    return scheduler
