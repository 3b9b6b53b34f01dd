"""Scheduled ledger and notification jobs."""

from pocketplan.scheduler.base import BaseScheduler
from pocketplan.scheduler.insight_jobs import InsightJobs
from pocketplan.scheduler.ledger_jobs import LedgerJobs, is_paycheck_day
from pocketplan.scheduler.runner import DEFAULT_SCHEDULES, JobSchedule, Scheduler, build_scheduler

__all__ = [
    "BaseScheduler",
    "InsightJobs",
    "LedgerJobs",
    "is_paycheck_day",
    "DEFAULT_SCHEDULES",
    "JobSchedule",
    "Scheduler",
    "build_scheduler",
]
