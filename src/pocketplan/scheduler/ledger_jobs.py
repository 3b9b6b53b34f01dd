"""Midnight jobs that change balances."""

import logging
from datetime import date, datetime
from typing import Callable, Optional

from pocketplan.database.base import Database
from pocketplan.domain.entities import BatchResult, ExpenseType, Wallet
from pocketplan.domain.expense import ExpenseService
from pocketplan.domain.subscription import SubscriptionService
from pocketplan.utils.date_parser import end_of_day, is_last_day_of_month, start_of_day

logger = logging.getLogger(__name__)

PAYCHECK_CATEGORY = "income"


def is_paycheck_day(paycheck_date: Optional[str], today: date) -> bool:
    """Whether a wallet's paycheck setting falls on ``today``.

    The setting is an ISO date, "start", "end" or a day-of-month number.
    """
    if not paycheck_date:
        return False
    value = paycheck_date.strip()
    if value == "start":
        return today.day == 1
    if value == "end":
        return is_last_day_of_month(today)
    if value.isdigit():
        return today.day == int(value)
    try:
        return date.fromisoformat(value[:10]) == today
    except ValueError:
        logger.warning("Ignoring invalid paycheck date %r", paycheck_date)
        return False


def paycheck_description(today: date) -> str:
    return f"Monthly paycheck - {today:%B %Y}"


class LedgerJobs:
    """Scheduled entry realization, subscription billing and paychecks."""

    def __init__(
        self,
        db: Database,
        expenses: ExpenseService,
        subscriptions: SubscriptionService,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.expenses = expenses
        self.subscriptions = subscriptions
        self.clock = clock or datetime.now

    def realize_scheduled_transactions(self) -> BatchResult:
        now = self.clock()
        result = BatchResult(job="realize_scheduled_transactions")
        due = self.expenses.due_scheduled_expenses(now)
        logger.info("Realizing %d scheduled transactions for %s", len(due), now.date())
        for expense in due:
            try:
                if self.expenses.realize_scheduled(expense.id, now):
                    result.processed += 1
                else:
                    result.skipped += 1
            except Exception:
                logger.exception("Error realizing scheduled transaction %s", expense.id)
                result.failed += 1
        logger.info(
            "Scheduled transactions: %d realized, %d skipped, %d failed",
            result.processed,
            result.skipped,
            result.failed,
        )
        return result

    def bill_subscriptions(self) -> BatchResult:
        result = self.subscriptions.materialize_due(self.clock().date())
        logger.info(
            "Subscriptions: %d charged, %d skipped, %d failed",
            result.processed,
            result.skipped,
            result.failed,
        )
        return result

    def _already_paid(self, wallet: Wallet, today: date) -> bool:
        entries = self.db.expenses_in_range(
            wallet.id, start_of_day(today), end_of_day(today), ExpenseType.INCOME
        )
        description = paycheck_description(today)
        return any(e.description == description for e in entries)

    def process_paychecks(self) -> BatchResult:
        """Record the monthly income of every wallet whose paycheck day is today.

        Nothing is paid on weekends; a paycheck already recorded today is not
        paid again.
        """
        now = self.clock()
        today = now.date()
        result = BatchResult(job="process_paychecks")
        if today.weekday() >= 5:
            logger.info("Skipping paycheck processing on weekend")
            return result

        wallets = self.db.list_wallets_with_paycheck()
        logger.info("Processing %d wallets with paycheck dates", len(wallets))
        for wallet in wallets:
            try:
                if wallet.income <= 0 or not is_paycheck_day(wallet.paycheck_date, today):
                    result.skipped += 1
                    continue
                if self._already_paid(wallet, today):
                    logger.info("Paycheck for user %s already recorded", wallet.user_id)
                    result.skipped += 1
                    continue
                self.expenses.record_entry(
                    wallet.id,
                    wallet.income,
                    ExpenseType.INCOME,
                    paycheck_description(today),
                    PAYCHECK_CATEGORY,
                    date=now,
                )
                logger.info("Processed paycheck for user %s: %s", wallet.user_id, wallet.income)
                result.processed += 1
            except Exception:
                logger.exception("Error processing paycheck for wallet %s", wallet.id)
                result.failed += 1
        return result
