"""Subscription domain service.

Billing runs once a day. For each active subscription whose next billing date
is today, the service copies the subscription's latest entry as this cycle's
charge and moves the billing date forward by exactly one cycle. Claiming the
cycle (a compare-and-set on the billing date) and inserting the charge happen
in the same unit of work, so a cycle is charged at most once however often
the job runs.
"""

import logging
import re
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Optional

from dateutil.relativedelta import relativedelta

from pocketplan.database.base import Database
from pocketplan.domain.entities import (
    BatchResult,
    BillingCycle,
    Expense,
    ExpenseType,
    Subscription,
)
from pocketplan.domain.errors import (
    InvalidRangeError,
    NotFoundError,
    ValidationError,
    invalid_range,
    subscription_not_found,
    wallet_not_found,
)
from pocketplan.domain.expense import ExpenseService, _to_decimal
from pocketplan.utils.text_similarity import normalize_description, similarity_ratio

logger = logging.getLogger(__name__)

_PERIOD_SUFFIX = re.compile(r"\s*\([^()]*\)\s*$")


def next_billing_date(cycle: BillingCycle, current: date) -> date:
    """Billing date one cycle after ``current``.

    Monthly cycles follow the calendar month (Jan 31 -> Feb 28/29), yearly
    cycles are a fixed 365 days.
    """
    if isinstance(current, datetime):
        current = current.date()
    cycle = BillingCycle(cycle)
    if cycle == BillingCycle.DAILY:
        return current + timedelta(days=1)
    if cycle == BillingCycle.WEEKLY:
        return current + timedelta(days=7)
    if cycle == BillingCycle.MONTHLY:
        return current + relativedelta(months=1)
    return current + timedelta(days=365)


def previous_billing_date(cycle: BillingCycle, current: date) -> date:
    """Billing date one cycle before ``current``."""
    cycle = BillingCycle(cycle)
    if cycle == BillingCycle.DAILY:
        return current - timedelta(days=1)
    if cycle == BillingCycle.WEEKLY:
        return current - timedelta(days=7)
    if cycle == BillingCycle.MONTHLY:
        return current - relativedelta(months=1)
    return current - timedelta(days=365)


def billing_period_label(billing_date: date, cycle: BillingCycle) -> str:
    """Human label of the period that ends on ``billing_date``.

    Daily, weekly and monthly periods render as ``MM-DD-MM-DD``; yearly ones
    as ``YYYY-MM-YYYY-MM``.
    """
    start = previous_billing_date(cycle, billing_date)
    if BillingCycle(cycle) == BillingCycle.YEARLY:
        return f"{start:%Y-%m}-{billing_date:%Y-%m}"
    return f"{start:%m-%d}-{billing_date:%m-%d}"


def charge_description(text: str, cycle: BillingCycle, today: date) -> str:
    """Description of a cycle's charge: the template text plus the period it covers."""
    clean = text.strip()
    while True:
        stripped = _PERIOD_SUFFIX.sub("", clean)
        if stripped == clean:
            break
        clean = stripped

    cycle = BillingCycle(cycle)
    if cycle == BillingCycle.MONTHLY:
        period = f"{today:%B}"
    elif cycle == BillingCycle.DAILY:
        period = f"{today:%B} {today.day}"
    elif cycle == BillingCycle.WEEKLY:
        week_end = today + timedelta(days=7)
        period = f"{today:%d}-{week_end:%d} {week_end:%B}"
    else:
        period = f"{today:%Y-%m-%d}"
    return f"{clean} ({period})".strip()


class SubscriptionService:
    """Service for managing subscriptions and materializing their charges."""

    def __init__(
        self,
        db: Database,
        expense_service: Optional[ExpenseService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize subscription service.

        Args:
            db: Database instance
            expense_service: Service recording the materialized charges
            clock: Callable returning the current local time
        """
        self.db = db
        self.clock = clock or datetime.now
        self.expenses = expense_service or ExpenseService(db, clock=self.clock)

    def _wallet_id(self, user_id: str) -> int:
        wallet = self.db.get_wallet_by_user(user_id)
        if wallet is None:
            raise NotFoundError(wallet_not_found(user_id))
        return wallet.id

    def get_subscription(self, subscription_id: int) -> Subscription:
        """Get subscription by ID.

        Raises:
            NotFoundError: If the subscription doesn't exist
        """
        subscription = self.db.get_subscription(subscription_id)
        if subscription is None:
            raise NotFoundError(subscription_not_found(subscription_id))
        return subscription

    def _owned_subscription(self, user_id: str, subscription_id: int) -> Subscription:
        subscription = self.get_subscription(subscription_id)
        if subscription.wallet_id != self._wallet_id(user_id):
            raise NotFoundError(subscription_not_found(subscription_id))
        return subscription

    def list_subscriptions(self, user_id: str) -> list[Subscription]:
        return self.db.list_subscriptions(self._wallet_id(user_id))

    def create_subscription(
        self,
        user_id: str,
        amount: Decimal,
        description: str,
        billing_cycle: BillingCycle = BillingCycle.MONTHLY,
        date_start: Optional[date] = None,
        next_billing: Optional[date] = None,
        date_end: Optional[date] = None,
    ) -> Subscription:
        """Create a subscription on the caller's wallet.

        Args:
            user_id: Owner of the wallet
            amount: Amount charged per cycle
            description: Subscription name
            billing_cycle: daily, weekly, monthly or yearly
            date_start: First day of the subscription (defaults to today)
            next_billing: First billing date (defaults to one cycle after date_start)
            date_end: Optional last day

        Returns:
            The created Subscription

        Raises:
            NotFoundError: If the user has no wallet
            ValidationError: If the amount, cycle or dates are invalid
        """
        amount = _to_decimal(amount, "amount")
        if amount < 0:
            raise ValidationError(f"Amount must not be negative, got {amount}")
        try:
            billing_cycle = BillingCycle(billing_cycle)
        except ValueError as e:
            raise ValidationError(f"Unknown billing cycle: {billing_cycle!r}") from e
        date_start = date_start or self.clock().date()
        if date_end is not None and date_end < date_start:
            raise ValidationError("Subscription cannot end before it starts")
        next_billing = next_billing or next_billing_date(billing_cycle, date_start)

        subscription_id = self.db.create_subscription(
            wallet_id=self._wallet_id(user_id),
            amount=amount,
            description=description,
            billing_cycle=billing_cycle,
            date_start=date_start,
            next_billing_date=next_billing,
            date_end=date_end,
        )
        logger.info("Created %s subscription %s", billing_cycle.value, subscription_id)
        return self.db.get_subscription(subscription_id)

    def promote_expense(self, user_id: str, expense_id: int) -> Subscription:
        """Turn an entry into a monthly subscription billed from its date.

        An entry already linked to a subscription reactivates that
        subscription instead.

        Raises:
            NotFoundError: If the entry doesn't exist on the caller's wallet
        """
        expense = self.expenses.get_expense(user_id, expense_id)
        if expense.subscription_id is not None:
            return self.enable_subscription(user_id, expense.subscription_id)

        with self.db.atomic():
            subscription_id = self.db.create_subscription(
                wallet_id=expense.wallet_id,
                amount=expense.amount,
                description=expense.description,
                billing_cycle=BillingCycle.MONTHLY,
                date_start=expense.date.date(),
                next_billing_date=next_billing_date(BillingCycle.MONTHLY, expense.date.date()),
            )
            self.db.update_expense(expense_id, subscription_id=subscription_id)
            return self.db.get_subscription(subscription_id)

    def assign_expense(
        self, user_id: str, expense_id: int, subscription_id: Optional[int]
    ) -> Expense:
        """Link an entry to a subscription, or unlink it with None."""
        expense = self.expenses.get_expense(user_id, expense_id)
        if subscription_id is not None:
            self._owned_subscription(user_id, subscription_id)
        self.db.update_expense(expense.id, subscription_id=subscription_id)
        return self.db.get_expense(expense.id)

    def cancel_subscription(self, user_id: str, subscription_id: int) -> Subscription:
        """Stop billing a subscription."""
        self._owned_subscription(user_id, subscription_id)
        self.db.update_subscription(subscription_id, is_active=False)
        return self.db.get_subscription(subscription_id)

    def enable_subscription(self, user_id: str, subscription_id: int) -> Subscription:
        """Resume billing without touching the billing date."""
        self._owned_subscription(user_id, subscription_id)
        self.db.update_subscription(subscription_id, is_active=True)
        return self.db.get_subscription(subscription_id)

    def renew_subscription(
        self, user_id: str, subscription_id: int, today: Optional[date] = None
    ) -> Subscription:
        """Reactivate a subscription and move a lapsed billing date to the future.

        Missed cycles are skipped, not charged retroactively: the billing date
        becomes the first cycle date on or after today.
        """
        subscription = self._owned_subscription(user_id, subscription_id)
        today = today or self.clock().date()
        billing = subscription.next_billing_date
        while billing < today:
            billing = next_billing_date(subscription.billing_cycle, billing)
        self.db.update_subscription(subscription_id, is_active=True, next_billing_date=billing)
        return self.db.get_subscription(subscription_id)

    def modify_subscription(self, user_id: str, subscription_id: int, **changes: Any) -> Subscription:
        """Change amount, description, cycle, dates or active flag.

        Raises:
            ValidationError: If an unknown or invalid field is given
        """
        self._owned_subscription(user_id, subscription_id)
        allowed = {"amount", "description", "billing_cycle", "date_start", "date_end", "is_active", "next_billing_date"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError(f"Cannot modify: {', '.join(sorted(unknown))}")
        if "amount" in changes:
            changes["amount"] = _to_decimal(changes["amount"], "amount")
            if changes["amount"] < 0:
                raise ValidationError("Amount must not be negative")
        if "billing_cycle" in changes:
            try:
                changes["billing_cycle"] = BillingCycle(changes["billing_cycle"])
            except ValueError as e:
                raise ValidationError(f"Unknown billing cycle: {changes['billing_cycle']!r}") from e
        if changes:
            self.db.update_subscription(subscription_id, **changes)
        return self.db.get_subscription(subscription_id)

    def upcoming_subscriptions(self, user_id: str, start: date, end: date) -> list[Subscription]:
        """Active subscriptions billing between two days (inclusive)."""
        if start > end:
            raise InvalidRangeError(invalid_range(start, end))
        return self.db.subscriptions_between(self._wallet_id(user_id), start, end)

    def possible_subscriptions(self, user_id: str, expense_id: int, limit: int = 3) -> list[Subscription]:
        """Subscriptions whose description best matches an entry's description."""
        expense = self.expenses.get_expense(user_id, expense_id)
        needle = normalize_description(expense.description)
        ranked = sorted(
            self.db.list_subscriptions(expense.wallet_id),
            key=lambda s: similarity_ratio(needle, normalize_description(s.description)),
            reverse=True,
        )
        return ranked[:limit]

    def _materialize(self, subscription: Subscription, today: date, now: datetime) -> bool:
        """Charge one due subscription. Returns False when it was skipped."""
        template = self.db.latest_subscription_expense(subscription.id)
        if template is None:
            logger.warning("No expense found for subscription %s, skipping", subscription.id)
            return False

        with self.db.atomic():
            claimed = self.db.claim_billing_cycle(
                subscription.id,
                expected=today,
                next_date=next_billing_date(subscription.billing_cycle, today),
            )
            if not claimed:
                logger.info("Subscription %s was already billed for %s", subscription.id, today)
                return False

            charge_type = (
                template.type
                if template.type in (ExpenseType.EXPENSE, ExpenseType.INCOME)
                else ExpenseType.EXPENSE
            )
            self.expenses.record_entry(
                subscription.wallet_id,
                amount=template.amount,
                type=charge_type,
                description=charge_description(template.description, subscription.billing_cycle, today),
                category=template.category,
                date=now,
                subscription_id=subscription.id,
                note=f"Subscription for {billing_period_label(today, subscription.billing_cycle)}",
                shop=template.shop,
                tags=list(template.tags),
                spontaneous_rate=template.spontaneous_rate,
            )
        logger.info("Processed subscription %s", subscription.id)
        return True

    def materialize_due(self, today: Optional[date] = None) -> BatchResult:
        """Charge every active subscription due today.

        Each subscription is processed in isolation: a failure is logged and
        the batch continues.
        """
        now = self.clock()
        today = today or now.date()
        if today != now.date():
            now = datetime.combine(today, now.time())

        result = BatchResult(job="bill_subscriptions")
        subscriptions = self.db.due_subscriptions(today)
        logger.info("Processing %d subscriptions due on %s", len(subscriptions), today)
        for subscription in subscriptions:
            try:
                if subscription.date_end is not None and subscription.date_end < today:
                    self.db.update_subscription(subscription.id, is_active=False)
                    logger.info("Subscription %s ended on %s", subscription.id, subscription.date_end)
                    result.skipped += 1
                    continue
                if self._materialize(subscription, today, now):
                    result.processed += 1
                else:
                    result.skipped += 1
            except Exception:
                logger.exception("Error processing subscription %s", subscription.id)
                result.failed += 1
        return result
