"""Wallet limit domain service."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from pocketplan.database.base import Database
from pocketplan.domain.entities import ExpenseType, LimitRange, WalletLimit
from pocketplan.domain.errors import (
    NotFoundError,
    ValidationError,
    limit_not_found,
    wallet_not_found,
)
from pocketplan.domain.expense import _to_decimal
from pocketplan.utils.date_parser import end_of_day, start_of_day


def range_bounds(range: LimitRange, today: date) -> tuple[date, date]:
    """First and last day of the period containing ``today``."""
    range = LimitRange(range)
    if range == LimitRange.DAILY:
        return today, today
    if range == LimitRange.WEEKLY:
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    if range == LimitRange.MONTHLY:
        start = today.replace(day=1)
        return start, start + relativedelta(months=1, days=-1)
    start = today.replace(month=1, day=1)
    return start, today.replace(month=12, day=31)


class LimitService:
    """Service for per-category spending limits."""

    def __init__(self, db: Database, clock: Optional[Callable[[], datetime]] = None):
        """Initialize limit service.

        Args:
            db: Database instance
            clock: Callable returning the current local time
        """
        self.db = db
        self.clock = clock or datetime.now

    def _wallet_id(self, user_id: str) -> int:
        wallet = self.db.get_wallet_by_user(user_id)
        if wallet is None:
            raise NotFoundError(wallet_not_found(user_id))
        return wallet.id

    def _owned_limit(self, user_id: str, limit_id: int) -> WalletLimit:
        limit = self.db.get_limit(limit_id)
        if limit is None or limit.wallet_id != self._wallet_id(user_id):
            raise NotFoundError(limit_not_found(limit_id))
        return limit

    def create_limit(
        self,
        user_id: str,
        category: str,
        amount: Decimal,
        range: LimitRange = LimitRange.MONTHLY,
        is_auto_generated: bool = False,
    ) -> WalletLimit:
        """Create a spending limit.

        Raises:
            NotFoundError: If the user has no wallet
            ValidationError: If the amount is not positive or the range is unknown
        """
        amount = _to_decimal(amount, "amount")
        if amount <= 0:
            raise ValidationError(f"Limit amount must be positive, got {amount}")
        if not category:
            raise ValidationError("Limit category must not be empty")
        try:
            range = LimitRange(range)
        except ValueError as e:
            raise ValidationError(f"Unknown limit range: {range!r}") from e
        limit_id = self.db.create_limit(
            self._wallet_id(user_id), category, amount, range, is_auto_generated
        )
        return self.db.get_limit(limit_id)

    def list_limits(self, user_id: str, range: Optional[LimitRange] = None) -> list[WalletLimit]:
        return self.db.list_limits(self._wallet_id(user_id), range)

    def update_limit(
        self,
        user_id: str,
        limit_id: int,
        amount: Optional[Decimal] = None,
        category: Optional[str] = None,
    ) -> WalletLimit:
        """Change a limit's amount or category. Edited limits stop being auto-generated."""
        self._owned_limit(user_id, limit_id)
        changes: dict = {"is_auto_generated": False}
        if amount is not None:
            amount = _to_decimal(amount, "amount")
            if amount <= 0:
                raise ValidationError(f"Limit amount must be positive, got {amount}")
            changes["amount"] = amount
        if category is not None:
            changes["category"] = category
        self.db.update_limit(limit_id, **changes)
        return self.db.get_limit(limit_id)

    def delete_limit(self, user_id: str, limit_id: int) -> None:
        self._owned_limit(user_id, limit_id)
        self.db.delete_limit(limit_id)

    def limit_usage(
        self, user_id: str, range: LimitRange = LimitRange.MONTHLY, today: Optional[date] = None
    ) -> list[tuple[WalletLimit, Decimal]]:
        """Each limit of a range with the amount already spent in its category this period."""
        wallet_id = self._wallet_id(user_id)
        today = today or self.clock().date()
        start, end = range_bounds(range, today)
        entries = self.db.expenses_in_range(
            wallet_id, start_of_day(start), end_of_day(end), ExpenseType.EXPENSE
        )
        usage = []
        for limit in self.db.list_limits(wallet_id, range):
            spent = sum(
                (e.amount for e in entries if e.category.startswith(limit.category)),
                Decimal("0"),
            )
            usage.append((limit, spent))
        return usage
