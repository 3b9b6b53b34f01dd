"""Wallet domain service."""

import logging
from collections import Counter
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from pocketplan.database.base import Database
from pocketplan.domain.entities import (
    Expense,
    ExpenseFilters,
    ExpenseType,
    Wallet,
    WalletStatistics,
)
from pocketplan.domain.errors import (
    ConflictError,
    InvalidRangeError,
    NotFoundError,
    ValidationError,
    invalid_range,
    wallet_already_exists,
    wallet_not_found,
)
from pocketplan.domain.expense import ExpenseService, _to_decimal
from pocketplan.utils.date_parser import end_of_day, start_of_day

logger = logging.getLogger(__name__)

BALANCE_EDIT_CATEGORY = "edit"
PAYCHECK_KEYWORDS = ("start", "end")


def validate_paycheck_date(value: str) -> str:
    """Accept an ISO date, "start", "end" or a day-of-month number."""
    value = value.strip()
    if value in PAYCHECK_KEYWORDS:
        return value
    if value.isdigit():
        if not 1 <= int(value) <= 31:
            raise ValidationError(f"Paycheck day must be between 1 and 31, got {value}")
        return value
    try:
        date.fromisoformat(value[:10])
    except ValueError as e:
        raise ValidationError(f"Invalid paycheck date: {value!r}") from e
    return value


class WalletService:
    """Service for wallet lifecycle, listings and statistics."""

    def __init__(
        self,
        db: Database,
        expense_service: Optional[ExpenseService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize wallet service.

        Args:
            db: Database instance
            expense_service: Service used to record balance-changing entries
            clock: Callable returning the current local time
        """
        self.db = db
        self.clock = clock or datetime.now
        self.expenses = expense_service or ExpenseService(db, clock=self.clock)

    def find_wallet(self, user_id: str) -> Optional[Wallet]:
        """Get the user's wallet, or None."""
        return self.db.get_wallet_by_user(user_id)

    def get_wallet(self, user_id: str) -> Wallet:
        """Get the user's wallet.

        Raises:
            NotFoundError: If the user has no wallet
        """
        wallet = self.db.get_wallet_by_user(user_id)
        if wallet is None:
            raise NotFoundError(wallet_not_found(user_id))
        return wallet

    def create_wallet(self, user_id: str, initial_balance: Decimal = Decimal("0")) -> Wallet:
        """Create the user's wallet.

        The starting balance is recorded as an entry so that the balance
        stays equal to the sum of the wallet's entries.

        Raises:
            ConflictError: If the user already has a wallet
        """
        if not user_id:
            raise ValidationError("User id must not be empty")
        initial_balance = _to_decimal(initial_balance, "initial balance")

        with self.db.atomic():
            if self.db.get_wallet_by_user(user_id) is not None:
                raise ConflictError(wallet_already_exists(user_id))
            wallet_id = self.db.create_wallet(user_id)
            self.expenses.record_entry(
                wallet_id,
                amount=abs(initial_balance),
                type=ExpenseType.INCOME if initial_balance >= 0 else ExpenseType.EXPENSE,
                description=f"Initialized wallet with {initial_balance}",
                category=BALANCE_EDIT_CATEGORY,
                note="",
            )
            logger.info("Created wallet %s for user %s", wallet_id, user_id)
            return self.db.get_wallet(wallet_id)

    def edit_balance(self, user_id: str, new_balance: Decimal) -> Wallet:
        """Set the balance to ``new_balance`` through an adjustment entry.

        Creates the wallet when the user has none yet.

        Raises:
            ValidationError: If ``new_balance`` is negative
        """
        new_balance = _to_decimal(new_balance, "balance")
        if new_balance < 0:
            raise ValidationError(f"Balance must not be negative, got {new_balance}")

        with self.db.atomic():
            wallet = self.db.get_wallet_by_user(user_id, for_update=True)
            if wallet is None:
                return self.create_wallet(user_id, new_balance)

            difference = new_balance - wallet.balance
            if difference != 0:
                self.expenses.record_entry(
                    wallet.id,
                    amount=abs(difference),
                    type=ExpenseType.INCOME if difference > 0 else ExpenseType.EXPENSE,
                    description=f"Balance edited to {new_balance}",
                    category=BALANCE_EDIT_CATEGORY,
                    note=f"Previous balance {wallet.balance}",
                )
            return self.db.get_wallet(wallet.id)

    def update_settings(
        self,
        user_id: str,
        income: Optional[Decimal] = None,
        monthly_percentage_target: Optional[Decimal] = None,
        paycheck_date: Optional[str] = None,
    ) -> Wallet:
        """Update income, savings target or paycheck date.

        Raises:
            NotFoundError: If the user has no wallet
            ValidationError: If a value is out of range
        """
        wallet = self.get_wallet(user_id)
        if income is not None:
            income = _to_decimal(income, "income")
            if income < 0:
                raise ValidationError(f"Income must not be negative, got {income}")
        if monthly_percentage_target is not None:
            monthly_percentage_target = _to_decimal(monthly_percentage_target, "percentage target")
            if not 0 <= monthly_percentage_target <= 100:
                raise ValidationError(
                    f"Monthly percentage target must be between 0 and 100, got {monthly_percentage_target}"
                )
        if paycheck_date is not None and paycheck_date != "":
            paycheck_date = validate_paycheck_date(paycheck_date)

        self.db.update_wallet_settings(
            wallet.id,
            income=income,
            monthly_percentage_target=monthly_percentage_target,
            paycheck_date=paycheck_date,
        )
        return self.db.get_wallet(wallet.id)

    def list_expenses(
        self,
        user_id: str,
        filters: Optional[ExpenseFilters] = None,
        skip: int = 0,
        take: Optional[int] = 10,
    ) -> list[Expense]:
        """List the caller's realized entries, newest first.

        Raises:
            NotFoundError: If the user has no wallet
            InvalidRangeError: If the filter's date range is reversed
        """
        filters = filters or ExpenseFilters()
        if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
            raise InvalidRangeError(invalid_range(filters.date_from, filters.date_to))
        wallet = self.get_wallet(user_id)
        return self.db.list_expenses(wallet.id, filters, skip=skip, take=take)

    def get_statistics(self, user_id: str, start: date, end: date) -> WalletStatistics:
        """Aggregate the caller's realized entries between two days (inclusive).

        ``total``, ``average``, ``max``, ``min`` and ``count`` cover expense
        entries; ``income`` and ``expense`` are the per-type sums.

        Raises:
            NotFoundError: If the user has no wallet
            InvalidRangeError: If start is after end
        """
        if start > end:
            raise InvalidRangeError(invalid_range(start, end))
        wallet = self.get_wallet(user_id)
        entries = self.db.expenses_in_range(wallet.id, start_of_day(start), end_of_day(end))

        spent = [e for e in entries if e.type == ExpenseType.EXPENSE]
        earned = [e for e in entries if e.type == ExpenseType.INCOME]
        amounts = [e.amount for e in spent]
        total = sum(amounts, Decimal("0"))

        categories = Counter(e.category for e in spent if e.category)
        ranked = categories.most_common()

        return WalletStatistics(
            total=total,
            average=(total / len(amounts)).quantize(Decimal("0.01")) if amounts else Decimal("0"),
            max=max(amounts, default=Decimal("0")),
            min=min(amounts, default=Decimal("0")),
            count=len(spent),
            most_common_category=ranked[0][0] if ranked else None,
            least_common_category=ranked[-1][0] if ranked else None,
            income=sum((e.amount for e in earned), Decimal("0")),
            expense=total,
            last_balance=wallet.balance,
        )

    def month_total(
        self, user_id: str, year: int, month: int, type: ExpenseType = ExpenseType.EXPENSE
    ) -> Decimal:
        """Sum of one entry type within a calendar month."""
        if not 1 <= month <= 12:
            raise ValidationError(f"Month must be between 1 and 12, got {month}")
        wallet = self.get_wallet(user_id)
        first = date(year, month, 1)
        last = first + relativedelta(months=1, days=-1)
        return self.db.sum_expenses(wallet.id, start_of_day(first), end_of_day(last), type)
