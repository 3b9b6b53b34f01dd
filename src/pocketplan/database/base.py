"""Abstract repository interfaces for the ledger store.

Each aggregate has its own repository interface; ``Database`` combines them
with connection lifecycle and the unit-of-work boundary (``atomic``).
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from pocketplan.domain.entities import (
    Wallet,
    Expense,
    ExpenseType,
    ExpenseFilters,
    ExpenseLocation,
    SubExpense,
    Subscription,
    BillingCycle,
    WalletLimit,
    LimitRange,
    NotificationRecipient,
    NotificationMessage,
    NotificationRecord,
)


class WalletRepository(ABC):
    """Persistence of wallets and their balance."""

    @abstractmethod
    def create_wallet(
        self,
        user_id: str,
        income: Decimal = Decimal("0"),
        monthly_percentage_target: Decimal = Decimal("0"),
        paycheck_date: Optional[str] = None,
    ) -> int:
        """Create a wallet with a zero balance. Returns wallet ID."""
        pass

    @abstractmethod
    def get_wallet(self, wallet_id: int, for_update: bool = False) -> Optional[Wallet]:
        """Get wallet by ID, optionally locking the row."""
        pass

    @abstractmethod
    def get_wallet_by_user(self, user_id: str, for_update: bool = False) -> Optional[Wallet]:
        """Get the wallet owned by a user."""
        pass

    @abstractmethod
    def list_wallets(self) -> list[Wallet]:
        """List all wallets."""
        pass

    @abstractmethod
    def list_wallets_with_paycheck(self) -> list[Wallet]:
        """List wallets that have a paycheck date configured."""
        pass

    @abstractmethod
    def update_wallet_settings(
        self,
        wallet_id: int,
        income: Optional[Decimal] = None,
        monthly_percentage_target: Optional[Decimal] = None,
        paycheck_date: Optional[str] = None,
    ) -> None:
        """Update non-balance wallet fields."""
        pass

    @abstractmethod
    def apply_balance_delta(self, wallet_id: int, delta: Decimal) -> Decimal:
        """Atomically add ``delta`` to the stored balance. Returns the new balance."""
        pass


class ExpenseRepository(ABC):
    """Persistence of ledger entries, their line items and locations."""

    @abstractmethod
    def create_expense(
        self,
        wallet_id: int,
        amount: Decimal,
        type: ExpenseType,
        description: str,
        category: str,
        date: datetime,
        schedule: bool,
        balance_before_interaction: Decimal,
        subscription_id: Optional[int] = None,
        note: Optional[str] = None,
        shop: Optional[str] = None,
        tags: Optional[list[str]] = None,
        spontaneous_rate: Decimal = Decimal("0"),
        location_id: Optional[int] = None,
    ) -> int:
        """Insert an entry. Returns expense ID."""
        pass

    @abstractmethod
    def get_expense(self, expense_id: int, for_update: bool = False) -> Optional[Expense]:
        """Get expense by ID including its sub-expenses."""
        pass

    @abstractmethod
    def update_expense(self, expense_id: int, **fields: Any) -> None:
        """Overwrite the given expense columns."""
        pass

    @abstractmethod
    def delete_expense(self, expense_id: int) -> None:
        """Delete an expense row."""
        pass

    @abstractmethod
    def list_expenses(
        self, wallet_id: int, filters: ExpenseFilters, skip: int = 0, take: Optional[int] = None
    ) -> list[Expense]:
        """List realized entries of a wallet, newest first."""
        pass

    @abstractmethod
    def list_all_expenses(self, wallet_id: int) -> list[Expense]:
        """List every entry of a wallet, scheduled ones included."""
        pass

    @abstractmethod
    def expenses_in_range(
        self,
        wallet_id: int,
        start: datetime,
        end: datetime,
        type: Optional[ExpenseType] = None,
    ) -> list[Expense]:
        """Realized entries with ``start <= date <= end``, oldest first."""
        pass

    @abstractmethod
    def sum_expenses(
        self,
        wallet_id: int,
        start: datetime,
        end: datetime,
        type: ExpenseType = ExpenseType.EXPENSE,
    ) -> Decimal:
        """Sum of realized entry amounts of one type in a date range."""
        pass

    @abstractmethod
    def due_scheduled_expenses(self, before: datetime) -> list[Expense]:
        """Scheduled entries dated before ``before``."""
        pass

    @abstractmethod
    def mark_realized(self, expense_id: int) -> bool:
        """Flip ``schedule`` to false if still set. Returns True if this call flipped it."""
        pass

    @abstractmethod
    def latest_subscription_expense(self, subscription_id: int) -> Optional[Expense]:
        """Most recent entry linked to a subscription."""
        pass

    @abstractmethod
    def add_subexpense(
        self, expense_id: int, description: str, amount: Decimal, category: Optional[str] = None
    ) -> int:
        """Add a line item to an expense. Returns sub-expense ID."""
        pass

    @abstractmethod
    def get_subexpense(self, subexpense_id: int) -> Optional[SubExpense]:
        """Get sub-expense by ID."""
        pass

    @abstractmethod
    def list_subexpenses(self, expense_id: int) -> list[SubExpense]:
        """List line items of an expense."""
        pass

    @abstractmethod
    def update_subexpense(self, subexpense_id: int, **fields: Any) -> None:
        """Overwrite the given sub-expense columns."""
        pass

    @abstractmethod
    def delete_subexpense(self, subexpense_id: int) -> None:
        """Delete a line item."""
        pass

    @abstractmethod
    def create_location(
        self,
        name: str,
        kind: Optional[str] = None,
        longitude: Optional[float] = None,
        latitude: Optional[float] = None,
    ) -> int:
        """Create a location. Returns location ID."""
        pass

    @abstractmethod
    def get_location(self, location_id: int) -> Optional[ExpenseLocation]:
        """Get location by ID."""
        pass

    @abstractmethod
    def find_locations(
        self,
        name: Optional[str] = None,
        longitude: Optional[float] = None,
        latitude: Optional[float] = None,
        radius: float = 0.1,
    ) -> list[ExpenseLocation]:
        """Find locations by name fragment and/or coordinate box."""
        pass


class SubscriptionRepository(ABC):
    """Persistence of subscriptions and their billing cursor."""

    @abstractmethod
    def create_subscription(
        self,
        wallet_id: int,
        amount: Decimal,
        description: str,
        billing_cycle: BillingCycle,
        date_start: date,
        next_billing_date: date,
        date_end: Optional[date] = None,
        is_active: bool = True,
    ) -> int:
        """Create a subscription. Returns subscription ID."""
        pass

    @abstractmethod
    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        """Get subscription by ID."""
        pass

    @abstractmethod
    def list_subscriptions(self, wallet_id: int) -> list[Subscription]:
        """List a wallet's subscriptions."""
        pass

    @abstractmethod
    def update_subscription(self, subscription_id: int, **fields: Any) -> None:
        """Overwrite the given subscription columns."""
        pass

    @abstractmethod
    def due_subscriptions(self, on: date) -> list[Subscription]:
        """Active subscriptions whose next billing date is ``on``."""
        pass

    @abstractmethod
    def subscriptions_between(self, wallet_id: int, start: date, end: date) -> list[Subscription]:
        """Active subscriptions of a wallet billing within ``[start, end]``."""
        pass

    @abstractmethod
    def claim_billing_cycle(self, subscription_id: int, expected: date, next_date: date) -> bool:
        """Advance the billing date from ``expected`` to ``next_date``.

        Returns True only for the caller that performed the advance; a second
        claim for the same ``expected`` date returns False.
        """
        pass


class LimitRepository(ABC):
    """Persistence of spending limits."""

    @abstractmethod
    def create_limit(
        self,
        wallet_id: int,
        category: str,
        amount: Decimal,
        range: LimitRange,
        is_auto_generated: bool = False,
    ) -> int:
        """Create a limit. Returns limit ID."""
        pass

    @abstractmethod
    def get_limit(self, limit_id: int) -> Optional[WalletLimit]:
        """Get limit by ID."""
        pass

    @abstractmethod
    def list_limits(self, wallet_id: int, range: Optional[LimitRange] = None) -> list[WalletLimit]:
        """List a wallet's limits, optionally for one range."""
        pass

    @abstractmethod
    def update_limit(self, limit_id: int, **fields: Any) -> None:
        """Overwrite the given limit columns."""
        pass

    @abstractmethod
    def delete_limit(self, limit_id: int) -> None:
        """Delete a limit."""
        pass


class NotificationRepository(ABC):
    """Persistence of notification recipients and history."""

    @abstractmethod
    def upsert_recipient(self, user_id: str, token: Optional[str]) -> int:
        """Create or update a user's push token. Returns recipient ID."""
        pass

    @abstractmethod
    def get_recipient(self, user_id: str) -> Optional[NotificationRecipient]:
        """Get notification settings of a user."""
        pass

    @abstractmethod
    def list_recipients(self) -> list[NotificationRecipient]:
        """List every user with notification settings."""
        pass

    @abstractmethod
    def update_recipient(
        self,
        user_id: str,
        is_enabled: Optional[bool] = None,
        enabled_notifications: Optional[dict[str, bool]] = None,
    ) -> None:
        """Update a user's notification preferences."""
        pass

    @abstractmethod
    def save_notifications(self, entries: list[tuple[str, NotificationMessage]]) -> None:
        """Record dispatched messages keyed by user ID."""
        pass

    @abstractmethod
    def list_notification_history(self, user_id: str, limit: int = 20) -> list[NotificationRecord]:
        """Most recent dispatched messages of a user."""
        pass


class Database(
    WalletRepository,
    ExpenseRepository,
    SubscriptionRepository,
    LimitRepository,
    NotificationRepository,
):
    """Abstract database interface for pocketplan."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Run the enclosed repository calls as one all-or-nothing unit.

        Nested calls join the outermost unit. The unit is bound to the
        calling thread.
        """
        pass
