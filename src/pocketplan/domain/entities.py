"""Domain model entities for pocketplan.

These are pure data classes representing the ledger concepts, independent of
the database schema. The persistence layer converts its rows into these
objects through the mapper functions in ``pocketplan.database.mappers``.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class ExpenseType(str, Enum):
    """Kind of ledger entry."""

    EXPENSE = "expense"
    INCOME = "income"
    REFUNDED = "refunded"


class BillingCycle(str, Enum):
    """Recurrence period of a subscription."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class LimitRange(str, Enum):
    """Period a spending limit applies to."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class Wallet:
    """Per-user money container.

    ``balance`` is authoritative and always equals the sum of the balance
    effects of the wallet's realized entries.
    """

    id: int
    user_id: str
    balance: Decimal
    income: Decimal
    monthly_percentage_target: Decimal
    paycheck_date: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class SubExpense:
    """Line item belonging to an expense."""

    id: int
    expense_id: int
    description: str
    amount: Decimal
    category: Optional[str]


@dataclass(frozen=True)
class ExpenseLocation:
    """Place where an expense happened."""

    id: int
    name: str
    kind: Optional[str]
    longitude: Optional[float]
    latitude: Optional[float]


@dataclass(frozen=True)
class Expense:
    """Ledger entry domain entity."""

    id: int
    wallet_id: int
    amount: Decimal
    type: ExpenseType
    description: str
    category: str
    date: datetime
    schedule: bool
    balance_before_interaction: Decimal
    subscription_id: Optional[int]
    note: Optional[str]
    shop: Optional[str]
    tags: tuple[str, ...]
    spontaneous_rate: Decimal
    location_id: Optional[int]
    created_at: datetime
    subexpenses: tuple[SubExpense, ...] = ()


@dataclass(frozen=True)
class Subscription:
    """Recurring charge template."""

    id: int
    wallet_id: int
    amount: Decimal
    description: str
    billing_cycle: BillingCycle
    date_start: date
    date_end: Optional[date]
    is_active: bool
    next_billing_date: date
    created_at: datetime


@dataclass(frozen=True)
class WalletLimit:
    """Spending cap for a category over a range."""

    id: int
    wallet_id: int
    category: str
    amount: Decimal
    range: LimitRange
    is_auto_generated: bool
    created_at: datetime


@dataclass(frozen=True)
class NotificationRecipient:
    """Push notification settings of a user."""

    id: int
    user_id: str
    token: Optional[str]
    is_enabled: bool
    enabled_notifications: dict[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class NotificationMessage:
    """A message handed to the notification dispatcher."""

    to: str
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NotificationRecord:
    """A previously dispatched notification."""

    id: int
    user_id: str
    title: str
    body: str
    data: dict[str, Any]
    sent_at: datetime


@dataclass(frozen=True)
class DeliveryTicket:
    """Dispatcher response for a single message."""

    to: str
    status: str
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass(frozen=True)
class ExpenseFilters:
    """Filters accepted by expense listings."""

    title: Optional[str] = None
    categories: tuple[str, ...] = ()
    exact_category: bool = False
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    amount_min: Optional[Decimal] = None
    amount_max: Optional[Decimal] = None
    type: Optional[ExpenseType] = None


@dataclass(frozen=True)
class WalletStatistics:
    """Aggregates over a wallet's realized entries in a date range."""

    total: Decimal
    average: Decimal
    max: Decimal
    min: Decimal
    count: int
    most_common_category: Optional[str]
    least_common_category: Optional[str]
    income: Decimal
    expense: Decimal
    last_balance: Decimal


@dataclass
class BatchResult:
    """Outcome counters of a batch job run."""

    job: str
    processed: int = 0
    skipped: int = 0
    failed: int = 0
