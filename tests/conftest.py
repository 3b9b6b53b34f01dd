"""Shared pytest fixtures for pocketplan tests."""

import tempfile
import os
from datetime import datetime, timedelta
from decimal import Decimal
import pytest

from pocketplan.database.factories import create_sqlite_database
from pocketplan.domain.entities import DeliveryTicket
from pocketplan.domain.expense import ExpenseService
from pocketplan.domain.insights import InsightService
from pocketplan.domain.limits import LimitService
from pocketplan.domain.notifications import NotificationDispatcher, NotificationService
from pocketplan.domain.statistics import StatisticsService
from pocketplan.domain.subscription import SubscriptionService
from pocketplan.domain.wallet import WalletService


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.now = now


class RecordingDispatcher(NotificationDispatcher):
    """Dispatcher that keeps every batch it was asked to send."""

    def __init__(self):
        self.batches = []

    def send(self, messages):
        self.batches.append(list(messages))
        return [DeliveryTicket(to=m.to, status="ok") for m in messages]

    @property
    def messages(self):
        return [m for batch in self.batches for m in batch]


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def clock():
    """Clock fixed at Wednesday 2025-03-12 10:00."""
    return FixedClock(datetime(2025, 3, 12, 10, 0))


@pytest.fixture
def expense_service(temp_db, clock):
    return ExpenseService(temp_db, clock=clock)


@pytest.fixture
def wallet_service(temp_db, expense_service, clock):
    return WalletService(temp_db, expense_service=expense_service, clock=clock)


@pytest.fixture
def subscription_service(temp_db, expense_service, clock):
    return SubscriptionService(temp_db, expense_service=expense_service, clock=clock)


@pytest.fixture
def limit_service(temp_db, clock):
    return LimitService(temp_db, clock=clock)


@pytest.fixture
def statistics_service(temp_db):
    return StatisticsService(temp_db)


@pytest.fixture
def insight_service(temp_db, clock):
    return InsightService(temp_db, clock=clock)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def notification_service(temp_db, dispatcher):
    return NotificationService(temp_db, dispatcher)


@pytest.fixture
def wallet(wallet_service):
    """Wallet of user 'alice' holding 1000."""
    return wallet_service.create_wallet("alice", Decimal("1000"))


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
