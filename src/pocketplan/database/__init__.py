"""Database layer for pocketplan."""

from pocketplan.database.base import (
    Database,
    WalletRepository,
    ExpenseRepository,
    SubscriptionRepository,
    LimitRepository,
    NotificationRepository,
)
from pocketplan.database.factories import create_sqlite_database, create_database

__all__ = [
    "Database",
    "WalletRepository",
    "ExpenseRepository",
    "SubscriptionRepository",
    "LimitRepository",
    "NotificationRepository",
    "create_sqlite_database",
    "create_database",
]
