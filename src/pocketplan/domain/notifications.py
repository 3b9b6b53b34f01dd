"""Notification preferences, dispatch boundary and history."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from pocketplan.database.base import Database
from pocketplan.domain.entities import (
    DeliveryTicket,
    NotificationMessage,
    NotificationRecipient,
    NotificationRecord,
)
from pocketplan.domain.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = (
    "moneyLeftToday",
    "budgetAlerts",
    "subscriptionReminders",
    "dailyInsights",
    "spendingPatterns",
    "unusualSpending",
    "weeklyReport",
    "monthlyReport",
    "expenseAnalysis",
)


class NotificationDispatcher(ABC):
    """Delivers push messages to devices."""

    @abstractmethod
    def send(self, messages: list[NotificationMessage]) -> list[DeliveryTicket]:
        """Send a batch of messages. Returns one ticket per message."""
        pass


class LoggingDispatcher(NotificationDispatcher):
    """Dispatcher that writes messages to the log instead of a push service."""

    def send(self, messages: list[NotificationMessage]) -> list[DeliveryTicket]:
        tickets = []
        for message in messages:
            logger.info("Notification to %s: %s | %s", message.to[:10], message.title, message.body)
            tickets.append(DeliveryTicket(to=message.to, status="ok"))
        return tickets


def is_notification_enabled(recipient: Optional[NotificationRecipient], notification_type: str) -> bool:
    """A recipient gets a type unless disabled globally or for that type."""
    if recipient is None or not recipient.is_enabled or not recipient.token:
        return False
    return recipient.enabled_notifications.get(notification_type, True) is not False


class NotificationService:
    """Service for notification settings, dispatch and history."""

    def __init__(self, db: Database, dispatcher: Optional[NotificationDispatcher] = None):
        """Initialize notification service.

        Args:
            db: Database instance
            dispatcher: Push delivery backend (defaults to LoggingDispatcher)
        """
        self.db = db
        self.dispatcher = dispatcher or LoggingDispatcher()

    def register_token(self, user_id: str, token: str) -> NotificationRecipient:
        if not token:
            raise ValidationError("Push token must not be empty")
        self.db.upsert_recipient(user_id, token)
        return self.db.get_recipient(user_id)

    def get_settings(self, user_id: str) -> NotificationRecipient:
        recipient = self.db.get_recipient(user_id)
        if recipient is None:
            raise NotFoundError(f"No notification settings for user '{user_id}'")
        return recipient

    def set_enabled(self, user_id: str, enabled: bool) -> NotificationRecipient:
        self.get_settings(user_id)
        self.db.update_recipient(user_id, is_enabled=enabled)
        return self.db.get_recipient(user_id)

    def set_notification_type(self, user_id: str, notification_type: str, enabled: bool) -> NotificationRecipient:
        """Toggle one notification type for a user.

        Raises:
            ValidationError: If the type is unknown
        """
        if notification_type not in NOTIFICATION_TYPES:
            raise ValidationError(
                f"Unknown notification type '{notification_type}'. "
                f"Expected one of: {', '.join(NOTIFICATION_TYPES)}"
            )
        recipient = self.get_settings(user_id)
        preferences = dict(recipient.enabled_notifications)
        preferences[notification_type] = enabled
        self.db.update_recipient(user_id, enabled_notifications=preferences)
        return self.db.get_recipient(user_id)

    def recipients(self, notification_type: str) -> list[NotificationRecipient]:
        """Users with a token who have ``notification_type`` enabled."""
        return [r for r in self.db.list_recipients() if is_notification_enabled(r, notification_type)]

    def send(self, messages: list[NotificationMessage]) -> list[DeliveryTicket]:
        """Hand a batch to the dispatcher. Delivery failures are logged, not retried."""
        if not messages:
            return []
        try:
            tickets = self.dispatcher.send(messages)
        except Exception:
            logger.exception("Failed to send %d notifications", len(messages))
            return [DeliveryTicket(to=m.to, status="error", message="dispatch failed") for m in messages]
        for ticket in tickets:
            if not ticket.ok:
                logger.error("Delivery to %s failed: %s", ticket.to[:10], ticket.message)
        return tickets

    def save_history(self, queue: dict[str, NotificationMessage]) -> None:
        self.db.save_notifications(list(queue.items()))

    def history(self, user_id: str, limit: int = 20) -> list[NotificationRecord]:
        return self.db.list_notification_history(user_id, limit)
