"""Shared fan-out for notification jobs."""

import logging
from typing import Callable, Optional

from pocketplan.domain.entities import BatchResult, NotificationMessage, NotificationRecipient
from pocketplan.domain.insights import Insight
from pocketplan.domain.notifications import NotificationService

logger = logging.getLogger(__name__)


class BaseScheduler:
    """Runs a callback per recipient and delivers the results as one batch."""

    def __init__(self, notifications: NotificationService):
        self.notifications = notifications

    def for_each_recipient(
        self,
        job: str,
        notification_type: str,
        callback: Callable[[NotificationRecipient], Optional[Insight]],
    ) -> BatchResult:
        """Build a message for every recipient with ``notification_type`` enabled.

        A failing recipient is logged and counted; the rest of the batch still
        goes out. Messages already handed to the dispatcher are not recalled.
        """
        result = BatchResult(job=job)
        queue: dict[str, NotificationMessage] = {}

        for recipient in self.notifications.recipients(notification_type):
            try:
                insight = callback(recipient)
            except Exception:
                logger.exception("%s failed for user %s", job, recipient.user_id)
                result.failed += 1
                continue
            if insight is None:
                result.skipped += 1
                continue
            queue[recipient.user_id] = NotificationMessage(
                to=recipient.token,
                title=insight.title,
                body=insight.body,
                data=dict(insight.data, type=notification_type),
            )

        if queue:
            self.notifications.send(list(queue.values()))
            try:
                self.notifications.save_history(queue)
            except Exception:
                logger.exception("Failed to save %s notification history", job)
        result.processed = len(queue)
        return result
