from abc import ABC, abstractmethod
from typing import Callable, Optional
import asyncio
from housing_trends.models.notification import Notification, NotificationMessage
from housing_trends.modules.notifications.service import NotificationService
import logging

logger = logging.getLogger(__name__)


class NotificationDelivery(ABC):
    """Accepts notifications for delivery to a user"""

    @abstractmethod
    async def deliver(self, message: NotificationMessage) -> bool:
        """Return True once the message is accepted for delivery"""
        raise NotImplementedError


def _enqueue_email(notification_id: str):
    # Imported lazily so the API process does not need the Celery app at import time
    from housing_trends.modules.notifications.tasks import send_notification_email
    send_notification_email.delay(notification_id)


class QueuedNotificationDelivery(NotificationDelivery):
    """Stores an inbox notification and queues its email on Celery"""

    def __init__(
        self,
        notification_service: NotificationService,
        enqueue: Optional[Callable[[str], None]] = None
    ):
        self.notification_service = notification_service
        self.enqueue = enqueue or _enqueue_email

    def _store_and_enqueue(self, message: NotificationMessage) -> Notification:
        notification = self.notification_service.add_notification(
            user_id=message.recipient_id,
            type=message.type,
            subject=message.subject,
            content=message.body,
            metadata=message.metadata
        )
        self.enqueue(notification.id)
        logger.info(f"Queued notification {notification.id} for user {message.recipient_id}")
        return notification

    async def send(self, message: NotificationMessage) -> Notification:
        """
        Store and queue a message, returning the inbox entry.

        The database insert and the broker publish both block, so they run in a
        worker thread and a caller's timeout can actually fire.
        """
        return await asyncio.to_thread(self._store_and_enqueue, message)

    async def deliver(self, message: NotificationMessage) -> bool:
        try:
            await self.send(message)
            return True
        except Exception as e:
            logger.error(f"Failed to deliver notification to user {message.recipient_id}: {e}")
            return False
