"""
Tests for the notification inbox and queued delivery
"""
import pytest
from unittest.mock import Mock

from housing_trends.core.exceptions import NotificationNotFoundError
from housing_trends.models.notification import NotificationMessage, NotificationType
from housing_trends.modules.notifications.delivery import QueuedNotificationDelivery
from housing_trends.modules.notifications.service import NotificationService


@pytest.fixture
def notification_service(session_factory):
    return NotificationService(session_factory)


async def create(service, user_id="user-1", type=NotificationType.MARKET_UPDATE, subject="Market Update"):
    return await service.create_notification(
        user_id=user_id,
        type=type,
        subject=subject,
        content="Rents: 3 records, average 1,833.33.",
        metadata={"saved_search_id": "s1"}
    )


class TestNotificationService:

    @pytest.mark.asyncio
    async def test_create_and_list(self, notification_service):
        created = await create(notification_service)

        notifications = await notification_service.get_user_notifications("user-1")

        assert [n.id for n in notifications] == [created.id]
        assert notifications[0].read is False
        assert notifications[0].sent is False
        assert notifications[0].metadata == {"saved_search_id": "s1"}

    @pytest.mark.asyncio
    async def test_mark_as_read_and_unread_filter(self, notification_service):
        first = await create(notification_service)
        second = await create(notification_service)

        read = await notification_service.mark_as_read(first.id, "user-1")
        unread = await notification_service.get_user_notifications("user-1", unread_only=True)

        assert read.read is True
        assert read.read_at is not None
        assert [n.id for n in unread] == [second.id]

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self, notification_service):
        await create(notification_service)
        await create(notification_service)
        await create(notification_service, user_id="user-2")

        updated = await notification_service.mark_all_as_read("user-1")

        assert updated == 2
        stats = await notification_service.get_notification_stats("user-2")
        assert stats.unread == 1

    @pytest.mark.asyncio
    async def test_stats(self, notification_service):
        await create(notification_service)
        await create(notification_service, type=NotificationType.PRICE_ALERT)
        welcome = await create(notification_service, type=NotificationType.WELCOME)
        await notification_service.mark_as_read(welcome.id, "user-1")

        stats = await notification_service.get_notification_stats("user-1")

        assert stats.total == 3
        assert stats.unread == 2
        assert stats.by_type == {"market_update": 1, "price_alert": 1, "welcome": 1}

    @pytest.mark.asyncio
    async def test_other_users_notification_is_not_found(self, notification_service):
        created = await create(notification_service)

        with pytest.raises(NotificationNotFoundError):
            await notification_service.get_notification(created.id, "user-2")
        with pytest.raises(NotificationNotFoundError):
            await notification_service.delete_notification(created.id, "user-2")

        await notification_service.delete_notification(created.id, "user-1")
        assert await notification_service.get_user_notifications("user-1") == []


class TestQueuedNotificationDelivery:

    def message(self):
        return NotificationMessage(
            recipient_id="user-1",
            subject="Market Update: CA rentals",
            body="Rents: 5 records.",
            metadata={"saved_search_id": "s1"}
        )

    @pytest.mark.asyncio
    async def test_stores_inbox_entry_and_enqueues_email(self, notification_service):
        enqueue = Mock()
        delivery = QueuedNotificationDelivery(notification_service, enqueue=enqueue)

        accepted = await delivery.deliver(self.message())

        notifications = await notification_service.get_user_notifications("user-1")
        assert accepted is True
        assert len(notifications) == 1
        assert notifications[0].subject == "Market Update: CA rentals"
        enqueue.assert_called_once_with(notifications[0].id)

    @pytest.mark.asyncio
    async def test_enqueue_failure_is_reported_as_not_accepted(self, notification_service):
        delivery = QueuedNotificationDelivery(
            notification_service,
            enqueue=Mock(side_effect=ConnectionError("broker down"))
        )

        assert await delivery.deliver(self.message()) is False
