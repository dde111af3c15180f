import asyncio
import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient
from housing_trends.main import app
from housing_trends.api.dependencies import (
    get_session_factory, get_notification_delivery, get_lock_manager
)
from housing_trends.modules.notifications.delivery import QueuedNotificationDelivery
from housing_trends.modules.notifications.locks import LocalLockManager
from housing_trends.modules.notifications.service import NotificationService

OWNER = {"X-User-Id": "user-1"}
OTHER = {"X-User-Id": "user-2"}


@pytest.fixture
def queued(seeded_session_factory):
    """Delivery that stores inbox rows but records enqueued ids instead of calling Celery"""
    enqueued = []
    delivery = QueuedNotificationDelivery(NotificationService(seeded_session_factory), enqueue=enqueued.append)
    return delivery, enqueued


@pytest.fixture
def client(seeded_session_factory, queued):
    delivery, _ = queued
    app.dependency_overrides[get_session_factory] = lambda: seeded_session_factory
    app.dependency_overrides[get_notification_delivery] = lambda: delivery
    app.dependency_overrides[get_lock_manager] = LocalLockManager
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def inbox(client, seeded_session_factory):
    """Two notifications for user-1"""
    service = NotificationService(seeded_session_factory)

    async def fill():
        first = await service.create_notification("user-1", "market_update", "Update 1", "Body 1")
        second = await service.create_notification("user-1", "price_alert", "Update 2", "Body 2")
        return first, second

    return asyncio.run(fill())


class TestNotificationAPI:

    def test_requires_caller(self, client):
        assert client.get("/api/v1/notifications/").status_code == 401

    def test_list_and_stats(self, client, inbox):
        listed = client.get("/api/v1/notifications/", headers=OWNER)
        stats = client.get("/api/v1/notifications/stats", headers=OWNER)

        assert listed.status_code == 200
        assert {n["id"] for n in listed.json()} == {n.id for n in inbox}
        assert stats.json() == {
            "total": 2, "unread": 2, "by_type": {"market_update": 1, "price_alert": 1}
        }

    def test_mark_read_and_unread_only(self, client, inbox):
        first, second = inbox

        response = client.put(f"/api/v1/notifications/{first.id}/read", headers=OWNER)
        unread = client.get("/api/v1/notifications/?unread_only=true", headers=OWNER)

        assert response.status_code == 200
        assert response.json()["read"] is True
        assert [n["id"] for n in unread.json()] == [second.id]

    def test_mark_all_read(self, client, inbox):
        response = client.put("/api/v1/notifications/read-all", headers=OWNER)

        assert response.status_code == 200
        assert response.json()["updated"] == 2
        assert client.get("/api/v1/notifications/stats", headers=OWNER).json()["unread"] == 0

    def test_other_user_gets_not_found(self, client, inbox):
        first, _ = inbox

        assert client.get(f"/api/v1/notifications/{first.id}", headers=OTHER).status_code == 404
        assert client.put(f"/api/v1/notifications/{first.id}/read", headers=OTHER).status_code == 404
        assert client.delete(f"/api/v1/notifications/{first.id}", headers=OTHER).status_code == 404

    def test_delete(self, client, inbox):
        first, _ = inbox

        assert client.delete(f"/api/v1/notifications/{first.id}", headers=OWNER).status_code == 200
        assert client.get(f"/api/v1/notifications/{first.id}", headers=OWNER).status_code == 404

    def test_send_test_notification(self, client, queued):
        _, enqueued = queued

        response = client.post("/api/v1/notifications/test", headers=OWNER)

        assert response.status_code == 201
        created = response.json()
        assert created["type"] == "system"
        assert created["subject"] == "Test Notification"
        assert enqueued == [created["id"]]
        assert client.get(f"/api/v1/notifications/{created['id']}", headers=OWNER).status_code == 200

    def test_send_test_notification_requires_caller(self, client):
        assert client.post("/api/v1/notifications/test").status_code == 401


class TestSchedulerTrigger:

    def test_tick_fires_due_search_into_inbox(self, client, queued):
        _, enqueued = queued
        client.post("/api/v1/search/saved", json={
            "name": "CA rentals",
            "filters": {"regions": ["CA"], "dataType": "rent"},
            "notifications_enabled": True
        }, headers=OWNER)

        response = client.post("/api/v1/notifications/tick")

        assert response.status_code == 200
        report = response.json()
        assert report["due_count"] == 1
        assert report["results"][0]["outcome"] == "fired"

        inbox = client.get("/api/v1/notifications/", headers=OWNER).json()
        assert len(inbox) == 1
        assert inbox[0]["subject"] == "Market Update: CA rentals"
        assert enqueued == [inbox[0]["id"]]

        # Fired searches are not due again in the same window
        assert client.post("/api/v1/notifications/tick").json()["due_count"] == 0

    def test_tick_requires_token_when_configured(self, client):
        with patch("housing_trends.api.routers.notifications.settings") as mock_settings:
            mock_settings.SCHEDULER_TRIGGER_TOKEN = "secret"

            assert client.post("/api/v1/notifications/tick").status_code == 403
            assert client.post(
                "/api/v1/notifications/tick", headers={"X-Scheduler-Token": "wrong"}
            ).status_code == 403
            assert client.post(
                "/api/v1/notifications/tick", headers={"X-Scheduler-Token": "secret"}
            ).status_code == 200
