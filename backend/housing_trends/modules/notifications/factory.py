from housing_trends.core.config import settings
from housing_trends.core.database import SessionLocal
from housing_trends.modules.notifications.alerts import AlertService
from housing_trends.modules.notifications.delivery import QueuedNotificationDelivery
from housing_trends.modules.notifications.locks import LocalLockManager, RedisLockManager
from housing_trends.modules.notifications.scheduler import NotificationScheduler
from housing_trends.modules.notifications.service import NotificationService
from housing_trends.modules.saved_searches.sql_store import SqlSavedSearchStore
from housing_trends.modules.search.engine import FilterEngine
from housing_trends.modules.search.sql_repository import SqlRecordRepository


def build_lock_manager():
    if settings.USE_REDIS_LOCKS:
        return RedisLockManager.from_url(settings.REDIS_URL, settings.NOTIFICATION_LOCK_TTL_SECONDS)
    return LocalLockManager()


def build_scheduler(session_factory=SessionLocal, locks=None) -> NotificationScheduler:
    """Wire a scheduler against the SQL stores"""
    return NotificationScheduler(
        engine=FilterEngine(SqlRecordRepository(session_factory)),
        store=SqlSavedSearchStore(session_factory),
        delivery=QueuedNotificationDelivery(NotificationService(session_factory)),
        locks=locks or build_lock_manager(),
        concurrency=settings.NOTIFICATION_CONCURRENCY,
        compute_timeout=settings.NOTIFICATION_TIMEOUT_SECONDS
    )


def build_alert_service(session_factory=SessionLocal) -> AlertService:
    return AlertService(
        records=SqlRecordRepository(session_factory),
        delivery=QueuedNotificationDelivery(NotificationService(session_factory)),
        session_factory=session_factory
    )
