"""
FastAPI dependency providers.

Everything is built from get_session_factory, so tests only need to override
that one provider to run the whole API against another database.
"""
from functools import lru_cache
from fastapi import Depends
from housing_trends.core.database import SessionLocal
from housing_trends.modules.notifications.alerts import AlertService
from housing_trends.modules.notifications.delivery import NotificationDelivery, QueuedNotificationDelivery
from housing_trends.modules.notifications.factory import build_lock_manager
from housing_trends.modules.notifications.locks import SearchLockManager
from housing_trends.modules.notifications.scheduler import NotificationScheduler
from housing_trends.modules.notifications.service import NotificationService
from housing_trends.modules.saved_searches.sql_store import SqlSavedSearchStore
from housing_trends.modules.saved_searches.store import SavedSearchStore
from housing_trends.modules.search.engine import FilterEngine
from housing_trends.modules.search.history import SearchHistoryStore
from housing_trends.modules.search.repository import RecordRepository
from housing_trends.modules.search.service import SearchService
from housing_trends.modules.search.sql_repository import SqlRecordRepository


def get_session_factory():
    return SessionLocal


def get_record_repository(session_factory=Depends(get_session_factory)) -> RecordRepository:
    return SqlRecordRepository(session_factory)


def get_saved_search_store(session_factory=Depends(get_session_factory)) -> SavedSearchStore:
    return SqlSavedSearchStore(session_factory)


def get_history_store(session_factory=Depends(get_session_factory)) -> SearchHistoryStore:
    return SearchHistoryStore(session_factory)


def get_filter_engine(repository: RecordRepository = Depends(get_record_repository)) -> FilterEngine:
    return FilterEngine(repository)


def get_search_service(
    engine: FilterEngine = Depends(get_filter_engine),
    saved_searches: SavedSearchStore = Depends(get_saved_search_store),
    history: SearchHistoryStore = Depends(get_history_store)
) -> SearchService:
    return SearchService(engine, saved_searches, history)


def get_notification_service(session_factory=Depends(get_session_factory)) -> NotificationService:
    return NotificationService(session_factory)


def get_notification_delivery(
    notification_service: NotificationService = Depends(get_notification_service)
) -> NotificationDelivery:
    return QueuedNotificationDelivery(notification_service)


def get_alert_service(
    records: RecordRepository = Depends(get_record_repository),
    delivery: QueuedNotificationDelivery = Depends(get_notification_delivery),
    session_factory=Depends(get_session_factory)
) -> AlertService:
    return AlertService(records, delivery, session_factory)


@lru_cache()
def get_lock_manager() -> SearchLockManager:
    # Shared across requests so concurrent HTTP-triggered ticks see the same locks
    return build_lock_manager()


def get_scheduler(
    engine: FilterEngine = Depends(get_filter_engine),
    store: SavedSearchStore = Depends(get_saved_search_store),
    delivery: NotificationDelivery = Depends(get_notification_delivery),
    locks: SearchLockManager = Depends(get_lock_manager)
) -> NotificationScheduler:
    return NotificationScheduler(engine, store, delivery, locks)
