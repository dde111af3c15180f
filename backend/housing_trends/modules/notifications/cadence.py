from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from housing_trends.models.saved_search import SavedSearch


class NotificationState(str, Enum):
    """Derived per-search scheduler state; nothing is stored beyond last_fired_at"""
    DISABLED = "disabled"
    IDLE = "idle"
    DUE = "due"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so comparisons never mix the two"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def next_due_at(search: SavedSearch) -> Optional[datetime]:
    if not search.notifications_enabled:
        return None
    if search.last_fired_at is None:
        return None
    return as_utc(search.last_fired_at) + search.cadence.window


def is_due(search: SavedSearch, now: datetime) -> bool:
    if not search.notifications_enabled:
        return False
    if search.last_fired_at is None:
        return True
    return as_utc(now) - as_utc(search.last_fired_at) >= search.cadence.window


def notification_state(search: SavedSearch, now: datetime) -> NotificationState:
    if not search.notifications_enabled:
        return NotificationState.DISABLED
    return NotificationState.DUE if is_due(search, now) else NotificationState.IDLE
