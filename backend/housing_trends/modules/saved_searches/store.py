"""
Saved search persistence contract and the in-memory implementation.

Every read and write is scoped to an owner: asking for another owner's search
fails exactly like asking for one that does not exist. Scheduler state
(last_fired_at, last_summary) only changes through mark_fired.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional
import threading
import uuid

from housing_trends.core.exceptions import SavedSearchNotFoundError
from housing_trends.models.saved_search import (
    SavedSearch, SavedSearchChanges, NotificationCadence
)
from housing_trends.models.search import AggregateSummary, DataType, FilterDocument
from housing_trends.modules.notifications.cadence import as_utc, is_due


class SavedSearchStore(ABC):
    """Owner-scoped CRUD plus the scheduler's due listing and compare-and-set"""

    @abstractmethod
    def create(
        self,
        owner_id: str,
        name: str,
        filters: FilterDocument,
        cadence: NotificationCadence = NotificationCadence.WEEKLY,
        description: Optional[str] = None,
        notifications_enabled: bool = False
    ) -> SavedSearch:
        raise NotImplementedError

    @abstractmethod
    def get(self, search_id: str, owner_id: str) -> SavedSearch:
        """Load a search, raising SavedSearchNotFoundError on a missing id or another owner."""
        raise NotImplementedError

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> List[SavedSearch]:
        """All of an owner's searches, newest first."""
        raise NotImplementedError

    @abstractmethod
    def update(self, search_id: str, owner_id: str, changes: SavedSearchChanges) -> SavedSearch:
        raise NotImplementedError

    @abstractmethod
    def delete(self, search_id: str, owner_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_due_for_notification(self, as_of: datetime) -> List[SavedSearch]:
        """Enabled searches whose cadence window has elapsed as of the given time."""
        raise NotImplementedError

    @abstractmethod
    def mark_fired(
        self,
        search_id: str,
        fired_at: datetime,
        expected_last_fired_at: Optional[datetime],
        summary: Optional[Dict[DataType, AggregateSummary]] = None
    ) -> bool:
        """
        Set last_fired_at (and the stored summary) only if last_fired_at still
        equals expected_last_fired_at. Returns False when another worker won.
        """
        raise NotImplementedError


def new_search_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySavedSearchStore(SavedSearchStore):
    """Thread-safe store for tests and single-process deployments"""

    def __init__(self):
        self._lock = threading.Lock()
        self._searches: Dict[str, SavedSearch] = {}

    def create(self, owner_id, name, filters, cadence=NotificationCadence.WEEKLY,
               description=None, notifications_enabled=False):
        now = utcnow()
        search = SavedSearch(
            id=new_search_id(),
            owner_id=owner_id,
            name=name,
            description=description,
            filters=filters,
            notifications_enabled=notifications_enabled,
            cadence=cadence,
            created_at=now,
            updated_at=now
        )
        with self._lock:
            self._searches[search.id] = search
        return search.model_copy(deep=True)

    def _owned(self, search_id: str, owner_id: str) -> SavedSearch:
        search = self._searches.get(search_id)
        if search is None or search.owner_id != owner_id:
            raise SavedSearchNotFoundError(search_id)
        return search

    def get(self, search_id, owner_id):
        with self._lock:
            return self._owned(search_id, owner_id).model_copy(deep=True)

    def list_for_owner(self, owner_id):
        with self._lock:
            owned = [s for s in self._searches.values() if s.owner_id == owner_id]
        owned.sort(key=lambda s: (s.created_at, s.id), reverse=True)
        return [s.model_copy(deep=True) for s in owned]

    def update(self, search_id, owner_id, changes):
        with self._lock:
            current = self._owned(search_id, owner_id)
            values = {
                field: value
                for field, value in changes.model_dump(exclude_unset=True).items()
                if value is not None or field == "description"
            }
            if "filters" in values:
                values["filters"] = changes.filters
            updated = current.model_copy(update={**values, "updated_at": utcnow()})
            self._searches[search_id] = updated
            return updated.model_copy(deep=True)

    def delete(self, search_id, owner_id):
        with self._lock:
            self._owned(search_id, owner_id)
            del self._searches[search_id]

    def list_due_for_notification(self, as_of):
        with self._lock:
            due = [s for s in self._searches.values() if is_due(s, as_of)]
        due.sort(key=lambda s: (s.created_at, s.id))
        return [s.model_copy(deep=True) for s in due]

    def mark_fired(self, search_id, fired_at, expected_last_fired_at, summary=None):
        with self._lock:
            current = self._searches.get(search_id)
            if current is None:
                return False
            if as_utc(current.last_fired_at) != as_utc(expected_last_fired_at):
                return False

            update = {"last_fired_at": as_utc(fired_at)}
            if summary is not None:
                update["last_summary"] = summary
            self._searches[search_id] = current.model_copy(update=update)
            return True
