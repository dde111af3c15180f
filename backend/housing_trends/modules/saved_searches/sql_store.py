from typing import List, Optional, Dict
from datetime import datetime
from sqlalchemy import select, update, and_, or_, desc
from housing_trends.core.database import SessionLocal
from housing_trends.core.exceptions import SavedSearchNotFoundError
from housing_trends.db.models import SavedSearch as DBSavedSearch
from housing_trends.models.saved_search import SavedSearch, NotificationCadence, CADENCE_WINDOWS
from housing_trends.models.search import AggregateSummary, DataType, FilterDocument
from housing_trends.modules.notifications.cadence import as_utc
from housing_trends.modules.saved_searches.store import SavedSearchStore, new_search_id, utcnow
import logging

logger = logging.getLogger(__name__)


class SqlSavedSearchStore(SavedSearchStore):
    """Saved searches in the saved_searches table"""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def create(self, owner_id, name, filters, cadence=NotificationCadence.WEEKLY,
               description=None, notifications_enabled=False):
        now = utcnow()
        db_search = DBSavedSearch(
            id=new_search_id(),
            owner_id=owner_id,
            name=name,
            description=description,
            filters=filters.model_dump(mode="json", by_alias=True, exclude_none=True),
            notifications_enabled=notifications_enabled,
            cadence=NotificationCadence(cadence).value,
            created_at=now,
            updated_at=now
        )

        with self.session_factory() as db:
            try:
                db.add(db_search)
                db.commit()
                db.refresh(db_search)
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to save search for owner {owner_id}: {e}")
                raise
            logger.info(f"Saved search {db_search.id} created for owner {owner_id}")
            return self._to_model(db_search)

    def _owned(self, db, search_id: str, owner_id: str) -> DBSavedSearch:
        db_search = db.execute(
            select(DBSavedSearch).where(
                and_(DBSavedSearch.id == search_id, DBSavedSearch.owner_id == owner_id)
            )
        ).scalar_one_or_none()
        if db_search is None:
            raise SavedSearchNotFoundError(search_id)
        return db_search

    def get(self, search_id, owner_id):
        with self.session_factory() as db:
            return self._to_model(self._owned(db, search_id, owner_id))

    def list_for_owner(self, owner_id):
        stmt = (
            select(DBSavedSearch)
            .where(DBSavedSearch.owner_id == owner_id)
            .order_by(desc(DBSavedSearch.created_at), desc(DBSavedSearch.id))
        )
        with self.session_factory() as db:
            return [self._to_model(s) for s in db.execute(stmt).scalars().all()]

    def update(self, search_id, owner_id, changes):
        with self.session_factory() as db:
            db_search = self._owned(db, search_id, owner_id)
            values = changes.model_dump(exclude_unset=True)

            if "name" in values and values["name"] is not None:
                db_search.name = values["name"]
            if "description" in values:
                db_search.description = values["description"]
            if changes.filters is not None:
                db_search.filters = changes.filters.model_dump(mode="json", by_alias=True, exclude_none=True)
            if values.get("notifications_enabled") is not None:
                db_search.notifications_enabled = values["notifications_enabled"]
            if values.get("cadence") is not None:
                db_search.cadence = NotificationCadence(values["cadence"]).value

            db_search.updated_at = utcnow()

            try:
                db.commit()
                db.refresh(db_search)
            except Exception:
                db.rollback()
                raise
            return self._to_model(db_search)

    def delete(self, search_id, owner_id):
        with self.session_factory() as db:
            db_search = self._owned(db, search_id, owner_id)
            db.delete(db_search)
            db.commit()
            logger.info(f"Saved search {search_id} deleted")

    def list_due_for_notification(self, as_of):
        as_of = as_utc(as_of)
        # One elapsed-window clause per cadence
        window_elapsed = [
            and_(
                DBSavedSearch.cadence == cadence.value,
                DBSavedSearch.last_fired_at <= as_of - window
            )
            for cadence, window in CADENCE_WINDOWS.items()
        ]
        stmt = (
            select(DBSavedSearch)
            .where(
                DBSavedSearch.notifications_enabled.is_(True),
                or_(DBSavedSearch.last_fired_at.is_(None), *window_elapsed)
            )
            .order_by(DBSavedSearch.created_at, DBSavedSearch.id)
        )
        with self.session_factory() as db:
            return [self._to_model(s) for s in db.execute(stmt).scalars().all()]

    def mark_fired(self, search_id, fired_at, expected_last_fired_at, summary=None):
        if expected_last_fired_at is None:
            unchanged = DBSavedSearch.last_fired_at.is_(None)
        else:
            unchanged = DBSavedSearch.last_fired_at == as_utc(expected_last_fired_at)

        values = {"last_fired_at": as_utc(fired_at)}
        if summary is not None:
            values["last_summary"] = {
                DataType(kind).value: AggregateSummary.model_validate(agg).model_dump()
                for kind, agg in summary.items()
            }

        stmt = (
            update(DBSavedSearch)
            .where(DBSavedSearch.id == search_id, unchanged)
            .values(**values)
        )
        with self.session_factory() as db:
            try:
                result = db.execute(stmt)
                db.commit()
            except Exception:
                db.rollback()
                raise
        return result.rowcount == 1

    @staticmethod
    def _to_model(db_search: DBSavedSearch) -> SavedSearch:
        last_summary: Optional[Dict[DataType, AggregateSummary]] = None
        if db_search.last_summary is not None:
            last_summary = {
                DataType(kind): AggregateSummary.model_validate(agg)
                for kind, agg in db_search.last_summary.items()
            }

        return SavedSearch(
            id=db_search.id,
            owner_id=db_search.owner_id,
            name=db_search.name,
            description=db_search.description,
            filters=FilterDocument.model_validate(db_search.filters or {}),
            notifications_enabled=bool(db_search.notifications_enabled),
            cadence=NotificationCadence(db_search.cadence),
            last_fired_at=as_utc(db_search.last_fired_at),
            last_summary=last_summary,
            created_at=as_utc(db_search.created_at),
            updated_at=as_utc(db_search.updated_at)
        )
