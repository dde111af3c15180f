from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
from sqlalchemy import select, func, desc
from housing_trends.core.database import SessionLocal
from housing_trends.db.models import SearchHistory as DBSearchHistory
from housing_trends.models.search import ValidatedFilter, SearchHistoryEntry, PopularSearch
import json
import logging

logger = logging.getLogger(__name__)


def filters_key(filters: Dict[str, Any]) -> str:
    """Canonical JSON used to group identical searches"""
    return json.dumps(filters, sort_keys=True, separators=(",", ":"))


class SearchHistoryStore:
    """Append-only log of executed searches"""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def record(self, user_id: Optional[str], validated: ValidatedFilter, results_count: int) -> SearchHistoryEntry:
        filters = validated.model_dump(mode="json")
        entry = DBSearchHistory(
            user_id=user_id,
            filters=filters,
            filters_key=filters_key(filters),
            results_count=results_count,
            created_at=datetime.now(timezone.utc)
        )

        with self.session_factory() as db:
            try:
                db.add(entry)
                db.commit()
                db.refresh(entry)
            except Exception:
                db.rollback()
                raise
            return self._to_entry(entry)

    def recent_for_user(self, user_id: str, limit: int = 10) -> List[SearchHistoryEntry]:
        stmt = (
            select(DBSearchHistory)
            .where(DBSearchHistory.user_id == user_id)
            .order_by(desc(DBSearchHistory.created_at), desc(DBSearchHistory.id))
            .limit(limit)
        )
        with self.session_factory() as db:
            return [self._to_entry(row) for row in db.execute(stmt).scalars().all()]

    def popular(self, limit: int = 10) -> List[PopularSearch]:
        """Most frequently executed filter combinations across all callers"""
        usage = func.count(DBSearchHistory.id).label("usage")
        stmt = (
            select(DBSearchHistory.filters_key, usage)
            .group_by(DBSearchHistory.filters_key)
            .order_by(desc(usage), DBSearchHistory.filters_key)
            .limit(limit)
        )
        with self.session_factory() as db:
            rows = db.execute(stmt).all()
        return [PopularSearch(filters=json.loads(key), count=count) for key, count in rows]

    @staticmethod
    def _to_entry(row: DBSearchHistory) -> SearchHistoryEntry:
        return SearchHistoryEntry(
            id=row.id,
            user_id=row.user_id,
            filters=row.filters or {},
            results_count=row.results_count or 0,
            created_at=row.created_at
        )
