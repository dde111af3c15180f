from typing import List, Optional, Dict, Any, Union
from housing_trends.core.exceptions import RegionNotFoundError
from housing_trends.models.records import County
from housing_trends.models.saved_search import (
    SavedSearch, NotificationCadence, UpdateSearchRequest, SavedSearchChanges
)
from housing_trends.models.search import (
    DataType, FilterDocument, SearchResultSet, SearchHistoryEntry, PopularSearch
)
from housing_trends.modules.saved_searches.store import SavedSearchStore
from housing_trends.modules.search.engine import FilterEngine
from housing_trends.modules.search.history import SearchHistoryStore
from housing_trends.modules.search.repository import RecordRepository
import logging

logger = logging.getLogger(__name__)

# Relative band used when comparing county prices and rents
SIMILARITY_BAND = 0.2


class SearchService:
    """Service for ad-hoc searches, saved searches and search history"""

    def __init__(
        self,
        engine: FilterEngine,
        saved_searches: SavedSearchStore,
        history: Optional[SearchHistoryStore] = None
    ):
        self.engine = engine
        self.saved_searches = saved_searches
        self.history = history

    @property
    def records(self) -> RecordRepository:
        return self.engine.repository

    async def search(
        self,
        document: Union[FilterDocument, Dict[str, Any], None],
        caller_id: Optional[str] = None
    ) -> SearchResultSet:
        """Validate and run a filter document"""
        validated = self.engine.validate(document)
        result = self.engine.execute(validated)

        if self.history is not None:
            try:
                self.history.record(caller_id, validated, FilterEngine.total_results(result))
            except Exception as e:
                logger.warning(f"Failed to record search history: {e}")

        logger.info(
            f"Search returned {FilterEngine.total_results(result)} results "
            f"in {result.search_time_ms}ms"
        )
        return result

    async def save_search(
        self,
        caller_id: str,
        name: str,
        document: Union[FilterDocument, Dict[str, Any]],
        cadence: NotificationCadence = NotificationCadence.WEEKLY,
        description: Optional[str] = None,
        notifications_enabled: bool = False
    ) -> SavedSearch:
        """Persist a filter document after validating it"""
        filters = self.engine.parse(document)
        self.engine.validate(filters)

        return self.saved_searches.create(
            owner_id=caller_id,
            name=name,
            filters=filters,
            cadence=cadence,
            description=description,
            notifications_enabled=notifications_enabled
        )

    async def list_saved(self, caller_id: str) -> List[SavedSearch]:
        return self.saved_searches.list_for_owner(caller_id)

    async def get_saved(self, search_id: str, caller_id: str) -> SavedSearch:
        return self.saved_searches.get(search_id, caller_id)

    async def update_saved(self, search_id: str, caller_id: str, request: UpdateSearchRequest) -> SavedSearch:
        """Apply a partial update; new filters are validated before anything is written"""
        values = request.model_dump(exclude_unset=True)

        if values.get("filters") is not None:
            filters = self.engine.parse(values["filters"])
            self.engine.validate(filters)
            values["filters"] = filters
        else:
            values.pop("filters", None)

        changes = SavedSearchChanges(**values)
        updated = self.saved_searches.update(search_id, caller_id, changes)
        logger.info(f"Saved search {search_id} updated")
        return updated

    async def delete_saved(self, search_id: str, caller_id: str) -> None:
        self.saved_searches.delete(search_id, caller_id)

    async def execute_saved(self, search_id: str, caller_id: str) -> SearchResultSet:
        saved = self.saved_searches.get(search_id, caller_id)
        return await self.search(saved.filters, caller_id)

    async def search_history(self, caller_id: str, limit: int = 10) -> List[SearchHistoryEntry]:
        if self.history is None:
            return []
        return self.history.recent_for_user(caller_id, limit)

    async def popular_searches(self, limit: int = 10) -> List[PopularSearch]:
        if self.history is None:
            return []
        return self.history.popular(limit)

    async def similar_regions(self, fips_code: str, limit: int = 5) -> List[County]:
        """Counties in the same state, or priced within the similarity band"""
        reference = self.records.get_county(fips_code)
        if reference is None:
            raise RegionNotFoundError(fips_code)

        reference_price = self.records.latest_metric(DataType.HOUSING, "median_home_price", fips_code)
        reference_rent = self.records.latest_metric(DataType.RENT, "median_rent", fips_code)

        similar = []
        for county in self.records.list_counties():
            if county.fips_code == reference.fips_code:
                continue

            if county.state_code == reference.state_code:
                similar.append(county)
            elif self._within_band(
                reference_price,
                self.records.latest_metric(DataType.HOUSING, "median_home_price", county.fips_code)
            ) or self._within_band(
                reference_rent,
                self.records.latest_metric(DataType.RENT, "median_rent", county.fips_code)
            ):
                similar.append(county)

            if len(similar) >= limit:
                break

        return similar

    @staticmethod
    def _within_band(reference: Optional[float], value: Optional[float]) -> bool:
        if reference is None or value is None:
            return False
        return reference * (1 - SIMILARITY_BAND) <= value <= reference * (1 + SIMILARITY_BAND)
