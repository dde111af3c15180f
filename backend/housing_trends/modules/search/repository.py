"""
Record store access for the filter engine.

The engine only talks to RecordRepository, so it runs the same against the
SQL tables and against in-memory fixtures.
"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from housing_trends.models.records import County
from housing_trends.models.search import AggregateSummary, DataType, Record
from housing_trends.modules.search.query_builder import RecordOrder, RecordPredicate


class RecordRepository(ABC):
    """Query-by-predicate access to housing, rent and trend records"""

    @abstractmethod
    def find_by_predicate(
        self,
        predicate: RecordPredicate,
        order: RecordOrder,
        offset: int = 0,
        limit: int = 20
    ) -> List[Record]:
        """Return one page of matching records, sorted with id as the tie-breaker."""
        raise NotImplementedError

    @abstractmethod
    def count(self, predicate: RecordPredicate) -> int:
        raise NotImplementedError

    @abstractmethod
    def aggregate(self, predicate: RecordPredicate, field: str) -> AggregateSummary:
        """Count matching records and min/max/avg of field over all of them."""
        raise NotImplementedError

    @abstractmethod
    def get_county(self, fips_code: str) -> Optional[County]:
        raise NotImplementedError

    @abstractmethod
    def list_counties(self) -> List[County]:
        raise NotImplementedError

    @abstractmethod
    def latest_metric(self, kind: DataType, field: str, fips_code: str) -> Optional[float]:
        """Most recent non-null value of field for a county."""
        raise NotImplementedError


def sort_records(records: Iterable[Record], order: RecordOrder) -> List[Record]:
    """Sort on order.field, nulls last in either direction, ties by id ascending"""
    present = []
    missing = []
    for record in records:
        if getattr(record, order.field) is None:
            missing.append(record)
        else:
            present.append(record)

    # Python's sort is stable even with reverse=True, so the id order survives
    present.sort(key=lambda r: r.id)
    present.sort(key=lambda r: getattr(r, order.field), reverse=order.descending)
    missing.sort(key=lambda r: r.id)
    return present + missing


class InMemoryRecordRepository(RecordRepository):
    """Record store backed by plain lists, used for fixtures and tests"""

    def __init__(
        self,
        counties: Iterable[County] = (),
        records: Iterable[Record] = ()
    ):
        self._counties: Dict[str, County] = {c.fips_code: c for c in counties}
        self._records: Dict[DataType, List[Record]] = {kind: [] for kind in DataType}
        for record in records:
            self.add(record)

    def add(self, record: Record):
        self._records[DataType(record.kind)].append(record)

    def _matching(self, predicate: RecordPredicate) -> List[Record]:
        return [r for r in self._records[predicate.kind] if predicate.matches(r)]

    def find_by_predicate(self, predicate, order, offset=0, limit=20):
        ordered = sort_records(self._matching(predicate), order)
        return ordered[offset:offset + limit]

    def count(self, predicate):
        return len(self._matching(predicate))

    def aggregate(self, predicate, field):
        matching = self._matching(predicate)
        values = [getattr(r, field) for r in matching if getattr(r, field) is not None]
        return AggregateSummary.from_values(len(matching), values)

    def get_county(self, fips_code):
        return self._counties.get(fips_code)

    def list_counties(self):
        return [self._counties[fips] for fips in sorted(self._counties)]

    def latest_metric(self, kind, field, fips_code):
        candidates = [
            r for r in self._records[kind]
            if r.county_fips == fips_code and getattr(r, field) is not None
        ]
        if not candidates:
            return None
        latest = max(candidates, key=lambda r: (r.recorded_at, r.id))
        return getattr(latest, field)
