from dataclasses import dataclass
from typing import Dict, Optional, Tuple, List
from housing_trends.models.search import (
    DataType, SortKey, NumericRange, ValidatedFilter
)
import logging

logger = logging.getLogger(__name__)

# Field each kind reports aggregates on
KIND_METRICS: Dict[DataType, str] = {
    DataType.HOUSING: "median_home_price",
    DataType.RENT: "median_rent",
    DataType.TRENDS: "affordability_index",
}

# Sort keys a kind can honour; anything else falls back to DEFAULT_SORT_FIELD
SORT_FIELDS: Dict[DataType, Dict[SortKey, str]] = {
    DataType.HOUSING: {
        SortKey.PRICE: "median_home_price",
        SortKey.PRICE_CHANGE: "price_change_yoy",
    },
    DataType.RENT: {
        SortKey.RENT: "median_rent",
        SortKey.RENT_CHANGE: "rent_change_yoy",
    },
    DataType.TRENDS: {
        SortKey.PRICE_CHANGE: "price_change_yoy",
        SortKey.RENT_CHANGE: "rent_change_yoy",
    },
}

DEFAULT_SORT_FIELD = "recorded_at"


@dataclass(frozen=True)
class RangeClause:
    field: str
    bounds: NumericRange


@dataclass(frozen=True)
class RecordPredicate:
    """Store-neutral conjunction of predicates over one record kind"""
    kind: DataType
    regions: Optional[Tuple[str, ...]] = None
    ranges: Tuple[RangeClause, ...] = ()

    def matches(self, record) -> bool:
        if self.regions is not None:
            if record.state_code not in self.regions and record.county_fips not in self.regions:
                return False
        return all(clause.bounds.contains(getattr(record, clause.field)) for clause in self.ranges)


@dataclass(frozen=True)
class RecordOrder:
    field: str
    descending: bool = True


class RecordQueryBuilder:
    """Builds per-kind predicates and orderings from a validated filter"""

    def build_predicate(self, kind: DataType, validated: ValidatedFilter) -> RecordPredicate:
        clauses: List[RangeClause] = []

        self._add_amount_filters(clauses, kind, validated)
        self._add_change_filters(clauses, kind, validated)
        self._add_trend_filters(clauses, kind, validated)

        predicate = RecordPredicate(kind=kind, regions=validated.regions, ranges=tuple(clauses))
        logger.debug(f"Built predicate: {predicate}")
        return predicate

    def build_order(self, kind: DataType, validated: ValidatedFilter) -> RecordOrder:
        field = SORT_FIELDS[kind].get(validated.sort_key, DEFAULT_SORT_FIELD)
        return RecordOrder(field=field, descending=validated.descending)

    def _add_amount_filters(self, clauses: List[RangeClause], kind: DataType, validated: ValidatedFilter):
        """Price bounds only apply to housing, rent bounds only to rent"""
        if kind == DataType.HOUSING and validated.price_range is not None:
            clauses.append(RangeClause("median_home_price", validated.price_range))

        if kind == DataType.RENT and validated.rent_range is not None:
            clauses.append(RangeClause("median_rent", validated.rent_range))

    def _add_change_filters(self, clauses: List[RangeClause], kind: DataType, validated: ValidatedFilter):
        """Year-over-year change applies to each kind's own change field"""
        if validated.change_range is None:
            return

        if kind == DataType.HOUSING:
            clauses.append(RangeClause("price_change_yoy", validated.change_range))
        elif kind == DataType.RENT:
            clauses.append(RangeClause("rent_change_yoy", validated.change_range))

    def _add_trend_filters(self, clauses: List[RangeClause], kind: DataType, validated: ValidatedFilter):
        if kind == DataType.TRENDS and validated.affordability_threshold is not None:
            clauses.append(RangeClause(
                "affordability_index",
                NumericRange(min=validated.affordability_threshold),
            ))
