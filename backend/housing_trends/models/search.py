from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional, List, Dict, Any, Tuple, Union
from datetime import datetime
from enum import Enum
from housing_trends.models.records import HousingRecord, RentRecord, TrendRecord


class DataType(str, Enum):
    HOUSING = "housing"
    RENT = "rent"
    TRENDS = "trends"


ALL_DATA_TYPES = (DataType.HOUSING, DataType.RENT, DataType.TRENDS)


class SortKey(str, Enum):
    PRICE = "price"
    RENT = "rent"
    PRICE_CHANGE = "priceChange"
    RENT_CHANGE = "rentChange"
    DATE = "date"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class RangeBound(BaseModel):
    """Inclusive {min, max} bound; either side may be omitted"""
    model_config = ConfigDict(allow_inf_nan=False)

    min: Optional[float] = None
    max: Optional[float] = None

    @model_validator(mode='after')
    def validate_bounds(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError('min must be less than or equal to max')
        return self


class AmountRange(RangeBound):
    """Range over a price or rent amount"""

    @field_validator('min', 'max')
    @classmethod
    def validate_amount(cls, v):
        if v is not None and v < 0:
            raise ValueError('Amount must be non-negative')
        return v


class PercentChangeRange(RangeBound):
    """Range over a year-over-year percentage change"""

    @field_validator('min', 'max')
    @classmethod
    def validate_percentage(cls, v):
        if v is not None and not -100 <= v <= 100:
            raise ValueError('Percentage change must be between -100 and 100')
        return v


class FilterDocument(BaseModel):
    """User-authored search filters. All predicates are combined conjunctively."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)

    # Location filters: state codes and/or county FIPS codes
    regions: List[str] = []

    # Numeric filters
    price_range: Optional[AmountRange] = None
    rent_range: Optional[AmountRange] = None
    change_range: Optional[PercentChangeRange] = None
    affordability_threshold: Optional[float] = Field(None, ge=0, le=100)

    # Record kind, unset means all kinds
    data_type: Optional[DataType] = None

    # Search options
    sort_key: SortKey = SortKey.DATE
    sort_direction: SortDirection = SortDirection.DESC
    page_size: int = Field(20, ge=1, le=100)
    page_offset: int = Field(0, ge=0)

    @field_validator('regions')
    @classmethod
    def normalize_regions(cls, v):
        normalized = {region.strip().upper() for region in v if region and region.strip()}
        return sorted(normalized)


class NumericRange(BaseModel):
    """Validated inclusive range. A missing bound means unbounded, not zero."""
    model_config = ConfigDict(frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None

    def contains(self, value: Optional[float]) -> bool:
        if value is None:
            return False
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True

    @property
    def is_unbounded(self) -> bool:
        return self.min is None and self.max is None

    @classmethod
    def from_bound(cls, bound: Optional[RangeBound]) -> Optional["NumericRange"]:
        if bound is None or (bound.min is None and bound.max is None):
            return None
        return cls(min=bound.min, max=bound.max)


class ValidatedFilter(BaseModel):
    """Immutable filter produced by FilterEngine.validate; the only input execute accepts"""
    model_config = ConfigDict(frozen=True)

    regions: Optional[Tuple[str, ...]] = None
    price_range: Optional[NumericRange] = None
    rent_range: Optional[NumericRange] = None
    change_range: Optional[NumericRange] = None
    affordability_threshold: Optional[float] = None
    data_type: Optional[DataType] = None
    sort_key: SortKey = SortKey.DATE
    sort_direction: SortDirection = SortDirection.DESC
    page_size: int = 20
    page_offset: int = 0

    @property
    def kinds(self) -> Tuple[DataType, ...]:
        if self.data_type is None:
            return ALL_DATA_TYPES
        return (self.data_type,)

    @property
    def descending(self) -> bool:
        return self.sort_direction == SortDirection.DESC

    @classmethod
    def from_document(cls, document: FilterDocument) -> "ValidatedFilter":
        return cls(
            regions=tuple(document.regions) or None,
            price_range=NumericRange.from_bound(document.price_range),
            rent_range=NumericRange.from_bound(document.rent_range),
            change_range=NumericRange.from_bound(document.change_range),
            affordability_threshold=document.affordability_threshold,
            data_type=document.data_type,
            sort_key=document.sort_key,
            sort_direction=document.sort_direction,
            page_size=document.page_size,
            page_offset=document.page_offset,
        )


class AggregateSummary(BaseModel):
    """Statistics over the full matching set of one record kind, independent of pagination"""
    count: int = 0
    min: Optional[float] = None
    max: Optional[float] = None
    avg: Optional[float] = None

    @classmethod
    def from_values(cls, count: int, values: List[float]) -> "AggregateSummary":
        if not values:
            return cls(count=count)
        return cls(
            count=count,
            min=min(values),
            max=max(values),
            avg=round(sum(values) / len(values), 2),
        )


Record = Annotated[Union[HousingRecord, RentRecord, TrendRecord], Field(discriminator="kind")]


class KindResult(BaseModel):
    """One labeled sequence of results; kinds are never interleaved"""
    records: List[Record] = []
    total: int = 0
    aggregates: AggregateSummary = AggregateSummary()


class Pagination(BaseModel):
    page_size: int
    page_offset: int


class SearchResultSet(BaseModel):
    sections: Dict[DataType, KindResult]
    pagination: Pagination
    filters_applied: ValidatedFilter
    search_time_ms: int = 0

    def summaries(self) -> Dict[DataType, AggregateSummary]:
        return {kind: section.aggregates for kind, section in self.sections.items()}


class SearchHistoryEntry(BaseModel):
    id: str
    user_id: Optional[str] = None
    filters: Dict[str, Any]
    results_count: int = 0
    created_at: datetime


class PopularSearch(BaseModel):
    filters: Dict[str, Any]
    count: int
