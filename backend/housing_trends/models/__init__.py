# Pydantic models for API contracts

from .records import County, HousingRecord, RentRecord, TrendRecord
from .search import (
    # Enums
    DataType, SortKey, SortDirection,
    
    # Filter models
    RangeBound, AmountRange, PercentChangeRange, FilterDocument,
    NumericRange, ValidatedFilter,
    
    # Response models
    AggregateSummary, KindResult, Pagination, SearchResultSet,
    SearchHistoryEntry, PopularSearch
)
from .saved_search import (
    NotificationCadence, SavedSearch, SaveSearchRequest, UpdateSearchRequest, SavedSearchChanges
)
from .notification import (
    NotificationType, Notification, NotificationStats, NotificationMessage,
    FieldDelta, KindDelta, DeltaSummary, TickOutcome, SearchTickResult, TickReport
)

__all__ = [
    # Record models
    "County", "HousingRecord", "RentRecord", "TrendRecord",
    
    # Search enums
    "DataType", "SortKey", "SortDirection",
    
    # Filter models
    "RangeBound", "AmountRange", "PercentChangeRange", "FilterDocument",
    "NumericRange", "ValidatedFilter",
    
    # Response models
    "AggregateSummary", "KindResult", "Pagination", "SearchResultSet",
    "SearchHistoryEntry", "PopularSearch",
    
    # Saved search models
    "NotificationCadence", "SavedSearch", "SaveSearchRequest", "UpdateSearchRequest",
    "SavedSearchChanges",
    
    # Notification models
    "NotificationType", "Notification", "NotificationStats", "NotificationMessage",
    "FieldDelta", "KindDelta", "DeltaSummary", "TickOutcome", "SearchTickResult", "TickReport"
]
