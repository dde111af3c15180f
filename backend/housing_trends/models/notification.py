from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum
from housing_trends.models.search import AggregateSummary, DataType


class NotificationType(str, Enum):
    MARKET_UPDATE = "market_update"
    PRICE_ALERT = "price_alert"
    WELCOME = "welcome"
    SYSTEM = "system"


class Notification(BaseModel):
    id: str
    user_id: str
    type: NotificationType
    subject: str
    content: str
    metadata: Dict[str, Any] = {}
    read: bool = False
    read_at: Optional[datetime] = None
    sent: bool = False
    sent_at: Optional[datetime] = None
    created_at: datetime


class NotificationStats(BaseModel):
    total: int
    unread: int
    by_type: Dict[str, int] = {}


class NotificationMessage(BaseModel):
    """What the scheduler hands to the delivery collaborator"""
    recipient_id: str
    subject: str
    body: str
    metadata: Dict[str, Any] = {}
    type: NotificationType = NotificationType.MARKET_UPDATE


class FieldDelta(BaseModel):
    previous: Optional[float] = None
    current: Optional[float] = None
    absolute_change: Optional[float] = None
    # None when there is no usable prior value (missing or zero)
    percentage_change: Optional[float] = None


class KindDelta(BaseModel):
    count: FieldDelta
    min: FieldDelta
    max: FieldDelta
    avg: FieldDelta


class DeltaSummary(BaseModel):
    has_baseline: bool
    current: Dict[DataType, AggregateSummary]
    changes: Dict[DataType, KindDelta] = {}


class TickOutcome(str, Enum):
    FIRED = "fired"
    FAILED = "failed"
    SKIPPED = "skipped"


class SearchTickResult(BaseModel):
    saved_search_id: str
    outcome: TickOutcome
    reason: Optional[str] = None


class TickReport(BaseModel):
    started_at: datetime
    due_count: int = 0
    results: List[SearchTickResult] = []

    def ids_with(self, outcome: TickOutcome) -> List[str]:
        return [r.saved_search_id for r in self.results if r.outcome == outcome]

    @property
    def fired(self) -> List[str]:
        return self.ids_with(TickOutcome.FIRED)

    @property
    def failed(self) -> List[str]:
        return self.ids_with(TickOutcome.FAILED)

    @property
    def skipped(self) -> List[str]:
        return self.ids_with(TickOutcome.SKIPPED)


class PriceAlertData(BaseModel):
    """Latest county figures quoted in a price alert"""
    median_home_price: Optional[float] = None
    price_change_yoy: Optional[float] = None
    median_rent: Optional[float] = None
    rent_change_yoy: Optional[float] = None
