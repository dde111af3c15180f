from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime, timedelta
from enum import Enum
from housing_trends.models.search import FilterDocument, AggregateSummary, DataType


class NotificationCadence(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def _missing_(cls, value):
        # Accept the upper-case spellings stored by older clients
        if isinstance(value, str):
            for member in cls:
                if member.value == value.lower():
                    return member
        return None

    @property
    def window(self) -> timedelta:
        """Fixed-length cadence window; a month is always 30 days"""
        return CADENCE_WINDOWS[self]


CADENCE_WINDOWS = {
    NotificationCadence.DAILY: timedelta(hours=24),
    NotificationCadence.WEEKLY: timedelta(days=7),
    NotificationCadence.MONTHLY: timedelta(days=30),
}


class SavedSearch(BaseModel):
    id: str
    owner_id: str
    name: str
    description: Optional[str] = None
    filters: FilterDocument
    notifications_enabled: bool = False
    cadence: NotificationCadence = NotificationCadence.WEEKLY
    last_fired_at: Optional[datetime] = None
    last_summary: Optional[Dict[DataType, AggregateSummary]] = None
    created_at: datetime
    updated_at: datetime


class SaveSearchRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    # Validated by the filter engine so malformed filters surface as 400
    filters: Dict[str, Any]
    notifications_enabled: bool = False
    cadence: NotificationCadence = NotificationCadence.WEEKLY


class UpdateSearchRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    filters: Optional[Dict[str, Any]] = None
    notifications_enabled: Optional[bool] = None
    cadence: Optional[NotificationCadence] = None


class SavedSearchChanges(BaseModel):
    """Partial update applied by the store. Scheduler state is not editable here."""
    name: Optional[str] = None
    description: Optional[str] = None
    filters: Optional[FilterDocument] = None
    notifications_enabled: Optional[bool] = None
    cadence: Optional[NotificationCadence] = None
