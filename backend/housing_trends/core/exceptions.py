"""
Exception hierarchy shared by the search and notification modules.

Interactive callers see InvalidFilterError and the *NotFoundError classes;
DeliveryFailure and ComputeTimeout are handled inside a scheduler tick.
"""
from typing import List, Optional

from pydantic import BaseModel


class FilterIssue(BaseModel):
    """A single field-level problem found while validating a filter document"""
    field: str
    message: str
    suggested_fix: Optional[str] = None


class HousingTrendsError(Exception):
    """Base class for application errors"""


class InvalidFilterError(HousingTrendsError):
    """The filter document is malformed and must be corrected by the caller"""

    def __init__(self, issues: List[FilterIssue]):
        self.issues = issues
        message = "; ".join(f"{issue.field}: {issue.message}" for issue in issues)
        super().__init__(message or "Invalid search filters")


class SavedSearchNotFoundError(HousingTrendsError):
    """Unknown saved search, or one owned by someone else"""

    def __init__(self, search_id: str):
        self.search_id = search_id
        super().__init__("Saved search not found")


class NotificationNotFoundError(HousingTrendsError):
    """Unknown notification, or one addressed to someone else"""

    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__("Notification not found")


class RegionNotFoundError(HousingTrendsError):
    def __init__(self, fips_code: str):
        self.fips_code = fips_code
        super().__init__("Region not found")


class DeliveryFailure(HousingTrendsError):
    """The delivery collaborator did not accept a notification"""


class ComputeTimeout(HousingTrendsError):
    """Re-running a saved search exceeded the per-search time budget"""
