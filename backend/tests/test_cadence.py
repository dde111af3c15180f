import pytest
from datetime import datetime, timedelta, timezone

from housing_trends.models.saved_search import NotificationCadence, SavedSearch
from housing_trends.models.search import FilterDocument
from housing_trends.modules.notifications.cadence import (
    NotificationState, is_due, next_due_at, notification_state
)

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def saved_search(cadence=NotificationCadence.WEEKLY, enabled=True, last_fired_at=None):
    return SavedSearch(
        id="s1",
        owner_id="user-1",
        name="Test",
        filters=FilterDocument(),
        notifications_enabled=enabled,
        cadence=cadence,
        last_fired_at=last_fired_at,
        created_at=NOW,
        updated_at=NOW
    )


class TestCadence:

    def test_weekly_idle_after_six_days_due_after_seven(self):
        search = saved_search(last_fired_at=NOW - timedelta(days=6))
        assert notification_state(search, NOW) == NotificationState.IDLE

        search = saved_search(last_fired_at=NOW - timedelta(days=7))
        assert notification_state(search, NOW) == NotificationState.DUE

    def test_never_fired_is_due(self):
        assert is_due(saved_search(), NOW)

    def test_disabled_is_never_due(self):
        search = saved_search(enabled=False, last_fired_at=NOW - timedelta(days=365))

        assert not is_due(search, NOW)
        assert notification_state(search, NOW) == NotificationState.DISABLED
        assert next_due_at(search) is None

    @pytest.mark.parametrize("cadence,window", [
        (NotificationCadence.DAILY, timedelta(hours=24)),
        (NotificationCadence.WEEKLY, timedelta(days=7)),
        (NotificationCadence.MONTHLY, timedelta(days=30)),
    ])
    def test_fixed_windows(self, cadence, window):
        search = saved_search(cadence=cadence, last_fired_at=NOW)

        assert next_due_at(search) == NOW + window
        assert not is_due(search, NOW + window - timedelta(seconds=1))
        assert is_due(search, NOW + window)

    def test_naive_timestamps_are_treated_as_utc(self):
        search = saved_search(last_fired_at=datetime(2024, 5, 25))

        assert is_due(search, NOW)

    def test_upper_case_cadence_accepted(self):
        assert NotificationCadence("WEEKLY") == NotificationCadence.WEEKLY
        assert NotificationCadence("Daily") == NotificationCadence.DAILY
