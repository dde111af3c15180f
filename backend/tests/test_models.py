import pytest
from pydantic import ValidationError
from housing_trends.models.search import (
    AmountRange, PercentChangeRange, FilterDocument, NumericRange, ValidatedFilter,
    AggregateSummary, DataType, SortKey, SortDirection
)
from housing_trends.models.saved_search import SaveSearchRequest, NotificationCadence


class TestRanges:
    """Test range validation"""

    def test_inverted_range_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            AmountRange(min=500, max=100)
        assert "min must be less than or equal to max" in str(exc_info.value)

    def test_equal_bounds_allowed(self):
        bound = AmountRange(min=100, max=100)
        assert bound.min == bound.max == 100

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            AmountRange(min=-1)
        assert "Amount must be non-negative" in str(exc_info.value)

    def test_percentage_bounds(self):
        assert PercentChangeRange(min=-100, max=100).max == 100
        with pytest.raises(ValidationError):
            PercentChangeRange(max=100.5)

    def test_numeric_range_contains(self):
        bounds = NumericRange(min=1000, max=3000)

        assert bounds.contains(1000)
        assert bounds.contains(3000)
        assert not bounds.contains(999.99)
        assert not bounds.contains(None)

    def test_missing_bound_is_unbounded_not_zero(self):
        assert NumericRange(max=10).contains(-50)
        assert NumericRange(min=10).contains(10 ** 9)
        assert NumericRange.from_bound(AmountRange()) is None


class TestFilterDocument:
    """Test FilterDocument defaults and parsing"""

    def test_defaults(self):
        document = FilterDocument()

        assert document.regions == []
        assert document.data_type is None
        assert document.sort_key == SortKey.DATE
        assert document.sort_direction == SortDirection.DESC
        assert document.page_size == 20
        assert document.page_offset == 0

    def test_camel_case_input(self):
        document = FilterDocument.model_validate({
            "priceRange": {"min": 100000},
            "sortKey": "priceChange",
            "dataType": "housing",
        })

        assert document.price_range.min == 100000
        assert document.sort_key == SortKey.PRICE_CHANGE
        assert document.data_type == DataType.HOUSING

    def test_unknown_sort_key_rejected(self):
        with pytest.raises(ValidationError):
            FilterDocument.model_validate({"sortKey": "bedrooms"})

    def test_validated_filter_kinds(self):
        assert ValidatedFilter().kinds == (DataType.HOUSING, DataType.RENT, DataType.TRENDS)
        assert ValidatedFilter(data_type=DataType.RENT).kinds == (DataType.RENT,)


class TestAggregateSummary:

    def test_from_values_rounds_average(self):
        summary = AggregateSummary.from_values(3, [1200, 1500, 2800])

        assert summary.model_dump() == {"count": 3, "min": 1200, "max": 2800, "avg": 1833.33}

    def test_empty_set(self):
        assert AggregateSummary.from_values(0, []).model_dump() == {
            "count": 0, "min": None, "max": None, "avg": None
        }


class TestSaveSearchRequest:

    def test_name_required(self):
        with pytest.raises(ValidationError):
            SaveSearchRequest(name="", filters={})

    def test_defaults(self):
        request = SaveSearchRequest(name="My search", filters={"regions": ["CA"]})

        assert request.notifications_enabled is False
        assert request.cadence == NotificationCadence.WEEKLY
