"""
The SQLAlchemy record store must agree with the in-memory one
"""
import pytest

from housing_trends.models.search import DataType
from housing_trends.modules.search.engine import FilterEngine
from housing_trends.modules.search.query_builder import RecordOrder, RecordQueryBuilder
from housing_trends.modules.search.sql_repository import SqlRecordRepository


@pytest.fixture
def sql_repository(seeded_session_factory):
    return SqlRecordRepository(seeded_session_factory)


@pytest.fixture
def sql_engine(sql_repository):
    return FilterEngine(sql_repository)


class TestSqlRecordRepository:

    def test_california_rent_scenario(self, sql_engine):
        result = sql_engine.search({
            "regions": ["CA"],
            "rentRange": {"min": 1000, "max": 3000},
            "dataType": "rent",
            "sortKey": "rent",
            "sortDirection": "asc",
            "pageSize": 2,
        })

        section = result.sections[DataType.RENT]
        assert [r.median_rent for r in section.records] == [1200, 1500]
        assert all(r.state_code == "CA" for r in section.records)
        assert section.aggregates.model_dump() == {
            "count": 3, "min": 1200.0, "max": 2800.0, "avg": 1833.33
        }

    @pytest.mark.parametrize("document", [
        {"sortKey": "rent", "sortDirection": "asc"},
        {"sortKey": "price", "sortDirection": "desc"},
        {"sortKey": "priceChange", "sortDirection": "asc", "regions": ["CA", "48201"]},
        {"changeRange": {"min": 0, "max": 5}},
        {"affordabilityThreshold": 30, "pageSize": 1, "pageOffset": 1},
    ])
    def test_matches_in_memory_store(self, sql_engine, filter_engine, document):
        expected = filter_engine.search(document)
        actual = sql_engine.search(document)

        for kind, section in expected.sections.items():
            assert [r.id for r in actual.sections[kind].records] == [r.id for r in section.records]
            assert actual.sections[kind].aggregates == section.aggregates

    def test_missing_values_sort_last_both_directions(self, sql_repository):
        builder = RecordQueryBuilder()
        predicate = builder.build_predicate(DataType.HOUSING, FilterEngine(sql_repository).validate({}))

        for descending in (True, False):
            records = sql_repository.find_by_predicate(
                predicate, RecordOrder("median_home_price", descending), limit=10
            )
            assert records[-1].id == "h4"

    def test_count(self, sql_repository):
        predicate = RecordQueryBuilder().build_predicate(
            DataType.RENT, FilterEngine(sql_repository).validate({"regions": ["CA"]})
        )

        assert sql_repository.count(predicate) == 5

    def test_counties_and_latest_metric(self, sql_repository):
        assert sql_repository.get_county("06037").name == "Los Angeles County"
        assert sql_repository.get_county("99999") is None
        assert len(sql_repository.list_counties()) == 5
        assert sql_repository.latest_metric(DataType.RENT, "median_rent", "06075") == 2800
        assert sql_repository.latest_metric(DataType.HOUSING, "median_home_price", "36061") is None
