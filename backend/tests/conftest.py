import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from housing_trends.core.database import Base
from housing_trends.db import models as db_models
from housing_trends.models.records import County, HousingRecord, RentRecord, TrendRecord
from housing_trends.modules.saved_searches.store import InMemorySavedSearchStore
from housing_trends.modules.search.engine import FilterEngine
from housing_trends.modules.search.repository import InMemoryRecordRepository

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

BASE_TIME = datetime(2024, 6, 1, tzinfo=timezone.utc)

COUNTIES = [
    County(fips_code="06037", state_code="CA", name="Los Angeles County", state="California"),
    County(fips_code="06075", state_code="CA", name="San Francisco County", state="California"),
    County(fips_code="06073", state_code="CA", name="San Diego County", state="California"),
    County(fips_code="48201", state_code="TX", name="Harris County", state="Texas"),
    County(fips_code="36061", state_code="NY", name="New York County", state="New York"),
]

STATE_BY_FIPS = {c.fips_code: c.state_code for c in COUNTIES}


def housing(id, fips, price, change=None, days_ago=0):
    return HousingRecord(
        id=id, county_fips=fips, state_code=STATE_BY_FIPS[fips],
        median_home_price=price, price_change_yoy=change,
        recorded_at=BASE_TIME - timedelta(days=days_ago)
    )


def rent(id, fips, amount, change=None, days_ago=0):
    return RentRecord(
        id=id, county_fips=fips, state_code=STATE_BY_FIPS[fips],
        median_rent=amount, rent_change_yoy=change,
        recorded_at=BASE_TIME - timedelta(days=days_ago)
    )


def trend(id, fips, affordability, price_change=None, rent_change=None, days_ago=0):
    return TrendRecord(
        id=id, county_fips=fips, state_code=STATE_BY_FIPS[fips],
        affordability_index=affordability, price_change_yoy=price_change,
        rent_change_yoy=rent_change, recorded_at=BASE_TIME - timedelta(days=days_ago)
    )


def sample_records():
    """California rents used throughout: 900, 1200, 1500, 2800, 3200"""
    return [
        rent("r1", "06037", 900, 2.0, days_ago=5),
        rent("r2", "06037", 1200, 3.5, days_ago=4),
        rent("r3", "06075", 1500, -1.0, days_ago=3),
        rent("r4", "06075", 2800, 6.0, days_ago=2),
        rent("r5", "06073", 3200, 8.0, days_ago=1),
        rent("r6", "48201", 1300, 1.0, days_ago=1),
        rent("r7", "36061", 2900, None, days_ago=0),
        housing("h1", "06037", 850000, 4.0, days_ago=3),
        housing("h2", "06075", 1300000, -2.0, days_ago=2),
        housing("h3", "48201", 310000, 5.5, days_ago=1),
        housing("h4", "36061", None, 1.0, days_ago=0),
        trend("t1", "06037", 22.0, 4.0, 3.5, days_ago=2),
        trend("t2", "48201", 61.0, 5.5, 1.0, days_ago=1),
        trend("t3", "36061", 35.0, 1.0, None, days_ago=0),
    ]


@pytest.fixture
def record_repository():
    return InMemoryRecordRepository(counties=COUNTIES, records=sample_records())


@pytest.fixture
def filter_engine(record_repository):
    return FilterEngine(record_repository)


@pytest.fixture
def saved_search_store():
    return InMemorySavedSearchStore()


@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine"""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    return engine


@pytest.fixture(scope="function")
def session_factory(test_engine):
    """Session factory bound to a freshly created schema"""
    Base.metadata.create_all(bind=test_engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    finally:
        # Drop all tables after test
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def test_db_session(session_factory):
    """Create a test database session"""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_session_factory(session_factory):
    """Database loaded with the same counties and records as record_repository"""
    tables = {
        "housing": db_models.HousingData,
        "rent": db_models.RentData,
        "trends": db_models.MarketTrend,
    }
    with session_factory() as db:
        for county in COUNTIES:
            db.add(db_models.County(**county.model_dump()))
        db.flush()
        for record in sample_records():
            values = record.model_dump(exclude={"kind", "state_code"})
            db.add(tables[record.kind](**values))
        db.commit()
    return session_factory
