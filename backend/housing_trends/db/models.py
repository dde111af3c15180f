from sqlalchemy import Column, String, Float, DateTime, Boolean, Text, JSON, ForeignKey, Index, Integer
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from housing_trends.core.database import Base
import uuid


def _new_id() -> str:
    return str(uuid.uuid4())


class County(Base):
    """County reference data; regions are matched on state_code or fips_code"""
    __tablename__ = "counties"

    fips_code = Column(String(5), primary_key=True)
    state_code = Column(String(2), nullable=False)
    name = Column(String(200), nullable=False)
    state = Column(String(100))

    # Relationships
    housing_data = relationship("HousingData", back_populates="county")
    rent_data = relationship("RentData", back_populates="county")
    market_trends = relationship("MarketTrend", back_populates="county")

    __table_args__ = (
        Index('idx_counties_state_code', 'state_code'),
    )


class HousingData(Base):
    """Median home price observations"""
    __tablename__ = "housing_data"

    id = Column(String(64), primary_key=True, default=_new_id)
    county_fips = Column(String(5), ForeignKey('counties.fips_code'), nullable=False)

    median_home_price = Column(Float)
    price_change_yoy = Column(Float)  # percent

    recorded_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    county = relationship("County", back_populates="housing_data")

    __table_args__ = (
        Index('idx_housing_data_county', 'county_fips'),
        Index('idx_housing_data_price', 'median_home_price'),
        Index('idx_housing_data_recorded_at', 'recorded_at'),
    )


class RentData(Base):
    """Median rent observations"""
    __tablename__ = "rent_data"

    id = Column(String(64), primary_key=True, default=_new_id)
    county_fips = Column(String(5), ForeignKey('counties.fips_code'), nullable=False)

    median_rent = Column(Float)
    rent_change_yoy = Column(Float)  # percent

    recorded_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    county = relationship("County", back_populates="rent_data")

    __table_args__ = (
        Index('idx_rent_data_county', 'county_fips'),
        Index('idx_rent_data_rent', 'median_rent'),
        Index('idx_rent_data_recorded_at', 'recorded_at'),
    )


class MarketTrend(Base):
    """Derived market indicators (affordability, YoY changes)"""
    __tablename__ = "market_trends"

    id = Column(String(64), primary_key=True, default=_new_id)
    county_fips = Column(String(5), ForeignKey('counties.fips_code'), nullable=False)

    affordability_index = Column(Float)  # 0-100
    price_change_yoy = Column(Float)
    rent_change_yoy = Column(Float)

    recorded_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    county = relationship("County", back_populates="market_trends")

    __table_args__ = (
        Index('idx_market_trends_county', 'county_fips'),
        Index('idx_market_trends_affordability', 'affordability_index'),
    )


class User(Base):
    """Email addresses of notification recipients. Accounts are managed by the auth service."""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(200))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SavedSearch(Base):
    """Saved search filters and notification state"""
    __tablename__ = "saved_searches"

    id = Column(String(64), primary_key=True, default=_new_id)

    owner_id = Column(String(64), nullable=False)

    # Search metadata
    name = Column(String(100), nullable=False)
    description = Column(String(500))

    # Filter document (stored as JSON, validated on the way in)
    filters = Column(JSON, nullable=False)

    # Notification settings
    notifications_enabled = Column(Boolean, nullable=False, default=False)
    cadence = Column(String(20), nullable=False, default="weekly")

    # Scheduler state, only written by mark_fired
    last_fired_at = Column(DateTime(timezone=True))
    last_summary = Column(JSON)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    # Indexes
    __table_args__ = (
        Index('idx_saved_searches_owner_id', 'owner_id'),
        Index('idx_saved_searches_notifications', 'notifications_enabled', 'cadence', 'last_fired_at'),
    )


class Notification(Base):
    """User inbox entries; emails are sent from these by a Celery task"""
    __tablename__ = "notifications"

    id = Column(String(64), primary_key=True, default=_new_id)
    user_id = Column(String(64), nullable=False)

    type = Column(String(50), nullable=False)
    subject = Column(String(300), nullable=False)
    content = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSON)

    read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True))
    sent = Column(Boolean, nullable=False, default=False)
    sent_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_notifications_user_read', 'user_id', 'read'),
        Index('idx_notifications_created_at', 'created_at'),
    )


class SearchHistory(Base):
    """Log of executed searches, anonymous searches included"""
    __tablename__ = "search_history"

    id = Column(String(64), primary_key=True, default=_new_id)
    user_id = Column(String(64))
    filters = Column(JSON, nullable=False)
    # Canonical JSON of the filters, used to group identical searches
    filters_key = Column(Text, nullable=False)
    results_count = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_search_history_user_id', 'user_id'),
        Index('idx_search_history_filters_key', 'filters_key'),
    )
