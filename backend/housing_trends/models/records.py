from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional
from datetime import datetime


class County(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    fips_code: str
    state_code: str
    name: str
    state: Optional[str] = None


class HousingRecord(BaseModel):
    """Median home price observation for one county"""
    kind: Literal["housing"] = "housing"
    id: str
    county_fips: str
    state_code: str
    median_home_price: Optional[float] = Field(None, ge=0)
    price_change_yoy: Optional[float] = None  # percent
    recorded_at: datetime


class RentRecord(BaseModel):
    """Median rent observation for one county"""
    kind: Literal["rent"] = "rent"
    id: str
    county_fips: str
    state_code: str
    median_rent: Optional[float] = Field(None, ge=0)
    rent_change_yoy: Optional[float] = None  # percent
    recorded_at: datetime


class TrendRecord(BaseModel):
    """Derived market trend indicators for one county"""
    kind: Literal["trends"] = "trends"
    id: str
    county_fips: str
    state_code: str
    affordability_index: Optional[float] = Field(None, ge=0, le=100)
    price_change_yoy: Optional[float] = None
    rent_change_yoy: Optional[float] = None
    recorded_at: datetime
