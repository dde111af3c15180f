from typing import Dict, Optional, Type
from sqlalchemy import select, func, or_
from housing_trends.core.database import SessionLocal
from housing_trends.db.models import (
    County as DBCounty, HousingData as DBHousingData, RentData as DBRentData,
    MarketTrend as DBMarketTrend
)
from housing_trends.models.records import County, HousingRecord, RentRecord, TrendRecord
from housing_trends.models.search import AggregateSummary, DataType
from housing_trends.modules.search.repository import RecordRepository
import logging

logger = logging.getLogger(__name__)

TABLES: Dict[DataType, Type] = {
    DataType.HOUSING: DBHousingData,
    DataType.RENT: DBRentData,
    DataType.TRENDS: DBMarketTrend,
}

RECORD_MODELS: Dict[DataType, Type] = {
    DataType.HOUSING: HousingRecord,
    DataType.RENT: RentRecord,
    DataType.TRENDS: TrendRecord,
}


class SqlRecordRepository(RecordRepository):
    """Record store backed by the housing_data, rent_data and market_trends tables"""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def _filtered(self, stmt, predicate):
        """Apply the predicate's joins and WHERE clauses to a select"""
        table = TABLES[predicate.kind]
        stmt = stmt.select_from(table).join(DBCounty, table.county_fips == DBCounty.fips_code)

        if predicate.regions:
            regions = list(predicate.regions)
            stmt = stmt.where(or_(
                DBCounty.state_code.in_(regions),
                DBCounty.fips_code.in_(regions)
            ))

        for clause in predicate.ranges:
            column = getattr(table, clause.field)
            stmt = stmt.where(column.is_not(None))
            if clause.bounds.min is not None:
                stmt = stmt.where(column >= clause.bounds.min)
            if clause.bounds.max is not None:
                stmt = stmt.where(column <= clause.bounds.max)

        return stmt

    def _to_record(self, kind: DataType, row, state_code: str):
        record_model = RECORD_MODELS[kind]
        values = {
            name: getattr(row, name)
            for name in record_model.model_fields
            if name not in ("kind", "state_code")
        }
        return record_model(state_code=state_code, **values)

    def find_by_predicate(self, predicate, order, offset=0, limit=20):
        table = TABLES[predicate.kind]
        column = getattr(table, order.field)
        primary = column.desc() if order.descending else column.asc()

        stmt = self._filtered(select(table, DBCounty.state_code), predicate)
        stmt = stmt.order_by(primary.nulls_last(), table.id.asc()).offset(offset).limit(limit)

        with self.session_factory() as db:
            rows = db.execute(stmt).all()
            return [self._to_record(predicate.kind, row[0], row[1]) for row in rows]

    def count(self, predicate):
        table = TABLES[predicate.kind]
        stmt = self._filtered(select(func.count(table.id)), predicate)
        with self.session_factory() as db:
            return db.execute(stmt).scalar_one()

    def aggregate(self, predicate, field):
        table = TABLES[predicate.kind]
        column = getattr(table, field)
        stmt = self._filtered(
            select(func.count(table.id), func.min(column), func.max(column), func.avg(column)),
            predicate
        )
        with self.session_factory() as db:
            count, minimum, maximum, average = db.execute(stmt).one()

        if not count or average is None:
            return AggregateSummary(count=count or 0)

        return AggregateSummary(
            count=count,
            min=float(minimum),
            max=float(maximum),
            avg=round(float(average), 2),
        )

    def get_county(self, fips_code):
        with self.session_factory() as db:
            county = db.get(DBCounty, fips_code)
            return County.model_validate(county) if county else None

    def list_counties(self):
        with self.session_factory() as db:
            counties = db.execute(select(DBCounty).order_by(DBCounty.fips_code)).scalars().all()
            return [County.model_validate(c) for c in counties]

    def latest_metric(self, kind, field, fips_code) -> Optional[float]:
        table = TABLES[kind]
        column = getattr(table, field)
        stmt = (
            select(column)
            .where(table.county_fips == fips_code, column.is_not(None))
            .order_by(table.recorded_at.desc(), table.id.desc())
            .limit(1)
        )
        with self.session_factory() as db:
            return db.execute(stmt).scalar_one_or_none()
