"""Repositorio de lecturas de sensor (append-only)."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from ...domain import SensorReading
from .tables import sensor_readings


def _row_to_reading(row) -> SensorReading:
    return SensorReading(
        id=int(row.id),
        water_temp=float(row.water_temp),
        air_temp=float(row.air_temp),
        humidity=float(row.humidity),
        tds=float(row.tds),
        ph=float(row.ph) if row.ph is not None else None,
        pump_state=row.pump_state,
        captured_at=row.captured_at,
    )


def insert_reading(
    db: Session,
    *,
    water_temp: float,
    air_temp: float,
    humidity: float,
    tds: float,
    ph: Optional[float],
    pump_state: Optional[str],
    captured_at: datetime,
) -> SensorReading:
    result = db.execute(
        insert(sensor_readings)
        .values(
            water_temp=water_temp,
            air_temp=air_temp,
            humidity=humidity,
            tds=tds,
            ph=ph,
            pump_state=pump_state,
            captured_at=captured_at,
        )
        .returning(sensor_readings.c.id)
    )
    reading_id = int(result.scalar_one())
    return SensorReading(
        id=reading_id,
        water_temp=water_temp,
        air_temp=air_temp,
        humidity=humidity,
        tds=tds,
        ph=ph,
        pump_state=pump_state,
        captured_at=captured_at,
    )


def get_latest(db: Session) -> Optional[SensorReading]:
    row = db.execute(
        select(sensor_readings)
        .order_by(sensor_readings.c.captured_at.desc(), sensor_readings.c.id.desc())
        .limit(1)
    ).fetchone()
    return _row_to_reading(row) if row else None


def list_latest(db: Session, limit: int) -> List[SensorReading]:
    """Últimas `limit` lecturas, de la más nueva a la más vieja."""
    rows = db.execute(
        select(sensor_readings)
        .order_by(sensor_readings.c.captured_at.desc(), sensor_readings.c.id.desc())
        .limit(limit)
    ).fetchall()
    return [_row_to_reading(r) for r in rows]


def list_between(
    db: Session,
    start: datetime,
    end: Optional[datetime] = None,
    limit: Optional[int] = None,
    newest_first: bool = False,
) -> List[SensorReading]:
    """Lecturas con start <= captured_at < end (sin end: hasta ahora)."""
    order = (
        (sensor_readings.c.captured_at.desc(), sensor_readings.c.id.desc())
        if newest_first
        else (sensor_readings.c.captured_at.asc(), sensor_readings.c.id.asc())
    )
    stmt = select(sensor_readings).where(sensor_readings.c.captured_at >= start)
    if end is not None:
        stmt = stmt.where(sensor_readings.c.captured_at < end)
    stmt = stmt.order_by(*order)
    if limit is not None:
        stmt = stmt.limit(limit)
    return [_row_to_reading(r) for r in db.execute(stmt).fetchall()]
