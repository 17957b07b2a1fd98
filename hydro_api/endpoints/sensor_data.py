"""Lecturas del sensor: última, historial y agregaciones."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .deps import get_db, get_runtime
from ..queries import sensor_data
from ..queries.aggregation import summarize_hourly
from ..runtime import MonitorRuntime
from ..schemas import HourlyOut, HourlySummaryOut, SensorReadingOut

router = APIRouter(prefix="/data", tags=["sensor-data"])


@router.get("/latest", response_model=SensorReadingOut)
def get_latest(db: Session = Depends(get_db)):
    return sensor_data.latest(db).to_dict()


@router.get("/history", response_model=List[SensorReadingOut])
def get_history(
    db: Session = Depends(get_db),
    runtime: MonitorRuntime = Depends(get_runtime),
):
    """Últimas lecturas, de la más vieja a la más nueva."""
    return [r.to_dict() for r in sensor_data.history(db, runtime.settings.history_limit)]


@router.get("/hourly", response_model=HourlyOut)
def get_hourly(date: str = Query(..., description="YYYY-MM-DD (UTC)"), db: Session = Depends(get_db)):
    return {"date": date, "buckets": sensor_data.hourly(db, date)}


@router.get("/hourly/summary", response_model=HourlySummaryOut)
def get_hourly_summary(date: str = Query(..., description="YYYY-MM-DD (UTC)"), db: Session = Depends(get_db)):
    return {"date": date, "summary": summarize_hourly(sensor_data.hourly(db, date))}


@router.get("/daily", response_model=List[SensorReadingOut])
def get_daily(
    days: int = Query(sensor_data.DEFAULT_DAILY_DAYS),
    db: Session = Depends(get_db),
    runtime: MonitorRuntime = Depends(get_runtime),
):
    """Una lectura representativa (la primera) por día."""
    rows = sensor_data.daily(db, days=days, scan_limit=runtime.settings.daily_scan_limit)
    return [r.to_dict() for r in rows]
