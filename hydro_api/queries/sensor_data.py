"""Consultas de lecturas: última, historial, horario y diario."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from ..clock import utcnow
from ..domain import SensorReading
from ..errors import ReadingNotFoundError, ValidationError
from ..infrastructure.persistence import reading_repository
from .aggregation import build_hourly_buckets, first_reading_per_day

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 1000
DAILY_SCAN_LIMIT = 5000
DEFAULT_DAILY_DAYS = 30
MAX_DAILY_DAYS = 365

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_day(value: str) -> date:
    """'YYYY-MM-DD' → date.

    Raises:
        ValidationError: formato o fecha inválidos
    """
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value}") from e


def latest(db: Session) -> SensorReading:
    reading = reading_repository.get_latest(db)
    if reading is None:
        raise ReadingNotFoundError("No sensor data found")
    return reading


def history(db: Session, limit: int = HISTORY_LIMIT) -> List[SensorReading]:
    """Últimas `limit` lecturas, de la más vieja a la más nueva."""
    rows = reading_repository.list_latest(db, limit)
    rows.reverse()
    return rows


def hourly(db: Session, day: str) -> List[dict]:
    """24 buckets horarios del día UTC indicado."""
    target = parse_day(day)
    start = datetime.combine(target, datetime.min.time())
    readings = reading_repository.list_between(db, start, start + timedelta(days=1))
    logger.debug("[AGG] hourly day=%s readings=%d", day, len(readings))
    return build_hourly_buckets(readings)


def daily(
    db: Session,
    days: int = DEFAULT_DAILY_DAYS,
    scan_limit: int = DAILY_SCAN_LIMIT,
    now: Optional[datetime] = None,
) -> List[SensorReading]:
    """Primera lectura de cada día en la ventana de `days` días.

    Se escanean como máximo `scan_limit` filas, priorizando las más
    recientes si la ventana tiene más. Con el tope alcanzado, el día más
    viejo del escaneo queda cortado y su primera lectura se busca aparte.
    """
    if isinstance(days, bool) or not isinstance(days, int) or not 1 <= days <= MAX_DAILY_DAYS:
        raise ValidationError(f"days must be an integer between 1 and {MAX_DAILY_DAYS}")

    since = (now or utcnow()) - timedelta(days=days)
    rows = reading_repository.list_between(db, since, limit=scan_limit, newest_first=True)
    rows.reverse()

    if rows and len(rows) >= scan_limit:
        logger.info("[AGG] daily scan capped at %d rows (days=%d)", scan_limit, days)
        oldest = rows[0].captured_at.date()
        day_start = datetime.combine(oldest, datetime.min.time())
        first = reading_repository.list_between(
            db, max(since, day_start), day_start + timedelta(days=1), limit=1
        )
        rows = first + [r for r in rows if r.captured_at.date() != oldest]

    return first_reading_per_day(rows)
