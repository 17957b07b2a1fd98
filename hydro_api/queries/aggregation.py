"""Agregación en tiempo de consulta (nada se materializa).

- Buckets horarios: 24 slots fijos por hora del día ("00:00"…"23:00")
- Promedio por parámetro sobre los valores no nulos; bucket vacío → None
- Redondeo half-up: temperaturas/humedad/pH a 2 decimales, TDS entero
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Union

from ..alerts.thresholds import PARAMETERS, MonitoredParameter
from ..domain import SensorReading

Number = Union[int, float]


def round_half_up(value: float, decimals: int) -> Number:
    """Redondeo comercial (2.5 → 3), no el de banquero de round()."""
    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if decimals == 0:
        return int(rounded)
    return float(rounded)


def round_parameter(param: MonitoredParameter, value: Optional[float]) -> Optional[Number]:
    if value is None:
        return None
    return round_half_up(value, param.decimals)


def hour_label(hour: int) -> str:
    return f"{hour:02d}:00"


@dataclass
class AggregationBucket:
    """Acumulador transitorio de un bucket: sumas y conteos por parámetro."""

    key: str
    sums: Dict[str, float] = field(default_factory=dict)
    counts: Dict[str, int] = field(default_factory=dict)
    record_count: int = 0

    def add(self, reading: SensorReading) -> None:
        self.record_count += 1
        for param in PARAMETERS:
            value = param.value_of(reading)
            if value is None:
                continue
            self.sums[param.wire_key] = self.sums.get(param.wire_key, 0.0) + value
            self.counts[param.wire_key] = self.counts.get(param.wire_key, 0) + 1

    def mean(self, param: MonitoredParameter) -> Optional[float]:
        count = self.counts.get(param.wire_key, 0)
        if not count:
            return None
        return self.sums[param.wire_key] / count

    def to_dict(self) -> dict:
        out: dict = {"hour": self.key}
        for param in PARAMETERS:
            out[param.wire_key] = round_parameter(param, self.mean(param))
        out["record_count"] = self.record_count
        return out


def build_hourly_buckets(readings: Iterable[SensorReading]) -> List[dict]:
    """Siempre 24 entradas, una por hora del día (UTC)."""
    buckets = [AggregationBucket(hour_label(h)) for h in range(24)]
    for reading in readings:
        buckets[reading.captured_at.hour].add(reading)
    return [b.to_dict() for b in buckets]


def first_reading_per_day(readings: Iterable[SensorReading]) -> List[SensorReading]:
    """Primera lectura cronológica de cada día calendario (UTC), ascendente.

    `readings` debe venir ordenado de la más vieja a la más nueva.
    """
    seen: Dict[date, SensorReading] = {}
    for reading in readings:
        day = reading.captured_at.date()
        if day not in seen:
            seen[day] = reading
    return [seen[d] for d in sorted(seen)]


def summarize_hourly(buckets: List[dict]) -> Dict[str, dict]:
    """avg / min / max de los promedios horarios no nulos de cada parámetro."""
    summary: Dict[str, dict] = {}
    for param in PARAMETERS:
        values = [b[param.wire_key] for b in buckets if b.get(param.wire_key) is not None]
        if not values:
            summary[param.wire_key] = {"avg": None, "min": None, "max": None}
            continue
        summary[param.wire_key] = {
            "avg": round_half_up(sum(values) / len(values), param.decimals),
            "min": min(values),
            "max": max(values),
        }
    return summary
