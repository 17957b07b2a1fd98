"""Parámetros monitoreados y tabla de umbrales por defecto del sistema.

La tabla por defecto se usa cuando el usuario no tiene plantas activas.
Es un valor de configuración inyectable en el motor de alertas, no un
literal dentro del algoritmo.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

import orjson

from ..domain import SensorReading, ThresholdRange
from ..errors import ValidationError


@dataclass(frozen=True)
class MonitoredParameter:
    """Un parámetro de la lectura que se compara contra un rango óptimo."""

    key: str  # clave en tablas de umbrales / columnas *_min, *_max
    name: str  # parameter_name de la alerta
    reading_attr: str
    wire_key: str  # clave en el payload del sensor y en las respuestas
    unit: str
    decimals: int  # precisión de los promedios agregados

    def value_of(self, reading: SensorReading) -> Optional[float]:
        return getattr(reading, self.reading_attr)


PH = MonitoredParameter("ph", "pH", "ph", "ph", "", 2)
TDS = MonitoredParameter("tds", "TDS", "tds", "tds", "ppm", 0)
WATER_TEMP = MonitoredParameter("water_temp", "Water Temperature", "water_temp", "suhu_air", "°C", 2)
AIR_TEMP = MonitoredParameter("air_temp", "Air Temperature", "air_temp", "suhu_udara", "°C", 2)
HUMIDITY = MonitoredParameter("humidity", "Humidity", "humidity", "kelembapan", "%", 2)

# Orden de evaluación
PARAMETERS: tuple[MonitoredParameter, ...] = (PH, TDS, WATER_TEMP, AIR_TEMP, HUMIDITY)

PARAMETERS_BY_KEY: Dict[str, MonitoredParameter] = {p.key: p for p in PARAMETERS}


ThresholdTable = Mapping[str, ThresholdRange]


DEFAULT_THRESHOLDS: Dict[str, ThresholdRange] = {
    "ph": ThresholdRange(5.5, 7.5),
    "tds": ThresholdRange(500, 1500),
    "water_temp": ThresholdRange(18, 28),
    "air_temp": ThresholdRange(20, 30),
    "humidity": ThresholdRange(40, 80),
}


def thresholds_from_json(raw: Optional[str]) -> Dict[str, ThresholdRange]:
    """Construye la tabla por defecto aplicando overrides en JSON.

    Formato: {"ph": {"min": 5.8, "max": 6.8}, ...}. Las claves ausentes
    conservan el valor por defecto.
    """
    table = dict(DEFAULT_THRESHOLDS)
    if not raw:
        return table

    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ValidationError(f"DEFAULT_THRESHOLDS_JSON is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError("DEFAULT_THRESHOLDS_JSON must be an object")

    for key, bounds in data.items():
        if key not in PARAMETERS_BY_KEY:
            raise ValidationError(f"Unknown parameter in thresholds: {key}")
        try:
            rng = ThresholdRange(float(bounds["min"]), float(bounds["max"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid bounds for {key}: {bounds!r}") from e
        if not rng.is_valid:
            raise ValidationError(f"min > max for {key}")
        table[key] = rng

    return table
