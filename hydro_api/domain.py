"""Modelos de dominio.

Dataclasses inmutables que cruzan los límites entre módulos. Las
relaciones se expresan por id, nunca como grafos de objetos.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional


class PumpState(str, Enum):
    ON = "ON"
    OFF = "OFF"


class GrowthPhase(str, Enum):
    SEEDLING = "seedling"
    VEGETATIVE = "vegetative"
    FLOWERING = "flowering"
    HARVEST = "harvest"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class DeviationDirection(str, Enum):
    LOW = "low"
    HIGH = "high"


class AlertType(str, Enum):
    PLANT = "plant"
    SYSTEM = "system"


@dataclass(frozen=True)
class ThresholdRange:
    """Rango óptimo [min, max] de un parámetro."""

    min_value: float
    max_value: float

    @property
    def is_valid(self) -> bool:
        return self.min_value <= self.max_value


@dataclass(frozen=True)
class SensorReading:
    """Lectura ingerida. Se crea una vez y nunca se modifica."""

    id: int
    water_temp: float
    air_temp: float
    humidity: float
    tds: float
    ph: Optional[float]
    pump_state: Optional[str]
    captured_at: datetime

    def to_dict(self) -> dict:
        # Claves del firmware del sensor, las que consumen dashboard y app
        return {
            "id": self.id,
            "suhu_air": self.water_temp,
            "suhu_udara": self.air_temp,
            "kelembapan": self.humidity,
            "tds": self.tds,
            "ph": self.ph,
            "pompa": self.pump_state,
            "created_at": self.captured_at.isoformat(),
        }


@dataclass(frozen=True)
class PlantProfile:
    id: int
    name: str
    scientific_name: Optional[str]
    category: Optional[str]
    difficulty: str
    growth_duration_days: Optional[int]
    optimal_ranges: Dict[str, ThresholdRange] = field(default_factory=dict)
    description: Optional[str] = None


@dataclass(frozen=True)
class PlantAssignment:
    id: int
    user_id: int
    plant_profile_id: int
    growth_phase: str
    planted_at: Optional[datetime]
    expected_harvest_at: Optional[datetime]
    notes: Optional[str]
    active: bool
    created_at: datetime


@dataclass(frozen=True)
class Alert:
    id: int
    user_id: int
    plant_assignment_id: Optional[int]
    alert_type: str
    parameter_name: str
    severity: str
    title: str
    message: str
    action_required: Optional[str]
    current_value: float
    threshold_value: float
    deviation_direction: str
    is_resolved: bool
    resolved_at: Optional[datetime]
    resolved_by: Optional[int]
    source_reading_id: Optional[int]
    created_at: datetime
