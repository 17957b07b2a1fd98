from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .domain import GrowthPhase


class SensorReadingOut(BaseModel):
    # Claves del firmware, tal como las consumen dashboard y app
    id: int
    suhu_air: float
    suhu_udara: float
    kelembapan: float
    tds: float
    ph: Optional[float] = None
    pompa: Optional[str] = None
    created_at: datetime


class HourBucketOut(BaseModel):
    hour: str
    suhu_air: Optional[float] = None
    suhu_udara: Optional[float] = None
    kelembapan: Optional[float] = None
    tds: Optional[int] = None
    ph: Optional[float] = None
    record_count: int


class ParameterSummary(BaseModel):
    avg: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None


class HourlyOut(BaseModel):
    date: str
    buckets: List[HourBucketOut]


class HourlySummaryOut(BaseModel):
    date: str
    summary: Dict[str, ParameterSummary]


class PumpCommandIn(BaseModel):
    status: str = Field(..., description="ON or OFF (case-insensitive)")


class PumpCommandOut(BaseModel):
    success: bool
    status: Optional[str] = None
    message: str


class AlertOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    plant_assignment_id: Optional[int] = None
    alert_type: str
    parameter_name: str
    severity: str
    title: str
    message: str
    action_required: Optional[str] = None
    current_value: float
    threshold_value: float
    deviation_direction: str
    is_resolved: bool
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[int] = None
    source_reading_id: Optional[int] = None
    created_at: datetime


class ResolveAlertIn(BaseModel):
    resolved_by: Optional[int] = None


class RangeOut(BaseModel):
    min: float
    max: float


class PlantProfileOut(BaseModel):
    id: int
    name: str
    scientific_name: Optional[str] = None
    category: Optional[str] = None
    difficulty: str
    growth_duration_days: Optional[int] = None
    optimal_parameters: Dict[str, RangeOut]
    description: Optional[str] = None


class AssignmentIn(BaseModel):
    plant_profile_id: int = Field(..., ge=1)
    growth_phase: GrowthPhase = GrowthPhase.SEEDLING
    planted_at: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class AssignmentUpdateIn(BaseModel):
    growth_phase: Optional[GrowthPhase] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    active: Optional[bool] = None


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    plant_profile_id: int
    growth_phase: str
    planted_at: Optional[datetime] = None
    expected_harvest_at: Optional[datetime] = None
    notes: Optional[str] = None
    active: bool
    created_at: datetime


class OptimalParametersOut(BaseModel):
    id: int
    plant_name: str
    growth_phase: str
    optimal_parameters: Dict[str, RangeOut]
    planted_at: Optional[datetime] = None
    expected_harvest_at: Optional[datetime] = None
