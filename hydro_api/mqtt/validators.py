"""Validadores del payload del sensor hidropónico.

Formato esperado (registro plano, claves del firmware):
{
    "suhu_air": 24.5,      # temperatura del agua °C
    "suhu_udara": 27.1,    # temperatura del aire °C
    "kelembapan": 65.0,    # humedad relativa %
    "tds": 820,            # ppm
    "ph": 6.3,             # opcional
    "pompa": "ON"          # opcional, estado de la bomba
}
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional

import orjson
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..domain import PumpState
from ..errors import ParseError

logger = logging.getLogger(__name__)


class SensorPayload(BaseModel):
    """Schema de validación para una lectura del sensor."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    suhu_air: float
    suhu_udara: float
    kelembapan: float
    tds: float
    ph: Optional[float] = None
    pompa: Optional[PumpState] = None

    @field_validator("suhu_air", "suhu_udara", "kelembapan", "tds", "ph", mode="before")
    @classmethod
    def validate_numeric(cls, v: Any) -> Any:
        if v is None:
            return v
        # bool es subclase de int; "23.5" como string tampoco es una lectura válida
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError(f"must be a number, got {type(v).__name__}")
        if math.isnan(v) or math.isinf(v):
            raise ValueError("must be a finite number")
        return v

    @field_validator("pompa", mode="before")
    @classmethod
    def normalize_pump_state(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v


@dataclass
class ValidationResult:
    """Resultado de validación."""

    valid: bool
    payload: Optional[SensorPayload] = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


def validate_sensor_reading(data: Any) -> ValidationResult:
    """Valida un payload ya decodificado.

    Returns:
        ValidationResult con payload validado o error
    """
    if not isinstance(data, dict):
        return ValidationResult(valid=False, error=f"Payload must be an object, got {type(data).__name__}")

    warnings = []
    if data.get("ph") is None:
        warnings.append("ph missing; stored as null")

    try:
        payload = SensorPayload.model_validate(data)
    except PydanticValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        return ValidationResult(valid=False, error=errors)

    return ValidationResult(valid=True, payload=payload, warnings=warnings)


def parse_sensor_payload(raw: bytes) -> SensorPayload:
    """Decodifica y valida el payload crudo del topic de ingesta.

    Raises:
        ParseError: JSON inválido o campos faltantes / no numéricos
    """
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}") from e

    result = validate_sensor_reading(data)
    if not result.valid:
        raise ParseError(result.error)
    for warning in result.warnings:
        logger.debug("[INGEST] Payload warning: %s", warning)
    return result.payload
