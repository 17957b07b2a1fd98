"""Reglas de negocio para el pipeline de ALERTAS."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..domain import DeviationDirection, Severity, ThresholdRange

# Fracción del ancho del rango que se considera "borde" para el display
CAUTION_MARGIN_RATIO = 0.1


@dataclass(frozen=True)
class Breach:
    """Violación de un rango óptimo."""

    current_value: float
    threshold_value: float
    direction: DeviationDirection


@dataclass(frozen=True)
class AlertText:
    title: str
    message: str
    action_required: str


class ParameterStatus(str, Enum):
    OPTIMAL = "optimal"
    CAUTION = "caution"
    WARNING = "warning"
    NO_DATA = "no_data"


_STATUS_SEVERITY = {
    ParameterStatus.OPTIMAL: None,
    ParameterStatus.CAUTION: Severity.LOW,
    ParameterStatus.WARNING: Severity.HIGH,
    ParameterStatus.NO_DATA: None,
}


class AlertRules:
    """Reglas y validaciones para el pipeline de ALERTAS."""

    @staticmethod
    def detect_breach(value: Optional[float], rng: ThresholdRange) -> Optional[Breach]:
        """Compara el valor con el rango; None si no hay violación.

        El umbral reportado es el límite violado (min si bajo, max si alto).
        """
        if value is None:
            return None
        if value < rng.min_value:
            return Breach(value, rng.min_value, DeviationDirection.LOW)
        if value > rng.max_value:
            return Breach(value, rng.max_value, DeviationDirection.HIGH)
        return None

    @staticmethod
    def deviation_percent(current: float, threshold: float) -> float:
        if threshold == 0:
            return float("inf") if current != 0 else 0.0
        return abs(current - threshold) / abs(threshold) * 100

    @staticmethod
    def get_severity(current: float, threshold: float) -> Severity:
        """>20% → critical, >10% → high, resto → medium.

        LOW nunca se asigna a una alerta; se reserva para el display
        de estado (ver classify_parameter).
        """
        deviation = AlertRules.deviation_percent(current, threshold)
        if deviation > 20:
            return Severity.CRITICAL
        if deviation > 10:
            return Severity.HIGH
        return Severity.MEDIUM

    @staticmethod
    def build_text(
        parameter_name: str,
        breach: Breach,
        plant_name: Optional[str] = None,
    ) -> AlertText:
        suffix = f" for {plant_name}" if plant_name else ""
        template = _TEXT_TEMPLATES.get(parameter_name.lower(), _FALLBACK_TEMPLATE)
        fmt = {
            "name": parameter_name,
            "suffix": suffix,
            "direction": breach.direction.value,
            "current": _fmt_number(breach.current_value),
            "threshold": _fmt_number(breach.threshold_value),
        }
        return AlertText(
            title=template[0].format(**fmt),
            message=template[1].format(**fmt),
            action_required=template[2],
        )

    @staticmethod
    def classify_parameter(value: Optional[float], rng: ThresholdRange) -> ParameterStatus:
        """Estado para el display: fuera de rango, cerca del borde u óptimo."""
        if value is None:
            return ParameterStatus.NO_DATA
        if value < rng.min_value or value > rng.max_value:
            return ParameterStatus.WARNING
        margin = (rng.max_value - rng.min_value) * CAUTION_MARGIN_RATIO
        if value <= rng.min_value + margin or value >= rng.max_value - margin:
            return ParameterStatus.CAUTION
        return ParameterStatus.OPTIMAL

    @staticmethod
    def status_severity(status: ParameterStatus) -> Optional[Severity]:
        return _STATUS_SEVERITY[status]


def _fmt_number(value: float) -> str:
    # 30.0 → "30", 6.25 → "6.25"
    return f"{value:g}"


# parameter_name.lower() → (title, message, action)
_TEXT_TEMPLATES = {
    "ph": (
        "{name} Level Alert{suffix}",
        "{name} is {direction} ({current}) for your plants. Optimal range: {threshold}",
        "Adjust pH levels using pH up/down solutions. Check nutrient solution.",
    ),
    "tds": (
        "{name} Level Alert{suffix}",
        "{name} is {direction} ({current}) for your plants. Optimal range: {threshold}",
        "Adjust nutrient concentration. Check EC/ppm meter calibration.",
    ),
    "water temperature": (
        "Water Temperature Alert{suffix}",
        "Water temperature is {direction} ({current}°C) for your plants. Optimal range: {threshold}°C",
        "Use water chiller/heater or adjust environmental conditions.",
    ),
    "air temperature": (
        "Air Temperature Alert{suffix}",
        "Air temperature is {direction} ({current}°C) for your plants. Optimal range: {threshold}°C",
        "Adjust HVAC system or use fans to regulate temperature.",
    ),
    "humidity": (
        "Humidity Alert{suffix}",
        "Humidity is {direction} ({current}%) for your plants. Optimal range: {threshold}%",
        "Use humidifier/dehumidifier or improve air circulation.",
    ),
}

# Aliases con las claves del payload del sensor
_TEXT_TEMPLATES["suhu_air"] = _TEXT_TEMPLATES["water temperature"]
_TEXT_TEMPLATES["suhu_udara"] = _TEXT_TEMPLATES["air temperature"]
_TEXT_TEMPLATES["kelembapan"] = _TEXT_TEMPLATES["humidity"]

_FALLBACK_TEMPLATE = (
    "{name} Alert{suffix}",
    "{name} is {direction} ({current}). Optimal: {threshold}",
    "Check sensor calibration and adjust environmental conditions.",
)
