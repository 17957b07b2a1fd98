"""Ciclo de vida de las plantas de un usuario y estado de parámetros.

Las reglas (perfil existente, no duplicar una planta activa, fecha de
cosecha esperada) viven aquí; el repositorio solo persiste.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from ..alerts.alert_rules import AlertRules
from ..alerts.thresholds import PARAMETERS, ThresholdTable
from ..clock import utcnow
from ..domain import GrowthPhase, PlantAssignment, SensorReading
from ..errors import (
    AssignmentNotFoundError,
    DuplicateAssignmentError,
    PlantProfileNotFoundError,
    ValidationError,
)
from ..infrastructure.persistence import reading_repository
from . import plant_repository as repo

logger = logging.getLogger(__name__)


def _validate_phase(growth_phase: str) -> str:
    try:
        return GrowthPhase(growth_phase).value
    except ValueError:
        allowed = ", ".join(p.value for p in GrowthPhase)
        raise ValidationError(f"Invalid growth phase '{growth_phase}' (allowed: {allowed})")


def add_assignment(
    db: Session,
    user_id: int,
    profile_id: int,
    *,
    growth_phase: Optional[str] = None,
    planted_at: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> PlantAssignment:
    """Agrega una planta al jardín del usuario.

    Raises:
        PlantProfileNotFoundError: el perfil no existe
        DuplicateAssignmentError: el usuario ya tiene esa planta activa
        ValidationError: fase de crecimiento inválida
    """
    phase = _validate_phase(growth_phase or GrowthPhase.SEEDLING.value)

    profile = repo.get_profile(db, profile_id)
    if profile is None:
        raise PlantProfileNotFoundError(f"Plant profile {profile_id} not found")

    if repo.has_active_assignment(db, user_id, profile_id):
        raise DuplicateAssignmentError(
            f"Plant profile {profile_id} is already active for user {user_id}"
        )

    planted = planted_at or utcnow()
    expected_harvest = None
    if profile.growth_duration_days:
        expected_harvest = planted + timedelta(days=profile.growth_duration_days)

    assignment_id = repo.insert_assignment(
        db,
        user_id=user_id,
        profile_id=profile_id,
        growth_phase=phase,
        planted_at=planted,
        expected_harvest_at=expected_harvest,
        notes=notes or "",
    )
    db.commit()
    logger.info(
        "[PLANTS] user=%s added profile=%s assignment=%s",
        user_id, profile.name, assignment_id,
    )
    return repo.get_assignment(db, user_id, assignment_id)


def update_assignment(
    db: Session,
    user_id: int,
    assignment_id: int,
    *,
    growth_phase: Optional[str] = None,
    notes: Optional[str] = None,
    active: Optional[bool] = None,
) -> PlantAssignment:
    current = repo.get_assignment(db, user_id, assignment_id)
    if current is None:
        raise AssignmentNotFoundError(f"Plant setting {assignment_id} not found")

    if active and not current.active and repo.has_active_assignment(
        db, user_id, current.plant_profile_id
    ):
        raise DuplicateAssignmentError(
            f"Plant profile {current.plant_profile_id} is already active for user {user_id}"
        )

    values = {}
    if growth_phase is not None:
        values["growth_phase"] = _validate_phase(growth_phase)
    if notes is not None:
        values["notes"] = notes
    if active is not None:
        values["active"] = bool(active)

    repo.update_assignment(db, assignment_id, **values)
    db.commit()
    return repo.get_assignment(db, user_id, assignment_id)


def deactivate_assignment(db: Session, user_id: int, assignment_id: int) -> PlantAssignment:
    """Quita la planta del jardín sin borrarla."""
    return update_assignment(db, user_id, assignment_id, active=False)


def optimal_parameters(db: Session, user_id: int) -> List[dict]:
    result = []
    for assignment, profile in repo.list_active_with_profiles(db, user_id):
        result.append({
            "id": assignment.id,
            "plant_name": profile.name,
            "growth_phase": assignment.growth_phase,
            "optimal_parameters": {
                key: {"min": rng.min_value, "max": rng.max_value}
                for key, rng in profile.optimal_ranges.items()
            },
            "planted_at": assignment.planted_at,
            "expected_harvest_at": assignment.expected_harvest_at,
        })
    return result


def _classify_reading(reading: Optional[SensorReading], table: ThresholdTable) -> dict:
    out = {}
    for param in PARAMETERS:
        rng = table.get(param.key)
        value = param.value_of(reading) if reading is not None else None
        if rng is None or not rng.is_valid:
            continue
        status = AlertRules.classify_parameter(value, rng)
        severity = AlertRules.status_severity(status)
        out[param.key] = {
            "parameter_name": param.name,
            "value": value,
            "min": rng.min_value,
            "max": rng.max_value,
            "status": status.value,
            "severity": severity.value if severity else None,
        }
    return out


def parameter_status(db: Session, user_id: int, default_thresholds: ThresholdTable) -> dict:
    """Clasifica la última lectura contra cada planta activa del usuario.

    Sin plantas activas se usa la tabla por defecto del sistema.
    """
    reading = reading_repository.get_latest(db)
    plants = repo.list_active_with_profiles(db, user_id)

    if not plants:
        groups = [{
            "source": "system",
            "plant_name": None,
            "parameters": _classify_reading(reading, default_thresholds),
        }]
    else:
        groups = [
            {
                "source": "plant",
                "plant_name": profile.name,
                "assignment_id": assignment.id,
                "parameters": _classify_reading(reading, profile.optimal_ranges),
            }
            for assignment, profile in plants
        ]

    return {
        "reading": reading.to_dict() if reading else None,
        "groups": groups,
    }
