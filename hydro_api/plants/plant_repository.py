"""Repositorio de perfiles de planta y asignaciones usuario-planta.

Las asignaciones nunca se borran: desactivar es lógico (active=false)
para no romper el vínculo con alertas e historial.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from ..clock import utcnow
from ..domain import PlantAssignment, PlantProfile, ThresholdRange
from ..alerts.thresholds import PARAMETERS
from ..infrastructure.persistence.tables import plant_profiles, user_plant_assignments


def _row_to_profile(row) -> PlantProfile:
    # Claves por columna: el mismo row sirve para select simple y para el join
    m = row._mapping
    c = plant_profiles.c
    ranges: Dict[str, ThresholdRange] = {}
    for p in PARAMETERS:
        ranges[p.key] = ThresholdRange(
            float(m[c[f"{p.key}_min"]]),
            float(m[c[f"{p.key}_max"]]),
        )
    return PlantProfile(
        id=int(m[c.id]),
        name=str(m[c.name]),
        scientific_name=m[c.scientific_name],
        category=m[c.category],
        difficulty=str(m[c.difficulty]),
        growth_duration_days=m[c.growth_duration_days],
        optimal_ranges=ranges,
        description=m[c.description],
    )


def _row_to_assignment(row) -> PlantAssignment:
    m = row._mapping
    c = user_plant_assignments.c
    return PlantAssignment(
        id=int(m[c.id]),
        user_id=int(m[c.user_id]),
        plant_profile_id=int(m[c.plant_profile_id]),
        growth_phase=str(m[c.growth_phase]),
        planted_at=m[c.planted_at],
        expected_harvest_at=m[c.expected_harvest_at],
        notes=m[c.notes],
        active=bool(m[c.active]),
        created_at=m[c.created_at],
    )


# --- Perfiles ---------------------------------------------------------------

def list_profiles(
    db: Session,
    *,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    search: Optional[str] = None,
) -> List[PlantProfile]:
    stmt = select(plant_profiles)
    if category:
        stmt = stmt.where(plant_profiles.c.category == category)
    if difficulty:
        stmt = stmt.where(plant_profiles.c.difficulty == difficulty)
    if search:
        stmt = stmt.where(plant_profiles.c.name.ilike(f"%{search}%"))
    stmt = stmt.order_by(plant_profiles.c.name.asc())
    return [_row_to_profile(r) for r in db.execute(stmt).fetchall()]


def get_profile(db: Session, profile_id: int) -> Optional[PlantProfile]:
    row = db.execute(select(plant_profiles).where(plant_profiles.c.id == profile_id)).fetchone()
    return _row_to_profile(row) if row else None


def get_profile_id_by_name(db: Session, name: str) -> Optional[int]:
    row = db.execute(select(plant_profiles.c.id).where(plant_profiles.c.name == name)).fetchone()
    return int(row[0]) if row else None


def insert_profile(
    db: Session,
    *,
    name: str,
    ranges: Dict[str, Tuple[float, float]],
    scientific_name: Optional[str] = None,
    category: Optional[str] = None,
    difficulty: str = "moderate",
    growth_duration_days: Optional[int] = None,
    description: Optional[str] = None,
) -> int:
    values = {
        "name": name,
        "scientific_name": scientific_name,
        "category": category,
        "difficulty": difficulty,
        "growth_duration_days": growth_duration_days,
        "description": description,
        "created_at": utcnow(),
    }
    for p in PARAMETERS:
        low, high = ranges[p.key]
        values[f"{p.key}_min"] = low
        values[f"{p.key}_max"] = high
    result = db.execute(insert(plant_profiles).values(**values).returning(plant_profiles.c.id))
    return int(result.scalar_one())


# --- Asignaciones -------------------------------------------------------------

def get_assignment(db: Session, user_id: int, assignment_id: int) -> Optional[PlantAssignment]:
    row = db.execute(
        select(user_plant_assignments).where(
            user_plant_assignments.c.id == assignment_id,
            user_plant_assignments.c.user_id == user_id,
        )
    ).fetchone()
    return _row_to_assignment(row) if row else None


def has_active_assignment(db: Session, user_id: int, profile_id: int) -> bool:
    row = db.execute(
        select(user_plant_assignments.c.id).where(
            user_plant_assignments.c.user_id == user_id,
            user_plant_assignments.c.plant_profile_id == profile_id,
            user_plant_assignments.c.active.is_(True),
        )
    ).fetchone()
    return row is not None


def list_active_with_profiles(
    db: Session, user_id: int
) -> List[Tuple[PlantAssignment, PlantProfile]]:
    """Asignaciones activas del usuario junto a su perfil (más recientes primero)."""
    rows = db.execute(
        select(user_plant_assignments, plant_profiles)
        .join(plant_profiles, plant_profiles.c.id == user_plant_assignments.c.plant_profile_id)
        .where(
            user_plant_assignments.c.user_id == user_id,
            user_plant_assignments.c.active.is_(True),
        )
        .order_by(user_plant_assignments.c.created_at.desc(), user_plant_assignments.c.id.desc())
    ).fetchall()

    return [(_row_to_assignment(r), _row_to_profile(r)) for r in rows]


def insert_assignment(
    db: Session,
    *,
    user_id: int,
    profile_id: int,
    growth_phase: str,
    planted_at: Optional[datetime],
    expected_harvest_at: Optional[datetime],
    notes: Optional[str],
) -> int:
    result = db.execute(
        insert(user_plant_assignments)
        .values(
            user_id=user_id,
            plant_profile_id=profile_id,
            growth_phase=growth_phase,
            planted_at=planted_at,
            expected_harvest_at=expected_harvest_at,
            notes=notes,
            active=True,
            created_at=utcnow(),
        )
        .returning(user_plant_assignments.c.id)
    )
    return int(result.scalar_one())


def update_assignment(db: Session, assignment_id: int, **values) -> None:
    if not values:
        return
    db.execute(
        update(user_plant_assignments)
        .where(user_plant_assignments.c.id == assignment_id)
        .values(**values)
    )
