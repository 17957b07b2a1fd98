"""Catálogo de plantas, plantas del usuario y estado de parámetros."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .deps import get_db, get_runtime, require_user
from ..clock import to_naive_utc
from ..domain import PlantProfile
from ..plants import plant_repository, plant_service
from ..runtime import MonitorRuntime
from ..schemas import (
    AssignmentIn,
    AssignmentOut,
    AssignmentUpdateIn,
    OptimalParametersOut,
    PlantProfileOut,
)

router = APIRouter(tags=["plants"])


def _profile_out(profile: PlantProfile) -> PlantProfileOut:
    return PlantProfileOut(
        id=profile.id,
        name=profile.name,
        scientific_name=profile.scientific_name,
        category=profile.category,
        difficulty=profile.difficulty,
        growth_duration_days=profile.growth_duration_days,
        optimal_parameters={
            key: {"min": rng.min_value, "max": rng.max_value}
            for key, rng in profile.optimal_ranges.items()
        },
        description=profile.description,
    )


@router.get("/plants/profiles", response_model=List[PlantProfileOut])
def list_profiles(
    category: Optional[str] = Query(None),
    difficulty: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    db: Session = Depends(get_db),
):
    profiles = plant_repository.list_profiles(
        db, category=category, difficulty=difficulty, search=search
    )
    return [_profile_out(p) for p in profiles]


@router.get("/plants/profiles/{profile_id}", response_model=PlantProfileOut)
def get_profile(profile_id: int, db: Session = Depends(get_db)):
    profile = plant_repository.get_profile(db, profile_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Plant profile not found")
    return _profile_out(profile)


@router.get("/users/{user_id}/plants", response_model=List[AssignmentOut])
def list_user_plants(user_id: int = Depends(require_user), db: Session = Depends(get_db)):
    return [a for a, _ in plant_repository.list_active_with_profiles(db, user_id)]


@router.post("/users/{user_id}/plants", response_model=AssignmentOut, status_code=201)
def add_user_plant(
    body: AssignmentIn,
    user_id: int = Depends(require_user),
    db: Session = Depends(get_db),
):
    return plant_service.add_assignment(
        db,
        user_id,
        body.plant_profile_id,
        growth_phase=body.growth_phase.value,
        planted_at=to_naive_utc(body.planted_at) if body.planted_at else None,
        notes=body.notes,
    )


@router.patch("/users/{user_id}/plants/{assignment_id}", response_model=AssignmentOut)
def update_user_plant(
    assignment_id: int,
    body: AssignmentUpdateIn,
    user_id: int = Depends(require_user),
    db: Session = Depends(get_db),
):
    return plant_service.update_assignment(
        db,
        user_id,
        assignment_id,
        growth_phase=body.growth_phase.value if body.growth_phase else None,
        notes=body.notes,
        active=body.active,
    )


@router.delete("/users/{user_id}/plants/{assignment_id}", response_model=AssignmentOut)
def remove_user_plant(
    assignment_id: int,
    user_id: int = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Desactiva la planta; el historial y las alertas se conservan."""
    return plant_service.deactivate_assignment(db, user_id, assignment_id)


@router.get("/users/{user_id}/plants/optimal-parameters", response_model=List[OptimalParametersOut])
def optimal_parameters(user_id: int = Depends(require_user), db: Session = Depends(get_db)):
    return plant_service.optimal_parameters(db, user_id)


@router.get("/users/{user_id}/parameter-status")
def parameter_status(
    user_id: int = Depends(require_user),
    db: Session = Depends(get_db),
    runtime: MonitorRuntime = Depends(get_runtime),
):
    return plant_service.parameter_status(db, user_id, runtime.default_thresholds)
