"""Tests del catálogo de plantas, asignaciones y estado de parámetros."""

from datetime import datetime, timedelta

import pytest

from hydro_api.alerts.thresholds import DEFAULT_THRESHOLDS
from hydro_api.errors import (
    AssignmentNotFoundError,
    DuplicateAssignmentError,
    PlantProfileNotFoundError,
    ValidationError,
)
from hydro_api.infrastructure.persistence import user_repository
from hydro_api.plants import plant_repository, plant_service
from hydro_api.plants.catalog import DEFAULT_CATALOG, seed_default_profiles

from conftest import store_reading


@pytest.fixture
def catalog(db):
    seed_default_profiles(db)
    return {p.name: p for p in plant_repository.list_profiles(db)}


class TestCatalog:

    def test_seed_is_idempotent(self, db):
        assert seed_default_profiles(db) == len(DEFAULT_CATALOG)
        assert seed_default_profiles(db) == 0
        assert len(plant_repository.list_profiles(db)) == len(DEFAULT_CATALOG)

    def test_profiles_are_sorted_and_filterable(self, db, catalog):
        names = [p.name for p in plant_repository.list_profiles(db)]
        assert names == sorted(names)

        herbs = plant_repository.list_profiles(db, category="herbs")
        assert [p.name for p in herbs] == ["Basil"]

        found = plant_repository.list_profiles(db, search="ettu")
        assert [p.name for p in found] == ["Lettuce"]

    def test_profile_ranges_round_trip(self, db, catalog):
        lettuce = plant_repository.get_profile(db, catalog["Lettuce"].id)

        assert lettuce.optimal_ranges["ph"].min_value == 5.5
        assert lettuce.optimal_ranges["ph"].max_value == 6.5
        assert set(lettuce.optimal_ranges) == {"ph", "tds", "water_temp", "air_temp", "humidity"}


class TestAssignments:

    def test_add_computes_expected_harvest(self, db, user_id, catalog):
        planted = datetime(2025, 3, 1, 8, 0)

        assignment = plant_service.add_assignment(
            db, user_id, catalog["Basil"].id, planted_at=planted, notes="tray 2"
        )

        assert assignment.active is True
        assert assignment.growth_phase == "seedling"
        assert assignment.planted_at == planted
        assert assignment.expected_harvest_at == planted + timedelta(days=28)
        assert assignment.notes == "tray 2"

    def test_duplicate_active_assignment_rejected(self, db, user_id, catalog):
        plant_service.add_assignment(db, user_id, catalog["Kale"].id)

        with pytest.raises(DuplicateAssignmentError):
            plant_service.add_assignment(db, user_id, catalog["Kale"].id)

    def test_can_re_add_after_deactivation(self, db, user_id, catalog):
        first = plant_service.add_assignment(db, user_id, catalog["Kale"].id)
        plant_service.deactivate_assignment(db, user_id, first.id)

        second = plant_service.add_assignment(db, user_id, catalog["Kale"].id)

        assert second.id != first.id
        # La desactivación es lógica
        assert plant_repository.get_assignment(db, user_id, first.id).active is False

    def test_reactivation_rejected_while_copy_is_active(self, db, user_id, catalog):
        first = plant_service.add_assignment(db, user_id, catalog["Kale"].id)
        plant_service.deactivate_assignment(db, user_id, first.id)
        plant_service.add_assignment(db, user_id, catalog["Kale"].id)

        with pytest.raises(DuplicateAssignmentError):
            plant_service.update_assignment(db, user_id, first.id, active=True)

        assert plant_repository.get_assignment(db, user_id, first.id).active is False

    def test_reactivation_allowed_when_no_copy_is_active(self, db, user_id, catalog):
        first = plant_service.add_assignment(db, user_id, catalog["Kale"].id)
        plant_service.deactivate_assignment(db, user_id, first.id)

        reactivated = plant_service.update_assignment(db, user_id, first.id, active=True)

        assert reactivated.active is True

    def test_unknown_profile(self, db, user_id):
        with pytest.raises(PlantProfileNotFoundError):
            plant_service.add_assignment(db, user_id, 999)

    def test_invalid_growth_phase(self, db, user_id, catalog):
        with pytest.raises(ValidationError):
            plant_service.add_assignment(db, user_id, catalog["Kale"].id, growth_phase="budding")

    def test_update_phase_and_notes(self, db, user_id, catalog):
        assignment = plant_service.add_assignment(db, user_id, catalog["Tomato"].id)

        updated = plant_service.update_assignment(
            db, user_id, assignment.id, growth_phase="flowering", notes="first trusses"
        )

        assert updated.growth_phase == "flowering"
        assert updated.notes == "first trusses"

    def test_cannot_touch_another_users_assignment(self, db, user_id, catalog):
        other = user_repository.ensure_user(db, "neighbour")
        db.commit()
        assignment = plant_service.add_assignment(db, other, catalog["Tomato"].id)

        with pytest.raises(AssignmentNotFoundError):
            plant_service.deactivate_assignment(db, user_id, assignment.id)

    def test_active_plants_join_keeps_both_ids(self, db, user_id, catalog):
        lettuce = plant_service.add_assignment(db, user_id, catalog["Lettuce"].id)
        tomato = plant_service.add_assignment(db, user_id, catalog["Tomato"].id)

        pairs = plant_repository.list_active_with_profiles(db, user_id)

        # Ambas tablas tienen columna id; cada objeto debe quedarse con la suya
        assert [(a.id, p.id, p.name) for a, p in pairs] == [
            (tomato.id, catalog["Tomato"].id, "Tomato"),
            (lettuce.id, catalog["Lettuce"].id, "Lettuce"),
        ]
        assert pairs[0][1].optimal_ranges == catalog["Tomato"].optimal_ranges

    def test_optimal_parameters(self, db, user_id, catalog):
        plant_service.add_assignment(db, user_id, catalog["Strawberry"].id, growth_phase="vegetative")

        result = plant_service.optimal_parameters(db, user_id)

        assert len(result) == 1
        assert result[0]["plant_name"] == "Strawberry"
        assert result[0]["growth_phase"] == "vegetative"
        assert result[0]["optimal_parameters"]["ph"] == {"min": 5.5, "max": 6.2}


class TestParameterStatus:

    def test_system_defaults_without_plants(self, db, user_id):
        store_reading(db, datetime(2025, 1, 15, 10), ph=7.45, water_temp=29.0, humidity=60.0)

        status = plant_service.parameter_status(db, user_id, DEFAULT_THRESHOLDS)

        group = status["groups"][0]
        assert group["source"] == "system"
        assert group["parameters"]["ph"]["status"] == "caution"
        assert group["parameters"]["ph"]["severity"] == "low"
        assert group["parameters"]["water_temp"]["status"] == "warning"
        assert group["parameters"]["humidity"]["status"] == "optimal"
        assert status["reading"]["ph"] == 7.45

    def test_one_group_per_active_plant(self, db, user_id, catalog):
        plant_service.add_assignment(db, user_id, catalog["Lettuce"].id)
        plant_service.add_assignment(db, user_id, catalog["Basil"].id)
        store_reading(db, datetime(2025, 1, 15, 10), ph=6.0)

        status = plant_service.parameter_status(db, user_id, DEFAULT_THRESHOLDS)

        assert {g["plant_name"] for g in status["groups"]} == {"Lettuce", "Basil"}
        assert all(g["source"] == "plant" for g in status["groups"])

    def test_no_reading_yet(self, db, user_id):
        status = plant_service.parameter_status(db, user_id, DEFAULT_THRESHOLDS)

        assert status["reading"] is None
        assert status["groups"][0]["parameters"]["tds"]["status"] == "no_data"
