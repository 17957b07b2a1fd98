"""Definición de tablas (SQLAlchemy Core).

Tres grupos lógicos:
- sensor_readings: append-only
- alerts: mutables solo por resolución
- plant_profiles / user_plant_assignments: referencia + ciclo de vida

La unicidad de alerta abierta por (user_id, parameter_name) la garantiza
un índice único parcial, además del lock por clave del motor de alertas.
"""

from __future__ import annotations

import logging

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    false,
)
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()


users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(120), nullable=False, unique=True),
    Column("created_at", DateTime, nullable=False),
)


sensor_readings = Table(
    "sensor_readings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("water_temp", Float, nullable=False),
    Column("air_temp", Float, nullable=False),
    Column("humidity", Float, nullable=False),
    Column("tds", Float, nullable=False),
    Column("ph", Float, nullable=True),
    Column("pump_state", String(3), nullable=True),
    Column("captured_at", DateTime, nullable=False),
    Index("idx_sensor_readings_captured_at", "captured_at"),
)


plant_profiles = Table(
    "plant_profiles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(120), nullable=False, unique=True),
    Column("scientific_name", String(160), nullable=True),
    Column("category", String(40), nullable=True),
    Column("difficulty", String(20), nullable=False, default="moderate"),
    Column("growth_duration_days", Integer, nullable=True),
    Column("ph_min", Float, nullable=False),
    Column("ph_max", Float, nullable=False),
    Column("tds_min", Float, nullable=False),
    Column("tds_max", Float, nullable=False),
    Column("water_temp_min", Float, nullable=False),
    Column("water_temp_max", Float, nullable=False),
    Column("air_temp_min", Float, nullable=False),
    Column("air_temp_max", Float, nullable=False),
    Column("humidity_min", Float, nullable=False),
    Column("humidity_max", Float, nullable=False),
    Column("description", Text, nullable=True),
    Column("created_at", DateTime, nullable=False),
)


user_plant_assignments = Table(
    "user_plant_assignments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("plant_profile_id", Integer, ForeignKey("plant_profiles.id"), nullable=False),
    Column("growth_phase", String(20), nullable=False, default="seedling"),
    Column("planted_at", DateTime, nullable=True),
    Column("expected_harvest_at", DateTime, nullable=True),
    Column("notes", Text, nullable=True),
    Column("active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=False),
    Index("idx_assignments_user_active", "user_id", "active"),
)


alerts = Table(
    "alerts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column(
        "plant_assignment_id",
        Integer,
        ForeignKey("user_plant_assignments.id"),
        nullable=True,
    ),
    Column("alert_type", String(20), nullable=False),
    Column("parameter_name", String(40), nullable=False),
    Column("severity", String(10), nullable=False),
    Column("title", String(200), nullable=False),
    Column("message", Text, nullable=False),
    Column("action_required", Text, nullable=True),
    Column("current_value", Float, nullable=False),
    Column("threshold_value", Float, nullable=False),
    Column("deviation_direction", String(4), nullable=False),
    Column("is_resolved", Boolean, nullable=False, default=False),
    Column("resolved_at", DateTime, nullable=True),
    Column("resolved_by", Integer, nullable=True),
    Column("source_reading_id", Integer, ForeignKey("sensor_readings.id"), nullable=True),
    Column("created_at", DateTime, nullable=False),
    Index("idx_alerts_user_created", "user_id", "created_at"),
)

# Una sola alerta abierta por (user_id, parameter_name).
Index(
    "uq_alerts_open_parameter",
    alerts.c.user_id,
    alerts.c.parameter_name,
    unique=True,
    sqlite_where=alerts.c.is_resolved == false(),
    postgresql_where=alerts.c.is_resolved == false(),
)


def ensure_schema(engine: Engine) -> None:
    """Crea las tablas si no existen. Idempotente."""
    logger.info("[DB] Ensuring schema exists")
    metadata.create_all(engine)
