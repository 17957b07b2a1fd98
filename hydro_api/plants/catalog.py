"""Catálogo inicial de perfiles de planta.

Se siembra al arrancar; es idempotente por nombre, así que los perfiles
editados a mano en la BD no se sobreescriben.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from . import plant_repository as repo

logger = logging.getLogger(__name__)


DEFAULT_CATALOG = [
    {
        "name": "Lettuce",
        "scientific_name": "Lactuca sativa",
        "category": "leafy_greens",
        "difficulty": "easy",
        "growth_duration_days": 45,
        "ranges": {
            "ph": (5.5, 6.5),
            "tds": (560, 840),
            "water_temp": (18, 24),
            "air_temp": (15, 24),
            "humidity": (50, 70),
        },
        "description": "Fast-growing leafy green, tolerant of beginner mistakes.",
    },
    {
        "name": "Spinach",
        "scientific_name": "Spinacia oleracea",
        "category": "leafy_greens",
        "difficulty": "easy",
        "growth_duration_days": 40,
        "ranges": {
            "ph": (6.0, 7.0),
            "tds": (1260, 1610),
            "water_temp": (16, 22),
            "air_temp": (15, 22),
            "humidity": (50, 70),
        },
        "description": "Cool-season green; bolts quickly in warm water.",
    },
    {
        "name": "Pak Choy",
        "scientific_name": "Brassica rapa subsp. chinensis",
        "category": "leafy_greens",
        "difficulty": "easy",
        "growth_duration_days": 35,
        "ranges": {
            "ph": (6.0, 7.0),
            "tds": (1050, 1400),
            "water_temp": (18, 25),
            "air_temp": (18, 27),
            "humidity": (50, 75),
        },
        "description": None,
    },
    {
        "name": "Kale",
        "scientific_name": "Brassica oleracea var. sabellica",
        "category": "leafy_greens",
        "difficulty": "moderate",
        "growth_duration_days": 60,
        "ranges": {
            "ph": (5.5, 6.5),
            "tds": (1050, 1400),
            "water_temp": (18, 24),
            "air_temp": (16, 24),
            "humidity": (50, 70),
        },
        "description": None,
    },
    {
        "name": "Basil",
        "scientific_name": "Ocimum basilicum",
        "category": "herbs",
        "difficulty": "easy",
        "growth_duration_days": 28,
        "ranges": {
            "ph": (5.5, 6.5),
            "tds": (700, 1120),
            "water_temp": (20, 26),
            "air_temp": (20, 30),
            "humidity": (40, 60),
        },
        "description": "Warm-loving herb; pinch flowers to keep leaves coming.",
    },
    {
        "name": "Tomato",
        "scientific_name": "Solanum lycopersicum",
        "category": "fruiting",
        "difficulty": "difficult",
        "growth_duration_days": 90,
        "ranges": {
            "ph": (5.5, 6.5),
            "tds": (1400, 3500),
            "water_temp": (20, 26),
            "air_temp": (18, 29),
            "humidity": (60, 80),
        },
        "description": "Heavy feeder; needs support and hand pollination indoors.",
    },
    {
        "name": "Strawberry",
        "scientific_name": "Fragaria x ananassa",
        "category": "fruiting",
        "difficulty": "moderate",
        "growth_duration_days": 75,
        "ranges": {
            "ph": (5.5, 6.2),
            "tds": (500, 750),
            "water_temp": (18, 22),
            "air_temp": (15, 26),
            "humidity": (60, 75),
        },
        "description": None,
    },
]


def seed_default_profiles(db: Session) -> int:
    """Inserta los perfiles del catálogo que falten. Devuelve cuántos creó."""
    created = 0
    for entry in DEFAULT_CATALOG:
        if repo.get_profile_id_by_name(db, entry["name"]) is not None:
            continue
        repo.insert_profile(db, **entry)
        created += 1
    db.commit()
    if created:
        logger.info("[PLANTS] Seeded %d plant profiles", created)
    return created
