"""Routers HTTP sobre el núcleo de monitoreo."""

from .alerts import router as alerts_router
from .health import router as health_router
from .plants import router as plants_router
from .pump import router as pump_router
from .sensor_data import router as sensor_data_router

__all__ = [
    "alerts_router",
    "health_router",
    "plants_router",
    "pump_router",
    "sensor_data_router",
]
