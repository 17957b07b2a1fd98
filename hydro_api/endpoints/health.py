"""Health, readiness y métricas."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .deps import get_runtime
from ..runtime import MonitorRuntime

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health(runtime: MonitorRuntime = Depends(get_runtime)):
    """Liveness probe; incluye el estado MQTT sin fallar si está caído."""
    return {"status": "ok", "mqtt_connected": runtime.transport.is_connected()}


@router.get("/ready")
def ready(runtime: MonitorRuntime = Depends(get_runtime)):
    """Readiness probe: verifica conectividad con la BD."""
    try:
        with runtime.db_engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        # No exponer detalles del error al cliente
        logger.exception("[HEALTH] Database readiness check failed")
        raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready"}


@router.get("/health/details")
def health_details(runtime: MonitorRuntime = Depends(get_runtime)):
    return runtime.health_check()


@router.get("/metrics")
def metrics():
    """Exposición Prometheus."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
