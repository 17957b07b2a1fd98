from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from common.config import get_settings
from common.logging_setup import configure_logging

from . import __version__
from .endpoints import (
    alerts_router,
    health_router,
    plants_router,
    pump_router,
    sensor_data_router,
)
from .errors import (
    AlertAccessDeniedError,
    DuplicateAssignmentError,
    HydroMonitorError,
    NotFoundError,
    PublishError,
    TransportUnavailableError,
    ValidationError,
)
from .runtime import MonitorRuntime

logger = logging.getLogger(__name__)

# Orden importa: la primera clase que matchea gana
_ERROR_STATUS = (
    (NotFoundError, 404),
    (AlertAccessDeniedError, 403),
    (ValidationError, 400),
    (DuplicateAssignmentError, 409),
    (TransportUnavailableError, 503),
    (PublishError, 502),
)


def _status_for(exc: HydroMonitorError) -> int:
    for exc_type, status in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status
    return 500


async def _domain_error_handler(request: Request, exc: HydroMonitorError) -> JSONResponse:
    status = _status_for(exc)
    if status >= 500:
        logger.error("[HTTP] %s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def create_app(runtime: Optional[MonitorRuntime] = None) -> FastAPI:
    """App HTTP sobre el runtime. Sin runtime se construye desde el entorno."""
    if runtime is None:
        settings = get_settings()
        configure_logging(settings.log_level)
        runtime = MonitorRuntime.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        runtime.start()
        try:
            yield
        finally:
            runtime.stop()

    app = FastAPI(title="Hydroponic Monitor Service", version=__version__, lifespan=lifespan)
    app.state.runtime = runtime
    app.add_exception_handler(HydroMonitorError, _domain_error_handler)

    app.include_router(health_router)
    app.include_router(sensor_data_router)
    app.include_router(pump_router)
    app.include_router(alerts_router)
    app.include_router(plants_router)
    return app
