"""Control de la bomba."""

from fastapi import APIRouter, Depends, HTTPException

from .deps import get_runtime
from ..mqtt.commands import INVALID_STATUS, PUBLISH_FAILED, TRANSPORT_UNAVAILABLE
from ..runtime import MonitorRuntime
from ..schemas import PumpCommandIn, PumpCommandOut

router = APIRouter(prefix="/pump", tags=["pump"])

_STATUS_CODES = {
    INVALID_STATUS: 400,
    TRANSPORT_UNAVAILABLE: 503,
    PUBLISH_FAILED: 502,
}


@router.post("/control", response_model=PumpCommandOut)
def control_pump(body: PumpCommandIn, runtime: MonitorRuntime = Depends(get_runtime)):
    result = runtime.commands.send_command(body.status)
    if not result.success:
        raise HTTPException(
            status_code=_STATUS_CODES[result.error_code],
            detail={"error_code": result.error_code, "message": result.message},
        )
    return PumpCommandOut(success=True, status=result.status, message=result.message)
