"""Control de la bomba por MQTT.

El comando se publica como string plano ("ON" / "OFF") en el topic de
control. El estado se valida antes de tocar el transporte.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..domain import PumpState
from ..errors import PublishError, TransportUnavailableError
from ..metrics import PUMP_COMMANDS

logger = logging.getLogger(__name__)

INVALID_STATUS = "invalid_status"
TRANSPORT_UNAVAILABLE = "transport_unavailable"
PUBLISH_FAILED = "publish_failed"


@dataclass(frozen=True)
class CommandResult:
    """Resultado de un comando. error_code es None si se publicó."""

    success: bool
    status: Optional[str]
    error_code: Optional[str] = None
    message: str = ""

    @property
    def retryable(self) -> bool:
        return self.error_code == TRANSPORT_UNAVAILABLE


def normalize_status(status) -> Optional[str]:
    """'on' / ' Off ' → 'ON' / 'OFF'; cualquier otra cosa → None."""
    if not isinstance(status, str):
        return None
    candidate = status.strip().upper()
    if candidate in (PumpState.ON.value, PumpState.OFF.value):
        return candidate
    return None


class CommandDispatcher:
    def __init__(self, transport, command_topic: str = "hyyume/pump/control"):
        self._transport = transport
        self.command_topic = command_topic

    def send_command(self, status) -> CommandResult:
        normalized = normalize_status(status)
        if normalized is None:
            PUMP_COMMANDS.labels(result=INVALID_STATUS).inc()
            logger.warning("[PUMP] Invalid status rejected: %r", status)
            return CommandResult(
                success=False,
                status=None,
                error_code=INVALID_STATUS,
                message="Status must be 'ON' or 'OFF'",
            )

        try:
            self._transport.publish(self.command_topic, normalized)
        except TransportUnavailableError as e:
            PUMP_COMMANDS.labels(result=TRANSPORT_UNAVAILABLE).inc()
            logger.warning("[PUMP] Command %s not sent, transport down: %s", normalized, e)
            return CommandResult(
                success=False,
                status=normalized,
                error_code=TRANSPORT_UNAVAILABLE,
                message="MQTT client not connected",
            )
        except PublishError as e:
            PUMP_COMMANDS.labels(result=PUBLISH_FAILED).inc()
            logger.error("[PUMP] Command %s publish failed: %s", normalized, e)
            return CommandResult(
                success=False,
                status=normalized,
                error_code=PUBLISH_FAILED,
                message=str(e),
            )

        PUMP_COMMANDS.labels(result="sent").inc()
        logger.info("[PUMP] Command sent: %s topic=%s", normalized, self.command_topic)
        return CommandResult(
            success=True,
            status=normalized,
            message=f"Pump command {normalized} sent",
        )
