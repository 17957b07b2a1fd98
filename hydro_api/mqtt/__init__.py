"""Transporte MQTT, ingesta de lecturas y control de bomba.

Estructura modular:
- transport.py: cliente MQTT con reconexión y máquina de estados
- validators.py: validación del payload del sensor
- message_handler.py: parseo + persistencia + handoff a alertas
- async_processor.py: cola acotada de evaluación de alertas
- commands.py: comandos ON/OFF de la bomba
"""

from .async_processor import AlertDispatcher
from .commands import CommandDispatcher, CommandResult
from .message_handler import IngestionHandler
from .transport import ConnectionState, ReconnectPolicy, TransportClient
from .validators import SensorPayload, ValidationResult, parse_sensor_payload

__all__ = [
    "AlertDispatcher",
    "CommandDispatcher",
    "CommandResult",
    "ConnectionState",
    "IngestionHandler",
    "ReconnectPolicy",
    "SensorPayload",
    "TransportClient",
    "ValidationResult",
    "parse_sensor_payload",
]
