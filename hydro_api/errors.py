"""Taxonomía de errores del servicio.

- TransportError: conexión/publicación MQTT
- ParseError: payload de sensor malformado (se descarta, no se reintenta)
- PersistenceError: fallo de escritura durante la ingesta
- AlertEvaluationError: fallo al evaluar un parámetro (se loguea y se sigue)
- ValidationError: entrada inválida en comandos o consultas
"""

from __future__ import annotations


class HydroMonitorError(Exception):
    """Base de todos los errores del dominio."""


class TransportError(HydroMonitorError):
    pass


class TransportUnavailableError(TransportError):
    """La conexión al broker está caída; el comando no se encola."""


class PublishError(TransportError):
    """El cliente MQTT rechazó la publicación."""


class ParseError(HydroMonitorError):
    pass


class PersistenceError(HydroMonitorError):
    pass


class AlertEvaluationError(HydroMonitorError):
    pass


class ValidationError(HydroMonitorError):
    pass


class NotFoundError(HydroMonitorError):
    pass


class ReadingNotFoundError(NotFoundError):
    pass


class AlertNotFoundError(NotFoundError):
    pass


class PlantProfileNotFoundError(NotFoundError):
    pass


class AssignmentNotFoundError(NotFoundError):
    pass


class AlertAccessDeniedError(HydroMonitorError):
    """La alerta existe pero pertenece a otro usuario."""


class DuplicateAssignmentError(HydroMonitorError):
    """El usuario ya tiene esa planta activa."""
