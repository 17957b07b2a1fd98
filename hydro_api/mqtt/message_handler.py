"""Ingesta de lecturas recibidas por MQTT.

Flujo por mensaje:
1. Parseo + validación del payload (ParseError → se loguea y se descarta)
2. Persistencia de la lectura con captured_at = hora del servidor
3. Tras el commit, la lectura pasa a la cola de evaluación de alertas

Un fallo de escritura no dispara evaluación. Un fallo de evaluación
nunca deshace ni falla la ingesta.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..clock import utcnow
from ..domain import SensorReading
from ..errors import ParseError, PersistenceError
from ..infrastructure.persistence import reading_repository
from ..metrics import READINGS_INGESTED
from .validators import SensorPayload, parse_sensor_payload

logger = logging.getLogger(__name__)


class IngestionStats:
    """Estadísticas de la ingesta."""

    def __init__(self):
        self.received = 0
        self.stored = 0
        self.rejected = 0
        self.failed = 0
        self.not_dispatched = 0
        self._lock = threading.Lock()

    def bump(self, field: str) -> None:
        with self._lock:
            setattr(self, field, getattr(self, field) + 1)

    def __str__(self) -> str:
        return (
            f"Stats: received={self.received} stored={self.stored} "
            f"rejected={self.rejected} failed={self.failed}"
        )

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "received": self.received,
                "stored": self.stored,
                "rejected": self.rejected,
                "failed": self.failed,
                "not_dispatched": self.not_dispatched,
            }


class IngestionHandler:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        dispatcher=None,
        sensor_topic: Optional[str] = None,
    ):
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._sensor_topic = sensor_topic
        self.stats = IngestionStats()

    def __call__(self, topic: str, payload: bytes) -> Optional[SensorReading]:
        return self.handle_message(topic, payload)

    def handle_message(self, topic: str, payload: bytes) -> Optional[SensorReading]:
        """Procesa un mensaje del topic de ingesta. Nunca lanza."""
        if self._sensor_topic and topic != self._sensor_topic:
            logger.debug("[INGEST] Ignoring message on topic=%s", topic)
            return None

        self.stats.bump("received")

        try:
            data = parse_sensor_payload(payload)
        except ParseError as e:
            self.stats.bump("rejected")
            READINGS_INGESTED.labels(status="rejected").inc()
            logger.warning("[INGEST] Invalid payload dropped: %s raw=%r", e, bytes(payload)[:200])
            return None

        try:
            reading = self.persist(data)
        except PersistenceError as e:
            self.stats.bump("failed")
            READINGS_INGESTED.labels(status="failed").inc()
            logger.error("[INGEST] %s", e)
            return None

        self.stats.bump("stored")
        READINGS_INGESTED.labels(status="stored").inc()
        logger.debug(
            "[INGEST] Stored reading id=%s water=%s air=%s hum=%s tds=%s ph=%s",
            reading.id, reading.water_temp, reading.air_temp,
            reading.humidity, reading.tds, reading.ph,
        )

        self._dispatch(reading)

        if self.stats.stored % 100 == 0:
            logger.info("[INGEST] %s", self.stats)
        return reading

    def persist(self, data: SensorPayload) -> SensorReading:
        """Escribe la lectura y hace commit.

        Raises:
            PersistenceError: fallo de BD (la transacción se deshace)
        """
        with self._session_factory() as db:
            try:
                reading = reading_repository.insert_reading(
                    db,
                    water_temp=data.suhu_air,
                    air_temp=data.suhu_udara,
                    humidity=data.kelembapan,
                    tds=data.tds,
                    ph=data.ph,
                    pump_state=data.pompa.value if data.pompa else None,
                    captured_at=utcnow(),
                )
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise PersistenceError(f"Failed to store reading: {type(e).__name__}: {e}") from e
        return reading

    def _dispatch(self, reading: SensorReading) -> None:
        if self._dispatcher is None:
            return
        try:
            if not self._dispatcher.enqueue(reading):
                self.stats.bump("not_dispatched")
        except Exception as e:
            self.stats.bump("not_dispatched")
            logger.exception("[INGEST] Alert handoff failed reading=%s: %s", reading.id, e)
