"""Composición del proceso.

Construye UNA sola vez el cliente MQTT, la ingesta, la cola de alertas
y el despachador de comandos, y los cablea por inyección. La app HTTP
recibe el runtime ya armado; nada en el núcleo busca singletons
globales.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.engine import Engine

from common.config import Settings
from common.db import build_engine, make_session_factory

from .alerts.alert_engine import AlertEngine
from .alerts.thresholds import thresholds_from_json
from .infrastructure.persistence import ensure_schema
from .mqtt.async_processor import AlertDispatcher
from .mqtt.commands import CommandDispatcher
from .mqtt.message_handler import IngestionHandler
from .mqtt.transport import ReconnectPolicy, TransportClient
from .plants.catalog import seed_default_profiles

logger = logging.getLogger(__name__)


class MonitorRuntime:
    def __init__(
        self,
        settings: Settings,
        db_engine: Engine,
        transport: Optional[TransportClient] = None,
    ):
        self.settings = settings
        self.db_engine = db_engine
        self.session_factory = make_session_factory(db_engine)

        self.default_thresholds = thresholds_from_json(settings.default_thresholds_json)
        self.alert_engine = AlertEngine(self.session_factory, self.default_thresholds)
        self.alert_dispatcher = AlertDispatcher(
            self.alert_engine,
            max_queue_size=settings.alert_queue_size,
            num_workers=settings.alert_num_workers,
        )
        self.ingestion = IngestionHandler(
            self.session_factory,
            dispatcher=self.alert_dispatcher,
            sensor_topic=settings.mqtt_sensor_topic,
        )

        self.transport = transport or TransportClient(
            broker_host=settings.mqtt_broker_host,
            broker_port=settings.mqtt_broker_port,
            username=settings.mqtt_username,
            password=settings.mqtt_password,
            client_id_prefix=settings.mqtt_client_id_prefix,
            sensor_topic=settings.mqtt_sensor_topic,
            connect_timeout=settings.mqtt_connect_timeout_seconds,
            reconnect_policy=ReconnectPolicy(
                delay=settings.mqtt_reconnect_delay_seconds,
                max_attempts=settings.mqtt_reconnect_max_attempts,
            ),
        )
        self.transport.set_message_handler(self.ingestion)
        self.commands = CommandDispatcher(self.transport, settings.mqtt_command_topic)

        self._started = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "MonitorRuntime":
        return cls(settings, build_engine(settings.database_url))

    def start(self) -> None:
        if self._started:
            return
        ensure_schema(self.db_engine)
        if self.settings.seed_plant_profiles:
            with self.session_factory() as db:
                seed_default_profiles(db)

        self.alert_dispatcher.start()

        if self.settings.mqtt_enabled:
            if not self.transport.connect():
                logger.warning("[RUNTIME] MQTT not connected at startup; reconnection scheduled")
        else:
            logger.info("[RUNTIME] MQTT disabled by MQTT_ENABLED=false")

        self._started = True
        logger.info("[RUNTIME] Started")

    def stop(self) -> None:
        if not self._started:
            return
        self.transport.stop()
        self.alert_dispatcher.stop(drain=True)
        self._started = False
        logger.info("[RUNTIME] Stopped")

    def health_check(self) -> dict:
        return {
            "transport": self.transport.health_check(),
            "ingestion": self.ingestion.stats.to_dict(),
            "alert_queue": self.alert_dispatcher.metrics,
            "alert_engine": self.alert_engine.stats,
        }
