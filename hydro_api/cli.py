"""CLI entry point: levanta la API y el cliente MQTT en un solo proceso."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from common.config import get_settings
from common.logging_setup import configure_logging

from .main import create_app
from .runtime import MonitorRuntime

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    p = argparse.ArgumentParser(description="Hydroponic monitor: MQTT ingestion, alerts and queries")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=8000)
    args = p.parse_args()

    logger.info(
        "Config: broker=%s:%d sensor_topic=%s command_topic=%s db=%s",
        settings.mqtt_broker_host,
        settings.mqtt_broker_port,
        settings.mqtt_sensor_topic,
        settings.mqtt_command_topic,
        settings.database_url.split("@")[-1],
    )

    app = create_app(MonitorRuntime.from_settings(settings))
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
