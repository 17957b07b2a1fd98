from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str

    mqtt_enabled: bool
    mqtt_broker_host: str
    mqtt_broker_port: int
    mqtt_username: Optional[str]
    mqtt_password: Optional[str]
    mqtt_client_id_prefix: str
    mqtt_sensor_topic: str
    mqtt_command_topic: str
    mqtt_connect_timeout_seconds: float
    mqtt_reconnect_delay_seconds: float
    mqtt_reconnect_max_attempts: Optional[int]

    alert_queue_size: int
    alert_num_workers: int

    history_limit: int
    daily_scan_limit: int

    default_thresholds_json: Optional[str]
    seed_plant_profiles: bool
    log_level: str


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("HYDRO_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    # 0 or negative means "no cap" on reconnection attempts.
    max_attempts = int(os.getenv("MQTT_RECONNECT_MAX_ATTEMPTS", "5"))

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///hydro_monitor.db"),
        mqtt_enabled=_env_bool("MQTT_ENABLED", "true"),
        mqtt_broker_host=os.getenv("MQTT_BROKER_HOST", "localhost"),
        mqtt_broker_port=int(os.getenv("MQTT_BROKER_PORT", "1883")),
        mqtt_username=os.getenv("MQTT_USERNAME") or None,
        mqtt_password=os.getenv("MQTT_PASSWORD") or None,
        mqtt_client_id_prefix=os.getenv("MQTT_CLIENT_ID_PREFIX", "hyyume_backend"),
        mqtt_sensor_topic=os.getenv("MQTT_SENSOR_TOPIC", "hyyume/sensor/data"),
        mqtt_command_topic=os.getenv("MQTT_COMMAND_TOPIC", "hyyume/pump/control"),
        mqtt_connect_timeout_seconds=float(os.getenv("MQTT_CONNECT_TIMEOUT_SECONDS", "4")),
        mqtt_reconnect_delay_seconds=float(os.getenv("MQTT_RECONNECT_DELAY_SECONDS", "5")),
        mqtt_reconnect_max_attempts=max_attempts if max_attempts > 0 else None,
        alert_queue_size=int(os.getenv("ALERT_QUEUE_SIZE", "1000")),
        alert_num_workers=int(os.getenv("ALERT_NUM_WORKERS", "1")),
        history_limit=int(os.getenv("HISTORY_LIMIT", "1000")),
        daily_scan_limit=int(os.getenv("DAILY_SCAN_LIMIT", "5000")),
        default_thresholds_json=os.getenv("DEFAULT_THRESHOLDS_JSON") or None,
        seed_plant_profiles=_env_bool("SEED_PLANT_PROFILES", "true"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
