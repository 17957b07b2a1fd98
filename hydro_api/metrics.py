"""Métricas Prometheus del servicio.

Se exponen en GET /metrics. Los contadores son globales al proceso; los
`stats` de cada componente son la vista JSON equivalente.
"""

from prometheus_client import Counter, Gauge

READINGS_INGESTED = Counter(
    "hydro_readings_ingested_total",
    "Sensor messages handled by the ingestion handler",
    ["status"],  # stored, rejected, failed
)

ALERTS_EVALUATED = Counter(
    "hydro_alert_checks_total",
    "Out-of-range parameter checks by outcome",
    ["outcome"],  # created, suppressed, failed
)

ALERT_QUEUE_DROPPED = Counter(
    "hydro_alert_queue_dropped_total",
    "Readings dropped because the alert queue was full",
)

PUMP_COMMANDS = Counter(
    "hydro_pump_commands_total",
    "Pump commands by result",
    ["result"],  # sent, invalid_status, transport_unavailable, publish_failed
)

MQTT_CONNECTED = Gauge(
    "hydro_mqtt_connected",
    "1 while the MQTT session is up",
)

MQTT_RECONNECT_ATTEMPTS = Counter(
    "hydro_mqtt_reconnect_attempts_total",
    "Scheduled MQTT reconnection attempts",
)
