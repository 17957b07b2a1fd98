"""Cliente MQTT con reconexión automática.

Responsabilidades:
- Conexión/desconexión al broker
- Suscripción al topic de ingesta
- Delegación de mensajes al handler registrado
- Publicación síncrona de comandos

Máquina de estados:

    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED
                                            -> OFFLINE (stop explícito)

Tras una pérdida inesperada o un intento fallido se agenda un reintento
según ReconnectPolicy. El contador se reinicia al conectar; al agotarse
el cliente queda DISCONNECTED hasta restart().

El estado cacheado es orientativo: is_connected() y publish() lo
revalidan contra el socket del cliente paho.
"""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import paho.mqtt.client as mqtt

from ..clock import utcnow
from ..errors import PublishError, TransportUnavailableError
from ..metrics import MQTT_CONNECTED, MQTT_RECONNECT_ATTEMPTS

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes], None]
# scheduler(delay_seconds, fn) -> handle con cancel()
Scheduler = Callable[[float, Callable[[], None]], Any]
ClientFactory = Callable[[str], Any]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    OFFLINE = "offline"


@dataclass
class ReconnectPolicy:
    """Configuración de reconexión.

    Por defecto: 5 s fijos, máximo 5 reintentos. max_attempts=None quita
    el tope; exponential_base > 1 convierte el delay fijo en backoff.
    """

    delay: float = 5.0  # segundos
    max_attempts: Optional[int] = 5
    exponential_base: float = 1.0
    max_delay: float = 300.0  # segundos

    def allows(self, attempt: int) -> bool:
        return self.max_attempts is None or attempt <= self.max_attempts

    def calculate_delay(self, attempt: int) -> float:
        """Delay para el reintento `attempt` (1-indexed)."""
        delay = self.delay * (self.exponential_base ** (attempt - 1))
        return max(0.0, min(delay, self.max_delay))


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=client_id,
        protocol=mqtt.MQTTv311,
        clean_session=True,
    )


def _default_scheduler(delay: float, fn: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.name = "mqtt-reconnect"
    timer.start()
    return timer


class TransportClient:
    """Sesión MQTT única del proceso (se construye una vez y se inyecta)."""

    def __init__(
        self,
        broker_host: str = "localhost",
        broker_port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id_prefix: str = "hyyume_backend",
        sensor_topic: str = "hyyume/sensor/data",
        connect_timeout: float = 4.0,
        reconnect_policy: Optional[ReconnectPolicy] = None,
        client_factory: Optional[ClientFactory] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.username = username
        self.password = password
        self.client_id_prefix = client_id_prefix
        self.sensor_topic = sensor_topic
        self.connect_timeout = connect_timeout
        self.reconnect_policy = reconnect_policy or ReconnectPolicy()

        self._client_factory = client_factory or _default_client_factory
        self._scheduler = scheduler or _default_scheduler

        self._lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED
        self._client: Any = None
        self._client_id: Optional[str] = None
        self._connack = threading.Event()
        self._stopped = False
        self._reconnect_attempts = 0
        self._reconnect_handle: Any = None
        self._message_handler: Optional[MessageHandler] = None

        self._messages_received = 0
        self._last_message_at = None
        self._last_connected_at = None

    # ------------------------------------------------------------------
    # API pública
    # ------------------------------------------------------------------

    def set_message_handler(self, handler: MessageHandler) -> None:
        """Configura el handler de mensajes (topic, payload)."""
        self._message_handler = handler

    def connect(self) -> bool:
        """Conecta al broker y espera el CONNACK hasta connect_timeout.

        Un intento fallido agenda la reconexión automática.
        """
        with self._lock:
            if self._state == ConnectionState.CONNECTED and self._live():
                return True
            self._stopped = False
        return self._attempt_connect()

    def restart(self) -> bool:
        """Reinicia el ciclo de reconexión (también sale de OFFLINE)."""
        self.stop()
        with self._lock:
            self._reconnect_attempts = 0
        return self.connect()

    def stop(self) -> None:
        """Desconecta y deja el cliente OFFLINE; no hay más reintentos."""
        with self._lock:
            self._stopped = True
            self._state = ConnectionState.OFFLINE
            handle, self._reconnect_handle = self._reconnect_handle, None
            client, self._client = self._client, None

        if handle is not None and hasattr(handle, "cancel"):
            handle.cancel()
        self._dispose(client)
        MQTT_CONNECTED.set(0)
        logger.info("[MQTT] Stopped (offline)")

    def is_connected(self) -> bool:
        with self._lock:
            return self._state == ConnectionState.CONNECTED and self._live()

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def reconnect_attempts(self) -> int:
        with self._lock:
            return self._reconnect_attempts

    def publish(self, topic: str, payload: str | bytes, qos: int = 0, retain: bool = False) -> None:
        """Publica de forma síncrona. Nunca encola.

        Raises:
            TransportUnavailableError: la conexión está caída
            PublishError: el cliente rechazó la publicación
        """
        with self._lock:
            if not (self._state == ConnectionState.CONNECTED and self._live()):
                raise TransportUnavailableError(
                    f"MQTT not connected (state={self._state.value})"
                )
            client = self._client

        try:
            info = client.publish(topic, payload, qos=qos, retain=retain)
        except (ValueError, TypeError) as e:
            raise PublishError(f"Publish to {topic} rejected: {e}") from e

        if info.rc == mqtt.MQTT_ERR_NO_CONN:
            raise TransportUnavailableError(f"Connection lost while publishing to {topic}")
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"Publish to {topic} failed rc={info.rc}")

    def health_check(self) -> dict:
        with self._lock:
            return {
                "state": self._state.value,
                "connected": self._state == ConnectionState.CONNECTED and self._live(),
                "broker": f"{self.broker_host}:{self.broker_port}",
                "client_id": self._client_id,
                "reconnect_attempts": self._reconnect_attempts,
                "max_reconnect_attempts": self.reconnect_policy.max_attempts,
                "messages_received": self._messages_received,
                "last_message_at": self._last_message_at.isoformat() if self._last_message_at else None,
                "last_connected_at": self._last_connected_at.isoformat() if self._last_connected_at else None,
            }

    # ------------------------------------------------------------------
    # Conexión
    # ------------------------------------------------------------------

    def _live(self) -> bool:
        return self._client is not None and bool(self._client.is_connected())

    def _attempt_connect(self) -> bool:
        with self._lock:
            if self._stopped:
                return False
            old_client = self._client
            self._client = None
            self._state = ConnectionState.CONNECTING
            self._connack.clear()
        self._dispose(old_client)

        client_id = f"{self.client_id_prefix}_{secrets.token_hex(6)}"
        client = self._client_factory(client_id)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        if self.username:
            client.username_pw_set(self.username, self.password)

        with self._lock:
            self._client = client
            self._client_id = client_id

        logger.info(
            "[MQTT] Connecting to %s:%d client_id=%s",
            self.broker_host, self.broker_port, client_id,
        )
        try:
            client.connect(self.broker_host, self.broker_port, keepalive=60)
            client.loop_start()
        except OSError as e:
            logger.error("[MQTT] Connection failed: %s", e)
            self._on_attempt_failed(client)
            return False

        if not self._connack.wait(self.connect_timeout):
            logger.error("[MQTT] Connection timeout after %.1fs", self.connect_timeout)
            self._on_attempt_failed(client)
            return False

        with self._lock:
            connected = self._state == ConnectionState.CONNECTED
        if not connected:
            self._on_attempt_failed(client)
        return connected

    def _on_attempt_failed(self, client) -> None:
        with self._lock:
            if client is not self._client:
                return
            if self._state != ConnectionState.OFFLINE:
                self._state = ConnectionState.DISCONNECTED
            self._client = None
        self._dispose(client)
        MQTT_CONNECTED.set(0)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        with self._lock:
            if self._stopped or self._reconnect_handle is not None:
                return
            attempt = self._reconnect_attempts + 1
            if not self.reconnect_policy.allows(attempt):
                logger.error(
                    "[MQTT] Max reconnection attempts reached (%d), staying disconnected",
                    self._reconnect_attempts,
                )
                return
            self._reconnect_attempts = attempt
            delay = self.reconnect_policy.calculate_delay(attempt)
            max_attempts = self.reconnect_policy.max_attempts
            self._reconnect_handle = self._scheduler(delay, self._reconnect)

        MQTT_RECONNECT_ATTEMPTS.inc()
        logger.info(
            "[MQTT] Reconnecting in %.1fs (%d/%s)",
            delay, attempt, max_attempts if max_attempts is not None else "inf",
        )

    def _reconnect(self) -> None:
        with self._lock:
            self._reconnect_handle = None
            if self._stopped:
                return
        self._attempt_connect()

    def _dispose(self, client) -> None:
        if client is None:
            return
        try:
            client.loop_stop()
            client.disconnect()
        except Exception as e:
            logger.warning("[MQTT] Disconnect error: %s", e)

    # ------------------------------------------------------------------
    # Callbacks paho (VERSION2)
    # ------------------------------------------------------------------

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        with self._lock:
            if client is not self._client:
                return
            if reason_code == 0:
                self._state = ConnectionState.CONNECTED
                self._reconnect_attempts = 0
                self._last_connected_at = utcnow()
            else:
                self._state = ConnectionState.DISCONNECTED
            self._connack.set()

        if reason_code == 0:
            MQTT_CONNECTED.set(1)
            logger.info("[MQTT] Connected to broker")
            client.subscribe(self.sensor_topic, qos=0)
            logger.info("[MQTT] Subscribed to %s", self.sensor_topic)
        else:
            logger.error("[MQTT] Connection refused: rc=%s", reason_code)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        with self._lock:
            if client is not self._client or self._stopped:
                return
            was_connected = self._state == ConnectionState.CONNECTED
            if not was_connected:
                # Intento en curso: lo resuelve _attempt_connect
                return
            self._state = ConnectionState.DISCONNECTED
            self._client = None

        MQTT_CONNECTED.set(0)
        logger.warning("[MQTT] Connection lost (rc=%s)", reason_code)
        # loop_stop evita que paho reconecte por su cuenta en paralelo
        self._dispose(client)
        self._schedule_reconnect()

    def _on_message(self, client, userdata, msg):
        with self._lock:
            self._messages_received += 1
            self._last_message_at = utcnow()

        handler = self._message_handler
        if handler is None:
            logger.warning("[MQTT] No message handler set, message on %s dropped", msg.topic)
            return
        try:
            handler(msg.topic, msg.payload)
        except Exception as e:
            # Nunca propagar al hilo de red de paho
            logger.exception("[MQTT] Handler error topic=%s: %s", msg.topic, e)
