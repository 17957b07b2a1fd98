"""Fixtures compartidas: BD SQLite por test, cliente MQTT falso y scheduler manual."""

from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import orjson
import pytest

from common.config import Settings
from common.db import build_engine, make_session_factory
from hydro_api.infrastructure.persistence import ensure_schema, reading_repository, user_repository
from hydro_api.mqtt.transport import ReconnectPolicy, TransportClient


# =============================================================================
# MQTT FAKES
# =============================================================================

class FakeMQTTClient:
    """Imita la superficie de paho.mqtt.client.Client que usa TransportClient.

    loop_start() dispara on_connect de forma síncrona con `connack_rc`.
    """

    def __init__(
        self,
        client_id: str,
        connack_rc: int = 0,
        fail_connect: bool = False,
        respond: bool = True,
        publish_rc: int = 0,
    ):
        self.client_id = client_id
        self.connack_rc = connack_rc
        self.fail_connect = fail_connect
        self.respond = respond
        self.publish_rc = publish_rc

        self.on_connect = None
        self.on_disconnect = None
        self.on_message = None

        self.credentials = None
        self.subscriptions: List[str] = []
        self.published: List[tuple] = []
        self.loop_started = False
        self.loop_stopped = False
        self._connected = False

    def username_pw_set(self, username, password=None):
        self.credentials = (username, password)

    def connect(self, host, port, keepalive=60):
        if self.fail_connect:
            raise ConnectionRefusedError(f"refused {host}:{port}")
        return 0

    def loop_start(self):
        self.loop_started = True
        if self.respond:
            self._connected = self.connack_rc == 0
            self.on_connect(self, None, {}, self.connack_rc, None)

    def loop_stop(self):
        self.loop_stopped = True

    def disconnect(self):
        self._connected = False
        return 0

    def is_connected(self) -> bool:
        return self._connected

    def subscribe(self, topic, qos=0):
        self.subscriptions.append(topic)
        return (0, 1)

    def publish(self, topic, payload, qos=0, retain=False):
        self.published.append((topic, payload))
        return SimpleNamespace(rc=self.publish_rc, mid=len(self.published))

    # --- helpers de test ---

    def drop(self, rc: int = 7) -> None:
        """Pérdida inesperada de conexión."""
        self._connected = False
        self.on_disconnect(self, None, {}, rc, None)

    def deliver(self, topic: str, payload: bytes) -> None:
        self.on_message(self, None, SimpleNamespace(topic=topic, payload=payload))


class FakeClientFactory:
    """Crea FakeMQTTClient según un plan: un dict de kwargs por intento."""

    def __init__(self, plan: Optional[List[Dict[str, Any]]] = None, **default):
        self.plan = list(plan or [])
        self.default = default
        self.clients: List[FakeMQTTClient] = []

    def __call__(self, client_id: str) -> FakeMQTTClient:
        kwargs = self.plan.pop(0) if self.plan else self.default
        client = FakeMQTTClient(client_id, **kwargs)
        self.clients.append(client)
        return client

    @property
    def last(self) -> FakeMQTTClient:
        return self.clients[-1]


class _Handle:
    def __init__(self, delay: float, fn: Callable[[], None]):
        self.delay = delay
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler que solo ejecuta cuando el test lo pide."""

    def __init__(self):
        self.pending: List[_Handle] = []
        self.delays: List[float] = []

    def __call__(self, delay: float, fn: Callable[[], None]) -> _Handle:
        handle = _Handle(delay, fn)
        self.pending.append(handle)
        self.delays.append(delay)
        return handle

    def run_next(self) -> bool:
        while self.pending:
            handle = self.pending.pop(0)
            if not handle.cancelled:
                handle.fn()
                return True
        return False

    def run_all(self, limit: int = 50) -> int:
        runs = 0
        while runs < limit and self.run_next():
            runs += 1
        return runs


def make_transport(factory: FakeClientFactory, scheduler: ManualScheduler, **kwargs) -> TransportClient:
    kwargs.setdefault("connect_timeout", 0.05)
    kwargs.setdefault("reconnect_policy", ReconnectPolicy(delay=5.0, max_attempts=5))
    return TransportClient(
        broker_host="broker.test",
        broker_port=1883,
        client_factory=factory,
        scheduler=scheduler,
        **kwargs,
    )


# =============================================================================
# DATA HELPERS
# =============================================================================

def sensor_payload(**overrides) -> Dict[str, Any]:
    data = {
        "suhu_air": 22.0,
        "suhu_udara": 25.0,
        "kelembapan": 60.0,
        "tds": 1000,
        "ph": 6.0,
        "pompa": "ON",
    }
    data.update(overrides)
    return data


def sensor_bytes(**overrides) -> bytes:
    return orjson.dumps(sensor_payload(**overrides))


def store_reading(db, captured_at: datetime, **overrides):
    values = {
        "water_temp": 22.0,
        "air_temp": 25.0,
        "humidity": 60.0,
        "tds": 1000.0,
        "ph": 6.0,
        "pump_state": "ON",
    }
    values.update(overrides)
    reading = reading_repository.insert_reading(db, captured_at=captured_at, **values)
    db.commit()
    return reading


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        database_url=f"sqlite:///{tmp_path / 'api.db'}",
        mqtt_enabled=False,
        mqtt_broker_host="broker.test",
        mqtt_broker_port=1883,
        mqtt_username=None,
        mqtt_password=None,
        mqtt_client_id_prefix="hyyume_backend",
        mqtt_sensor_topic="hyyume/sensor/data",
        mqtt_command_topic="hyyume/pump/control",
        mqtt_connect_timeout_seconds=0.05,
        mqtt_reconnect_delay_seconds=5.0,
        mqtt_reconnect_max_attempts=5,
        alert_queue_size=100,
        alert_num_workers=1,
        history_limit=1000,
        daily_scan_limit=5000,
        default_thresholds_json=None,
        seed_plant_profiles=True,
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def db_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'hydro.db'}")
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def user_id(session_factory) -> int:
    with session_factory() as session:
        uid = user_repository.ensure_user(session, "grower")
        session.commit()
    return uid


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()
