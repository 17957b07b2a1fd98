"""Tests de ingesta MQTT.

Cubre:
1. Validación del payload del sensor
2. Persistencia con hora del servidor
3. Handoff a la cola de alertas (solo tras el commit)
4. Payload malformado / fallo de BD

Ejecutar:
    pytest tests/test_mqtt_ingest.py -v
"""

import logging
from datetime import timedelta
from types import SimpleNamespace

import orjson
import pytest

from hydro_api.alerts import alert_repository
from hydro_api.alerts.alert_engine import AlertEngine
from hydro_api.clock import utcnow
from hydro_api.errors import ParseError
from hydro_api.infrastructure.persistence import reading_repository
from hydro_api.infrastructure.persistence.tables import sensor_readings
from hydro_api.mqtt.async_processor import AlertDispatcher
from hydro_api.mqtt.message_handler import IngestionHandler
from hydro_api.mqtt.validators import parse_sensor_payload, validate_sensor_reading

from conftest import sensor_bytes, sensor_payload

TOPIC = "hyyume/sensor/data"


class RecordingDispatcher:
    def __init__(self, accept: bool = True):
        self.accept = accept
        self.readings = []

    def enqueue(self, reading) -> bool:
        self.readings.append(reading)
        return self.accept


# =============================================================================
# TEST 1: VALIDACIÓN
# =============================================================================

class TestPayloadValidation:

    def test_valid_payload(self):
        result = validate_sensor_reading(sensor_payload())

        assert result.valid is True
        assert result.payload.suhu_air == 22.0
        assert result.payload.tds == 1000
        assert result.payload.pompa.value == "ON"

    def test_ph_and_pump_are_optional(self):
        data = sensor_payload()
        del data["ph"]
        del data["pompa"]

        result = validate_sensor_reading(data)

        assert result.valid is True
        assert result.payload.ph is None
        assert result.payload.pompa is None
        assert "ph missing" in str(result.warnings)

    @pytest.mark.parametrize("field", ["suhu_air", "suhu_udara", "kelembapan", "tds"])
    def test_required_field_missing(self, field):
        data = sensor_payload()
        del data[field]

        result = validate_sensor_reading(data)

        assert result.valid is False
        assert field in result.error

    @pytest.mark.parametrize("bad", ["23.5", True, None, [1]])
    def test_non_numeric_values_rejected(self, bad):
        result = validate_sensor_reading(sensor_payload(suhu_air=bad))

        assert result.valid is False

    def test_pump_state_is_normalized(self):
        result = validate_sensor_reading(sensor_payload(pompa="off"))

        assert result.payload.pompa.value == "OFF"

    def test_unknown_pump_state_rejected(self):
        result = validate_sensor_reading(sensor_payload(pompa="MAYBE"))

        assert result.valid is False

    def test_extra_fields_are_ignored(self):
        result = validate_sensor_reading(sensor_payload(firmware="1.2.0"))

        assert result.valid is True

    def test_non_object_rejected(self):
        assert validate_sensor_reading([1, 2, 3]).valid is False

    def test_parse_invalid_json(self):
        with pytest.raises(ParseError):
            parse_sensor_payload(b"{not json")

    def test_parse_logs_missing_ph_warning(self, caplog):
        data = sensor_payload()
        del data["ph"]

        with caplog.at_level(logging.DEBUG, logger="hydro_api.mqtt.validators"):
            payload = parse_sensor_payload(orjson.dumps(data))

        assert payload.ph is None
        assert "ph missing" in caplog.text

    def test_parse_nan_literal(self):
        with pytest.raises(ParseError):
            parse_sensor_payload(b'{"suhu_air": NaN, "suhu_udara": 1, "kelembapan": 1, "tds": 1}')


# =============================================================================
# TEST 2: PERSISTENCIA + HANDOFF
# =============================================================================

class TestIngestionHandler:

    def test_valid_message_is_stored_and_dispatched(self, session_factory, db):
        dispatcher = RecordingDispatcher()
        handler = IngestionHandler(session_factory, dispatcher=dispatcher, sensor_topic=TOPIC)
        before = utcnow()

        reading = handler.handle_message(TOPIC, sensor_bytes(suhu_air=24.5, ph=6.2))

        assert reading is not None
        stored = reading_repository.get_latest(db)
        assert stored.id == reading.id
        assert stored.water_temp == 24.5
        assert stored.ph == 6.2
        assert stored.pump_state == "ON"
        assert before - timedelta(seconds=1) <= stored.captured_at <= utcnow() + timedelta(seconds=1)
        assert dispatcher.readings == [reading]
        assert handler.stats.to_dict()["stored"] == 1

    def test_missing_ph_stored_as_null(self, session_factory, db):
        handler = IngestionHandler(session_factory)
        data = sensor_payload()
        del data["ph"]

        handler.handle_message(TOPIC, orjson.dumps(data))

        assert reading_repository.get_latest(db).ph is None

    def test_malformed_payload_not_persisted(self, session_factory, db):
        dispatcher = RecordingDispatcher()
        handler = IngestionHandler(session_factory, dispatcher=dispatcher)

        assert handler.handle_message(TOPIC, b'{"suhu_air": 20}') is None
        assert handler.handle_message(TOPIC, b"garbage") is None

        assert reading_repository.get_latest(db) is None
        assert dispatcher.readings == []
        stats = handler.stats.to_dict()
        assert stats["rejected"] == 2
        assert stats["received"] == 2

    def test_persistence_failure_skips_evaluation(self, session_factory, db_engine):
        dispatcher = RecordingDispatcher()
        handler = IngestionHandler(session_factory, dispatcher=dispatcher)
        sensor_readings.drop(db_engine)

        assert handler.handle_message(TOPIC, sensor_bytes()) is None

        assert dispatcher.readings == []
        assert handler.stats.to_dict()["failed"] == 1

    def test_full_queue_does_not_fail_ingestion(self, session_factory, db):
        dispatcher = RecordingDispatcher(accept=False)
        handler = IngestionHandler(session_factory, dispatcher=dispatcher)

        reading = handler.handle_message(TOPIC, sensor_bytes())

        assert reading is not None
        assert reading_repository.get_latest(db) is not None
        assert handler.stats.to_dict()["not_dispatched"] == 1

    def test_other_topics_are_ignored(self, session_factory, db):
        handler = IngestionHandler(session_factory, sensor_topic=TOPIC)

        assert handler.handle_message("hyyume/pump/control", sensor_bytes()) is None
        assert reading_repository.get_latest(db) is None


# =============================================================================
# TEST 3: FLUJO COMPLETO CON COLA DE ALERTAS
# =============================================================================

class TestIngestToAlerts:

    def test_breaching_reading_raises_alert_through_queue(self, session_factory, db, user_id):
        engine = AlertEngine(session_factory)
        dispatcher = AlertDispatcher(engine, max_queue_size=10, num_workers=2)
        handler = IngestionHandler(session_factory, dispatcher=dispatcher)
        dispatcher.start()
        try:
            handler.handle_message(TOPIC, sensor_bytes(suhu_air=30, suhu_udara=25, kelembapan=60, tds=1000, ph=6.0))
            handler.handle_message(TOPIC, sensor_bytes(suhu_air=30, suhu_udara=25, kelembapan=60, tds=1000, ph=6.0))
        finally:
            dispatcher.stop(drain=True)

        assert alert_repository.count_open_alerts(db, user_id) == 1
        assert alert_repository.count_open_alerts(db, user_id, "Water Temperature") == 1
        metrics = dispatcher.metrics
        assert metrics["processed"] == 2
        assert metrics["errors"] == 0

    def test_evaluation_failure_does_not_affect_ingestion(self, session_factory, db):
        class BrokenEngine:
            def evaluate_for_all_users(self, reading):
                raise RuntimeError("engine down")

        dispatcher = AlertDispatcher(BrokenEngine(), max_queue_size=10)
        handler = IngestionHandler(session_factory, dispatcher=dispatcher)
        dispatcher.start()
        try:
            reading = handler.handle_message(TOPIC, sensor_bytes())
        finally:
            dispatcher.stop(drain=True)

        assert reading is not None
        assert reading_repository.get_latest(db).id == reading.id
        assert dispatcher.metrics["errors"] == 1

    def test_dispatcher_drops_when_full(self):
        dispatcher = AlertDispatcher(engine=None, max_queue_size=1)

        assert dispatcher.enqueue(SimpleNamespace(id=1)) is True
        assert dispatcher.enqueue(SimpleNamespace(id=2)) is False
        assert dispatcher.metrics["dropped"] == 1
