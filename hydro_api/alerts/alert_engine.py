"""Motor de alertas por umbrales.

Para cada lectura y usuario:
1. Resuelve los rangos a comparar: plantas activas del usuario o, si no
   tiene ninguna, la tabla por defecto del sistema.
2. Compara cada parámetro contra su rango.
3. Crea como máximo UNA alerta abierta por (usuario, parámetro).

La deduplicación tiene dos capas: un lock por clave alrededor del
check-then-insert dentro del proceso, y el índice único parcial
`uq_alerts_open_parameter` en la BD. Una violación del índice cuenta
como alerta suprimida.

evaluate() nunca lanza: los fallos se loguean y se cuentan.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..clock import utcnow
from ..domain import AlertType, SensorReading, ThresholdRange
from ..errors import AlertEvaluationError
from ..infrastructure.persistence import user_repository
from ..metrics import ALERTS_EVALUATED
from ..plants import plant_repository
from . import alert_repository
from .alert_rules import AlertRules, Breach
from .thresholds import DEFAULT_THRESHOLDS, PARAMETERS, MonitoredParameter

logger = logging.getLogger(__name__)

CREATED = "created"
SUPPRESSED = "suppressed"


@dataclass(frozen=True)
class EvaluationTarget:
    """Conjunto de rangos contra el que se evalúa una lectura."""

    alert_type: AlertType
    ranges: Mapping[str, ThresholdRange]
    plant_assignment_id: Optional[int] = None
    plant_name: Optional[str] = None


class AlertEngine:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        default_thresholds: Optional[Mapping[str, ThresholdRange]] = None,
    ):
        self._session_factory = session_factory
        self._default_thresholds = dict(default_thresholds or DEFAULT_THRESHOLDS)

        self._key_locks: Dict[Tuple[int, str], threading.Lock] = {}
        self._key_locks_guard = threading.Lock()

        self._stats_lock = threading.Lock()
        self._stats = {
            "evaluations": 0,
            "created": 0,
            "suppressed": 0,
            "failed": 0,
            "skipped_users": 0,
        }

    @property
    def default_thresholds(self) -> Dict[str, ThresholdRange]:
        return dict(self._default_thresholds)

    # ------------------------------------------------------------------
    # API pública
    # ------------------------------------------------------------------

    def evaluate_for_all_users(self, reading: SensorReading) -> None:
        """Evalúa la lectura para todos los usuarios registrados."""
        try:
            with self._session_factory() as db:
                user_ids = user_repository.list_user_ids(db)
        except Exception as e:
            logger.exception("[ALERTS] Cannot list users reading=%s err=%s", reading.id, e)
            return

        for user_id in user_ids:
            self.evaluate(reading, user_id)

    def evaluate(self, reading: SensorReading, user_id: int) -> None:
        self._bump("evaluations")

        try:
            targets = self._resolve_targets(user_id)
        except Exception as e:
            # Sin rangos confiables no se evalúa; la próxima lectura lo reintenta
            self._bump("skipped_users")
            logger.error(
                "[ALERTS] Threshold lookup failed user=%s reading=%s err=%s",
                user_id, reading.id, e,
            )
            return

        for target in targets:
            for param in PARAMETERS:
                try:
                    self._check_parameter(reading, user_id, target, param)
                except AlertEvaluationError as e:
                    self._bump("failed")
                    ALERTS_EVALUATED.labels(outcome="failed").inc()
                    logger.warning("[ALERTS] user=%s %s", user_id, e)
                except Exception as e:
                    self._bump("failed")
                    ALERTS_EVALUATED.labels(outcome="failed").inc()
                    logger.exception(
                        "[ALERTS] Check failed user=%s param=%s reading=%s err=%s",
                        user_id, param.name, reading.id, e,
                    )

    @property
    def stats(self) -> dict:
        with self._stats_lock:
            return dict(self._stats)

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    def _resolve_targets(self, user_id: int) -> List[EvaluationTarget]:
        with self._session_factory() as db:
            plants = plant_repository.list_active_with_profiles(db, user_id)

        if not plants:
            return [EvaluationTarget(AlertType.SYSTEM, self._default_thresholds)]

        return [
            EvaluationTarget(
                alert_type=AlertType.PLANT,
                ranges=profile.optimal_ranges,
                plant_assignment_id=assignment.id,
                plant_name=profile.name,
            )
            for assignment, profile in plants
        ]

    def _check_parameter(
        self,
        reading: SensorReading,
        user_id: int,
        target: EvaluationTarget,
        param: MonitoredParameter,
    ) -> Optional[str]:
        rng = target.ranges.get(param.key)
        if rng is None:
            return None
        if not rng.is_valid:
            raise AlertEvaluationError(
                f"Malformed range for {param.name}: min={rng.min_value} > max={rng.max_value}"
            )

        breach = AlertRules.detect_breach(param.value_of(reading), rng)
        if breach is None:
            return None

        outcome = self._create_alert(reading, user_id, target, param, breach)
        ALERTS_EVALUATED.labels(outcome=outcome).inc()
        self._bump(outcome)
        return outcome

    def _create_alert(
        self,
        reading: SensorReading,
        user_id: int,
        target: EvaluationTarget,
        param: MonitoredParameter,
        breach: Breach,
    ) -> str:
        severity = AlertRules.get_severity(breach.current_value, breach.threshold_value)
        text = AlertRules.build_text(param.name, breach, target.plant_name)

        with self._lock_for(user_id, param.name):
            with self._session_factory() as db:
                if alert_repository.get_open_alert_id(db, user_id, param.name) is not None:
                    logger.debug(
                        "[ALERTS] Open alert exists user=%s param=%s, suppressed",
                        user_id, param.name,
                    )
                    return SUPPRESSED
                try:
                    alert_id = alert_repository.insert_alert(
                        db,
                        user_id=user_id,
                        plant_assignment_id=target.plant_assignment_id,
                        alert_type=target.alert_type.value,
                        parameter_name=param.name,
                        severity=severity.value,
                        title=text.title,
                        message=text.message,
                        action_required=text.action_required,
                        current_value=breach.current_value,
                        threshold_value=breach.threshold_value,
                        deviation_direction=breach.direction.value,
                        source_reading_id=reading.id,
                        created_at=utcnow(),
                    )
                    db.commit()
                except IntegrityError:
                    # Otro proceso ganó la carrera sobre el índice único parcial
                    db.rollback()
                    logger.info(
                        "[ALERTS] Unique open-alert conflict user=%s param=%s, suppressed",
                        user_id, param.name,
                    )
                    return SUPPRESSED

        logger.info(
            "[ALERTS] Created id=%s user=%s param=%s severity=%s value=%s threshold=%s",
            alert_id, user_id, param.name, severity.value,
            breach.current_value, breach.threshold_value,
        )
        return CREATED

    def _lock_for(self, user_id: int, parameter_name: str) -> threading.Lock:
        key = (user_id, parameter_name)
        with self._key_locks_guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def _bump(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1
