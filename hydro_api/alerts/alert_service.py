"""Consultas y resolución de alertas para un usuario."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..clock import utcnow
from ..domain import Alert, AlertType, Severity
from ..errors import AlertAccessDeniedError, AlertNotFoundError, ValidationError
from . import alert_repository

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 500


def list_alerts(
    db: Session,
    user_id: int,
    *,
    severity: Optional[str] = None,
    alert_type: Optional[str] = None,
    is_resolved: Optional[bool] = None,
    limit: int = 50,
) -> List[Alert]:
    if severity is not None and severity not in {s.value for s in Severity}:
        raise ValidationError(f"Invalid severity filter '{severity}'")
    if alert_type is not None and alert_type not in {t.value for t in AlertType}:
        raise ValidationError(f"Invalid alert type filter '{alert_type}'")
    if not 1 <= limit <= MAX_LIST_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_LIST_LIMIT}")

    return alert_repository.list_alerts(
        db,
        user_id,
        severity=severity,
        alert_type=alert_type,
        is_resolved=is_resolved,
        limit=limit,
    )


def active_alerts(db: Session, user_id: int) -> List[Alert]:
    return alert_repository.list_open_alerts(db, user_id)


def resolve(
    db: Session,
    user_id: int,
    alert_id: int,
    resolved_by: Optional[int] = None,
) -> Alert:
    """Marca la alerta como resuelta.

    Resolver una alerta ya resuelta la devuelve sin cambios. Una vez
    resuelta, el próximo breach del mismo parámetro crea una alerta nueva.

    Raises:
        AlertNotFoundError: no existe
        AlertAccessDeniedError: pertenece a otro usuario
    """
    alert = alert_repository.get_alert(db, alert_id)
    if alert is None:
        raise AlertNotFoundError(f"Alert {alert_id} not found")
    if alert.user_id != user_id:
        raise AlertAccessDeniedError(f"Alert {alert_id} does not belong to user {user_id}")
    if alert.is_resolved:
        return alert

    alert_repository.mark_resolved(
        db,
        alert_id,
        resolved_by=resolved_by if resolved_by is not None else user_id,
        resolved_at=utcnow(),
    )
    db.commit()
    logger.info("[ALERTS] Resolved id=%s user=%s param=%s", alert_id, user_id, alert.parameter_name)
    return alert_repository.get_alert(db, alert_id)
