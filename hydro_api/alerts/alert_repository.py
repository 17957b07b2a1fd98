"""Repositorio de alertas - operaciones de persistencia."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import case, func, insert, select, update
from sqlalchemy.orm import Session

from ..domain import Alert
from ..infrastructure.persistence.tables import alerts

logger = logging.getLogger(__name__)


def _row_to_alert(row) -> Alert:
    return Alert(
        id=int(row.id),
        user_id=int(row.user_id),
        plant_assignment_id=row.plant_assignment_id,
        alert_type=str(row.alert_type),
        parameter_name=str(row.parameter_name),
        severity=str(row.severity),
        title=str(row.title),
        message=str(row.message),
        action_required=row.action_required,
        current_value=float(row.current_value),
        threshold_value=float(row.threshold_value),
        deviation_direction=str(row.deviation_direction),
        is_resolved=bool(row.is_resolved),
        resolved_at=row.resolved_at,
        resolved_by=row.resolved_by,
        source_reading_id=row.source_reading_id,
        created_at=row.created_at,
    )


def get_open_alert_id(db: Session, user_id: int, parameter_name: str) -> Optional[int]:
    """Id de la alerta no resuelta para (user_id, parameter_name), si existe."""
    row = db.execute(
        select(alerts.c.id)
        .where(
            alerts.c.user_id == user_id,
            alerts.c.parameter_name == parameter_name,
            alerts.c.is_resolved.is_(False),
        )
        .limit(1)
    ).fetchone()
    return int(row[0]) if row else None


def insert_alert(
    db: Session,
    *,
    user_id: int,
    plant_assignment_id: Optional[int],
    alert_type: str,
    parameter_name: str,
    severity: str,
    title: str,
    message: str,
    action_required: Optional[str],
    current_value: float,
    threshold_value: float,
    deviation_direction: str,
    source_reading_id: Optional[int],
    created_at: datetime,
) -> int:
    result = db.execute(
        insert(alerts)
        .values(
            user_id=user_id,
            plant_assignment_id=plant_assignment_id,
            alert_type=alert_type,
            parameter_name=parameter_name,
            severity=severity,
            title=title,
            message=message,
            action_required=action_required,
            current_value=current_value,
            threshold_value=threshold_value,
            deviation_direction=deviation_direction,
            is_resolved=False,
            source_reading_id=source_reading_id,
            created_at=created_at,
        )
        .returning(alerts.c.id)
    )
    return int(result.scalar_one())


def get_alert(db: Session, alert_id: int) -> Optional[Alert]:
    row = db.execute(select(alerts).where(alerts.c.id == alert_id)).fetchone()
    return _row_to_alert(row) if row else None


def list_alerts(
    db: Session,
    user_id: int,
    *,
    severity: Optional[str] = None,
    alert_type: Optional[str] = None,
    is_resolved: Optional[bool] = None,
    limit: int = 50,
) -> List[Alert]:
    stmt = select(alerts).where(alerts.c.user_id == user_id)
    if severity is not None:
        stmt = stmt.where(alerts.c.severity == severity)
    if alert_type is not None:
        stmt = stmt.where(alerts.c.alert_type == alert_type)
    if is_resolved is not None:
        stmt = stmt.where(alerts.c.is_resolved.is_(is_resolved))
    stmt = stmt.order_by(alerts.c.created_at.desc(), alerts.c.id.desc()).limit(limit)
    return [_row_to_alert(r) for r in db.execute(stmt).fetchall()]


_SEVERITY_ORDER = case(
    {"critical": 3, "high": 2, "medium": 1, "low": 0},
    value=alerts.c.severity,
    else_=0,
)


def list_open_alerts(db: Session, user_id: int) -> List[Alert]:
    """Alertas abiertas: críticas primero, luego las más recientes."""
    stmt = (
        select(alerts)
        .where(alerts.c.user_id == user_id, alerts.c.is_resolved.is_(False))
        .order_by(_SEVERITY_ORDER.desc(), alerts.c.created_at.desc(), alerts.c.id.desc())
    )
    return [_row_to_alert(r) for r in db.execute(stmt).fetchall()]


def count_open_alerts(db: Session, user_id: int, parameter_name: Optional[str] = None) -> int:
    stmt = select(func.count()).select_from(alerts).where(
        alerts.c.user_id == user_id,
        alerts.c.is_resolved.is_(False),
    )
    if parameter_name is not None:
        stmt = stmt.where(alerts.c.parameter_name == parameter_name)
    return int(db.execute(stmt).scalar_one())


def mark_resolved(db: Session, alert_id: int, resolved_by: int, resolved_at: datetime) -> None:
    db.execute(
        update(alerts)
        .where(alerts.c.id == alert_id)
        .values(is_resolved=True, resolved_at=resolved_at, resolved_by=resolved_by)
    )
