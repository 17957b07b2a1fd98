"""Alertas del usuario."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .deps import get_db, require_user
from ..alerts import alert_service
from ..schemas import AlertOut, ResolveAlertIn

router = APIRouter(prefix="/users/{user_id}/alerts", tags=["alerts"])


@router.get("", response_model=List[AlertOut])
def list_alerts(
    user_id: int = Depends(require_user),
    severity: Optional[str] = Query(None),
    alert_type: Optional[str] = Query(None),
    is_resolved: Optional[bool] = Query(None),
    limit: int = Query(50),
    db: Session = Depends(get_db),
):
    return alert_service.list_alerts(
        db,
        user_id,
        severity=severity,
        alert_type=alert_type,
        is_resolved=is_resolved,
        limit=limit,
    )


@router.get("/active", response_model=List[AlertOut])
def active_alerts(user_id: int = Depends(require_user), db: Session = Depends(get_db)):
    """Alertas abiertas, críticas primero."""
    return alert_service.active_alerts(db, user_id)


@router.patch("/{alert_id}/resolve", response_model=AlertOut)
def resolve_alert(
    alert_id: int,
    body: Optional[ResolveAlertIn] = None,
    user_id: int = Depends(require_user),
    db: Session = Depends(get_db),
):
    resolved_by = body.resolved_by if body else None
    return alert_service.resolve(db, user_id, alert_id, resolved_by)
