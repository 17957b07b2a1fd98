"""Dependencias FastAPI compartidas por los routers."""

from __future__ import annotations

from typing import Iterator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..infrastructure.persistence import user_repository
from ..runtime import MonitorRuntime


def get_runtime(request: Request) -> MonitorRuntime:
    return request.app.state.runtime


def get_db(runtime: MonitorRuntime = Depends(get_runtime)) -> Iterator[Session]:
    db = runtime.session_factory()
    try:
        yield db
    finally:
        db.close()


def require_user(user_id: int, db: Session = Depends(get_db)) -> int:
    """Valida el user_id del path. La autenticación queda fuera del servicio."""
    if not user_repository.user_exists(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return user_id
