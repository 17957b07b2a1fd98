"""Usuarios registrados. La gestión de cuentas vive fuera de este servicio."""

from __future__ import annotations

from typing import List

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from ...clock import utcnow
from .tables import users


def list_user_ids(db: Session) -> List[int]:
    rows = db.execute(select(users.c.id).order_by(users.c.id)).fetchall()
    return [int(r[0]) for r in rows]


def ensure_user(db: Session, name: str) -> int:
    """Devuelve el id del usuario, creándolo si no existe."""
    row = db.execute(select(users.c.id).where(users.c.name == name)).fetchone()
    if row:
        return int(row[0])
    result = db.execute(
        insert(users).values(name=name, created_at=utcnow()).returning(users.c.id)
    )
    return int(result.scalar_one())


def user_exists(db: Session, user_id: int) -> bool:
    return db.execute(select(users.c.id).where(users.c.id == user_id)).fetchone() is not None
