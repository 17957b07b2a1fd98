"""Persistencia: tablas SQLAlchemy Core y repositorios de lecturas/usuarios."""

from .tables import ensure_schema, metadata

__all__ = ["ensure_schema", "metadata"]
