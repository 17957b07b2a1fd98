"""Catálogo de plantas y plantas asignadas a cada usuario."""
