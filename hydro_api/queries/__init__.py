"""Consultas de lectura y agregación en tiempo de consulta."""
