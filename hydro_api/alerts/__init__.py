"""Pipeline de ALERTAS: umbrales, reglas de severidad, motor y consultas.

Estructura:
- thresholds.py: parámetros monitoreados y tabla por defecto
- alert_rules.py: breach, severidad, textos y estado de display
- alert_engine.py: evaluación con deduplicación por (usuario, parámetro)
- alert_repository.py / alert_service.py: persistencia y consultas
"""
