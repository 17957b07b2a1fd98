"""Servicio de monitoreo hidropónico: ingesta MQTT, alertas y agregación."""

__version__ = "0.4.0"
