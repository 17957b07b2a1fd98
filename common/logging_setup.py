"""Configuración de logging del proceso."""

from __future__ import annotations

import logging


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
    # paho es muy verboso en DEBUG
    logging.getLogger("paho").setLevel(logging.WARNING)
