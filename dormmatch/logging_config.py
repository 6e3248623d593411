"""Centralised logging configuration."""
from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: int | str | None = None) -> None:
    """Configure root logging once; later calls are no-ops."""
    if logging.getLogger().handlers:
        return

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
