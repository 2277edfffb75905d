"""
Process-wide logging setup.
"""

from __future__ import annotations

import logging

from core import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_configured = False


def configure_logging() -> None:
    global _configured
    if _configured:
        return None

    level = getattr(logging, settings.log_level(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # asyncpg logs every connection reset at INFO.
    logging.getLogger("asyncpg").setLevel(max(level, logging.WARNING))
    _configured = True
