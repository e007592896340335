"""
Logging setup for the importer service.

Called once from ``mma_importer.main``; every module logs through
``logging.getLogger(__name__)`` and ends up on the shared console handler.
"""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"

_is_configured = False


def configure_logging(level: Optional[str] = None, sql_echo: bool = False) -> None:
    """
    Install the console handler and set importer log levels (idempotent).

    Args:
        level: Log level name for the root and ``mma_importer`` loggers, defaults to INFO
        sql_echo: Emit SQLAlchemy statement logs at INFO instead of WARNING
    """
    global _is_configured

    if _is_configured:
        return

    log_level = (level or "INFO").upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "level": log_level,
                }
            },
            "loggers": {
                "mma_importer": {"level": log_level},
                "sqlalchemy.engine": {"level": "INFO" if sql_echo else "WARNING"},
            },
            "root": {"handlers": ["console"], "level": log_level},
        }
    )

    logging.getLogger(__name__).debug(f"Logging configured at {log_level}")
    _is_configured = True
