"""
Logging Configuration

Single stdout handler for the API process and the CLI scripts, so that
pipeline events (chunk counts, embedding retries, threshold fallbacks)
land in the container log stream in one line format.
"""

from __future__ import annotations

import logging
import sys
from logging.config import dictConfig

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers held at a fixed level regardless of LOG_LEVEL
LIBRARY_LEVELS: dict[str, str] = {
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
    "httpx": "WARNING",  # one INFO line per embedding request otherwise
    "sqlalchemy.engine": "WARNING",
    "alembic": "INFO",
}


def _console_logger(level: str) -> dict[str, object]:
    return {"level": level, "handlers": ["console"], "propagate": False}


def setup_logging(level: str = "INFO") -> None:
    """
    Route ``impact_rag`` and library loggers to stdout.

    Args:
        level: Level name for the application loggers (``LOG_LEVEL``).
            Unknown names fall back to INFO.

    Call once at process startup (lifespan handler or script main).
    """
    app_level = level.upper()
    if not isinstance(logging.getLevelName(app_level), int):
        app_level = "INFO"

    loggers = {name: _console_logger(lib_level) for name, lib_level in LIBRARY_LEVELS.items()}
    loggers["impact_rag"] = _console_logger(app_level)

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
            },
            "root": {"level": "WARNING", "handlers": ["console"]},
            "loggers": loggers,
        }
    )
    logging.getLogger(__name__).debug("Logging configured at %s", app_level)
