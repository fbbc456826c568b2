"""
Logging Configuration

Everything goes to stdout in one line format. Application loggers follow
LOG_LEVEL; the chatty libraries are pinned so a DEBUG run of notetree does
not drown in driver and HTTP client output.
"""

import sys
from logging.config import dictConfig
from typing import Any

from notetree.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
ACCESS_FORMAT = "%(asctime)s | ACCESS   | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _logger(level: str, handler: str = "console") -> dict[str, Any]:
    return {"level": level, "handlers": [handler], "propagate": False}


def build_logging_config(
    level: str, sql_echo: bool = False, access_log: bool = True
) -> dict[str, Any]:
    """
    dictConfig mapping for the service.

    Args:
        level: Level of the ``notetree`` loggers and the root logger.
        sql_echo: Log every SQL statement (``sqlalchemy.engine`` at INFO).
        access_log: Keep uvicorn's per-request access lines.
    """
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
            "access": {"format": ACCESS_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "default",
            },
            "access": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "access",
            },
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "notetree": _logger(level),
            "uvicorn": _logger("INFO"),
            "uvicorn.error": _logger("INFO"),
            "uvicorn.access": _logger("INFO" if access_log else "WARNING", "access"),
            "sqlalchemy.engine": _logger("INFO" if sql_echo else "WARNING"),
            "aiosqlite": _logger("WARNING"),
            "asyncpg": _logger("WARNING"),
            "httpx": _logger("WARNING"),
            "httpcore": _logger("WARNING"),
            "openai": _logger("WARNING"),
        },
    }


def setup_logging() -> None:
    """Apply the logging configuration from settings (once, at import of the app)."""
    dictConfig(
        build_logging_config(
            settings.LOG_LEVEL,
            sql_echo=settings.LOG_SQL,
            access_log=settings.LOG_ACCESS,
        )
    )
