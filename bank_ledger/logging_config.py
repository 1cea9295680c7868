"""
Logging configuration.

Console logging in either a human-readable or a JSON line format,
selected by LOG_FORMAT. Call setup_logging() once at startup;
modules obtain their loggers with logging.getLogger(__name__).
"""

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any

from bank_ledger.config import get_settings


class JSONFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def get_logging_config() -> dict[str, Any]:
    """Build a dictConfig-compatible logging configuration."""
    settings = get_settings()
    formatter = "json" if settings.LOG_FORMAT == "json" else "detailed"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": JSONFormatter,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "bank_ledger": {
                "level": settings.LOG_LEVEL,
                "handlers": ["console"],
                "propagate": False,
            },
            # SQL echo is controlled here rather than on the engine
            "sqlalchemy.engine": {
                "level": "INFO" if settings.DEBUG else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }


def setup_logging() -> None:
    """Apply the logging configuration."""
    logging.config.dictConfig(get_logging_config())

    settings = get_settings()
    logging.getLogger(__name__).info(
        "Logging configured: level=%s, format=%s",
        settings.LOG_LEVEL,
        settings.LOG_FORMAT,
    )
