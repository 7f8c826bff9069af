"""Structured logging configuration for application events."""

import json
import logging
import sys
from typing import Any

from app.core.config_file import get_settings

settings = get_settings()


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": self.formatTime(record, "%Y-%m-%d %H:%M:%S"),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _build_formatter() -> logging.Formatter:
    if settings.LOG_FORMAT == "json":
        return JsonFormatter()
    return logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# Create logger for application events
app_logger = logging.getLogger("app")
app_logger.setLevel(settings.LOG_LEVEL.upper())

# Create console handler with structured format
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(settings.LOG_LEVEL.upper())
console_handler.setFormatter(_build_formatter())

# Add handler to logger if not already added
if not app_logger.handlers:
    app_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the application hierarchy.

    Modules under ``app`` already inherit the console handler; any other
    name is nested below ``app`` so it shares the same configuration.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        Configured logger instance.
    """
    if name == "app" or name.startswith("app."):
        return logging.getLogger(name)
    return logging.getLogger(f"app.{name}")
