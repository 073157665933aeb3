"""Logging configuration for toolgraph.

toolgraph logs through the stdlib ``logging`` module under the
"toolgraph" logger hierarchy and never installs handlers on import.
Applications that want output call configure_logging() once.

Usage:
    from toolgraph.core.logging_config import configure_logging

    configure_logging(level="DEBUG", format="json")

Environment Variables:
    TOOLGRAPH_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    TOOLGRAPH_LOG_FORMAT: Output format ("text" or "json")
    TOOLGRAPH_LOG_FILE: Optional log file path
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Literal

TEXT_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "toolgraph"

# Attributes every LogRecord has; anything else came in through ``extra=``
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys() | {"message", "asctime"}
)

_configured = False


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Outputs one JSON object per line:
    {
        "timestamp": "2025-12-28T14:30:00.123000",
        "level": "ERROR",
        "logger": "toolgraph.events",
        "message": "[agent-1] node_failed: node=fetch, error=...",
        "extra": {...}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


def configure_logging(
    level: str | None = None,
    format: Literal["text", "json"] | None = None,
    file_path: str | None = None,
    force: bool = False,
) -> logging.Logger:
    """Attach handlers to the "toolgraph" logger.

    Subsequent calls are ignored unless force=True.

    Args:
        level: Log level. Defaults to TOOLGRAPH_LOG_LEVEL or "INFO".
        format: Output format. Defaults to TOOLGRAPH_LOG_FORMAT or "text".
        file_path: Optional file path. Defaults to TOOLGRAPH_LOG_FILE.
        force: Reconfigure even if already configured.

    Returns:
        The configured "toolgraph" logger.

    Raises:
        ValueError: If the level or format is not recognised.
    """
    global _configured
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured and not force:
        return logger

    level = (level or os.environ.get("TOOLGRAPH_LOG_LEVEL", "INFO")).upper()
    format = format or os.environ.get("TOOLGRAPH_LOG_FORMAT", "text")  # type: ignore[assignment]
    file_path = file_path or os.environ.get("TOOLGRAPH_LOG_FILE")

    if level not in logging.getLevelNamesMapping():
        raise ValueError(f"Unknown log level: {level}")
    if format not in ("text", "json"):
        raise ValueError(f"Unknown log format: {format}")

    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter
    if format == "json":
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    _configured = True
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name (typically __name__)."""
    return logging.getLogger(name)
