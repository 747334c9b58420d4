"""
Logging configuration for Courtside.

Modules log through ``logging.getLogger(__name__)``; applications embedding
the engine call ``setup_logging()`` once at start-up. Level and format come
from settings (LOG_LEVEL, LOG_FORMAT) unless passed explicitly.

- json: one JSON object per line, for log shippers
- console: human-readable lines for local development
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Optional

from courtside.config import settings

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure the root logger.

    Args:
        level: Level name (e.g. "DEBUG"). Defaults to settings.log_level.
        log_format: "json" or "console". Defaults to settings.log_format.
    """
    level_name = (level or settings.log_level).upper()
    fmt = (log_format or settings.log_format).lower()

    root = logging.getLogger()
    # Avoid duplicate handlers if re-configuring
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stdout)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))

    root.setLevel(getattr(logging, level_name, logging.INFO))
    root.addHandler(handler)

    # SQL echo is noisy; only surface it in full debug
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if level_name == "DEBUG" else logging.WARNING
    )
