"""Logging setup for the agent CLI."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(level: str | int = "INFO", json_format: bool = False) -> None:
    """Configure the root logger.

    Safe to call more than once; existing root handlers are replaced so the
    CLI can reconfigure after parsing ``--verbose``.

    Args:
        level: Log level name or number
        json_format: Emit JSON lines instead of the plain text format
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    logging.basicConfig(level=level, handlers=[handler], force=True)
