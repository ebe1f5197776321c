"""
JSON log output for the trip planner.

One line per record on stderr (and optionally a file). Records about a chat
exchange carry their identifiers under ``extra``: ``conversation_id`` and ``steps``
when an exchange finishes, ``tool`` and ``call_id`` for approvals and
rejections, ``error`` and ``mocks_disabled`` when an Amadeus search falls
back to mock data.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

PACKAGE_LOGGER = "trip_planner"


class StructuredFormatter(logging.Formatter):
    """
    Renders a record as a single JSON object:
    {"timestamp", "level", "logger", "message", "extra"?, "exception"?}.
    ``extra`` is whatever the caller passed as ``extra={"extra": {...}}``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra"):
            log_entry["extra"] = record.extra

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: int | str = logging.INFO,
    log_file: Optional[str] = None,
    logger_name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """
    Point the package logger at JSON handlers. Handlers from an earlier call
    are closed and replaced, since create_app may run more than once per
    process. ``level`` comes from LOG_LEVEL and unknown names mean INFO;
    ``log_file`` adds a file handler next to stderr.
    """
    level = _resolve_level(level)

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    for old in logger.handlers:
        old.close()
    logger.handlers = []

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    formatter = StructuredFormatter()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
