"""
Logging setup for applications embedding credvault.

credvault itself only creates module loggers (``credvault.*``, with audit
events on ``credvault.audit``); the host application decides where they
go. setup_logging() is a convenience for scripts and services that have
no logging configuration of their own.

Audit records carry the event type, the truncated user hash, the event
time from the injected clock and the event details. The JSON formatter
lifts these into top-level keys.
"""

import json
import logging
from datetime import datetime, timezone
from typing import IO, Optional

AUDIT_FIELDS = ("event_type", "user_hash", "event_time", "details")


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in AUDIT_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class _CredvaultHandler(logging.StreamHandler):
    """Marker type so setup_logging can find its own handler again."""


def setup_logging(level: str = "INFO", fmt: str = "json",
                  stream: Optional[IO[str]] = None) -> logging.Handler:
    """
    Route the ``credvault`` logger tree to a stream.

    Calling it again replaces the handler installed by the previous call
    instead of stacking a second one.

    Args:
        level: Level name for the ``credvault`` logger
        fmt: "json" for JSONFormatter, anything else for plain text
        stream: Destination, defaults to stderr

    Returns:
        The installed handler
    """
    package_logger = logging.getLogger("credvault")
    for old in [h for h in package_logger.handlers if isinstance(h, _CredvaultHandler)]:
        package_logger.removeHandler(old)

    handler = _CredvaultHandler(stream)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
        ))
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
