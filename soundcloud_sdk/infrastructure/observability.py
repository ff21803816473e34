"""Structured Logging — JSON formatter and setup for SDK request logs.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Request fields (method, url, status_code, attempt, error_code) surfaced when present
    - JSON format for machine consumption, human-readable otherwise

Design Decisions:
    - The SDK never configures logging on import; applications call setup_logging once
"""

import json
import logging
from datetime import datetime, timezone

_EXTRA_KEYS = (
    "method", "url", "status_code", "attempt", "error_code", "elapsed_ms",
)


class JSONFormatter(logging.Formatter):
    """Format logs as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Attach a stream handler for the SDK's loggers and return it."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    sdk_logger = logging.getLogger("soundcloud_sdk")
    sdk_logger.addHandler(handler)
    sdk_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
