"""
Logging setup for the API process

Plain text lines by default; one JSON object per line when LOG_JSON is set.
Values passed through ``extra=`` (method, path, status_code, duration_ms on
request logs) become top-level JSON keys. uvicorn's loggers share the same
handler so server and application lines look alike.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from cobbler.utils.config import settings

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else came from ``extra=``
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class JsonFormatter(logging.Formatter):
    """Render a record and its ``extra`` fields as a single JSON line"""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRIBUTES
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def configure_logging() -> logging.Handler:
    """Install a single stream handler on the root and uvicorn loggers"""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if settings.LOG_JSON else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL.upper())
    root.handlers = [handler]

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = [handler]
        uvicorn_logger.propagate = False
    return handler
