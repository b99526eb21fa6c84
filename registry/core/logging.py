"""JSON log lines for the registry.

Each line carries the request context (request id, principal, owner id) when
there is one. Fields passed as ``extra={"extra_data": {...}}`` are lifted to
the top level, so an import summary reads as
``{"message": "owner_import.committed", "owner_id": 3, "computer_count": 2, ...}``.
A field that would overwrite one of the fixed keys is kept under ``"extra"``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from .context import log_context

FIXED_KEYS = frozenset({"timestamp", "level", "logger", "message", "service", "exception"})
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _timestamp(record: logging.LogRecord) -> str:
    moment = datetime.fromtimestamp(record.created, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonLogFormatter(logging.Formatter):
    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service:
            payload["service"] = self.service
        payload.update(log_context())

        extra = getattr(record, "extra_data", None)
        if isinstance(extra, Mapping):
            shadowed = {key: value for key, value in extra.items() if key in FIXED_KEYS}
            payload.update((key, value) for key, value in extra.items() if key not in FIXED_KEYS)
            if shadowed:
                payload["extra"] = shadowed

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def configure_logging(level: str = "INFO", service: str | None = None) -> None:
    """Route every record, uvicorn's included, through one JSON handler on stderr."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter(service=service))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())
    for name in UVICORN_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.propagate = True
