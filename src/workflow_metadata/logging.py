"""Structured logging configuration.

Every record is one JSON object per line. Store operations attach their keys
(``workflow``, ``version``, ``handler``, ``event``, ...) through ``extra=``;
those end up under ``context``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

SERVICE_NAME = "workflow-metadata"

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_STANDARD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"asctime", "message", "taskName"}


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON."""

    def __init__(self, service: str = SERVICE_NAME) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "service": self.service,
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        context = _context(record)
        if context:
            payload["context"] = context

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        # Context values are caller supplied; non-JSON types fall back to str().
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(
    level: str, *, stream: TextIO | None = None, service: str = SERVICE_NAME
) -> logging.Handler:
    """Send all logging to ``stream`` (stderr by default) as JSON lines.

    Calling this again replaces the previous handler.

    Returns:
        The installed handler.
    """

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream=stream or sys.stderr)
    handler.setFormatter(JsonFormatter(service=service))
    root.addHandler(handler)
    root.setLevel(level.upper())
    return handler
