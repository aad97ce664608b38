"""Root logger setup for Shelf processes.

One stdout handler carries every record. Fields bound with ``log_context`` or
``bind_context`` ride along as top-level JSON keys, or as trailing
``key=value`` pairs in plain mode.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

from . import fields
from .context import bind_context, get_context

# One INFO line per outbound request; chunk fan-out would drown everything else.
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


class ContextFilter(logging.Filter):
    """Copy the current log context onto each record as ``record.context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = get_context()
        return True


class JsonFormatter(logging.Formatter):
    """One compact JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = dict(getattr(record, "context", None) or {})
        payload.update(
            {
                fields.TIMESTAMP: datetime.fromtimestamp(record.created, UTC).isoformat(),
                fields.LEVEL: record.levelname,
                fields.LOGGER: record.name,
                fields.MESSAGE: record.getMessage(),
            }
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, separators=(",", ":"))


class PlainFormatter(logging.Formatter):
    """Console format for local runs."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(name)s %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "context", None) or {}
        if context:
            line += " " + " ".join(f"{key}={context[key]}" for key in sorted(context))
        return line


def configure_logging(
    *,
    level: str = "INFO",
    json_output: bool = True,
    service: str | None = None,
    environment: str | None = None,
    quiet_transport: bool = True,
) -> None:
    """Install the stdout handler on the root logger, replacing any others.

    ``service`` and ``environment`` are bound into the log context so every
    later record carries them.
    """
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if json_output else PlainFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())

    if quiet_transport:
        for name in _TRANSPORT_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    bind_context(**{fields.SERVICE: service, fields.ENVIRONMENT: environment})


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name)
