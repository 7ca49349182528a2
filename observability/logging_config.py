"""Structured logging for narrative generation.

Records are emitted as one JSON object per line. Callers attach context with
``extra={...}``; the adapters below move it under ``extra_fields`` so keys
never collide with ``LogRecord`` attributes.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping, TextIO

VERBOSITY_THRESHOLDS: dict[str, int] = {
    "off": logging.ERROR,
    "simple": logging.INFO,
    "verbose": logging.DEBUG,
}

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message, extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        # Field values are arbitrary form input; anything JSON can't encode is stringified.
        return json.dumps(payload, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """Adapter that nests per-call and default extras under ``extra_fields``."""

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> tuple[str, MutableMapping[str, Any]]:
        fields = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        kwargs["extra"] = {"extra_fields": fields}
        return msg, kwargs


class NarrativeLogger(StructuredLogger):
    """Structured logger with its own verbosity threshold.

    Verbosity belongs to the adapter instance, so two generations running in
    the same process can log at different levels. Errors always pass.
    """

    def __init__(self, logger: logging.Logger, verbosity: str = "off", extra: dict[str, Any] | None = None):
        super().__init__(logger, extra or {})
        if verbosity not in VERBOSITY_THRESHOLDS:
            raise ValueError(f"Unknown verbosity: {verbosity}")
        self.verbosity = verbosity
        self.threshold = VERBOSITY_THRESHOLDS[verbosity]

    def isEnabledFor(self, level: int) -> bool:  # noqa: N802 - logging API name
        if level < logging.ERROR and level < self.threshold:
            return False
        return self.logger.isEnabledFor(level)


_handler: logging.Handler | None = None


def configure_logging(
    level: int = logging.INFO,
    structured: bool = True,
    stream: TextIO | None = None,
) -> logging.Handler:
    """Install the root handler once; later calls return the existing one."""
    global _handler
    if _handler is not None:
        return _handler

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter() if structured else logging.Formatter(PLAIN_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    _handler = handler
    return handler


def get_logger(name: str, **extra: Any) -> StructuredLogger:
    """Get a structured logger with optional default extra fields."""
    configure_logging()
    return StructuredLogger(logging.getLogger(name), extra)


def get_narrative_logger(
    verbosity: str = "off",
    name: str = "proc_narrative",
    structured: bool = True,
    **extra: Any,
) -> NarrativeLogger:
    """Get a logger for one generate/validate call at the given verbosity."""
    configure_logging(structured=structured)
    base_logger = logging.getLogger(name)
    # The adapter does the filtering; the named logger lets everything through.
    base_logger.setLevel(logging.DEBUG)
    return NarrativeLogger(base_logger, verbosity, extra)
