"""Logging setup — one stderr handler, plain or JSON lines."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from ..correlation import get_correlation_id

ROOT_LOGGER = "medbox"
PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(correlation_id)s] %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Attach the current correlation id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True


class _MedboxHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Marker type so reconfiguration replaces only our own handler."""


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
        }
        if payload["correlation_id"] == "-":
            payload["correlation_id"] = None
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str | int = "INFO", *, json_output: bool = False) -> None:
    """Install a single stderr handler on the ``medbox`` logger tree.

    Calling it again replaces the previously installed handler.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        if isinstance(handler, _MedboxHandler):
            logger.removeHandler(handler)

    handler = _MedboxHandler(sys.stderr)
    handler.addFilter(CorrelationIdFilter())
    formatter = JsonFormatter() if json_output else logging.Formatter(PLAIN_FORMAT)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(level)
