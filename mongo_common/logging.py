"""JSON logging for processes that talk to MongoDB through mongo_common."""

from __future__ import annotations

import logging
import sys
from typing import IO, Any, Optional

from opentelemetry import trace
from pythonjsonlogger import jsonlogger

LOG_FIELDS = ("asctime", "levelname", "name", "message")
RENAMED_FIELDS = {"asctime": "timestamp", "levelname": "level", "name": "logger"}

# Driver loggers that flood DEBUG output with heartbeat and pool events
DRIVER_LOGGERS = (
    "pymongo",
    "pymongo.command",
    "pymongo.connection",
    "pymongo.serverSelection",
)


class OTelJSONFormatter(jsonlogger.JsonFormatter):
    """Adds the active span's trace_id/span_id to each JSON record."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        ctx = trace.get_current_span().get_span_context()
        if ctx.is_valid:
            log_record["trace_id"] = trace.format_trace_id(ctx.trace_id)
            log_record["span_id"] = trace.format_span_id(ctx.span_id)

        log_record["level"] = str(log_record.get("level", record.levelname)).upper()


class _JSONHandler(logging.StreamHandler):
    """Marker type so setup_logging only replaces handlers it installed."""


def setup_logging(
    level: str = "INFO",
    stream: Optional[IO[str]] = None,
    service: Optional[str] = None,
    driver_level: str = "WARNING",
) -> logging.Handler:
    """
    Send root logger output as JSON lines to ``stream`` (stdout by default).

    Calling it again swaps the previously installed JSON handler and leaves
    handlers added by the application alone. ``service`` is stamped on every
    record. The PyMongo loggers are held at ``driver_level``.
    """
    formatter = OTelJSONFormatter(
        " ".join(f"%({field})s" for field in LOG_FIELDS),
        rename_fields=RENAMED_FIELDS,
        static_fields={"service": service} if service else {},
    )
    handler = _JSONHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    for existing in root_logger.handlers[:]:
        if isinstance(existing, _JSONHandler):
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    for name in DRIVER_LOGGERS:
        logging.getLogger(name).setLevel(driver_level.upper())

    return handler


__all__ = ["DRIVER_LOGGERS", "OTelJSONFormatter", "setup_logging"]
