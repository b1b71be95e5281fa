"""
segment_trace.logging_structured
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Structured logging that correlates log records with the ambient segment.

``SegmentLogFilter`` stamps every record with:
    - trace_id    hex trace id of the current request's segment
    - span_id     hex span id of the current span

Records emitted outside a traced request (or in manual mode, where nothing
is ambient) carry ``None`` for both.

Activation
----------
Add to your Django LOGGING config in settings.py::

    LOGGING = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "segment": {"()": "segment_trace.logging_structured.SegmentLogFilter"},
        },
        "formatters": {
            "json":    {"()": "segment_trace.logging_structured.StructuredJsonFormatter"},
            "verbose": {"()": "segment_trace.logging_structured.StructuredVerboseFormatter"},
        },
        "handlers": {
            "console": {
                "class":     "logging.StreamHandler",
                "filters":   ["segment"],
                "formatter": "json",     # swap to "verbose" for development
            },
        },
        "root": {"handlers": ["console"], "level": "INFO"},
        "loggers": {
            "segment_trace": {"level": "DEBUG", "propagate": True},
        },
    }
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from opentelemetry.trace import format_span_id, format_trace_id


class SegmentLogFilter(logging.Filter):
    """Attach the ambient segment's ids to every record passing through."""

    def __init__(self, name: str = "", recorder=None):
        super().__init__(name)
        self._recorder = recorder

    @property
    def recorder(self):
        if self._recorder is None:
            from segment_trace.conf import trace_settings
            self._recorder = trace_settings.RECORDER
        return self._recorder

    def filter(self, record: logging.LogRecord) -> bool:
        segment = self.recorder.get_segment()
        if segment is None:
            record.trace_id = None
            record.span_id  = None
        else:
            ctx = segment.get_span_context()
            record.trace_id = format_trace_id(ctx.trace_id)
            record.span_id  = format_span_id(ctx.span_id)
        return True


# ── JSON formatter ────────────────────────────────────────────────────────

class StructuredJsonFormatter(logging.Formatter):
    """
    Emits log records as single-line JSON objects.

    Example output::

        {"timestamp": "2026-02-23T14:30:00.123Z", "level": "DEBUG",
         "logger": "segment_trace.middleware",
         "message": "Added server fault to segment",
         "trace_id": "4bf92f3577b34da6a3ce929d0e0e4736",
         "span_id": "00f067aa0ba902b7"}
    """

    # Fields pulled from LogRecord that should NOT appear verbatim in the JSON
    _SKIP = frozenset({
        "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "exc_info", "exc_text", "stack_info", "lineno",
        "funcName", "created", "msecs", "relativeCreated", "thread",
        "threadName", "processName", "process", "taskName",
        "name", "message",
    })

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        doc: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
                                 .strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level":     record.levelname,
            "logger":    record.name,
            "message":   record.message,
        }

        # trace_id / span_id from SegmentLogFilter, plus caller extras
        for key, val in record.__dict__.items():
            if key not in self._SKIP and not key.startswith("_"):
                doc[key] = val

        if record.exc_info:
            doc["exception"] = self.formatException(record.exc_info)

        return json.dumps(doc, default=str, ensure_ascii=False)


class StructuredVerboseFormatter(logging.Formatter):
    """
    Human-readable formatter with a short trace id prefix.

    Example output::
        2026-02-23 14:30:00 DEBUG   [4bf92f35] segment_trace.middleware — Added server fault to segment
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        trace_id = getattr(record, "trace_id", None)
        trace = trace_id[:8] if trace_id else "-"
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        line = f"{ts} {record.levelname:<7} [{trace}] {record.name} — {record.message}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line
