"""
segment_trace — request tracing segments for Django and Django Ninja.

Opens an OpenTelemetry SERVER span (a *segment*) for every request and
records server faults on it.

    pip install django-segment-trace

Basic usage::

    # settings.py
    SEGMENT_TRACE = {"DEFAULT_NAME": "my-service"}

    MIDDLEWARE = [
        "segment_trace.middleware.SegmentMiddleware",
        ...
        "segment_trace.middleware.CloseSegmentMiddleware",
    ]

    # api.py — Django Ninja handles view errors itself
    from segment_trace import TracedAPI
    api = TracedAPI()
"""

from segment_trace.conf import AUTOMATIC, MANUAL
from segment_trace.exceptions import ConfigurationError, register_exception_handlers
from segment_trace.recorder import Recorder, recorder
from segment_trace.propagation import (
    SegmentPropagator, AmbientPropagator, ExplicitFieldPropagator,
)
from segment_trace.middleware import (
    open_segment, close_segment,
    SegmentHandler, SegmentMiddleware, CloseSegmentMiddleware,
)
from segment_trace.api import TracedAPI
from segment_trace.logging_structured import (
    SegmentLogFilter, StructuredJsonFormatter, StructuredVerboseFormatter,
)

__version__ = "0.1.0"

__all__ = [
    # Hooks
    "open_segment", "close_segment",
    "SegmentHandler", "SegmentMiddleware", "CloseSegmentMiddleware",

    # Recorder
    "Recorder", "recorder",

    # Propagation
    "AUTOMATIC", "MANUAL",
    "SegmentPropagator", "AmbientPropagator", "ExplicitFieldPropagator",

    # Errors
    "ConfigurationError", "register_exception_handlers",

    # Django Ninja
    "TracedAPI",

    # Logging
    "SegmentLogFilter", "StructuredJsonFormatter", "StructuredVerboseFormatter",
]
