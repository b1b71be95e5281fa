"""
segment_trace.recorder
~~~~~~~~~~~~~~~~~~~~~~
A small facade over the OpenTelemetry API that creates, resumes, resolves
and annotates request segments.

A *segment* is the SERVER span covering one HTTP request. The recorder does
not sample or export anything; that belongs to whatever TracerProvider the
application installs. Without one, every segment is a non-recording span and
the middleware becomes a no-op.

Usage from inside a view::

    from segment_trace.recorder import recorder

    @router.get("/orders/{order_id}")
    def get_order(request, order_id: int):
        segment = recorder.resolve_segment(getattr(request, "segment", None))
        if segment is not None:
            segment.set_attribute("order.id", order_id)
        ...

Worker threads do not inherit the ambient segment. Wrap the callable::

    executor.submit(recorder.bind_context(send_receipt), order_id)
"""

import logging
import re
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Iterator, Optional

from opentelemetry import context as otel_context
from opentelemetry import propagate, trace
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

from segment_trace.conf import AUTOMATIC, MODES

logger = logging.getLogger("segment_trace.recorder")

TRACER_NAME = "segment_trace"


class Recorder:
    """
    Creates and looks up request segments.

    ``tracer`` defaults to the global OpenTelemetry tracer, resolved lazily
    so a TracerProvider installed after import is still picked up.
    """

    def __init__(self, tracer: Optional[trace.Tracer] = None):
        self._tracer        = tracer
        self.default_name: Optional[str] = None
        self._host_re       = None
        self._mode          = AUTOMATIC

    @property
    def tracer(self) -> trace.Tracer:
        if self._tracer is None:
            self._tracer = trace.get_tracer(TRACER_NAME)
        return self._tracer

    # ── Configuration ──────────────────────────────────────────────────────

    def set_default_name(self, name: str) -> None:
        self.default_name = name

    def set_dynamic_naming(self, pattern: Optional[str]) -> None:
        """
        Name segments after the request's Host header when it matches
        *pattern* (``*`` matches any run of characters, ``?`` exactly one).
        Pass ``None`` to always use the default name.
        """
        self._host_re = _compile_wildcard(pattern) if pattern else None

    def set_mode(self, mode: str) -> None:
        from segment_trace.exceptions import ConfigurationError
        if mode not in MODES:
            raise ConfigurationError(
                f"Unknown segment propagation mode {mode!r}. Expected one of {MODES}."
            )
        self._mode = mode

    def is_automatic_mode(self) -> bool:
        return self._mode == AUTOMATIC

    # ── Segment creation ──────────────────────────────────────────────────

    def segment_name(self, request, default_name: Optional[str] = None) -> str:
        host = request.META.get("HTTP_HOST", "")
        if self._host_re is not None and host and self._host_re.match(host):
            return host
        return default_name or self.default_name

    def trace_request(self, request, default_name: Optional[str] = None) -> Span:
        """
        Start a SERVER segment for *request*, resuming the caller's trace
        when the request carries a W3C ``traceparent`` header.

        *default_name* is the calling middleware's own name; the recorder's
        ``default_name`` is only the fallback.
        """
        name = self.segment_name(request, default_name)
        if not name:
            from segment_trace.exceptions import ConfigurationError
            raise ConfigurationError("No default segment name has been set on the recorder.")

        parent = propagate.extract(request.headers)
        segment = self.tracer.start_span(
            name,
            context=parent,
            kind=SpanKind.SERVER,
            attributes=_request_attributes(request),
        )
        logger.debug("Started segment %r for %s %s", name, request.method, request.path)
        return segment

    def record_response(self, segment: Span, response) -> None:
        """Classify the response status on *segment* (throttle / error / fault)."""
        status = getattr(response, "status_code", None)
        if status is None:
            return
        segment.set_attribute("http.status_code", status)
        if status == 429:
            segment.set_attribute("segment.throttle", True)
        if 400 <= status < 500:
            segment.set_attribute("segment.error", True)
        elif status >= 500:
            segment.set_attribute("segment.fault", True)
            segment.set_status(Status(StatusCode.ERROR, f"HTTP {status}"))

    def add_error(self, segment: Span, exc: BaseException) -> None:
        segment.record_exception(exc)
        segment.set_attribute("segment.fault", True)
        segment.set_status(Status(StatusCode.ERROR, f"{type(exc).__name__}: {exc}"))

    # ── Lookup ────────────────────────────────────────────────────────────

    def get_segment(self) -> Optional[Span]:
        """Return the ambient segment, or None outside a traced request."""
        span = trace.get_current_span()
        if not span.get_span_context().is_valid:
            return None
        return span

    def resolve_segment(self, explicit: Optional[Span] = None) -> Optional[Span]:
        """Prefer an explicitly passed segment (manual mode) over the ambient one."""
        if explicit is not None:
            return explicit
        return self.get_segment()

    # ── Execution context ─────────────────────────────────────────────────

    @contextmanager
    def use_segment(self, segment: Span) -> Iterator[Span]:
        """Make *segment* the ambient segment for the duration of the block."""
        token = otel_context.attach(trace.set_span_in_context(segment))
        try:
            yield segment
        finally:
            otel_context.detach(token)

    def bind_context(self, func: Callable) -> Callable:
        """
        Capture the current context and return a wrapper that runs *func*
        inside it, for thread pools and other callbacks that run outside
        the request's own context.
        """
        captured = otel_context.get_current()

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            token = otel_context.attach(captured)
            try:
                return func(*args, **kwargs)
            finally:
                otel_context.detach(token)

        return wrapper


# ── Helpers ───────────────────────────────────────────────────────────────

def _compile_wildcard(pattern: str):
    regex = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{regex}$", re.IGNORECASE)


def _client_ip(request) -> tuple[str, bool]:
    """Return the client IP and whether it came from X-Forwarded-For."""
    xff = request.META.get("HTTP_X_FORWARDED_FOR")
    if xff:
        return xff.split(",")[0].strip(), True
    return request.META.get("REMOTE_ADDR", ""), False


def _request_attributes(request) -> dict[str, Any]:
    ip, forwarded = _client_ip(request)
    host = request.META.get("HTTP_HOST") or request.META.get("SERVER_NAME", "")
    return {
        "http.method":          request.method,
        "http.url":             f"{request.scheme}://{host}{request.get_full_path()}",
        "http.user_agent":      request.META.get("HTTP_USER_AGENT", ""),
        "http.client_ip":       ip,
        "http.x_forwarded_for": forwarded,
    }


recorder = Recorder()
