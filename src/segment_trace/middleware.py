"""
segment_trace.middleware
~~~~~~~~~~~~~~~~~~~~~~~~
Request tracing middleware — opens a segment when a request arrives and
records server faults on it when a view raises.

Two hooks, installed at opposite ends of the stack:

  - ``open_segment(name)``  first — creates or resumes the request's
    segment, propagates it to the views, records the response status and
    ends the segment when the response comes back.
  - ``close_segment()``     last — records an exception on the segment and
    forwards it unchanged.

Settings-driven setup (reads ``settings.SEGMENT_TRACE``)::

    MIDDLEWARE = [
        "segment_trace.middleware.SegmentMiddleware",
        ...
        "segment_trace.middleware.CloseSegmentMiddleware",
    ]

Explicit setup — any module-level callable works in MIDDLEWARE::

    # myproject/tracing.py
    from segment_trace.middleware import open_segment
    open_checkout_segment = open_segment("checkout", mode="manual")

    MIDDLEWARE = ["myproject.tracing.open_checkout_segment", ...]

In automatic mode read the segment with ``recorder.get_segment()``; in manual
mode it is on ``request.segment``.
"""

import logging
from typing import Callable, Optional

from asgiref.sync import iscoroutinefunction, markcoroutinefunction
from opentelemetry.trace import Status, StatusCode, format_trace_id

from segment_trace.conf import trace_settings
from segment_trace.exceptions import ConfigurationError
from segment_trace.propagation import SegmentPropagator, propagator_for

logger = logging.getLogger("segment_trace.middleware")


class SegmentHandler:
    """
    WSGI + ASGI compatible middleware instance produced by ``open_segment``.
    Wraps exactly one downstream ``get_response`` call per request.
    """

    sync_capable  = True
    async_capable = True

    def __init__(self, get_response, recorder, propagator: SegmentPropagator,
                 trace_header: Optional[str] = "X-Trace-Id",
                 default_name: Optional[str] = None):
        self.get_response = get_response
        self.default_name = default_name
        self.recorder     = recorder
        self.propagator   = propagator
        self.trace_header = trace_header
        self._is_async    = iscoroutinefunction(get_response)
        if self._is_async:
            markcoroutinefunction(self)

    def __call__(self, request):
        if self._is_async:
            return self.__acall__(request)
        return self._sync_call(request)

    def _sync_call(self, request):
        segment = self.recorder.trace_request(request, self.default_name)
        try:
            with self.propagator.scope(request, segment):
                response = self.get_response(request)
        except Exception:
            self._abort(segment)
            raise
        self._finish(segment, response)
        return response

    async def __acall__(self, request):
        segment = self.recorder.trace_request(request, self.default_name)
        try:
            with self.propagator.scope(request, segment):
                response = await self.get_response(request)
        except Exception:
            self._abort(segment)
            raise
        self._finish(segment, response)
        return response

    def _finish(self, segment, response) -> None:
        self.recorder.record_response(segment, response)
        ctx = segment.get_span_context()
        if self.trace_header and ctx.is_valid:
            response[self.trace_header] = format_trace_id(ctx.trace_id)
        segment.end()

    @staticmethod
    def _abort(segment) -> None:
        segment.set_attribute("segment.fault", True)
        segment.set_status(Status(StatusCode.ERROR))
        segment.end()


def _configure(default_name, mode=None, recorder=None):
    if not default_name or not isinstance(default_name, str):
        raise ConfigurationError("Default segment name was not supplied. Please provide a string.")

    recorder = recorder or trace_settings.RECORDER
    recorder.set_default_name(default_name)
    recorder.set_mode(mode or trace_settings.MODE)
    recorder.set_dynamic_naming(trace_settings.DYNAMIC_NAMING)
    return recorder, propagator_for(recorder)


def open_segment(default_name: str, mode: Optional[str] = None, recorder=None) -> Callable:
    """
    Return a middleware factory that traces every request under a segment
    named *default_name* (unless dynamic naming picks the Host header).

    Raises ConfigurationError immediately if *default_name* is not a
    non-empty string or *mode* is unknown.
    """
    recorder, propagator = _configure(default_name, mode, recorder)
    trace_header = trace_settings.TRACE_HEADER

    def middleware(get_response):
        return SegmentHandler(get_response, recorder, propagator, trace_header, default_name)

    middleware.sync_capable  = True
    middleware.async_capable = True
    return middleware


def close_segment(recorder=None) -> Callable:
    """
    Return the error hook ``close(exc, request, forward)``.

    The hook records *exc* on the request's segment (``request.segment``
    if set, else the ambient one) and returns ``forward(exc)``. With no
    resolvable segment it only forwards. The continuation is always called
    with one argument, so a clean pass arrives as ``forward(None)``.
    """
    recorder = recorder or trace_settings.RECORDER

    def close(exc, request, forward: Callable):
        segment = recorder.resolve_segment(getattr(request, "segment", None))
        if segment is not None and exc is not None:
            recorder.add_error(segment, exc)
            logger.debug("Added server fault to segment")
        return forward(exc)

    return close


# ── Settings-driven middleware classes ────────────────────────────────────

class SegmentMiddleware(SegmentHandler):
    """Open hook configured from ``settings.SEGMENT_TRACE``."""

    def __init__(self, get_response):
        default_name = trace_settings.DEFAULT_NAME
        recorder, propagator = _configure(default_name)
        super().__init__(get_response, recorder, propagator,
                         trace_settings.TRACE_HEADER, default_name)


def _continue(exc) -> None:
    # Returning None from process_exception lets Django's own handling run.
    return None


class CloseSegmentMiddleware:
    """
    Close hook for plain Django views. Put it last in MIDDLEWARE so its
    ``process_exception`` runs before any other exception middleware.
    """

    sync_capable  = True
    async_capable = True

    def __init__(self, get_response):
        self.get_response = get_response
        self.close        = close_segment()
        if iscoroutinefunction(get_response):
            markcoroutinefunction(self)

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        return self.close(exception, request, _continue)
