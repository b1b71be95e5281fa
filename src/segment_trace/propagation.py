"""
segment_trace.propagation
~~~~~~~~~~~~~~~~~~~~~~~~~
How a request's segment reaches downstream code.

    automatic   AmbientPropagator        — the segment becomes the current
                                           span for the request's context;
                                           read it with recorder.get_segment()
    manual      ExplicitFieldPropagator  — the segment is set as
                                           ``request.segment``; nothing
                                           ambient is touched

The strategy is picked once, when the middleware is configured.
"""

from contextlib import contextmanager
from typing import Iterator

from opentelemetry.trace import Span

from segment_trace.conf import AUTOMATIC, MANUAL


class SegmentPropagator:
    """Base strategy: ``scope()`` wraps the downstream call for one request."""

    mode: str = ""

    def __init__(self, recorder):
        self.recorder = recorder

    def scope(self, request, segment: Span):
        raise NotImplementedError


class AmbientPropagator(SegmentPropagator):
    mode = AUTOMATIC

    @contextmanager
    def scope(self, request, segment: Span) -> Iterator[Span]:
        with self.recorder.use_segment(segment):
            yield segment


class ExplicitFieldPropagator(SegmentPropagator):
    mode = MANUAL

    @contextmanager
    def scope(self, request, segment: Span) -> Iterator[Span]:
        request.segment = segment
        yield segment


_PROPAGATORS = {cls.mode: cls for cls in (AmbientPropagator, ExplicitFieldPropagator)}


def propagator_for(recorder) -> SegmentPropagator:
    """Build the propagator matching *recorder*'s current mode."""
    mode = AUTOMATIC if recorder.is_automatic_mode() else MANUAL
    return _PROPAGATORS[mode](recorder)
