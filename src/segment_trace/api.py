"""
segment_trace.api
~~~~~~~~~~~~~~~~~
TracedAPI — a NinjaAPI subclass whose exception dispatch records faults on
the request's segment before Ninja's handlers build the error response.

Drop-in replacement for NinjaAPI::

    # Before:
    from ninja import NinjaAPI
    api = NinjaAPI()

    # After:
    from segment_trace import TracedAPI
    api = TracedAPI()

For an existing NinjaAPI instance use
``segment_trace.exceptions.register_exception_handlers(api)`` instead.
Keep ``SegmentMiddleware`` (or an ``open_segment`` factory) in MIDDLEWARE —
this class only handles the close side.
"""

import logging

from ninja import NinjaAPI

from segment_trace.middleware import close_segment

logger = logging.getLogger("segment_trace.api")


class TracedAPI(NinjaAPI):
    """NinjaAPI subclass that routes every view exception through the close hook."""

    def __init__(self, *args, recorder=None, **kwargs):
        super().__init__(*args, **kwargs)
        self._close_segment = close_segment(recorder)
        logger.debug("TracedAPI initialised: title=%r", getattr(self, "title", None))

    def on_exception(self, request, exc):
        dispatch = super().on_exception
        return self._close_segment(exc, request, lambda error: dispatch(request, error))
