"""
segment_trace.exceptions
~~~~~~~~~~~~~~~~~~~~~~~~
Configuration errors, and exception-handler wiring for Django Ninja.

Django Ninja catches view exceptions itself and dispatches them through
``api.on_exception``, so Django's ``process_exception`` hook never sees them.
Call ``register_exception_handlers(api)`` once after creating your NinjaAPI
instance to record those faults on the request's segment::

    api = NinjaAPI()
    register_exception_handlers(api)

Ninja's own handlers still build the response — the fault is recorded and
then forwarded unchanged.
"""

import logging

from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger("segment_trace.exceptions")


class ConfigurationError(ImproperlyConfigured):
    """Raised when a tracing hook is configured with invalid arguments."""


def register_exception_handlers(api, recorder=None) -> None:
    """Route *api*'s exception dispatch through the segment close hook."""
    from segment_trace.middleware import close_segment

    close = close_segment(recorder)
    dispatch = api.on_exception

    def on_exception(request, exc):
        return close(exc, request, lambda error: dispatch(request, error))

    api.on_exception = on_exception
    logger.debug("Segment close hook registered on %r", api)
