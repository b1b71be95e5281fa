"""
segment_trace.apps
~~~~~~~~~~~~~~~~~~
Django AppConfig that validates ``settings.SEGMENT_TRACE`` on startup so a
bad block fails the deploy instead of the first request.
"""

import logging

from django.apps import AppConfig
from django.core.exceptions import ImproperlyConfigured

from segment_trace.conf import MODES

logger = logging.getLogger("segment_trace.startup")


class SegmentTraceConfig(AppConfig):
    name = "segment_trace"
    verbose_name = "Django Segment Trace"

    def ready(self):
        from django.conf import settings

        user_config = getattr(settings, "SEGMENT_TRACE", None)
        if user_config is not None:
            self._validate(user_config)

        logger.info("django-segment-trace ready")

    # ── Validation ────────────────────────────────────────────────────────

    @staticmethod
    def _validate(cfg: dict) -> None:
        name = cfg.get("DEFAULT_NAME")
        if "DEFAULT_NAME" in cfg and (not name or not isinstance(name, str)):
            raise ImproperlyConfigured(
                "[segment_trace] SEGMENT_TRACE['DEFAULT_NAME'] must be a non-empty string."
            )

        mode = cfg.get("MODE", MODES[0])
        if mode not in MODES:
            raise ImproperlyConfigured(
                f"[segment_trace] SEGMENT_TRACE['MODE'] must be one of {MODES}, got {mode!r}."
            )

        for key in ("DYNAMIC_NAMING", "TRACE_HEADER"):
            value = cfg.get(key)
            if value is not None and not isinstance(value, str):
                raise ImproperlyConfigured(
                    f"[segment_trace] SEGMENT_TRACE[{key!r}] must be a string or None."
                )
