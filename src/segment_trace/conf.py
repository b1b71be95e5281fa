"""
segment_trace.conf
~~~~~~~~~~~~~~~~~~
Centralised settings proxy with safe defaults and lazy loading.

Configure via ``settings.SEGMENT_TRACE`` (all keys optional — defaults work
out of the box, except ``DEFAULT_NAME`` which ``SegmentMiddleware`` needs).
The recorder dotted path is resolved and cached on first access.

Full reference::

    SEGMENT_TRACE = {
        "DEFAULT_NAME":   "my-service",    # segment name when no better one resolves
        "MODE":           "automatic",     # or "manual" (request.segment)
        "DYNAMIC_NAMING": None,            # e.g. "*.example.com" — name by Host header
        "TRACE_HEADER":   "X-Trace-Id",    # response header; None disables it
        "RECORDER":       "segment_trace.recorder.recorder",
    }
"""

from django.utils.module_loading import import_string

AUTOMATIC = "automatic"
MANUAL    = "manual"
MODES     = (AUTOMATIC, MANUAL)

DEFAULTS = {
    "DEFAULT_NAME":   None,
    "MODE":           AUTOMATIC,
    "DYNAMIC_NAMING": None,
    "TRACE_HEADER":   "X-Trace-Id",
    "RECORDER":       "segment_trace.recorder.recorder",
}


class TraceSettings:
    """Lazy proxy around SEGMENT_TRACE that falls back to built-in defaults."""

    _cache: dict = {}

    def get(self, key: str, default=None):
        """Return the raw setting for *key*, or the built-in default."""
        from django.conf import settings
        cfg = getattr(settings, "SEGMENT_TRACE", {})
        if key in cfg:
            return cfg[key]
        return DEFAULTS.get(key, default)

    def _resolve(self, key: str):
        if key not in self._cache:
            self._cache[key] = import_string(self.get(key))
        return self._cache[key]

    @property
    def DEFAULT_NAME(self):   return self.get("DEFAULT_NAME")
    @property
    def MODE(self):           return self.get("MODE")
    @property
    def DYNAMIC_NAMING(self): return self.get("DYNAMIC_NAMING")
    @property
    def TRACE_HEADER(self):   return self.get("TRACE_HEADER")
    @property
    def RECORDER(self):       return self._resolve("RECORDER")

    def reload(self):
        """Clear the import cache — useful in tests or settings overrides."""
        self._cache.clear()


trace_settings = TraceSettings()
