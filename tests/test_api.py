"""
Django Ninja wiring — TracedAPI and register_exception_handlers.
"""

from ninja import NinjaAPI
from ninja.errors import HttpError

from tests.tracing import exception_events


class TestRegisterExceptionHandlers:
    def test_records_and_forwards_to_ninja(self, rf, recorder, exporter):
        from segment_trace.exceptions import register_exception_handlers
        api = NinjaAPI(urls_namespace="plain")
        register_exception_handlers(api, recorder=recorder)

        segment = recorder.tracer.start_span("ninja")
        with recorder.use_segment(segment):
            response = api.on_exception(rf.get("/"), HttpError(404, "nope"))
        segment.end()

        assert response.status_code == 404
        events = exception_events(exporter.get_finished_spans()[0])
        assert len(events) == 1
        assert events[0].attributes["exception.type"].endswith("HttpError")

    def test_without_segment_only_forwards(self, rf, recorder, exporter):
        from segment_trace.exceptions import register_exception_handlers
        api = NinjaAPI(urls_namespace="plain-orphan")
        register_exception_handlers(api, recorder=recorder)

        response = api.on_exception(rf.get("/"), HttpError(409, "conflict"))

        assert response.status_code == 409
        assert exporter.get_finished_spans() == ()


class TestTracedAPI:
    def test_manual_mode_uses_request_field(self, rf, recorder, exporter):
        from segment_trace.api import TracedAPI
        api = TracedAPI(urls_namespace="traced-manual", recorder=recorder)

        request = rf.get("/")
        request.segment = recorder.tracer.start_span("manual")
        response = api.on_exception(request, HttpError(503, "down"))
        request.segment.end()

        assert response.status_code == 503
        assert len(exception_events(exporter.get_finished_spans()[0])) == 1
