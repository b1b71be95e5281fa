"""
URL configuration for the end-to-end tests.

conftest.py sets ROOT_URLCONF = "tests.urls". Plain Django views exercise
CloseSegmentMiddleware; the TracedAPI routes exercise the Ninja close hook.
"""
from django.http import HttpResponse, JsonResponse
from django.urls import path
from opentelemetry.trace import format_trace_id

from segment_trace.api import TracedAPI
from tests.tracing import recorder


def ok(request):
    return HttpResponse("ok")


def boom(request):
    raise RuntimeError("boom")


def current_segment(request):
    segment = recorder.resolve_segment(getattr(request, "segment", None))
    trace_id = format_trace_id(segment.get_span_context().trace_id) if segment else None
    return JsonResponse({"trace_id": trace_id})


api = TracedAPI(urls_namespace="traced", recorder=recorder)


@api.get("/ok")
def ninja_ok(request):
    return {"ok": True}


@api.get("/boom")
def ninja_boom(request):
    raise RuntimeError("boom")


urlpatterns = [
    path("ok/", ok),
    path("boom/", boom),
    path("segment/", current_segment),
    path("api/", api.urls),
]
