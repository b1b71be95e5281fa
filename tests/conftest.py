import pytest


def pytest_configure(config):
    from django.conf import settings
    if not settings.configured:
        settings.configure(
            DEBUG=True,
            SECRET_KEY="segment-trace-tests",
            ALLOWED_HOSTS=["*"],
            DATABASES={"default": {"ENGINE": "django.db.backends.sqlite3", "NAME": ":memory:"}},
            INSTALLED_APPS=["segment_trace"],
            MIDDLEWARE=[],
            ROOT_URLCONF="tests.urls",
            SEGMENT_TRACE={
                "DEFAULT_NAME": "test-service",
                "RECORDER":     "tests.tracing.recorder",
            },
            USE_TZ=True,
        )
        import django
        django.setup()


@pytest.fixture(autouse=True)
def _reset_tracing():
    from segment_trace.conf import trace_settings
    from tests.tracing import exporter, recorder

    exporter.clear()
    trace_settings.reload()
    recorder.set_default_name("test-service")
    recorder.set_mode("automatic")
    recorder.set_dynamic_naming(None)
    yield


@pytest.fixture
def recorder():
    from tests.tracing import recorder
    return recorder


@pytest.fixture
def exporter():
    from tests.tracing import exporter
    return exporter


@pytest.fixture
def rf():
    from django.test import RequestFactory
    return RequestFactory()
