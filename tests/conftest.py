import os

import pytest

from logship.config.datadog import DatadogSettings

from fakes import DiagnosticsCollector, RecordingSink


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer LOGSHIP_* variables out of the tests."""
    for key in list(os.environ):
        if key.startswith("LOGSHIP_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def datadog_settings() -> DatadogSettings:
    return DatadogSettings(
        api_key="test-key",
        service="auth",
        env="prod",
        hostname="test-host",
        drain_timeout=5.0,
        _env_file=None,
    )


@pytest.fixture
def diagnostics() -> DiagnosticsCollector:
    return DiagnosticsCollector()


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()
