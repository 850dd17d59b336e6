"""Shared pytest fixtures for buffered metrics tests."""

from typing import List

import pytest
import respx

from buffered_metrics.config.settings import API_KEY_ENV_VARS, SITE_ENV_VARS
from buffered_metrics.modules.aggregation.series import SerializedSeries
from buffered_metrics.modules.reporting.reporters import Reporter
from buffered_metrics.shared import reset_shared_logger

API_BASE_URL = "https://api.datadoghq.com"


class RecordingReporter(Reporter):
    """Reporter that keeps every batch it is asked to send."""

    def __init__(self):
        self.batches: List[List[SerializedSeries]] = []

    async def report(self, series):
        self.batches.append(list(series))

    @property
    def series(self) -> List[SerializedSeries]:
        return [s for batch in self.batches for s in batch]


class FailingReporter(Reporter):
    """Reporter that always raises the given error."""

    def __init__(self, error: Exception):
        self.error = error
        self.calls = 0

    async def report(self, series):
        self.calls += 1
        raise self.error


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep credentials from the developer's environment out of the tests."""
    for name in API_KEY_ENV_VARS + SITE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_shared():
    """Reset the shared logger before and after each test."""
    reset_shared_logger()
    yield
    reset_shared_logger()


@pytest.fixture
def recording_reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def api_router():
    """respx router intercepting requests to the default API site."""
    with respx.mock(base_url=API_BASE_URL, assert_all_called=False) as router:
        yield router
