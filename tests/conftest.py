# tests/conftest.py
"""Shared test fixtures.

Fixtures:
- mock_clock: MockClock pinned to a fixed epoch time
- fake_timers: TimerFactory whose timers only fire when a test says so
- ingest: respx router mocking the ingestion endpoint (202 by default)
- registry: LoggerRegistry wired to the fake timers, mock clock and mocked endpoint

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

from __future__ import annotations

import os
from collections.abc import Iterator

import httpx
import pytest
import respx
from hypothesis import Phase, Verbosity, settings

from logdna_shipper.clock import MockClock
from logdna_shipper.registry import LoggerRegistry
from tests.helpers.ingest import FIXED_NOW_MS, INGEST_PATH, INGEST_URL
from tests.helpers.timers import FakeTimerFactory


@pytest.fixture
def mock_clock() -> MockClock:
    return MockClock(start_ms=FIXED_NOW_MS)


@pytest.fixture
def fake_timers() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture
def ingest() -> Iterator[respx.Route]:
    """Mock every ingestion endpoint (any host); tests may replace the response."""
    with respx.mock(assert_all_called=False) as router:
        route = router.route(method="POST", path=INGEST_PATH)
        route.mock(return_value=httpx.Response(202, json={"status": "ok", "batchID": "b-1"}))
        yield route


@pytest.fixture
def registry(fake_timers: FakeTimerFactory, mock_clock: MockClock, ingest: respx.Route) -> Iterator[LoggerRegistry]:
    reg = LoggerRegistry(timer_factory=fake_timers, clock=mock_clock)
    yield reg
    reg.close(timeout=5)


@pytest.fixture
def logger_options() -> dict[str, object]:
    """Minimal valid options pointing at the mocked endpoint."""
    return {"app": "svc", "hostname": "web-1", "logdna_url": INGEST_URL}


# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
