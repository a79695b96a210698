from __future__ import annotations

import pytest

import failfast.circuit_breaker.breaker as breaker_mod
import failfast.circuit_breaker.trip as trip_mod
from tests.failfast.support.breaker_fakes import (
    FakeClock,
    FakeLogger,
    RecordingCollector,
)


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def recording_collector() -> RecordingCollector:
    """Provide a fresh recording collector per test."""
    return RecordingCollector()


@pytest.fixture
def fake_clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Freeze breaker and trip-condition time behind a manual clock."""
    clock = FakeClock()
    monkeypatch.setattr(breaker_mod, "_monotonic", clock.monotonic)
    monkeypatch.setattr(trip_mod, "_monotonic", clock.monotonic)
    return clock
