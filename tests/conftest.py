"""Shared test fixtures for Forecast Temperature Accuracy tests.

Pure logic modules are tested directly. The package __init__ imports Home
Assistant, which is installed as a project dependency.
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

_COMPONENTS_DIR = Path(__file__).parent.parent / "custom_components"
sys.path.insert(0, str(_COMPONENTS_DIR))

from forecast_temperature_accuracy.accuracy_analyzer import AccuracyAnalyzer
from forecast_temperature_accuracy.exceptions import PersistenceError
from forecast_temperature_accuracy.history import HistoryStore

NOW = datetime(2026, 1, 25, 12, 0, 0, tzinfo=timezone.utc)


class MemoryBackend:
    """In-memory key-value backend; set `fail` to simulate storage errors."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.fail = False
        self.saves = 0

    async def async_load(self, key: str) -> Any | None:
        if self.fail:
            raise PersistenceError("disk on fire")
        return self.data.get(key)

    async def async_save(self, key: str, data: dict[str, Any]) -> None:
        if self.fail:
            raise PersistenceError("disk on fire")
        self.saves += 1
        self.data[key] = data

    async def async_remove(self, key: str) -> None:
        if self.fail:
            raise PersistenceError("disk on fire")
        self.data.pop(key, None)


class FakeResponse:
    """Minimal stand-in for an aiohttp response context manager."""

    def __init__(self, status: int = 200, payload: Any = None) -> None:
        self.status = status
        self._payload = payload

    async def json(self, content_type: str | None = None) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


class FakeSession:
    """Records GET calls and answers with a fixed response or raises."""

    def __init__(self, response: FakeResponse | Exception) -> None:
        self.response = response
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, params: dict[str, Any] | None = None, headers: Any = None, timeout: Any = None):
        self.calls.append({"url": url, "params": params, "headers": headers})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


@pytest.fixture
def now() -> datetime:
    """Return a fixed reference time."""
    return NOW


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def history_store(backend: MemoryBackend) -> HistoryStore:
    """Return a HistoryStore over an in-memory backend."""
    return HistoryStore(backend)


@pytest.fixture
def analyzer() -> AccuracyAnalyzer:
    return AccuracyAnalyzer()


@pytest.fixture
def make_session():
    """Return a factory for fake aiohttp sessions.

    make_session(payload) answers 200 with payload, make_session(status=404)
    answers 404, make_session(error=exc) raises exc from get().
    """

    def _make(payload: Any = None, status: int = 200, error: Exception | None = None) -> FakeSession:
        if error is not None:
            return FakeSession(error)
        return FakeSession(FakeResponse(status, payload))

    return _make
