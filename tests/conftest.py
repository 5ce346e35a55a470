"""Shared fixtures for the historian tests."""

from __future__ import annotations

import pytest

from sqlite_historian.backend import HistoryBackend
from sqlite_historian.config import BackendConfig
from sqlite_historian.storage.memory import MemorySampleStore
from sqlite_historian.storage.sqlite import SqliteSampleStore

SERIES = 1

# Samples used throughout: value at Unix second
SCENARIO = {100: 1.0, 200: 2.0, 300: 3.0}


@pytest.fixture
def sqlite_store(tmp_path):
    store = SqliteSampleStore(tmp_path / "history.sqlite")
    yield store
    store.close()


@pytest.fixture
def memory_store():
    store = MemorySampleStore()
    yield store
    store.close()


@pytest.fixture(params=["sqlite", "memory"])
def store(request, tmp_path):
    """Each store implementation in turn."""
    if request.param == "sqlite":
        store = SqliteSampleStore(tmp_path / "history.sqlite")
    else:
        store = MemorySampleStore()
    yield store
    store.close()


@pytest.fixture
def scenario_store(store):
    for seconds, value in SCENARIO.items():
        store.insert(SERIES, value, seconds)
    return store


@pytest.fixture
def backend(tmp_path):
    backend = HistoryBackend(BackendConfig(location=tmp_path / "backend.sqlite"))
    yield backend
    backend.close()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove HISTORIAN_* variables so tests see the defaults."""
    for name in (
        "HISTORIAN_DB",
        "HISTORIAN_SERIES_ID",
        "HISTORIAN_RESET",
        "HISTORIAN_MAX_RESPONSE_SIZE",
        "HISTORIAN_STORE",
    ):
        monkeypatch.delenv(name, raising=False)
