"""
Pytest fixtures for mapstash tests.

Everything runs against the in-memory backend; no database is needed.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from pins.memory import InMemoryStorage
from pins.service import PinService


class StepClock:
    """Deterministic clock: each call is one second after the previous one."""

    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def storage(clock):
    return InMemoryStorage(clock=clock)


@pytest.fixture
def service(storage):
    return PinService(storage.unit_of_work)


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    import main

    with TestClient(main.app) as test_client:
        yield test_client
