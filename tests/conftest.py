"""Shared fixtures for chat analytics tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from analytics import AnalyticsEngine
from helpers import FakeClock
from store import MemoryStore


@pytest.fixture()
def clock():
    """Controllable clock starting Monday 2024-01-15 10:00:00."""
    return FakeClock()


@pytest.fixture()
def memory_store():
    return MemoryStore()


@pytest.fixture()
def engine(memory_store, clock):
    """Fresh engine backed by an empty in-memory store."""
    return AnalyticsEngine.create(memory_store, clock=clock)


@pytest.fixture()
def client(engine):
    """TestClient for app.py wired to the in-memory engine."""
    from app import create_app

    with TestClient(create_app(engine)) as tc:
        yield tc
