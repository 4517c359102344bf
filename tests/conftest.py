"""Shared fixtures for the events feed test suite."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from events.bus import StateBus
from events.models import Event
from helpers import build_record


@pytest.fixture
def state_bus() -> StateBus:
    """Return a fresh StateBus instance."""
    return StateBus()


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Return a factory building :class:`Event` objects from raw records."""

    def _make(**kwargs: Any) -> Event:
        return Event.from_dict(build_record(**kwargs))

    return _make


@pytest.fixture
def mixed_records() -> list[dict[str, Any]]:
    """Two tracked records and one untracked record."""
    return [
        build_record("101", "PushEvent", "2025-06-15T09:00:00Z"),
        build_record("102", "GollumEvent", "2025-06-15T11:00:00Z"),
        build_record("103", "WatchEvent", "2025-06-15T10:00:00Z"),
    ]
