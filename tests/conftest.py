"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable fixtures (settings, a
controllable clock and a short planned route along the equator) so the
pipeline tests can build positions with exact distances.
"""
from __future__ import annotations

import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ride_companion.config import TrackerSettings
from ride_companion.events import EventBus

from helpers import FakeClock, route_east


@pytest.fixture
def settings():
    return TrackerSettings()


@pytest.fixture
def passthrough_settings():
    # A huge process noise makes the filter follow each fix almost exactly.
    return TrackerSettings(process_noise=1e9)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def waypoints():
    return route_east([0.0, 500.0, 1000.0], names=["A", "B", "C"])


@pytest.fixture
def collect(bus):
    """Subscribe to event types and collect what the bus emits."""

    def _collect(*event_types):
        seen = []
        for event_type in event_types:
            bus.subscribe(event_type, seen.append)
        return seen

    return _collect
