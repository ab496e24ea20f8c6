from __future__ import annotations

import logging

import pytest

from ride_companion.notifications import LoggingNotifier, RecordingNotifier, safe_notify
from ride_companion.utils import (
    format_distance,
    format_duration,
    format_elapsed,
    iso_from_ms,
    ms_from_iso,
    new_id,
)


@pytest.mark.parametrize("metres, text", [(0, "0m"), (999.4, "999m"), (1_234.0, "1.23km")])
def test_format_distance(metres, text) -> None:
    assert format_distance(metres) == text


@pytest.mark.parametrize("seconds, text", [(59, "0m"), (300, "5m"), (3_900, "1h 5m")])
def test_format_duration(seconds, text) -> None:
    assert format_duration(seconds) == text


def test_format_elapsed() -> None:
    assert format_elapsed(9_990) == "09.99"
    assert format_elapsed(3_723_450) == "62:03.45"


def test_iso_round_trip() -> None:
    assert iso_from_ms(0) == "1970-01-01T00:00:00+00:00"
    assert ms_from_iso("2025-01-01T00:00:00Z") == 1_735_689_600_000
    assert ms_from_iso(iso_from_ms(1_746_082_800_000)) == 1_746_082_800_000


def test_new_ids_are_unique() -> None:
    assert len({new_id() for _ in range(50)}) == 50


def test_safe_notify_swallows_display_errors(caplog) -> None:
    class _Broken:
        def notify(self, message: str) -> None:
            raise OSError("no display")

    safe_notify(_Broken(), "hello")
    safe_notify(None, "ignored")
    assert "Notification failed" in caplog.text


def test_notifiers(caplog) -> None:
    recording = RecordingNotifier()
    safe_notify(recording, "Waypoint 1 reached")
    assert recording.messages == ["Waypoint 1 reached"]
    with caplog.at_level(logging.INFO):
        LoggingNotifier().notify("Route completed")
    assert "NOTIFY: Route completed" in caplog.text
