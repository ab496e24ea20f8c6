"""End-to-end tracking service: replayed fixes through every consumer."""

from __future__ import annotations

import pytest

from ride_companion.errors import PersistenceError, SignalUnavailableError
from ride_companion.events import MotionUpdated, QualityChanged
from ride_companion.models import GpsQuality, MotionSample, RejectReason, Rejection
from ride_companion.notifications import RecordingNotifier
from ride_companion.route import RouteState
from ride_companion.session import TrackingService
from ride_companion.sources import ReplayFixSource, simulate_ride
from ride_companion.storage import InMemoryRouteStore

from helpers import fix, route_east


class _FailingStore(InMemoryRouteStore):
    def save(self, route):
        raise PersistenceError("disk full")


class _BrokenNotifier:
    def notify(self, message: str) -> None:
        raise RuntimeError("screen off")


@pytest.fixture
def route():
    return route_east([0.0, 1000.0], names=["Start", "Finish"])


def _service(fixes, settings, clock, **kwargs):
    kwargs.setdefault("notifier", RecordingNotifier())
    kwargs.setdefault("store", InMemoryRouteStore())
    return TrackingService(ReplayFixSource(fixes), settings, clock=clock, **kwargs)


def test_start_needs_an_available_source(settings, clock) -> None:
    service = _service([None], settings, clock)
    with pytest.raises(SignalUnavailableError):
        service.start()
    assert not service.tracking


def test_route_needs_a_position_first(passthrough_settings, clock, route) -> None:
    service = _service([fix(ts=0)], passthrough_settings, clock)
    service.start()
    with pytest.raises(SignalUnavailableError):
        service.start_route(route)
    service.handle_fix(fix(ts=0))
    service.start_route(route, start_time=0)
    assert service.route.state is RouteState.TRACKING


def test_full_ride_through_the_pipeline(passthrough_settings, clock, route) -> None:
    fixes = simulate_ride(route, speed_kmh=36.0)
    notifier = RecordingNotifier()
    service = _service(fixes[1:], passthrough_settings, clock, notifier=notifier)
    samples = []
    service.bus.subscribe(MotionUpdated, lambda e: samples.append(e.sample))

    service.start()
    service.handle_fix(fixes[0])
    service.start_route(route, start_time=fixes[0].timestamp)
    clock.advance(1_000)
    service.source.play()
    clock.now = fixes[-1].timestamp

    assert service.route.state is RouteState.COMPLETED
    assert notifier.messages[0] == "Waypoint 1 reached: Start"
    assert "Waypoint 2 reached: Finish" in notifier.messages
    assert notifier.messages[-1].startswith("Route completed! Time: 2 min")
    assert not any(m.startswith("Off route") for m in notifier.messages)

    assert service.motion.trip_distance_m == pytest.approx(1000.0, abs=0.5)
    assert service.motion.max_speed_kmh == pytest.approx(36.0, abs=0.5)
    assert service.timer.running
    assert all(s.is_moving for s in samples[1:])

    snapshot = service.session_snapshot()
    assert snapshot.start_time == 0
    assert snapshot.current_target_index == 2
    assert snapshot.trip_distance_m == service.motion.trip_distance_m
    assert len(snapshot.actual_path) > 2


def test_quality_changes_are_published(passthrough_settings, clock, bus, collect) -> None:
    seen = collect(QualityChanged)
    service = _service([fix(ts=0)], passthrough_settings, clock, bus=bus)
    service.handle_fix(fix(ts=0, acc=3.0))
    service.handle_fix(fix(north_m=1.0, ts=1_000, acc=3.5))
    service.handle_fix(fix(north_m=2.0, ts=2_000, acc=12.0))
    assert [e.quality for e in seen] == [GpsQuality.EXCELLENT, GpsQuality.FAIR]


def test_missing_and_rejected_fixes_are_absorbed(passthrough_settings, clock) -> None:
    service = _service([fix(ts=0)], passthrough_settings, clock)
    assert service.handle_fix(None) is None
    assert service.last_position is None
    assert isinstance(service.handle_fix(fix(ts=1_000)), MotionSample)
    late = service.handle_fix(fix(north_m=5.0, ts=500))
    assert late == Rejection(RejectReason.OUT_OF_ORDER, 500)
    noisy = service.handle_fix(fix(north_m=5.0, ts=2_000, acc=80.0))
    assert noisy.reason is RejectReason.LOW_ACCURACY
    assert service.last_position.timestamp == 1_000


def test_stale_gap_still_moves_the_position(passthrough_settings, clock) -> None:
    service = _service([fix(ts=0)], passthrough_settings, clock)
    service.handle_fix(fix(ts=0))
    result = service.handle_fix(fix(north_m=300.0, ts=60_000))
    assert result.reason is RejectReason.STALE_GAP
    assert service.last_position.timestamp == 60_000


def test_stationary_rider_stops_the_timer(passthrough_settings, clock) -> None:
    service = _service([fix(ts=0)], passthrough_settings, clock)
    for i in range(6):
        service.handle_fix(fix(north_m=10.0 * i, ts=i * 1_000))
    assert service.timer.running
    for i in range(6, 20):
        clock.now = i * 1_000
        service.handle_fix(fix(north_m=50.0, ts=i * 1_000))
    assert not service.timer.running


def test_brief_speed_dip_does_not_stop_the_timer(passthrough_settings, clock) -> None:
    service = _service([fix(ts=0)], passthrough_settings, clock)
    step_m = 6.0 / 3.6
    north = 0.0
    for i in range(7):
        clock.now = i * 1_000
        north = step_m * i
        service.handle_fix(fix(north_m=north, ts=i * 1_000))
    assert service.timer.running

    clock.now = 7_000
    north += 0.5
    dip = service.handle_fix(fix(north_m=north, ts=7_000))
    assert isinstance(dip, MotionSample)
    assert not dip.is_moving
    assert service.timer.running

    samples = []
    for i in range(8, 16):
        clock.now = i * 1_000
        north += step_m
        samples.append(service.handle_fix(fix(north_m=north, ts=i * 1_000)))
        assert service.timer.running
    assert not samples[0].is_moving
    assert samples[-1].is_moving


def test_broken_notifier_does_not_interrupt_tracking(passthrough_settings, clock, route) -> None:
    service = _service([fix(ts=0)], passthrough_settings, clock, notifier=_BrokenNotifier())
    service.handle_fix(fix(ts=0))
    service.start_route(route, start_time=0)
    service.handle_fix(fix(east_m=10.0, ts=1_000))
    assert service.route.target_index == 1


def test_stop_cold_starts_the_pipeline(passthrough_settings, clock) -> None:
    service = _service([fix(ts=0)], passthrough_settings, clock)
    service.start()
    for i in range(3):
        service.handle_fix(fix(north_m=10.0 * i, ts=i * 1_000))
    service.stop()
    assert not service.tracking
    assert service.motion.previous is None
    assert service.quality.quality is GpsQuality.VERY_POOR
    assert service.last_position is None
    assert service.motion.trip_distance_m == pytest.approx(20.0, abs=0.01)


def test_save_ride_uses_trip_stats(passthrough_settings, clock) -> None:
    store = InMemoryRouteStore()
    service = _service([fix(ts=0)], passthrough_settings, clock, store=store)
    service.start()
    for i in range(12):
        clock.now = i * 1_000
        service.handle_fix(fix(north_m=10.0 * i, ts=i * 1_000))
    route_id = service.save_ride(name="Commute")
    saved = store.get(route_id)
    assert saved.name == "Commute"
    assert saved.max_speed == pytest.approx(36.0, abs=0.1)
    assert saved.average_speed == pytest.approx(36.0, abs=0.1)
    assert saved.distance == pytest.approx(100.0, abs=0.5)
    assert saved.duration == pytest.approx(11.0)
    assert not service.recorder.recording

    assert service.load_route(route_id).id == route_id
    assert service.load_route("nope") is None


def test_save_failure_is_reported_and_tracking_continues(passthrough_settings, clock) -> None:
    service = _service([fix(ts=0)], passthrough_settings, clock, store=_FailingStore())
    service.start()
    for i in range(4):
        service.handle_fix(fix(north_m=10.0 * i, ts=i * 1_000))
    with pytest.raises(PersistenceError):
        service.save_ride()
    assert isinstance(service.handle_fix(fix(north_m=40.0, ts=4_000)), MotionSample)


def test_save_without_points_is_refused(settings, clock) -> None:
    service = _service([fix(ts=0)], settings, clock)
    with pytest.raises(ValueError):
        service.save_ride()


def test_navigation_readout(passthrough_settings, clock, route) -> None:
    service = _service([fix(ts=0)], passthrough_settings, clock)
    assert service.navigation() is None
    service.handle_fix(fix(ts=0))
    service.start_route(route, start_time=0)
    service.handle_fix(fix(east_m=10.0, ts=1_000))
    service.handle_fix(fix(east_m=100.0, ts=2_000))
    data = service.navigation()
    assert data.next_waypoint.name == "Finish"
    assert data.distance_to_next_nm == pytest.approx(900.0 / 1852.0, rel=1e-3)


def test_display_ticks_are_cancelled_on_teardown(settings, clock) -> None:
    service = _service([fix(ts=0)], settings, clock)
    service.start_display_ticks(lambda: None, lambda: None)
    assert all(t.running for t in service._tickers)
    tickers = list(service._tickers)
    service.teardown()
    assert not any(t.running for t in tickers)
