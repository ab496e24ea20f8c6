"""Tracking session: wires a fix source through the pipeline and consumers.

Each fix is processed to completion (quality, filter, speed, accrual, timer,
recording, route checks) before the next one is accepted. Only session-level
operations raise; a bad sample is always absorbed as a ``Rejection``.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from .config import CLOCK_TICK_INTERVAL_S, ELAPSED_TICK_INTERVAL_S, TrackerSettings
from .errors import PersistenceError, SignalUnavailableError
from .events import (
    EventBus,
    MotionUpdated,
    OffRoute,
    QualityChanged,
    RouteCompleted,
    WaypointReached,
)
from .geo import MS_TO_KMH
from .models import (
    FilteredPosition,
    MotionSample,
    RawFix,
    RejectReason,
    Rejection,
    SavedRoute,
    TrackingSession,
    Waypoint,
)
from .notifications import LoggingNotifier, Notifier, safe_notify
from .pipeline import GpsQualityMonitor, MotionTracker, StationaryDetector
from .route import NavigationData, RideRecorder, RouteProgressTracker, navigation_data
from .sources import FixSource, Subscription
from .storage import InMemoryRouteStore, RouteStore
from .timer import AutoTimerController, PeriodicTicker
from .utils import now_ms

_LOGGER = logging.getLogger(__name__)


class TrackingService:
    def __init__(
        self,
        source: FixSource,
        settings: TrackerSettings | None = None,
        store: RouteStore | None = None,
        notifier: Notifier | None = None,
        bus: EventBus | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.source = source
        self.settings = settings or TrackerSettings()
        self.bus = bus or EventBus()
        self.store: RouteStore = store or InMemoryRouteStore()
        self.notifier: Notifier = notifier or LoggingNotifier()
        self.motion = MotionTracker(self.settings)
        self.quality = GpsQualityMonitor(self.settings)
        self.stationary = StationaryDetector(self.settings)
        self.timer = AutoTimerController(self.settings, self.bus, clock)
        self.route = RouteProgressTracker(self.settings, self.bus, clock)
        self.recorder = RideRecorder(self.settings, clock)
        self.last_position: Optional[FilteredPosition] = None
        self._subscription: Optional[Subscription] = None
        self._tickers: List[PeriodicTicker] = []

        self.bus.subscribe(WaypointReached, self._on_waypoint_reached)
        self.bus.subscribe(RouteCompleted, self._on_route_completed)
        self.bus.subscribe(OffRoute, self._on_off_route)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    @property
    def tracking(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def start(self, record: bool = True) -> None:
        """Subscribe to the fix source; raises if no location capability."""

        if self.tracking:
            return
        if not self.source.available():
            raise SignalUnavailableError("Location source unavailable")
        self._subscription = self.source.subscribe(self.handle_fix)
        if record:
            self.recorder.start()
        _LOGGER.info("GPS tracking started (recording=%s)", record)

    def stop(self) -> None:
        """Cancel the subscription and cold-reset all filter state."""

        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self.motion.reset_filters()
        self.stationary.reset()
        self.quality.reset()
        self.last_position = None
        self.route.stop()
        if self.recorder.recording:
            self.recorder.stop()
        _LOGGER.info("GPS tracking stopped")

    def start_display_ticks(
        self,
        on_elapsed: Callable[[], None],
        on_clock: Callable[[], None],
    ) -> None:
        """Start the elapsed-time and clock refresh ticks (display only)."""

        self.stop_display_ticks()
        self._tickers = [
            PeriodicTicker(ELAPSED_TICK_INTERVAL_S, on_elapsed, name="elapsed-tick"),
            PeriodicTicker(CLOCK_TICK_INTERVAL_S, on_clock, name="clock-tick"),
        ]
        for ticker in self._tickers:
            ticker.start()

    def stop_display_ticks(self) -> None:
        for ticker in self._tickers:
            ticker.cancel()
        self._tickers = []

    def teardown(self) -> None:
        self.stop_display_ticks()
        self.stop()

    # ------------------------------------------------------------------
    # Route tracking
    # ------------------------------------------------------------------
    def start_route(
        self, waypoints: Sequence[Waypoint], start_time: int | None = None
    ) -> None:
        self.route.start(
            waypoints,
            signal_available=self.last_position is not None,
            start_time=start_time,
        )

    def stop_route(self) -> None:
        self.route.stop()

    def navigation(self) -> Optional[NavigationData]:
        if self.last_position is None:
            return None
        return navigation_data(
            self.last_position,
            self.route.waypoints,
            self.route.target_index,
            self.motion.current_speed_kmh / MS_TO_KMH,
            self.settings,
        )

    # ------------------------------------------------------------------
    # Fix processing
    # ------------------------------------------------------------------
    def handle_fix(self, raw: Optional[RawFix]) -> MotionSample | Rejection | None:
        if raw is None:
            return None

        previous_quality = self.quality.quality
        quality = self.quality.observe(raw.accuracy)
        if quality is not previous_quality:
            self.bus.emit(QualityChanged(quality))

        result = self.motion.ingest(raw)
        if isinstance(result, Rejection):
            _LOGGER.debug("Fix %s rejected: %s", raw.timestamp, result.reason.value)
            if result.reason is RejectReason.STALE_GAP and self.motion.previous:
                # Position is valid, only the speed pairing was dropped.
                self._track_position(self.motion.previous, moving=False)
            return result

        position = self.motion.previous
        if position is None:  # pragma: no cover - ingest always sets it
            return result
        stationary = self._track_position(position, result.is_moving)
        self.bus.emit(MotionUpdated(result))
        self.timer.on_sample(result, stationary, quality)
        self.recorder.add(position, result.is_moving, result.speed_kmh)
        return result

    def _track_position(self, position: FilteredPosition, moving: bool) -> bool:
        self.last_position = position
        stationary = self.stationary.observe(position, moving)
        self.route.update(position)
        return stationary

    # ------------------------------------------------------------------
    # Snapshots and persistence
    # ------------------------------------------------------------------
    def session_snapshot(self) -> TrackingSession:
        start = self.route.start_time
        if start is None:
            start = self.recorder.start_time or 0
        return TrackingSession(
            start_time=start,
            current_target_index=self.route.target_index,
            actual_path=self.route.actual_path,
            trip_distance_m=self.motion.trip_distance_m,
            max_speed_kmh=self.motion.max_speed_kmh,
            moving_time_s=self.motion.moving_time_s,
        )

    def save_ride(self, name: str | None = None, description: str | None = None) -> str:
        """Persist the recorded ride; raises ``PersistenceError`` on failure."""

        if self.recorder.recording:
            self.recorder.stop()
        route = self.recorder.build(name, description, stats=self.motion.stats())
        try:
            route_id = self.store.save(route)
        except PersistenceError as exc:
            _LOGGER.warning("Failed to save route: %s", exc)
            raise
        except OSError as exc:
            _LOGGER.warning("Failed to save route: %s", exc)
            raise PersistenceError(f"Failed to save route: {exc}") from exc
        _LOGGER.info(
            "Ride '%s' saved id=%s distance=%.0fm", route.name, route_id, route.distance
        )
        return route_id

    def load_route(self, route_id: str) -> Optional[SavedRoute]:
        route = self.store.get(route_id)
        if route is not None:
            self.store.touch(route_id)
        return route

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def _on_waypoint_reached(self, event: WaypointReached) -> None:
        label = event.waypoint.name or f"#{event.index + 1}"
        safe_notify(self.notifier, f"Waypoint {event.index + 1} reached: {label}")

    def _on_route_completed(self, event: RouteCompleted) -> None:
        safe_notify(
            self.notifier,
            f"Route completed! Time: {event.elapsed_minutes:.0f} min, "
            f"Distance: {event.actual_distance_km:.2f} km",
        )

    def _on_off_route(self, event: OffRoute) -> None:
        safe_notify(
            self.notifier, f"Off route: {event.distance_m:.0f} m from the planned track"
        )
