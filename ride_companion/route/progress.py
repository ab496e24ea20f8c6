"""Waypoint-by-waypoint progress tracking with reach and deviation checks."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from ..config import TrackerSettings
from ..errors import InvalidRouteError, RouteChangedError, SignalUnavailableError
from ..events import EventBus, OffRoute, RouteCompleted, WaypointReached
from ..geo import distance_m, distance_to_segment_m
from ..models import FilteredPosition, Waypoint
from ..utils import now_ms
from .recording import TrackRecorder

_LOGGER = logging.getLogger(__name__)


class RouteState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    COMPLETED = "completed"


class RouteProgressTracker:
    """Follow a planned route and report reached waypoints and deviations.

    The waypoint list is copied into an immutable snapshot at :meth:`start`;
    edits made afterwards by the caller are not seen (use
    :meth:`ensure_unchanged` to detect them and restart).
    """

    def __init__(
        self,
        settings: TrackerSettings | None = None,
        bus: EventBus | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.settings = settings or TrackerSettings()
        self.bus = bus or EventBus()
        self._clock = clock
        self.state = RouteState.IDLE
        self.waypoints: Tuple[Waypoint, ...] = ()
        self.target_index = 0
        self.reached_ids: List[str] = []
        self.start_time: Optional[int] = None
        self.path = TrackRecorder(self.settings)
        self._off_route = False
        self._completed_emitted = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(
        self,
        waypoints: Sequence[Waypoint],
        signal_available: bool,
        start_time: int | None = None,
    ) -> None:
        if len(waypoints) < 2:
            raise InvalidRouteError(
                f"A route needs at least 2 waypoints to track (got {len(waypoints)})"
            )
        if not signal_available:
            raise SignalUnavailableError("GPS signal not available; wait for a fix")
        self.waypoints = tuple(waypoints)
        self.target_index = 0
        self.reached_ids = []
        self.path.clear()
        self._off_route = False
        self._completed_emitted = False
        self.start_time = start_time if start_time is not None else self._clock()
        self.state = RouteState.TRACKING
        _LOGGER.info("Route tracking started with %d waypoints", len(self.waypoints))

    def stop(self) -> None:
        """Return to idle; the recorded path and counters are kept."""

        if self.state is RouteState.TRACKING:
            _LOGGER.info(
                "Route tracking stopped at waypoint %d/%d",
                self.target_index,
                len(self.waypoints),
            )
        self.state = RouteState.IDLE

    def clear(self) -> None:
        self.stop()
        self.waypoints = ()
        self.target_index = 0
        self.reached_ids = []
        self.start_time = None
        self.path.clear()
        self._off_route = False
        self._completed_emitted = False

    def ensure_unchanged(self, waypoints: Sequence[Waypoint]) -> None:
        """Raise ``RouteChangedError`` if ``waypoints`` differs from the snapshot."""

        if self.state is RouteState.TRACKING and tuple(waypoints) != self.waypoints:
            raise RouteChangedError(
                "Waypoints changed while tracking; stop and restart the route"
            )

    # ------------------------------------------------------------------
    # Per-position checks
    # ------------------------------------------------------------------
    def update(self, position: FilteredPosition) -> list[object]:
        """Record, then check reach, then deviation against the new target."""

        if self.state is not RouteState.TRACKING:
            return []
        self.record_if_moved(position)
        events: list[object] = list(self.check_proximity(position))
        off_route = self.check_deviation(position)
        if off_route is not None:
            events.append(off_route)
        return events

    def record_if_moved(self, position: FilteredPosition) -> bool:
        return self.path.record_if_moved(position)

    def check_proximity(self, position: FilteredPosition) -> list[object]:
        if self.state is not RouteState.TRACKING:
            return []
        target = self.waypoints[self.target_index]
        if distance_m(position, target) > self.settings.reach_radius_m:
            return []

        reached = WaypointReached(
            index=self.target_index, waypoint=target, timestamp=position.timestamp
        )
        self.reached_ids.append(target.id)
        self.target_index += 1
        self._off_route = False
        _LOGGER.info(
            "Waypoint %d reached: %s", reached.index, target.name or target.id
        )
        self.bus.emit(reached)
        events: list[object] = [reached]

        if self.target_index == len(self.waypoints) and not self._completed_emitted:
            self.state = RouteState.COMPLETED
            self._completed_emitted = True
            completed = self._completion_summary(position)
            _LOGGER.info(
                "Route completed in %.1f min over %.2f km",
                completed.elapsed_minutes,
                completed.actual_distance_km,
            )
            self.bus.emit(completed)
            events.append(completed)
        return events

    def check_deviation(self, position: FilteredPosition) -> Optional[OffRoute]:
        """Emit ``OffRoute`` when first leaving the band around the current leg."""

        if self.state is not RouteState.TRACKING:
            return None
        if self.target_index >= len(self.waypoints) - 1:
            return None
        offset = distance_to_segment_m(
            position,
            self.waypoints[self.target_index],
            self.waypoints[self.target_index + 1],
        )
        if offset <= self.settings.deviation_threshold_m:
            self._off_route = False
            return None
        if self._off_route:
            return None
        self._off_route = True
        event = OffRoute(
            distance_m=offset,
            segment_index=self.target_index,
            timestamp=position.timestamp,
        )
        _LOGGER.warning("Off route by %.0fm on leg %d", offset, self.target_index)
        self.bus.emit(event)
        return event

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def actual_path(self) -> List[FilteredPosition]:
        return list(self.path.points)

    @property
    def actual_distance_m(self) -> float:
        return self.path.distance_m

    @property
    def current_target(self) -> Optional[Waypoint]:
        if self.target_index < len(self.waypoints):
            return self.waypoints[self.target_index]
        return None

    @property
    def remaining(self) -> int:
        return max(0, len(self.waypoints) - self.target_index)

    @property
    def is_off_route(self) -> bool:
        return self._off_route

    def status_message(self) -> str:
        if self.state is RouteState.COMPLETED:
            return "Route completed"
        if self.state is RouteState.IDLE:
            return "No active route"
        remaining = self.remaining
        return f"{remaining} waypoint{'s' if remaining != 1 else ''} remaining"

    def _completion_summary(self, position: FilteredPosition) -> RouteCompleted:
        started = self.start_time if self.start_time is not None else position.timestamp
        elapsed_minutes = max(0.0, (position.timestamp - started) / 60000.0)
        return RouteCompleted(
            elapsed_minutes=elapsed_minutes,
            actual_distance_km=self.path.distance_m / 1000.0,
            timestamp=position.timestamp,
        )
