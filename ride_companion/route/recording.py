"""Recorded traces and conversion of a finished ride into a ``SavedRoute``."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from ..config import TrackerSettings
from ..geo import MS_TO_KMH, distance_m
from ..models import FilteredPosition, LatLon, SavedRoute, TripStats, Waypoint
from ..utils import format_distance, iso_from_ms, new_id, now_ms

_LOGGER = logging.getLogger(__name__)


class TrackRecorder:
    """Ordered trace that ignores points closer than ``min_record_distance_m``."""

    def __init__(self, settings: TrackerSettings | None = None) -> None:
        self.settings = settings or TrackerSettings()
        self.points: List[FilteredPosition] = []
        self.distance_m = 0.0

    def record_if_moved(self, position: FilteredPosition) -> bool:
        """Append ``position`` unless it is within the jitter radius of the last point."""

        if self.points:
            step = distance_m(self.points[-1], position)
            if step <= self.settings.min_record_distance_m:
                return False
            self.distance_m += step
        self.points.append(position)
        return True

    @property
    def coordinates(self) -> List[LatLon]:
        return [p.latlon for p in self.points]

    def clear(self) -> None:
        self.points = []
        self.distance_m = 0.0

    def __len__(self) -> int:
        return len(self.points)


class RideRecorder:
    """Free-ride recording: collects moving points and builds a saved route."""

    def __init__(
        self,
        settings: TrackerSettings | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.settings = settings or TrackerSettings()
        self._clock = clock
        self.track = TrackRecorder(self.settings)
        self.recording = False
        self.start_time: Optional[int] = None
        self.max_speed_kmh = 0.0

    def start(self) -> None:
        self.track.clear()
        self.max_speed_kmh = 0.0
        self.start_time = self._clock()
        self.recording = True
        _LOGGER.info("Route recording started")

    def stop(self) -> None:
        self.recording = False
        _LOGGER.info("Route recording stopped")

    def clear(self) -> None:
        self.track.clear()
        self.max_speed_kmh = 0.0
        self.recording = False

    def add(self, position: FilteredPosition, moving: bool, speed_kmh: float) -> bool:
        """Record ``position`` when recording and moving; returns True if kept."""

        if not self.recording or not moving:
            return False
        if not self.track.record_if_moved(position):
            return False
        if (
            speed_kmh > self.max_speed_kmh
            and speed_kmh <= self.settings.max_realistic_speed_kmh
        ):
            self.max_speed_kmh = speed_kmh
        return True

    def build(
        self,
        name: str | None = None,
        description: str | None = None,
        stats: TripStats | None = None,
    ) -> SavedRoute:
        """Snapshot the recording as a ``SavedRoute`` (not yet persisted)."""

        if not self.track.points:
            raise ValueError("No route to save")
        start_time = self.start_time if self.start_time is not None else self._clock()
        end_time = self._clock()
        duration = max(0.0, (end_time - start_time) / 1000.0)
        distance = self.track.distance_m
        if stats is not None:
            max_speed = stats.max_speed_kmh
            average_speed = stats.average_speed_kmh
        else:
            max_speed = self.max_speed_kmh
            average_speed = distance / duration * MS_TO_KMH if duration > 0 else 0.0

        coordinates = self.track.coordinates
        waypoints = [
            Waypoint(id=new_id(), name=f"Point {index + 1}", latitude=lat, longitude=lon)
            for index, (lat, lon) in enumerate(coordinates)
        ]
        if not name:
            started = datetime.fromtimestamp(start_time / 1000.0)
            name = f"Ride {started:%Y-%m-%d %H:%M}"
        if description is None:
            description = (
                f"Distance: {format_distance(distance)}, "
                f"Duration: {int(duration // 60)}min, "
                f"Max Speed: {max_speed:.1f}km/h, "
                f"Avg Speed: {average_speed:.1f}km/h"
            )
        return SavedRoute(
            id=new_id(),
            name=name,
            description=description,
            waypoints=waypoints,
            coordinates=coordinates,
            distance=distance,
            duration=duration,
            max_speed=max_speed,
            average_speed=average_speed,
            start_time=start_time,
            end_time=end_time,
            created_at=iso_from_ms(end_time),
            last_used=iso_from_ms(end_time),
        )
