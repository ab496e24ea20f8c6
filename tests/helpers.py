"""Position builders with exact metre offsets.

Along a meridian or the equator the haversine distance is exactly
``R * delta_angle``, so offsets expressed in metres from (0, 0) give distances
tests can assert on without tolerance games.
"""
from __future__ import annotations

import math
from typing import Iterable, Sequence

from ride_companion.geo import EARTH_RADIUS_M
from ride_companion.models import FilteredPosition, RawFix, SavedRoute, Waypoint

METRES_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180.0


def deg(metres: float) -> float:
    return metres / METRES_PER_DEGREE


def pos(north_m: float = 0.0, east_m: float = 0.0, ts: int = 0, acc: float = 5.0) -> FilteredPosition:
    return FilteredPosition(latitude=deg(north_m), longitude=deg(east_m), timestamp=ts, accuracy=acc)


def fix(north_m: float = 0.0, east_m: float = 0.0, ts: int = 0, acc: float = 5.0) -> RawFix:
    return RawFix(latitude=deg(north_m), longitude=deg(east_m), accuracy=acc, timestamp=ts)


def route_east(offsets_m: Iterable[float], names: Sequence[str] | None = None) -> list[Waypoint]:
    points = list(offsets_m)
    names = list(names) if names is not None else [f"WP{i + 1}" for i in range(len(points))]
    return [
        Waypoint(id=f"wp{i}", name=names[i], latitude=0.0, longitude=deg(east))
        for i, east in enumerate(points)
    ]


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: int = 0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


def make_route(route_id: str = "", name: str = "Morning loop", created: str = "2025-05-01T07:00:00+00:00") -> SavedRoute:
    return SavedRoute(
        id=route_id,
        name=name,
        description="Distance: 1.20km",
        waypoints=[
            Waypoint(id="p1", name="Point 1", latitude=51.5, longitude=-0.12),
            Waypoint(id="p2", name="Point 2", latitude=51.51, longitude=-0.121, speed_knots=12.0),
        ],
        coordinates=[(51.5, -0.12), (51.51, -0.121)],
        distance=1_200.0,
        duration=300.0,
        max_speed=31.5,
        average_speed=14.4,
        start_time=1_746_082_800_000,
        end_time=1_746_083_100_000,
        created_at=created,
        last_used=created,
    )
