"""Bearing, distance and ETA to the next waypoint, plus planned-route totals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import TrackerSettings
from ..geo import (
    bearing_deg,
    distance_m,
    distance_to_segment_m,
    metres_to_nautical_miles,
    mps_to_knots,
    path_length_m,
)
from ..models import FilteredPosition, Waypoint

# Ground speeds under this many knots are treated as GPS noise.
GROUND_SPEED_NOISE_KNOTS = 2.0


@dataclass(slots=True)
class NavigationData:
    position: FilteredPosition
    next_waypoint: Waypoint
    distance_to_next_nm: float
    bearing_to_next_deg: float
    cross_track_error_nm: float
    ground_speed_knots: float
    eta_minutes: Optional[float]


def ground_speed_knots(speed_mps: float | None) -> float:
    if not speed_mps:
        return 0.0
    knots = mps_to_knots(speed_mps)
    return 0.0 if knots < GROUND_SPEED_NOISE_KNOTS else knots


def eta_minutes(
    distance_nm: float,
    speed_knots: float,
    settings: TrackerSettings | None = None,
) -> Optional[float]:
    """Minutes to cover ``distance_nm``; ``None`` when too slow to estimate."""

    settings = settings or TrackerSettings()
    if speed_knots < settings.eta_min_speed_knots or speed_knots <= 0:
        return None
    return min(distance_nm / speed_knots * 60.0, settings.eta_cap_minutes)


def navigation_data(
    position: FilteredPosition,
    waypoints: Sequence[Waypoint],
    target_index: int,
    speed_mps: float | None,
    settings: TrackerSettings | None = None,
) -> Optional[NavigationData]:
    """Navigation readout towards ``waypoints[target_index]``, if any."""

    if not waypoints or not 0 <= target_index < len(waypoints):
        return None
    target = waypoints[target_index]
    distance_nm = metres_to_nautical_miles(distance_m(position, target))
    cross_track_nm = 0.0
    if target_index > 0:
        cross_track_nm = metres_to_nautical_miles(
            distance_to_segment_m(position, waypoints[target_index - 1], target)
        )
    speed_knots = ground_speed_knots(speed_mps)
    return NavigationData(
        position=position,
        next_waypoint=target,
        distance_to_next_nm=distance_nm,
        bearing_to_next_deg=bearing_deg(position, target),
        cross_track_error_nm=cross_track_nm,
        ground_speed_knots=speed_knots,
        eta_minutes=eta_minutes(distance_nm, speed_knots, settings),
    )


def route_distance_m(waypoints: Sequence[Waypoint]) -> float:
    """Planned length; zero for fewer than two waypoints."""

    if len(waypoints) < 2:
        return 0.0
    return path_length_m(waypoints)


def estimated_route_hours(waypoints: Sequence[Waypoint]) -> float:
    """Planned duration at the mean of the waypoints' planned speeds."""

    distance_nm = metres_to_nautical_miles(route_distance_m(waypoints))
    speeds = [wp.speed_knots for wp in waypoints if wp.speed_knots > 0]
    if distance_nm == 0 or not speeds:
        return 0.0
    return distance_nm / (sum(speeds) / len(speeds))
