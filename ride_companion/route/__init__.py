"""Planned-route progress, navigation readouts and recorded traces."""

from .navigation import (
    NavigationData,
    estimated_route_hours,
    eta_minutes,
    ground_speed_knots,
    navigation_data,
    route_distance_m,
)
from .progress import RouteProgressTracker, RouteState
from .recording import RideRecorder, TrackRecorder

__all__ = [
    "NavigationData",
    "estimated_route_hours",
    "eta_minutes",
    "ground_speed_knots",
    "navigation_data",
    "route_distance_m",
    "RouteProgressTracker",
    "RouteState",
    "RideRecorder",
    "TrackRecorder",
]
