"""GPS ride companion: fix filtering, motion tracking and route progress."""

from .config import TrackerSettings
from .errors import (
    InvalidRouteError,
    PersistenceError,
    RideCompanionError,
    RouteChangedError,
    SignalUnavailableError,
)
from .main import main
from .models import FilteredPosition, MotionSample, RawFix, SavedRoute, Waypoint
from .session import TrackingService

__all__ = [
    "main",
    "TrackerSettings",
    "TrackingService",
    "RawFix",
    "FilteredPosition",
    "MotionSample",
    "Waypoint",
    "SavedRoute",
    "RideCompanionError",
    "SignalUnavailableError",
    "InvalidRouteError",
    "RouteChangedError",
    "PersistenceError",
]
