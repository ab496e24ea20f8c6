"""Central error types used across the application."""

from __future__ import annotations


class RideCompanionError(RuntimeError):
    """Base error for session-level failures surfaced to the caller."""


class SignalUnavailableError(RideCompanionError):
    """Raised when no location signal (or capability) is available to start tracking."""


class InvalidRouteError(RideCompanionError):
    """Raised when route tracking is requested for fewer than two waypoints."""


class RouteChangedError(RideCompanionError):
    """Raised when the waypoint list was edited while a route is being tracked."""


class PersistenceError(RideCompanionError):
    """Raised when the route store fails to save, load or delete a record."""


__all__ = [
    "RideCompanionError",
    "SignalUnavailableError",
    "InvalidRouteError",
    "RouteChangedError",
    "PersistenceError",
]
