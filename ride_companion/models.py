"""Dataclasses shared by the pipeline, route tracking and persistence layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

LatLon = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class RawFix:
    """One location reading as delivered by the device or a simulator.

    Attributes:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        accuracy: Horizontal accuracy in metres (lower is better).
        timestamp: Unix epoch milliseconds.
        speed_reported: Device-reported speed in m/s, when available.
        heading: Device-reported heading in degrees, when available.
    """

    latitude: float
    longitude: float
    accuracy: float
    timestamp: int
    speed_reported: Optional[float] = None
    heading: Optional[float] = None


@dataclass(frozen=True, slots=True)
class FilteredPosition:
    """Smoothed position emitted for every accepted fix."""

    latitude: float
    longitude: float
    timestamp: int
    accuracy: float

    @property
    def latlon(self) -> LatLon:
        return (self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class MotionSample:
    speed_kmh: float
    is_moving: bool
    timestamp: int


class RejectReason(str, Enum):
    LOW_ACCURACY = "low_accuracy"
    OUT_OF_ORDER = "out_of_order"
    STALE_GAP = "stale_gap"
    INVALID = "invalid"


@dataclass(frozen=True, slots=True)
class Rejection:
    """A fix dropped by the pipeline; never surfaced to the rider."""

    reason: RejectReason
    timestamp: int


class GpsQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    VERY_POOR = "very_poor"


@dataclass(frozen=True, slots=True)
class Waypoint:
    """A planned route point.

    Instances are immutable; editing a waypoint means replacing it (see
    ``dataclasses.replace``) so a route snapshot held by a tracker never
    changes underneath it.
    """

    id: str
    name: str
    latitude: float
    longitude: float
    altitude_qnh: float = 0.0
    speed_knots: float = 0.0
    routing_degrees: float = 0.0
    frequency: str = ""
    estimated_arrival: str = ""

    @property
    def latlon(self) -> LatLon:
        return (self.latitude, self.longitude)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitudeQNH": self.altitude_qnh,
            "speedKnots": self.speed_knots,
            "routingDegrees": self.routing_degrees,
            "frequency": self.frequency,
            "estimatedArrival": self.estimated_arrival,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Waypoint":
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            latitude=float(payload["latitude"]),
            longitude=float(payload["longitude"]),
            altitude_qnh=float(payload.get("altitudeQNH") or 0.0),
            speed_knots=float(payload.get("speedKnots") or 0.0),
            routing_degrees=float(payload.get("routingDegrees") or 0.0),
            frequency=str(payload.get("frequency") or ""),
            estimated_arrival=str(payload.get("estimatedArrival") or ""),
        )


@dataclass(slots=True)
class TripStats:
    total_distance_m: float
    trip_distance_m: float
    current_speed_kmh: float
    max_speed_kmh: float
    average_speed_kmh: float
    moving_time_s: float
    total_time_s: float


@dataclass(slots=True)
class TrackingSession:
    """Snapshot of an active (or just finished) route tracking session."""

    start_time: int
    current_target_index: int
    actual_path: List[FilteredPosition] = field(default_factory=list)
    trip_distance_m: float = 0.0
    max_speed_kmh: float = 0.0
    moving_time_s: float = 0.0


@dataclass(slots=True)
class SavedRoute:
    """Persisted ride or planned route, written once and read many times.

    ``start_time``/``end_time`` are epoch milliseconds; ``created_at`` and
    ``last_used`` are ISO-8601 strings. Distances are metres, speeds km/h and
    durations seconds.
    """

    id: str
    name: str
    description: str
    waypoints: List[Waypoint]
    coordinates: List[LatLon]
    distance: float
    duration: float
    max_speed: float
    average_speed: float
    start_time: int
    end_time: int
    created_at: str
    last_used: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "waypoints": [wp.to_dict() for wp in self.waypoints],
            "coordinates": [[lat, lon] for lat, lon in self.coordinates],
            "distance": self.distance,
            "duration": self.duration,
            "maxSpeed": self.max_speed,
            "averageSpeed": self.average_speed,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "createdAt": self.created_at,
            "lastUsed": self.last_used,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SavedRoute":
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            description=str(payload.get("description") or ""),
            waypoints=[Waypoint.from_dict(wp) for wp in payload.get("waypoints") or []],
            coordinates=[
                (float(lat), float(lon)) for lat, lon in payload.get("coordinates") or []
            ],
            distance=float(payload.get("distance") or 0.0),
            duration=float(payload.get("duration") or 0.0),
            max_speed=float(payload.get("maxSpeed") or 0.0),
            average_speed=float(payload.get("averageSpeed") or 0.0),
            start_time=int(payload.get("startTime") or 0),
            end_time=int(payload.get("endTime") or 0),
            created_at=str(payload.get("createdAt") or ""),
            last_used=str(payload.get("lastUsed") or ""),
        )
