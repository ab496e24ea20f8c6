"""Great-circle helpers shared by the pipeline and route tracking.

Every function accepts either ``(lat, lon)`` tuples or objects exposing
``latitude``/``longitude`` attributes (fixes, filtered positions, waypoints).
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Sequence

import numpy as np

from .models import LatLon

EARTH_RADIUS_M = 6_371_000.0
METRES_PER_NAUTICAL_MILE = 1852.0
MS_TO_KMH = 3.6
MS_TO_KNOTS = 1.94384


def to_radians(degrees: float) -> float:
    return degrees * (math.pi / 180.0)


def to_degrees(radians: float) -> float:
    return radians * (180.0 / math.pi)


def as_latlon(point: Any) -> LatLon:
    """Return ``point`` as a ``(lat, lon)`` tuple."""

    if isinstance(point, (tuple, list)):
        lat, lon = point
        return float(lat), float(lon)
    return float(point.latitude), float(point.longitude)


def distance_m(a: Any, b: Any) -> float:
    """Haversine distance in metres between two points."""

    lat1, lon1 = as_latlon(a)
    lat2, lon2 = as_latlon(b)
    phi1 = to_radians(lat1)
    phi2 = to_radians(lat2)
    d_phi = to_radians(lat2 - lat1)
    d_lambda = to_radians(lon2 - lon1)

    h = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    c = 2.0 * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))
    return EARTH_RADIUS_M * c


def bearing_deg(a: Any, b: Any) -> float:
    """Initial bearing from ``a`` to ``b`` in degrees, normalised to [0, 360)."""

    lat1, lon1 = as_latlon(a)
    lat2, lon2 = as_latlon(b)
    phi1 = to_radians(lat1)
    phi2 = to_radians(lat2)
    d_lambda = to_radians(lon2 - lon1)

    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(
        d_lambda
    )
    bearing = to_degrees(math.atan2(y, x))
    return (bearing + 360.0) % 360.0


def distance_to_segment_m(point: Any, seg_start: Any, seg_end: Any) -> float:
    """Distance in metres from ``point`` to the segment ``seg_start``-``seg_end``.

    The projection parameter is computed in a local equirectangular frame
    centred on the segment, then clamped to [0, 1]; the returned value is the
    haversine distance to the clamped point. This is an approximation that is
    only valid for short segments (waypoint spacing of a few km at most).
    """

    p_lat, p_lon = as_latlon(point)
    a_lat, a_lon = as_latlon(seg_start)
    b_lat, b_lon = as_latlon(seg_end)

    cos_lat = math.cos(to_radians((a_lat + b_lat) / 2.0))
    bx = (b_lon - a_lon) * cos_lat
    by = b_lat - a_lat
    px = (p_lon - a_lon) * cos_lat
    py = p_lat - a_lat

    length_sq = bx * bx + by * by
    if length_sq == 0.0:
        return distance_m((p_lat, p_lon), (a_lat, a_lon))
    t = (px * bx + py * by) / length_sq
    t = min(max(t, 0.0), 1.0)
    closest = (a_lat + t * (b_lat - a_lat), a_lon + t * (b_lon - a_lon))
    return distance_m((p_lat, p_lon), closest)


def path_length_m(points: Iterable[Any]) -> float:
    """Sum of haversine distances along an ordered sequence of points."""

    coords = np.asarray([as_latlon(p) for p in points], dtype=np.float64)
    if len(coords) < 2:
        return 0.0
    lat = to_radians(coords[:, 0])
    lon = to_radians(coords[:, 1])
    d_lat = np.diff(lat)
    d_lon = np.diff(lon)
    h = np.sin(d_lat / 2.0) ** 2 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(
        d_lon / 2.0
    ) ** 2
    c = 2.0 * np.arctan2(np.sqrt(h), np.sqrt(1.0 - h))
    return float(np.sum(EARTH_RADIUS_M * c))


def leg_distances_m(points: Sequence[Any]) -> list[float]:
    """Distance of each leg; the first entry is 0 for the starting point."""

    legs = [0.0]
    for prev, curr in zip(points, points[1:]):
        legs.append(distance_m(prev, curr))
    return legs


def mps_to_kmh(speed_mps: float) -> float:
    return speed_mps * MS_TO_KMH


def mps_to_knots(speed_mps: float) -> float:
    return speed_mps * MS_TO_KNOTS


def metres_to_nautical_miles(metres: float) -> float:
    return metres / METRES_PER_NAUTICAL_MILE
