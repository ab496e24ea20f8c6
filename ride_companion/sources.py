"""Fix sources: replay of recorded fixes and a simple ride simulator.

Every source pushes ``RawFix`` values (or ``None`` for "no signal yet") to
subscribed callbacks. Cancelling a subscription takes effect immediately,
including in the middle of a replay.
"""

from __future__ import annotations

import logging
import math
import threading
from os import PathLike
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol, Sequence

import numpy as np
import pandas as pd

from .geo import EARTH_RADIUS_M, distance_m, to_degrees, to_radians
from .models import RawFix, Waypoint
from .utils import new_id

_LOGGER = logging.getLogger(__name__)

FixCallback = Callable[[Optional[RawFix]], None]
PathInput = str | Path | PathLike[str]

REQUIRED_FIX_COLUMNS = ("latitude", "longitude", "accuracy", "timestamp")
REQUIRED_WAYPOINT_COLUMNS = ("latitude", "longitude")


class Subscription:
    def __init__(self, on_cancel: Callable[["Subscription"], None]) -> None:
        self._on_cancel = on_cancel
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._on_cancel(self)


class FixSource(Protocol):
    def available(self) -> bool: ...

    def subscribe(self, callback: FixCallback) -> Subscription: ...


class ReplayFixSource:
    """Push a pre-recorded list of fixes to subscribers on :meth:`play`."""

    def __init__(self, fixes: Iterable[Optional[RawFix]]) -> None:
        self.fixes: List[Optional[RawFix]] = list(fixes)
        self._subscribers: list[tuple[Subscription, FixCallback]] = []
        self._lock = threading.Lock()

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "ReplayFixSource":
        return cls(frame_to_fixes(frame))

    @classmethod
    def from_csv(cls, path: PathInput) -> "ReplayFixSource":
        return cls(load_fixes_csv(path))

    def available(self) -> bool:
        return any(fix is not None for fix in self.fixes)

    def subscribe(self, callback: FixCallback) -> Subscription:
        subscription = Subscription(self._remove)
        with self._lock:
            self._subscribers.append((subscription, callback))
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscribers = [
                (sub, cb) for sub, cb in self._subscribers if sub is not subscription
            ]

    def play(self) -> int:
        """Deliver every fix in order; returns how many were delivered."""

        delivered = 0
        for fix in self.fixes:
            with self._lock:
                targets = [(sub, cb) for sub, cb in self._subscribers if sub.active]
            if not targets:
                break
            for subscription, callback in targets:
                if subscription.active:
                    callback(fix)
            delivered += 1
        _LOGGER.debug("Replay delivered %d/%d fixes", delivered, len(self.fixes))
        return delivered


def _optional(value: object) -> Optional[float]:
    if value is None:
        return None
    number = float(value)  # type: ignore[arg-type]
    return None if math.isnan(number) else number


def frame_to_fixes(frame: pd.DataFrame) -> List[Optional[RawFix]]:
    """Convert a DataFrame of fixes; rows without coordinates become ``None``."""

    missing = [col for col in REQUIRED_FIX_COLUMNS if col not in frame.columns]
    if missing:
        raise ValueError(f"Fix data missing column(s): {', '.join(missing)}")
    fixes: List[Optional[RawFix]] = []
    for row in frame.itertuples(index=False):
        lat = _optional(getattr(row, "latitude"))
        lon = _optional(getattr(row, "longitude"))
        accuracy = _optional(getattr(row, "accuracy"))
        timestamp = _optional(getattr(row, "timestamp"))
        if lat is None or lon is None or accuracy is None or timestamp is None:
            fixes.append(None)
            continue
        fixes.append(
            RawFix(
                latitude=lat,
                longitude=lon,
                accuracy=accuracy,
                timestamp=int(timestamp),
                speed_reported=_optional(getattr(row, "speed", None)),
                heading=_optional(getattr(row, "heading", None)),
            )
        )
    return fixes


def load_fixes_csv(path: PathInput) -> List[Optional[RawFix]]:
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Fix file not found: {path}")
    return frame_to_fixes(pd.read_csv(path))


def load_waypoints_csv(path: PathInput) -> List[Waypoint]:
    """Read a planned route (``name``, ``latitude``, ``longitude`` ...) in file order."""

    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Route file not found: {path}")
    frame = pd.read_csv(path)
    missing = [col for col in REQUIRED_WAYPOINT_COLUMNS if col not in frame.columns]
    if missing:
        raise ValueError(f"Route data missing column(s): {', '.join(missing)}")
    waypoints: List[Waypoint] = []
    for index, row in enumerate(frame.to_dict("records")):
        name = row.get("name")
        speed = _optional(row.get("speed_knots"))
        raw_id = row.get("id")
        if raw_id is None or (isinstance(raw_id, float) and math.isnan(raw_id)):
            raw_id = new_id()
        waypoints.append(
            Waypoint(
                id=str(raw_id),
                name=str(name) if isinstance(name, str) else f"WP{index + 1}",
                latitude=float(row["latitude"]),
                longitude=float(row["longitude"]),
                speed_knots=speed or 0.0,
            )
        )
    return waypoints


def simulate_ride(
    waypoints: Sequence[Waypoint],
    speed_kmh: float,
    start_ms: int = 0,
    interval_ms: int = 1000,
    accuracy_m: float = 5.0,
    noise_m: float = 0.0,
    seed: int | None = None,
) -> List[RawFix]:
    """Fixes for a rider moving at constant speed along ``waypoints``.

    Positions are interpolated linearly in lat/lon along each leg; optional
    Gaussian noise (``noise_m`` standard deviation) is added per axis.
    """

    if speed_kmh <= 0:
        raise ValueError("speed_kmh must be greater than zero")
    if len(waypoints) < 1:
        return []
    step_m = speed_kmh / 3.6 * interval_ms / 1000.0
    rng = np.random.default_rng(seed)
    points: list[tuple[float, float]] = [waypoints[0].latlon]
    for start, end in zip(waypoints, waypoints[1:]):
        steps = max(1, math.ceil(distance_m(start, end) / step_m))
        fractions = np.linspace(0.0, 1.0, steps + 1)[1:]
        for f in fractions:
            points.append(
                (
                    start.latitude + f * (end.latitude - start.latitude),
                    start.longitude + f * (end.longitude - start.longitude),
                )
            )

    fixes: List[RawFix] = []
    for index, (lat, lon) in enumerate(points):
        if noise_m > 0:
            d_north, d_east = rng.normal(0.0, noise_m, size=2)
            lat += to_degrees(d_north / EARTH_RADIUS_M)
            lon += to_degrees(d_east / (EARTH_RADIUS_M * math.cos(to_radians(lat))))
        fixes.append(
            RawFix(
                latitude=float(lat),
                longitude=float(lon),
                accuracy=accuracy_m,
                timestamp=start_ms + index * interval_ms,
            )
        )
    return fixes
