"""Central configuration for the ride companion pipeline.

Module-level constants hold the defaults and may be overridden through
environment variables (optionally via a local `.env`). Components share a
single :class:`TrackerSettings` instance so that runtime changes made by the
presentation layer are picked up on the next fix.
"""

from __future__ import annotations

import importlib
import math
import os
from dataclasses import dataclass, fields


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Movement detection
# ---------------------------------------------------------------------------
# Smoothed speed (km/h) at or above which the rider counts as moving.
MOVING_THRESHOLD_KMH = _env_float("RIDE_MOVING_THRESHOLD_KMH", 5.0)

# How long (ms) the position must stay inside the stationary radius before the
# auto-timer is allowed to stop.
STOP_DELAY_MS = _env_int("RIDE_STOP_DELAY_MS", 3000)

# Radius (metres) the position may wander while still counting as stationary.
STATIONARY_RADIUS_M = _env_float("RIDE_STATIONARY_RADIUS_M", 20.0)


# ---------------------------------------------------------------------------
# Signal filtering
# ---------------------------------------------------------------------------
# Fixes reporting a worse horizontal accuracy (metres) are dropped.
ACCURACY_REJECT_THRESHOLD_M = _env_float("RIDE_ACCURACY_REJECT_THRESHOLD_M", 20.0)

# Kalman process noise. Empirically tuned; treat as a knob, not a constant.
PROCESS_NOISE = _env_float("RIDE_PROCESS_NOISE", 0.5)

# Variance assigned to the filter after a reset (no prior estimate).
INITIAL_VARIANCE = 1000.0

# Number of speed samples averaged for the displayed speed.
SPEED_HISTORY_LENGTH = _env_int("RIDE_SPEED_HISTORY_LENGTH", 5)

# Consecutive fixes further apart than this (seconds) are not paired for speed.
MAX_DT_S = _env_float("RIDE_MAX_DT_S", 10.0)

# Fastest plausible bicycle speed (km/h); faster readings are treated as spikes.
MAX_REALISTIC_SPEED_KMH = _env_float("RIDE_MAX_REALISTIC_SPEED_KMH", 80.0)


# Consecutive rejected fixes before the signal is reported as very poor.
POOR_STREAK_FOR_VERY_POOR = _env_int("RIDE_POOR_STREAK_FOR_VERY_POOR", 4)


# ---------------------------------------------------------------------------
# Route tracking
# ---------------------------------------------------------------------------
REACH_RADIUS_M = _env_float("RIDE_REACH_RADIUS_M", 50.0)
DEVIATION_THRESHOLD_M = _env_float("RIDE_DEVIATION_THRESHOLD_M", 100.0)

# Minimum spacing (metres) between points of a recorded trace.
MIN_RECORD_DISTANCE_M = _env_float("RIDE_MIN_RECORD_DISTANCE_M", 5.0)

# Below this ground speed no ETA is shown; longer ETAs are capped.
ETA_MIN_SPEED_KNOTS = _env_float("RIDE_ETA_MIN_SPEED_KNOTS", 10.0)
ETA_CAP_MINUTES = _env_float("RIDE_ETA_CAP_MINUTES", 999.0)


# ---------------------------------------------------------------------------
# Stopwatch
# ---------------------------------------------------------------------------
AUTO_START_ENABLED = _env_bool("RIDE_AUTO_START_ENABLED", True)
MAX_LAPS = 5

# Display refresh intervals (seconds) for the elapsed-time and clock ticks.
ELAPSED_TICK_INTERVAL_S = 0.01
CLOCK_TICK_INTERVAL_S = 1.0


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------
# Directory (absolute or relative) holding saved route documents.
ROUTE_STORE_DIR = os.getenv("RIDE_ROUTE_STORE_DIR", "saved_routes")


@dataclass(slots=True)
class TrackerSettings:
    """Runtime-tunable options shared by every pipeline component."""

    moving_threshold_kmh: float = MOVING_THRESHOLD_KMH
    stop_delay_ms: int = STOP_DELAY_MS
    stationary_radius_m: float = STATIONARY_RADIUS_M
    accuracy_reject_threshold_m: float = ACCURACY_REJECT_THRESHOLD_M
    process_noise: float = PROCESS_NOISE
    speed_history_length: int = SPEED_HISTORY_LENGTH
    max_dt_s: float = MAX_DT_S
    max_realistic_speed_kmh: float = MAX_REALISTIC_SPEED_KMH
    poor_streak_for_very_poor: int = POOR_STREAK_FOR_VERY_POOR
    reach_radius_m: float = REACH_RADIUS_M
    deviation_threshold_m: float = DEVIATION_THRESHOLD_M
    min_record_distance_m: float = MIN_RECORD_DISTANCE_M
    eta_min_speed_knots: float = ETA_MIN_SPEED_KNOTS
    eta_cap_minutes: float = ETA_CAP_MINUTES
    auto_start_enabled: bool = AUTO_START_ENABLED

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise ``ValueError`` when any numeric option is out of range."""

        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, bool):
                continue
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{item.name} must be a non-negative number")
        if self.speed_history_length < 1:
            raise ValueError("speed_history_length must be at least 1")
        if self.max_dt_s <= 0:
            raise ValueError("max_dt_s must be greater than zero")

    def update(self, **changes: float | int | bool) -> None:
        """Apply ``changes`` in place, rolling back if validation fails."""

        known = {item.name for item in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
        previous = {name: getattr(self, name) for name in changes}
        for name, value in changes.items():
            setattr(self, name, value)
        try:
            self.validate()
        except ValueError:
            for name, value in previous.items():
                setattr(self, name, value)
            raise
