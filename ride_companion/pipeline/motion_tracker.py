"""Distance and time accumulation over a live stream of raw fixes."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import TrackerSettings
from ..geo import MS_TO_KMH, distance_m
from ..models import (
    FilteredPosition,
    LatLon,
    MotionSample,
    RawFix,
    RejectReason,
    Rejection,
    TripStats,
)
from .position_filter import PositionFilter
from .speed_estimator import SpeedEstimator

_LOGGER = logging.getLogger(__name__)


class MotionTracker:
    """Run fixes through the filter and speed estimator and keep trip totals.

    Distance and moving time only accrue while the smoothed speed is at or
    above the moving threshold; total time always accrues for paired fixes.
    """

    def __init__(
        self,
        settings: TrackerSettings | None = None,
        position_filter: PositionFilter | None = None,
        speed_estimator: SpeedEstimator | None = None,
    ) -> None:
        self.settings = settings or TrackerSettings()
        self.position_filter = position_filter or PositionFilter(self.settings)
        self.speed_estimator = speed_estimator or SpeedEstimator(self.settings)
        self.previous: Optional[FilteredPosition] = None
        self.last_known_position: Optional[LatLon] = None
        self.trip_distance_m = 0.0
        self.total_distance_m = 0.0
        self.moving_time_s = 0.0
        self.total_time_s = 0.0

    def ingest(self, raw: RawFix) -> MotionSample | Rejection:
        """Process one raw fix to completion; never raises for a bad sample."""

        if self.previous is not None and raw.timestamp <= self.previous.timestamp:
            _LOGGER.debug(
                "Fix rejected - out of order (%s <= %s)",
                raw.timestamp,
                self.previous.timestamp,
            )
            self.last_known_position = (raw.latitude, raw.longitude)
            return Rejection(RejectReason.OUT_OF_ORDER, raw.timestamp)

        try:
            filtered = self.position_filter.accept(raw)
        except ValueError as exc:
            _LOGGER.debug("Fix rejected - %s", exc)
            return Rejection(RejectReason.INVALID, raw.timestamp)
        if isinstance(filtered, Rejection):
            return filtered
        self.last_known_position = filtered.latlon

        previous = self.previous
        if previous is None:
            self.previous = filtered
            return MotionSample(speed_kmh=0.0, is_moving=False, timestamp=raw.timestamp)

        speed = self.speed_estimator.observe(previous, filtered)
        if speed is None:
            # Gap too long to pair; restart accrual from this point.
            self.previous = filtered
            return Rejection(RejectReason.STALE_GAP, raw.timestamp)

        dt = (filtered.timestamp - previous.timestamp) / 1000.0
        moving = self.speed_estimator.is_moving(speed)
        if moving:
            travelled = distance_m(previous, filtered)
            self.trip_distance_m += travelled
            self.total_distance_m += travelled
            self.moving_time_s += dt
        self.total_time_s += dt
        self.previous = filtered
        return MotionSample(speed_kmh=speed, is_moving=moving, timestamp=raw.timestamp)

    @property
    def current_speed_kmh(self) -> float:
        return self.speed_estimator.current_speed_kmh

    @property
    def max_speed_kmh(self) -> float:
        return self.speed_estimator.max_speed_kmh

    @property
    def is_moving(self) -> bool:
        return self.speed_estimator.is_moving(self.current_speed_kmh)

    @property
    def average_speed_kmh(self) -> float:
        """Trip average over moving time only, so stops do not dilute it."""

        if self.moving_time_s <= 0:
            return 0.0
        return self.trip_distance_m / self.moving_time_s * MS_TO_KMH

    def moving_time_percentage(self) -> float:
        if self.total_time_s == 0:
            return 0.0
        return self.moving_time_s / self.total_time_s * 100.0

    def stats(self) -> TripStats:
        return TripStats(
            total_distance_m=self.total_distance_m,
            trip_distance_m=self.trip_distance_m,
            current_speed_kmh=self.current_speed_kmh,
            max_speed_kmh=self.max_speed_kmh,
            average_speed_kmh=self.average_speed_kmh,
            moving_time_s=self.moving_time_s,
            total_time_s=self.total_time_s,
        )

    def reset_filters(self) -> None:
        """Cold-start the pipeline: filter estimate, speed history and pairing."""

        self.position_filter.reset()
        self.speed_estimator.reset()
        self.previous = None
        self.last_known_position = None

    def reset_trip(self) -> None:
        self.trip_distance_m = 0.0
        self.moving_time_s = 0.0
        self.total_time_s = 0.0
        self.speed_estimator.reset()
        self.speed_estimator.reset_max()
        _LOGGER.info("Trip reset")

    def reset_all(self) -> None:
        self.reset_trip()
        self.total_distance_m = 0.0
        _LOGGER.info("All statistics reset")
