"""Signal quality tiers and the stationary (position hold) detector."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import TrackerSettings
from ..geo import MS_TO_KMH, distance_m
from ..models import FilteredPosition, GpsQuality

_LOGGER = logging.getLogger(__name__)


def quality_for_accuracy(accuracy_m: float) -> GpsQuality:
    """Map a single accuracy reading onto the display tiers."""

    if accuracy_m < 5:
        return GpsQuality.EXCELLENT
    if accuracy_m < 10:
        return GpsQuality.GOOD
    if accuracy_m < 20:
        return GpsQuality.FAIR
    return GpsQuality.POOR


class GpsQualityMonitor:
    """Track the quality tier from every incoming accuracy value.

    The monitor starts in ``VERY_POOR`` (no signal yet) and drops back to it
    after ``poor_streak_for_very_poor`` consecutive fixes worse than the reject
    threshold.
    """

    def __init__(self, settings: TrackerSettings | None = None) -> None:
        self.settings = settings or TrackerSettings()
        self.quality = GpsQuality.VERY_POOR
        self.last_accuracy: Optional[float] = None
        self._poor_streak = 0

    def observe(self, accuracy_m: float) -> GpsQuality:
        self.last_accuracy = accuracy_m
        if accuracy_m > self.settings.accuracy_reject_threshold_m:
            self._poor_streak += 1
        else:
            self._poor_streak = 0

        if self._poor_streak >= self.settings.poor_streak_for_very_poor:
            quality = GpsQuality.VERY_POOR
        else:
            quality = quality_for_accuracy(accuracy_m)
        if quality is not self.quality:
            _LOGGER.info("GPS quality %s -> %s", self.quality.value, quality.value)
        self.quality = quality
        return quality

    def reset(self) -> None:
        self.quality = GpsQuality.VERY_POOR
        self.last_accuracy = None
        self._poor_streak = 0


class StationaryDetector:
    """Report stationary once the position has held inside a small radius.

    A hold starts at the first non-moving sample and is anchored there. It is
    dropped by a moving sample, by a position further than
    ``stationary_radius_m`` from the anchor, or by a step between consecutive
    positions at or above the moving threshold (the rider is still rolling even
    though the smoothed speed dipped). The rider is stationary once the hold is
    at least ``stop_delay_ms`` old.
    """

    def __init__(self, settings: TrackerSettings | None = None) -> None:
        self.settings = settings or TrackerSettings()
        self._anchor: Optional[FilteredPosition] = None
        self._last: Optional[FilteredPosition] = None

    @property
    def anchor(self) -> Optional[FilteredPosition]:
        return self._anchor

    def _step_kmh(self, position: FilteredPosition) -> float:
        if self._last is None:
            return 0.0
        dt_s = (position.timestamp - self._last.timestamp) / 1000.0
        if dt_s <= 0:
            return 0.0
        return distance_m(self._last, position) / dt_s * MS_TO_KMH

    def observe(self, position: FilteredPosition, moving: bool = False) -> bool:
        if moving:
            self._anchor = None
        elif (
            self._anchor is None
            or distance_m(self._anchor, position) > self.settings.stationary_radius_m
            or self._step_kmh(position) >= self.settings.moving_threshold_kmh
        ):
            self._anchor = position
        self._last = position
        return self.is_stationary

    @property
    def held_ms(self) -> int:
        if self._anchor is None or self._last is None:
            return 0
        return self._last.timestamp - self._anchor.timestamp

    @property
    def is_stationary(self) -> bool:
        if self._anchor is None:
            return False
        return self.held_ms >= self.settings.stop_delay_ms

    def reset(self) -> None:
        self._anchor = None
        self._last = None
