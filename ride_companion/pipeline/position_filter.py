"""Scalar Kalman-style smoothing of raw fixes."""

from __future__ import annotations

import logging
import math
from typing import Optional

from ..config import INITIAL_VARIANCE, TrackerSettings
from ..models import FilteredPosition, RawFix, RejectReason, Rejection

_LOGGER = logging.getLogger(__name__)


class PositionFilter:
    """Blend each accepted fix into a running estimate weighted by accuracy.

    The same scalar variance is used for both axes; latitude and longitude are
    updated independently with the shared gain.
    """

    def __init__(self, settings: TrackerSettings | None = None) -> None:
        self.settings = settings or TrackerSettings()
        self._lat: Optional[float] = None
        self._lon: Optional[float] = None
        self._variance = INITIAL_VARIANCE

    @property
    def estimate(self) -> Optional[tuple[float, float]]:
        if self._lat is None or self._lon is None:
            return None
        return (self._lat, self._lon)

    @property
    def variance(self) -> float:
        return self._variance

    def accept(self, raw: RawFix) -> FilteredPosition | Rejection:
        """Return the smoothed position for ``raw`` or a low-accuracy rejection."""

        if not (
            math.isfinite(raw.latitude)
            and math.isfinite(raw.longitude)
            and math.isfinite(raw.accuracy)
        ) or raw.accuracy < 0:
            raise ValueError(
                f"Fix at {raw.timestamp} has invalid coordinates or accuracy"
            )
        if raw.accuracy > self.settings.accuracy_reject_threshold_m:
            _LOGGER.debug(
                "Fix rejected - poor accuracy %.1fm (limit %.1fm)",
                raw.accuracy,
                self.settings.accuracy_reject_threshold_m,
            )
            return Rejection(RejectReason.LOW_ACCURACY, raw.timestamp)

        measurement_variance = raw.accuracy * raw.accuracy
        if self._lat is None or self._lon is None:
            # First accepted reading establishes the baseline unfiltered.
            self._lat = raw.latitude
            self._lon = raw.longitude
            self._variance = measurement_variance
            _LOGGER.debug(
                "Filter baseline at %.6f,%.6f acc=%.1fm",
                raw.latitude,
                raw.longitude,
                raw.accuracy,
            )
        else:
            predicted = self._variance + self.settings.process_noise
            denominator = predicted + measurement_variance
            gain = predicted / denominator if denominator > 0 else 1.0
            self._lat += gain * (raw.latitude - self._lat)
            self._lon += gain * (raw.longitude - self._lon)
            self._variance = (1.0 - gain) * predicted

        return FilteredPosition(
            latitude=self._lat,
            longitude=self._lon,
            timestamp=raw.timestamp,
            accuracy=raw.accuracy,
        )

    def reset(self) -> None:
        """Forget the estimate so the next fix starts a fresh baseline."""

        self._lat = None
        self._lon = None
        self._variance = INITIAL_VARIANCE
