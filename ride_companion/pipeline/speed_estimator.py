"""Instantaneous speed from consecutive filtered positions."""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Optional

from ..config import TrackerSettings
from ..geo import MS_TO_KMH, distance_m
from ..models import FilteredPosition

_LOGGER = logging.getLogger(__name__)


class SpeedEstimator:
    """Moving-average speed with standstill and spike suppression."""

    def __init__(self, settings: TrackerSettings | None = None) -> None:
        self.settings = settings or TrackerSettings()
        self._history: Deque[float] = deque()
        self.current_speed_kmh = 0.0
        self.max_speed_kmh = 0.0

    @property
    def moving_threshold_kmh(self) -> float:
        return self.settings.moving_threshold_kmh

    @moving_threshold_kmh.setter
    def moving_threshold_kmh(self, value: float) -> None:
        self.settings.update(moving_threshold_kmh=value)

    @property
    def history(self) -> list[float]:
        return list(self._history)

    def is_moving(self, speed_kmh: float) -> bool:
        return speed_kmh >= self.settings.moving_threshold_kmh

    def observe(
        self, prev_pos: FilteredPosition, curr_pos: FilteredPosition
    ) -> Optional[float]:
        """Fold the pair into the smoothed speed.

        Returns the new smoothed speed in km/h, or ``None`` when the pair was
        discarded (out of order or separated by a gap) and no state changed.
        """

        dt = (curr_pos.timestamp - prev_pos.timestamp) / 1000.0
        if dt <= 0 or dt > self.settings.max_dt_s:
            _LOGGER.debug("Speed pair discarded dt=%.3fs", dt)
            return None

        raw_speed_kmh = distance_m(prev_pos, curr_pos) / dt * MS_TO_KMH
        speed_to_smooth = raw_speed_kmh
        if not self.is_moving(raw_speed_kmh):
            speed_to_smooth = 0.0
        elif raw_speed_kmh > self.settings.max_realistic_speed_kmh:
            _LOGGER.debug("Speed spike rejected: %.1f km/h", raw_speed_kmh)
            speed_to_smooth = 0.0

        self._history.append(speed_to_smooth)
        while len(self._history) > self.settings.speed_history_length:
            self._history.popleft()
        self.current_speed_kmh = sum(self._history) / len(self._history)

        if (
            self.current_speed_kmh > self.max_speed_kmh
            and self.current_speed_kmh <= self.settings.max_realistic_speed_kmh
        ):
            self.max_speed_kmh = self.current_speed_kmh
            _LOGGER.info("New max speed: %.1f km/h", self.max_speed_kmh)
        return self.current_speed_kmh

    def reset(self) -> None:
        """Drop the smoothing history and current speed; keep the max."""

        self._history.clear()
        self.current_speed_kmh = 0.0

    def reset_max(self) -> None:
        self.max_speed_kmh = 0.0
