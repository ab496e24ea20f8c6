"""Ride stopwatch that starts and stops itself from motion samples."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, List, Optional

from .config import MAX_LAPS, TrackerSettings
from .events import EventBus, TimerStateChanged
from .models import GpsQuality, MotionSample
from .utils import format_elapsed, now_ms

_LOGGER = logging.getLogger(__name__)


class TimerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class AutoTimerController:
    """Stopwatch with motion-driven auto start/stop and manual controls.

    Auto start needs a moving sample and a usable signal. Auto stop needs a
    non-moving sample *and* a stationary position (held inside a small radius
    for ``stop_delay_ms``), so a short dip below the threshold while coasting
    does not stop the clock.

    A manual :meth:`start_stop` holds automatic evaluation until the motion
    state agrees with the manual choice, so the next sample cannot undo it.
    """

    def __init__(
        self,
        settings: TrackerSettings | None = None,
        bus: EventBus | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.settings = settings or TrackerSettings()
        self.bus = bus or EventBus()
        self._clock = clock
        self.state = TimerState.STOPPED
        self._start_time = 0
        self._elapsed_ms = 0
        self.laps: List[int] = []
        self._manual_hold: Optional[bool] = None

    @property
    def running(self) -> bool:
        return self.state is TimerState.RUNNING

    @property
    def elapsed_ms(self) -> int:
        if self.running:
            return self._clock() - self._start_time
        return self._elapsed_ms

    @property
    def formatted(self) -> str:
        return format_elapsed(self.elapsed_ms)

    @property
    def auto_start_enabled(self) -> bool:
        return self.settings.auto_start_enabled

    def on_sample(
        self, sample: MotionSample, stationary: bool, quality: GpsQuality
    ) -> bool:
        """Evaluate auto start/stop; returns True when the state changed."""

        if self._manual_hold is not None:
            if sample.is_moving == self._manual_hold:
                self._manual_hold = None
            return False
        if not self.settings.auto_start_enabled:
            return False

        if not self.running:
            if sample.is_moving and quality is not GpsQuality.VERY_POOR:
                _LOGGER.info("Auto-starting timer at %.1f km/h", sample.speed_kmh)
                self._start(automatic=True)
                return True
        elif not sample.is_moving and stationary:
            _LOGGER.info("Auto-stopping timer at %.1f km/h", sample.speed_kmh)
            self._stop(automatic=True)
            return True
        return False

    def start_stop(self) -> None:
        if self.running:
            self._stop(automatic=False)
            self._manual_hold = False
        else:
            self._start(automatic=False)
            self._manual_hold = True

    def reset(self) -> None:
        """Zero the stopwatch and laps; ignored while running."""

        if self.running:
            return
        self._elapsed_ms = 0
        self._start_time = 0
        self.laps = []
        self._manual_hold = None

    def lap(self) -> None:
        """Record a lap (newest first, most recent ``MAX_LAPS`` kept)."""

        if not self.running:
            return
        self.laps.insert(0, self.elapsed_ms)
        del self.laps[MAX_LAPS:]

    def set_auto_start(self, enabled: bool) -> None:
        self.settings.update(auto_start_enabled=enabled)
        if not enabled and self.running:
            _LOGGER.info("Auto-start disabled - timer continues in manual mode")

    def toggle_auto_start(self) -> None:
        self.set_auto_start(not self.settings.auto_start_enabled)

    def _start(self, automatic: bool) -> None:
        # Resume-aware: elapsed time carries over a stop/start pair.
        self._start_time = self._clock() - self._elapsed_ms
        self.state = TimerState.RUNNING
        self.bus.emit(TimerStateChanged(True, self._elapsed_ms, automatic))

    def _stop(self, automatic: bool) -> None:
        self._elapsed_ms = self._clock() - self._start_time
        self.state = TimerState.STOPPED
        self.bus.emit(TimerStateChanged(False, self._elapsed_ms, automatic))


class PeriodicTicker:
    """Call ``callback`` every ``interval_s`` on a daemon thread until cancelled."""

    def __init__(
        self, interval_s: float, callback: Callable[[], None], name: str = "ticker"
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be greater than zero")
        self.interval_s = interval_s
        self._callback = callback
        self._name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def cancel(self, timeout: float = 1.0) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            try:
                self._callback()
            except Exception:
                _LOGGER.exception("Ticker %s callback failed", self._name)
