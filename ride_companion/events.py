"""Events emitted by the core and a minimal subscribe/notify bus.

Presentation code subscribes per event type; the core only calls
:meth:`EventBus.emit` and otherwise exposes pull-based getters.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict, List, Type

from .models import GpsQuality, MotionSample, Waypoint

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WaypointReached:
    index: int
    waypoint: Waypoint
    timestamp: int


@dataclass(frozen=True, slots=True)
class RouteCompleted:
    elapsed_minutes: float
    actual_distance_km: float
    timestamp: int


@dataclass(frozen=True, slots=True)
class OffRoute:
    distance_m: float
    segment_index: int
    timestamp: int


@dataclass(frozen=True, slots=True)
class MotionUpdated:
    sample: MotionSample


@dataclass(frozen=True, slots=True)
class QualityChanged:
    quality: GpsQuality


@dataclass(frozen=True, slots=True)
class TimerStateChanged:
    running: bool
    elapsed_ms: int
    automatic: bool


Handler = Callable[[Any], None]


class EventBus:
    """Synchronous fan-out of events to subscribed handlers.

    A handler that raises is logged and skipped so one faulty consumer cannot
    interrupt fix processing.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[Type[Any], List[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[Any], handler: Handler) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it."""

        with self._lock:
            self._handlers[event_type].append(handler)

        def _unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(event_type, [])
                if handler in handlers:
                    handlers.remove(handler)

        return _unsubscribe

    def emit(self, event: Any) -> None:
        with self._lock:
            handlers = list(self._handlers.get(type(event), ()))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                _LOGGER.exception(
                    "Event handler %r failed for %s", handler, type(event).__name__
                )
