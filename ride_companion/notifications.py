"""Fire-and-forget rider notifications."""

from __future__ import annotations

import logging
from typing import List, Protocol

_LOGGER = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that writes messages to the log (default for headless runs)."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or logging.getLogger("ride_companion.notify")

    def notify(self, message: str) -> None:
        self._log.info("NOTIFY: %s", message)


class RecordingNotifier:
    """Keeps every message in memory; handy for tests and replays."""

    def __init__(self) -> None:
        self.messages: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)


def safe_notify(notifier: Notifier | None, message: str) -> None:
    """Deliver ``message``; display failures are logged, never raised."""

    if notifier is None:
        return
    try:
        notifier.notify(message)
    except Exception as exc:
        _LOGGER.warning("Notification failed (%s): %s", message, exc)
