"""General utility helpers shared across modules."""

from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    """Opaque random identifier; callers must never parse it."""

    return secrets.token_hex(8)


def iso_from_ms(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc).isoformat()


def ms_from_iso(value: str) -> int:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into epoch milliseconds."""

    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def format_distance(metres: float) -> str:
    km = metres / 1000.0
    return f"{metres:.0f}m" if km < 1 else f"{km:.2f}km"


def format_duration(seconds: float) -> str:
    hours, rem = divmod(int(seconds), 3600)
    mins = rem // 60
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def format_elapsed(milliseconds: int) -> str:
    """Stopwatch text: ``MM:SS.hh`` (or ``SS.hh`` under a minute)."""

    total_seconds, ms = divmod(int(milliseconds), 1000)
    minutes, seconds = divmod(total_seconds, 60)
    hundredths = ms // 10
    if minutes > 0:
        return f"{minutes:02d}:{seconds:02d}.{hundredths:02d}"
    return f"{seconds:02d}.{hundredths:02d}"
