"""
Clock seam.

Services never call ``datetime.now`` for domain timestamps; they ask the
clock, so deadline comparisons can be tested without real time.

Usage:
    from scisubmit.core.clock import get_clock

    now = get_clock().now()
"""

from datetime import datetime, timezone
from typing import Protocol

from flask import current_app, has_app_context

CLOCK_EXTENSION_KEY = "scisubmit.clock"


class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current instant as an aware UTC datetime."""


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._instant

    def advance(self, delta) -> None:
        self._instant = self._instant + delta


_default_clock = SystemClock()


def init_clock(app, clock: Clock | None = None) -> None:
    app.extensions[CLOCK_EXTENSION_KEY] = clock or _default_clock


def get_clock(clock: Clock | None = None) -> Clock:
    """Return ``clock`` if given, else the app's clock, else the system clock."""
    if clock is not None:
        return clock
    if has_app_context():
        return current_app.extensions.get(CLOCK_EXTENSION_KEY, _default_clock)
    return _default_clock
