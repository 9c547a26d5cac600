# src/cwlog/core/clock.py
"""Clock abstraction for event timestamps.

Log events are stamped with wall-clock milliseconds at append time. The
clock is passed to the writer explicitly so tests can control time
without patching module globals.

Production code uses SystemClock (the default).
Tests inject MockClock to control time advancement.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Abstract wall clock used to timestamp log events.

    Implementations:
    - SystemClock: Uses time.time_ns() (production)
    - MockClock: Returns controllable times (testing)
    """

    def time_ms(self) -> int:
        """Return milliseconds since the Unix epoch."""
        ...


class SystemClock:
    """Production clock backed by the system wall clock."""

    def time_ms(self) -> int:
        """Return current wall-clock time in milliseconds."""
        return time.time_ns() // 1_000_000


class MockClock:
    """Controllable clock for deterministic testing.

    Example:
        clock = MockClock(start=1_000)
        writer = LogWriter(destination, client, clock=clock)

        writer.write(b"first\\n")    # stamped 1000
        clock.advance(250)
        writer.write(b"second\\n")   # stamped 1250
    """

    def __init__(self, start: int = 0) -> None:
        """Initialize mock clock at a given time.

        Args:
            start: Initial time in milliseconds (default 0).
        """
        self._current = start

    def time_ms(self) -> int:
        """Return current mock time."""
        return self._current

    def advance(self, millis: int) -> None:
        """Advance mock time by the given number of milliseconds.

        Raises:
            ValueError: If millis is negative.
        """
        if millis < 0:
            raise ValueError(f"Cannot advance time by negative amount: {millis}")
        self._current += millis

    def set(self, value: int) -> None:
        """Set mock time to an absolute value.

        Unlike advance(), this can move time backwards. The event buffer
        clamps timestamps so appended events still never go backwards.
        """
        self._current = value


# Default clock for production use
DEFAULT_CLOCK: Clock = SystemClock()
