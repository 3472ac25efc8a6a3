"""
clock.py - Time sources for the ledger

Classes:
- SystemClock: Wall-clock seconds since the epoch
- ManualClock: Logical time that only moves forward, for tests and simulations
"""

import time


class SystemClock:
    """Wall-clock time in whole seconds."""

    def now(self) -> int:
        return int(time.time())

    def __repr__(self):
        return "SystemClock()"


class ManualClock:
    """
    Logical clock advanced explicitly by the caller.

    Time can only move forward, never backward.
    """

    def __init__(self, start: int = 0):
        self._now = start

    def now(self) -> int:
        return self._now

    def advance_to(self, new_time: int) -> None:
        """
        Move the clock to new_time.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._now:
            raise ValueError(f"Cannot move time backwards: {new_time} < {self._now}")
        self._now = new_time

    def advance(self, seconds: int) -> int:
        """Move the clock forward by seconds and return the new time."""
        if seconds < 0:
            raise ValueError(f"seconds cannot be negative, got {seconds}")
        self._now += seconds
        return self._now

    def __repr__(self):
        return f"ManualClock(now={self._now})"
