"""Cancellation and deadline primitives for polling loops.

Polling loops wait between ticks with ``CancellationToken.wait`` so that a
cancel from another thread (test abort, outer timeout) wakes them at once
instead of after the full tick interval.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class OperationCancelled(Exception):
    """Raised when an operation observes a cancelled token."""


class CancellationToken:
    """Operation-scoped cancellation signal backed by ``threading.Event``."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds.

        Returns:
            True if the token was cancelled before or during the wait
        """
        if timeout <= 0:
            return self._event.is_set()
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(self.reason or "cancelled")


class Deadline:
    """Fixed deadline measured on a monotonic clock."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        if seconds < 0:
            raise ValueError("Deadline must be non-negative")
        self._clock = clock
        self._start = clock()
        self.seconds = seconds

    @property
    def elapsed(self) -> float:
        return self._clock() - self._start

    @property
    def remaining(self) -> float:
        return max(0.0, self.seconds - self.elapsed)

    @property
    def expired(self) -> bool:
        return self.elapsed >= self.seconds

    def next_wait(self, interval: float) -> float:
        """Interval to sleep before the next tick, clipped to the deadline."""
        return min(interval, self.remaining)
