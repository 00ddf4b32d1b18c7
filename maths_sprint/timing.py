from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""
        ...


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class TickDriver(Protocol):
    """Cancellable repeating timer that calls back once per interval."""

    def start(self, interval_s: float, callback: Callable[[], None]) -> None: ...
    def cancel(self) -> None: ...


class ClockTicker:
    """Polled tick driver.

    Nothing happens in the background: each :meth:`poll` fires the callback
    once for every whole interval that has elapsed on the clock since the
    last fire.  A test advancing a fake clock by 1.2s at 0.5s intervals gets
    two ticks and keeps the remaining 0.2s for the next poll.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._interval_s: float | None = None
        self._callback: Callable[[], None] | None = None
        self._next_at_s: float | None = None
        self.fired = 0

    @property
    def active(self) -> bool:
        return self._callback is not None

    def start(self, interval_s: float, callback: Callable[[], None]) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._interval_s = float(interval_s)
        self._callback = callback
        self._next_at_s = self._clock.now() + self._interval_s

    def cancel(self) -> None:
        self._interval_s = None
        self._callback = None
        self._next_at_s = None

    def poll(self) -> int:
        """Fire any due ticks. Returns the number fired."""

        count = 0
        # The callback may cancel the ticker (race finished), so re-check each pass.
        while self._callback is not None:
            assert self._next_at_s is not None and self._interval_s is not None
            if self._clock.now() < self._next_at_s:
                break
            self._next_at_s += self._interval_s
            self._callback()
            count += 1
        self.fired += count
        return count
