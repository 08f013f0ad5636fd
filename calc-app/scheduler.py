"""
Tape Calc - Cancellable Delayed Call

The app runs a single-threaded pygame loop, so "timers" are deadlines that
the loop polls once per frame.  A DebouncedCall holds at most one pending
deadline: scheduling again pushes it back, cancelling drops it.
"""

from __future__ import annotations

import time
from typing import Callable


class DebouncedCall:
    """Run *func* once, *delay* seconds after the last :meth:`schedule`.

    Args:
        func:  Zero-argument callable to run when the deadline passes.
        delay: Settle delay in seconds.
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(self, func: Callable[[], object], delay: float,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self._func = func
        self._delay = delay
        self._clock = clock
        self._due: float | None = None

    @property
    def pending(self) -> bool:
        return self._due is not None

    def schedule(self) -> None:
        self._due = self._clock() + self._delay

    def cancel(self) -> None:
        self._due = None

    def poll(self, now: float | None = None) -> bool:
        """Fire the call if its deadline has passed.  Returns ``True`` if it ran."""
        if self._due is None:
            return False
        if now is None:
            now = self._clock()
        if now < self._due:
            return False
        self._due = None
        self._func()
        return True
