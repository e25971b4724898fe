from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Engine logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class DelayedAction:
    """One-shot callback that fires once its deadline has passed.

    Nothing runs in the background: the owner calls ``poll()`` from its own
    update loop. ``cancel()`` guarantees the callback never runs afterwards.
    """

    def __init__(self, *, clock: Clock) -> None:
        self._clock = clock
        self._due_at_s: float | None = None
        self._action: Callable[[], None] | None = None

    @property
    def pending(self) -> bool:
        return self._action is not None

    def schedule(self, delay_s: float, action: Callable[[], None]) -> None:
        """Replace any pending action with ``action`` due after ``delay_s``."""
        if delay_s < 0.0:
            raise ValueError("delay_s must be >= 0")
        self._due_at_s = self._clock.now() + float(delay_s)
        self._action = action

    def cancel(self) -> None:
        self._due_at_s = None
        self._action = None

    def poll(self) -> bool:
        """Run the action if due. Returns True if it fired."""
        action = self._action
        if action is None:
            return False
        assert self._due_at_s is not None
        if self._clock.now() < self._due_at_s:
            return False
        self.cancel()
        action()
        return True
