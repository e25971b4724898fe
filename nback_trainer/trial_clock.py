from __future__ import annotations

import logging
from collections.abc import Callable

from .clock import Clock
from .state import SessionState

logger = logging.getLogger(__name__)

TickCallback = Callable[[SessionState], None]


class TrialClock:
    """Advances ``live_index`` through a sequence at a fixed period.

    Single use: one instance drives one session. Time is entirely via the
    injected Clock and the owner calls ``update()`` from its loop. Deadlines
    are anchored to ``start()`` so late updates do not accumulate drift, and
    a late update still publishes every index it passed over, in order.
    """

    def __init__(self, *, clock: Clock, interval_s: float) -> None:
        if interval_s <= 0.0:
            raise ValueError("interval_s must be > 0")
        self._clock = clock
        self._interval_s = float(interval_s)

        self._state: SessionState | None = None
        self._on_tick: TickCallback | None = None
        self._on_complete: TickCallback | None = None

        self._started_at_s: float | None = None
        self._index = -1
        self._running = False
        self._canceled = False
        self._completed = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def canceled(self) -> bool:
        return self._canceled

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def index(self) -> int:
        return self._index

    def start(
        self,
        state: SessionState,
        on_tick: TickCallback,
        on_complete: TickCallback | None = None,
    ) -> None:
        if self._started_at_s is not None:
            raise RuntimeError("TrialClock instances cannot be restarted")

        self._state = state
        self._on_tick = on_tick
        self._on_complete = on_complete
        self._started_at_s = self._clock.now()
        self._running = True

        if len(state.sequence) == 0:
            self._complete()
            return
        self._publish(0)

    def cancel(self) -> None:
        if not self._running:
            return
        self._running = False
        self._canceled = True
        logger.debug("trial clock canceled at index %d", self._index)

    def update(self) -> int:
        """Publish every tick whose deadline has passed. Returns the count."""

        if not self._running:
            return 0
        state = self._state
        assert state is not None

        now = self._clock.now()
        published = 0
        while self._running and now >= self._deadline_s(self._index):
            state.clear_match_status()
            next_index = self._index + 1
            if next_index >= len(state.sequence):
                self._complete()
                break
            self._publish(next_index)
            published += 1
        return published

    def time_until_next_tick_s(self) -> float | None:
        if not self._running:
            return None
        return max(0.0, self._deadline_s(self._index) - self._clock.now())

    def _deadline_s(self, index: int) -> float:
        assert self._started_at_s is not None
        return self._started_at_s + (index + 1) * self._interval_s

    def _publish(self, index: int) -> None:
        state = self._state
        assert state is not None and self._on_tick is not None
        self._index = index
        state.advance_to(index)
        logger.debug("tick %d/%d stimulus=%s", index + 1, len(state.sequence), state.live_stimulus)
        self._on_tick(state)

    def _complete(self) -> None:
        self._running = False
        self._completed = True
        logger.debug("trial clock finished after %d ticks", self._index + 1)
        if self._on_complete is not None and self._state is not None:
            self._on_complete(self._state)
