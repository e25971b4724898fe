from __future__ import annotations

from dataclasses import dataclass

import pytest

from nback_trainer.clock import DelayedAction
from nback_trainer.cognitive_core import MatchStatus, SessionPhase
from nback_trainer.state import SessionState
from nback_trainer.trial_clock import TrialClock


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def _state(length: int) -> SessionState:
    return SessionState(sequence=tuple(range(1, length + 1)), phase=SessionPhase.RUNNING)


def _start(clock: FakeClock, state: SessionState, *, interval_s: float = 2.0):
    ticks: list[int] = []
    completions: list[int] = []
    trial_clock = TrialClock(clock=clock, interval_s=interval_s)
    trial_clock.start(
        state,
        on_tick=lambda s: ticks.append(s.live_index),
        on_complete=lambda s: completions.append(s.live_index),
    )
    return trial_clock, ticks, completions


def test_first_stimulus_is_published_at_start() -> None:
    clock = FakeClock()
    state = _state(4)

    _, ticks, completions = _start(clock, state)

    assert ticks == [0]
    assert completions == []
    assert state.live_index == 0
    assert state.live_stimulus == 1


def test_each_index_is_published_once_per_interval_then_completes_once() -> None:
    clock = FakeClock()
    state = _state(4)
    trial_clock, ticks, completions = _start(clock, state)

    clock.advance(1.5)
    assert trial_clock.update() == 0
    assert ticks == [0]

    clock.advance(0.5)
    assert trial_clock.update() == 1
    assert ticks == [0, 1]

    for _ in range(2):
        clock.advance(2.0)
        trial_clock.update()
    assert ticks == [0, 1, 2, 3]
    assert completions == []
    assert trial_clock.running is True

    # The last stimulus stays live for a full interval before completion.
    clock.advance(2.0)
    assert trial_clock.update() == 0
    assert completions == [3]
    assert trial_clock.completed is True
    assert trial_clock.running is False

    clock.advance(10.0)
    assert trial_clock.update() == 0
    assert completions == [3]
    assert ticks == [0, 1, 2, 3]


def test_stalled_update_publishes_every_missed_index_in_order() -> None:
    clock = FakeClock()
    state = _state(10)
    trial_clock, ticks, _ = _start(clock, state)

    clock.advance(6.0)
    assert trial_clock.update() == 3
    assert ticks == [0, 1, 2, 3]

    # Deadlines stay anchored to the start time.
    clock.advance(1.0)
    assert trial_clock.update() == 0
    assert trial_clock.time_until_next_tick_s() == pytest.approx(1.0)


def test_stale_match_status_is_cleared_before_next_index() -> None:
    clock = FakeClock()
    state = _state(3)
    trial_clock, _, _ = _start(clock, state)

    state.match_status = MatchStatus.CORRECT
    clock.advance(2.0)
    trial_clock.update()

    assert state.live_index == 1
    assert state.match_status is MatchStatus.NONE


def test_status_on_final_index_is_cleared_at_completion() -> None:
    clock = FakeClock()
    state = _state(2)
    trial_clock, _, completions = _start(clock, state)

    clock.advance(2.0)
    trial_clock.update()
    state.match_status = MatchStatus.INCORRECT

    clock.advance(2.0)
    trial_clock.update()

    assert completions == [1]
    assert state.live_index == 1
    assert state.match_status is MatchStatus.NONE


def test_cancel_stops_ticks_and_leaves_state_untouched() -> None:
    clock = FakeClock()
    state = _state(10)
    trial_clock, ticks, completions = _start(clock, state)

    for _ in range(4):
        clock.advance(2.0)
        trial_clock.update()
    state.score = 3
    state.match_status = MatchStatus.CORRECT

    trial_clock.cancel()
    clock.advance(100.0)

    assert trial_clock.update() == 0
    assert trial_clock.canceled is True
    assert trial_clock.time_until_next_tick_s() is None
    assert ticks == [0, 1, 2, 3, 4]
    assert completions == []
    assert state.live_index == 4
    assert state.score == 3
    assert state.match_status is MatchStatus.CORRECT


def test_cancel_from_tick_callback_stops_a_catch_up_burst() -> None:
    clock = FakeClock()
    state = _state(10)
    trial_clock = TrialClock(clock=clock, interval_s=1.0)
    ticks: list[int] = []

    def on_tick(s: SessionState) -> None:
        ticks.append(s.live_index)
        if s.live_index == 2:
            trial_clock.cancel()

    trial_clock.start(state, on_tick=on_tick)
    clock.advance(5.0)
    trial_clock.update()

    assert ticks == [0, 1, 2]


def test_trial_clock_is_single_use_and_rejects_bad_interval() -> None:
    clock = FakeClock()
    trial_clock, _, _ = _start(clock, _state(3))

    with pytest.raises(RuntimeError):
        trial_clock.start(_state(3), on_tick=lambda s: None)

    with pytest.raises(ValueError):
        TrialClock(clock=clock, interval_s=0.0)


def test_delayed_action_fires_once_when_due_and_not_after_cancel() -> None:
    clock = FakeClock()
    fired: list[float] = []
    action = DelayedAction(clock=clock)

    action.schedule(0.5, lambda: fired.append(clock.now()))
    clock.advance(0.25)
    assert action.poll() is False

    clock.advance(0.25)
    assert action.poll() is True
    assert action.poll() is False
    assert fired == [0.5]

    action.schedule(0.5, lambda: fired.append(clock.now()))
    action.cancel()
    clock.advance(1.0)
    assert action.poll() is False
    assert action.pending is False
    assert fired == [0.5]
