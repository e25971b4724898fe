from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from .clock import Clock, DelayedAction
from .cognitive_core import GameMode, MatchStatus, SeededRng, SessionPhase, Stimulus, StimulusSequence
from .config import GameConfig, parse_mode
from .evaluator import MatchEvaluator
from .presentation import StimulusSink, build_cue
from .sequence import MAX_RETRIES_PER_POSITION, SequenceGenerator
from .state import SessionSnapshot, SessionState
from .trial_clock import TrialClock

logger = logging.getLogger(__name__)

Listener = Callable[[SessionSnapshot], None]


class HighScoreStore(Protocol):
    def get_high_score(self) -> int: ...

    def save_high_score(self, score: int) -> None: ...


@dataclass(frozen=True, slots=True)
class JudgmentEvent:
    index: int
    stimulus: Stimulus
    n_back_stimulus: Stimulus
    status: MatchStatus
    score_after: int
    presented_at_s: float
    judged_at_s: float
    response_time_s: float


class NBackEngine:
    """Owns one SessionState and is its only writer.

    Lifecycle: IDLE -> RUNNING -> COMPLETED, or RUNNING -> CANCELED.
    ``start_game()`` is allowed from any phase; from RUNNING it cancels the
    current clock before anything is reset. Observers get a fresh
    ``SessionSnapshot`` after every change.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        seed: int,
        config: GameConfig | None = None,
        high_scores: HighScoreStore | None = None,
        sink: StimulusSink | None = None,
        max_retries: int = MAX_RETRIES_PER_POSITION,
    ) -> None:
        self._clock = clock
        self._seed = int(seed)
        self._config = config or GameConfig()
        self._high_scores = high_scores
        self._sink = sink

        self._generator = SequenceGenerator(SeededRng(self._seed), max_retries=max_retries)
        self._evaluator = MatchEvaluator()
        self._flash = DelayedAction(clock=clock)
        self._trial_clock: TrialClock | None = None

        self._state = SessionState(
            mode=self._config.mode,
            n=self._config.n,
            interval_ms=self._config.interval_ms,
            high_score=self._read_high_score(fallback=0),
        )
        self._listeners: list[Listener] = []
        self._events: list[JudgmentEvent] = []
        self._presented_at_s: float | None = None

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def phase(self) -> SessionPhase:
        return self._state.phase

    @property
    def sequence(self) -> StimulusSequence:
        return self._state.sequence

    @property
    def high_score(self) -> int:
        return self._state.high_score

    def snapshot(self) -> SessionSnapshot:
        return self._state.snapshot()

    def events(self) -> list[JudgmentEvent]:
        return list(self._events)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unregisters it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_mode(self, mode: GameMode | str) -> None:
        """Choose the mode for the next session; a running session keeps its own."""

        self._config = self._config.with_mode(parse_mode(mode))
        logger.debug("game mode set to %s", self._config.mode.value)
        if self._state.phase is not SessionPhase.RUNNING:
            self._state.mode = self._config.mode
            self._notify()

    def start_game(self, config: GameConfig | None = None) -> None:
        """Start a new session.

        Raises InvalidParameters or GenerationExhausted before touching any
        state, so a failed start leaves the previous session as it was.
        """

        cfg = config or self._config
        cfg.validate()
        sequence = self._generator.generate(cfg.sequence_length, cfg.alphabet_size, cfg.guaranteed_matches, cfg.n)

        self._stop_timers()
        self._config = cfg
        self._events.clear()
        self._presented_at_s = None

        state = self._state
        state.reset(mode=cfg.mode, n=cfg.n, interval_ms=cfg.interval_ms, sequence=sequence)
        state.high_score = self._read_high_score(fallback=state.high_score)
        state.phase = SessionPhase.RUNNING
        logger.debug("game reset; %s sequence: %s", cfg.mode.value, sequence)

        trial_clock = TrialClock(clock=self._clock, interval_s=cfg.interval_s)
        self._trial_clock = trial_clock
        trial_clock.start(state, on_tick=self._on_tick, on_complete=self._on_complete)

    def check_match(self) -> MatchStatus:
        """Judge the live stimulus as an N-back match.

        Outside RUNNING this returns NONE and changes nothing.
        """

        state = self._state
        if state.phase is not SessionPhase.RUNNING:
            return MatchStatus.NONE

        already_judged = state.judged
        status = self._evaluator.evaluate(state)
        if status is MatchStatus.NONE or already_judged:
            return status

        judged_at_s = self._clock.now()
        presented_at_s = judged_at_s if self._presented_at_s is None else self._presented_at_s
        self._events.append(
            JudgmentEvent(
                index=state.live_index,
                stimulus=state.sequence[state.live_index],
                n_back_stimulus=state.sequence[state.live_index - state.n],
                status=status,
                score_after=state.score,
                presented_at_s=presented_at_s,
                judged_at_s=judged_at_s,
                response_time_s=max(0.0, judged_at_s - presented_at_s),
            )
        )
        if self._config.flash_ms > 0:
            self._flash.schedule(self._config.flash_s, self.reset_match_status)
        self._notify()
        return status

    submit_judgment = check_match

    def reset_match_status(self) -> None:
        state = self._state
        if state.phase is not SessionPhase.RUNNING:
            return
        self._flash.cancel()
        if state.match_status is MatchStatus.NONE:
            return
        state.clear_match_status()
        self._notify()

    def cancel(self) -> None:
        state = self._state
        if state.phase is not SessionPhase.RUNNING:
            return
        self._stop_timers()
        state.phase = SessionPhase.CANCELED
        logger.debug("session canceled at index %d with score %d", state.live_index, state.score)
        self._notify()

    def update(self) -> None:
        if self._state.phase is not SessionPhase.RUNNING:
            return
        self._flash.poll()
        if self._trial_clock is not None:
            self._trial_clock.update()

    def time_until_next_tick_s(self) -> float | None:
        if self._trial_clock is None:
            return None
        return self._trial_clock.time_until_next_tick_s()

    def _on_tick(self, state: SessionState) -> None:
        self._flash.cancel()
        stimulus = state.live_stimulus
        assert stimulus is not None
        cue = build_cue(state.mode, index=state.live_index, stimulus=stimulus)
        state.cue = cue
        self._presented_at_s = self._clock.now()
        if self._sink is not None:
            self._sink.present_stimulus(cue, state.mode)
        self._notify()

    def _on_complete(self, state: SessionState) -> None:
        self._flash.cancel()
        state.phase = SessionPhase.COMPLETED
        logger.debug("session complete: score=%d correct=%d", state.score, state.correct_count)
        if state.score > state.high_score:
            logger.info("new high score %d (was %d)", state.score, state.high_score)
            state.high_score = state.score
            if self._high_scores is not None:
                self._high_scores.save_high_score(state.score)
        self._notify()

    def _stop_timers(self) -> None:
        self._flash.cancel()
        if self._trial_clock is not None:
            self._trial_clock.cancel()
            self._trial_clock = None

    def _read_high_score(self, *, fallback: int) -> int:
        if self._high_scores is None:
            return fallback
        return int(self._high_scores.get_high_score())

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self._state.snapshot()
        for listener in list(self._listeners):
            listener(snap)


def build_nback_engine(
    *,
    clock: Clock,
    seed: int,
    config: GameConfig | None = None,
    high_scores: HighScoreStore | None = None,
    sink: StimulusSink | None = None,
) -> NBackEngine:
    return NBackEngine(
        clock=clock,
        seed=seed,
        config=config,
        high_scores=high_scores,
        sink=sink,
    )
