from __future__ import annotations

from dataclasses import dataclass

from .cognitive_core import GameMode, MatchStatus, SessionPhase, Stimulus, StimulusSequence
from .presentation import StimulusCue


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Read-only view handed to observers and the UI (pure data)."""

    phase: SessionPhase
    mode: GameMode
    n: int
    interval_ms: int
    sequence_length: int
    live_index: int
    live_stimulus: Stimulus | None
    cue: StimulusCue | None
    match_status: MatchStatus
    score: int
    correct_count: int
    high_score: int


@dataclass(slots=True)
class SessionState:
    """Mutable aggregate owned by a single engine.

    ``live_index`` is -1 before the first tick. A judgment is recorded at most
    once per live index; moving to another index forgets it.
    """

    mode: GameMode = GameMode.VISUAL
    n: int = 2
    interval_ms: int = 2000
    phase: SessionPhase = SessionPhase.IDLE
    sequence: StimulusSequence = ()
    live_index: int = -1
    cue: StimulusCue | None = None
    match_status: MatchStatus = MatchStatus.NONE
    score: int = 0
    correct_count: int = 0
    high_score: int = 0

    judged_index: int | None = None
    judged_status: MatchStatus = MatchStatus.NONE

    @property
    def length(self) -> int:
        return len(self.sequence)

    @property
    def live_stimulus(self) -> Stimulus | None:
        if 0 <= self.live_index < len(self.sequence):
            return self.sequence[self.live_index]
        return None

    @property
    def judged(self) -> bool:
        return self.judged_index is not None and self.judged_index == self.live_index

    def reset(self, *, mode: GameMode, n: int, interval_ms: int, sequence: StimulusSequence) -> None:
        self.mode = mode
        self.n = int(n)
        self.interval_ms = int(interval_ms)
        self.sequence = tuple(sequence)
        self.live_index = -1
        self.cue = None
        self.match_status = MatchStatus.NONE
        self.score = 0
        self.correct_count = 0
        self.judged_index = None
        self.judged_status = MatchStatus.NONE

    def advance_to(self, index: int) -> None:
        self.live_index = int(index)
        self.cue = None
        self.match_status = MatchStatus.NONE
        self.judged_index = None
        self.judged_status = MatchStatus.NONE

    def clear_match_status(self) -> None:
        self.match_status = MatchStatus.NONE

    def record_judgment(self, status: MatchStatus) -> None:
        self.judged_index = self.live_index
        self.judged_status = status
        self.match_status = status

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            phase=self.phase,
            mode=self.mode,
            n=self.n,
            interval_ms=self.interval_ms,
            sequence_length=len(self.sequence),
            live_index=self.live_index,
            live_stimulus=self.live_stimulus,
            cue=self.cue,
            match_status=self.match_status,
            score=self.score,
            correct_count=self.correct_count,
            high_score=self.high_score,
        )
