from __future__ import annotations

from dataclasses import dataclass

from .cognitive_core import GameMode, MatchStatus, SessionPhase
from .sequence import match_positions
from .session import JudgmentEvent, NBackEngine


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Persistable summary + judgment log for a finished or canceled session."""

    mode: GameMode
    n: int
    sequence_length: int
    alphabet_size: int
    interval_ms: int
    seed: int
    phase: SessionPhase

    score: int
    correct_count: int
    judgments: int
    hits: int
    false_alarms: int
    missed_matches: int
    accuracy: float
    mean_rt_ms: float | None

    sequence: tuple[int, ...]
    events: list[JudgmentEvent]


def session_result_from_engine(engine: NBackEngine) -> SessionResult:
    """Build a SessionResult from the engine's current session."""

    snap = engine.snapshot()
    cfg = engine.config
    events = engine.events()
    sequence = engine.sequence

    hits = sum(1 for e in events if e.status is MatchStatus.CORRECT)
    false_alarms = sum(1 for e in events if e.status is MatchStatus.INCORRECT)

    # Only positions already shown can count as missed.
    judged = {e.index for e in events}
    shown_targets = [i for i in match_positions(sequence, snap.n) if i <= snap.live_index]
    missed = sum(1 for i in shown_targets if i not in judged)

    attempts = hits + false_alarms + missed
    accuracy = 0.0 if attempts == 0 else hits / attempts

    rts_ms = [e.response_time_s * 1000.0 for e in events]
    mean_rt_ms = None if not rts_ms else sum(rts_ms) / len(rts_ms)

    return SessionResult(
        mode=snap.mode,
        n=int(snap.n),
        sequence_length=len(sequence),
        alphabet_size=int(cfg.alphabet_size),
        interval_ms=int(snap.interval_ms),
        seed=int(engine.seed),
        phase=snap.phase,
        score=int(snap.score),
        correct_count=int(snap.correct_count),
        judgments=len(events),
        hits=hits,
        false_alarms=false_alarms,
        missed_matches=missed,
        accuracy=float(accuracy),
        mean_rt_ms=mean_rt_ms,
        sequence=tuple(sequence),
        events=events,
    )
