from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from nback_trainer.cognitive_core import SessionPhase
from nback_trainer.config import GameConfig
from nback_trainer.persistence import SqliteHighScoreStore, default_db_path, open_db, record_session
from nback_trainer.results import session_result_from_engine
from nback_trainer.session import build_nback_engine


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def test_high_score_store_starts_at_zero_and_upserts(tmp_path: Path) -> None:
    store = SqliteHighScoreStore(tmp_path / "nested" / "scores.sqlite3")

    assert store.get_high_score() == 0

    store.save_high_score(4)
    store.save_high_score(7)

    assert store.get_high_score() == 7
    assert SqliteHighScoreStore(store.path).get_high_score() == 7

    conn = open_db(store.path)
    try:
        (rows,) = conn.execute("SELECT COUNT(*) FROM high_score").fetchone()
    finally:
        conn.close()
    assert rows == 1


def test_engine_persists_new_high_score_through_store(tmp_path: Path) -> None:
    store = SqliteHighScoreStore(tmp_path / "scores.sqlite3")
    store.save_high_score(1)
    clock = FakeClock()
    engine = build_nback_engine(
        clock=clock,
        seed=3,
        config=GameConfig(interval_ms=1000, flash_ms=0),
        high_scores=store,
    )

    engine.start_game()
    seq = engine.sequence
    while engine.phase is SessionPhase.RUNNING:
        i = engine.snapshot().live_index
        if i >= 2 and seq[i] == seq[i - 2]:
            engine.check_match()
        clock.advance(1.0)
        engine.update()

    assert engine.snapshot().score == 3
    assert store.get_high_score() == 3


def test_record_session_writes_session_and_judgments(tmp_path: Path) -> None:
    db_path = tmp_path / "history.sqlite3"
    clock = FakeClock()
    engine = build_nback_engine(clock=clock, seed=21, config=GameConfig(interval_ms=1000, flash_ms=0))
    engine.start_game()

    for _ in range(3):
        clock.advance(1.0)
        engine.update()
    engine.check_match()
    clock.advance(0.25)
    engine.cancel()

    result = session_result_from_engine(engine)
    session_id = record_session(db_path=db_path, result=result, app_version="test")

    conn = open_db(db_path)
    try:
        row = conn.execute(
            "SELECT mode, n, outcome, sequence, score, rng_seed FROM session WHERE id = ?",
            (session_id,),
        ).fetchone()
        judgments = conn.execute(
            "SELECT live_index, status, rt_ms FROM judgment WHERE session_id = ?",
            (session_id,),
        ).fetchall()
    finally:
        conn.close()

    assert row == (
        "visual",
        2,
        "canceled",
        ",".join(str(v) for v in engine.sequence),
        result.score,
        21,
    )
    assert judgments == [(3, result.events[0].status.value, 0)]


def test_default_db_path_honours_environment(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NBACK_DB_PATH", str(tmp_path / "custom.sqlite3"))
    assert default_db_path() == tmp_path / "custom.sqlite3"

    monkeypatch.delenv("NBACK_DB_PATH")
    assert default_db_path().name == "nback.sqlite3"
