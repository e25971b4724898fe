from __future__ import annotations

import logging
import os
import sqlite3
import time
from pathlib import Path

from .results import SessionResult

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
DB_PATH_ENV = "NBACK_DB_PATH"


def default_db_path() -> Path:
    override = os.environ.get(DB_PATH_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".nback_trainer" / "nback.sqlite3"


def open_db(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA foreign_keys=ON;")
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS high_score (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                value INTEGER NOT NULL,
                updated_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS session (
                id INTEGER PRIMARY KEY,
                app_version TEXT NOT NULL,
                mode TEXT NOT NULL,
                n INTEGER NOT NULL,
                sequence_length INTEGER NOT NULL,
                alphabet_size INTEGER NOT NULL,
                interval_ms INTEGER NOT NULL,
                rng_seed INTEGER NOT NULL,
                outcome TEXT NOT NULL,
                sequence TEXT NOT NULL,
                score INTEGER NOT NULL,
                correct_count INTEGER NOT NULL,
                hits INTEGER NOT NULL,
                false_alarms INTEGER NOT NULL,
                missed_matches INTEGER NOT NULL,
                accuracy REAL NOT NULL,
                mean_rt_ms REAL,
                completed_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS judgment (
                id INTEGER PRIMARY KEY,
                session_id INTEGER NOT NULL REFERENCES session(id) ON DELETE CASCADE,
                live_index INTEGER NOT NULL,
                stimulus INTEGER NOT NULL,
                n_back_stimulus INTEGER NOT NULL,
                status TEXT NOT NULL,
                score_after INTEGER NOT NULL,
                rt_ms INTEGER NOT NULL
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_judgment_session ON judgment(session_id, live_index);")
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


class SqliteHighScoreStore:
    """Single persisted high score. Each call opens and closes its own connection."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get_high_score(self) -> int:
        conn = open_db(self._path)
        try:
            row = conn.execute("SELECT value FROM high_score WHERE id = 1").fetchone()
        finally:
            conn.close()
        return 0 if row is None else int(row[0])

    def save_high_score(self, score: int) -> None:
        conn = open_db(self._path)
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO high_score(id, value, updated_at_utc) VALUES (1, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET value = excluded.value, updated_at_utc = excluded.updated_at_utc
                    """,
                    (int(score), _utc_now_iso()),
                )
        finally:
            conn.close()
        logger.debug("high score saved: %d", score)


def record_session(*, db_path: Path, result: SessionResult, app_version: str) -> int:
    """Store one session row plus its judgments; returns the session id."""

    conn = open_db(db_path)
    try:
        return _insert_session(conn=conn, result=result, app_version=app_version)
    finally:
        conn.close()


def _insert_session(*, conn: sqlite3.Connection, result: SessionResult, app_version: str) -> int:
    with conn:
        cur = conn.execute(
            """
            INSERT INTO session(
                app_version, mode, n, sequence_length, alphabet_size, interval_ms,
                rng_seed, outcome, sequence, score, correct_count,
                hits, false_alarms, missed_matches, accuracy, mean_rt_ms,
                completed_at_utc
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                app_version,
                str(result.mode.value),
                int(result.n),
                int(result.sequence_length),
                int(result.alphabet_size),
                int(result.interval_ms),
                int(result.seed),
                str(result.phase.value),
                ",".join(str(v) for v in result.sequence),
                int(result.score),
                int(result.correct_count),
                int(result.hits),
                int(result.false_alarms),
                int(result.missed_matches),
                float(result.accuracy),
                result.mean_rt_ms,
                _utc_now_iso(),
            ),
        )
        session_id = int(cur.lastrowid)

        for e in result.events:
            conn.execute(
                """
                INSERT INTO judgment(
                    session_id, live_index, stimulus, n_back_stimulus, status, score_after, rt_ms
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    int(e.index),
                    int(e.stimulus),
                    int(e.n_back_stimulus),
                    str(e.status.value),
                    int(e.score_after),
                    int(round(e.response_time_s * 1000.0)),
                ),
            )

    return session_id
