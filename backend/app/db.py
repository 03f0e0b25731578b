import json
import sqlite3
from pathlib import Path
from typing import Any


def ensure_db(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                game_code TEXT NOT NULL,
                play_datetime TEXT NOT NULL,
                settings TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS results (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id INTEGER NOT NULL,
                trial_index INTEGER NOT NULL,
                round INTEGER NOT NULL,
                outcome_json TEXT NOT NULL,
                FOREIGN KEY(session_id) REFERENCES sessions(id),
                UNIQUE(session_id, trial_index)
            );
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_sessions_play_datetime ON sessions(play_datetime);"
        )


def create_session(db_path: Path, game_code: str, play_datetime: str, settings: dict[str, Any]) -> int:
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute(
            "INSERT INTO sessions (game_code, play_datetime, settings) VALUES (?, ?, ?)",
            (game_code, play_datetime, json.dumps(settings, ensure_ascii=False, separators=(",", ":"))),
        )
        conn.commit()
        return int(cur.lastrowid)


def save_result(db_path: Path, session_id: int, outcome: dict[str, Any]) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT OR IGNORE INTO results (session_id, trial_index, round, outcome_json)
            VALUES (?, ?, ?, ?)
            """,
            (
                session_id,
                int(outcome["trial_index"]),
                int(outcome.get("round", 1)),
                json.dumps(outcome, ensure_ascii=False, separators=(",", ":")),
            ),
        )
        conn.commit()


def _loads(raw: str | None) -> dict[str, Any]:
    try:
        payload = json.loads(raw) if raw else {}
    except json.JSONDecodeError:
        payload = {}
    return payload if isinstance(payload, dict) else {}


def read_results(db_path: Path, session_id: int) -> list[dict[str, Any]]:
    with sqlite3.connect(db_path) as conn:
        rows = conn.execute(
            "SELECT outcome_json FROM results WHERE session_id = ? ORDER BY trial_index ASC",
            (session_id,),
        ).fetchall()
    return [_loads(raw) for (raw,) in rows]


def read_session(db_path: Path, session_id: int) -> dict[str, Any] | None:
    with sqlite3.connect(db_path) as conn:
        row = conn.execute(
            "SELECT id, game_code, play_datetime, settings FROM sessions WHERE id = ?",
            (session_id,),
        ).fetchone()
    if row is None:
        return None
    sid, game_code, play_datetime, settings = row
    return {
        "session_id": sid,
        "game_code": game_code,
        "play_datetime": play_datetime,
        "settings": _loads(settings),
    }


def read_sessions_page(db_path: Path, page: int, limit: int) -> tuple[list[dict[str, Any]], int]:
    """Newest first. Pages past the end come back empty with the real total."""
    offset = (page - 1) * limit
    with sqlite3.connect(db_path) as conn:
        total_count = int(conn.execute("SELECT COUNT(*) FROM sessions").fetchone()[0])
        rows = conn.execute(
            """
            SELECT id, game_code, play_datetime, settings
            FROM sessions
            ORDER BY play_datetime DESC, id DESC
            LIMIT ? OFFSET ?
            """,
            (limit, offset),
        ).fetchall()

    sessions: list[dict[str, Any]] = []
    for sid, game_code, play_datetime, settings in rows:
        sessions.append(
            {
                "session_id": sid,
                "game_code": game_code,
                "play_datetime": play_datetime,
                "settings": _loads(settings),
                "results": read_results(db_path, sid),
            }
        )
    return sessions, total_count
