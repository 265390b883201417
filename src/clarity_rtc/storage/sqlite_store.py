from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from loguru import logger

from clarity_rtc.errors import SnapshotStoreError
from clarity_rtc.telemetry.snapshot import SavedSession, SessionSnapshot

_JSON_COLUMNS = ("pricing_config", "session_stats", "timeline_segments", "token_data_points", "events")


def utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds")


class SqliteSnapshotStore:
    """Local snapshot store. One row per saved session, JSON columns for the telemetry."""

    def __init__(self, db_path: str):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._initialize_schema()

    def close(self) -> None:
        self._conn.close()

    async def save(self, snapshot: SessionSnapshot) -> str:
        record = snapshot.to_record()
        session_id = str(uuid4())
        try:
            self._conn.execute(
                """
                INSERT INTO sessions (
                    id, created_at, name, model, voice, bot_prompt,
                    pricing_config, session_stats, timeline_segments, token_data_points, events,
                    session_start_time, session_end_time, duration_ms
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    utc_now(),
                    record["name"],
                    record["model"],
                    record["voice"],
                    record["bot_prompt"],
                    *(json.dumps(record[column], ensure_ascii=True) for column in _JSON_COLUMNS),
                    record["session_start_time"],
                    record["session_end_time"],
                    record["duration_ms"],
                ),
            )
            self._conn.commit()
        except sqlite3.Error as ex:
            self._conn.rollback()
            raise SnapshotStoreError(f"Failed to save session: {ex}") from ex
        return session_id

    async def list(self) -> list[SavedSession]:
        try:
            rows = self._conn.execute(
                "SELECT * FROM sessions ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
        except sqlite3.Error as ex:
            raise SnapshotStoreError(f"Failed to load sessions: {ex}") from ex
        sessions: list[SavedSession] = []
        for row in rows:
            try:
                sessions.append(_to_saved_session(dict(row)))
            except (KeyError, TypeError, ValueError) as ex:
                logger.warning(f"Skipping unreadable saved session {row['id']}: {type(ex).__name__}: {ex}")
        return sessions

    async def delete(self, session_id: str) -> None:
        try:
            self._conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
            self._conn.commit()
        except sqlite3.Error as ex:
            self._conn.rollback()
            raise SnapshotStoreError(f"Failed to delete session {session_id}: {ex}") from ex

    def _initialize_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                id TEXT PRIMARY KEY,
                created_at TEXT NOT NULL,
                name TEXT NOT NULL,
                model TEXT NOT NULL,
                voice TEXT NOT NULL,
                bot_prompt TEXT NOT NULL DEFAULT '',
                pricing_config TEXT NOT NULL,
                session_stats TEXT NOT NULL,
                timeline_segments TEXT NOT NULL DEFAULT '[]',
                token_data_points TEXT NOT NULL DEFAULT '[]',
                events TEXT NOT NULL DEFAULT '[]',
                session_start_time INTEGER NULL,
                session_end_time INTEGER NULL,
                duration_ms INTEGER NULL
            );

            CREATE INDEX IF NOT EXISTS idx_sessions_created
                ON sessions(created_at);
            """
        )
        self._conn.commit()


def _to_saved_session(row: dict[str, Any]) -> SavedSession:
    for column in _JSON_COLUMNS:
        row[column] = json.loads(row[column])
    return SavedSession(
        id=row["id"],
        created_at=row["created_at"],
        snapshot=SessionSnapshot.from_record(row),
    )
