"""SQLite implementation of the StateStore protocol."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from convex_monitor.models.records import PollRecord
from convex_monitor.models.state import PollingState

SCHEMA = """
-- Polling state, one JSON blob per trigger instance
CREATE TABLE IF NOT EXISTS trigger_state (
    instance_id TEXT PRIMARY KEY,
    state TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- One row per trigger invocation
CREATE TABLE IF NOT EXISTS poll_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    instance_id TEXT NOT NULL,
    event_kind TEXT NOT NULL,
    events_emitted INTEGER NOT NULL DEFAULT 0,
    success INTEGER NOT NULL,
    error TEXT,
    duration_ms INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_poll_log_instance ON poll_log(instance_id, id);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteStateStore:
    """SQLite-backed implementation of the StateStore protocol."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Polling state ──────────────────────────────────────

    async def load_state(self, instance_id: str) -> PollingState:
        async with self.db.execute(
            "SELECT state FROM trigger_state WHERE instance_id=?", (instance_id,)
        ) as cur:
            row = await cur.fetchone()
        if not row:
            return PollingState()
        return PollingState.from_dict(json.loads(row["state"]))

    async def save_state(self, instance_id: str, state: PollingState) -> None:
        await self.db.execute(
            "INSERT INTO trigger_state (instance_id, state, updated_at) VALUES (?, ?, ?)"
            " ON CONFLICT(instance_id) DO UPDATE SET state=excluded.state,"
            " updated_at=excluded.updated_at",
            (instance_id, json.dumps(state.to_dict(), sort_keys=True), _now()),
        )
        await self.db.commit()

    async def delete_state(self, instance_id: str) -> bool:
        cur = await self.db.execute(
            "DELETE FROM trigger_state WHERE instance_id=?", (instance_id,)
        )
        await self.db.commit()
        return cur.rowcount > 0

    async def list_instances(self) -> list[str]:
        async with self.db.execute(
            "SELECT instance_id FROM trigger_state ORDER BY instance_id"
        ) as cur:
            return [row["instance_id"] async for row in cur]

    # ── Poll log ───────────────────────────────────────────

    async def log_poll(
        self,
        instance_id: str,
        event_kind: str,
        events_emitted: int,
        error: str | None = None,
        duration_ms: int = 0,
    ) -> None:
        await self.db.execute(
            "INSERT INTO poll_log"
            " (instance_id, event_kind, events_emitted, success, error, duration_ms, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                instance_id, event_kind, events_emitted,
                0 if error else 1, error, duration_ms, _now(),
            ),
        )
        await self.db.commit()

    async def get_recent_polls(
        self, instance_id: str | None = None, limit: int = 20
    ) -> list[PollRecord]:
        if instance_id is None:
            query = "SELECT * FROM poll_log ORDER BY id DESC LIMIT ?"
            params: tuple = (limit,)
        else:
            query = "SELECT * FROM poll_log WHERE instance_id=? ORDER BY id DESC LIMIT ?"
            params = (instance_id, limit)
        async with self.db.execute(query, params) as cur:
            return [
                PollRecord(
                    id=row["id"],
                    instance_id=row["instance_id"],
                    event_kind=row["event_kind"],
                    events_emitted=row["events_emitted"],
                    success=bool(row["success"]),
                    error=row["error"],
                    duration_ms=row["duration_ms"],
                    created_at=row["created_at"],
                )
                async for row in cur
            ]
