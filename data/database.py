"""Async SQLite counter store using aiosqlite.

Keeps the advisory usage counters (visits and debates started) that the
landing screen displays. Nothing in here is read by the debate engine.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import aiosqlite

from data.models import PlatformStats

logger = logging.getLogger(__name__)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS counters (
    name   TEXT    PRIMARY KEY,
    value  INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS visits (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    visitor_id  TEXT    NOT NULL,
    seen_at     TEXT    NOT NULL
);
"""

_DEBATES_STARTED = "debates_started"


class StatsDatabase:
    """Async wrapper around an SQLite database holding usage counters."""

    def __init__(
        self,
        db_path: str | Path = "data/stats.db",
        active_window: timedelta = timedelta(hours=24),
    ) -> None:
        self.db_path = Path(db_path)
        self.active_window = active_window
        self._conn: aiosqlite.Connection | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open connection and ensure schema exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self.db_path))
        self._conn.row_factory = aiosqlite.Row
        await self._conn.executescript(_SCHEMA)
        await self._conn.commit()
        logger.info("Stats database connected: %s", self.db_path)

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    async def increment_debate_started(self) -> int:
        """Bump the debates-started counter and return the new value."""
        await self.conn.execute(
            "INSERT INTO counters (name, value) VALUES (?, 1) "
            "ON CONFLICT(name) DO UPDATE SET value = value + 1",
            (_DEBATES_STARTED,),
        )
        await self.conn.commit()
        return await self._counter(_DEBATES_STARTED)

    async def record_visit(self, visitor_id: str, seen_at: datetime | None = None) -> None:
        seen_at = seen_at or datetime.now(timezone.utc)
        await self.conn.execute(
            "INSERT INTO visits (visitor_id, seen_at) VALUES (?, ?)",
            (visitor_id, seen_at.isoformat()),
        )
        await self.conn.commit()

    async def get_stats(self, now: datetime | None = None) -> PlatformStats:
        """Return distinct visitors inside the active window and total debates."""
        now = now or datetime.now(timezone.utc)
        since = (now - self.active_window).isoformat()
        cur = await self.conn.execute(
            "SELECT COUNT(DISTINCT visitor_id) AS cnt FROM visits WHERE seen_at >= ?",
            (since,),
        )
        row = await cur.fetchone()
        return PlatformStats(
            active_users=row["cnt"] if row else 0,
            total_debates=await self._counter(_DEBATES_STARTED),
        )

    async def _counter(self, name: str) -> int:
        cur = await self.conn.execute("SELECT value FROM counters WHERE name = ?", (name,))
        row = await cur.fetchone()
        return int(row["value"]) if row else 0
