"""SQLite option store backing the lastmod cache.

All operations catch ``aiosqlite.Error`` internally and degrade gracefully:
read failures return ``None`` (treated as a cache miss by callers), write
failures are logged and ignored. Infrastructure errors never cross the
OptionStore class boundary; the next read miss reschedules the computation.
"""

from __future__ import annotations

import aiosqlite
import structlog

log = structlog.get_logger()

_CREATE_OPTIONS_TABLE = """
CREATE TABLE IF NOT EXISTS options (
    name  TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class OptionStore:
    """SQLite-backed key/value store implementing OptionStoreProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_OPTIONS_TABLE)
        await self._db.commit()

    async def get_value(self, name: str) -> str | None:
        """Read an option. Returns ``None`` when absent or on read failure."""
        try:
            cursor = await self._db.execute("SELECT value FROM options WHERE name = ?", (name,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return row[0]
        except aiosqlite.Error:
            log.warning("option_read_error", name=name, exc_info=True)
            return None

    async def set_value(self, name: str, value: str) -> None:
        """Insert or overwrite an option. Non-fatal on failure."""
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO options (name, value) VALUES (?, ?)",
                (name, value),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("option_write_error", name=name, exc_info=True)
