"""
SQLite-based Storage Implementation.

Persists per-session state as one JSON document per session id.
"""

import asyncio
import json
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from src.utils.exceptions import SessionError
from src.utils.logging import get_logger
from src.storage.base import StateStore


logger = get_logger(__name__)


class SQLiteStateStore(StateStore):
    """
    SQLite-backed session state storage.

    Each write replaces the whole state document; ``created_at`` survives
    replacement.
    """

    def __init__(self, db_path: str | Path | None = None):
        """
        Initialize SQLite state store.

        Args:
            db_path: Path to SQLite database file.
                     Defaults to ``settings.session.database``.
        """
        if db_path is None:
            from src.config import get_settings
            db_path = get_settings().session.database
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._lock = asyncio.Lock()

    async def _ensure_initialized(self):
        """Ensure database is initialized."""
        if self._initialized:
            return

        async with self._lock:
            if self._initialized:
                return

            async with aiosqlite.connect(self.db_path) as db:
                # Enable WAL mode for better concurrent read/write performance
                await db.execute("PRAGMA journal_mode=WAL")
                await db.execute("""
                    CREATE TABLE IF NOT EXISTS session_state (
                        session_id TEXT PRIMARY KEY,
                        state TEXT NOT NULL,
                        created_at TIMESTAMP NOT NULL,
                        updated_at TIMESTAMP NOT NULL
                    )
                """)
                await db.commit()

            self._initialized = True
            logger.info(f"SQLite state store initialized at {self.db_path}")

    @asynccontextmanager
    async def _get_db(self):
        """Get database connection."""
        try:
            await self._ensure_initialized()
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                yield db
        except sqlite3.Error as e:
            logger.error(f"Session store error: {e}")
            raise SessionError(
                "Session store unavailable",
                code="SESSION_STORE_ERROR",
                details=str(e),
                recoverable=True,
            ) from e

    async def get(self, key: str) -> dict | None:
        """Get a session's state by ID."""
        async with self._get_db() as db:
            cursor = await db.execute(
                "SELECT state FROM session_state WHERE session_id = ?",
                (key,)
            )
            row = await cursor.fetchone()

        if row is None:
            return None
        return json.loads(row["state"])

    async def set(self, key: str, value: dict) -> None:
        """Replace a session's state."""
        state_json = json.dumps(value, default=str)
        now = datetime.now(timezone.utc).isoformat()

        async with self._get_db() as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO session_state
                (session_id, state, created_at, updated_at)
                VALUES (?, ?,
                    COALESCE((SELECT created_at FROM session_state WHERE session_id = ?), ?),
                    ?)
                """,
                (key, state_json, key, now, now)
            )
            await db.commit()
