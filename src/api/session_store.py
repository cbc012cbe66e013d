"""Session storage for the shortsmith API.

Sessions live in the store from creation until their terminal progress
event. The store is the only place a preview-waiting session can be found,
and ``take_pending`` hands such a session to exactly one caller.

Two implementations:
- InMemorySessionStore: plain dict, the default.
- SqliteSessionStore: aiosqlite, so preview-waiting sessions survive restarts.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import aiosqlite

from models.session import Session, SessionState

logger = logging.getLogger(__name__)

# Default database path
DEFAULT_DB_PATH = ".shortsmith/sessions.db"


class SessionStore(ABC):
    """Async session storage interface."""

    async def connect(self) -> None:
        """Open underlying resources."""

    async def close(self) -> None:
        """Release underlying resources."""

    @abstractmethod
    async def put(self, session: Session) -> None:
        """Insert or replace a session."""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[Session]:
        """Return the session, or None if unknown."""

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Remove a session. Returns True if it existed."""

    @abstractmethod
    async def take_pending(self, session_id: str) -> Optional[Session]:
        """Atomically remove and return a preview-waiting session.

        Returns None when the id is unknown, not waiting for confirmation, or
        already taken by a concurrent caller.
        """

    @abstractmethod
    async def expire_pending(self, max_age_seconds: int) -> int:
        """Drop preview-waiting sessions older than ``max_age_seconds``.

        Returns:
            Number of sessions removed
        """


class InMemorySessionStore(SessionStore):
    """Dict-backed store. Safe on a single event loop: no awaits inside operations."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def put(self, session: Session) -> None:
        self._sessions[session.session_id] = session

    async def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    async def take_pending(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is None or session.state != SessionState.PREVIEW_WAITING:
            return None
        return self._sessions.pop(session_id)

    async def expire_pending(self, max_age_seconds: int) -> int:
        cutoff = datetime.now() - timedelta(seconds=max_age_seconds)
        expired = [
            sid
            for sid, session in self._sessions.items()
            if session.state == SessionState.PREVIEW_WAITING and session.updated_at < cutoff
        ]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info(f"Expired {len(expired)} unconfirmed preview session(s)")
        return len(expired)


class SqliteSessionStore(SessionStore):
    """Async SQLite session storage.

    Sessions are serialized with Session.to_dict(); the state column is kept
    alongside so conditional statements can target preview-waiting rows.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize session store with database path.

        Args:
            db_path: Path to SQLite database file. Parent directory
                     will be created if it doesn't exist.
        """
        self.db_path = Path(db_path)
        self.db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and create schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db = await aiosqlite.connect(str(self.db_path))
        self.db.row_factory = aiosqlite.Row

        # Enable WAL mode for better concurrent read performance
        await self.db.execute("PRAGMA journal_mode=WAL")

        await self.db.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id TEXT PRIMARY KEY,
                state TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                data JSON NOT NULL,
                error TEXT
            )
        """)

        await self.db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_state_updated
            ON sessions (state, updated_at)
        """)

        await self.db.commit()
        logger.info(f"Session store connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self.db:
            await self.db.close()
            self.db = None
            logger.info("Session store connection closed")

    def _require_db(self) -> aiosqlite.Connection:
        if self.db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self.db

    async def put(self, session: Session) -> None:
        db = self._require_db()
        await db.execute(
            "INSERT OR REPLACE INTO sessions (id, state, created_at, updated_at, data, error) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                session.session_id,
                session.state.value,
                session.created_at.isoformat(),
                session.updated_at.isoformat(),
                json.dumps(session.to_dict()),
                session.error,
            ),
        )
        await db.commit()

    async def get(self, session_id: str) -> Optional[Session]:
        db = self._require_db()
        async with db.execute("SELECT data FROM sessions WHERE id = ?", (session_id,)) as cursor:
            row = await cursor.fetchone()
        return self._row_to_session(row)

    async def delete(self, session_id: str) -> bool:
        db = self._require_db()
        async with db.execute(
            "DELETE FROM sessions WHERE id = ? RETURNING id", (session_id,)
        ) as cursor:
            row = await cursor.fetchone()
        await db.commit()
        return row is not None

    async def take_pending(self, session_id: str) -> Optional[Session]:
        db = self._require_db()
        # Single conditional statement: a concurrent second take sees no row
        async with db.execute(
            "DELETE FROM sessions WHERE id = ? AND state = ? RETURNING data",
            (session_id, SessionState.PREVIEW_WAITING.value),
        ) as cursor:
            row = await cursor.fetchone()
        await db.commit()
        return self._row_to_session(row)

    async def expire_pending(self, max_age_seconds: int) -> int:
        db = self._require_db()
        cutoff = (datetime.now() - timedelta(seconds=max_age_seconds)).isoformat()
        async with db.execute(
            "DELETE FROM sessions WHERE state = ? AND updated_at < ? RETURNING id",
            (SessionState.PREVIEW_WAITING.value, cutoff),
        ) as cursor:
            rows = await cursor.fetchall()
        await db.commit()
        if rows:
            logger.info(f"Expired {len(rows)} unconfirmed preview session(s)")
        return len(rows)

    def _row_to_session(self, row: Optional[aiosqlite.Row]) -> Optional[Session]:
        if row is None:
            return None
        try:
            return Session.from_dict(json.loads(row["data"]))
        except (ValueError, KeyError) as e:
            logger.warning(f"Discarding unreadable session row: {e}")
            return None


def build_session_store(config: dict) -> SessionStore:
    """SqliteSessionStore when SESSION_STORE_PATH is set, in-memory otherwise."""
    path = config.get("session_store_path")
    if path:
        return SqliteSessionStore(path)
    return InMemorySessionStore()
