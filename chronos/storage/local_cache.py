"""SQLite-backed key/value cache for on-device journal data."""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Schema for the local cache
CACHE_SCHEMA = """
-- Key/value store: one JSON document per key
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Entries whose latest cloud write has not succeeded
CREATE TABLE IF NOT EXISTS pending_sync (
    entry_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    queued_at TEXT NOT NULL,
    last_error TEXT,
    PRIMARY KEY (entry_id, user_id)
);

CREATE INDEX IF NOT EXISTS idx_pending_user ON pending_sync(user_id, queued_at);
"""


class LocalCache:
    """On-device storage for the journal envelope and sync bookkeeping."""

    def __init__(self, db_path: str | Path):
        """Initialize the local cache.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
        """
        self.db_path = Path(db_path).expanduser()
        self._conn: sqlite3.Connection | None = None

    @property
    def _in_memory(self) -> bool:
        return str(self.db_path) == ":memory:"

    def connect(self) -> None:
        """Initialize database connection and schema."""
        if self._conn is not None:
            return

        if not self._in_memory:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(CACHE_SCHEMA)
        self._conn.commit()

        logger.info(f"LocalCache connected to {self.db_path}")

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
            logger.info("LocalCache connection closed")

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure we have a database connection."""
        if self._conn is None:
            self.connect()
        return self._conn

    # ==================== Key/Value Operations ====================

    def get_item(self, key: str) -> str | None:
        """Get the raw stored string for a key, or None."""
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def set_item(self, key: str, value: str) -> None:
        """Store a raw string under a key, replacing any previous value."""
        conn = self._ensure_connected()
        conn.execute(
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        conn.commit()

    def remove_item(self, key: str) -> bool:
        conn = self._ensure_connected()
        cursor = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        conn.commit()
        return cursor.rowcount > 0

    def get_json(self, key: str) -> Any:
        """Get and decode a JSON value.

        Raises:
            json.JSONDecodeError: If the stored value is not valid JSON.
        """
        raw = self.get_item(key)
        return json.loads(raw) if raw is not None else None

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value))

    # ==================== Pending Sync ====================

    def mark_pending(
        self,
        entry_id: str,
        user_id: str,
        error: str | None = None,
    ) -> None:
        """Record that an entry still needs a cloud write for a user."""
        conn = self._ensure_connected()
        conn.execute(
            """
            INSERT INTO pending_sync (entry_id, user_id, queued_at, last_error)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(entry_id, user_id) DO UPDATE SET
                last_error = excluded.last_error
            """,
            (entry_id, user_id, datetime.now().isoformat(), error),
        )
        conn.commit()
        logger.debug(f"Marked {entry_id} pending for {user_id}")

    def clear_pending(self, entry_id: str, user_id: str) -> bool:
        conn = self._ensure_connected()
        cursor = conn.execute(
            "DELETE FROM pending_sync WHERE entry_id = ? AND user_id = ?",
            (entry_id, user_id),
        )
        conn.commit()
        return cursor.rowcount > 0

    def get_pending(self, user_id: str, limit: int = 1000) -> list[dict[str, Any]]:
        """Get pending entries for a user, oldest first.

        Args:
            user_id: Owner of the pending writes.
            limit: Maximum rows to return.

        Returns:
            List of dicts with entry_id, queued_at and last_error.
        """
        conn = self._ensure_connected()
        cursor = conn.execute(
            """
            SELECT entry_id, queued_at, last_error
            FROM pending_sync
            WHERE user_id = ?
            ORDER BY queued_at ASC, entry_id ASC
            LIMIT ?
            """,
            (user_id, limit),
        )
        return [
            {
                "entry_id": row["entry_id"],
                "queued_at": row["queued_at"],
                "last_error": row["last_error"],
            }
            for row in cursor
        ]

    # ==================== Maintenance ====================

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dict with counts and size info.
        """
        conn = self._ensure_connected()

        stats = {}

        cursor = conn.execute("SELECT COUNT(*) FROM kv_store")
        stats["keys_count"] = cursor.fetchone()[0]

        cursor = conn.execute("SELECT COUNT(*) FROM pending_sync")
        stats["pending_count"] = cursor.fetchone()[0]

        if not self._in_memory and self.db_path.exists():
            stats["db_size_mb"] = round(self.db_path.stat().st_size / (1024 * 1024), 2)

        return stats
