"""Database operations for the EdBrief digest pipeline.

This module provides SQLite-based storage for the two pieces of durable
state the pipeline owns: the seen-source registry and the stored digest
message.

Database Schema:
    seen_sources table:
        - seq (INTEGER, PK AUTOINCREMENT): Insertion order, oldest first
        - url (TEXT, UNIQUE): Source URL already sent to generation
        - seen_at (INTEGER): When the URL was marked (Unix epoch)

    messages table:
        - message_type (TEXT, PK): Fixed identifier, one row per type
        - content (TEXT): Rendered digest message
        - metadata (TEXT): JSON metadata (sources, query, article count, date)
        - generated_at (INTEGER): When the digest was generated (Unix epoch)
        - status (TEXT): pending, sent, or failed

Features:
    - Capacity-bounded seen set with FIFO eviction
    - Upsert semantics for messages (one record per message type)
    - WAL mode so reads can run while the single writer commits
    - Context manager support for auto-cleanup
"""

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Default number of source URLs remembered across runs
DEFAULT_SEEN_CAPACITY = 1000

MESSAGE_STATUSES = ("pending", "sent", "failed")


class Database:
    """SQLite database for the seen-source registry and stored digests.

    The seen set is an ordered set of URLs. Marking is idempotent and, once
    the set grows beyond ``seen_capacity``, the oldest URLs are evicted first.
    A missing database file is created empty.

    Example:
        >>> with Database("edbrief.db", seen_capacity=1000) as db:
        ...     if not db.has_seen(url):
        ...         db.mark_seen(url)
        ...     db.save_message("edtech_daily_summary", content, metadata)
    """

    SCHEMA = """
    -- Seen sources: insertion-ordered, bounded by the registry capacity
    CREATE TABLE IF NOT EXISTS seen_sources (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        url TEXT NOT NULL UNIQUE,
        seen_at INTEGER NOT NULL
    );

    -- Stored digest messages: one row per message type (upserted)
    CREATE TABLE IF NOT EXISTS messages (
        message_type TEXT PRIMARY KEY,
        content TEXT NOT NULL,
        metadata TEXT NOT NULL DEFAULT '{}',
        generated_at INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending'
    );
    """

    path: Path
    conn: sqlite3.Connection

    def __init__(self, path: Path | str, seen_capacity: int = DEFAULT_SEEN_CAPACITY):
        """Initialize database connection.

        Args:
            path: Path to SQLite database file (created if missing)
            seen_capacity: Maximum number of remembered source URLs
        """
        if seen_capacity <= 0:
            raise ValueError("seen_capacity must be positive")
        self.path = Path(path)
        self.seen_capacity = seen_capacity
        if str(self.path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.path))
        self.conn.row_factory = sqlite3.Row

        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.executescript(self.SCHEMA)
        self.conn.commit()
        logger.debug("Database initialized | path=%s capacity=%d", self.path, seen_capacity)

    # === Seen-source registry ===

    def has_seen(self, url: str) -> bool:
        """Return True if the URL was marked in this or a previous run."""
        cursor = self.conn.execute("SELECT 1 FROM seen_sources WHERE url = ?", (url,))
        return cursor.fetchone() is not None

    def seen_urls(self, urls: set[str]) -> set[str]:
        """Check which URLs are already in the seen set.

        Args:
            urls: URLs to check

        Returns:
            Subset of ``urls`` already marked
        """
        if not urls:
            return set()

        placeholders = ",".join("?" * len(urls))
        query = f"SELECT url FROM seen_sources WHERE url IN ({placeholders})"
        cursor = self.conn.execute(query, list(urls))
        return {row["url"] for row in cursor.fetchall()}

    def mark_seen(self, url: str, commit: bool = True) -> None:
        """Add a URL to the seen set, evicting the oldest entries past capacity.

        Marking an already-present URL changes nothing, including its position
        in the eviction order.

        Args:
            url: Source URL to remember
            commit: Whether to commit immediately (False for batch operations)
        """
        cursor = self.conn.execute(
            "INSERT OR IGNORE INTO seen_sources (url, seen_at) VALUES (?, ?)",
            (url, int(time.time())),
        )
        if cursor.rowcount:
            self._evict_oldest()
        if commit:
            self.conn.commit()

    def _evict_oldest(self) -> None:
        count = self.seen_count()
        overflow = count - self.seen_capacity
        if overflow <= 0:
            return
        self.conn.execute(
            """
            DELETE FROM seen_sources WHERE seq IN (
                SELECT seq FROM seen_sources ORDER BY seq ASC LIMIT ?
            )
            """,
            (overflow,),
        )
        logger.debug("Seen set trimmed | evicted=%d capacity=%d", overflow, self.seen_capacity)

    def seen_count(self) -> int:
        """Number of URLs currently remembered."""
        cursor = self.conn.execute("SELECT COUNT(*) AS n FROM seen_sources")
        return cursor.fetchone()["n"]

    def seen_list(self) -> list[str]:
        """Remembered URLs, oldest first."""
        cursor = self.conn.execute("SELECT url FROM seen_sources ORDER BY seq ASC")
        return [row["url"] for row in cursor.fetchall()]

    # === Message store ===

    def save_message(
        self,
        message_type: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Upsert the digest message for a message type.

        An existing record of the same type is overwritten and its status
        reset to ``pending``.

        Args:
            message_type: Fixed identifier of the message
            content: Rendered digest message
            metadata: JSON-serializable metadata
        """
        self.conn.execute(
            """
            INSERT INTO messages (message_type, content, metadata, generated_at, status)
            VALUES (?, ?, ?, ?, 'pending')
            ON CONFLICT(message_type) DO UPDATE SET
                content = excluded.content,
                metadata = excluded.metadata,
                generated_at = excluded.generated_at,
                status = 'pending'
            """,
            (
                message_type,
                content,
                json.dumps(metadata or {}, ensure_ascii=False),
                int(time.time()),
            ),
        )
        self.conn.commit()
        logger.info("Message saved | type=%s chars=%d", message_type, len(content))

    def set_message_status(self, message_type: str, status: str) -> bool:
        """Update the delivery status of a stored message.

        Returns:
            True if a message of that type exists
        """
        if status not in MESSAGE_STATUSES:
            raise ValueError(f"Invalid message status '{status}'")
        cursor = self.conn.execute(
            "UPDATE messages SET status = ? WHERE message_type = ?",
            (status, message_type),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    def get_message(self, message_type: str) -> dict[str, Any] | None:
        """Get the stored message for a type.

        Returns:
            Message record as dictionary (metadata decoded) or None
        """
        cursor = self.conn.execute(
            "SELECT * FROM messages WHERE message_type = ?",
            (message_type,),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        record = dict(row)
        record["metadata"] = json.loads(record["metadata"] or "{}")
        return record

    def stats(self) -> dict[str, int]:
        """Get database statistics.

        Returns:
            Dictionary with seen-source and message counts
        """
        cursor = self.conn.execute("SELECT COUNT(*) AS messages FROM messages")
        return {
            "seen": self.seen_count(),
            "seen_capacity": self.seen_capacity,
            "messages": cursor.fetchone()["messages"],
        }

    def commit(self) -> None:
        """Commit pending changes (after batch mark_seen(commit=False) calls)."""
        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()

    def __enter__(self) -> "Database":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
