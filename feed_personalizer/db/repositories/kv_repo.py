"""
Key-value repository over the ``kv_store`` table.

Receives a ``sqlite3.Connection`` at construction time; the connection is
opened, committed and closed by the caller (via ``get_connection()``).
Values are opaque text (JSON documents); parsing belongs to the caller.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

logger = logging.getLogger(__name__)


class KeyValueRepository:
    """Read, replace and delete documents stored under a logical key.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def get(self, key: str) -> Optional[str]:
        """Return the stored document for ``key``, or ``None``."""
        row = self.conn.execute(
            "SELECT value FROM kv_store WHERE key = ?;", (key,)
        ).fetchone()
        return None if row is None else row["value"]

    def put(self, key: str, value: str) -> None:
        """Insert or fully replace the document under ``key``."""
        logger.debug("kv_store put: %s (%d bytes)", key, len(value))
        self.conn.execute(
            """
            INSERT INTO kv_store (key, value, updated_at)
            VALUES (?, ?, strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
            ON CONFLICT(key) DO UPDATE SET
                value      = excluded.value,
                updated_at = excluded.updated_at;
            """,
            (key, value),
        )

    def delete(self, key: str) -> bool:
        """Delete the document under ``key``; ``True`` if one existed."""
        cur = self.conn.execute("DELETE FROM kv_store WHERE key = ?;", (key,))
        return cur.rowcount > 0
