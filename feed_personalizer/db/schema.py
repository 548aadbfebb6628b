"""
SQLite schema DDL for the local weight store.

One table, ``kv_store``, holds small JSON documents under fixed logical keys.
The interest weight map lives under ``personalize-user-weights`` and is
replaced wholesale on every save.

``apply_schema()`` is idempotent (``IF NOT EXISTS``) and cheap enough to run
before every store operation.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

_DDL_KV_STORE = """
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

ALL_TABLE_NAMES: tuple[str, ...] = ("kv_store",)


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create all tables that do not exist yet."""
    conn.execute(_DDL_KV_STORE)
    logger.debug("Schema applied: %s", ", ".join(ALL_TABLE_NAMES))
