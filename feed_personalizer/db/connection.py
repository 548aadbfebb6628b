"""
SQLite connections for the local weight store.

The store opens one short-lived connection per operation, so every
``load``/``save``/``reset`` is its own transaction.  ``get_connection()``
hands out such a connection already tuned for that pattern:

  * ``busy_timeout``: a ``click()`` write waits for a concurrent writer
    instead of failing at once.
  * WAL journal: a ``choose()`` read is not blocked by an in-flight write.
  * ``sqlite3.Row`` rows, so columns are read by name.

Example::

    with get_connection("data/db/personalizer.db") as conn:
        row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def _prepare_path(db_path: str) -> None:
    if db_path != MEMORY_DB:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)


def _tune(conn: sqlite3.Connection, db_path: str, wal_mode: bool, busy_timeout_ms: int) -> None:
    conn.row_factory = sqlite3.Row
    conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
    # WAL needs a file; in-memory databases stay in their default mode.
    if wal_mode and db_path != MEMORY_DB:
        mode = conn.execute("PRAGMA journal_mode = WAL;").fetchone()[0]
        logger.debug("Journal mode for %s: %s", db_path, mode)


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Iterator[sqlite3.Connection]:
    """Open a tuned connection; commit on success, roll back on error.

    Missing parent directories of ``db_path`` are created.

    Args:
        db_path: SQLite file, or ``":memory:"`` for a database that lives
            only as long as the ``with`` block.
        wal_mode: Switch file databases to WAL journaling.
        busy_timeout_ms: How long to wait on a locked database.

    Raises:
        sqlite3.Error: The database cannot be opened, is not a database, or
            stays locked past the timeout.
        OSError: The parent directory cannot be created.
    """
    _prepare_path(db_path)
    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    try:
        _tune(conn, db_path, wal_mode, busy_timeout_ms)
        yield conn
    except Exception:
        conn.rollback()
        raise
    else:
        conn.commit()
    finally:
        conn.close()
