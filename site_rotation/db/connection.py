"""
Opening the rotation state database.

The whole state (history log, preferences, undo record, schema version) lives
in one SQLite file as a handful of JSON documents. A CLI command opens it once
with ``get_connection()``, builds a ``RotationSession`` on top, and lets the
context manager commit and close it when the command returns.

    with get_connection(config.database.db_path) as conn:
        session = RotationSession.open(conn)
        session.record("th_l1")

Repositories commit after each write, so a command that fails half-way keeps
every document it already saved; the final commit/rollback only covers
statements a repository left pending.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Yield a connection to the state file at ``db_path``.

    Missing parent directories are created. Rows come back as
    ``sqlite3.Row`` so repositories can read columns by name.

    Args:
        db_path: State file path, or ``":memory:"``. WAL is never enabled for
            an in-memory database.
        wal_mode: Switch the file to WAL journaling, so a second
            ``site-rotation`` process can read while one writes.
        busy_timeout_ms: How long a write waits for another process's lock.

    Raises:
        sqlite3.OperationalError: If the file cannot be opened or stays locked.
    """
    on_disk = db_path != MEMORY_DB
    if on_disk:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    logger.debug("Opening state database %s (wal=%s)", db_path, wal_mode and on_disk)
    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
        if wal_mode and on_disk:
            conn.execute("PRAGMA journal_mode = WAL;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
