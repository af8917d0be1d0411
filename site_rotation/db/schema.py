"""
SQLite schema DDL.

The store is an opaque key-value document table: each row holds one JSON
document (``history``, ``prefs``, ``schema_version``, ``last_action``) under a
string key. The core never queries inside documents.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is idempotent.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

_DDL_KV_DOCUMENTS = """
CREATE TABLE IF NOT EXISTS kv_documents (
    key         TEXT    NOT NULL PRIMARY KEY,
    value       TEXT    NOT NULL,
    updated_at  TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_ALL_DDL = [_DDL_KV_DOCUMENTS]

ALL_TABLE_NAMES = ["kv_documents"]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``. Idempotent."""
    for ddl in _ALL_DDL:
        conn.execute(ddl)
    conn.commit()
    logger.debug("Schema applied: %d table(s) created/verified.", len(ALL_TABLE_NAMES))


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return table names present in the database (sorted)."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
