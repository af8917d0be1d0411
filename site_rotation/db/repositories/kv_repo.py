"""
Repository for the ``kv_documents`` table: opaque JSON documents by key.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from site_rotation.db.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class KeyValueRepository(BaseRepository):
    """Read/write access to the ``kv_documents`` table."""

    def get_raw(self, key: str) -> Optional[str]:
        """Return the stored text for ``key``, or ``None`` if absent."""
        row = self.fetchone("SELECT value FROM kv_documents WHERE key = ?;", (key,))
        return None if row is None else str(row["value"])

    def get_document(self, key: str) -> Optional[Any]:
        """Return the decoded JSON document for ``key``.

        Missing keys and unparseable documents both return ``None``; the
        latter also log a warning so the caller can substitute a default.
        """
        raw = self.get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Stored document '%s' is not valid JSON (%s); ignoring it.", key, exc)
            return None

    def put_document(self, key: str, value: Any) -> None:
        """Insert or replace the JSON document for ``key`` and commit."""
        self.execute(
            """
            INSERT INTO kv_documents (key, value, updated_at)
            VALUES (?, ?, strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
            ON CONFLICT(key) DO UPDATE SET
                value      = excluded.value,
                updated_at = excluded.updated_at;
            """,
            (key, json.dumps(value, ensure_ascii=False)),
        )
        self.conn.commit()

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns ``True`` if a row was deleted."""
        cur = self.execute("DELETE FROM kv_documents WHERE key = ?;", (key,))
        self.conn.commit()
        return cur.rowcount > 0

    def keys(self) -> list[str]:
        return [row["key"] for row in self.fetchall("SELECT key FROM kv_documents ORDER BY key;")]
