"""
Base repository providing shared SQLite execution helpers.

Repositories receive a ``sqlite3.Connection`` at construction time. The
connection is opened and closed by the caller (``get_connection()``).

Design:
  - No ORM; all SQL is explicit and lives in repository methods.
  - Repositories speak Pydantic models, not raw dicts.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional

logger = logging.getLogger(__name__)


class BaseRepository:
    """Shared SQL execution helpers for all repository classes.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> sqlite3.Cursor:
        """Execute a single SQL statement."""
        logger.debug("SQL: %s", sql.strip())
        return self.conn.execute(sql, params)

    def fetchone(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> Optional[sqlite3.Row]:
        """Execute a query and return the first row, or ``None``."""
        return self.execute(sql, params).fetchone()

    def fetchall(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> list[sqlite3.Row]:
        """Execute a query and return all rows."""
        return self.execute(sql, params).fetchall()
