"""
Shared pytest fixtures for the Site Rotation test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the schema
    applied. Created anew for each test that requests it.
  - ``NOW_MS`` / ``make_entry``: a fixed evaluation time and a history entry
    factory, so rotation tests never depend on the wall clock.
"""

from __future__ import annotations

import sqlite3
from typing import Callable, Generator, Optional

import pytest

from site_rotation.db.schema import apply_schema
from site_rotation.models.history import HistoryEntry
from site_rotation.models.preferences import Preferences
from site_rotation.taxonomy import point_catalog
from site_rotation.taxonomy.site_taxonomy import UNKNOWN_REGION, Side
from site_rotation.utils.time_utils import DAY_MS

# 2024-06-10T06:13:20Z
NOW_MS = 1_718_000_000_000


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the schema applied.

    Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    apply_schema(conn)
    yield conn
    conn.close()


# ── Sample domain object factories ────────────────────────────────────────────

_counter = {"n": 0}


def build_entry(
    point_id: str,
    days_ago: float = 0,
    entry_id: Optional[str] = None,
    note: str = "",
    now_ms: int = NOW_MS,
    ts: Optional[int] = None,
) -> HistoryEntry:
    """Build a ``HistoryEntry`` for ``point_id`` used ``days_ago`` before ``now_ms``.

    An explicit ``ts`` takes precedence over ``days_ago``.

    Region and side are snapshotted from the catalog, or the ``unknown`` /
    ``na`` sentinels for ids the catalog does not have.
    """
    point = point_catalog.lookup(point_id)
    _counter["n"] += 1
    return HistoryEntry(
        id=entry_id or f"h_test_{_counter['n']:04d}",
        point_id=point_id,
        region=point.region.value if point else UNKNOWN_REGION,
        side=point.side if point else Side.NA,
        ts=ts if ts is not None else int(now_ms - days_ago * DAY_MS),
        note=note,
    )


@pytest.fixture
def make_entry() -> Callable[..., HistoryEntry]:
    """Factory fixture wrapping ``build_entry``."""
    return build_entry


@pytest.fixture
def default_prefs() -> Preferences:
    return Preferences()


@pytest.fixture
def now_ms() -> int:
    return NOW_MS
