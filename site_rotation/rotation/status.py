"""
Per-point availability classification.

A point is ``available`` when it has never been used or when its most recent
use is at least ``cooldown_days`` old; otherwise it is ``recent``. The
threshold is inclusive on the available side::

    elapsed = now - max(ts of entries for the point)
    elapsed >= cooldown_days * DAY_MS  ->  available

History order is never assumed: the most recent entry is found by taking the
maximum ``ts`` explicitly.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Optional

from site_rotation.models.history import HistoryEntry
from site_rotation.models.point import Point
from site_rotation.models.preferences import Preferences
from site_rotation.taxonomy.site_taxonomy import PointStatus
from site_rotation.utils.time_utils import resolve_now


def last_use_ms(point_id: str, history: Iterable[HistoryEntry]) -> Optional[int]:
    """Return the latest ``ts`` recorded for ``point_id``, or ``None``."""
    latest: Optional[int] = None
    for entry in history:
        if entry.point_id == point_id and (latest is None or entry.ts > latest):
            latest = entry.ts
    return latest


def status_of(
    point_id: str,
    history: Sequence[HistoryEntry],
    prefs: Preferences,
    now_ms: Optional[int] = None,
) -> PointStatus:
    """Classify ``point_id`` as available or recent.

    Args:
        point_id: Catalog point id.
        history:  Full history, in any order.
        prefs:    Preferences supplying ``cooldown_days``.
        now_ms:   Evaluation time; defaults to the current time.

    Returns:
        ``PointStatus.AVAILABLE`` or ``PointStatus.RECENT``.
    """
    latest = last_use_ms(point_id, history)
    if latest is None:
        return PointStatus.AVAILABLE
    elapsed = resolve_now(now_ms) - latest
    if elapsed >= prefs.cooldown_ms:
        return PointStatus.AVAILABLE
    return PointStatus.RECENT


def classify_points(
    points: Iterable[Point],
    history: Sequence[HistoryEntry],
    prefs: Preferences,
    now_ms: Optional[int] = None,
) -> dict[str, PointStatus]:
    """Classify every point in ``points``, keyed by point id (input order)."""
    now = resolve_now(now_ms)
    return {pt.id: status_of(pt.id, history, prefs, now) for pt in points}
