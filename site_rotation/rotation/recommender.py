"""
Next-site recommender: builds the candidate pool, scores it, and picks one.

Usage flow
----------
1. score_candidates(history, prefs)
   -> list[ScoredCandidate]  (best first; ties keep catalog order)

2. suggest(history, prefs)
   -> Point | None           (first scored candidate)

Pool rules
----------
- Usable points are catalog points whose region is enabled. No usable point
  means no suggestion (``None``); that is a normal outcome, not an error.
- The pool is every ``available`` usable point. If none is available, the
  pool falls back to all usable points so a suggestion is always produced
  while at least one region is enabled.
- "Last used" is the point of the most recent entry by ``ts`` across the
  whole history, regardless of region enablement. Orphaned point ids give no
  last point, so alternation and distance terms are skipped.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from site_rotation.models.history import HistoryEntry
from site_rotation.models.point import Point
from site_rotation.models.preferences import Preferences
from site_rotation.rotation.scorer import (
    FREQUENCY_WINDOW_DAYS,
    ScoreComponents,
    build_reasoning,
    compute_score,
)
from site_rotation.rotation.status import status_of
from site_rotation.taxonomy import point_catalog
from site_rotation.taxonomy.site_taxonomy import PointStatus
from site_rotation.utils.time_utils import resolve_now, window_cutoff_ms


@dataclass
class ScoredCandidate:
    """A pool member coupled with its score breakdown.

    Attributes:
        point:      The candidate point.
        status:     Its own status at evaluation time.
        components: Score breakdown.
        score:      ``components.total``.
        reasoning:  Human-readable explanation string.
    """

    point:      Point
    status:     PointStatus
    components: ScoreComponents
    score:      float
    reasoning:  str


def most_recent_entry(history: Sequence[HistoryEntry]) -> Optional[HistoryEntry]:
    """Return the entry with the greatest ``ts``; ties keep store order."""
    latest: Optional[HistoryEntry] = None
    for entry in history:
        if latest is None or entry.ts > latest.ts:
            latest = entry
    return latest


def last_used_point(history: Sequence[HistoryEntry]) -> Optional[Point]:
    """Resolve the point of the most recent entry, or ``None``."""
    entry = most_recent_entry(history)
    if entry is None:
        return None
    return point_catalog.lookup(entry.point_id)


def count_recent_uses(
    point_id: str,
    history: Sequence[HistoryEntry],
    now_ms: Optional[int] = None,
    days: int = FREQUENCY_WINDOW_DAYS,
) -> int:
    """Count entries for ``point_id`` with ``ts >= now - days``."""
    cutoff = window_cutoff_ms(days, now_ms)
    return sum(1 for h in history if h.point_id == point_id and h.ts >= cutoff)


def score_candidates(
    history: Sequence[HistoryEntry],
    prefs:   Preferences,
    now_ms:  Optional[int] = None,
) -> list[ScoredCandidate]:
    """Score the candidate pool and return it best-first.

    The sort is stable, so equal scores keep catalog declaration order.

    Args:
        history: Full history, in any order.
        prefs:   Current preferences.
        now_ms:  Evaluation time; defaults to the current time.

    Returns:
        Scored candidates, best first. Empty when no region is enabled.
    """
    now = resolve_now(now_ms)
    usable = point_catalog.points_in_regions(prefs.enabled_regions)
    if not usable:
        return []

    last = last_used_point(history)
    statuses = {pt.id: status_of(pt.id, history, prefs, now) for pt in usable}

    pool = [pt for pt in usable if statuses[pt.id] == PointStatus.AVAILABLE]
    if not pool:
        pool = usable

    scored: list[ScoredCandidate] = []
    for pt in pool:
        status = statuses[pt.id]
        components = compute_score(
            candidate=pt,
            status=status,
            last=last,
            alternate_side=prefs.alternate_side,
            alternate_region=prefs.alternate_region,
            recent_uses=count_recent_uses(pt.id, history, now),
        )
        scored.append(
            ScoredCandidate(
                point=pt,
                status=status,
                components=components,
                score=components.total,
                reasoning=build_reasoning(components, pt, last),
            )
        )

    return sorted(scored, key=lambda c: -c.score)


def suggest(
    history: Sequence[HistoryEntry],
    prefs:   Preferences,
    now_ms:  Optional[int] = None,
) -> Optional[Point]:
    """Return the recommended next point, or ``None`` if no region is enabled."""
    ranked = score_candidates(history, prefs, now_ms)
    return ranked[0].point if ranked else None
