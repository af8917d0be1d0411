"""
Rolling-window usage metrics.

``window_metrics(history, days)`` counts entries with ``ts >= now - days``
and breaks them down by region and side. Counts use the denormalized
``region`` / ``side`` stored on each entry, so orphaned entries show up
under ``"unknown"`` / ``"na"``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Optional

from site_rotation.models.history import HistoryEntry
from site_rotation.taxonomy.site_taxonomy import Side
from site_rotation.utils.time_utils import resolve_now, window_cutoff_ms

DEFAULT_WINDOWS_DAYS: tuple[int, ...] = (7, 30)


@dataclass
class WindowMetrics:
    """Usage counts for one trailing window.

    Attributes:
        days:             Window length in days.
        total:            Entries inside the window.
        counts_by_region: Region → count (only regions that occur).
        counts_by_side:   Side → count; ``left`` and ``right`` always present.
    """

    days:             int
    total:            int = 0
    counts_by_region: dict[str, int] = field(default_factory=dict)
    counts_by_side:   dict[str, int] = field(
        default_factory=lambda: {Side.LEFT.value: 0, Side.RIGHT.value: 0}
    )

    def to_dict(self) -> dict:
        return {
            "days":           self.days,
            "total":          self.total,
            "countsByRegion": dict(self.counts_by_region),
            "countsBySide":   dict(self.counts_by_side),
        }


def window_metrics(
    history: Sequence[HistoryEntry],
    days:    int,
    now_ms:  Optional[int] = None,
) -> WindowMetrics:
    """Aggregate entries inside the trailing ``days`` window.

    Raises:
        ValueError: If ``days < 1``.
    """
    if days < 1:
        raise ValueError(f"days must be >= 1, got {days}.")

    cutoff = window_cutoff_ms(days, now_ms)
    result = WindowMetrics(days=days)
    for entry in history:
        if entry.ts < cutoff:
            continue
        result.total += 1
        result.counts_by_region[entry.region] = result.counts_by_region.get(entry.region, 0) + 1
        side = entry.side.value
        result.counts_by_side[side] = result.counts_by_side.get(side, 0) + 1
    return result


def standard_metrics(
    history: Sequence[HistoryEntry],
    windows: Iterable[int] = DEFAULT_WINDOWS_DAYS,
    now_ms:  Optional[int] = None,
) -> dict[int, WindowMetrics]:
    """Compute ``window_metrics`` for each window length, keyed by days."""
    now = resolve_now(now_ms)
    return {days: window_metrics(history, days, now) for days in windows}
