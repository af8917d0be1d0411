"""
ASCII terminal formatters for CLI commands.

All formatters accept domain objects and return plain multi-line strings
suitable for ``typer.echo()``. No third-party dependencies.

Orphaned history entries (point id no longer in the catalog) render with
``?`` in the area/name columns; their stored region/side are still shown.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from site_rotation.models.history import HistoryEntry
from site_rotation.models.preferences import Preferences
from site_rotation.rotation.metrics import WindowMetrics
from site_rotation.rotation.recommender import ScoredCandidate
from site_rotation.taxonomy import point_catalog
from site_rotation.taxonomy.site_taxonomy import PointStatus
from site_rotation.utils.time_utils import format_ts


def _on_off(flag: bool) -> str:
    return "on" if flag else "off"


# ── Suggestion ────────────────────────────────────────────────────────────────


def format_suggestion(
    candidates: Sequence[ScoredCandidate],
    prefs:      Preferences,
    top_n:      int = 3,
) -> str:
    """Format the suggested point plus the next-best alternatives.

    Example::

        Suggested next site: Thigh · Left 1 (left)  [th_l1]
          Score 95.0 -- Past cooldown; Switches side from right to left; ...
          Side alternation: on | Region alternation: on | Cooldown: 7d

          Alternatives:
             2  Thigh · Left 2 (left)            th_l2    90.0
    """
    lines: list[str] = []
    if not candidates:
        lines.append("No site available (check enabled regions in preferences).")
        return "\n".join(lines)

    best = candidates[0]
    lines.append(f"Suggested next site: {best.point.label}  [{best.point.id}]")
    lines.append(f"  Score {best.score:.1f} -- {best.reasoning}")
    lines.append(
        f"  Side alternation: {_on_off(prefs.alternate_side)} | "
        f"Region alternation: {_on_off(prefs.alternate_region)} | "
        f"Cooldown: {prefs.cooldown_days}d"
    )

    alternatives = list(candidates[1:top_n])
    if alternatives:
        lines.append("")
        lines.append("  Alternatives:")
        for rank, cand in enumerate(alternatives, start=2):
            lines.append(
                f"    {rank:>2}  {cand.point.label:<30}  {cand.point.id:<7}  {cand.score:>6.1f}"
            )
    return "\n".join(lines)


# ── Status map ────────────────────────────────────────────────────────────────


def format_status_table(
    statuses:   dict[str, PointStatus],
    suggestion_id: Optional[str] = None,
) -> str:
    """Format per-point status for enabled regions, in catalog order.

    The suggested point is flagged with ``*``.
    """
    lines: list[str] = []
    header = f"  {'':1} {'Point':<7}  {'Area':<8}  {'Name':<8}  {'Side':<5}  {'Status':<9}"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    if not statuses:
        lines.append("  (no enabled regions)")
        return "\n".join(lines)

    for point_id, status in statuses.items():
        pt = point_catalog.lookup(point_id)
        if pt is None:
            continue
        flag = "*" if point_id == suggestion_id else " "
        lines.append(
            f"  {flag} {pt.id:<7}  {pt.area_name:<8}  {pt.name:<8}  "
            f"{pt.side.value:<5}  {status.value:<9}"
        )
    return "\n".join(lines)


# ── History ───────────────────────────────────────────────────────────────────


def format_history_table(
    entries: Sequence[HistoryEntry],
    limit:   Optional[int] = None,
) -> str:
    """Format history entries (already ordered most-recent-first)."""
    if not entries:
        return "No history recorded yet."

    shown = list(entries if limit is None else entries[:limit])
    lines: list[str] = []
    header = (
        f"  {'When (UTC)':<16}  {'Entry id':<24}  {'Point':<7}  "
        f"{'Area':<8}  {'Region':<8}  {'Side':<5}  Note"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for entry in shown:
        pt = point_catalog.lookup(entry.point_id)
        area = pt.area_name if pt is not None else "?"
        lines.append(
            f"  {format_ts(entry.ts):<16}  {entry.id:<24}  {entry.point_id:<7}  "
            f"{area:<8}  {entry.region:<8}  {entry.side.value:<5}  {entry.note}"
        )
    if len(shown) < len(entries):
        lines.append(f"  ... {len(entries) - len(shown)} older entries not shown.")
    return "\n".join(lines)


# ── Metrics ───────────────────────────────────────────────────────────────────


def format_metrics(metrics: dict[int, WindowMetrics]) -> str:
    """Format rolling-window totals with per-region and per-side counts.

    Every catalog region is listed (zero when unused); non-catalog regions
    (e.g. ``unknown``) are appended when they occur.
    """
    names = point_catalog.region_names()
    windows = sorted(metrics)
    lines: list[str] = []

    header = f"  {'':<14}" + "".join(f"  {f'{d}d':>5}" for d in windows)
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    lines.append(f"  {'Total':<14}" + "".join(f"  {metrics[d].total:>5}" for d in windows))

    extra_regions = sorted(
        {r for d in windows for r in metrics[d].counts_by_region} - set(names)
    )
    for region in [*names, *extra_regions]:
        label = names.get(region, region)
        lines.append(
            f"  {label:<14}"
            + "".join(f"  {metrics[d].counts_by_region.get(region, 0):>5}" for d in windows)
        )
    for side in ("left", "right"):
        lines.append(
            f"  {'Side ' + side:<14}"
            + "".join(f"  {metrics[d].counts_by_side.get(side, 0):>5}" for d in windows)
        )
    return "\n".join(lines)


# ── Preferences ───────────────────────────────────────────────────────────────


def format_preferences(prefs: Preferences) -> str:
    """Format preferences. The PIN value itself is never printed."""
    names = point_catalog.region_names()
    regions = ", ".join(
        f"{names.get(region, region)}={_on_off(enabled)}"
        for region, enabled in prefs.enabled_regions.items()
    )
    lines = [
        f"  Cooldown (days):     {prefs.cooldown_days}",
        f"  Alternate side:      {_on_off(prefs.alternate_side)}",
        f"  Alternate region:    {_on_off(prefs.alternate_region)}",
        f"  Daily slots:         {prefs.daily_slots}",
        f"  Enabled regions:     {regions}",
        f"  Language:            {prefs.language}",
        f"  History PIN:         {_on_off(prefs.pin_enabled)}",
    ]
    return "\n".join(lines)


# ── Catalog ───────────────────────────────────────────────────────────────────


def format_points_table() -> str:
    """Format the full catalog in declaration order, one block per area."""
    lines: list[str] = []
    header = f"  {'Point':<7}  {'Area':<8}  {'Name':<8}  {'Side':<5}  {'x':>5}  {'y':>5}"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for area in point_catalog.all_areas():
        lines.append(f"  [{area.region.value}]")
        for pt in area.points:
            lines.append(
                f"  {pt.id:<7}  {pt.area_name:<8}  {pt.name:<8}  {pt.side.value:<5}  "
                f"{pt.position.x:>5.0f}  {pt.position.y:>5.0f}"
            )
    return "\n".join(lines)
