"""
Rotation session: the explicit state container.

A ``RotationSession`` owns the two independent aggregates (``Preferences``
and the ``HistoryStore``) and the repository they are written through to.
Derived state (per-point status, ranked candidates, suggestion, rolling
metrics) is never stored: ``derive()`` recomputes it from current state, so
every mutation is reflected by the next call.

Startup sequence (``RotationSession.open``):
  1. Apply the schema and run schema-version migrations.
  2. Load preferences merged over defaults (malformed → defaults).
  3. Load history, timestamps normalized (malformed → empty).
  4. Load the persisted undo record.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

from site_rotation.db.migrations import run_migrations
from site_rotation.db.repositories.state_repo import RotationStateRepository
from site_rotation.db.schema import apply_schema
from site_rotation.history.store import HistoryStore
from site_rotation.models.history import HistoryEntry
from site_rotation.models.point import Point
from site_rotation.models.preferences import Preferences
from site_rotation.rotation.metrics import DEFAULT_WINDOWS_DAYS, WindowMetrics, standard_metrics
from site_rotation.rotation.recommender import ScoredCandidate, score_candidates
from site_rotation.rotation.status import classify_points
from site_rotation.taxonomy import point_catalog
from site_rotation.taxonomy.site_taxonomy import PointStatus
from site_rotation.utils.time_utils import resolve_now

logger = logging.getLogger(__name__)


class UnknownPointError(LookupError):
    """A point id that is not in the catalog was requested for recording."""


@dataclass
class RotationSnapshot:
    """Everything derived from one (history, preferences, now) state.

    Attributes:
        revision:   History revision the snapshot was derived from.
        now_ms:     Evaluation time.
        statuses:   Point id → status, for points in enabled regions.
        candidates: Ranked candidates, best first.
        suggestion: Top candidate point, or ``None`` when no region is enabled.
        metrics:    Window length (days) → rolling metrics.
    """

    revision:   int
    now_ms:     int
    statuses:   dict[str, PointStatus]
    candidates: list[ScoredCandidate]
    suggestion: Optional[Point]
    metrics:    dict[int, WindowMetrics]


class RotationSession:
    """State container wiring preferences and history to persistence."""

    def __init__(
        self,
        repo: RotationStateRepository,
        prefs: Preferences,
        store: HistoryStore,
        metric_windows: Sequence[int] = DEFAULT_WINDOWS_DAYS,
    ) -> None:
        self.repo = repo
        self._prefs = prefs
        self.store = store
        self.metric_windows = tuple(metric_windows)

    @classmethod
    def open(
        cls,
        conn: sqlite3.Connection,
        metric_windows: Sequence[int] = DEFAULT_WINDOWS_DAYS,
        now_ms: Optional[int] = None,
    ) -> "RotationSession":
        """Load persisted state from ``conn`` (see module docstring)."""
        apply_schema(conn)
        repo = RotationStateRepository(conn)
        run_migrations(repo)

        prefs = repo.load_preferences()
        entries = repo.load_history(now_ms)
        store = HistoryStore(entries, persistence=repo, undo=repo.load_undo())
        logger.debug("Session opened: %d history entries.", len(store))
        return cls(repo, prefs, store, metric_windows)

    # ── Preferences ───────────────────────────────────────────────────────────

    @property
    def prefs(self) -> Preferences:
        return self._prefs

    def update_preferences(self, **changes: Any) -> Preferences:
        """Validate and apply preference changes, then write them through.

        Raises:
            pydantic.ValidationError: If a changed value is invalid; the
                current preferences are kept.
        """
        updated = self._prefs.with_changes(**changes)
        self._prefs = updated
        try:
            self.repo.save_preferences(updated)
        except sqlite3.Error as exc:
            logger.warning("Preference persistence failed (changes kept in memory): %s", exc)
        logger.info("Preferences updated: %s", sorted(changes))
        return updated

    # ── History ───────────────────────────────────────────────────────────────

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return self.store.entries

    def record(self, point_id: Optional[str] = None, now_ms: Optional[int] = None) -> HistoryEntry:
        """Record a use of ``point_id`` (manual pick) or of the current suggestion.

        Raises:
            UnknownPointError: If ``point_id`` is not in the catalog, or no
                suggestion exists because every region is disabled.
        """
        now = resolve_now(now_ms)
        if point_id is None:
            point = self.derive(now).suggestion
            if point is None:
                raise UnknownPointError("No suggestion available: every region is disabled.")
        else:
            point = point_catalog.lookup(point_id)
            if point is None:
                raise UnknownPointError(f"Unknown point id '{point_id}'.")
        return self.store.append(point, now)

    def undo(self) -> bool:
        """Undo the last append if it is still undoable."""
        pending = self.store.pending_undo
        if pending is None:
            return False
        return self.store.undo_last(pending.appended_id)

    # ── Derived state ─────────────────────────────────────────────────────────

    def derive(self, now_ms: Optional[int] = None) -> RotationSnapshot:
        """Recompute statuses, ranking, suggestion, and metrics."""
        now = resolve_now(now_ms)
        history = self.store.entries
        usable = point_catalog.points_in_regions(self._prefs.enabled_regions)
        candidates = score_candidates(history, self._prefs, now)
        return RotationSnapshot(
            revision=self.store.revision,
            now_ms=now,
            statuses=classify_points(usable, history, self._prefs, now),
            candidates=candidates,
            suggestion=candidates[0].point if candidates else None,
            metrics=standard_metrics(history, self.metric_windows, now),
        )
