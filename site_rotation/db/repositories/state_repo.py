"""
Repository for rotation state documents: history, preferences, undo record,
and schema version.

Loading never fails on bad data. A missing or malformed document is replaced
by its default (empty history, default preferences, no undo record) and the
problem is logged. Saving writes the whole document (write-through).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional

from site_rotation.db.repositories.kv_repo import KeyValueRepository
from site_rotation.history.store import UndoRecord
from site_rotation.history.transfer import (
    ImportPayloadError,
    normalize_entries,
    serialize_entries,
)
from site_rotation.models.history import HistoryEntry
from site_rotation.models.preferences import Preferences

logger = logging.getLogger(__name__)

KEY_HISTORY = "history"
KEY_PREFS = "prefs"
KEY_SCHEMA_VERSION = "schema_version"
KEY_LAST_ACTION = "last_action"


class RotationStateRepository(KeyValueRepository):
    """Typed access to the rotation state documents."""

    # ── History ───────────────────────────────────────────────────────────────

    def load_history(self, now_ms: Optional[int] = None) -> list[HistoryEntry]:
        """Load the persisted log in stored order, timestamps normalized."""
        raw = self.get_document(KEY_HISTORY)
        if raw is None:
            return []
        try:
            return normalize_entries(raw, now_ms, sort=False)
        except ImportPayloadError as exc:
            logger.warning("Persisted history is malformed (%s); starting empty.", exc)
            return []

    def save_history(self, entries: Sequence[HistoryEntry]) -> None:
        self.put_document(KEY_HISTORY, serialize_entries(entries))

    # ── Preferences ───────────────────────────────────────────────────────────

    def load_preferences(self) -> Preferences:
        """Load preferences merged over the defaults."""
        return Preferences.from_persisted(self.get_document(KEY_PREFS))

    def save_preferences(self, prefs: Preferences) -> None:
        self.put_document(KEY_PREFS, prefs.to_record())

    # ── Undo record ───────────────────────────────────────────────────────────

    def load_undo(self) -> Optional[UndoRecord]:
        return UndoRecord.from_record(self.get_document(KEY_LAST_ACTION))

    def save_undo(self, record: Optional[UndoRecord]) -> None:
        if record is None:
            self.delete(KEY_LAST_ACTION)
        else:
            self.put_document(KEY_LAST_ACTION, record.to_record())

    # ── Schema version ────────────────────────────────────────────────────────

    def get_schema_version(self) -> Optional[int]:
        """Return the stored schema version, or ``None`` if absent/invalid."""
        raw = self.get_document(KEY_SCHEMA_VERSION)
        if isinstance(raw, bool) or not isinstance(raw, (int, str)):
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def set_schema_version(self, version: int) -> None:
        self.put_document(KEY_SCHEMA_VERSION, version)
