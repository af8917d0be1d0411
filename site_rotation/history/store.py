"""
In-memory history store with write-through persistence and single-level undo.

Mutation paths (the only ones):
  - ``append()``             — record a use; arms the undo record.
  - ``undo_last(id)``        — remove the entry named by the undo record.
  - ``delete(id)``           — irreversible removal.
  - ``edit_note(id, note)``  — replace the note of one entry.
  - ``import_and_replace()`` — swap the whole log for a normalized import.

Undo record
-----------
``UndoRecord(appended_id)`` is armed by ``append()`` and cleared by every
other effective mutation, and by the undo itself. There is no undo stack.
A call that changes nothing (unknown id) leaves the record as it was.

Ordering
--------
``entries`` is store order: appends are prepended, imports are sorted
most-recent-first. ``ordered()`` re-sorts by ``ts`` descending with a stable
sort so equal timestamps keep store order.

Persistence
-----------
Every effective mutation writes the full log and the undo record through the
optional ``HistoryPersistence`` backend. A failed write is logged as a
warning; the in-memory mutation stands.

Mutations are serialized with a single lock; they are not commutative
(undo depends on which append came last).
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from site_rotation.history.transfer import (
    generate_entry_id,
    normalize_entries,
    parse_history_json,
    serialize_entries,
    sort_most_recent_first,
)
from site_rotation.models.history import HistoryEntry
from site_rotation.models.point import Point
from site_rotation.utils.time_utils import resolve_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UndoRecord:
    """The single undoable action: the id of the last appended entry."""

    appended_id: str

    def to_record(self) -> dict[str, str]:
        return {"type": "add", "entryId": self.appended_id}

    @classmethod
    def from_record(cls, raw: Any) -> Optional["UndoRecord"]:
        """Rebuild from the persisted shape; anything unexpected gives ``None``."""
        if not isinstance(raw, dict) or raw.get("type") != "add":
            return None
        entry_id = raw.get("entryId")
        if not isinstance(entry_id, str) or not entry_id:
            return None
        return cls(appended_id=entry_id)


class HistoryPersistence(Protocol):
    """Write-through target for the history log."""

    def save_history(self, entries: Sequence[HistoryEntry]) -> None: ...

    def save_undo(self, record: Optional[UndoRecord]) -> None: ...


class HistoryStore:
    """Ordered injection log.

    Attributes:
        revision: Incremented on every effective mutation.
    """

    def __init__(
        self,
        entries: Iterable[HistoryEntry] = (),
        persistence: Optional[HistoryPersistence] = None,
        undo: Optional[UndoRecord] = None,
    ) -> None:
        self._entries: list[HistoryEntry] = list(entries)
        self._persistence = persistence
        self._lock = threading.Lock()
        self.revision = 0
        # A persisted undo record only counts if its entry is still the newest append.
        if undo is not None and self._entries and self._entries[0].id == undo.appended_id:
            self._undo: Optional[UndoRecord] = undo
        else:
            self._undo = None

    # ── Read access ───────────────────────────────────────────────────────────

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        """All entries in store order."""
        return tuple(self._entries)

    @property
    def pending_undo(self) -> Optional[UndoRecord]:
        return self._undo

    def __len__(self) -> int:
        return len(self._entries)

    def ordered(self) -> list[HistoryEntry]:
        """Entries most-recent-first by ``ts`` (stable on ties)."""
        return sort_most_recent_first(self._entries)

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    # ── Mutations ─────────────────────────────────────────────────────────────

    def append(self, point: Point, now_ms: Optional[int] = None) -> HistoryEntry:
        """Record a use of ``point`` at ``now_ms`` and arm the undo record.

        Returns:
            The created entry (its ``id`` is the undo token).
        """
        with self._lock:
            now = resolve_now(now_ms)
            entry = HistoryEntry(
                id=generate_entry_id(now, {e.id for e in self._entries}),
                point_id=point.id,
                region=point.region.value,
                side=point.side,
                ts=now,
                note="",
            )
            self._commit([entry, *self._entries], UndoRecord(entry.id))
        logger.info("Recorded %s at %d (entry %s).", point.id, entry.ts, entry.id)
        return entry

    def undo_last(self, appended_id: str) -> bool:
        """Remove ``appended_id`` if it is still the undoable append.

        Returns:
            ``True`` if the entry was removed, ``False`` if undo was not
            eligible (another mutation happened since, or unknown id).
        """
        with self._lock:
            if self._undo is None or self._undo.appended_id != appended_id:
                logger.info("Undo rejected for %s: not the last append.", appended_id)
                return False
            remaining = [e for e in self._entries if e.id != appended_id]
            self._commit(remaining, None)
        logger.info("Undid entry %s.", appended_id)
        return True

    def delete(self, entry_id: str) -> bool:
        """Remove an entry unconditionally. Returns ``False`` if not found."""
        with self._lock:
            remaining = [e for e in self._entries if e.id != entry_id]
            if len(remaining) == len(self._entries):
                return False
            self._commit(remaining, None)
        logger.info("Deleted entry %s.", entry_id)
        return True

    def edit_note(self, entry_id: str, note: str) -> Optional[HistoryEntry]:
        """Replace the note of ``entry_id``. Content is not validated.

        Returns:
            The updated entry, or ``None`` if not found.
        """
        with self._lock:
            updated: Optional[HistoryEntry] = None
            new_entries: list[HistoryEntry] = []
            for entry in self._entries:
                if entry.id == entry_id:
                    updated = entry.with_note(note)
                    new_entries.append(updated)
                else:
                    new_entries.append(entry)
            if updated is None:
                return None
            self._commit(new_entries, None)
        logger.info("Updated note on entry %s.", entry_id)
        return updated

    def import_and_replace(
        self,
        raw_entries: Any,
        now_ms: Optional[int] = None,
    ) -> list[HistoryEntry]:
        """Replace the whole log with a normalized import.

        Raises:
            ImportPayloadError: If ``raw_entries`` is not an array. The
                existing history is left untouched.
        """
        normalized = normalize_entries(raw_entries, now_ms, sort=True)
        with self._lock:
            self._commit(normalized, None)
        logger.info("Imported %d history entries (replaced existing log).", len(normalized))
        return list(normalized)

    def import_json(self, text: str, now_ms: Optional[int] = None) -> list[HistoryEntry]:
        """Parse an import document and replace the log with it.

        Raises:
            ImportPayloadError: If ``text`` is not JSON or not an array.
        """
        return self.import_and_replace(parse_history_json(text), now_ms)

    # ── Export ────────────────────────────────────────────────────────────────

    def export(self) -> list[dict[str, Any]]:
        """The full log in store order, in the import schema."""
        return serialize_entries(self._entries)

    def export_json(self, indent: int = 2) -> str:
        return json.dumps(self.export(), indent=indent, ensure_ascii=False)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _commit(self, entries: list[HistoryEntry], undo: Optional[UndoRecord]) -> None:
        """Swap in new state and write it through. Caller holds the lock."""
        self._entries = entries
        self._undo = undo
        self.revision += 1
        if self._persistence is None:
            return
        try:
            self._persistence.save_history(self._entries)
            self._persistence.save_undo(self._undo)
        except (sqlite3.Error, OSError) as exc:
            logger.warning("History persistence failed (changes kept in memory): %s", exc)
