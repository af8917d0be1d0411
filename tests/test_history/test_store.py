"""Tests for HistoryStore mutations, undo, and import/export."""

from __future__ import annotations

import json
import sqlite3
from typing import Optional, Sequence

import pytest

from site_rotation.history.store import HistoryStore, UndoRecord
from site_rotation.history.transfer import ImportPayloadError
from site_rotation.models.history import HistoryEntry
from site_rotation.taxonomy import point_catalog


class _RecordingPersistence:
    """Captures write-through calls."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.history: Optional[list[HistoryEntry]] = None
        self.undo: Optional[UndoRecord] = None
        self.writes = 0

    def save_history(self, entries: Sequence[HistoryEntry]) -> None:
        if self.fail:
            raise sqlite3.OperationalError("disk I/O error")
        self.history = list(entries)
        self.writes += 1

    def save_undo(self, record: Optional[UndoRecord]) -> None:
        self.undo = record


def _pt(point_id: str):
    return point_catalog.lookup(point_id)


class TestAppend:
    def test_prepends_with_snapshot_fields(self, now_ms):
        store = HistoryStore()
        store.append(_pt("abd_r1"), now_ms - 10)
        entry = store.append(_pt("th_l1"), now_ms)
        assert store.entries[0] == entry
        assert entry.region == "thigh"
        assert entry.side.value == "left"
        assert entry.ts == now_ms
        assert entry.note == ""
        assert len(store) == 2

    def test_arms_undo_and_bumps_revision(self, now_ms):
        store = HistoryStore()
        entry = store.append(_pt("abd_r1"), now_ms)
        assert store.pending_undo == UndoRecord(entry.id)
        assert store.revision == 1

    def test_writes_through(self, now_ms):
        backend = _RecordingPersistence()
        store = HistoryStore(persistence=backend)
        entry = store.append(_pt("abd_r1"), now_ms)
        assert backend.history == [entry]
        assert backend.undo == UndoRecord(entry.id)

    def test_persistence_failure_keeps_memory_state(self, now_ms, caplog):
        store = HistoryStore(persistence=_RecordingPersistence(fail=True))
        store.append(_pt("abd_r1"), now_ms)
        assert len(store) == 1
        assert "persistence failed" in caplog.text


class TestUndo:
    def test_undo_removes_last_append(self, now_ms):
        store = HistoryStore()
        first = store.append(_pt("abd_r1"), now_ms - 5)
        second = store.append(_pt("abd_r2"), now_ms)
        assert store.undo_last(second.id) is True
        assert store.entries == (first,)
        assert store.pending_undo is None

    def test_second_undo_rejected(self, now_ms):
        store = HistoryStore()
        entry = store.append(_pt("abd_r1"), now_ms)
        store.undo_last(entry.id)
        assert store.undo_last(entry.id) is False

    def test_undo_after_another_append_rejected_for_older(self, now_ms):
        store = HistoryStore()
        older = store.append(_pt("abd_r1"), now_ms - 5)
        store.append(_pt("abd_r2"), now_ms)
        assert store.undo_last(older.id) is False
        assert len(store) == 2

    def test_undo_after_delete_rejected(self, now_ms, make_entry):
        store = HistoryStore([make_entry("th_r1", entry_id="old")])
        entry = store.append(_pt("abd_r1"), now_ms)
        assert store.delete("old") is True
        assert store.undo_last(entry.id) is False
        assert store.get(entry.id) is not None

    def test_undo_after_note_edit_rejected(self, now_ms):
        store = HistoryStore()
        entry = store.append(_pt("abd_r1"), now_ms)
        store.edit_note(entry.id, "sore")
        assert store.undo_last(entry.id) is False

    def test_undo_after_import_rejected(self, now_ms):
        store = HistoryStore()
        entry = store.append(_pt("abd_r1"), now_ms)
        store.import_and_replace(store.export(), now_ms)
        assert store.undo_last(entry.id) is False

    def test_noop_mutation_keeps_undo(self, now_ms):
        store = HistoryStore()
        entry = store.append(_pt("abd_r1"), now_ms)
        assert store.delete("missing") is False
        assert store.edit_note("missing", "x") is None
        assert store.undo_last(entry.id) is True

    def test_persisted_undo_accepted_only_for_newest_entry(self, make_entry):
        entries = [make_entry("abd_r1", entry_id="new"), make_entry("abd_r2", entry_id="old")]
        assert HistoryStore(entries, undo=UndoRecord("new")).pending_undo == UndoRecord("new")
        assert HistoryStore(entries, undo=UndoRecord("old")).pending_undo is None


class TestUndoRecord:
    def test_record_shape(self):
        assert UndoRecord("h_1").to_record() == {"type": "add", "entryId": "h_1"}

    @pytest.mark.parametrize("raw", [None, [], {"type": "delete", "entryId": "x"}, {"type": "add"}])
    def test_from_record_rejects_unexpected(self, raw):
        assert UndoRecord.from_record(raw) is None

    def test_from_record(self):
        assert UndoRecord.from_record({"type": "add", "entryId": "x"}) == UndoRecord("x")


class TestDeleteAndEdit:
    def test_delete(self, make_entry):
        store = HistoryStore([make_entry("abd_r1", entry_id="a"), make_entry("abd_r2", entry_id="b")])
        assert store.delete("a") is True
        assert [e.id for e in store.entries] == ["b"]

    def test_edit_note_replaces_entry(self, make_entry):
        original = make_entry("abd_r1", entry_id="a")
        store = HistoryStore([original])
        updated = store.edit_note("a", "bruise")
        assert updated.note == "bruise"
        assert store.get("a").note == "bruise"
        assert updated.ts == original.ts

    def test_edit_note_accepts_any_text(self, make_entry):
        store = HistoryStore([make_entry("abd_r1", entry_id="a")])
        assert store.edit_note("a", "").note == ""


class TestOrdering:
    def test_ordered_by_ts_descending_stable(self, make_entry, now_ms):
        store = HistoryStore([
            make_entry("abd_r1", entry_id="a", ts=now_ms - 10),
            make_entry("abd_r2", entry_id="b", ts=now_ms),
            make_entry("abd_r3", entry_id="c", ts=now_ms),
        ])
        assert [e.id for e in store.ordered()] == ["b", "c", "a"]
        assert [e.id for e in store.entries] == ["a", "b", "c"]


class TestImportExport:
    def test_round_trip_reproduces_history(self, now_ms):
        store = HistoryStore()
        store.append(_pt("abd_r1"), now_ms - 2000)
        store.append(_pt("arm_l1"), now_ms - 1000)
        noted = store.append(_pt("th_r2"), now_ms)
        store.edit_note(noted.id, "left a mark")
        before = store.export()

        store.import_and_replace(before, now_ms)
        assert store.export() == before

    def test_import_is_idempotent(self, now_ms):
        store = HistoryStore()
        payload = [
            {"pointId": "abd_r1", "ts": "2024-06-01T08:00:00Z"},
            {"pointId": "leg_x9", "ts": 5, "id": "orphan"},
        ]
        store.import_and_replace(payload, now_ms)
        once = store.export()
        store.import_and_replace(once, now_ms)
        assert store.export() == once

    def test_non_array_leaves_history_untouched(self, now_ms):
        store = HistoryStore()
        store.append(_pt("abd_r1"), now_ms)
        before = store.export()
        revision = store.revision
        with pytest.raises(ImportPayloadError):
            store.import_and_replace({"pointId": "abd_r2"}, now_ms)
        assert store.export() == before
        assert store.revision == revision

    def test_invalid_json_leaves_history_untouched(self, now_ms):
        store = HistoryStore()
        store.append(_pt("abd_r1"), now_ms)
        with pytest.raises(ImportPayloadError):
            store.import_json("not json", now_ms)
        assert len(store) == 1

    def test_export_json(self, make_entry):
        store = HistoryStore([make_entry("abd_r1", entry_id="a", note="ação")])
        decoded = json.loads(store.export_json())
        assert decoded[0]["id"] == "a"
        assert decoded[0]["note"] == "ação"
