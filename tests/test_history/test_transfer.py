"""Tests for import/export normalization."""

from __future__ import annotations

import logging
import re

import pytest

from site_rotation.history.transfer import (
    ImportPayloadError,
    generate_entry_id,
    normalize_entries,
    normalize_entry,
    parse_history_json,
    serialize_entries,
)
from site_rotation.taxonomy.site_taxonomy import Side


class TestGenerateEntryId:
    def test_format(self, now_ms):
        assert re.fullmatch(rf"h_{now_ms}_[0-9a-f]{{8}}", generate_entry_id(now_ms))

    def test_avoids_taken(self, now_ms):
        taken = {generate_entry_id(now_ms) for _ in range(20)}
        assert generate_entry_id(now_ms, taken) not in taken


class TestNormalizeEntry:
    def test_complete_record_kept(self, now_ms):
        raw = {"id": "a1", "pointId": "th_l1", "region": "thigh", "side": "left",
               "ts": 1000, "note": "ok"}
        entry = normalize_entry(raw, now_ms)
        assert entry.to_record() == raw

    def test_missing_point_id_skipped(self, now_ms):
        assert normalize_entry({"id": "a1", "ts": 1}, now_ms) is None
        assert normalize_entry({"pointId": ""}, now_ms) is None

    def test_region_and_side_filled_from_catalog(self, now_ms):
        entry = normalize_entry({"pointId": "arm_r1"}, now_ms)
        assert entry.region == "arm"
        assert entry.side == Side.RIGHT

    def test_orphan_gets_sentinels(self, now_ms):
        entry = normalize_entry({"pointId": "leg_x9", "side": "up"}, now_ms)
        assert entry.region == "unknown"
        assert entry.side == Side.NA

    def test_stored_snapshot_wins_over_catalog(self, now_ms):
        entry = normalize_entry({"pointId": "arm_r1", "region": "shoulder", "side": "left"}, now_ms)
        assert entry.region == "shoulder"
        assert entry.side == Side.LEFT

    @pytest.mark.parametrize(
        "ts, expected",
        [
            (1718000000000, 1718000000000),
            (1718000000000.7, 1718000000000),
            ("1718000000000", 1718000000000),
            ("2024-06-10T06:13:20Z", 1718000000000),
            ("2024-06-10T06:13:20", 1718000000000),
        ],
    )
    def test_timestamp_forms(self, now_ms, ts, expected):
        assert normalize_entry({"pointId": "abd_r1", "ts": ts}, now_ms).ts == expected

    @pytest.mark.parametrize("ts", [None, "", "yesterday", True, float("nan"), {"a": 1}, 1e17, "9e20"])
    def test_unusable_timestamp_becomes_now(self, now_ms, ts):
        assert normalize_entry({"pointId": "abd_r1", "ts": ts}, now_ms).ts == now_ms

    def test_note_coercion(self, now_ms):
        assert normalize_entry({"pointId": "abd_r1", "note": None}, now_ms).note == ""
        assert normalize_entry({"pointId": "abd_r1", "note": 42}, now_ms).note == "42"

    def test_missing_id_generated(self, now_ms):
        entry = normalize_entry({"pointId": "abd_r1"}, now_ms)
        assert entry.id.startswith(f"h_{now_ms}_")


class TestNormalizeEntries:
    def test_non_array_rejected(self, now_ms):
        for payload in ({"pointId": "abd_r1"}, "[]", 3, None):
            with pytest.raises(ImportPayloadError):
                normalize_entries(payload, now_ms)

    def test_bad_elements_skipped_with_warning(self, now_ms, caplog):
        payload = [{"pointId": "abd_r1", "ts": 1}, "junk", 7, {"note": "no point"}]
        with caplog.at_level(logging.WARNING):
            entries = normalize_entries(payload, now_ms)
        assert [e.point_id for e in entries] == ["abd_r1"]
        assert "#1" in caplog.text
        assert "#3" in caplog.text

    def test_duplicate_ids_regenerated(self, now_ms):
        payload = [
            {"id": "dup", "pointId": "abd_r1", "ts": 2},
            {"id": "dup", "pointId": "abd_r2", "ts": 1},
        ]
        entries = normalize_entries(payload, now_ms)
        assert entries[0].id == "dup"
        assert entries[1].id != "dup"

    def test_sorted_most_recent_first_stable(self, now_ms):
        payload = [
            {"id": "a", "pointId": "abd_r1", "ts": 1},
            {"id": "b", "pointId": "abd_r2", "ts": 5},
            {"id": "c", "pointId": "abd_r3", "ts": 5},
        ]
        assert [e.id for e in normalize_entries(payload, now_ms)] == ["b", "c", "a"]

    def test_unsorted_keeps_input_order(self, now_ms):
        payload = [
            {"id": "a", "pointId": "abd_r1", "ts": 1},
            {"id": "b", "pointId": "abd_r2", "ts": 5},
        ]
        assert [e.id for e in normalize_entries(payload, now_ms, sort=False)] == ["a", "b"]


class TestJson:
    def test_invalid_json_raises(self):
        with pytest.raises(ImportPayloadError):
            parse_history_json("{not json")

    def test_serialize_preserves_order(self, make_entry):
        entries = [make_entry("abd_r1", entry_id="x"), make_entry("abd_r2", entry_id="y")]
        assert [r["id"] for r in serialize_entries(entries)] == ["x", "y"]
