"""Tests for the RotationSession state container."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from site_rotation.db.repositories.state_repo import KEY_HISTORY, KEY_PREFS
from site_rotation.session import RotationSession, UnknownPointError
from site_rotation.taxonomy.site_taxonomy import PointStatus


@pytest.fixture
def session(in_memory_db, now_ms) -> RotationSession:
    return RotationSession.open(in_memory_db, now_ms=now_ms)


class TestOpen:
    def test_fresh_database_defaults(self, session):
        assert session.history == ()
        assert session.prefs.cooldown_days == 7
        assert session.store.pending_undo is None

    def test_malformed_documents_fall_back(self, in_memory_db, now_ms):
        in_memory_db.execute(
            "INSERT INTO kv_documents (key, value) VALUES (?, '{bad'), (?, '\"text\"');",
            (KEY_PREFS, KEY_HISTORY),
        )
        session = RotationSession.open(in_memory_db, now_ms=now_ms)
        assert session.history == ()
        assert session.prefs.cooldown_days == 7

    def test_state_survives_reopen(self, in_memory_db, now_ms):
        first = RotationSession.open(in_memory_db, now_ms=now_ms)
        entry = first.record("th_l1", now_ms)
        first.update_preferences(cooldown_days=3)

        second = RotationSession.open(in_memory_db, now_ms=now_ms)
        assert second.history == (entry,)
        assert second.prefs.cooldown_days == 3
        assert second.undo() is True
        assert RotationSession.open(in_memory_db, now_ms=now_ms).history == ()


class TestRecord:
    def test_record_suggestion_by_default(self, session, now_ms):
        suggested = session.derive(now_ms).suggestion
        entry = session.record(now_ms=now_ms)
        assert entry.point_id == suggested.id

    def test_record_manual_point(self, session, now_ms):
        assert session.record("arm_r1", now_ms).point_id == "arm_r1"

    def test_unknown_point_rejected(self, session, now_ms):
        with pytest.raises(UnknownPointError):
            session.record("leg_x9", now_ms)
        assert session.history == ()

    def test_no_suggestion_when_all_regions_disabled(self, session, now_ms):
        session.update_preferences(
            enabled_regions={"abdomen": False, "thigh": False, "arm": False}
        )
        with pytest.raises(UnknownPointError):
            session.record(now_ms=now_ms)


class TestDerive:
    def test_reflects_each_mutation(self, session, now_ms):
        before = session.derive(now_ms)
        entry = session.record("abd_r1", now_ms)
        after = session.derive(now_ms)

        assert after.revision == before.revision + 1
        assert before.statuses["abd_r1"] == PointStatus.AVAILABLE
        assert after.statuses["abd_r1"] == PointStatus.RECENT
        assert after.suggestion.id != "abd_r1"
        assert after.metrics[7].total == 1

        session.store.delete(entry.id)
        assert session.derive(now_ms).statuses["abd_r1"] == PointStatus.AVAILABLE

    def test_statuses_limited_to_enabled_regions(self, session, now_ms):
        session.update_preferences(enabled_regions={"abdomen": False, "thigh": False})
        snapshot = session.derive(now_ms)
        assert list(snapshot.statuses) == ["arm_r1", "arm_l1"]

    def test_all_disabled_gives_no_suggestion(self, session, now_ms):
        session.update_preferences(
            enabled_regions={"abdomen": False, "thigh": False, "arm": False}
        )
        snapshot = session.derive(now_ms)
        assert snapshot.suggestion is None
        assert snapshot.candidates == []
        assert snapshot.statuses == {}

    def test_custom_metric_windows(self, in_memory_db, now_ms):
        session = RotationSession.open(in_memory_db, metric_windows=[1, 90], now_ms=now_ms)
        assert sorted(session.derive(now_ms).metrics) == [1, 90]


class TestPreferences:
    def test_invalid_update_keeps_current(self, session):
        with pytest.raises(ValidationError):
            session.update_preferences(language="de")
        assert session.prefs.language == "pt"

    def test_preference_change_keeps_undo(self, session, now_ms):
        session.record("abd_r1", now_ms)
        session.update_preferences(alternate_side=False)
        assert session.undo() is True

    def test_undo_without_pending_record(self, session):
        assert session.undo() is False
