"""Tests for rolling-window usage metrics."""

from __future__ import annotations

import pytest

from site_rotation.rotation.metrics import standard_metrics, window_metrics


def test_empty_history(now_ms):
    m = window_metrics([], 7, now_ms)
    assert m.total == 0
    assert m.counts_by_region == {}
    assert m.counts_by_side == {"left": 0, "right": 0}


def test_window_boundaries(make_entry, now_ms):
    history = [
        make_entry("abd_r1", days_ago=1),
        make_entry("th_l1", days_ago=7),
        make_entry("arm_l1", days_ago=8),
        make_entry("arm_r1", days_ago=40),
    ]
    m7 = window_metrics(history, 7, now_ms)
    assert m7.total == 2
    assert m7.counts_by_region == {"abdomen": 1, "thigh": 1}
    assert m7.counts_by_side == {"left": 1, "right": 1}

    m30 = window_metrics(history, 30, now_ms)
    assert m30.total == 3
    assert m30.counts_by_region["arm"] == 1


def test_orphaned_entries_counted_under_sentinels(make_entry, now_ms):
    m = window_metrics([make_entry("leg_x9", days_ago=1)], 7, now_ms)
    assert m.counts_by_region == {"unknown": 1}
    assert m.counts_by_side == {"left": 0, "right": 0, "na": 1}


def test_invalid_window_rejected(now_ms):
    with pytest.raises(ValueError):
        window_metrics([], 0, now_ms)


def test_standard_metrics_keys(make_entry, now_ms):
    metrics = standard_metrics([make_entry("abd_r1", days_ago=10)], now_ms=now_ms)
    assert sorted(metrics) == [7, 30]
    assert metrics[7].total == 0
    assert metrics[30].total == 1


def test_to_dict(make_entry, now_ms):
    d = window_metrics([make_entry("abd_r1", days_ago=1)], 7, now_ms).to_dict()
    assert d == {
        "days": 7,
        "total": 1,
        "countsByRegion": {"abdomen": 1},
        "countsBySide": {"left": 0, "right": 1},
    }
