"""Test: StatsTracker (letzte Statistik pro Shop, Zeitfenster, Events)"""

import pytest

from modules.jtl_sync.models import SyncStats
from modules.jtl_sync.services.stats_tracker import EventKind, StatsTracker


def test_unknown_shop_has_no_stats(tracker):
    assert tracker.get_stats("s1") is None
    assert tracker.all_stats() == {}


def test_new_run_overwrites_previous_stats(tracker):
    tracker.record_result("s1", SyncStats(shop_id="s1", total_orders=5, synced_orders=5))
    tracker.record_result("s1", SyncStats(shop_id="s1", total_orders=2, skipped_orders=2))

    stats = tracker.get_stats("s1")
    assert stats.total_orders == 2
    assert stats.synced_orders == 0
    assert stats.skipped_orders == 2


def test_stored_stats_are_isolated_from_caller(tracker):
    stats = SyncStats(shop_id="s1", synced_orders=1)
    tracker.record_result("s1", stats)
    stats.synced_orders = 99
    tracker.get_stats("s1").synced_orders = 42

    assert tracker.get_stats("s1").synced_orders == 1


def test_reset_shop_stats_keeps_window(tracker):
    tracker.record_result("s1", SyncStats(shop_id="s1", total_orders=3, error_orders=1, sync_hours=48))
    tracker.reset_shop_stats("s1")

    stats = tracker.get_stats("s1")
    assert stats.processed_orders == 0
    assert stats.total_orders == 0
    assert stats.sync_hours == 48


def test_reset_all(tracker):
    tracker.record_result("s1", SyncStats(shop_id="s1"))
    tracker.reset_all()
    assert tracker.get_stats("s1") is None


def test_sync_hours_default_and_override():
    tracker = StatsTracker(default_sync_hours=12)
    assert tracker.get_sync_hours("s1") == 12

    tracker.set_sync_hours("s1", 72)
    assert tracker.get_sync_hours("s1") == 72
    assert tracker.get_sync_hours("s2") == 12


def test_sync_hours_must_be_positive(tracker):
    with pytest.raises(ValueError):
        tracker.set_sync_hours("s1", 0)


class TestEvents:
    def test_subscriber_receives_only_its_kind(self, tracker):
        received = []
        tracker.subscribe(EventKind.ERROR, lambda kind, payload: received.append((kind, payload)))

        tracker.emit(EventKind.PROGRESS, {"scope": "shop"})
        tracker.emit(EventKind.ERROR, {"scope": "global", "error": "kaputt"})

        assert received == [(EventKind.ERROR, {"scope": "global", "error": "kaputt"})]

    def test_unsubscribe(self, tracker):
        received = []
        unsubscribe = tracker.subscribe(EventKind.COMPLETE, lambda kind, payload: received.append(payload))
        unsubscribe()
        unsubscribe()

        tracker.emit(EventKind.COMPLETE, {"scope": "job"})
        assert received == []

    def test_failing_subscriber_does_not_block_others(self, tracker):
        received = []

        def broken(kind, payload):
            raise RuntimeError("Fenster geschlossen")

        tracker.subscribe(EventKind.PROGRESS, broken)
        tracker.subscribe(EventKind.PROGRESS, lambda kind, payload: received.append(payload))

        tracker.emit(EventKind.PROGRESS, {"processed": 1})
        assert received == [{"processed": 1}]
