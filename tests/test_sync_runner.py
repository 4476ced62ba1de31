"""Test: SyncRunner (Idempotenz, Teilfehler, Abbruch, Shop-Locks)"""

import pytest

from conftest import FakeSource, FakeTarget, make_orders
from modules.jtl_sync.services.sync_runner import AbortSignal, ShopLocks, SyncRunner
from modules.shared.errors import CatastrophicRunFailure


class TestRun:
    def test_second_run_over_same_window_skips_everything(self, runner, target):
        first = runner.run(["s1"], 24)
        second = runner.run(["s1"], 24)

        assert first.stats["s1"].synced_orders == 3
        assert second.stats["s1"].synced_orders == 0
        assert second.stats["s1"].skipped_orders == 3
        assert len(target.written) == 3

    def test_empty_shop_list_means_all_current_shops(self, runner, shops, source):
        shops.shops.pop("s2")
        result = runner.run([], 24)

        assert list(result.stats) == ["s1"]
        assert source.calls == [("s1", 24)]

    def test_lookback_is_passed_to_source(self, runner, source):
        runner.run(["s2"], 72)
        assert source.calls == [("s2", 72)]

    def test_non_positive_lookback_is_rejected(self, runner):
        with pytest.raises(ValueError):
            runner.run(["s1"], 0)

    def test_missing_shop_is_reported_and_others_run(self, runner, events):
        result = runner.run(["s1", "veraltet"], 24)

        assert result.stats["s1"].synced_orders == 3
        assert "veraltet" in result.errors
        assert result.failed == ["veraltet"]
        assert not result.success
        shop_errors = [p for kind, p in events if kind == "error" and p["scope"] == "shop"]
        assert [p["shop_id"] for p in shop_errors] == ["veraltet"]

    def test_all_explicit_shops_missing_is_catastrophic(self, runner):
        with pytest.raises(CatastrophicRunFailure):
            runner.run(["weg", "auch-weg"], 24)

    def test_zero_orders_is_a_successful_run(self, shops, tracker, clock):
        runner = SyncRunner(shops, FakeSource({}), FakeTarget(), stats_tracker=tracker,
                            clock=clock, order_delay=0)
        result = runner.run(["s1"], 24)

        assert result.success
        stats = tracker.get_stats("s1")
        assert stats.total_orders == 0
        assert stats.processed_orders == 0
        assert stats.last_sync_time == clock.now

    def test_unreachable_shop_does_not_stop_other_shops(self, shops, tracker, clock):
        source = FakeSource({"s2": make_orders(2)}, unreachable={"s1"})
        runner = SyncRunner(shops, source, FakeTarget(), stats_tracker=tracker, clock=clock, order_delay=0)
        result = runner.run(["s1", "s2"], 24)

        assert "s1" in result.errors
        assert result.stats["s2"].synced_orders == 2
        assert tracker.get_stats("s1").error is not None

    def test_failing_order_is_counted_and_processing_continues(self, shops, source, tracker, clock):
        target = FakeTarget(failing={"ORD2"})
        runner = SyncRunner(shops, source, target, stats_tracker=tracker, clock=clock, order_delay=0)
        stats = runner.run(["s1"], 24).stats["s1"]

        assert stats.total_orders == 3
        assert stats.synced_orders == 2
        assert stats.error_orders == 1
        assert stats.processed_orders == stats.total_orders

    def test_duplicate_ids_run_once(self, runner, source):
        runner.run(["s1", "s1"], 24)
        assert source.calls == [("s1", 24)]


class TestEvents:
    def test_progress_after_every_order_then_complete(self, runner, events):
        runner.run(["s1"], 24)

        progress = [p for kind, p in events if kind == "progress"]
        assert [p["processed"] for p in progress] == [0, 1, 2, 3]
        complete = [p for kind, p in events if kind == "complete"]
        assert len(complete) == 1
        assert complete[0]["scope"] == "shop"
        assert complete[0]["stats"]["synced_orders"] == 3

    def test_broken_subscriber_does_not_break_sync(self, runner, tracker):
        def broken(kind, payload):
            raise RuntimeError("UI weg")

        tracker.subscribe("progress", broken)
        result = runner.run(["s1"], 24)
        assert result.stats["s1"].synced_orders == 3


class TestAbort:
    def test_abort_stops_after_current_order(self, shops, source, tracker, clock):
        abort = AbortSignal()
        target = FakeTarget(on_write=lambda shop, order: abort.set())
        runner = SyncRunner(shops, source, target, stats_tracker=tracker, clock=clock, order_delay=0)

        result = runner.run(["s1", "s2"], 24, abort=abort)

        assert result.aborted
        assert result.stats["s1"].synced_orders == 1
        assert result.stats["s1"].aborted
        assert "s2" not in result.stats

    def test_abort_all_reaches_running_sync(self, shops, source, tracker, clock):
        aborted = []
        runner = None

        def on_write(shop, order):
            if not aborted:
                aborted.append(runner.abort_all())

        runner = SyncRunner(shops, source, FakeTarget(on_write=on_write), stats_tracker=tracker,
                            clock=clock, order_delay=0)
        result = runner.run(["s1"], 24)

        assert aborted == [1]
        assert result.aborted
        assert runner.active_runs == 0

    def test_abort_all_without_runs(self, runner):
        assert runner.abort_all() == 0


class TestShopLocks:
    def test_hold_gives_up_when_aborted_while_waiting(self):
        locks = ShopLocks()
        abort = AbortSignal()
        abort.set()

        with locks.hold("s1") as first:
            assert first
            assert locks.get("s1").locked()
            with locks.hold("s1", abort, poll_seconds=0.01) as second:
                assert not second

        assert not locks.get("s1").locked()

    def test_runner_releases_lock_after_failure(self, shops, tracker, clock):
        locks = ShopLocks()
        runner = SyncRunner(shops, FakeSource(unreachable={"s1"}), FakeTarget(), stats_tracker=tracker,
                            shop_locks=locks, clock=clock, order_delay=0)
        runner.run(["s1"], 24)
        assert not locks.get("s1").locked()
