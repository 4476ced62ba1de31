"""Test: JobStore (CRUD, Zeitplan-Neuberechnung, Persistenz)"""

import json
from datetime import datetime, timedelta

import pytest

from modules.shared.errors import InvalidSchedule, JobNotFound
from workers.job_models import JobDefinition, ScheduleKind
from workers.workers_config import JobStore


@pytest.fixture
def store(tmp_path, clock):
    return JobStore(tmp_path / "scheduled_jobs.json", clock=clock)


def daily(name="Nacht-Sync", value="03:00", shop_ids=None):
    return JobDefinition(name=name, schedule_kind=ScheduleKind.DAILY, schedule_value=value,
                         shop_ids=shop_ids or [])


def every(minutes, name="Intervall"):
    return JobDefinition(name=name, schedule_kind=ScheduleKind.MINUTES, interval_minutes=minutes)


class TestAddJob:
    def test_new_job_is_enabled_and_never_ran(self, store, clock):
        job_id = store.add_job(daily())
        job = store.get_job(job_id)

        assert job.enabled
        assert job.last_run is None
        assert job.next_run == datetime(2024, 5, 2, 3, 0)
        assert job.all_shops

    def test_ids_are_unique_and_order_is_kept(self, store):
        first = store.add_job(daily(name="a"))
        second = store.add_job(every(10, name="b"))

        assert first != second
        assert [job.name for job in store.list_jobs()] == ["a", "b"]

    def test_invalid_time_is_rejected(self, store):
        with pytest.raises(InvalidSchedule):
            store.add_job(daily(value="25:00"))
        assert store.list_jobs() == []

    def test_zero_interval_is_rejected(self, store):
        with pytest.raises(InvalidSchedule):
            store.add_job(every(0))
        assert store.list_jobs() == []


class TestUpdateJob:
    def test_schedule_change_recomputes_next_run(self, store):
        job_id = store.add_job(daily(value="03:00"))
        updated = store.update_job(job_id, schedule_value="18:00")
        assert updated.next_run == datetime(2024, 5, 1, 18, 0)

    def test_name_change_keeps_next_run(self, store):
        job_id = store.add_job(daily())
        before = store.get_job(job_id).next_run
        updated = store.update_job(job_id, name="Neu", shop_ids=["s1"])

        assert updated.name == "Neu"
        assert updated.shop_ids == ["s1"]
        assert updated.next_run == before

    def test_invalid_update_leaves_job_unchanged(self, store):
        job_id = store.add_job(daily(value="03:00"))
        with pytest.raises(InvalidSchedule):
            store.update_job(job_id, schedule_value="99:99")
        assert store.get_job(job_id).schedule_value == "03:00"

    def test_unknown_job(self, store):
        with pytest.raises(JobNotFound):
            store.update_job("gibt-es-nicht", name="x")

    def test_unknown_field(self, store):
        job_id = store.add_job(daily())
        with pytest.raises(ValueError):
            store.update_job(job_id, last_run=datetime.now())

    def test_returned_job_is_a_copy(self, store):
        job_id = store.add_job(daily())
        job = store.get_job(job_id)
        job.name = "verändert"
        assert store.get_job(job_id).name == "Nacht-Sync"


class TestRemoveAndToggle:
    def test_remove_is_idempotent(self, store):
        job_id = store.add_job(daily())
        assert store.remove_job(job_id) is True
        assert store.remove_job(job_id) is False
        assert store.get_job(job_id) is None

    def test_disable_clears_next_run_and_keeps_schedule(self, store):
        job_id = store.add_job(daily(value="04:15"))
        job = store.toggle_enabled(job_id)

        assert not job.enabled
        assert job.next_run is None
        assert job.schedule_value == "04:15"

        job = store.toggle_enabled(job_id)
        assert job.enabled
        assert job.next_run == datetime(2024, 5, 2, 4, 15)

    def test_toggle_unknown_job(self, store):
        with pytest.raises(JobNotFound):
            store.toggle_enabled("gibt-es-nicht")


class TestRecordRun:
    def test_sets_last_run_and_next_run(self, store, clock):
        job_id = store.add_job(every(30))
        assert store.record_run(job_id, clock.now)

        job = store.get_job(job_id)
        assert job.last_run == clock.now
        assert job.next_run == clock.now + timedelta(minutes=30)

    def test_removed_job_is_ignored(self, store, clock):
        assert store.record_run("entfernt", clock.now) is False
        assert store.list_jobs() == []


class TestPersistence:
    def test_persist_and_load(self, store, tmp_path, clock):
        first = store.add_job(daily(shop_ids=["s1", "s2"]))
        second = store.add_job(every(15))
        store.toggle_enabled(second)
        store.record_run(first, clock.now)
        assert store.persist()

        reloaded = JobStore(tmp_path / "scheduled_jobs.json", clock=clock)
        assert reloaded.load() == []
        assert [job.model_dump() for job in reloaded.list_jobs()] == \
            [job.model_dump() for job in store.list_jobs()]

    def test_missing_file_gives_empty_list(self, store):
        assert store.load() == []
        assert store.list_jobs() == []

    def test_corrupt_file_gives_empty_list_and_warning(self, store):
        store.path.write_text("{ kein json", encoding="utf-8")
        warnings = store.load()

        assert len(warnings) == 1
        assert store.list_jobs() == []

    def test_invalid_entry_is_dropped(self, store):
        entries = [
            {"id": "ok", "name": "gut", "schedule_kind": "hourly"},
            {"id": "kaputt", "name": "schlecht", "schedule_kind": "weekly"},
        ]
        store.path.write_text(json.dumps(entries), encoding="utf-8")
        warnings = store.load()

        assert len(warnings) == 1
        assert [job.id for job in store.list_jobs()] == ["ok"]

    def test_persist_failure_keeps_jobs_in_memory(self, tmp_path, clock):
        target = tmp_path / "jobs_dir"
        target.mkdir()
        store = JobStore(target, clock=clock)
        store.add_job(daily())

        assert store.persist() is False
        assert len(store.list_jobs()) == 1
        assert store.has_unsaved_changes

    def test_unsaved_changes_are_tracked_until_persist(self, store):
        assert not store.has_unsaved_changes
        job_id = store.add_job(every(5))
        assert store.has_unsaved_changes

        assert store.persist()
        assert not store.has_unsaved_changes

        store.remove_job("gibt-es-nicht")
        assert not store.has_unsaved_changes
        store.remove_job(job_id)
        assert store.has_unsaved_changes

    def test_refresh_next_runs_fills_missing(self, store, clock):
        entries = [{"id": "a", "name": "stündlich", "schedule_kind": "hourly"}]
        store.path.write_text(json.dumps(entries), encoding="utf-8")
        store.load()

        assert store.refresh_next_runs(clock.now) == 1
        assert store.get_job("a").next_run == datetime(2024, 5, 1, 13, 0)
