"""APScheduler Service - Tick-basierter Scheduler für Sync-Jobs"""

import threading
import traceback
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config.settings import (
    DEFAULT_SYNC_HOURS, SCHEDULER_MAX_CONCURRENT_JOBS, SCHEDULER_TICK_SECONDS
)
from modules.jtl_sync.models import SyncRunResult, SyncStats
from modules.jtl_sync.services.stats_tracker import EventKind, StatsTracker
from modules.jtl_sync.services.sync_runner import SyncRunner
from modules.shared.logging import create_module_logger, log_service
from workers.job_models import JobDefinition, JobStatusEnum, ScheduledJob
from workers.schedule import describe_schedule, format_next_run, is_due
from workers.workers_config import JobStore

TICK_JOB_ID = "scheduler_tick"

logger = create_module_logger('SCHEDULER', 'scheduler')


class SchedulerService:
    """
    Verwaltet alle geplanten Jobs.

    Ein APScheduler-Intervall-Job ruft tick() auf. Ein Tick gibt fällige Jobs nur an
    einen dauerhaften Thread-Pool ab und kehrt sofort zurück; Jobs, die noch laufen,
    werden nicht erneut gestartet. Nach jedem Lauf schreibt genau ein Thread zur Zeit
    (Finish-Lock) last_run/next_run, die Job-Datei und die Events.
    """

    def __init__(
        self,
        job_store: JobStore,
        runner: SyncRunner,
        stats_tracker: Optional[StatsTracker] = None,
        clock: Callable[[], datetime] = datetime.now,
        tick_seconds: int = SCHEDULER_TICK_SECONDS,
        max_concurrent_jobs: int = SCHEDULER_MAX_CONCURRENT_JOBS,
        default_lookback_hours: int = DEFAULT_SYNC_HOURS,
    ):
        self.job_store = job_store
        self.runner = runner
        self.stats_tracker = stats_tracker or runner.stats_tracker
        self.clock = clock
        self.tick_seconds = tick_seconds
        self.max_concurrent_jobs = max(1, max_concurrent_jobs)
        self.default_lookback_hours = default_lookback_hours

        self.scheduler: Optional[BackgroundScheduler] = None
        self.job_status: Dict[str, dict] = {}
        self._executor = ThreadPoolExecutor(max_workers=self.max_concurrent_jobs,
                                            thread_name_prefix="sync-job")
        self._in_flight: Dict[str, Future] = {}
        self._loaded = False

        self._tick_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._dispatch_lock = threading.Lock()
        self._finish_lock = threading.Lock()

    # ===== Start / Stop =====

    @property
    def is_running(self) -> bool:
        return self.scheduler is not None

    def start(self) -> bool:
        """Starte Scheduler; bereits laufend → no-op (False)"""
        with self._state_lock:
            if self.scheduler is not None:
                return False

            # Datei nur beim ersten Start laden und nie über ungespeicherte Änderungen
            if not self._loaded and not self.job_store.has_unsaved_changes:
                for warning in self.job_store.load():
                    self.stats_tracker.emit(EventKind.ERROR, {"scope": "global", "error": warning})
            self._loaded = True
            self.job_store.refresh_next_runs(self.clock())
            self._persist()

            scheduler = BackgroundScheduler()
            scheduler.add_job(
                self.tick,
                trigger=IntervalTrigger(seconds=self.tick_seconds),
                id=TICK_JOB_ID,
                misfire_grace_time=None,
                coalesce=True,  # ✅ Verpasste Ticks zusammenfassen
                max_instances=1  # ✅ Nur 1 Tick gleichzeitig
            )
            scheduler.start()
            self.scheduler = scheduler

        logger.info(f"Scheduler gestartet (Tick alle {self.tick_seconds}s)")
        return True

    def stop(self) -> bool:
        """
        Stoppe den Tick; bereits gestoppt → no-op (False).
        Laufende Jobs laufen zu Ende, siehe wait_idle().
        """
        with self._state_lock:
            scheduler, self.scheduler = self.scheduler, None

        if scheduler is None:
            return False

        scheduler.shutdown(wait=True)
        logger.info("Scheduler gestoppt")
        return True

    # ===== Tick =====

    def tick(self) -> List[str]:
        """
        Ein Prüfzyklus: fällige Jobs an den Thread-Pool abgeben, ohne auf sie zu warten.

        Returns:
            IDs der abgegebenen Jobs (leer, wenn der Tick übersprungen wurde)
        """
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("Tick übersprungen: vorheriger Tick läuft noch")
            return []

        try:
            now = self.clock()
            dispatched = []
            with self._dispatch_lock:
                for job in self.job_store.list_jobs():
                    if not is_due(job, now):
                        continue
                    if job.id in self._in_flight:
                        logger.debug(f"Job {job.id} läuft noch, nicht erneut gestartet")
                        continue
                    self._in_flight[job.id] = self._executor.submit(self._execute, job, now)
                    dispatched.append(job.id)
            return dispatched
        finally:
            self._tick_lock.release()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Warte, bis alle abgegebenen Jobs fertig sind; False bei Timeout"""
        with self._dispatch_lock:
            futures = list(self._in_flight.values())
        _, pending = wait(futures, timeout=timeout)
        return not pending

    def _execute(self, job: ScheduledJob, ran_at: datetime):
        """Lauf + Nachbearbeitung eines Jobs im Pool-Thread"""
        try:
            result, error = self._run_job(job)
            with self._finish_lock:
                self._finish_job(job, ran_at, result, error)
        except Exception as e:
            logger.error(f"Nachbearbeitung von Job {job.id} fehlgeschlagen: {e}", exc_info=True)
        finally:
            with self._dispatch_lock:
                self._in_flight.pop(job.id, None)

    def _run_job(self, job: ScheduledJob):
        """Führe einen Job aus; Ausnahmen werden hier in (None, Fehlertext) umgewandelt"""
        start_time = self.clock()
        self._set_status(job.id, status=JobStatusEnum.RUNNING)
        log_service.start_job_capture(job.id, job.name)
        log_service.log(job.id, job.name, "INFO",
                        f"Geplante Synchronisation gestartet ({describe_schedule(job)})")

        try:
            result = self.runner.run(
                job.shop_ids,
                self._lookback_hours(job.shop_ids),
                job_id=job.id
            )
        except Exception as e:
            duration = (self.clock() - start_time).total_seconds()
            log_service.end_job_capture(job.id, success=False, duration=duration, error=str(e))
            log_service.log(job.id, job.name, "ERROR", traceback.format_exc())
            self._set_status(job.id, status=JobStatusEnum.FAILED, last_error=str(e),
                             last_duration=duration)
            return None, str(e)

        duration = (self.clock() - start_time).total_seconds()
        error = "; ".join(f"{shop_id}: {msg}" for shop_id, msg in result.errors.items()) or None
        log_service.end_job_capture(job.id, success=error is None, duration=duration, error=error)
        self._set_status(
            job.id,
            status=JobStatusEnum.SUCCESS if error is None else JobStatusEnum.FAILED,
            last_error=error,
            last_duration=duration
        )
        return result, error

    def _finish_job(self, job: ScheduledJob, ran_at: datetime,
                    result: Optional[SyncRunResult], error: Optional[str]):
        """last_run/next_run setzen, speichern, Events senden (auch wenn der Job gelöscht wurde)"""
        if not self.job_store.record_run(job.id, ran_at):
            logger.info(f"Job {job.id} wurde während des Laufs entfernt")
        self._persist()

        stored = self.job_store.get_job(job.id)
        if stored is not None:
            self._set_status(job.id, last_run=ran_at, next_run=stored.next_run)
        else:
            with self._state_lock:
                self.job_status.pop(job.id, None)

        shop_stats = dict(result.stats) if result else {}
        if stored is not None:
            for shop_id in shop_stats:
                current = self.stats_tracker.get_stats(shop_id)
                if current is not None:
                    self.stats_tracker.record_result(
                        shop_id, current.model_copy(update={"next_scheduled_run": stored.next_run})
                    )

        stats = {shop_id: s.model_dump(mode="json") for shop_id, s in shop_stats.items()}
        self.stats_tracker.emit(EventKind.COMPLETE, {
            "scope": "job",
            "job_id": job.id,
            "job_name": job.name,
            "aborted": result.aborted if result else False,
            "stats": stats,
        })
        if error:
            self.stats_tracker.emit(EventKind.ERROR, {
                "scope": "job",
                "job_id": job.id,
                "job_name": job.name,
                "error": error,
            })

    def _persist(self) -> bool:
        """Job-Datei schreiben; Fehler nur als globales Error-Event melden"""
        if self.job_store.persist():
            return True
        self.stats_tracker.emit(EventKind.ERROR, {
            "scope": "global",
            "error": str(self.job_store.last_persist_error),
        })
        return False

    def _lookback_hours(self, shop_ids: Iterable[str]) -> int:
        shop_ids = list(shop_ids) or [shop.id for shop in self.runner.shops.list_shops()]
        if not shop_ids:
            return self.default_lookback_hours
        return max(self.stats_tracker.get_sync_hours(shop_id) for shop_id in shop_ids)

    def _set_status(self, job_id: str, **fields):
        with self._state_lock:
            status = self.job_status.setdefault(job_id, {
                "status": JobStatusEnum.IDLE,
                "last_run": None,
                "next_run": None,
                "last_error": None,
                "last_duration": None
            })
            status.update(fields)

    # ===== Manuelle Läufe =====

    def trigger_run_now(self, shop_ids: Iterable[str],
                        lookback_hours: Optional[int] = None) -> SyncRunResult:
        """Sofortiger Lauf außerhalb des Zeitplans (gleiche Shop-Locks)"""
        shop_ids = list(shop_ids or [])
        hours = lookback_hours or self._lookback_hours(shop_ids)
        return self.runner.run(shop_ids, hours, job_id="manual")

    def abort_sync(self) -> int:
        """Breche alle laufenden Syncs ab"""
        return self.runner.abort_all()

    # ===== Job-Verwaltung =====

    def add_job(self, definition: JobDefinition) -> str:
        job_id = self.job_store.add_job(definition)
        self._persist()
        return job_id

    def update_job(self, job_id: str, **fields) -> ScheduledJob:
        job = self.job_store.update_job(job_id, **fields)
        self._persist()
        return job

    def remove_job(self, job_id: str) -> bool:
        removed = self.job_store.remove_job(job_id)
        self._persist()
        with self._state_lock:
            self.job_status.pop(job_id, None)
        return removed

    def toggle_enabled(self, job_id: str) -> ScheduledJob:
        job = self.job_store.toggle_enabled(job_id)
        self._persist()
        return job

    def list_jobs(self) -> List[ScheduledJob]:
        return self.job_store.list_jobs()

    def get_stats(self, shop_id: str) -> Optional[SyncStats]:
        return self.stats_tracker.get_stats(shop_id)

    def subscribe(self, kind: EventKind, callback):
        return self.stats_tracker.subscribe(kind, callback)

    def get_job_status(self, job_id: str) -> Optional[dict]:
        """Gib Job-Status zurück (für Dashboard)"""
        job = self.job_store.get_job(job_id)
        if job is None:
            return None

        with self._state_lock:
            status = dict(self.job_status.get(job_id, {"status": JobStatusEnum.IDLE}))

        return {
            "job_id": job_id,
            "config": job.model_dump(mode="json"),
            "schedule": describe_schedule(job),
            "next_run_text": format_next_run(job.next_run, self.clock()) if job.enabled else "Deaktiviert",
            "status": status,
            "recent_logs": log_service.get_recent_logs(job_id, 20)
        }

    def get_all_jobs(self) -> List[dict]:
        """Gib alle Jobs zurück"""
        statuses = (self.get_job_status(job.id) for job in self.job_store.list_jobs())
        return [status for status in statuses if status is not None]
