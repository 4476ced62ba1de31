"""Job Store - Geplante Jobs im Speicher + JSON-Persistenz"""

import json
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import ValidationError

from config.settings import JOBS_FILE
from modules.shared.errors import JobNotFound, PersistenceFailure
from modules.shared.json_store import read_json, write_json_atomic
from modules.shared.logging import app_logger
from workers.job_models import (
    JobDefinition, ScheduledJob, SCHEDULE_FIELDS, UPDATABLE_FIELDS
)
from workers.schedule import next_run_at, validate_schedule


class JobStore:
    """
    Registry der geplanten Jobs in Einfüge-Reihenfolge.

    Der Speicher im Prozess ist maßgeblich; persist() schreibt die komplette
    Liste atomar und wird beim nächsten erfolgreichen Versuch einfach wiederholt.
    Alle Mutationen und Schreibvorgänge laufen unter einem Lock.
    """

    def __init__(self, path: Path = JOBS_FILE, clock: Callable[[], datetime] = datetime.now):
        self.path = Path(path)
        self.clock = clock
        self._jobs: List[ScheduledJob] = []
        self._lock = threading.RLock()
        self.last_persist_error: Optional[PersistenceFailure] = None
        self._unsaved = False

    # ===== CRUD =====

    def add_job(self, definition: JobDefinition) -> str:
        """
        Füge Job hinzu (enabled, noch nie gelaufen), gibt neue Job-ID zurück.

        Raises:
            InvalidSchedule: ungültige Uhrzeit / Intervall <= 0
        """
        validate_schedule(definition.schedule_kind, definition.schedule_value, definition.interval_minutes)

        job = ScheduledJob(id=uuid.uuid4().hex, **definition.model_dump())
        job.next_run = next_run_at(job, self.clock())

        with self._lock:
            self._jobs.append(job)
            self._unsaved = True
        return job.id

    def update_job(self, job_id: str, **fields) -> ScheduledJob:
        """
        Ändere Felder eines Jobs; bei Zeitplan-Änderung wird next_run neu berechnet.

        Raises:
            JobNotFound: unbekannte Job-ID
            InvalidSchedule: resultierender Zeitplan ungültig
            ValueError: unbekanntes Feld
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Nicht änderbare Felder: {', '.join(sorted(unknown))}")

        with self._lock:
            index = self._index_of(job_id)
            current = self._jobs[index]
            data = current.model_dump()
            data.update(fields)
            updated = ScheduledJob.model_validate(data)

            schedule_changed = any(
                getattr(updated, name) != getattr(current, name) for name in SCHEDULE_FIELDS
            )
            if schedule_changed:
                validate_schedule(updated.schedule_kind, updated.schedule_value, updated.interval_minutes)
                updated.next_run = next_run_at(updated, self.clock())

            self._jobs[index] = updated
            self._unsaved = True
            return updated.model_copy()

    def remove_job(self, job_id: str) -> bool:
        """Entferne Job; unbekannte ID ist kein Fehler"""
        with self._lock:
            before = len(self._jobs)
            self._jobs = [job for job in self._jobs if job.id != job_id]
            removed = len(self._jobs) < before
            self._unsaved = self._unsaved or removed
            return removed

    def toggle_enabled(self, job_id: str) -> ScheduledJob:
        """
        Aktivieren/Deaktivieren. Deaktiviert → next_run None, Zeitplan bleibt erhalten.

        Raises:
            JobNotFound: unbekannte Job-ID
        """
        with self._lock:
            index = self._index_of(job_id)
            job = self._jobs[index].model_copy()
            job.enabled = not job.enabled
            job.next_run = next_run_at(job, self.clock()) if job.enabled else None
            self._jobs[index] = job
            self._unsaved = True
            return job.model_copy()

    def get_job(self, job_id: str) -> Optional[ScheduledJob]:
        with self._lock:
            for job in self._jobs:
                if job.id == job_id:
                    return job.model_copy()
        return None

    def list_jobs(self) -> List[ScheduledJob]:
        """Alle Jobs (Kopien) in Einfüge-Reihenfolge"""
        with self._lock:
            return [job.model_copy() for job in self._jobs]

    def record_run(self, job_id: str, ran_at: datetime) -> bool:
        """
        Nach einem Lauf (auch fehlgeschlagen): last_run setzen, next_run neu berechnen.
        Job inzwischen gelöscht → no-op, False.
        """
        with self._lock:
            try:
                index = self._index_of(job_id)
            except JobNotFound:
                return False
            job = self._jobs[index].model_copy()
            job.last_run = ran_at
            job.next_run = next_run_at(job, ran_at, last_run=ran_at)
            self._jobs[index] = job
            self._unsaved = True
            return True

    def refresh_next_runs(self, now: Optional[datetime] = None) -> int:
        """Setze fehlende next_run Werte aktiver Jobs (z.B. nach dem Laden)"""
        now = now or self.clock()
        changed = 0
        with self._lock:
            for index, job in enumerate(self._jobs):
                if job.enabled and job.next_run is None:
                    next_run = next_run_at(job, now)
                    if next_run is not None:
                        self._jobs[index] = job.model_copy(update={"next_run": next_run})
                        changed += 1
            self._unsaved = self._unsaved or changed > 0
        return changed

    @property
    def has_unsaved_changes(self) -> bool:
        """Änderungen im Speicher, die noch nicht erfolgreich gespeichert wurden"""
        with self._lock:
            return self._unsaved

    def _index_of(self, job_id: str) -> int:
        for index, job in enumerate(self._jobs):
            if job.id == job_id:
                return index
        raise JobNotFound(job_id)

    # ===== Persistenz =====

    def persist(self) -> bool:
        """Speichere Job-Liste atomar; Fehler → Warnung, Speicher bleibt maßgeblich"""
        with self._lock:
            data = [job.model_dump(mode="json") for job in self._jobs]
            try:
                write_json_atomic(self.path, data)
            except (OSError, TypeError) as e:
                self.last_persist_error = PersistenceFailure(f"Fehler beim Speichern der Jobs ({self.path}): {e}")
                app_logger.warning(str(self.last_persist_error))
                return False
            self.last_persist_error = None
            self._unsaved = False
            return True

    def load(self) -> List[str]:
        """
        Lade Job-Liste. Fehlende oder defekte Datei → leere Liste + Warnung.

        Returns:
            Liste von Warnungen (leer wenn alles ok)
        """
        warnings: List[str] = []

        if not self.path.exists():
            with self._lock:
                self._jobs = []
                self._unsaved = False
            return warnings

        try:
            raw = read_json(self.path)
        except (OSError, json.JSONDecodeError) as e:
            warnings.append(f"Job-Datei {self.path} nicht lesbar: {e}")
            raw = []

        if not isinstance(raw, list):
            warnings.append(f"Job-Datei {self.path} hat ein ungültiges Format")
            raw = []

        jobs: List[ScheduledJob] = []
        for entry in raw:
            try:
                jobs.append(ScheduledJob.model_validate(entry))
            except ValidationError as e:
                warnings.append(f"Ungültiger Job-Eintrag verworfen: {e.error_count()} Fehler")

        with self._lock:
            self._jobs = jobs
            self._unsaved = False

        for warning in warnings:
            app_logger.warning(warning)
        return warnings
