"""Log Service - Zentrale Log-Verwaltung mit Job Capture"""

import threading
from collections import deque
from datetime import datetime
from typing import Deque, Dict, List, Optional

from .logger import app_logger, create_module_logger

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40, "CRITICAL": 50}


class LogService:
    """Verwaltet strukturiertes Logging pro Job (In-Memory Ringpuffer + Logfile)"""

    def __init__(self, max_entries_per_job: int = 500):
        self.max_entries_per_job = max_entries_per_job
        self.logger = create_module_logger('JOBS', 'jobs')
        self._entries: Dict[str, Deque[Dict]] = {}
        self._captures: Dict[str, Dict] = {}
        self._lock = threading.Lock()

    def start_job_capture(self, job_id: str, job_type: str):
        """Starte Capturing für einen Job"""
        with self._lock:
            self._captures[job_id] = {"job_type": job_type, "started": datetime.now()}

        self.log(job_id, job_type, "INFO", f"Job gestartet: {job_type}")

    def log(self, job_id: str, job_type: str, level: str, message: str,
            status: str = None, duration: float = None, error_text: str = None):
        """Speichere Log-Eintrag im Puffer und in der Log-Datei"""
        entry = {
            "job_id": job_id,
            "job_type": job_type,
            "level": level,
            "message": message,
            "timestamp": datetime.now().isoformat(),
            "status": status,
            "duration_seconds": duration,
            "error_text": error_text,
        }

        with self._lock:
            buffer = self._entries.get(job_id)
            if buffer is None:
                buffer = deque(maxlen=self.max_entries_per_job)
                self._entries[job_id] = buffer
            buffer.append(entry)

        self.logger.log(_LEVELS.get(level, 20), f"[{job_id}] {message}")

        # ERROR-Level immer in zentrale app.log schreiben
        if level == "ERROR":
            app_logger.error(f"[{job_id}] {message}" + (f" - {error_text}" if error_text else ""))

    def end_job_capture(self, job_id: str, success: bool = True, duration: float = 0, error: str = None):
        """Beende Job Capturing"""
        with self._lock:
            capture = self._captures.pop(job_id, None)

        if capture is None:
            return

        status = "SUCCESS" if success else "FAILED"
        self.log(
            job_id,
            capture["job_type"],
            "ERROR" if not success else "INFO",
            f"Job beendet: {status}",
            status=status,
            duration=duration,
            error_text=error
        )

    def get_recent_logs(self, job_id: str, limit: int = 50) -> List[Dict]:
        """Hole letzte Logs für Job (für Dashboard)"""
        with self._lock:
            entries = list(self._entries.get(job_id, ()))
        return entries[-limit:]

    def get_logs(self, job_id: Optional[str] = None, level: Optional[str] = None,
                 limit: int = 100, offset: int = 0) -> List[Dict]:
        """Hole Logs mit Filtern, neueste zuerst"""
        with self._lock:
            if job_id:
                entries = list(self._entries.get(job_id, ()))
            else:
                entries = [e for buffer in self._entries.values() for e in buffer]

        if level:
            entries = [e for e in entries if e["level"] == level.upper()]

        entries.sort(key=lambda e: e["timestamp"], reverse=True)
        return entries[offset:offset + limit]


# Globale LogService Instanz
log_service = LogService()
