"""
Schedule Calculator - reine Funktionen für nächsten Lauf und Fälligkeit

DAILY/HOURLY: fällig, wenn der berechnete next_run erreicht ist
              (ein HOURLY-Job läuft so nicht mehrfach innerhalb einer Stunde).
MINUTES:      fällig, wenn seit last_run mindestens das Intervall vergangen ist
              (holt verpasste Läufe nach einer Pause des Prozesses sofort nach).
"""

import re
from datetime import datetime, timedelta
from typing import Optional, Tuple

from modules.shared.errors import InvalidSchedule
from workers.job_models import ScheduleKind, ScheduledJob

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def parse_clock_time(value: Optional[str]) -> Optional[Tuple[int, int]]:
    """'HH:MM' → (Stunde, Minute), None wenn ungültig"""
    match = _CLOCK_RE.match(value or "")
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return hour, minute


def validate_schedule(kind: ScheduleKind, value: str = "", interval_minutes: int = 0):
    """Raises InvalidSchedule bei ungültiger Uhrzeit oder Intervall <= 0"""
    kind = ScheduleKind(kind)
    if kind == ScheduleKind.DAILY and parse_clock_time(value) is None:
        raise InvalidSchedule(f"Ungültige Uhrzeit '{value}' (erwartet HH:MM, 00:00-23:59)")
    if kind == ScheduleKind.MINUTES and (interval_minutes is None or interval_minutes <= 0):
        raise InvalidSchedule(f"Ungültiges Intervall {interval_minutes} (muss > 0 Minuten sein)")


def next_run_at(job: ScheduledJob, now: datetime,
                last_run: Optional[datetime] = None) -> Optional[datetime]:
    """
    Nächster Lauf eines Jobs, None bei deaktiviertem Job oder ungültigem Zeitplan.

    MINUTES wird an `last_run` verankert (nicht an `now`), damit sich
    verspätete Ticks nicht aufsummieren.
    """
    if not job.enabled:
        return None

    if job.schedule_kind == ScheduleKind.DAILY:
        parsed = parse_clock_time(job.schedule_value)
        if parsed is None:
            return None
        hour, minute = parsed
        candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    if job.schedule_kind == ScheduleKind.HOURLY:
        return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)

    if job.schedule_kind == ScheduleKind.MINUTES:
        if not job.interval_minutes or job.interval_minutes <= 0:
            return None
        anchor = last_run or job.last_run or now
        return anchor + timedelta(minutes=job.interval_minutes)

    return None


def is_due(job: ScheduledJob, now: datetime) -> bool:
    """Soll der Job jetzt laufen?"""
    if not job.enabled:
        return False

    if job.schedule_kind == ScheduleKind.MINUTES:
        if not job.interval_minutes or job.interval_minutes <= 0:
            return False
        if job.last_run is None:
            return True
        return now - job.last_run >= timedelta(minutes=job.interval_minutes)

    return job.next_run is not None and job.next_run <= now


def describe_schedule(job: ScheduledJob) -> str:
    """Lesbare Beschreibung des Zeitplans"""
    if job.schedule_kind == ScheduleKind.DAILY:
        return f"Täglich um {job.schedule_value} Uhr"
    if job.schedule_kind == ScheduleKind.HOURLY:
        return "Stündlich"
    if job.schedule_kind == ScheduleKind.MINUTES:
        return f"Alle {job.interval_minutes} Minuten"
    return "Unbekannter Zeitplan"


def format_next_run(next_run: Optional[datetime], now: datetime) -> str:
    """Countdown-Text bis zum nächsten Lauf"""
    if next_run is None:
        return "Unbekannt"

    diff = next_run - now
    if diff.total_seconds() < 0:
        return "Fällig"

    minutes = int(diff.total_seconds() // 60)
    hours, remaining = divmod(minutes, 60)
    if hours == 0:
        return f"in {remaining} Minuten"
    if hours < 24:
        return f"in {hours} Stunden und {remaining} Minuten"
    return f"in {hours // 24} Tagen"
