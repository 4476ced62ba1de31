"""Job Models - Datenstrukturen für geplante Sync-Jobs"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ScheduleKind(str, Enum):
    """Verfügbare Zeitplan-Typen"""
    DAILY = "daily"        # Einmal täglich zur Uhrzeit HH:MM
    HOURLY = "hourly"      # Zur vollen Stunde
    MINUTES = "minutes"    # Alle N Minuten


class JobStatusEnum(str, Enum):
    """Job-Status"""
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class JobDefinition(BaseModel):
    """Eingabe für einen neuen Job"""
    name: str
    schedule_kind: ScheduleKind
    schedule_value: str = ""          # DAILY: "HH:MM"
    interval_minutes: int = 0         # MINUTES: Intervall
    shop_ids: List[str] = Field(default_factory=list)   # leer = alle Shops


class ScheduledJob(JobDefinition):
    """Gespeicherter Job inkl. Laufzeit-Zeitstempel"""
    id: str
    enabled: bool = True
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None

    @property
    def all_shops(self) -> bool:
        return not self.shop_ids


# Felder, deren Änderung next_run neu berechnet
SCHEDULE_FIELDS = frozenset({"schedule_kind", "schedule_value", "interval_minutes", "enabled"})

# Felder, die über update_job geändert werden dürfen
UPDATABLE_FIELDS = frozenset({"name", "shop_ids"}) | SCHEDULE_FIELDS
