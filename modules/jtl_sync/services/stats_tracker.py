"""Stats Tracker - Letzte Sync-Statistik pro Shop + Event-Kanal (progress/complete/error)"""

import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from config.settings import DEFAULT_SYNC_HOURS
from modules.jtl_sync.models import SyncStats
from modules.shared.logging import app_logger


class EventKind(str, Enum):
    """Event-Typen für Abonnenten (UI, Notifications)"""
    PROGRESS = "progress"
    COMPLETE = "complete"
    ERROR = "error"


Subscriber = Callable[[EventKind, Dict[str, Any]], None]


class StatsTracker:
    """
    Hält pro Shop die Statistik des letzten Laufs.

    Ein neuer Lauf überschreibt die alte Statistik (keine laufenden Summen).
    get_stats() gibt None zurück, solange ein Shop nie synchronisiert wurde.
    """

    def __init__(self, default_sync_hours: int = DEFAULT_SYNC_HOURS):
        self.default_sync_hours = default_sync_hours
        self._stats: Dict[str, SyncStats] = {}
        self._sync_hours: Dict[str, int] = {}
        self._subscribers: Dict[EventKind, List[Subscriber]] = {kind: [] for kind in EventKind}
        self._lock = threading.Lock()

    # ===== Statistik =====

    def record_result(self, shop_id: str, stats: SyncStats):
        """Überschreibe letzte Statistik des Shops"""
        with self._lock:
            self._stats[shop_id] = stats.model_copy()

    def get_stats(self, shop_id: str) -> Optional[SyncStats]:
        with self._lock:
            stats = self._stats.get(shop_id)
            return stats.model_copy() if stats else None

    def all_stats(self) -> Dict[str, SyncStats]:
        with self._lock:
            return {shop_id: stats.model_copy() for shop_id, stats in self._stats.items()}

    def reset_shop_stats(self, shop_id: str):
        """Zähler eines Shops auf 0 (Zeitfenster bleibt)"""
        with self._lock:
            stats = self._stats.get(shop_id)
            if stats is not None:
                self._stats[shop_id] = stats.model_copy(update={
                    "total_orders": 0,
                    "synced_orders": 0,
                    "skipped_orders": 0,
                    "error_orders": 0,
                    "aborted": False,
                    "error": None,
                })

    def reset_all(self):
        with self._lock:
            self._stats.clear()

    # ===== Zeitfenster =====

    def set_sync_hours(self, shop_id: str, hours: int):
        """Lookback-Fenster eines Shops setzen (Stunden > 0)"""
        if hours <= 0:
            raise ValueError("Sync-Zeitfenster muss größer als 0 Stunden sein")
        with self._lock:
            self._sync_hours[shop_id] = hours

    def get_sync_hours(self, shop_id: str) -> int:
        with self._lock:
            return self._sync_hours.get(shop_id, self.default_sync_hours)

    # ===== Events =====

    def subscribe(self, kind: EventKind, callback: Subscriber) -> Callable[[], None]:
        """Abonniere Event-Typ, gibt Funktion zum Abbestellen zurück"""
        kind = EventKind(kind)
        with self._lock:
            self._subscribers[kind].append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers[kind]:
                    self._subscribers[kind].remove(callback)

        return unsubscribe

    def emit(self, kind: EventKind, payload: Dict[str, Any]):
        """Fire-and-forget: Fehler eines Abonnenten stoppen den Sync nicht"""
        kind = EventKind(kind)
        with self._lock:
            subscribers = list(self._subscribers[kind])

        for callback in subscribers:
            try:
                callback(kind, payload)
            except Exception as e:
                app_logger.error(f"Event-Abonnent fehlgeschlagen ({kind.value}): {e}", exc_info=True)
