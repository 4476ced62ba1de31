"""
Sync Runner - Joomla/VirtueMart → JTL für einen oder mehrere Shops

Ablauf pro Shop:
    1. Shop auflösen (veraltete ID → überspringen, Fehler melden)
    2. Shop-Lock holen (ein Shop läuft nie in zwei Läufen gleichzeitig)
    3. Bestellungen im Lookback-Fenster holen
    4. Pro Bestellung: existiert in JTL → skipped, sonst schreiben → synced / errored
"""

import threading
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from config.settings import SYNC_ORDER_DELAY_SECONDS
from modules.jtl_sync.models import ShopConfig, SyncRunResult, SyncStats, UnreadableOrder
from modules.jtl_sync.services.stats_tracker import EventKind, StatsTracker
from modules.shared.connectors.base_connector import SourceOrderReader, TargetOrderWriter
from modules.shared.errors import (
    CatastrophicRunFailure, RecordTransformFailed, ShopNotFound, ShopUnreachable
)
from modules.shared.logging import create_module_logger

logger = create_module_logger('JTL_SYNC', 'jtl_sync')


class AbortSignal:
    """Abbruch-Signal eines Laufs, wird vor jeder Bestellung und jedem Shop geprüft"""

    def __init__(self):
        self._event = threading.Event()

    def set(self):
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()


class ShopLocks:
    """Ein Lock pro Shop-ID, geteilt zwischen Scheduler und manuellen Läufen"""

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def get(self, shop_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(shop_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[shop_id] = lock
            return lock

    @contextmanager
    def hold(self, shop_id: str, abort: Optional[AbortSignal] = None, poll_seconds: float = 0.2):
        """
        Halte den Shop-Lock. Während des Wartens wird `abort` gepollt;
        bei Abbruch wird False geliefert und der Lock nicht gehalten.
        """
        lock = self.get(shop_id)
        acquired = False
        while not acquired:
            acquired = lock.acquire(timeout=poll_seconds)
            if not acquired and abort is not None and abort.is_set():
                break
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()


class SyncRunner:
    """Führt Sync-Läufe aus; Shops nacheinander, Bestellungen je Shop sequentiell"""

    def __init__(
        self,
        shops,
        source: SourceOrderReader,
        target: TargetOrderWriter,
        stats_tracker: Optional[StatsTracker] = None,
        shop_locks: Optional[ShopLocks] = None,
        clock: Callable[[], datetime] = datetime.now,
        order_delay: float = SYNC_ORDER_DELAY_SECONDS,
    ):
        self.shops = shops
        self.source = source
        self.target = target
        self.stats_tracker = stats_tracker or StatsTracker()
        self.shop_locks = shop_locks or ShopLocks()
        self.clock = clock
        self.order_delay = order_delay
        self._active: Set[AbortSignal] = set()
        self._active_lock = threading.Lock()

    # ===== Abbruch =====

    def abort_all(self) -> int:
        """Setze Abbruch für alle laufenden Läufe, gibt Anzahl zurück"""
        with self._active_lock:
            active = list(self._active)
        for signal in active:
            signal.set()
        if active:
            logger.warning(f"Synchronisation abgebrochen ({len(active)} aktive Läufe)")
        return len(active)

    @property
    def active_runs(self) -> int:
        with self._active_lock:
            return len(self._active)

    # ===== Lauf =====

    def run(self, shop_ids: Iterable[str], lookback_hours: int,
            abort: Optional[AbortSignal] = None, job_id: Optional[str] = None) -> SyncRunResult:
        """
        Synchronisiere die angegebenen Shops (leer = alle aktuell konfigurierten).

        Teilfehler (Shop fehlt/nicht erreichbar, einzelne Bestellungen) landen im Ergebnis.

        Raises:
            ValueError: lookback_hours <= 0
            CatastrophicRunFailure: explizite Shop-IDs, von denen keine existiert
        """
        if lookback_hours <= 0:
            raise ValueError("Sync-Zeitfenster muss größer als 0 Stunden sein")

        resolved = self._resolve_shops(shop_ids)
        abort = abort or AbortSignal()
        result = SyncRunResult(started_at=self.clock())

        logger.info(f"Starte Synchronisation für {len(resolved)} Shops ({lookback_hours}h, Job {job_id})")

        with self._active_lock:
            self._active.add(abort)
        try:
            for shop_id, shop in resolved:
                if abort.is_set():
                    logger.warning("Multi-Shop-Synchronisation vom Benutzer abgebrochen")
                    result.aborted = True
                    break

                if shop is None:
                    self._record_shop_failure(result, shop_id, ShopNotFound(shop_id), job_id)
                    continue

                with self.shop_locks.hold(shop_id, abort) as acquired:
                    if not acquired:
                        result.aborted = True
                        break
                    stats = self._run_shop(result, shop, lookback_hours, abort, job_id)

                if stats.aborted:
                    result.aborted = True
                    break
        finally:
            with self._active_lock:
                self._active.discard(abort)

        result.finished_at = self.clock()
        logger.info(
            f"Synchronisation beendet: {len(result.stats)} Shops, "
            f"{len(result.errors)} Fehler, abgebrochen={result.aborted}"
        )
        return result

    def _resolve_shops(self, shop_ids: Iterable[str]) -> List[Tuple[str, Optional[ShopConfig]]]:
        explicit = list(dict.fromkeys(shop_ids or []))
        if not explicit:
            # "alle Shops" = Stand zum Zeitpunkt des Laufs
            return [(shop.id, shop) for shop in self.shops.list_shops()]

        resolved = [(shop_id, self.shops.get_shop(shop_id)) for shop_id in explicit]
        if all(shop is None for _, shop in resolved):
            raise CatastrophicRunFailure(
                f"Keiner der angegebenen Shops existiert: {', '.join(explicit)}"
            )
        return resolved

    def _run_shop(self, result: SyncRunResult, shop: ShopConfig, lookback_hours: int,
                  abort: AbortSignal, job_id: Optional[str]) -> SyncStats:
        try:
            stats = self._sync_shop(shop, lookback_hours, abort, job_id)
        except Exception as e:
            stats = SyncStats(
                shop_id=shop.id,
                last_sync_time=self.clock(),
                sync_hours=lookback_hours,
                error=str(e),
            )
            self.stats_tracker.record_result(shop.id, stats)
            self._record_shop_failure(result, shop.id, e, job_id)
        result.stats[shop.id] = stats
        return stats

    def _record_shop_failure(self, result: SyncRunResult, shop_id: str, error: Exception,
                             job_id: Optional[str]):
        logger.error(f"Synchronisation für Shop '{shop_id}' fehlgeschlagen: {error}")
        result.errors[shop_id] = str(error)
        self.stats_tracker.emit(EventKind.ERROR, {
            "scope": "shop",
            "shop_id": shop_id,
            "job_id": job_id,
            "error": str(error),
        })

    def _sync_shop(self, shop: ShopConfig, lookback_hours: int,
                   abort: Optional[AbortSignal] = None, job_id: Optional[str] = None) -> SyncStats:
        """
        Synchronisiere einen Shop. Nur aus run() heraus, das den Shop-Lock hält.

        Raises:
            ShopUnreachable: Bestellungen konnten nicht gelesen werden
        """
        abort = abort or AbortSignal()
        logger.info(f"Starte Synchronisation Joomla → JTL für Shop '{shop.name}' ({lookback_hours}h)")

        try:
            orders = self.source.fetch_changed_orders(shop, lookback_hours)
        except ShopUnreachable:
            raise
        except Exception as e:
            raise ShopUnreachable(shop.id, str(e)) from e

        stats = SyncStats(
            shop_id=shop.id,
            total_orders=len(orders),
            last_sync_time=self.clock(),
            sync_hours=lookback_hours,
        )
        self._publish_progress(stats, job_id)

        if not orders:
            logger.info(f"Keine neuen Bestellungen der letzten {lookback_hours}h für Shop '{shop.name}'")

        for order in orders:
            if abort.is_set():
                logger.warning(f"Synchronisation für Shop '{shop.name}' abgebrochen")
                stats.aborted = True
                break

            order_number = getattr(order, "order_number", "?")
            try:
                if isinstance(order, UnreadableOrder):
                    raise RecordTransformFailed(order.order_number, order.error)
                if self.target.exists(shop, order):
                    stats.skipped_orders += 1
                    logger.info(f"Bestellung {order_number} existiert bereits, übersprungen (Shop '{shop.name}')")
                else:
                    self.target.write(shop, order)
                    stats.synced_orders += 1
                    logger.info(f"Bestellung {order_number} synchronisiert (Shop '{shop.name}')")
            except Exception as e:
                stats.error_orders += 1
                logger.error(f"Fehler bei Bestellung {order_number} (Shop '{shop.name}'): {e}", exc_info=True)

            self._publish_progress(stats, job_id)

            if self.order_delay:
                time.sleep(self.order_delay)

        logger.info(
            f"Synchronisation für Shop '{shop.name}' beendet: {stats.synced_orders} übertragen, "
            f"{stats.skipped_orders} übersprungen, {stats.error_orders} Fehler"
        )
        self.stats_tracker.record_result(shop.id, stats)
        self.stats_tracker.emit(EventKind.COMPLETE, {
            "scope": "shop",
            "shop_id": shop.id,
            "job_id": job_id,
            "stats": stats.model_dump(mode="json"),
        })
        return stats

    def _publish_progress(self, stats: SyncStats, job_id: Optional[str]):
        self.stats_tracker.record_result(stats.shop_id, stats)
        self.stats_tracker.emit(EventKind.PROGRESS, {
            "scope": "shop",
            "shop_id": stats.shop_id,
            "job_id": job_id,
            "processed": stats.processed_orders,
            "stats": stats.model_dump(mode="json"),
        })
