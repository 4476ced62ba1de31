"""Gemeinsame Fixtures: feste Uhr, Shop-Provider, Quelle und Ziel ohne Datenbank/API"""

import sys
import threading
import time
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Füge root zum Path hinzu
root = Path(__file__).parent.parent
sys.path.insert(0, str(root))

from modules.jtl_sync.models import ShopConfig, SourceOrder  # noqa: E402
from modules.jtl_sync.services.stats_tracker import StatsTracker  # noqa: E402
from modules.jtl_sync.services.sync_runner import SyncRunner  # noqa: E402
from modules.shared.connectors.base_connector import SourceOrderReader, TargetOrderWriter  # noqa: E402
from modules.shared.errors import RecordTransformFailed, ShopUnreachable  # noqa: E402


class FakeClock:
    """Steuerbare Uhr für Zeitplan-Tests"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeShops:
    def __init__(self, *shop_ids):
        self.shops = {shop_id: ShopConfig(id=shop_id, name=f"Shop {shop_id}") for shop_id in shop_ids}

    def list_shops(self):
        return list(self.shops.values())

    def get_shop(self, shop_id):
        return self.shops.get(shop_id)


class FakeSource(SourceOrderReader):
    """Liefert feste Bestellungen pro Shop, misst gleichzeitige Zugriffe pro Shop"""

    def __init__(self, orders=None, unreachable=(), fetch_delay: float = 0.0):
        self.orders = orders or {}
        self.unreachable = set(unreachable)
        self.fetch_delay = fetch_delay
        self.calls = []
        self.active = {}
        self.max_active = {}
        self._lock = threading.Lock()

    def fetch_changed_orders(self, shop, since_hours):
        with self._lock:
            self.calls.append((shop.id, since_hours))
            self.active[shop.id] = self.active.get(shop.id, 0) + 1
            self.max_active[shop.id] = max(self.max_active.get(shop.id, 0), self.active[shop.id])
        try:
            if self.fetch_delay:
                time.sleep(self.fetch_delay)
            if shop.id in self.unreachable:
                raise ShopUnreachable(shop.id, "Verbindung verweigert")
            return list(self.orders.get(shop.id, []))
        finally:
            with self._lock:
                self.active[shop.id] -= 1


class FakeTarget(TargetOrderWriter):
    """In-Memory Zielsystem; `on_write` wird nach jedem geschriebenen Auftrag aufgerufen"""

    def __init__(self, failing=(), on_write=None):
        self.written = set()
        self.failing = set(failing)
        self.on_write = on_write
        self._lock = threading.Lock()

    def exists(self, shop, order):
        with self._lock:
            return (shop.id, order.order_number) in self.written

    def write(self, shop, order):
        if order.order_number in self.failing:
            raise RecordTransformFailed(order.order_number, "Pflichtfeld fehlt")
        with self._lock:
            self.written.add((shop.id, order.order_number))
        if self.on_write:
            self.on_write(shop, order)
        return order.order_number


def make_orders(count: int, prefix: str = "ORD"):
    return [SourceOrder(virtuemart_order_id=i, order_number=f"{prefix}{i}") for i in range(1, count + 1)]


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 12, 0, 0))


@pytest.fixture
def shops():
    return FakeShops("s1", "s2")


@pytest.fixture
def tracker():
    return StatsTracker(default_sync_hours=24)


@pytest.fixture
def source():
    return FakeSource({"s1": make_orders(3), "s2": make_orders(2, prefix="B")})


@pytest.fixture
def target():
    return FakeTarget()


@pytest.fixture
def runner(shops, source, target, tracker, clock):
    return SyncRunner(shops, source, target, stats_tracker=tracker, clock=clock, order_delay=0)


@pytest.fixture
def events(tracker):
    """Sammelt alle Events des Trackers als (kind, payload)"""
    received = []
    for kind in ("progress", "complete", "error"):
        tracker.subscribe(kind, lambda k, payload: received.append((k.value, payload)))
    return received
