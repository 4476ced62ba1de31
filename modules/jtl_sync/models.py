"""JTL Sync Models - Shop-Konfiguration, VirtueMart-Bestellungen und Sync-Statistiken"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from config.settings import DEFAULT_SYNC_HOURS
from modules.shared.errors import ShopValidationError


# ===== Shop-Konfiguration =====

class DatabaseConfig(BaseModel):
    """Zugangsdaten einer Datenbank"""
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = ""
    driver: str = "mysql+pymysql"


class TablesConfig(BaseModel):
    """Tabellennamen der VirtueMart-Installation"""
    orders: str = "jos_virtuemart_orders"
    order_items: str = "jos_virtuemart_order_items"
    customers: str = "jos_virtuemart_order_userinfos"


class ShopConfig(BaseModel):
    """Ein Shop = Joomla-Quelle + JTL-Ziel"""
    id: str
    name: str
    joomla: DatabaseConfig = Field(default_factory=lambda: DatabaseConfig(database="joomla"))
    jtl: DatabaseConfig = Field(default_factory=lambda: DatabaseConfig(database="jtl"))
    tables: TablesConfig = Field(default_factory=TablesConfig)

    def validate_config(self):
        """Prüfe Pflichtfelder, wirft ShopValidationError"""
        checks = [
            (self.id, "Shop ID darf nicht leer sein"),
            (self.name, "Shop Name darf nicht leer sein"),
            (self.joomla.host, "Joomla Datenbank-Host darf nicht leer sein"),
            (self.joomla.user, "Joomla Datenbank-User darf nicht leer sein"),
            (self.joomla.database, "Joomla Datenbankname darf nicht leer sein"),
            (self.tables.orders, "Tabellenname für Bestellungen darf nicht leer sein"),
            (self.tables.order_items, "Tabellenname für Bestellpositionen darf nicht leer sein"),
            (self.tables.customers, "Tabellenname für Kunden darf nicht leer sein"),
        ]
        for value, message in checks:
            if not value:
                raise ShopValidationError(message)


class AppConfig(BaseModel):
    """Persistierte Shop-Liste + aktiver Shop"""
    shops: List[ShopConfig] = Field(default_factory=list)
    current_shop_index: int = 0


# ===== VirtueMart Quelldaten =====

class SourceAddress(BaseModel):
    """Adresse aus jos_virtuemart_order_userinfos (BT oder ST)"""
    company: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_1: Optional[str] = None
    phone_2: Optional[str] = None
    address_1: Optional[str] = None
    address_2: Optional[str] = None
    zip: Optional[str] = None
    city: Optional[str] = None
    email: Optional[str] = None
    virtuemart_country_id: Optional[int] = None


class SourceOrderItem(BaseModel):
    """Bestellposition"""
    virtuemart_order_item_id: int
    virtuemart_order_id: int
    order_item_sku: Optional[str] = None
    order_item_name: str
    product_quantity: int = 1
    product_final_price: float = 0.0
    product_tax: Optional[float] = None
    product_price_without_tax: Optional[float] = None


class SourceOrder(SourceAddress):
    """VirtueMart Bestellung inkl. Rechnungsadresse (BT)"""
    virtuemart_order_id: int
    order_number: str
    created_on: Optional[datetime] = None
    order_total: float = 0.0
    order_status: Optional[str] = None
    virtuemart_user_id: Optional[int] = None
    virtuemart_paymentmethod_id: Optional[int] = None
    virtuemart_shipmentmethod_id: Optional[int] = None
    virtuemart_order_userinfo_id: Optional[int] = None
    customer_note: Optional[str] = None
    order_shipment: Optional[float] = None
    coupon_code: Optional[str] = None
    coupon_discount: Optional[float] = None
    items: List[SourceOrderItem] = Field(default_factory=list)
    shipping_address: Optional[SourceAddress] = None


class UnreadableOrder(BaseModel):
    """Quellzeile, die nicht in eine SourceOrder überführt werden konnte (zählt als Fehler)"""
    virtuemart_order_id: Optional[int] = None
    order_number: str
    error: str


# ===== Sync-Statistiken =====

class SyncStats(BaseModel):
    """Statistik des letzten Laufs eines Shops (kein Aufsummieren über Läufe)"""
    shop_id: str
    total_orders: int = 0
    synced_orders: int = 0
    skipped_orders: int = 0
    error_orders: int = 0
    last_sync_time: Optional[datetime] = None
    next_scheduled_run: Optional[datetime] = None
    aborted: bool = False
    sync_hours: int = DEFAULT_SYNC_HOURS
    error: Optional[str] = None

    @property
    def processed_orders(self) -> int:
        return self.synced_orders + self.skipped_orders + self.error_orders


class SyncRunResult(BaseModel):
    """Ergebnis eines (Multi-Shop) Laufs"""
    stats: Dict[str, SyncStats] = Field(default_factory=dict)
    errors: Dict[str, str] = Field(default_factory=dict)
    aborted: bool = False
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def failed(self) -> List[str]:
        """Shops die komplett fehlgeschlagen sind (nicht gefunden / nicht erreichbar)"""
        return list(self.errors.keys())

    @property
    def success(self) -> bool:
        return not self.errors
