"""VirtueMart Order Repository - SQLAlchemy + Raw SQL gegen die Joomla-Datenbank eines Shops"""

from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from modules.jtl_sync.models import SourceAddress, SourceOrder, SourceOrderItem, UnreadableOrder
from modules.shared.connectors.base_connector import SourceOrderReader
from modules.shared.database.repositories.base import BaseRepository
from modules.shared.errors import ShopUnreachable
from modules.shared.logging import create_module_logger

logger = create_module_logger('VIRTUEMART', 'jtl_sync')

_ADDRESS_COLUMNS = (
    "company", "first_name", "last_name", "phone_1", "phone_2",
    "address_1", "address_2", "zip", "city", "email", "virtuemart_country_id",
)


class VirtueMartOrderRepository(BaseRepository, SourceOrderReader):
    """Data Access Layer - ONLY VirtueMart DB Operations (read-only)"""

    def __init__(self, connection: Optional[Connection] = None,
                 clock: Callable[[], datetime] = datetime.now):
        super().__init__(connection)
        self._clock = clock

    def fetch_changed_orders(self, shop, since_hours: int) -> List[Union[SourceOrder, UnreadableOrder]]:
        """
        Bestellungen der letzten `since_hours` Stunden inkl. Positionen und Lieferadresse.
        Nicht lesbare Zeilen kommen als UnreadableOrder zurück.
        """
        cutoff = self._clock() - timedelta(hours=since_hours)
        logger.info(f"Suche Bestellungen für Shop '{shop.name}' seit {cutoff:%Y-%m-%d %H:%M:%S}")

        try:
            rows = self.find_orders_since(shop, cutoff)
            orders = [self._load_order(shop, row) for row in rows]
        except SQLAlchemyError as e:
            raise ShopUnreachable(shop.id, str(e)) from e

        logger.info(f"Gefundene Bestellungen für Shop '{shop.name}': {len(orders)}")
        return orders

    def _load_order(self, shop, row) -> Union[SourceOrder, UnreadableOrder]:
        """Bestellung inkl. Positionen; defekte Zeile → UnreadableOrder statt Abbruch des Shops"""
        order_id = row.get("virtuemart_order_id")
        try:
            order = self._map_to_order(row)
            order.items = self.find_order_items(shop, order.virtuemart_order_id)
            order.shipping_address = self.find_shipping_address(shop, order.virtuemart_order_id)
            return order
        except (ValidationError, ValueError, TypeError) as e:
            order_number = row.get("order_number") or f"VM{order_id}"
            logger.error(f"Bestellung {order_number} (Shop '{shop.name}') nicht lesbar: {e}")
            return UnreadableOrder(virtuemart_order_id=order_id, order_number=order_number, error=str(e))

    def find_orders_since(self, shop, cutoff: datetime):
        """Bestellungen + Rechnungsadresse (BT) ab `cutoff`, älteste zuerst"""
        address_cols = ", ".join(f"c.{col}" for col in _ADDRESS_COLUMNS)
        sql = f"""
            SELECT o.virtuemart_order_id, o.order_number, o.created_on, o.order_total,
                   o.order_status, o.virtuemart_user_id, o.virtuemart_paymentmethod_id,
                   o.virtuemart_shipmentmethod_id, o.customer_note, o.order_shipment,
                   o.coupon_code, o.coupon_discount,
                   c.virtuemart_order_userinfo_id, {address_cols}
            FROM {shop.tables.orders} o
            JOIN {shop.tables.customers} c ON o.virtuemart_order_id = c.virtuemart_order_id
            WHERE o.created_on >= :cutoff AND c.address_type = 'BT'
            ORDER BY o.created_on ASC
        """
        return self._fetch_all(shop, sql, {"cutoff": cutoff.strftime("%Y-%m-%d %H:%M:%S")})

    def find_order_items(self, shop, order_id: int) -> List[SourceOrderItem]:
        """Bestellpositionen einer Bestellung"""
        sql = f"""
            SELECT virtuemart_order_item_id, virtuemart_order_id, order_item_sku,
                   order_item_name, product_quantity, product_final_price,
                   product_tax, product_priceWithoutTax AS product_price_without_tax
            FROM {shop.tables.order_items}
            WHERE virtuemart_order_id = :order_id
        """
        rows = self._fetch_all(shop, sql, {"order_id": order_id})
        return [self._map_to_item(row) for row in rows]

    def find_shipping_address(self, shop, order_id: int) -> Optional[SourceAddress]:
        """Separate Lieferadresse (ST), falls vorhanden"""
        sql = f"""
            SELECT {", ".join(_ADDRESS_COLUMNS)}
            FROM {shop.tables.customers}
            WHERE virtuemart_order_id = :order_id AND address_type = 'ST'
        """
        row = self._fetch_one(shop, sql, {"order_id": order_id})
        if not row:
            return None
        return SourceAddress(**_clean(row))

    def _map_to_order(self, row) -> SourceOrder:
        data = _clean(row)
        if not data.get("order_number"):
            data["order_number"] = f"VM{data['virtuemart_order_id']}"
        data["order_total"] = float(data.get("order_total") or 0)
        return SourceOrder(**data)

    def _map_to_item(self, row) -> SourceOrderItem:
        data = _clean(row)
        data.setdefault("order_item_name", "Unbekanntes Produkt")
        data.setdefault("product_quantity", 1)
        data["product_final_price"] = float(data.get("product_final_price") or 0)
        return SourceOrderItem(**data)


def _clean(row) -> Dict:
    """RowMapping → dict ohne NULL-Werte; Decimal → float"""
    result = {}
    for key, value in dict(row).items():
        if value is None:
            continue
        if hasattr(value, "is_nan"):  # Decimal
            value = float(value)
        result[key] = value
    return result
