"""JTL Order Writer - Zielsystem-Seite des Syncs"""

from typing import Optional

from modules.jtl_sync import mapping
from modules.shared.connectors.base_connector import TargetOrderWriter
from modules.shared.errors import JtlApiError, RecordTransformFailed
from modules.shared.logging import create_module_logger
from .api_client import JtlApiClient

logger = create_module_logger('JTL_WRITER', 'jtl_sync')


class JtlOrderWriter(TargetOrderWriter):
    """
    Schreibt VirtueMart-Bestellungen als Aufträge in JTL-Wawi.

    Existenz-Prüfung über externe Bestellnummer (VM<order_id>) + Kunde,
    damit ein erneuter Lauf über dasselbe Zeitfenster nichts doppelt anlegt.
    """

    def __init__(self, client: Optional[JtlApiClient] = None):
        self.client = client or JtlApiClient()

    def exists(self, shop, order) -> bool:
        customer = self.client.get_customer_by_number(mapping.customer_number(order))
        if customer is None:
            # Ohne Kunde kann es keinen Auftrag geben
            return False
        return self.client.check_order_exists(mapping.external_order_number(order), customer.get("Id"))

    def write(self, shop, order) -> str:
        order_number = mapping.external_order_number(order)

        try:
            customer_id = self._resolve_customer(shop, order)
            order_payload = mapping.build_order_payload(order, shop.name, customer_id)
            items = mapping.build_line_items(order, shop.name)
        except (TypeError, ValueError) as e:
            raise RecordTransformFailed(order_number, str(e)) from e

        response = self.client.create_order(order_payload, items)
        jtl_order_id = response["Id"]
        logger.info(f"Auftrag {order_number} in JTL angelegt (ID {jtl_order_id}, Shop '{shop.name}')")

        # Folge-Events: Fehler hier machen den angelegten Auftrag nicht ungültig
        if mapping.is_paid(order):
            try:
                self.client.set_payment_paid(jtl_order_id)
            except JtlApiError as e:
                logger.warning(f"Auftrag {order_number}: Bezahlt-Status fehlgeschlagen: {e}")
        try:
            self.client.set_order_hold(jtl_order_id)
        except JtlApiError as e:
            logger.warning(f"Auftrag {order_number}: Zurückstellen fehlgeschlagen: {e}")

        return str(jtl_order_id)

    def _resolve_customer(self, shop, order) -> int:
        number = mapping.customer_number(order)
        customer = self.client.get_customer_by_number(number)
        if customer is not None:
            logger.info(f"Kunde {number} existiert bereits (ID {customer.get('Id')}, Shop '{shop.name}')")
            return int(customer["Id"])

        logger.info(f"Lege Kunde {number} an (Shop '{shop.name}')")
        created = self.client.create_customer(mapping.build_customer_payload(order))
        return int(created["Id"])
