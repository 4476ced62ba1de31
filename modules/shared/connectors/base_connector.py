"""Base Connector - Abstract Base Classes für Quell- und Zielsysteme"""

from abc import ABC, abstractmethod
from typing import List


class SourceOrderReader(ABC):
    """
    Quelle für Bestellungen (Storefront-Datenbank)

    Jede Storefront (VirtueMart, ...) muss diese Schnittstelle implementieren.
    """

    @abstractmethod
    def fetch_changed_orders(self, shop, since_hours: int) -> List:
        """
        Hole Bestellungen der letzten `since_hours` Stunden, ältester zuerst.

        Raises:
            ShopUnreachable: Datenbank des Shops nicht erreichbar
        """
        pass


class TargetOrderWriter(ABC):
    """Ziel für Bestellungen (ERP)"""

    @abstractmethod
    def exists(self, shop, order) -> bool:
        """Existiert die Bestellung bereits im Zielsystem? (Schlüssel: Quell-Bestellnummer)"""
        pass

    @abstractmethod
    def write(self, shop, order) -> str:
        """Lege Bestellung im Zielsystem an, gibt die Ziel-ID zurück"""
        pass
