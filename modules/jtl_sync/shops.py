"""Shop-Konfiguration - Verwaltung der konfigurierten Shops (JSON-persistiert)"""

import json
import threading
import uuid
from pathlib import Path
from typing import List, Optional, Protocol

from pydantic import ValidationError

from config.settings import SHOPS_FILE
from modules.jtl_sync.models import AppConfig, ShopConfig
from modules.shared.database import dispose_engine
from modules.shared.errors import ShopNotFound, ShopValidationError
from modules.shared.json_store import read_json, write_json_atomic
from modules.shared.logging import app_logger


class ShopProvider(Protocol):
    """Schnittstelle, über die Scheduler und SyncRunner Shops auflösen"""

    def list_shops(self) -> List[ShopConfig]:
        ...

    def get_shop(self, shop_id: str) -> Optional[ShopConfig]:
        ...


def default_shop(shop_id: str = "shop1", name: str = "Default Shop") -> ShopConfig:
    """Standard-Shop mit lokalen Default-Zugangsdaten"""
    return ShopConfig(id=shop_id, name=name)


def new_shop(name: str) -> ShopConfig:
    """Neuer Shop mit frischer ID"""
    return default_shop(shop_id=str(uuid.uuid4()), name=name)


class ShopRegistry:
    """Verwaltet Shop-Konfigurationen in config.json"""

    def __init__(self, path: Path = SHOPS_FILE):
        self.path = Path(path)
        self._config = AppConfig()
        self._lock = threading.RLock()

    # ===== Laden / Speichern =====

    def load(self) -> AppConfig:
        """Lade Konfiguration; erste Ausführung erzeugt Default-Shop"""
        with self._lock:
            if not self.path.exists():
                self._config = AppConfig(shops=[default_shop()], current_shop_index=0)
                self.save()
                return self._config

            try:
                self._config = AppConfig.model_validate(read_json(self.path))
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                app_logger.error(f"Fehler beim Laden der Shop-Config: {e}", exc_info=True)
                self._config = AppConfig(shops=[default_shop()], current_shop_index=0)

            self._fix_current_index()
            return self._config

    def save(self) -> bool:
        """Speichere Konfiguration"""
        with self._lock:
            try:
                write_json_atomic(self.path, self._config.model_dump(mode="json"))
                return True
            except OSError as e:
                app_logger.error(f"Fehler beim Speichern der Shop-Config: {e}", exc_info=True)
                return False

    # ===== ShopProvider =====

    def list_shops(self) -> List[ShopConfig]:
        with self._lock:
            return [shop.model_copy(deep=True) for shop in self._config.shops]

    def get_shop(self, shop_id: str) -> Optional[ShopConfig]:
        with self._lock:
            for shop in self._config.shops:
                if shop.id == shop_id:
                    return shop.model_copy(deep=True)
        return None

    # ===== CRUD =====

    def add_shop(self, shop: ShopConfig) -> ShopConfig:
        """Füge Shop hinzu (ID muss eindeutig sein)"""
        shop.validate_config()
        with self._lock:
            if any(s.id == shop.id for s in self._config.shops):
                raise ShopValidationError(f"Ein Shop mit ID '{shop.id}' existiert bereits")
            self._config.shops.append(shop)
            self.save()
        return shop

    def update_shop(self, shop: ShopConfig) -> ShopConfig:
        """Ersetze bestehenden Shop"""
        shop.validate_config()
        with self._lock:
            index = self._index_of(shop.id)
            self._config.shops[index] = shop
            self.save()
        # Zugangsdaten evtl. geändert: Engine neu aufbauen
        dispose_engine(shop.id)
        return shop

    def remove_shop(self, shop_id: str):
        """Entferne Shop; der letzte Shop kann nicht entfernt werden"""
        with self._lock:
            if len(self._config.shops) <= 1:
                raise ShopValidationError("Der letzte Shop kann nicht entfernt werden")

            index = self._index_of(shop_id)
            del self._config.shops[index]
            self._fix_current_index()
            self.save()
        dispose_engine(shop_id)

    def set_current_shop(self, shop_id: str):
        with self._lock:
            self._config.current_shop_index = self._index_of(shop_id)
            self.save()

    def get_current_shop(self) -> ShopConfig:
        """Aktiver Shop; ungültiger Index fällt auf 0 zurück"""
        with self._lock:
            if not self._config.shops:
                return default_shop()
            index = self._config.current_shop_index
            if not 0 <= index < len(self._config.shops):
                index = 0
            return self._config.shops[index].model_copy(deep=True)

    @property
    def current_shop_index(self) -> int:
        return self._config.current_shop_index

    def _index_of(self, shop_id: str) -> int:
        for index, shop in enumerate(self._config.shops):
            if shop.id == shop_id:
                return index
        raise ShopNotFound(shop_id)

    def _fix_current_index(self):
        if not 0 <= self._config.current_shop_index < len(self._config.shops):
            self._config.current_shop_index = 0
