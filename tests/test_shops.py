"""Test: ShopRegistry (config.json, Default-Shop, CRUD)"""

import json

import pytest

from modules.jtl_sync.models import DatabaseConfig, ShopConfig
from modules.jtl_sync.shops import ShopRegistry, new_shop
from modules.shared.errors import ShopNotFound, ShopValidationError


@pytest.fixture
def registry(tmp_path):
    registry = ShopRegistry(tmp_path / "config.json")
    registry.load()
    return registry


def test_first_start_creates_default_shop(registry):
    shops = registry.list_shops()

    assert [shop.id for shop in shops] == ["shop1"]
    assert registry.path.exists()
    saved = json.loads(registry.path.read_text(encoding="utf-8"))
    assert saved["shops"][0]["joomla"]["database"] == "joomla"


def test_corrupt_file_falls_back_to_default(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{ defekt", encoding="utf-8")

    registry = ShopRegistry(path)
    registry.load()
    assert [shop.id for shop in registry.list_shops()] == ["shop1"]


def test_add_and_reload(registry, tmp_path):
    shop = new_shop("Zweitshop")
    registry.add_shop(shop)

    reloaded = ShopRegistry(tmp_path / "config.json")
    reloaded.load()
    assert reloaded.get_shop(shop.id).name == "Zweitshop"


def test_duplicate_id_is_rejected(registry):
    with pytest.raises(ShopValidationError):
        registry.add_shop(ShopConfig(id="shop1", name="Doppelt"))


def test_invalid_shop_is_rejected(registry):
    shop = ShopConfig(id="s2", name="Ohne DB", joomla=DatabaseConfig(database=""))
    with pytest.raises(ShopValidationError):
        registry.add_shop(shop)
    assert len(registry.list_shops()) == 1


def test_update_shop(registry):
    shop = registry.get_shop("shop1")
    shop.name = "Umbenannt"
    registry.update_shop(shop)
    assert registry.get_shop("shop1").name == "Umbenannt"


def test_update_unknown_shop(registry):
    with pytest.raises(ShopNotFound):
        registry.update_shop(ShopConfig(id="fremd", name="x"))


def test_returned_shops_are_copies(registry):
    registry.get_shop("shop1").name = "lokal geändert"
    assert registry.get_shop("shop1").name == "Default Shop"


def test_last_shop_cannot_be_removed(registry):
    with pytest.raises(ShopValidationError):
        registry.remove_shop("shop1")


def test_remove_unknown_shop(registry):
    registry.add_shop(new_shop("Zweitshop"))
    with pytest.raises(ShopNotFound):
        registry.remove_shop("fremd")


def test_remove_current_shop_resets_index(registry):
    second = registry.add_shop(new_shop("Zweitshop"))
    registry.set_current_shop(second.id)
    assert registry.current_shop_index == 1

    registry.remove_shop(second.id)
    assert registry.current_shop_index == 0
    assert registry.get_current_shop().id == "shop1"
    assert registry.get_shop(second.id) is None
