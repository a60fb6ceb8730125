import pytest

from pos_engine.db import mongo
from pos_engine.services import catalog_loader
from pos_engine.services.catalog_index import index_addons


class FakeCollection:
    def __init__(self, docs):
        self.docs = docs

    def find_one(self, query, projection=None):
        return next((dict(d) for d in self.docs if all(d.get(k) == v for k, v in query.items())), None)

    def find(self, query=None, projection=None):
        ids = ((query or {}).get("id") or {}).get("$in")
        return [dict(d) for d in self.docs if ids is None or d.get("id") in ids]


@pytest.fixture
def fake_db(monkeypatch):
    menu = FakeCollection([{
        "id": "latte", "name": "Cafe Latte", "price": 28000,
        "addons": [
            {"id": "shot", "maxQuantity": 2, "priceOverride": 6000},
            {"id": "syrup", "isRequired": True, "minQuantity": 1},
            {"id": "deleted"},
        ],
    }])
    addons = FakeCollection([
        {"id": "shot", "name": "Extra Shot", "price": 8000},
        {"id": "syrup", "name": "Sirup", "price": 5000},
        {"id": "oat", "name": "Oat Milk", "price": 7000},
    ])
    ingredients = FakeCollection([{"id": "water", "netQuantity": 1000, "unitBuyPrice": 630}])
    monkeypatch.setattr(mongo, "menu_items", lambda: menu)
    monkeypatch.setattr(mongo, "addons", lambda: addons)
    monkeypatch.setattr(mongo, "ingredients", lambda: ingredients)
    catalog_loader.refresh_catalogs()
    yield
    catalog_loader.refresh_catalogs()


def test_item_links_override_catalog(fake_db):
    linked = catalog_loader.load_addons_for_item("latte")
    assert [a["id"] for a in linked] == ["shot", "syrup"]

    idx = index_addons(linked)
    assert idx["shot"].unit_price == 6000
    assert idx["shot"].max_quantity == 2
    assert idx["syrup"].unit_price == 5000
    assert idx["syrup"].is_required


def test_unknown_item_raises_key_error(fake_db):
    with pytest.raises(KeyError):
        catalog_loader.load_addons_for_item("ghost")


def test_load_ingredients(fake_db):
    assert catalog_loader.load_ingredients() == [{"id": "water", "netQuantity": 1000, "unitBuyPrice": 630}]


def test_load_menu_item_returns_a_copy(fake_db):
    item = catalog_loader.load_menu_item("latte")
    assert item["price"] == 28000
    item["price"] = 1
    assert catalog_loader.load_menu_item("latte")["price"] == 28000

    with pytest.raises(KeyError):
        catalog_loader.load_menu_item("ghost")
