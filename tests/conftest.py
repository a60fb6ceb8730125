import pytest

from pos_engine.services.catalog_index import index_registry


@pytest.fixture
def raw_ingredients():
    return [
        {"id": "coffee", "name": "Arabica beans", "netQuantity": 500, "unitBuyPrice": 170000, "unit": "g"},
        {"id": "water", "name": "Mineral water", "netQuantity": 1000, "unitBuyPrice": 630, "unit": "ml"},
        {"id": "milk", "name": "Fresh milk", "netConfirmedQuantity": 1000, "unitBuyPrice": 20000, "unit": "ml"},
        {"id": "cup", "name": "Cup 12oz", "netQuantity": 50, "unitBuyPrice": 50000, "unit": "pcs"},
        {
            "id": "espresso", "name": "Espresso", "unit": "ml",
            "composition": [{"ingredientId": "coffee", "quantity": 18}, {"ingredientId": "water", "quantity": 36}],
            "compositionYield": 36,
        },
    ]


@pytest.fixture
def registry(raw_ingredients):
    return index_registry(raw_ingredients)


@pytest.fixture
def addon_catalog():
    return [
        {"id": "syrup", "name": "Sirup", "unitPrice": 5000, "minQuantity": 1, "maxQuantity": 3, "isRequired": True},
        {"id": "shot", "name": "Extra Shot", "unitPrice": 8000, "maxQuantity": 2},
        {"id": "oat", "name": "Oat Milk", "unitPrice": 7000, "maxQuantity": 1},
        {"id": "boba", "name": "Boba", "unitPrice": 4000, "isActive": False},
    ]


@pytest.fixture
def optional_catalog():
    return [
        {"id": "X", "name": "Extra X", "unitPrice": 1000, "maxQuantity": 5},
        {"id": "Y", "name": "Extra Y", "unitPrice": 2500},
    ]


@pytest.fixture
def latte():
    return {"id": "latte", "name": "Cafe Latte", "price": 28000}
