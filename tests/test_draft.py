import json

from pos_engine.services.draft import draft_to_payload, normalize_cart_line, normalize_draft


def test_sparse_line_is_recovered():
    line = normalize_cart_line({"id": "7"})
    assert line is not None
    assert line.base_price == 0
    assert line.unit_price == 0
    assert line.quantity == 1
    assert line.identity_key == "7"


def test_unusable_input_gives_none():
    assert normalize_cart_line(None) is None
    assert normalize_cart_line("") is None
    assert normalize_cart_line("{not json") is None
    assert normalize_cart_line([1, 2]) is None
    assert normalize_cart_line({"name": "no id"}) is None


def test_base_price_derived_from_total_when_missing():
    line = normalize_cart_line({
        "id": 1, "name": "Latte", "price": 30000,
        "addons": [{"id": "shot", "name": "Shot", "quantity": 2, "unitPrice": 5000}],
    })
    assert line.item_id == "1"
    assert line.base_price == 20000
    assert line.unit_price == 30000
    assert line.identity_key == "1::shot:2"


def test_negative_base_price_is_not_trusted():
    line = normalize_cart_line({"id": "1", "price": 3000, "basePrice": -5,
                                "addons": [{"id": "x", "quantity": 1, "unitPrice": 5000}]})
    assert line.base_price == 0
    assert line.unit_price == 5000


def test_addons_are_sanitized():
    line = normalize_cart_line({
        "id": "1", "basePrice": 10000,
        "addons": [
            {"id": "shot", "quantity": -3, "unitPrice": 5000},
            {"name": "no id", "quantity": 1, "unitPrice": 999},
            {"id": "oat", "qty": "2", "unitPrice": "abc"},
            "garbage",
        ],
    })
    assert [(s.addon_id, s.quantity, s.unit_price_at_selection) for s in line.addon_selections] == [("oat", 2, 0)]
    assert line.unit_price == 10000
    assert normalize_cart_line({"id": "1", "addons": "nope"}).addon_selections == ()


def test_quantity_defaults_and_floors_at_one():
    assert normalize_cart_line({"id": "1", "quantity": 0}).quantity == 1
    assert normalize_cart_line({"id": "1", "quantity": -4}).quantity == 1
    assert normalize_cart_line({"id": "1", "quantity": "3"}).quantity == 3


def test_stale_key_is_recomputed():
    raw = {"id": "1", "basePrice": 1000, "cartKey": "1::old:1",
           "addons": [{"id": "shot", "quantity": 1, "unitPrice": 500}]}
    assert normalize_cart_line(raw).identity_key == "1::shot:1"
    raw["cartKey"] = "1::shot:1"
    assert normalize_cart_line(raw).identity_key == "1::shot:1"


def test_json_string_line():
    line = normalize_cart_line(json.dumps({"id": "9", "price": 15000, "quantity": 2}))
    assert (line.item_id, line.base_price, line.quantity) == ("9", 15000, 2)


def test_normalize_draft_drops_bad_lines_and_clamps():
    draft = normalize_draft({
        "cart": [{"id": "1", "price": 10000}, None, {"nope": True}],
        "discountRp": -100,
        "discountPct": 150,
        "customerName": "Budi",
        "sendNotif": 1,
        "timestamp": 1700000000000,
    })
    assert len(draft.cart) == 1
    assert draft.discount_rp == 0
    assert draft.discount_pct == 100
    assert draft.customer_name == "Budi"
    assert draft.customer_phone == ""
    assert draft.send_notif is True
    assert draft.payment_method == "QRIS"
    assert draft.timestamp == 1700000000000


def test_normalize_draft_rejects_garbage():
    assert normalize_draft(None) is None
    assert normalize_draft("[]") is None
    assert normalize_draft({"cart": "broken"}).cart == []


def test_draft_payload_reads_back_the_same():
    draft = normalize_draft({
        "cart": [{"id": "1", "name": "Latte", "basePrice": 28000, "quantity": 2, "notes": "hot",
                  "addons": [{"id": "shot", "name": "Shot", "quantity": 1, "unitPrice": 8000}]}],
        "discountPct": 10, "paymentMethod": "CASH", "customerPhone": "0812",
    })
    again = normalize_draft(draft_to_payload(draft))
    assert again.cart == draft.cart
    assert again.discount_pct == 10
    assert again.payment_method == "CASH"
    assert again.customer_phone == "0812"
