from pos_engine.services.cart import CartSession
from pos_engine.services.draft import draft_to_payload
from pos_engine.services.pricing_engine import build_cart_line


def _line(latte, catalog, addons, **kw):
    return build_cart_line(latte, addons, catalog, **kw).line


def test_identical_lines_merge(latte, optional_catalog):
    cart = CartSession()
    cart.add(_line(latte, optional_catalog, [{"id": "X", "quantity": 2}, {"id": "Y", "quantity": 1}]))
    merged = cart.add(_line(latte, optional_catalog, [{"id": "Y", "quantity": 1}, {"id": "X", "quantity": 2}]))

    assert len(cart) == 1
    assert merged.quantity == 2
    assert cart.lines[0].quantity == 2


def test_different_configurations_stay_apart(latte, optional_catalog):
    cart = CartSession()
    cart.add(_line(latte, optional_catalog, [{"id": "X", "quantity": 1}]))
    cart.add(_line(latte, optional_catalog, [{"id": "X", "quantity": 2}]))
    cart.add(_line(latte, optional_catalog, []))
    assert [l.identity_key for l in cart.lines] == ["latte::X:1", "latte::X:2", "latte"]


def test_quantity_zero_removes_line(latte, optional_catalog):
    cart = CartSession()
    line = cart.add(_line(latte, optional_catalog, [], quantity=2))

    assert cart.change_quantity(line.identity_key, -1).quantity == 1
    assert cart.change_quantity(line.identity_key, -1) is None
    assert len(cart) == 0
    assert cart.change_quantity("missing", 1) is None

    cart.add(line)
    assert cart.set_quantity(line.identity_key, -3) is None
    assert cart.lines == ()


def test_lines_are_replaced_not_mutated(latte, optional_catalog):
    cart = CartSession()
    line = cart.add(_line(latte, optional_catalog, []))
    before = cart.lines
    cart.add(line)
    assert before[0].quantity == 1
    assert cart.lines[0].quantity == 2
    cart.remove(line.identity_key)
    assert cart.lines == ()


def test_totals_use_session_discount(latte, optional_catalog):
    cart = CartSession(discount_pct=10)
    cart.add(_line(latte, optional_catalog, [{"id": "Y", "quantity": 2}], quantity=2))
    totals = cart.totals(fee=1000)
    assert totals.subtotal == 2 * (28000 + 5000)
    assert totals.discount == 6600
    assert totals.total == 66000 - 6600 + 1000


def test_snapshot_round_trip(latte, optional_catalog):
    cart = CartSession(discount_rp=2000, customer_name="Sari", payment_method="CASH")
    cart.add(_line(latte, optional_catalog, [{"id": "X", "quantity": 1}], notes="no ice"))

    restored = CartSession.from_draft(draft_to_payload(cart.snapshot()))
    assert restored.lines == cart.lines
    assert restored.discount_rp == 2000
    assert restored.customer_name == "Sari"
    assert restored.payment_method == "CASH"
    assert restored.to_order_items() == cart.to_order_items()


def test_unreadable_draft_gives_empty_cart():
    assert len(CartSession.from_draft("{broken")) == 0
