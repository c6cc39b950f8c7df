"""
Tests for the in-memory cart store.
"""

from decimal import Decimal

from hypothesis import settings, strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, rule

from storefront_server.cart import CartStore

from .conftest import make_item


def test_new_cart_is_empty(cart):
    assert cart.is_empty
    assert len(cart) == 0
    assert cart.total_price == Decimal("0")
    assert cart.total_item_count == 0


def test_add_same_id_merges(cart):
    cart.add_to_cart(make_item("p1", "10.00", 1))
    cart.add_to_cart(make_item("p1", "10.00", 2))

    assert len(cart) == 1
    assert cart.get("p1").quantity == 3
    assert cart.total_item_count == 3
    assert cart.total_price == Decimal("30.00")


def test_add_with_explicit_quantity(cart):
    stored = cart.add_to_cart(make_item("p1", "10.00"), quantity=4)
    assert stored.quantity == 4


def test_merge_overwrites_variant_only_when_given(cart):
    cart.add_to_cart(make_item("p1", "10.00", variant_label="UK 8"))
    cart.add_to_cart(make_item("p1", "10.00"))
    assert cart.get("p1").variant_label == "UK 8"

    cart.add_to_cart(make_item("p1", "10.00", variant_label="UK 9"))
    assert cart.get("p1").variant_label == "UK 9"


def test_prices_are_exact(cart):
    cart.add_to_cart(make_item("p1", "0.10", 3))
    cart.add_to_cart(make_item("p2", 0.2))
    assert cart.total_price == Decimal("0.50")


def test_remove(filled_cart):
    filled_cart.remove_from_cart("p1")
    assert filled_cart.get("p1") is None
    assert filled_cart.total_price == Decimal("299.99")


def test_remove_absent_is_noop(filled_cart):
    before = filled_cart.view()
    filled_cart.remove_from_cart("missing")
    assert filled_cart.view() == before


def test_update_quantity(filled_cart):
    filled_cart.update_quantity("p2", 5)
    assert filled_cart.get("p2").quantity == 5
    assert filled_cart.total_item_count == 7


def test_update_quantity_zero_removes(filled_cart):
    filled_cart.update_quantity("p1", 0)
    assert filled_cart.get("p1") is None


def test_update_quantity_negative_removes(filled_cart):
    filled_cart.update_quantity("p1", -5)
    assert filled_cart.get("p1") is None
    assert len(filled_cart) == 1


def test_update_absent_is_noop(filled_cart):
    filled_cart.update_quantity("missing", 3)
    assert filled_cart.get("missing") is None
    assert len(filled_cart) == 2


def test_add_negative_quantity_never_leaves_non_positive_line(cart):
    cart.add_to_cart(make_item("p1", "5.00", 2))
    assert cart.add_to_cart(make_item("p1", "5.00"), quantity=-2) is None
    assert cart.get("p1") is None
    assert cart.add_to_cart(make_item("p2", "5.00"), quantity=0) is None
    assert cart.is_empty


def test_clear(filled_cart):
    filled_cart.clear()
    assert filled_cart.is_empty
    assert filled_cart.total_price == Decimal("0")


def test_snapshot_is_decoupled(filled_cart):
    snapshot = filled_cart.snapshot()
    filled_cart.update_quantity("p1", 10)
    filled_cart.clear()

    assert [item.id for item in snapshot] == ["p1", "p2"]
    assert snapshot[0].quantity == 2


def test_returned_items_are_copies(filled_cart):
    items = filled_cart.items()
    items[0].quantity = 99
    assert filled_cart.get("p1").quantity == 2


def test_view(filled_cart):
    view = filled_cart.view()
    assert view.total_price == Decimal("1299.97")
    assert view.total_item_count == 3
    assert view.currency == "ZAR"
    assert [item.id for item in view.items] == ["p1", "p2"]


ids = st.sampled_from(["a", "b", "c", "d"])
prices = st.decimals(min_value="0", max_value="9999.99", places=2, allow_nan=False, allow_infinity=False)


class CartStateMachine(RuleBasedStateMachine):
    """Totals always equal the sum over line items after any operation."""

    def __init__(self):
        super().__init__()
        self.cart = CartStore()
        self.model: dict[str, list] = {}

    @rule(item_id=ids, price=prices, quantity=st.integers(min_value=1, max_value=5))
    def add(self, item_id, price, quantity):
        self.cart.add_to_cart(make_item(item_id, price, quantity))
        if item_id in self.model:
            self.model[item_id][1] += quantity
        else:
            self.model[item_id] = [price, quantity]

    @rule(item_id=ids)
    def remove(self, item_id):
        self.cart.remove_from_cart(item_id)
        self.model.pop(item_id, None)

    @rule(item_id=ids, quantity=st.integers(min_value=-3, max_value=6))
    def update(self, item_id, quantity):
        self.cart.update_quantity(item_id, quantity)
        if quantity <= 0:
            self.model.pop(item_id, None)
        elif item_id in self.model:
            self.model[item_id][1] = quantity

    @invariant()
    def totals_match(self):
        items = self.cart.items()
        assert self.cart.total_price == sum((i.unit_price * i.quantity for i in items), Decimal("0"))
        assert self.cart.total_item_count == sum(i.quantity for i in items)

    @invariant()
    def matches_model(self):
        items = {i.id: i for i in self.cart.items()}
        assert set(items) == set(self.model)
        for item_id, (price, quantity) in self.model.items():
            assert items[item_id].quantity == quantity
            assert items[item_id].quantity >= 1
            assert items[item_id].unit_price == price


CartStateMachine.TestCase.settings = settings(max_examples=50, stateful_step_count=30)
TestCartStateMachine = CartStateMachine.TestCase
