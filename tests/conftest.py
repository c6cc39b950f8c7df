"""
Shared test fixtures for the storefront test suite.
"""

from datetime import datetime, timezone

import pytest

from storefront_server.cart import CartStore
from storefront_server.config import Settings
from storefront_server.models import CartLineItem, CheckoutForm
from storefront_server.payment_service import MockOrderService, MockPaymentGateway

VALID_CARD = "4532015112830366"
FIXED_TIME = datetime(2026, 3, 15, 10, 30, tzinfo=timezone.utc)


def make_item(item_id: str = "gid://shopify/Product/1", price: str = "499.99", quantity: int = 1, **kwargs):
    return CartLineItem(
        id=item_id,
        title=kwargs.pop("title", f"Product {item_id}"),
        unit_price=price,
        quantity=quantity,
        **kwargs,
    )


@pytest.fixture
def settings():
    return Settings(payment_delay=0, order_delay=0)


@pytest.fixture
def cart():
    return CartStore()


@pytest.fixture
def filled_cart(cart):
    cart.add_to_cart(make_item("p1", "499.99", 2))
    cart.add_to_cart(make_item("p2", "299.99", 1))
    return cart


@pytest.fixture
def valid_form():
    return CheckoutForm(
        first_name="John",
        last_name="Doe",
        email="john.doe@example.com",
        phone="+27 12 345 6789",
        address="123 Main St",
        city="Johannesburg",
        postal_code="2000",
        card_number="4532 0151 1283 0366",
        expiry_date="12/99",
        cvv="123",
    )


@pytest.fixture
def gateway():
    return MockPaymentGateway(delay=0)


@pytest.fixture
def order_service():
    return MockOrderService(delay=0, id_generator=lambda: "ORD-test00001", clock=lambda: FIXED_TIME)

