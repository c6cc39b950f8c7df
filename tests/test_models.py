"""
Tests for model helpers and wire shapes.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from storefront_server.models import CartLineItem, CheckoutForm, format_price, to_decimal


def test_to_decimal():
    assert to_decimal("19.99") == Decimal("19.99")
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(None) == Decimal("0")


def test_line_item_rejects_zero_quantity():
    with pytest.raises(ValueError):
        CartLineItem(id="a", title="a", unit_price="1", quantity=0)


def test_format_price():
    assert format_price(Decimal("1299.99")) == "R 1 299.99"
    assert format_price(Decimal("5"), "USD") == "USD 5.00"


def test_form_splits_into_shipping_and_payment(valid_form):
    shipping = valid_form.shipping()
    payment = valid_form.payment(Decimal("10.00"), "ZAR")

    assert shipping.postal_code == "2000"
    assert not hasattr(shipping, "cvv")
    assert payment.cvv == "123"
    assert payment.amount == Decimal("10.00")


def test_form_accepts_camel_case():
    form = CheckoutForm.model_validate({"firstName": "Jane", "postalCode": "8001", "cardNumber": "4111"})
    assert form.first_name == "Jane"
    assert form.postal_code == "8001"
    assert form.card_number == "4111"


def test_to_decimal_rejects_garbage():
    with pytest.raises(ValueError, match="Invalid price"):
        to_decimal("abc")


def test_line_item_bad_price_is_validation_error():
    with pytest.raises(ValidationError, match="Invalid price"):
        CartLineItem(id="a", title="a", unit_price="abc")
