"""
Tests for settings loading.
"""

import pytest

from storefront_server.config import load_settings


def test_defaults(monkeypatch):
    for name in ("STOREFRONT_SHOPIFY_TOKEN", "STOREFRONT_CURRENCY", "STOREFRONT_PAYMENT_DELAY"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.currency == "ZAR"
    assert settings.payment_delay == 2.0
    assert settings.shopify_store == "vans-sa.myshopify.com"
    assert not settings.catalog_configured


def test_from_environment(monkeypatch):
    monkeypatch.setenv("STOREFRONT_SHOPIFY_TOKEN", "abc")
    monkeypatch.setenv("STOREFRONT_CURRENCY", "usd")
    monkeypatch.setenv("STOREFRONT_ORDER_DELAY", "0.5")
    monkeypatch.setenv("STOREFRONT_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.catalog_configured
    assert settings.currency == "USD"
    assert settings.order_delay == 0.5
    assert settings.log_level == "DEBUG"


def test_invalid_delay(monkeypatch):
    monkeypatch.setenv("STOREFRONT_PAYMENT_DELAY", "soon")
    with pytest.raises(ValueError, match="STOREFRONT_PAYMENT_DELAY"):
        load_settings()
