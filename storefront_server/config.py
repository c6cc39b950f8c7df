"""Settings loaded from environment variables."""

import logging
import os
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Runtime settings for the storefront servers."""

    shopify_store: str = Field(default="vans-sa.myshopify.com", description="Shopify store domain")
    shopify_token: Optional[str] = Field(None, description="Storefront API access token")
    shopify_api_version: str = Field(default="2024-01")
    currency: str = Field(default="ZAR", description="Fixed store currency")
    payment_delay: float = Field(default=2.0, ge=0, description="Simulated payment latency (s)")
    order_delay: float = Field(default=2.0, ge=0, description="Simulated order latency (s)")
    log_level: str = Field(default="INFO")

    @property
    def catalog_configured(self) -> bool:
        return bool(self.shopify_store and self.shopify_token)


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def load_settings() -> Settings:
    """Read settings from STOREFRONT_* environment variables."""
    settings = Settings(
        shopify_store=os.environ.get("STOREFRONT_SHOPIFY_STORE", "vans-sa.myshopify.com"),
        shopify_token=os.environ.get("STOREFRONT_SHOPIFY_TOKEN") or None,
        shopify_api_version=os.environ.get("STOREFRONT_SHOPIFY_API_VERSION", "2024-01"),
        currency=os.environ.get("STOREFRONT_CURRENCY", "ZAR").upper(),
        payment_delay=_float_env("STOREFRONT_PAYMENT_DELAY", 2.0),
        order_delay=_float_env("STOREFRONT_ORDER_DELAY", 2.0),
        log_level=os.environ.get("STOREFRONT_LOG_LEVEL", "INFO").upper(),
    )

    if not settings.catalog_configured:
        logger.warning("No Shopify token found in environment (STOREFRONT_SHOPIFY_TOKEN)")
        logger.warning("Catalog tools will be unavailable; cart and checkout still work")

    return settings
