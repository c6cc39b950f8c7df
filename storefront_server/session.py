"""Per-process storefront session: cart, checkout and collaborators."""

import logging
from typing import Optional

from .cart import CartStore
from .catalog_client import ShopifyCatalogClient
from .checkout import CheckoutOrchestrator
from .config import Settings
from .models import CartLineItem, CheckoutForm, CheckoutOutcome
from .payment_service import MockOrderService, MockPaymentGateway

logger = logging.getLogger(__name__)


class CatalogNotConfigured(Exception):
    """Raised when a catalog operation is requested without a Shopify token."""


class StorefrontSession:
    """Owns the cart for the lifetime of a server process."""

    def __init__(
        self,
        settings: Settings,
        payment_gateway: Optional[MockPaymentGateway] = None,
        order_service: Optional[MockOrderService] = None,
        catalog: Optional[ShopifyCatalogClient] = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            settings: Runtime settings
            payment_gateway: Payment collaborator (mock by default)
            order_service: Order collaborator (mock by default)
            catalog: Catalog client; built from settings when a token is configured
        """
        self.settings = settings
        self.cart = CartStore(currency=settings.currency)
        self.payment_gateway = payment_gateway or MockPaymentGateway(delay=settings.payment_delay)
        self.order_service = order_service or MockOrderService(
            delay=settings.order_delay, currency=settings.currency
        )
        self.orchestrator = CheckoutOrchestrator(
            self.cart, self.payment_gateway, self.order_service, currency=settings.currency
        )

        if catalog is None and settings.catalog_configured:
            catalog = ShopifyCatalogClient(
                settings.shopify_store,
                settings.shopify_token or "",
                api_version=settings.shopify_api_version,
            )
        self._catalog = catalog

    @property
    def catalog(self) -> ShopifyCatalogClient:
        if self._catalog is None:
            raise CatalogNotConfigured(
                "Catalog not configured. Set STOREFRONT_SHOPIFY_TOKEN to browse products."
            )
        return self._catalog

    async def add_product(
        self, product_id: str, quantity: int = 1, variant: Optional[str] = None
    ) -> Optional[CartLineItem]:
        """
        Look up a catalog product and add it to the cart.

        Raises:
            KeyError: If the product does not exist
            ValueError: If the quantity is not positive or the product has no purchasable variant
        """
        if quantity < 1:
            raise ValueError("Quantity must be >= 1")
        product = await self.catalog.get_product(product_id)
        if product is None:
            raise KeyError(f"Product not found: {product_id}")
        logger.info(f"Adding {product_id} x{quantity} to cart from catalog")
        item = product.to_line_item(variant_title=variant, quantity=quantity)
        return self.cart.add_to_cart(item)

    async def checkout(self, form: CheckoutForm) -> CheckoutOutcome:
        return await self.orchestrator.checkout(form)

    async def close(self) -> None:
        if self._catalog is not None:
            await self._catalog.close()
