"""Shopify Storefront API catalog client."""

import logging
import time
from decimal import Decimal
from typing import Any, Optional

import httpx

from .models import Product, ProductPage, ProductVariant

logger = logging.getLogger(__name__)

PRODUCTS_PER_PAGE = 20
AVAILABLE_FILTER = "tag:online_stock:available"

PRODUCTS_QUERY = """
query GetProducts($first: Int!, $after: String, $query: String) {
  products(first: $first, after: $after, query: $query) {
    edges {
      node {
        id
        title
        tags
        images(first: 1) { edges { node { url } } }
        variants(first: 1) {
          edges { node { title price { amount } availableForSale } }
        }
      }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""

PRODUCT_QUERY = """
query GetProduct($id: ID!) {
  product(id: $id) {
    id
    title
    description
    images(first: 5) { edges { node { url } } }
    variants(first: 10) {
      edges { node { title price { amount } availableForSale } }
    }
  }
}
"""


class CatalogError(Exception):
    """The catalog API returned an error."""


def sort_products(products: list[Product]) -> list[Product]:
    """
    Order products for listing.

    Complete products (image, variant and price present) come first, then
    incomplete ones; each group is sorted by price, highest first.
    """

    def price(product: Product) -> Decimal:
        return product.price or Decimal("0")

    complete = sorted((p for p in products if p.is_complete), key=price, reverse=True)
    incomplete = sorted((p for p in products if not p.is_complete), key=price, reverse=True)
    return complete + incomplete


def merge_products(existing: list[Product], new: list[Product]) -> list[Product]:
    """Append the products from a new page, skipping ids already listed."""
    seen = {p.id for p in existing}
    return existing + [p for p in new if p.id not in seen]


def parse_product(node: dict[str, Any]) -> Product:
    """Build a Product from a GraphQL product node."""
    images = [edge["node"]["url"] for edge in node.get("images", {}).get("edges", [])]
    variants = []
    for edge in node.get("variants", {}).get("edges", []):
        variant = edge.get("node", {})
        amount = (variant.get("price") or {}).get("amount")
        variants.append(
            ProductVariant(
                title=variant.get("title"),
                price=Decimal(str(amount)) if amount not in (None, "") else None,
                available_for_sale=variant.get("availableForSale", True),
            )
        )
    return Product(
        id=node["id"],
        title=node.get("title", ""),
        description=node.get("description"),
        tags=node.get("tags", []),
        images=images,
        variants=variants,
    )


class ShopifyCatalogClient:
    """Client for the Shopify Storefront GraphQL API."""

    def __init__(
        self,
        store_domain: str,
        access_token: str,
        api_version: str = "2024-01",
        retries: int = 2,
        cache_ttl: float = 5 * 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the catalog client.

        Args:
            store_domain: Store domain, e.g. my-store.myshopify.com
            access_token: Storefront API access token
            api_version: Storefront API version
            retries: Extra attempts per request on transport/HTTP errors
            cache_ttl: Seconds a product page stays cached
            transport: Optional httpx transport (used by tests)
        """
        self.retries = retries
        self.cache_ttl = cache_ttl
        self._cache: dict[tuple[Optional[str], int], tuple[float, ProductPage]] = {}
        self.client = httpx.AsyncClient(
            base_url=f"https://{store_domain}",
            timeout=30.0,
            transport=transport,
            headers={
                "X-Shopify-Storefront-Access-Token": access_token,
                "Content-Type": "application/json",
            },
        )
        self.endpoint = f"/api/{api_version}/graphql.json"

    async def _request(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """POST a GraphQL query, retrying on HTTP errors."""
        attempt = 0
        while True:
            try:
                response = await self.client.post(
                    self.endpoint, json={"query": query, "variables": variables}
                )
                response.raise_for_status()
                break
            except httpx.HTTPError as e:
                if attempt >= self.retries:
                    raise
                attempt += 1
                logger.warning(f"Catalog request failed ({e}), retry {attempt}/{self.retries}")

        payload = response.json()
        if payload.get("errors"):
            messages = "; ".join(err.get("message", "unknown error") for err in payload["errors"])
            raise CatalogError(messages)
        return payload.get("data") or {}

    async def _fetch_page(self, first: int, after: Optional[str], query: Optional[str]) -> ProductPage:
        variables: dict[str, Any] = {"first": first, "after": after}
        if query:
            variables["query"] = query
        data = await self._request(PRODUCTS_QUERY, variables)
        products = data.get("products") or {}
        page_info = products.get("pageInfo") or {}
        return ProductPage(
            products=[parse_product(edge["node"]) for edge in products.get("edges", [])],
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )

    async def list_products(self, after: Optional[str] = None, first: int = PRODUCTS_PER_PAGE) -> ProductPage:
        """
        Fetch one page of products.

        Products tagged as available online are requested first; if that
        fails or yields nothing the unfiltered catalog is used instead.

        Args:
            after: Cursor returned by the previous page
            first: Page size

        Returns:
            The page, with products ordered by sort_products
        """
        key = (after, first)
        self._evict_expired()
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"Catalog cache hit for cursor {after}")
            return cached[1]

        try:
            page = await self._fetch_page(first, after, AVAILABLE_FILTER)
            if not page.products:
                logger.info("No products with the availability tag, listing all products")
                page = await self._fetch_page(first, after, None)
        except (httpx.HTTPError, CatalogError) as e:
            logger.warning(f"Filtered product listing failed ({e}), listing all products")
            try:
                page = await self._fetch_page(first, after, None)
            except (httpx.HTTPError, CatalogError) as fallback_error:
                logger.error(f"Product listing failed: {fallback_error}")
                raise CatalogError("Failed to load products. Please try again.") from fallback_error

        page = page.model_copy(update={"products": sort_products(page.products)})
        self._cache[key] = (time.monotonic(), page)
        return page

    async def get_product(self, product_id: str) -> Optional[Product]:
        """Fetch product details, or None if the product does not exist."""
        data = await self._request(PRODUCT_QUERY, {"id": product_id})
        node = data.get("product")
        if not node:
            return None
        return parse_product(node)

    def _evict_expired(self) -> None:
        now = time.monotonic()
        expired = [
            key for key, (stored_at, _) in self._cache.items() if now - stored_at >= self.cache_ttl
        ]
        for key in expired:
            del self._cache[key]

    def clear_cache(self) -> None:
        self._cache.clear()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
