"""
Tests for the MCP tool handlers.
"""

import httpx
import pytest
from pydantic import AnyUrl

from storefront_server import server
from storefront_server.catalog_client import ShopifyCatalogClient
from storefront_server.session import StorefrontSession

from .conftest import VALID_CARD


def catalog_handler(request):
    product = {
        "id": "gid://shopify/Product/1",
        "title": "Old Skool",
        "description": "Classic skate shoe",
        "images": {"edges": [{"node": {"url": "https://cdn.example.com/1.png"}}]},
        "variants": {"edges": [{"node": {"title": "UK 8", "price": {"amount": "1299.99"}}}]},
    }
    return httpx.Response(200, json={"data": {"product": product}})


@pytest.fixture
def session(settings, gateway, order_service):
    catalog = ShopifyCatalogClient(
        "test-store.myshopify.com", "token", transport=httpx.MockTransport(catalog_handler)
    )
    server.session = StorefrontSession(settings, gateway, order_service, catalog=catalog)
    return server.session


async def call(name, arguments=None):
    result = await server.call_tool(name, arguments or {})
    return result[0].text


@pytest.mark.asyncio
async def test_list_tools():
    tools = await server.list_tools()
    names = {tool.name for tool in tools}
    assert {"storefront_add_to_cart", "storefront_checkout", "storefront_get_cart"} <= names


@pytest.mark.asyncio
async def test_empty_cart(session):
    assert await call("storefront_get_cart") == "Your cart is empty"


@pytest.mark.asyncio
async def test_add_from_catalog_and_view_cart(session):
    text = await call("storefront_add_to_cart", {"product_id": "gid://shopify/Product/1", "quantity": 2})
    assert "quantity in cart: 2" in text

    cart_text = await call("storefront_get_cart")
    assert "Old Skool" in cart_text
    assert "Total: R 2 599.98" in cart_text
    assert session.cart.get("gid://shopify/Product/1").variant_label is None


@pytest.mark.asyncio
async def test_add_manual_item_update_and_remove(session):
    await call("storefront_add_to_cart", {"id": "p1", "title": "Socks", "unit_price": "49.99"})
    await call("storefront_update_cart_quantity", {"product_id": "p1", "quantity": 3})
    assert session.cart.get("p1").quantity == 3

    text = await call("storefront_update_cart_quantity", {"product_id": "p1", "quantity": 0})
    assert "Removed" in text
    assert session.cart.is_empty


@pytest.mark.asyncio
async def test_add_manual_item_with_bad_price(session):
    text = await call("storefront_add_to_cart", {"id": "p1", "title": "Socks", "unit_price": "abc"})

    assert text.startswith("Error: invalid arguments")
    assert "Invalid price" in text
    assert session.cart.is_empty


@pytest.mark.asyncio
async def test_add_without_identifiers(session):
    assert (await call("storefront_add_to_cart", {})).startswith("Error:")


@pytest.mark.asyncio
async def test_checkout_tool_success(session, valid_form):
    await call("storefront_add_to_cart", {"id": "p1", "title": "Socks", "unit_price": "49.99"})

    text = await call("storefront_checkout", valid_form.model_dump())

    assert "ORD-test00001" in text
    assert session.cart.is_empty
    orders_text = await call("storefront_get_orders")
    assert "ORD-test00001" in orders_text
    detail = await call("storefront_get_order_details", {"order_id": "ORD-test00001"})
    assert "Socks x1" in detail
    assert "Paid with card: **** **** **** 0366" in detail
    assert VALID_CARD not in detail


@pytest.mark.asyncio
async def test_checkout_tool_validation_failure(session, valid_form):
    await call("storefront_add_to_cart", {"id": "p1", "title": "Socks", "unit_price": "49.99"})
    arguments = valid_form.model_dump()
    arguments["last_name"] = ""

    text = await call("storefront_checkout", arguments)

    assert "Checkout failed (validation)" in text
    assert "Field: last_name" in text
    assert not session.cart.is_empty


@pytest.mark.asyncio
async def test_checkout_tool_accepts_camel_case(session, valid_form):
    await call("storefront_add_to_cart", {"id": "p1", "title": "Socks", "unit_price": "49.99"})
    text = await call("storefront_checkout", valid_form.model_dump(by_alias=True))
    assert "Order Successful" in text


@pytest.mark.asyncio
async def test_validate_and_format_card(session):
    text = await call(
        "storefront_validate_card", {"card_number": VALID_CARD, "expiry_date": "13/99", "cvv": "123"}
    )
    assert "card_number: valid" in text
    assert "expiry_date: invalid" in text
    assert "cvv: valid" in text

    formatted = await call("storefront_format_card_input", {"card_number": VALID_CARD, "expiry_date": "1299"})
    assert "card_number: 4532 0151 1283 0366" in formatted
    assert "expiry_date: 12/99" in formatted


@pytest.mark.asyncio
async def test_unknown_order_and_tool(session):
    assert await call("storefront_get_order_details", {"order_id": "nope"}) == "Order nope not found"
    assert await call("storefront_bogus") == "Unknown tool: storefront_bogus"


@pytest.mark.asyncio
async def test_catalog_not_configured(settings):
    server.session = StorefrontSession(settings)
    text = await call("storefront_list_products")
    assert text.startswith("Error: Catalog not configured")


@pytest.mark.asyncio
async def test_read_cart_resource(session):
    session.cart.add_to_cart(
        server.CartLineItem(id="p1", title="Socks", unit_price="49.99")
    )
    body = await server.read_resource(AnyUrl("storefront://cart"))
    assert '"total_item_count": 1' in body

    with pytest.raises(ValueError):
        await server.read_resource(AnyUrl("storefront://nope"))
