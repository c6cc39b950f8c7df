"""MCP Server for the storefront cart and checkout."""

import asyncio
import json
import logging
from typing import Any, Optional

from mcp.server import Server
from mcp.types import Resource, TextContent, Tool
from pydantic import AnyUrl, ValidationError

from .config import load_settings
from .models import (
    Cart,
    CartLineItem,
    CheckoutFailed,
    CheckoutForm,
    CheckoutOutcome,
    Order,
    Product,
    format_price,
)
from .payment_validation import (
    format_card_number,
    format_expiry_date,
    validate_card_number,
    validate_cvv,
    validate_expiry_date,
)
from .session import StorefrontSession

logger = logging.getLogger("storefront-mcp-server")

# Initialize server
app = Server("storefront-mcp-server")

# Global state
session: StorefrontSession


def format_cart(cart: Cart) -> str:
    """Render the cart as readable text."""
    if not cart.items:
        return "Your cart is empty"

    lines = [f"Shopping Cart ({cart.total_item_count} items):\n"]
    for i, item in enumerate(cart.items, 1):
        lines.append(f"\n{i}. {item.title}")
        lines.append(f"   Product ID: {item.id}")
        if item.variant_label:
            lines.append(f"   Variant: {item.variant_label}")
        lines.append(f"   Price: {format_price(item.unit_price, cart.currency)}")
        lines.append(f"   Quantity: {item.quantity}")
        lines.append(f"   Subtotal: {format_price(item.subtotal, cart.currency)}")

    lines.append(f"\n{'=' * 50}")
    lines.append(f"Total: {format_price(cart.total_price, cart.currency)}")
    return "\n".join(lines)


def format_products(products: list[Product], currency: str) -> str:
    lines = [f"Found {len(products)} product(s):\n"]
    for i, product in enumerate(products, 1):
        lines.append(f"\n{i}. {product.title}")
        lines.append(f"   ID: {product.id}")
        if product.price is not None:
            lines.append(f"   Price: {format_price(product.price, currency)}")
        else:
            lines.append("   Price: unavailable")
        if product.images:
            lines.append(f"   Image: {product.images[0]}")
    return "\n".join(lines)


def format_order(order: Order) -> str:
    lines = [f"Order #{order.id}"]
    lines.append(f"Status: {order.status}")
    lines.append(f"Date: {order.created_at.strftime('%Y-%m-%d %H:%M')}")
    lines.append(f"Total: {format_price(order.total, order.currency)}")
    if order.items:
        lines.append(f"Items ({len(order.items)}):")
        for item in order.items:
            lines.append(
                f"  - {item.title} x{item.quantity} ({format_price(item.subtotal, order.currency)})"
            )
    shipping = order.shipping
    lines.append(f"Ship to: {shipping.first_name} {shipping.last_name}, {shipping.address}, "
                 f"{shipping.city} {shipping.postal_code}")
    if order.masked_card:
        lines.append(f"Paid with card: {order.masked_card}")
    return "\n".join(lines)


def format_outcome(outcome: CheckoutOutcome) -> str:
    if isinstance(outcome, CheckoutFailed):
        reason = outcome.reason
        text = f"Checkout failed ({reason.kind.value}): {reason.detail}"
        if reason.field:
            text += f"\nField: {reason.field}"
        if reason.payment_captured:
            text += "\nWARNING: payment may have been taken without a confirmed order. Do not retry blindly."
        return text
    return (
        f"Order Successful! Your order number is {outcome.order_id}.\n"
        f"Placed at {outcome.timestamp.isoformat()}"
    )


@app.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return [
        Resource(
            uri=AnyUrl("storefront://cart"),
            name="Shopping Cart",
            mimeType="application/json",
            description="Current shopping cart contents",
        ),
        Resource(
            uri=AnyUrl("storefront://orders"),
            name="Orders",
            mimeType="application/json",
            description="Orders placed in this session",
        ),
    ]


@app.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource by URI."""
    uri_str = str(uri)

    if uri_str == "storefront://cart":
        return session.cart.view().model_dump_json(indent=2)

    elif uri_str == "storefront://orders":
        orders = session.order_service.list_orders()
        return json.dumps([order.model_dump(mode="json") for order in orders], indent=2)

    raise ValueError(f"Unknown resource: {uri}")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="storefront_list_products",
            description="List catalog products, one page at a time (complete listings first, highest price first)",
            inputSchema={
                "type": "object",
                "properties": {
                    "after": {
                        "type": "string",
                        "description": "Cursor from the previous page (optional)",
                    },
                },
            },
        ),
        Tool(
            name="storefront_get_product",
            description="Get product details including images and variants",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string", "description": "Product ID"},
                },
                "required": ["product_id"],
            },
        ),
        Tool(
            name="storefront_add_to_cart",
            description=(
                "Add a product to the shopping cart. Give a catalog product_id, or a full "
                "line item (id, title, unit_price) when the catalog is not configured."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string", "description": "Catalog product ID"},
                    "id": {"type": "string", "description": "Line item ID (manual entry)"},
                    "title": {"type": "string", "description": "Line item title (manual entry)"},
                    "unit_price": {"type": "string", "description": "Unit price as a decimal string"},
                    "image_ref": {"type": "string", "description": "Image URL (optional)"},
                    "variant": {"type": "string", "description": "Selected variant (optional)"},
                    "quantity": {
                        "type": "integer",
                        "description": "Quantity to add (default: 1)",
                        "default": 1,
                    },
                },
            },
        ),
        Tool(
            name="storefront_remove_from_cart",
            description="Remove a product from the shopping cart",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string", "description": "Product ID to remove"},
                },
                "required": ["product_id"],
            },
        ),
        Tool(
            name="storefront_update_cart_quantity",
            description="Set the quantity of a cart item; zero or less removes it",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string", "description": "Product ID to update"},
                    "quantity": {"type": "integer", "description": "New quantity"},
                },
                "required": ["product_id", "quantity"],
            },
        ),
        Tool(
            name="storefront_get_cart",
            description="Get current shopping cart contents with all items and total",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_checkout",
            description="Validate shipping and payment details, pay, and place the order",
            inputSchema={
                "type": "object",
                "properties": {
                    "first_name": {"type": "string"},
                    "last_name": {"type": "string"},
                    "email": {"type": "string"},
                    "phone": {"type": "string"},
                    "address": {"type": "string"},
                    "city": {"type": "string"},
                    "postal_code": {"type": "string"},
                    "card_number": {"type": "string"},
                    "expiry_date": {"type": "string", "description": "MM/YY"},
                    "cvv": {"type": "string"},
                },
                "required": [
                    "first_name", "last_name", "email", "phone", "address", "city",
                    "postal_code", "card_number", "expiry_date", "cvv",
                ],
            },
        ),
        Tool(
            name="storefront_validate_card",
            description="Check card number (Luhn), expiry date (MM/YY) and CVV without paying",
            inputSchema={
                "type": "object",
                "properties": {
                    "card_number": {"type": "string"},
                    "expiry_date": {"type": "string"},
                    "cvv": {"type": "string"},
                },
            },
        ),
        Tool(
            name="storefront_format_card_input",
            description="Format raw card number and expiry input for display",
            inputSchema={
                "type": "object",
                "properties": {
                    "card_number": {"type": "string"},
                    "expiry_date": {"type": "string"},
                },
            },
        ),
        Tool(
            name="storefront_get_orders",
            description="List orders placed in this session, newest first",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_get_order_details",
            description="Get detailed information for a specific order",
            inputSchema={
                "type": "object",
                "properties": {
                    "order_id": {"type": "string", "description": "Order ID"},
                },
                "required": ["order_id"],
            },
        ),
    ]


def _add_manual_item(arguments: dict[str, Any]) -> Optional[CartLineItem]:
    item = CartLineItem(
        id=arguments["id"],
        title=arguments.get("title", arguments["id"]),
        unit_price=arguments["unit_price"],
        image_ref=arguments.get("image_ref", ""),
        quantity=arguments.get("quantity", 1),
        variant_label=arguments.get("variant"),
    )
    return session.cart.add_to_cart(item)


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    currency = session.settings.currency
    try:
        if name == "storefront_list_products":
            page = await session.catalog.list_products(after=arguments.get("after"))

            if not page.products:
                return [TextContent(type="text", text="No products found")]

            text = format_products(page.products, currency)
            if page.has_next_page:
                text += f"\n\nMore products available. Next cursor: {page.end_cursor}"
            return [TextContent(type="text", text=text)]

        elif name == "storefront_get_product":
            product_id = arguments["product_id"]
            product = await session.catalog.get_product(product_id)

            if product is None:
                return [TextContent(type="text", text=f"Product {product_id} not found")]

            lines = [product.title, f"ID: {product.id}"]
            if product.price is not None:
                lines.append(f"Price: {format_price(product.price, currency)}")
            if product.description:
                lines.append(f"\n{product.description}")
            if len(product.variants) > 1:
                lines.append("\nAvailable Variants:")
                for variant in product.variants:
                    price = format_price(variant.price, currency) if variant.price is not None else "n/a"
                    lines.append(f"  - {variant.title} ({price})")
            return [TextContent(type="text", text="\n".join(lines))]

        elif name == "storefront_add_to_cart":
            quantity = arguments.get("quantity", 1)
            if arguments.get("product_id"):
                stored = await session.add_product(
                    arguments["product_id"], quantity, arguments.get("variant")
                )
            elif arguments.get("id") and arguments.get("unit_price") is not None:
                stored = _add_manual_item(arguments)
            else:
                return [
                    TextContent(
                        type="text",
                        text="Error: Provide product_id, or id and unit_price for a manual item.",
                    )
                ]

            if stored is None:
                return [TextContent(type="text", text="Item removed from cart")]
            return [
                TextContent(
                    type="text",
                    text=f"Product added to cart: {stored.title} (quantity in cart: {stored.quantity})",
                )
            ]

        elif name == "storefront_remove_from_cart":
            product_id = arguments["product_id"]
            session.cart.remove_from_cart(product_id)
            return [TextContent(type="text", text=f"Removed product {product_id} from cart")]

        elif name == "storefront_update_cart_quantity":
            product_id = arguments["product_id"]
            quantity = int(arguments["quantity"])
            session.cart.update_quantity(product_id, quantity)

            if quantity <= 0:
                return [TextContent(type="text", text=f"Removed product {product_id} from cart")]
            return [
                TextContent(
                    type="text",
                    text=f"Updated product {product_id} to quantity {quantity}",
                )
            ]

        elif name == "storefront_get_cart":
            return [TextContent(type="text", text=format_cart(session.cart.view()))]

        elif name == "storefront_checkout":
            form = CheckoutForm.model_validate(arguments)
            outcome = await session.checkout(form)
            return [TextContent(type="text", text=format_outcome(outcome))]

        elif name == "storefront_validate_card":
            checks = {
                "card_number": validate_card_number(arguments.get("card_number", "")),
                "expiry_date": validate_expiry_date(arguments.get("expiry_date", "")),
                "cvv": validate_cvv(arguments.get("cvv", "")),
            }
            lines = [f"{field}: {'valid' if ok else 'invalid'}" for field, ok in checks.items()]
            return [TextContent(type="text", text="\n".join(lines))]

        elif name == "storefront_format_card_input":
            lines = []
            if "card_number" in arguments:
                lines.append(f"card_number: {format_card_number(arguments['card_number'])}")
            if "expiry_date" in arguments:
                lines.append(f"expiry_date: {format_expiry_date(arguments['expiry_date'])}")
            return [TextContent(type="text", text="\n".join(lines) or "Nothing to format")]

        elif name == "storefront_get_orders":
            orders = session.order_service.list_orders()

            if not orders:
                return [TextContent(type="text", text="No orders found")]

            result_lines = [f"Found {len(orders)} order(s):"]
            for order in orders:
                result_lines.append("")
                result_lines.append(format_order(order))
            return [TextContent(type="text", text="\n".join(result_lines))]

        elif name == "storefront_get_order_details":
            order_id = arguments["order_id"]
            order = session.order_service.get_order(order_id)

            if order is None:
                return [TextContent(type="text", text=f"Order {order_id} not found")]
            return [TextContent(type="text", text=format_order(order))]

        else:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

    except ValidationError as e:
        logger.warning(f"Invalid arguments for tool {name}: {e}")
        return [TextContent(type="text", text=f"Error: invalid arguments: {e}")]
    except Exception as e:
        logger.error(f"Error executing tool {name}: {e}", exc_info=True)
        return [TextContent(type="text", text=f"Error: {str(e)}")]


async def main() -> None:
    """Main entry point for the MCP server."""
    global session

    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    session = StorefrontSession(settings)

    logger.info("Starting Storefront MCP Server...")

    from mcp.server.stdio import stdio_server

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )
    finally:
        await session.close()


if __name__ == "__main__":
    asyncio.run(main())
