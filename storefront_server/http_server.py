"""HTTP server for the storefront cart and checkout."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from .catalog_client import CatalogError
from .config import load_settings
from .models import CartLineItem, CheckoutForm, CheckoutOutcome
from .payment_validation import (
    format_card_number,
    format_expiry_date,
    validate_card_number,
    validate_cvv,
    validate_expiry_date,
)
from .session import CatalogNotConfigured, StorefrontSession

logger = logging.getLogger("storefront-http-server")

# Global state
session: Optional[StorefrontSession] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    global session

    # Startup
    logger.info("Starting Storefront HTTP Server...")
    if session is None:
        session = StorefrontSession(load_settings())

    yield

    # Shutdown
    logger.info("Shutting down Storefront HTTP Server...")
    await session.close()


app = FastAPI(
    title="Storefront MCP Server",
    description="HTTP API for browsing products, managing a cart and checking out",
    version="0.1.0",
    lifespan=lifespan,
)


def get_session() -> StorefrontSession:
    if session is None:
        raise HTTPException(status_code=503, detail="Session not initialized")
    return session


# Request/Response Models
class AddToCartRequest(BaseModel):
    product_id: Optional[str] = None
    item: Optional[CartLineItem] = None
    quantity: Optional[int] = None
    variant: Optional[str] = None


class RemoveFromCartRequest(BaseModel):
    product_id: str


class UpdateQuantityRequest(BaseModel):
    product_id: str
    quantity: int


class CardRequest(BaseModel):
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Storefront MCP Server",
        "version": "0.1.0",
        "description": "HTTP API for browsing products, managing a cart and checking out",
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "products": {"list": "GET /products", "get": "GET /products/{id}"},
            "cart": {
                "get": "GET /cart",
                "add": "POST /cart/add",
                "remove": "POST /cart/remove",
                "update": "POST /cart/update",
            },
            "checkout": "POST /checkout",
            "payment": {"validate": "POST /payment/validate", "format": "POST /payment/format"},
            "orders": {"list": "GET /orders", "get": "GET /orders/{id}"},
        },
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    current = get_session()
    return {
        "status": "healthy",
        "catalog_configured": current.settings.catalog_configured,
        "checkout_in_progress": current.orchestrator.in_flight,
    }


# Product endpoints
@app.get("/products")
async def list_products(after: Optional[str] = None):
    """List one page of catalog products."""
    try:
        page = await get_session().catalog.list_products(after=after)
        return page.model_dump(mode="json")
    except CatalogNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except CatalogError as e:
        logger.error(f"Product listing error: {e}")
        raise HTTPException(status_code=502, detail=str(e))


@app.get("/products/{product_id:path}")
async def get_product(product_id: str):
    """Get product details."""
    try:
        product = await get_session().catalog.get_product(product_id)
    except CatalogNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except CatalogError as e:
        logger.error(f"Product detail error: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    return product.model_dump(mode="json")


# Cart endpoints
@app.get("/cart")
async def get_cart():
    """Get current shopping cart."""
    return get_session().cart.view().model_dump(mode="json")


@app.post("/cart/add")
async def add_to_cart(request: AddToCartRequest):
    """Add a product or a manual line item to the cart."""
    current = get_session()
    try:
        if request.item is not None:
            item = request.item
            if request.variant is not None:
                item = item.model_copy(update={"variant_label": request.variant})
            stored = current.cart.add_to_cart(item, quantity=request.quantity)
        elif request.product_id:
            quantity = 1 if request.quantity is None else request.quantity
            stored = await current.add_product(request.product_id, quantity, request.variant)
        else:
            raise HTTPException(status_code=400, detail="Either product_id or item must be provided")
    except HTTPException:
        raise
    except CatalogNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]) if e.args else "Product not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Add to cart error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "success": True,
        "item": stored.model_dump(mode="json") if stored else None,
        "cart": current.cart.view().model_dump(mode="json"),
    }


@app.post("/cart/remove")
async def remove_from_cart(request: RemoveFromCartRequest):
    """Remove a product from the cart."""
    current = get_session()
    current.cart.remove_from_cart(request.product_id)
    return {"success": True, "cart": current.cart.view().model_dump(mode="json")}


@app.post("/cart/update")
async def update_quantity(request: UpdateQuantityRequest):
    """Set the quantity of a cart item; zero or less removes it."""
    current = get_session()
    current.cart.update_quantity(request.product_id, request.quantity)
    return {"success": True, "cart": current.cart.view().model_dump(mode="json")}


# Checkout endpoints
@app.post("/checkout")
async def checkout(form: CheckoutForm) -> CheckoutOutcome:
    """Run one checkout attempt. Failures are returned in the body, not as HTTP errors."""
    return await get_session().checkout(form)


@app.post("/payment/validate")
async def validate_payment(request: CardRequest):
    """Validate card details without paying."""
    return {
        "card_number": validate_card_number(request.card_number),
        "expiry_date": validate_expiry_date(request.expiry_date),
        "cvv": validate_cvv(request.cvv),
    }


@app.post("/payment/format")
async def format_payment(request: CardRequest):
    """Format raw card input for display."""
    return {
        "card_number": format_card_number(request.card_number),
        "expiry_date": format_expiry_date(request.expiry_date),
    }


# Order endpoints
@app.get("/orders")
async def get_orders():
    """List orders placed in this session."""
    orders = get_session().order_service.list_orders()
    return {
        "count": len(orders),
        "orders": [order.model_dump(mode="json") for order in orders],
    }


@app.get("/orders/{order_id}")
async def get_order(order_id: str):
    """Get one order."""
    order = get_session().order_service.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return order.model_dump(mode="json")


def run_http_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the HTTP server."""
    import uvicorn

    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run_http_server()
