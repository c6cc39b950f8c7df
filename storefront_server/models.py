"""Data models for storefront entities."""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def to_decimal(value: object) -> Decimal:
    """Coerce a price given as str/int/float/Decimal to an exact Decimal."""
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal("0")
    # str() first so floats keep their shortest repr instead of binary noise
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid price: {value!r}") from None


class StorefrontModel(BaseModel):
    """Base model accepting both snake_case and camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProductVariant(StorefrontModel):
    """A purchasable variant of a catalog product."""

    title: Optional[str] = Field(None, description="Variant title, e.g. a size")
    price: Optional[Decimal] = Field(None, description="Variant price")
    available_for_sale: bool = Field(default=True, description="Variant availability")


class Product(StorefrontModel):
    """Represents a product from the commerce catalog."""

    id: str = Field(description="Product ID")
    title: str = Field(description="Product title")
    description: Optional[str] = Field(None, description="Product description")
    tags: list[str] = Field(default_factory=list, description="Product tags")
    images: list[str] = Field(default_factory=list, description="Image URLs")
    variants: list[ProductVariant] = Field(default_factory=list, description="Variants")

    @property
    def price(self) -> Optional[Decimal]:
        """Price of the first variant, if any."""
        if not self.variants:
            return None
        return self.variants[0].price

    @property
    def is_complete(self) -> bool:
        """A product is complete when it has an image and a priced first variant."""
        return bool(self.images) and bool(self.variants) and self.variants[0].price is not None

    def to_line_item(self, variant_title: Optional[str] = None, quantity: int = 1) -> "CartLineItem":
        """
        Build a cart line item from this product.

        Args:
            variant_title: Selected variant label, if any
            quantity: Quantity to put in the cart

        Raises:
            ValueError: If the product has no variant to price it with
        """
        if not self.variants or self.variants[0].price is None:
            raise ValueError("No variant available")
        return CartLineItem(
            id=self.id,
            title=self.title,
            unit_price=self.variants[0].price,
            image_ref=self.images[0] if self.images else "",
            quantity=quantity,
            variant_label=variant_title,
        )


class ProductPage(BaseModel):
    """One page of catalog results."""

    products: list[Product] = Field(default_factory=list)
    has_next_page: bool = False
    end_cursor: Optional[str] = None


class CartLineItem(StorefrontModel):
    """Represents one product-and-variant entry in the shopping cart."""

    id: str = Field(description="Stable product identifier")
    title: str = Field(description="Display name")
    unit_price: Decimal = Field(ge=0, description="Price of one unit")
    image_ref: str = Field(default="", description="Image reference")
    quantity: int = Field(default=1, ge=1, description="Quantity of the product")
    variant_label: Optional[str] = Field(None, description="Selected variant")

    @field_validator("unit_price", mode="before")
    @classmethod
    def _coerce_price(cls, value: object) -> Decimal:
        return to_decimal(value)

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class Cart(BaseModel):
    """Read-only view of the shopping cart."""

    items: list[CartLineItem] = Field(default_factory=list, description="Cart items")
    total_price: Decimal = Field(default=Decimal("0"), description="Total cart value")
    total_item_count: int = Field(default=0, description="Total number of units")
    currency: str = Field(default="ZAR", description="Cart currency")


class ShippingInfo(StorefrontModel):
    """Shipping details entered at checkout."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    postal_code: str = ""


class PaymentInfo(StorefrontModel):
    """Payment details entered at checkout."""

    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""
    amount: Decimal = Decimal("0")
    currency: str = "ZAR"


class CheckoutForm(ShippingInfo):
    """Shipping and payment form for one checkout attempt."""

    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""

    def shipping(self) -> ShippingInfo:
        return ShippingInfo(**self.model_dump(include=set(ShippingInfo.model_fields)))

    def payment(self, amount: Decimal, currency: str) -> PaymentInfo:
        return PaymentInfo(
            card_number=self.card_number,
            expiry_date=self.expiry_date,
            cvv=self.cvv,
            amount=amount,
            currency=currency,
        )


class OrderItem(StorefrontModel):
    """Represents an item in an order."""

    id: str
    title: str
    unit_price: Decimal
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


OrderStatus = Literal["completed", "processing", "cancelled"]


class Order(StorefrontModel):
    """Represents a recorded order."""

    id: str = Field(description="Order ID")
    status: OrderStatus = Field(description="Order status")
    created_at: datetime = Field(description="Order creation timestamp")
    total: Decimal = Field(description="Order total value")
    currency: str = Field(default="ZAR")
    items: list[OrderItem] = Field(default_factory=list, description="Order items")
    shipping: ShippingInfo = Field(description="Shipping details")
    card_last4: Optional[str] = Field(None, description="Last four card digits")
    masked_card: Optional[str] = Field(None, description="Masked card number")


class OrderReceipt(StorefrontModel):
    """Result of creating an order."""

    order_id: str
    status: str
    timestamp: datetime


class FailureKind(str, Enum):
    """Why a checkout attempt failed."""

    VALIDATION = "validation"
    PAYMENT = "payment"
    ORDER_CREATION = "order_creation"
    CANCELLED = "cancelled"
    IN_PROGRESS = "in_progress"
    UNEXPECTED = "unexpected"


class CheckoutFailure(BaseModel):
    """Reason attached to a failed checkout."""

    kind: FailureKind
    detail: str
    field: Optional[str] = Field(None, description="Offending form field (validation only)")
    payment_captured: bool = Field(
        default=False,
        description="Payment was reported successful before the failure; money may have moved",
    )


class CheckoutSucceeded(BaseModel):
    """Terminal successful checkout."""

    status: Literal["succeeded"] = "succeeded"
    order_id: str
    timestamp: datetime


class CheckoutFailed(BaseModel):
    """Terminal failed checkout."""

    status: Literal["failed"] = "failed"
    reason: CheckoutFailure


CheckoutOutcome = Union[CheckoutSucceeded, CheckoutFailed]


CURRENCY_SYMBOLS = {"ZAR": "R"}


def format_price(amount: Decimal, currency: str = "ZAR") -> str:
    """Render an amount for display, e.g. ``R 1 299.99``."""
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    grouped = f"{to_decimal(amount):,.2f}".replace(",", " ")
    return f"{symbol} {grouped}"
