"""Payment gateway and order service collaborators.

Both are consumed through the ``PaymentGateway`` / ``OrderService`` protocols.
The mock implementations simulate gateway latency; a network-backed gateway
can replace them behind the same call signatures.
"""

import asyncio
import logging
import secrets
import string
from datetime import datetime, timezone
from decimal import Decimal
from threading import RLock
from typing import Callable, Optional, Protocol, Sequence

from .models import CartLineItem, Order, OrderItem, OrderReceipt, PaymentInfo, ShippingInfo
from .payment_validation import (
    clean_card_number,
    mask_card_number,
    validate_card_number,
    validate_cvv,
    validate_expiry_date,
)

logger = logging.getLogger(__name__)

_ORDER_ID_ALPHABET = string.digits + string.ascii_lowercase


class PaymentError(Exception):
    """The payment gateway rejected or failed to process a payment."""


class OrderCreationError(Exception):
    """The order service failed to record an order."""


class PaymentGateway(Protocol):
    async def process_payment(
        self,
        card_number: str,
        expiry_date: str,
        cvv: str,
        amount: Decimal,
        currency: str,
    ) -> bool:
        ...


class OrderService(Protocol):
    async def create_order(
        self,
        items: Sequence[OrderItem],
        shipping: ShippingInfo,
        payment: PaymentInfo,
        total: Decimal,
    ) -> OrderReceipt:
        ...


def generate_order_id() -> str:
    """Random order id such as ``ORD-k3j9x0a2b``."""
    return "ORD-" + "".join(secrets.choice(_ORDER_ID_ALPHABET) for _ in range(9))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def order_items_from_cart(items: Sequence[CartLineItem]) -> list[OrderItem]:
    """Convert cart line items to order items."""
    return [
        OrderItem(id=item.id, title=item.title, unit_price=item.unit_price, quantity=item.quantity)
        for item in items
    ]


class MockPaymentGateway:
    """Payment gateway stand-in that approves after a delay."""

    def __init__(self, delay: float = 2.0, approve: bool = True) -> None:
        """
        Initialize the mock gateway.

        Args:
            delay: Simulated gateway latency in seconds
            approve: Value returned for a well-formed card
        """
        self.delay = delay
        self.approve = approve
        self.calls: list[PaymentInfo] = []

    async def process_payment(
        self,
        card_number: str,
        expiry_date: str,
        cvv: str,
        amount: Decimal,
        currency: str,
    ) -> bool:
        """
        Simulate charging a card.

        Raises:
            PaymentError: If the card details are malformed
        """
        self.calls.append(
            PaymentInfo(
                card_number=card_number,
                expiry_date=expiry_date,
                cvv=cvv,
                amount=amount,
                currency=currency,
            )
        )

        if not validate_card_number(card_number):
            raise PaymentError("Invalid card number")
        if not validate_expiry_date(expiry_date):
            raise PaymentError("Invalid expiry date")
        if not validate_cvv(cvv):
            raise PaymentError("Invalid CVV")

        logger.info(f"Processing payment of {amount} {currency}")
        await asyncio.sleep(self.delay)
        return self.approve


class MockOrderService:
    """Order service stand-in that keeps orders in memory."""

    def __init__(
        self,
        delay: float = 2.0,
        id_generator: Callable[[], str] = generate_order_id,
        clock: Callable[[], datetime] = utc_now,
        fail_with: Optional[str] = None,
        currency: str = "ZAR",
    ) -> None:
        """
        Initialize the mock order service.

        Args:
            delay: Simulated latency in seconds
            id_generator: Produces order ids
            clock: Produces order timestamps
            fail_with: If set, every create_order raises OrderCreationError with this message
            currency: Currency recorded on orders
        """
        self.delay = delay
        self.id_generator = id_generator
        self.clock = clock
        self.fail_with = fail_with
        self.currency = currency
        self._lock = RLock()
        self._orders: dict[str, Order] = {}

    async def create_order(
        self,
        items: Sequence[OrderItem],
        shipping: ShippingInfo,
        payment: PaymentInfo,
        total: Decimal,
    ) -> OrderReceipt:
        """
        Record an order.

        Raises:
            OrderCreationError: If the service is configured to fail
        """
        await asyncio.sleep(self.delay)

        if self.fail_with is not None:
            raise OrderCreationError(self.fail_with)

        order_id = self.id_generator()
        created_at = self.clock()
        card = clean_card_number(payment.card_number)
        order = Order(
            id=order_id,
            status="completed",
            created_at=created_at,
            total=total,
            currency=payment.currency or self.currency,
            items=list(items),
            shipping=shipping,
            card_last4=card[-4:] if card else None,
            masked_card=mask_card_number(card) if card else None,
        )
        with self._lock:
            self._orders[order_id] = order

        logger.info(f"Order {order_id} created with {len(order.items)} item(s)")
        return OrderReceipt(order_id=order_id, status="success", timestamp=created_at)

    def list_orders(self) -> list[Order]:
        """All recorded orders, newest first."""
        with self._lock:
            return sorted(self._orders.values(), key=lambda o: o.created_at, reverse=True)

    def get_order(self, order_id: str) -> Optional[Order]:
        with self._lock:
            return self._orders.get(order_id)
