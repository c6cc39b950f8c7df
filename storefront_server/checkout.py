"""Checkout orchestration: validate, pay, create order, clear cart."""

import asyncio
import logging
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence

from .cart import CartStore
from .models import (
    CartLineItem,
    CheckoutFailed,
    CheckoutFailure,
    CheckoutForm,
    CheckoutOutcome,
    CheckoutSucceeded,
    FailureKind,
)
from .payment_service import OrderService, PaymentGateway, order_items_from_cart
from .payment_validation import validate_card_number, validate_cvv, validate_expiry_date

logger = logging.getLogger(__name__)

REQUIRED_SHIPPING_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "address",
    "city",
    "postal_code",
)


class CheckoutState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    PROCESSING_PAYMENT = "processing_payment"
    CREATING_ORDER = "creating_order"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def validate_checkout_form(
    form: CheckoutForm, items: Sequence[CartLineItem] = ()
) -> Optional[CheckoutFailure]:
    """
    Check a checkout form, stopping at the first problem.

    Required shipping fields are checked first, then the email format, then
    card number, expiry date and CVV, and finally that the cart has items.

    Returns:
        The first validation failure, or None if the form is acceptable
    """
    for field in REQUIRED_SHIPPING_FIELDS:
        if not getattr(form, field).strip():
            return CheckoutFailure(
                kind=FailureKind.VALIDATION,
                field=field,
                detail="Please fill in all required fields.",
            )

    if "@" not in form.email:
        return CheckoutFailure(
            kind=FailureKind.VALIDATION,
            field="email",
            detail="Please enter a valid email address.",
        )

    if not validate_card_number(form.card_number):
        return CheckoutFailure(
            kind=FailureKind.VALIDATION,
            field="card_number",
            detail="Please enter a valid card number.",
        )

    if not validate_expiry_date(form.expiry_date):
        return CheckoutFailure(
            kind=FailureKind.VALIDATION,
            field="expiry_date",
            detail="Please enter a valid expiry date (MM/YY).",
        )

    if not validate_cvv(form.cvv):
        return CheckoutFailure(
            kind=FailureKind.VALIDATION,
            field="cvv",
            detail="Please enter a valid CVV (3 or 4 digits).",
        )

    if not items:
        return CheckoutFailure(
            kind=FailureKind.VALIDATION,
            field="items",
            detail="Cart is empty",
        )

    return None


class CheckoutOrchestrator:
    """
    Runs one checkout attempt at a time against a cart.

    The attempt moves through VALIDATING, PROCESSING_PAYMENT and
    CREATING_ORDER to SUCCEEDED, or stops in FAILED. Every outcome is
    returned as a value; the cart is only touched (cleared) on success.
    """

    def __init__(
        self,
        cart: CartStore,
        payment_gateway: PaymentGateway,
        order_service: OrderService,
        currency: Optional[str] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            cart: Cart to check out and clear on success
            payment_gateway: Charges the card
            order_service: Records the order once payment succeeded
            currency: Three-letter currency code (defaults to the cart's)
        """
        self.cart = cart
        self.payment_gateway = payment_gateway
        self.order_service = order_service
        self.currency = currency or cart.currency
        self.transitions: list[CheckoutState] = []
        self._state = CheckoutState.IDLE
        self._in_flight = False

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _enter(self, state: CheckoutState) -> None:
        logger.info(f"Checkout: {self._state.value} -> {state.value}")
        self._state = state
        self.transitions.append(state)

    def _fail(self, failure: CheckoutFailure) -> CheckoutFailed:
        self._enter(CheckoutState.FAILED)
        logger.warning(f"Checkout failed ({failure.kind.value}): {failure.detail}")
        return CheckoutFailed(reason=failure)

    async def checkout(
        self, form: CheckoutForm, cancel_event: Optional[asyncio.Event] = None
    ) -> CheckoutOutcome:
        """
        Run one checkout attempt.

        Args:
            form: Shipping and payment details
            cancel_event: When set, the attempt stops before the next collaborator call

        Returns:
            CheckoutSucceeded with the order id, or CheckoutFailed with the reason
        """
        if self._in_flight:
            return CheckoutFailed(
                reason=CheckoutFailure(
                    kind=FailureKind.IN_PROGRESS,
                    detail="A checkout is already in progress",
                )
            )

        self._in_flight = True
        self.transitions = []
        try:
            return await self._run(form, cancel_event)
        finally:
            self._in_flight = False

    async def _run(
        self, form: CheckoutForm, cancel_event: Optional[asyncio.Event]
    ) -> CheckoutOutcome:
        try:
            self._enter(CheckoutState.VALIDATING)
            items = self.cart.snapshot()
            total = sum((item.subtotal for item in items), Decimal("0"))

            failure = validate_checkout_form(form, items)
            if failure is not None:
                return self._fail(failure)

            if cancel_event is not None and cancel_event.is_set():
                return self._fail(
                    CheckoutFailure(kind=FailureKind.CANCELLED, detail="Checkout cancelled")
                )

            self._enter(CheckoutState.PROCESSING_PAYMENT)
            try:
                paid = await self.payment_gateway.process_payment(
                    form.card_number, form.expiry_date, form.cvv, total, self.currency
                )
            except Exception as e:
                logger.error(f"Payment error: {e}")
                return self._fail(
                    CheckoutFailure(kind=FailureKind.PAYMENT, detail=str(e) or "Payment failed")
                )

            if not paid:
                return self._fail(
                    CheckoutFailure(kind=FailureKind.PAYMENT, detail="Payment failed")
                )

            if cancel_event is not None and cancel_event.is_set():
                return self._fail(
                    CheckoutFailure(
                        kind=FailureKind.CANCELLED,
                        detail="Checkout cancelled after payment was taken; no order was created",
                        payment_captured=True,
                    )
                )

            self._enter(CheckoutState.CREATING_ORDER)
            try:
                receipt = await self.order_service.create_order(
                    order_items_from_cart(items),
                    form.shipping(),
                    form.payment(total, self.currency),
                    total,
                )
            except Exception as e:
                logger.error(f"Order creation error after successful payment: {e}")
                return self._fail(
                    CheckoutFailure(
                        kind=FailureKind.ORDER_CREATION,
                        detail=(
                            f"{str(e) or 'Order creation failed'}. Payment may have been taken "
                            "but no order was confirmed."
                        ),
                        payment_captured=True,
                    )
                )

            self.cart.clear()
            self._enter(CheckoutState.SUCCEEDED)
            return CheckoutSucceeded(
                order_id=receipt.order_id,
                timestamp=receipt.timestamp,
            )

        except Exception as e:
            logger.error(f"Unexpected checkout error: {e}", exc_info=True)
            return self._fail(
                CheckoutFailure(
                    kind=FailureKind.UNEXPECTED,
                    detail=f"There was a problem processing your order: {e}",
                    payment_captured=self._state is CheckoutState.CREATING_ORDER,
                )
            )
