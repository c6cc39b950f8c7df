"""In-memory shopping cart."""

import logging
from decimal import Decimal
from threading import RLock
from typing import Optional

from .models import Cart, CartLineItem

logger = logging.getLogger(__name__)


class CartStore:
    """
    Holds the cart line items for one session.

    Line items are keyed by product id; adding an id that is already in the
    cart merges into the existing line. Totals are derived on every read.
    Safe to share between tool handlers and an in-flight checkout.
    """

    def __init__(self, currency: str = "ZAR") -> None:
        """
        Initialize an empty cart.

        Args:
            currency: Currency all unit prices are expressed in
        """
        self.currency = currency
        self._lock = RLock()
        self._items: dict[str, CartLineItem] = {}

    def add_to_cart(self, item: CartLineItem, quantity: Optional[int] = None) -> Optional[CartLineItem]:
        """
        Add an item, merging with an existing line of the same id.

        Args:
            item: Line item to add
            quantity: Units to add (defaults to the item's own quantity)

        Returns:
            The stored line item after the merge, or None if the resulting
            quantity dropped to zero and the line was removed
        """
        qty = item.quantity if quantity is None else quantity
        with self._lock:
            existing = self._items.get(item.id)
            new_qty = qty if existing is None else existing.quantity + qty
            if new_qty <= 0:
                self.remove_from_cart(item.id)
                return None

            if existing is None:
                stored = item.model_copy(update={"quantity": new_qty})
                logger.debug(f"Cart add: {item.id} x{new_qty}")
            else:
                update: dict = {"quantity": new_qty}
                if item.variant_label is not None:
                    update["variant_label"] = item.variant_label
                stored = existing.model_copy(update=update)
                logger.debug(f"Cart merge: {item.id} -> x{stored.quantity}")
            self._items[item.id] = stored
            return stored.model_copy()

    def remove_from_cart(self, item_id: str) -> None:
        """Remove a line item; absent ids are ignored."""
        with self._lock:
            if self._items.pop(item_id, None) is not None:
                logger.debug(f"Cart remove: {item_id}")

    def update_quantity(self, item_id: str, quantity: int) -> None:
        """
        Set the quantity of a line item.

        A quantity of zero or less removes the line. Absent ids are ignored.
        """
        with self._lock:
            if quantity <= 0:
                self.remove_from_cart(item_id)
                return
            existing = self._items.get(item_id)
            if existing is None:
                return
            self._items[item_id] = existing.model_copy(update={"quantity": quantity})
            logger.debug(f"Cart update: {item_id} -> x{quantity}")

    def clear(self) -> None:
        """Empty the cart."""
        with self._lock:
            self._items.clear()
            logger.debug("Cart cleared")

    def get(self, item_id: str) -> Optional[CartLineItem]:
        with self._lock:
            item = self._items.get(item_id)
            return item.model_copy() if item else None

    def items(self) -> list[CartLineItem]:
        """Copies of the current line items in insertion order."""
        with self._lock:
            return [item.model_copy() for item in self._items.values()]

    def snapshot(self) -> tuple[CartLineItem, ...]:
        """Point-in-time copy of the cart, unaffected by later mutations."""
        return tuple(self.items())

    @property
    def total_price(self) -> Decimal:
        with self._lock:
            return sum((item.subtotal for item in self._items.values()), Decimal("0"))

    @property
    def total_item_count(self) -> int:
        with self._lock:
            return sum(item.quantity for item in self._items.values())

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return not self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def view(self) -> Cart:
        """Materialize the cart with its derived totals."""
        with self._lock:
            return Cart(
                items=self.items(),
                total_price=self.total_price,
                total_item_count=self.total_item_count,
                currency=self.currency,
            )
