"""Server-side model of the customer's cart.

The cart itself is persisted client-side; the API receives its items at
checkout and for total previews. This module gives those items one shape
and the add/update/remove semantics the storefront relies on.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from services.shop_service.services.fees import CartTotals, calculate_cart_totals


@dataclass
class CartItem:
    product_id: str
    title: str
    price: Decimal  # BDT
    quantity: int = 1
    original_price_value: Optional[Decimal] = None  # source currency (USD)
    url: str = ""
    image: str = ""
    store: str = ""

    def to_order_item(self) -> dict:
        """Snapshot stored on Order.items."""
        return {
            "id": self.product_id,
            "title": self.title,
            "price": float(self.price),
            "quantity": self.quantity,
            "originalPriceValue": (
                float(self.original_price_value)
                if self.original_price_value is not None
                else None
            ),
            "url": self.url,
            "image": self.image,
            "store": self.store,
        }


@dataclass
class Cart:
    items: list[CartItem] = field(default_factory=list)

    def find(self, product_id: str) -> Optional[CartItem]:
        return next((i for i in self.items if i.product_id == product_id), None)

    def add(self, item: CartItem) -> None:
        """Add an item; adding a product already in the cart increases its quantity."""
        existing = self.find(item.product_id)
        if existing:
            existing.quantity += item.quantity
        else:
            self.items.append(item)

    def update_quantity(self, product_id: str, quantity: int) -> None:
        """Set quantity; zero or less removes the item."""
        if quantity <= 0:
            self.remove(product_id)
            return
        existing = self.find(product_id)
        if existing:
            existing.quantity = quantity

    def remove(self, product_id: str) -> None:
        self.items = [i for i in self.items if i.product_id != product_id]

    def clear(self) -> None:
        self.items = []

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)

    def invalid_items(self) -> list[CartItem]:
        """Items that cannot be checked out because their price is missing or zero."""
        return [i for i in self.items if i.price is None or i.price <= 0]

    def totals(self) -> CartTotals:
        return calculate_cart_totals(self.items)
