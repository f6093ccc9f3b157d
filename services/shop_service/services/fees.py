"""Service charge, tax and shipping for a cart.

    service_charge = round(subtotal * 5%)
    tax            = round(subtotal * 8.875%)
    shipping       = 0 (shipping is quoted later via final pricing)
    total          = subtotal + shipping + service_charge + tax

Rounding is half-up to whole currency units.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Union

from libs.common.currency import to_decimal

SERVICE_CHARGE_RATE = Decimal("0.05")
TAX_RATE = Decimal("0.08875")
SHIPPING_ENABLED = False

Number = Union[Decimal, float, int, str]


def _round_whole(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def calculate_service_charge(subtotal: Number) -> Decimal:
    return _round_whole(to_decimal(subtotal) * SERVICE_CHARGE_RATE)


def calculate_tax(subtotal: Number) -> Decimal:
    return _round_whole(to_decimal(subtotal) * TAX_RATE)


def calculate_shipping_cost(items: Iterable[Any] = ()) -> Decimal:
    """Shipping is not charged up front."""
    return Decimal("0")


@dataclass
class CartTotals:
    subtotal: Decimal
    shipping_cost: Decimal
    service_charge: Decimal
    tax: Decimal
    total: Decimal

    def to_dict(self) -> dict[str, Decimal]:
        return {
            "subtotal": self.subtotal,
            "shippingCost": self.shipping_cost,
            "serviceCharge": self.service_charge,
            "tax": self.tax,
            "total": self.total,
        }


def _price_and_quantity(item: Any) -> tuple[Decimal, int]:
    if isinstance(item, Mapping):
        return to_decimal(item.get("price") or 0), int(item.get("quantity") or 0)
    return to_decimal(item.price or 0), int(item.quantity or 0)


def calculate_cart_totals(items: Iterable[Any]) -> CartTotals:
    """Totals for items exposing ``price`` and ``quantity`` (dicts or objects)."""
    items = list(items)
    subtotal = sum(
        (price * quantity for price, quantity in map(_price_and_quantity, items)),
        Decimal("0"),
    )
    shipping_cost = calculate_shipping_cost(items)
    service_charge = calculate_service_charge(subtotal)
    tax = calculate_tax(subtotal)
    return CartTotals(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        service_charge=service_charge,
        tax=tax,
        total=subtotal + shipping_cost + service_charge + tax,
    )
