"""Pricing reconciliation: estimate vs. admin-confirmed final pricing.

While ``final_pricing_updated`` is false the estimate fields are shown
verbatim. Once it is true every field is resolved with ``coalesce``: the
final value when present, otherwise the original estimate for that field
alone. Missing final data never surfaces as zero or null.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, TypeVar

from libs.common.config import get_settings
from libs.common.currency import round_money, to_decimal
from services.shop_service.models import Order
from sqlalchemy import and_, case

T = TypeVar("T")

ZERO = Decimal("0")


def coalesce(final: Optional[T], original: T) -> T:
    """The single fallback rule: a missing final value degrades to the estimate."""
    return original if final is None else final


def effective_exchange_rate(rate: Optional[Any]) -> Decimal:
    """Stored BDT-per-USD rate, or the configured default when unset/zero."""
    if rate is None:
        return to_decimal(get_settings().DEFAULT_EXCHANGE_RATE)
    value = to_decimal(rate)
    if value <= 0:
        return to_decimal(get_settings().DEFAULT_EXCHANGE_RATE)
    return value


def usd_equivalent(amount_bdt: Optional[Any], exchange_rate: Optional[Any]) -> Optional[Decimal]:
    """BDT / rate, to 2 decimals. A derived figure, not a stored one."""
    if amount_bdt is None:
        return None
    return round_money(to_decimal(amount_bdt) / effective_exchange_rate(exchange_rate))


def _dec(value: Any) -> Decimal:
    return ZERO if value is None else to_decimal(value)


# ---------------------------------------------------------------------------
# Display amounts
# ---------------------------------------------------------------------------


@dataclass
class DisplayAmounts:
    product_cost_bdt: Decimal
    service_charge_bdt: Decimal
    shipping_cost_bdt: Decimal
    tax_bdt: Decimal
    total_amount_bdt: Decimal
    exchange_rate: Decimal
    shipping_only_bdt: Optional[Decimal] = None
    additional_fees_bdt: Optional[Decimal] = None
    fee_description: Optional[str] = None
    is_updated: bool = False

    def in_usd(self) -> dict[str, Optional[Decimal]]:
        rate = self.exchange_rate
        return {
            "productCostUsd": usd_equivalent(self.product_cost_bdt, rate),
            "serviceChargeUsd": usd_equivalent(self.service_charge_bdt, rate),
            "shippingCostUsd": usd_equivalent(self.shipping_cost_bdt, rate),
            "taxUsd": usd_equivalent(self.tax_bdt, rate),
            "totalAmountUsd": usd_equivalent(self.total_amount_bdt, rate),
            "shippingOnlyUsd": usd_equivalent(self.shipping_only_bdt, rate),
            "additionalFeesUsd": usd_equivalent(self.additional_fees_bdt, rate),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "productCostBdt": self.product_cost_bdt,
            "serviceChargeBdt": self.service_charge_bdt,
            "shippingCostBdt": self.shipping_cost_bdt,
            "taxBdt": self.tax_bdt,
            "totalAmountBdt": self.total_amount_bdt,
            "shippingOnlyBdt": self.shipping_only_bdt,
            "additionalFeesBdt": self.additional_fees_bdt,
            "feeDescription": self.fee_description,
            "exchangeRate": self.exchange_rate,
            "isUpdated": self.is_updated,
            **self.in_usd(),
        }


def final_items_product_cost(order: Order) -> Optional[Decimal]:
    """Sum of finalPriceBdt x quantity across items, or None when no itemized
    final prices exist."""
    final_items = order.final_items or []
    if not final_items:
        return None

    final_by_id = {str(fi.get("id")): fi for fi in final_items if fi.get("id") is not None}
    total = ZERO
    matched = False
    for index, item in enumerate(order.items or []):
        final_item = final_by_id.get(str(item.get("id")))
        if final_item is None and index < len(final_items):
            final_item = final_items[index]
        if final_item is None or final_item.get("finalPriceBdt") is None:
            price = _dec(item.get("price"))
        else:
            price = to_decimal(final_item["finalPriceBdt"])
            matched = True
        total += price * int(item.get("quantity") or 1)
    return total if matched else None


def get_display_amounts(order: Order) -> DisplayAmounts:
    rate = effective_exchange_rate(order.exchange_rate)

    if not order.final_pricing_updated:
        return DisplayAmounts(
            product_cost_bdt=_dec(order.product_cost_bdt),
            service_charge_bdt=_dec(order.service_charge_bdt),
            shipping_cost_bdt=_dec(order.shipping_cost_bdt),
            tax_bdt=_dec(order.tax_bdt),
            total_amount_bdt=_dec(order.total_amount_bdt),
            exchange_rate=rate,
        )

    product_cost = coalesce(
        final_items_product_cost(order),
        coalesce(order.final_product_cost_bdt, order.product_cost_bdt),
    )
    return DisplayAmounts(
        product_cost_bdt=_dec(product_cost),
        service_charge_bdt=_dec(coalesce(order.final_service_charge_bdt, order.service_charge_bdt)),
        shipping_cost_bdt=_dec(coalesce(order.final_shipping_cost_bdt, order.shipping_cost_bdt)),
        tax_bdt=_dec(coalesce(order.final_tax_bdt, order.tax_bdt)),
        total_amount_bdt=_dec(coalesce(order.final_total_amount_bdt, order.total_amount_bdt)),
        exchange_rate=rate,
        shipping_only_bdt=order.final_shipping_only_bdt,
        additional_fees_bdt=order.final_additional_fees_bdt,
        fee_description=order.fee_description,
        is_updated=True,
    )


# SQL form of get_display_amounts(order).total_amount_bdt, for aggregates
effective_total_bdt = case(
    (
        and_(
            Order.final_pricing_updated.is_(True),
            Order.final_total_amount_bdt.is_not(None),
        ),
        Order.final_total_amount_bdt,
    ),
    else_=Order.total_amount_bdt,
)


def get_updated_item_prices(order: Order) -> list[dict[str, Any]]:
    """
    Items with their customer-facing price. When final pricing carries an
    itemized override (matched by id, then by position) the item's price is
    replaced and the original kept alongside.
    """
    items = [dict(item) for item in (order.items or [])]
    final_items = order.final_items or []
    if not order.final_pricing_updated or not final_items:
        return [{**item, "priceUpdated": False, "originalPrice": None} for item in items]

    final_by_id = {str(fi.get("id")): fi for fi in final_items if fi.get("id") is not None}
    updated = []
    for index, item in enumerate(items):
        final_item = final_by_id.get(str(item.get("id")))
        if final_item is None and index < len(final_items):
            final_item = final_items[index]
        if final_item is not None and final_item.get("finalPriceBdt") is not None:
            updated.append(
                {
                    **item,
                    "price": to_decimal(final_item["finalPriceBdt"]),
                    "priceUpdated": True,
                    "originalPrice": item.get("price"),
                }
            )
        else:
            updated.append({**item, "priceUpdated": False, "originalPrice": None})
    return updated


def display_amount(value: Optional[Any], currency_symbol: str = "৳") -> str:
    if value is None:
        return "N/A"
    return f"{currency_symbol}{round_money(value):,.2f}"


def display_shipping(value: Optional[Any], currency_symbol: str = "৳") -> str:
    if value is None or to_decimal(value) == ZERO:
        return "TBD"
    return display_amount(value, currency_symbol)


# ---------------------------------------------------------------------------
# Admin final pricing
# ---------------------------------------------------------------------------

REQUIRED_FINAL_FIELDS = (
    "exchange_rate",
    "final_product_cost_bdt",
    "final_service_charge_bdt",
    "final_shipping_cost_bdt",
    "final_tax_bdt",
    "final_total_amount_bdt",
)

OPTIONAL_FINAL_FIELDS = (
    "final_shipping_only_bdt",
    "final_additional_fees_bdt",
    "fee_description",
    "final_product_cost_usd",
    "final_service_charge_usd",
    "final_shipping_cost_usd",
    "final_shipping_only_usd",
    "final_additional_fees_usd",
    "final_tax_usd",
    "final_total_amount_usd",
)


def apply_final_pricing(order: Order, values: dict[str, Any]) -> None:
    """
    Write the admin-confirmed pricing onto ``order`` and mark it authoritative.

    ``values`` uses model attribute names. Required fields must all be present;
    missing USD figures are derived from the BDT ones at the new rate.
    """
    missing = [name for name in REQUIRED_FINAL_FIELDS if values.get(name) is None]
    if missing:
        raise ValueError(f"Missing required pricing fields: {', '.join(missing)}")

    for name in REQUIRED_FINAL_FIELDS:
        setattr(order, name, values[name])
    for name in OPTIONAL_FINAL_FIELDS:
        if name in values:
            setattr(order, name, values[name])

    rate = values["exchange_rate"]
    for bdt_name in (
        "final_product_cost_bdt",
        "final_service_charge_bdt",
        "final_shipping_cost_bdt",
        "final_shipping_only_bdt",
        "final_additional_fees_bdt",
        "final_tax_bdt",
        "final_total_amount_bdt",
    ):
        usd_name = bdt_name.replace("_bdt", "_usd")
        if values.get(usd_name) is None and getattr(order, bdt_name) is not None:
            setattr(order, usd_name, usd_equivalent(getattr(order, bdt_name), rate))

    if "final_items" in values:
        order.final_items = values["final_items"]

    order.final_pricing_updated = True
