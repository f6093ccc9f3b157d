"""
Order lifecycle emails.

One function per fulfillment stage. Each builds the stage's Klaviyo event
payload from an OrderEmailData snapshot and dispatches it through the
KlaviyoClient. Amounts in the snapshot are the customer-facing display
amounts (final pricing where set, estimate otherwise).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from libs.common.config import get_settings
from libs.common.currency import format_bdt, format_usd, round_money
from libs.common.datetime_utils import utc_now
from libs.common.emails.client import EmailResult, KlaviyoClient, get_email_client

DEFAULT_ADDRESS_TEXT = "To be provided during shipping"

# Klaviyo metric names; each drives one flow/template in Klaviyo
ORDER_PLACED = "Order Placed"
PRICE_CONFIRMATION = "Price Confirmation"
PAYMENT_COMPLETED = "Payment Completed"
US_FACILITY_ARRIVAL = "US Facility Arrival"
INTERNATIONAL_SHIPPING = "International Shipping"
BD_WAREHOUSE_ARRIVAL = "BD Warehouse Arrival"
DELIVERY_OPTIONS = "Delivery Options"
CUSTOMER_CHOICE_CONFIRMATION = "Customer Choice Confirmation"
PICKUP_CONFIRMATION = "Pickup Confirmation"
DELIVERY_CONFIRMATION = "Delivery Confirmation"
FINAL_PICKUP_CONFIRMATION = "Final Pickup Confirmation"


@dataclass
class OrderEmailItem:
    id: str
    title: str
    price_bdt: Decimal
    quantity: int = 1
    image: str = ""
    url: str = ""
    store: str = ""
    price_usd: Optional[Decimal] = None
    price_updated: bool = False
    original_price_bdt: Optional[Decimal] = None


@dataclass
class OrderEmailData:
    order_id: str
    order_number: int
    customer_email: str
    exchange_rate: Decimal
    product_cost_bdt: Decimal
    service_charge_bdt: Decimal
    shipping_cost_bdt: Decimal
    tax_bdt: Decimal
    total_amount_bdt: Decimal
    customer_name: str = "Customer"
    customer_phone: Optional[str] = None
    shipping_address: Optional[dict[str, Any]] = None
    items: list[OrderEmailItem] = field(default_factory=list)
    shipping_only_bdt: Optional[Decimal] = None
    additional_fees_bdt: Optional[Decimal] = None
    fee_description: Optional[str] = None
    pricing_updated: bool = False
    order_date: datetime = field(default_factory=utc_now)

    @property
    def first_name(self) -> str:
        return self.customer_name.split(" ")[0] or "Customer"

    @property
    def last_name(self) -> str:
        return " ".join(self.customer_name.split(" ")[1:])

    def to_usd(self, amount_bdt: Decimal) -> Decimal:
        return round_money(Decimal(amount_bdt) / self.exchange_rate)

    @property
    def total_amount_usd(self) -> Decimal:
        return self.to_usd(self.total_amount_bdt)


@dataclass
class DeliveryOptions:
    """Admin-supplied details for the delivery-options email."""

    warehouse_location: str = "Bangladesh Warehouse"
    package_weight: str = "To be calculated"
    arrival_date: Optional[str] = None
    home_delivery_estimate: str = "2-3 business days"
    home_delivery_fee: Decimal = Decimal("150")
    pickup_available_date: str = "Available now"
    pickup_hours: str = "10:00 AM - 6:00 PM"
    pickup_address: str = (
        "UniShopper Dhaka Office\n123 Main Street, Dhanmondi\nDhaka 1205, Bangladesh"
    )
    support_phone: str = "+880 1234567890"
    whatsapp_number: str = "+880 1234567890"


def format_shipping_address(address: Optional[dict[str, Any]]) -> str:
    """Render a stored address dict as a single comma-separated line."""
    if not address or not isinstance(address, dict):
        return DEFAULT_ADDRESS_TEXT

    name = address.get("name") or " ".join(
        part for part in (address.get("firstName"), address.get("lastName")) if part
    )
    line1 = address.get("line1") or address.get("street1")
    line2 = address.get("line2") or address.get("street2")
    city = address.get("city")
    state = address.get("state")
    postal = address.get("postal_code") or address.get("postalCode")
    locality = ", ".join(part for part in (city, state) if part)
    if postal:
        locality = f"{locality} {postal}".strip()

    parts = [name, line1, line2, locality, address.get("country")]
    text = ", ".join(part for part in parts if part)
    return text or DEFAULT_ADDRESS_TEXT


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(round_money(value)) if value is not None else None


def _order_url(data: OrderEmailData, suffix: str = "") -> str:
    base = get_settings().FRONTEND_URL.rstrip("/")
    return f"{base}/orders/{data.order_id}{suffix}"


def _base_properties(data: OrderEmailData, stage: str) -> dict[str, Any]:
    items = [
        {
            "product_id": item.id,
            "product_name": item.title,
            "product_image": item.image,
            "product_url": item.url,
            "price_bdt": _money(item.price_bdt),
            "price_usd": _money(
                item.price_usd if item.price_usd is not None else data.to_usd(item.price_bdt)
            ),
            "quantity": item.quantity,
            "store": item.store,
            "price_updated": item.price_updated,
            "original_price_bdt": _money(item.original_price_bdt),
        }
        for item in data.items
    ]
    return {
        "$event_id": f"{data.order_id}_{stage}_{int(utc_now().timestamp())}",
        "$value": _money(data.total_amount_usd),
        "order_id": data.order_id,
        "order_number": data.order_number,
        "customer_name": data.customer_name,
        "customer_email": data.customer_email,
        "customer_phone": data.customer_phone or DEFAULT_ADDRESS_TEXT,
        "customer_address": format_shipping_address(data.shipping_address),
        "order_date": data.order_date.isoformat(),
        "formatted_order_date": data.order_date.strftime("%B %d, %Y"),
        "items": items,
        "item_count": len(items),
        "subtotal_bdt": _money(data.product_cost_bdt),
        "service_charge_bdt": _money(data.service_charge_bdt),
        "shipping_cost_bdt": _money(data.shipping_cost_bdt),
        "tax_bdt": _money(data.tax_bdt),
        "total_amount_bdt": _money(data.total_amount_bdt),
        "subtotal_usd": _money(data.to_usd(data.product_cost_bdt)),
        "service_charge_usd": _money(data.to_usd(data.service_charge_bdt)),
        "shipping_cost_usd": _money(data.to_usd(data.shipping_cost_bdt)),
        "tax_usd": _money(data.to_usd(data.tax_bdt)),
        "total_amount_usd": _money(data.total_amount_usd),
        "formatted_total_bdt": format_bdt(data.total_amount_bdt),
        "formatted_total_usd": format_usd(data.total_amount_usd),
        "exchange_rate": _money(data.exchange_rate),
        "currency": "BDT",
        "pricing_updated": data.pricing_updated,
        "track_order_url": _order_url(data),
    }


async def _send(
    metric: str,
    data: OrderEmailData,
    extra: Optional[dict[str, Any]] = None,
    client: Optional[KlaviyoClient] = None,
) -> EmailResult:
    client = client or get_email_client()
    properties = _base_properties(data, metric.lower().replace(" ", "_"))
    if extra:
        properties.update(extra)
    return await client.create_event(
        metric=metric,
        email=data.customer_email,
        properties=properties,
        value=_money(data.total_amount_usd),
        first_name=data.first_name,
        last_name=data.last_name,
        profile_properties={"last_order_date": data.order_date.isoformat()},
    )


# ============================================================================
# STAGE EMAILS
# ============================================================================


async def send_order_confirmation_email(
    data: OrderEmailData, client: Optional[KlaviyoClient] = None
) -> EmailResult:
    """Sent at checkout, once the order row exists."""
    return await _send(ORDER_PLACED, data, client=client)


async def send_price_confirmation_email(
    data: OrderEmailData, client: Optional[KlaviyoClient] = None
) -> EmailResult:
    """Sent after an admin finalizes pricing, asking the customer to pay the balance."""
    extra = {
        "shipping_only_bdt": _money(data.shipping_only_bdt),
        "additional_fees_bdt": _money(data.additional_fees_bdt),
        "fee_description": data.fee_description,
        "formatted_shipping_bdt": format_bdt(data.shipping_cost_bdt),
        "payment_url": _order_url(data, "/pay"),
    }
    return await _send(PRICE_CONFIRMATION, data, extra, client)


async def send_payment_confirmation_email(
    data: OrderEmailData, client: Optional[KlaviyoClient] = None
) -> EmailResult:
    return await _send(PAYMENT_COMPLETED, data, client=client)


async def send_us_facility_arrival_email(
    data: OrderEmailData, client: Optional[KlaviyoClient] = None
) -> EmailResult:
    return await _send(US_FACILITY_ARRIVAL, data, client=client)


async def send_international_shipping_email(
    data: OrderEmailData, client: Optional[KlaviyoClient] = None
) -> EmailResult:
    return await _send(INTERNATIONAL_SHIPPING, data, client=client)


async def send_bd_warehouse_arrival_email(
    data: OrderEmailData, client: Optional[KlaviyoClient] = None
) -> EmailResult:
    return await _send(BD_WAREHOUSE_ARRIVAL, data, client=client)


async def send_delivery_options_email(
    data: OrderEmailData,
    options: DeliveryOptions,
    client: Optional[KlaviyoClient] = None,
) -> EmailResult:
    """Offers the customer home delivery or warehouse pickup."""
    extra = {
        "warehouse_location": options.warehouse_location,
        "package_weight": options.package_weight,
        "arrival_date": options.arrival_date or utc_now().strftime("%B %d, %Y"),
        "home_delivery_estimate": options.home_delivery_estimate,
        "home_delivery_fee": _money(options.home_delivery_fee),
        "home_delivery_url": _order_url(data, "/delivery"),
        "pickup_available_date": options.pickup_available_date,
        "pickup_hours": options.pickup_hours,
        "pickup_address": options.pickup_address,
        "pickup_url": _order_url(data, "/pickup"),
        "support_phone": options.support_phone,
        "whatsapp_number": options.whatsapp_number,
    }
    return await _send(DELIVERY_OPTIONS, data, extra, client)


async def send_customer_choice_email(
    data: OrderEmailData, client: Optional[KlaviyoClient] = None
) -> EmailResult:
    return await _send(CUSTOMER_CHOICE_CONFIRMATION, data, client=client)


async def send_pickup_confirmation_email(
    data: OrderEmailData,
    pickup_details: Optional[dict[str, Any]] = None,
    client: Optional[KlaviyoClient] = None,
) -> EmailResult:
    return await _send(
        PICKUP_CONFIRMATION, data, {"pickup_details": pickup_details or {}}, client
    )


async def send_delivery_confirmation_email(
    data: OrderEmailData, client: Optional[KlaviyoClient] = None
) -> EmailResult:
    return await _send(DELIVERY_CONFIRMATION, data, client=client)


async def send_final_pickup_confirmation_email(
    data: OrderEmailData,
    pickup_details: Optional[dict[str, Any]] = None,
    client: Optional[KlaviyoClient] = None,
) -> EmailResult:
    return await _send(
        FINAL_PICKUP_CONFIRMATION, data, {"pickup_details": pickup_details or {}}, client
    )
