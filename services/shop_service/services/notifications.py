"""Order lifecycle notifications.

Builds the email snapshot for an order (display amounts, item prices,
customer details), enforces the workflow state each stage email requires,
and dispatches through the Klaviyo-backed stage senders.
"""

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional

from libs.common.currency import to_decimal
from libs.common.datetime_utils import ensure_aware, utc_now
from libs.common.emails import orders as order_emails
from libs.common.emails.client import EmailResult, KlaviyoClient, get_email_client
from libs.common.logging import get_logger
from services.shop_service.models import (
    DeliveredStatus,
    DomesticFulfillmentStatus,
    Order,
    PaymentStatus,
)
from services.shop_service.services.pricing import (
    get_display_amounts,
    get_updated_item_prices,
)
from services.shop_service.services.workflow import (
    WorkflowError,
    apply_status_update,
    get_status,
    require_status,
)

logger = get_logger(__name__)


class EmailStage(str, enum.Enum):
    ORDER_CONFIRMATION = "order-confirmation"
    PRICE_CONFIRMATION = "confirmation"
    PAYMENT_COMPLETION = "completion"
    US_FACILITY = "us-facility"
    INTERNATIONAL_SHIPPING = "international-shipping"
    BD_WAREHOUSE = "bd-warehouse"
    DELIVERY_OPTIONS = "delivery-options"
    CUSTOMER_CHOICE = "choice"
    PICKUP = "pickup"
    DELIVERY = "delivery"
    FINAL_PICKUP = "final-pickup"


@dataclass(frozen=True)
class StageRequirement:
    status_type: str
    allowed: tuple[str, ...]
    action: str


# Stage -> the workflow state the order must be in before the email may go out.
# Stages without an entry have no precondition.
STAGE_REQUIREMENTS: dict[EmailStage, StageRequirement] = {
    EmailStage.PRICE_CONFIRMATION: StageRequirement(
        "paymentStatus",
        (PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value),
        "Price confirmation email",
    ),
    EmailStage.PAYMENT_COMPLETION: StageRequirement(
        "paymentStatus", (PaymentStatus.PAID.value,), "Payment completion email"
    ),
    EmailStage.CUSTOMER_CHOICE: StageRequirement(
        "domesticFulfillmentStatus",
        (DomesticFulfillmentStatus.PROCESSING.value,),
        "Customer choice confirmation email",
    ),
    EmailStage.PICKUP: StageRequirement(
        "domesticFulfillmentStatus",
        (DomesticFulfillmentStatus.PICKUP.value,),
        "Pickup confirmation email",
    ),
    EmailStage.DELIVERY: StageRequirement(
        "domesticFulfillmentStatus",
        (DomesticFulfillmentStatus.DELIVERY.value,),
        "Delivery confirmation email",
    ),
    EmailStage.FINAL_PICKUP: StageRequirement(
        "deliveredStatus",
        (DeliveredStatus.PICKUP_COMPLETE.value,),
        "Final pickup confirmation email",
    ),
}


class PricingNotReadyError(WorkflowError):
    """Price confirmation requested before final pricing (with shipping) is set."""


def check_stage_preconditions(stage: EmailStage, order: Order) -> None:
    """Raise a WorkflowError if ``order`` is not in the state ``stage`` requires."""
    if stage == EmailStage.PRICE_CONFIRMATION:
        if not order.final_pricing_updated:
            raise PricingNotReadyError(
                "Final pricing must be updated before sending the price confirmation email"
            )
        if not order.final_shipping_cost_bdt or to_decimal(order.final_shipping_cost_bdt) == 0:
            raise PricingNotReadyError(
                "Final shipping cost must be set before sending the price confirmation email"
            )

    requirement = STAGE_REQUIREMENTS.get(stage)
    if requirement is not None:
        require_status(order, requirement.status_type, list(requirement.allowed), requirement.action)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


def build_email_data(order: Order) -> order_emails.OrderEmailData:
    amounts = get_display_amounts(order)
    rate = amounts.exchange_rate

    items = []
    for item in get_updated_item_prices(order):
        price_usd = item.get("originalPriceValue")
        items.append(
            order_emails.OrderEmailItem(
                id=str(item.get("id") or "unknown"),
                title=item.get("title") or item.get("name") or "Product",
                price_bdt=to_decimal(item.get("price") or 0),
                quantity=int(item.get("quantity") or 1),
                image=item.get("image") or "",
                url=item.get("url") or "",
                store=item.get("store") or "",
                price_usd=to_decimal(price_usd) if price_usd and not item["priceUpdated"] else None,
                price_updated=item["priceUpdated"],
                original_price_bdt=(
                    to_decimal(item["originalPrice"]) if item.get("originalPrice") is not None else None
                ),
            )
        )

    return order_emails.OrderEmailData(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_email=order.customer_email,
        customer_name=order.customer_name or "Customer",
        customer_phone=order.customer_phone,
        shipping_address=order.shipping_address,
        items=items,
        exchange_rate=rate,
        product_cost_bdt=amounts.product_cost_bdt,
        service_charge_bdt=amounts.service_charge_bdt,
        shipping_cost_bdt=amounts.shipping_cost_bdt,
        tax_bdt=amounts.tax_bdt,
        total_amount_bdt=amounts.total_amount_bdt,
        shipping_only_bdt=amounts.shipping_only_bdt,
        additional_fees_bdt=amounts.additional_fees_bdt,
        fee_description=amounts.fee_description,
        pricing_updated=amounts.is_updated,
        order_date=ensure_aware(order.created_at) or utc_now(),
    )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

Sender = Callable[..., Awaitable[EmailResult]]

_SENDERS: dict[EmailStage, Sender] = {
    EmailStage.ORDER_CONFIRMATION: order_emails.send_order_confirmation_email,
    EmailStage.PRICE_CONFIRMATION: order_emails.send_price_confirmation_email,
    EmailStage.PAYMENT_COMPLETION: order_emails.send_payment_confirmation_email,
    EmailStage.US_FACILITY: order_emails.send_us_facility_arrival_email,
    EmailStage.INTERNATIONAL_SHIPPING: order_emails.send_international_shipping_email,
    EmailStage.BD_WAREHOUSE: order_emails.send_bd_warehouse_arrival_email,
    EmailStage.CUSTOMER_CHOICE: order_emails.send_customer_choice_email,
    EmailStage.DELIVERY: order_emails.send_delivery_confirmation_email,
}


class OrderNotifier:
    """Sends stage emails for orders. Injected into routers as a dependency."""

    def __init__(self, client: Optional[KlaviyoClient] = None):
        self.client = client or get_email_client()

    async def send(
        self,
        stage: EmailStage,
        order: Order,
        delivery_options: Optional[order_emails.DeliveryOptions] = None,
    ) -> EmailResult:
        data = build_email_data(order)

        if stage == EmailStage.DELIVERY_OPTIONS:
            return await order_emails.send_delivery_options_email(
                data, delivery_options or order_emails.DeliveryOptions(), client=self.client
            )
        if stage == EmailStage.PICKUP:
            return await order_emails.send_pickup_confirmation_email(
                data, order.pickup_details, client=self.client
            )
        if stage == EmailStage.FINAL_PICKUP:
            return await order_emails.send_final_pickup_confirmation_email(
                data, order.pickup_details, client=self.client
            )
        return await _SENDERS[stage](data, client=self.client)

    async def send_best_effort(self, stage: EmailStage, order: Order) -> Optional[EmailResult]:
        """Send without ever raising; failures are only logged."""
        try:
            result = await self.send(stage, order)
        except Exception as e:
            logger.error(f"Failed to send {stage.value} email for order {order.id}: {e}")
            return None
        if not result.success:
            logger.error(
                f"{stage.value} email for order {order.id} was not sent: {result.error}"
            )
        return result


def get_order_notifier() -> OrderNotifier:
    """FastAPI dependency for the notification dispatcher."""
    return OrderNotifier()


# ---------------------------------------------------------------------------
# Post-send effects
# ---------------------------------------------------------------------------


def apply_post_send_effects(
    stage: EmailStage,
    order: Order,
    delivery_options: Optional[order_emails.DeliveryOptions] = None,
) -> dict[str, Any]:
    """
    Order changes that follow a successful send. Returns the workflow fields
    written, if any.
    """
    if stage == EmailStage.PRICE_CONFIRMATION:
        if get_status(order, "paymentStatus") == PaymentStatus.PENDING.value:
            return apply_status_update(order, "paymentStatus", PaymentStatus.PROCESSING.value)

    if stage == EmailStage.DELIVERY_OPTIONS:
        options = delivery_options or order_emails.DeliveryOptions()
        order.warehouse_location = options.warehouse_location
        order.home_delivery_fee = Decimal(options.home_delivery_fee)
        order.pickup_address = options.pickup_address
        order.delivery_options_sent_at = utc_now()
        order.notes = {
            **(order.notes or {}),
            "deliveryOptionsPending": True,
            "awaitingDeliveryChoice": True,
        }
    return {}
