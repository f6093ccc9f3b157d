"""Checkout: create the order and its Stripe payment intent."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.currency import CurrencyConverter, get_currency_converter, round_money
from libs.common.datetime_utils import hours_from_now
from libs.common.logging import get_logger
from libs.common.rate_limit import payment_limit
from libs.db.session import get_async_db
from services.shop_service.models import (
    Address,
    DeliveredStatus,
    DomesticFulfillmentStatus,
    Order,
    OrderStatus,
    PaymentStatus,
    ShippedToBdStatus,
    ShippedToUsStatus,
    User,
)
from services.shop_service.routers._helpers import user_uuid
from services.shop_service.schemas import (
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
)
from services.shop_service.services.cart import Cart, CartItem
from services.shop_service.services.fees import SERVICE_CHARGE_RATE, TAX_RATE
from services.shop_service.services.notifications import (
    EmailStage,
    OrderNotifier,
    get_order_notifier,
)
from services.shop_service.stripe_client import StripeClient, StripeError, get_stripe_client
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/checkout", tags=["checkout"])

ORDER_NUMBER_BASE = 100000
REFUND_WINDOW_HOURS = 24


async def _resolve_customer(
    db: AsyncSession,
    current_user: Optional[AuthUser],
    customer_name: Optional[str],
    customer_email: Optional[str],
) -> User:
    if current_user is not None:
        user = await db.get(User, user_uuid(current_user))
        if not user:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return user

    email = customer_email.lower() if customer_email else None
    if email:
        existing = (
            await db.execute(select(User).where(User.email == email))
        ).scalar_one_or_none()
        if existing is not None and existing.is_guest:
            return existing
        if existing is not None:
            # Registered account: the order keeps the email, the guest row does not
            email = None

    first, _, last = (customer_name or "Guest User").partition(" ")
    guest = User(
        email=email or f"guest-{uuid.uuid4().hex}@unishopper.com",
        first_name=first or "Guest",
        last_name=last or "User",
        is_guest=True,
    )
    db.add(guest)
    await db.flush()
    return guest


def _usd_unit_price(item: CartItem) -> Decimal:
    if item.original_price_value:
        return item.original_price_value
    return item.price / Decimal(str(settings.DEFAULT_EXCHANGE_RATE))


@router.post("/create-payment-intent", response_model=CreatePaymentIntentResponse)
@payment_limit
async def create_payment_intent(
    payload: CreatePaymentIntentRequest,
    request: Request,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
    converter: CurrencyConverter = Depends(get_currency_converter),
    stripe: StripeClient = Depends(get_stripe_client),
    notifier: OrderNotifier = Depends(get_order_notifier),
):
    """
    Price the cart in USD (the charge currency), convert to BDT at the
    current rate, create a PENDING order, and open a payment intent for it.
    """
    cart = Cart()
    for item in payload.items:
        cart.add(
            CartItem(
                product_id=item.id,
                title=item.title,
                price=item.price,
                quantity=item.quantity,
                original_price_value=item.original_price_value,
                url=item.url,
                image=item.image,
                store=item.store,
            )
        )

    invalid = cart.invalid_items()
    if invalid:
        raise HTTPException(
            status_code=400,
            detail=(
                f'Product "{invalid[0].title}" has invalid pricing. '
                "Please remove it from your cart and add it again."
            ),
        )

    subtotal_usd = round_money(
        sum((_usd_unit_price(i) * i.quantity for i in cart.items), Decimal("0"))
    )
    service_charge_usd = round_money(subtotal_usd * SERVICE_CHARGE_RATE)
    tax_usd = round_money(subtotal_usd * TAX_RATE)
    total_usd = subtotal_usd + service_charge_usd + tax_usd

    rate = await converter.usd_to_bdt_rate()

    user = await _resolve_customer(
        db, current_user, payload.customer_name, payload.customer_email
    )

    shipping_address = None
    if payload.address_id and not user.is_guest:
        address = await db.get(Address, payload.address_id)
        if not address or address.user_id != user.id:
            raise HTTPException(status_code=404, detail="Address not found")
        shipping_address = address.to_shipping_address()
    elif payload.shipping_address:
        shipping_address = payload.shipping_address.model_dump()

    order_count = (await db.execute(select(func.count()).select_from(Order))).scalar_one()
    customer_email = payload.customer_email or user.email

    order = Order(
        order_number=ORDER_NUMBER_BASE + order_count,
        user_id=user.id,
        customer_email=customer_email,
        customer_name=payload.customer_name or user.full_name,
        customer_phone=payload.customer_phone or user.phone,
        items=[i.to_order_item() for i in cart.items],
        product_cost_bdt=round_money(subtotal_usd * rate),
        service_charge_bdt=round_money(service_charge_usd * rate),
        shipping_cost_bdt=Decimal("0"),
        tax_bdt=round_money(tax_usd * rate),
        total_amount_bdt=round_money(total_usd * rate),
        product_cost_usd=subtotal_usd,
        service_charge_usd=service_charge_usd,
        shipping_cost_usd=Decimal("0"),
        tax_usd=tax_usd,
        total_amount_usd=total_usd,
        exchange_rate=rate,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        shipped_to_us_status=ShippedToUsStatus.PENDING,
        shipped_to_bd_status=ShippedToBdStatus.PENDING,
        domestic_fulfillment_status=DomesticFulfillmentStatus.PENDING,
        delivered_status=DeliveredStatus.PENDING,
        shipping_address=shipping_address,
        refund_deadline=hours_from_now(REFUND_WINDOW_HOURS),
    )
    db.add(order)
    await db.flush()

    amount_cents = int((total_usd * 100).to_integral_value())
    try:
        intent = await stripe.create_payment_intent(
            amount_cents=amount_cents,
            currency="usd",
            metadata={
                "orderId": str(order.id),
                "orderNumber": str(order.order_number),
                "userId": str(user.id),
                "isGuest": str(user.is_guest).lower(),
                "displayBdtAmount": str(order.total_amount_bdt),
                "exchangeRate": str(rate),
            },
            receipt_email=None if user.is_guest and not payload.customer_email else customer_email,
        )
    except StripeError as e:
        await db.rollback()
        logger.error(f"Payment intent creation failed: {e.message}")
        raise HTTPException(status_code=500, detail="Failed to create payment intent")

    order.stripe_payment_intent_id = intent.id
    await db.commit()
    await db.refresh(order)

    logger.info(
        f"Order {order.order_number} created with payment intent {intent.id}",
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "amount_cents": amount_cents,
                "exchange_rate": str(rate),
            }
        },
    )

    await notifier.send_best_effort(EmailStage.ORDER_CONFIRMATION, order)

    return CreatePaymentIntentResponse(
        client_secret=intent.client_secret,
        payment_intent_id=intent.id,
        order_id=order.id,
        order_number=order.order_number,
        amount=amount_cents,
        exchange_rate=rate,
    )
