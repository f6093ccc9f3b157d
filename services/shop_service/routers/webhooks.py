"""Stripe webhook: payment outcomes drive the order's payment status."""

import json
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.shop_service.models import Order, OrderStatus, PaymentStatus
from services.shop_service.services.workflow import apply_status_update
from services.shop_service.stripe_client import verify_webhook_signature
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


async def _order_from_metadata(db: AsyncSession, obj: dict) -> Optional[Order]:
    order_id = (obj.get("metadata") or {}).get("orderId")
    if not order_id:
        return None
    try:
        return await db.get(Order, uuid.UUID(str(order_id)))
    except ValueError:
        return None


async def _order_from_payment_intent(db: AsyncSession, payment_intent_id: Optional[str]) -> Optional[Order]:
    if not payment_intent_id:
        return None
    result = await db.execute(
        select(Order).where(Order.stripe_payment_intent_id == payment_intent_id)
    )
    return result.scalars().first()


def _shipping_from_intent(obj: dict) -> Optional[dict[str, Any]]:
    shipping = obj.get("shipping") or {}
    address = shipping.get("address")
    if not address:
        return None
    return {
        "name": shipping.get("name"),
        "line1": address.get("line1"),
        "line2": address.get("line2"),
        "city": address.get("city"),
        "state": address.get("state"),
        "postal_code": address.get("postal_code"),
        "country": address.get("country"),
        "phone": shipping.get("phone"),
    }


def _mark_paid(order: Order) -> dict[str, str]:
    updated = apply_status_update(order, "paymentStatus", PaymentStatus.PAID.value)
    order.status = OrderStatus.PROCESSING
    return updated


def _mark_failed(order: Order) -> dict[str, str]:
    updated = apply_status_update(order, "paymentStatus", PaymentStatus.FAILED.value)
    order.status = OrderStatus.CANCELLED
    order.cancelled_at = utc_now()
    return updated


# ============================================================================
# EVENT HANDLERS
# ============================================================================


async def handle_payment_intent_succeeded(db: AsyncSession, obj: dict) -> Optional[Order]:
    order = await _order_from_metadata(db, obj) or await _order_from_payment_intent(
        db, obj.get("id")
    )
    if order is None:
        return None
    _mark_paid(order)
    shipping = _shipping_from_intent(obj)
    if shipping:
        order.shipping_address = shipping
    return order


async def handle_checkout_session_completed(db: AsyncSession, obj: dict) -> Optional[Order]:
    order = await _order_from_metadata(db, obj)
    if order is None:
        return None
    _mark_paid(order)
    if obj.get("payment_intent"):
        order.stripe_payment_intent_id = str(obj["payment_intent"])
    return order


async def handle_checkout_session_expired(db: AsyncSession, obj: dict) -> Optional[Order]:
    order = await _order_from_metadata(db, obj)
    if order is None:
        return None
    _mark_failed(order)
    return order


async def handle_payment_intent_failed(db: AsyncSession, obj: dict) -> Optional[Order]:
    order = await _order_from_payment_intent(db, obj.get("id"))
    if order is None:
        return None
    _mark_failed(order)
    return order


EVENT_HANDLERS = {
    "payment_intent.succeeded": handle_payment_intent_succeeded,
    "checkout.session.completed": handle_checkout_session_completed,
    "checkout.session.expired": handle_checkout_session_expired,
    "payment_intent.payment_failed": handle_payment_intent_failed,
}


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
):
    """
    Stripe webhook endpoint (no auth; verified by Stripe-Signature).
    """
    raw = await request.body()
    signature = request.headers.get("stripe-signature")
    if not verify_webhook_signature(
        raw,
        signature,
        settings.STRIPE_WEBHOOK_SECRET,
        tolerance_seconds=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    ):
        logger.warning("Stripe webhook signature verification failed")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature"
        )

    try:
        event = json.loads(raw.decode("utf-8") or "{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")

    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info(f"Unhandled Stripe event type: {event_type}")
        return {"received": True}

    order = await handler(db, obj)
    if order is None:
        logger.warning(
            f"Stripe event {event_type} for unknown order",
            extra={"extra_fields": {"event_id": event.get("id"), "object_id": obj.get("id")}},
        )
        return {"received": True}

    await db.commit()
    logger.info(
        f"Order {order.order_number} updated from {event_type}",
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "payment_status": order.payment_status.value,
                "status": order.status.value,
            }
        },
    )
    return {"received": True}
