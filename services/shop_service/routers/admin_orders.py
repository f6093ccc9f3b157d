"""Admin order management: listing, workflow status, final pricing, and
lifecycle emails."""

import math
import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from libs.common.emails.orders import DeliveryOptions
from libs.common.logging import get_logger
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.shop_service.models import Admin, AuditAction, Order, OrderStatus
from services.shop_service.routers._helpers import (
    get_current_admin,
    get_order_or_404,
    log_admin_audit,
    order_to_response,
)
from services.shop_service.schemas import (
    AdminOrderListResponse,
    DeliveryOptionsRequest,
    OrderResponse,
    Pagination,
    PricingUpdateRequest,
    PricingUpdateResponse,
    SendEmailResponse,
    StageEmailRequest,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from services.shop_service.services.notifications import (
    EmailStage,
    OrderNotifier,
    apply_post_send_effects,
    check_stage_preconditions,
    get_order_notifier,
)
from services.shop_service.services.pricing import apply_final_pricing
from services.shop_service.services.workflow import (
    WorkflowError,
    apply_status_update,
    workflow_snapshot,
)
from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(prefix="/admin/orders", tags=["admin-orders"])


# ============================================================================
# LISTING
# ============================================================================


@router.get("", response_model=AdminOrderListResponse)
@admin_limit
async def list_orders(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = None,
    search: Optional[str] = None,
    admin: Admin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List orders, newest first, filtered by status and order number/email."""
    query = select(Order)
    if status:
        query = query.where(Order.status == status)
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.where(
            or_(
                func.lower(Order.customer_email).like(term),
                cast(Order.order_number, String).like(term),
            )
        )

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()

    query = query.order_by(Order.created_at.desc()).offset((page - 1) * limit).limit(limit)
    orders = (await db.execute(query)).scalars().all()

    return AdminOrderListResponse(
        orders=[order_to_response(o) for o in orders],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    admin: Admin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    order = await get_order_or_404(db, order_id)
    return order_to_response(order)


# ============================================================================
# WORKFLOW STATUS
# ============================================================================


@router.post("/{order_id}/update-status", response_model=StatusUpdateResponse)
async def update_order_status(
    order_id: uuid.UUID,
    payload: StatusUpdateRequest,
    request: Request,
    admin: Admin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Set one workflow field; cascades are applied with it."""
    order = await get_order_or_404(db, order_id)
    previous = workflow_snapshot(order)

    try:
        updated_fields = apply_status_update(order, payload.status_type, payload.value)
    except WorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    await log_admin_audit(
        db,
        request,
        AuditAction.UPDATE_ORDER_STATUS,
        admin_id=admin.id,
        resource="order",
        resource_id=order.id,
        details={
            "statusType": payload.status_type,
            "value": payload.value,
            "updatedFields": updated_fields,
            "previous": {k: previous[k] for k in updated_fields},
        },
    )
    await db.commit()

    logger.info(
        f"Order {order.order_number} status updated by {admin.username}",
        extra={"extra_fields": {"order_id": str(order.id), "updated_fields": updated_fields}},
    )
    return StatusUpdateResponse(
        success=True,
        message=f"{payload.status_type} updated to {payload.value}",
        order_id=order.id,
        updated_fields=updated_fields,
    )


# ============================================================================
# FINAL PRICING
# ============================================================================


@router.post("/{order_id}/update-pricing", response_model=PricingUpdateResponse)
async def update_order_pricing(
    order_id: uuid.UUID,
    payload: PricingUpdateRequest,
    request: Request,
    admin: Admin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Record admin-confirmed final pricing; it supersedes the estimate."""
    order = await get_order_or_404(db, order_id)

    values = payload.model_dump(exclude_unset=True, exclude={"final_items"})
    if payload.final_items is not None:
        # JSON column: plain floats
        values["final_items"] = [
            {
                "id": item.id,
                "finalPriceBdt": float(item.final_price_bdt),
                "finalPriceUsd": (
                    float(item.final_price_usd) if item.final_price_usd is not None else None
                ),
            }
            for item in payload.final_items
        ]

    try:
        apply_final_pricing(order, values)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await log_admin_audit(
        db,
        request,
        AuditAction.UPDATE_ORDER_PRICING,
        admin_id=admin.id,
        resource="order",
        resource_id=order.id,
        details={
            "exchangeRate": float(payload.exchange_rate),
            "finalTotalAmountBdt": float(payload.final_total_amount_bdt),
            "itemized": payload.final_items is not None,
        },
    )
    await db.commit()
    await db.refresh(order)

    return PricingUpdateResponse(
        success=True,
        message="Final pricing updated",
        order=order_to_response(order),
    )


# ============================================================================
# LIFECYCLE EMAILS
# ============================================================================


async def _send_stage_email(
    stage: EmailStage,
    order: Order,
    request: Request,
    admin: Admin,
    db: AsyncSession,
    notifier: OrderNotifier,
    delivery_options: Optional[DeliveryOptions] = None,
) -> SendEmailResponse:
    try:
        check_stage_preconditions(stage, order)
    except WorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    result = await notifier.send(stage, order, delivery_options)
    if not result.success:
        logger.error(
            f"Failed to send {stage.value} email for order {order.order_number}: {result.error}"
        )
        raise HTTPException(
            status_code=500, detail=f"Failed to send email: {result.error}"
        )

    updated_fields = apply_post_send_effects(stage, order, delivery_options)
    await log_admin_audit(
        db,
        request,
        AuditAction.SEND_ORDER_EMAIL,
        admin_id=admin.id,
        resource="order",
        resource_id=order.id,
        details={"stage": stage.value, "eventId": result.event_id},
    )
    await db.commit()

    return SendEmailResponse(
        success=True,
        message=f"{stage.value} email sent to {order.customer_email}",
        event_id=result.event_id,
        updated_fields=updated_fields,
    )


@router.post("/{order_id}/send-delivery-options-email", response_model=SendEmailResponse)
async def send_delivery_options_email(
    order_id: uuid.UUID,
    request: Request,
    payload: Optional[DeliveryOptionsRequest] = Body(None),
    admin: Admin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
    notifier: OrderNotifier = Depends(get_order_notifier),
):
    """Offer pickup or home delivery; the offered options are stored on the order."""
    order = await get_order_or_404(db, order_id)
    options = DeliveryOptions(**(payload or DeliveryOptionsRequest()).model_dump())
    return await _send_stage_email(
        EmailStage.DELIVERY_OPTIONS, order, request, admin, db, notifier, options
    )


@router.post("/{order_id}/send-{stage}-email", response_model=SendEmailResponse)
async def send_order_email(
    order_id: uuid.UUID,
    stage: EmailStage,
    request: Request,
    payload: Optional[StageEmailRequest] = Body(None),
    admin: Admin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
    notifier: OrderNotifier = Depends(get_order_notifier),
):
    """Send a lifecycle email once the order is in the state the stage requires."""
    order = await get_order_or_404(db, order_id)
    if payload and payload.pickup_details is not None:
        order.pickup_details = payload.pickup_details
    return await _send_stage_email(stage, order, request, admin, db, notifier)
