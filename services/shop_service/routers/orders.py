"""Customer order history and the account dashboard."""

import uuid
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.shop_service.models import Address, Order, OrderStatus, User
from services.shop_service.routers._helpers import order_to_response, user_uuid
from services.shop_service.schemas import (
    AccountActivity,
    AccountDashboardStats,
    AccountOrderStats,
    AccountProfileStats,
    OrderListResponse,
    OrderResponse,
    RecentOrder,
    RecentOrderItem,
    RecentOrdersResponse,
    UpdateCustomerInfoRequest,
)
from services.shop_service.services.capture import PLACEHOLDER_IMAGE
from services.shop_service.services.pricing import (
    effective_total_bdt,
    get_display_amounts,
)
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])
dashboard_router = APIRouter(prefix="/account/dashboard", tags=["account"])

RECENT_ORDERS_LIMIT = 5
RECENT_ORDER_PREVIEW_ITEMS = 3


@router.get("", response_model=OrderListResponse)
async def list_my_orders(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the signed-in customer's orders, newest first."""
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user_uuid(current_user))
        .order_by(Order.created_at.desc())
    )
    orders = result.scalars().all()
    return OrderListResponse(
        orders=[order_to_response(o) for o in orders], count=len(orders)
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_my_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await db.get(Order, order_id)
    # Other customers' orders are reported as missing
    if not order or order.user_id != user_uuid(current_user):
        raise HTTPException(status_code=404, detail="Order not found")
    return order_to_response(order)


@router.post("/update-customer-info")
async def update_customer_info(
    payload: UpdateCustomerInfoRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Attach the shipping address collected by the payment form."""
    result = await db.execute(
        select(Order).where(Order.stripe_payment_intent_id == payload.payment_intent_id)
    )
    order = result.scalars().first()
    if not order or order.user_id != user_uuid(current_user):
        raise HTTPException(status_code=404, detail="Order not found")

    order.shipping_address = payload.shipping_address.model_dump()
    if payload.shipping_address.phone and not order.customer_phone:
        order.customer_phone = payload.shipping_address.phone
    await db.commit()

    logger.info(f"Shipping address updated for order {order.order_number}")
    return {"success": True, "orderId": str(order.id)}


# ============================================================================
# ACCOUNT DASHBOARD
# ============================================================================


def profile_completion(user: User, has_address: bool) -> int:
    """Percentage of first name, last name, email and a saved address present."""
    filled = [bool(user.first_name), bool(user.last_name), bool(user.email), has_address]
    return round(sum(filled) / len(filled) * 100)


@dashboard_router.get("/stats", response_model=AccountDashboardStats)
async def get_account_stats(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Order count, spend, status breakdown and profile completion."""
    user_id = user_uuid(current_user)
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    total_orders, total_spent = (
        await db.execute(
            select(
                func.count(Order.id),
                func.coalesce(
                    func.sum(
                        case(
                            (Order.status != OrderStatus.CANCELLED, effective_total_bdt),
                            else_=0,
                        )
                    ),
                    0,
                ),
            ).where(Order.user_id == user_id)
        )
    ).one()

    breakdown_rows = (
        await db.execute(
            select(Order.status, func.count(Order.id))
            .where(Order.user_id == user_id)
            .group_by(Order.status)
        )
    ).all()

    address_count = (
        await db.execute(select(func.count(Address.id)).where(Address.user_id == user_id))
    ).scalar_one()
    has_address = address_count > 0

    return AccountDashboardStats(
        orders=AccountOrderStats(
            total=total_orders,
            total_spent=Decimal(str(total_spent)),
            status_breakdown={status.value: count for status, count in breakdown_rows},
        ),
        profile=AccountProfileStats(
            completion_percentage=profile_completion(user, has_address)
        ),
        activity=AccountActivity(has_orders=total_orders > 0, has_addresses=has_address),
    )


def _preview_item(item: dict[str, Any], index: int, order_id: uuid.UUID) -> RecentOrderItem:
    return RecentOrderItem(
        product_id=str(item.get("id") or f"{order_id}-{index}"),
        title=item.get("title") or item.get("name") or "Unknown Product",
        image=item.get("image") or PLACEHOLDER_IMAGE,
        price=Decimal(str(item.get("price") or 0)),
        quantity=int(item.get("quantity") or 1),
    )


@dashboard_router.get("/recent-orders", response_model=RecentOrdersResponse)
async def get_recent_orders(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """The latest orders with a short item preview each."""
    orders = (
        await db.execute(
            select(Order)
            .where(Order.user_id == user_uuid(current_user))
            .order_by(Order.created_at.desc())
            .limit(RECENT_ORDERS_LIMIT)
        )
    ).scalars().all()

    recent = []
    for order in orders:
        items = order.items if isinstance(order.items, list) else []
        recent.append(
            RecentOrder(
                id=order.id,
                order_number=order.order_number,
                status=order.status,
                payment_status=order.payment_status,
                total_amount_bdt=get_display_amounts(order).total_amount_bdt,
                item_count=len(items),
                items=[
                    _preview_item(item, index, order.id)
                    for index, item in enumerate(items[:RECENT_ORDER_PREVIEW_ITEMS])
                ],
                has_more_items=len(items) > RECENT_ORDER_PREVIEW_ITEMS,
                created_at=order.created_at,
                updated_at=order.updated_at,
            )
        )
    return RecentOrdersResponse(orders=recent, total=len(recent))
