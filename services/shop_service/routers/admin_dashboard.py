"""Admin dashboard: order pipeline counts, revenue, customers, payments."""

import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from libs.common.currency import format_bdt, format_usd, round_money
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.shop_service.models import (
    Admin,
    DeliveredStatus,
    Order,
    OrderStatus,
    PaymentStatus,
    ShippedToBdStatus,
    ShippedToUsStatus,
    User,
)
from services.shop_service.routers._helpers import get_current_admin
from services.shop_service.schemas import (
    AdminPaymentListResponse,
    AdminPaymentOut,
    CustomerListResponse,
    CustomerSummary,
    DashboardStats,
    Pagination,
    PaymentAmount,
    PaymentCustomer,
    PaymentSummary,
)
from services.shop_service.services.pricing import (
    effective_total_bdt,
    get_display_amounts,
    usd_equivalent,
)
from sqlalchemy import String, and_, case, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin", tags=["admin-dashboard"])

COMPLETED_DELIVERY = (DeliveredStatus.PICKUP_COMPLETE, DeliveredStatus.DELIVERY_COMPLETE)

PAYMENT_STATUS_FILTERS = {
    "pending": (PaymentStatus.PENDING, PaymentStatus.PROCESSING),
    "complete": (PaymentStatus.PAID,),
    "failed": (PaymentStatus.FAILED,),
    "refunded": (PaymentStatus.REFUNDED,),
}


def _count_where(*conditions):
    return func.coalesce(func.sum(case((and_(*conditions), 1), else_=0)), 0)


@router.get("/dashboard/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    admin: Admin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    not_cancelled = Order.status != OrderStatus.CANCELLED
    query = select(
        func.count(Order.id),
        _count_where(
            Order.payment_status.in_([PaymentStatus.PENDING, PaymentStatus.PROCESSING]),
            not_cancelled,
        ),
        _count_where(Order.payment_status == PaymentStatus.PAID),
        _count_where(Order.status == OrderStatus.CANCELLED),
        _count_where(
            Order.payment_status == PaymentStatus.PAID,
            Order.shipped_to_us_status != ShippedToUsStatus.COMPLETE,
            not_cancelled,
        ),
        _count_where(
            Order.shipped_to_us_status == ShippedToUsStatus.COMPLETE,
            Order.shipped_to_bd_status != ShippedToBdStatus.COMPLETE,
            not_cancelled,
        ),
        _count_where(
            Order.shipped_to_bd_status == ShippedToBdStatus.COMPLETE,
            Order.delivered_status.not_in(COMPLETED_DELIVERY),
            not_cancelled,
        ),
        _count_where(Order.delivered_status.in_(COMPLETED_DELIVERY)),
        func.coalesce(
            func.sum(
                case(
                    (
                        and_(Order.payment_status == PaymentStatus.PAID, not_cancelled),
                        effective_total_bdt,
                    ),
                    else_=0,
                )
            ),
            0,
        ),
    )
    row = (await db.execute(query)).one()

    total_customers = (
        await db.execute(select(func.count(User.id)).where(User.is_guest.is_(False)))
    ).scalar_one()

    return DashboardStats(
        total_orders=row[0],
        pending_payment=row[1],
        paid_orders=row[2],
        cancelled_orders=row[3],
        awaiting_us_arrival=row[4],
        in_international_transit=row[5],
        awaiting_domestic_fulfillment=row[6],
        completed_orders=row[7],
        total_customers=total_customers,
        total_revenue_bdt=Decimal(str(row[8])),
    )


@router.get("/customers", response_model=CustomerListResponse)
async def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    include_guests: bool = Query(False, alias="includeGuests"),
    admin: Admin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Customers with their order count and spend (cancelled orders excluded)."""
    base = select(User)
    if not include_guests:
        base = base.where(User.is_guest.is_(False))
    total = (
        await db.execute(select(func.count()).select_from(base.subquery()))
    ).scalar_one()

    spent = func.coalesce(
        func.sum(case((Order.status != OrderStatus.CANCELLED, effective_total_bdt), else_=0)),
        0,
    )
    query = (
        select(User, func.count(Order.id), spent)
        .outerjoin(Order, Order.user_id == User.id)
        .group_by(User.id)
        .order_by(User.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    if not include_guests:
        query = query.where(User.is_guest.is_(False))
    rows = (await db.execute(query)).all()

    customers = [
        CustomerSummary(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            phone=user.phone,
            is_guest=user.is_guest,
            order_count=order_count,
            total_spent_bdt=Decimal(str(total_spent)),
            created_at=user.created_at,
        )
        for user, order_count, total_spent in rows
    ]
    return CustomerListResponse(
        customers=customers,
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )


def _payment_customer(order: Order, user: Optional[User]) -> PaymentCustomer:
    name = " ".join(n for n in (user.first_name, user.last_name) if n) if user else ""
    if not name:
        shipping = order.shipping_address or {}
        name = shipping.get("name") or " ".join(
            n for n in (shipping.get("firstName"), shipping.get("lastName")) if n
        )
    return PaymentCustomer(
        name=name or "Unknown",
        email=order.customer_email or (user.email if user else "") or "",
    )


def _payment_out(order: Order, user: Optional[User]) -> AdminPaymentOut:
    amounts = get_display_amounts(order)
    usd = usd_equivalent(amounts.total_amount_bdt, amounts.exchange_rate)
    return AdminPaymentOut(
        id=order.id,
        order_number=order.order_number,
        customer=_payment_customer(order, user),
        amount=PaymentAmount(
            bdt=amounts.total_amount_bdt,
            usd=usd,
            formatted_bdt=format_bdt(amounts.total_amount_bdt),
            formatted_usd=format_usd(usd),
        ),
        status=order.status,
        payment_status=order.payment_status,
        stripe_payment_intent_id=order.stripe_payment_intent_id or "",
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


@router.get("/payments", response_model=AdminPaymentListResponse)
@admin_limit
async def list_payments(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Literal["all", "pending", "complete", "failed", "refunded"] = "all",
    search: Optional[str] = None,
    admin: Admin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Orders seen from the payment side, with confirmation counts."""
    filters = []
    if status != "all":
        filters.append(Order.payment_status.in_(PAYMENT_STATUS_FILTERS[status]))
    if search:
        term = f"%{search.strip().lower()}%"
        filters.append(
            or_(
                cast(Order.order_number, String).like(term),
                func.lower(Order.customer_email).like(term),
                func.lower(Order.stripe_payment_intent_id).like(term),
                func.lower(User.first_name).like(term),
                func.lower(User.last_name).like(term),
                func.lower(User.email).like(term),
            )
        )

    total = (
        await db.execute(
            select(func.count(Order.id))
            .outerjoin(User, Order.user_id == User.id)
            .where(*filters)
        )
    ).scalar_one()
    rows = (
        await db.execute(
            select(Order, User)
            .outerjoin(User, Order.user_id == User.id)
            .where(*filters)
            .order_by(Order.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
    ).all()

    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    paid = Order.payment_status == PaymentStatus.PAID
    not_cancelled = Order.status != OrderStatus.CANCELLED
    summary_row = (
        await db.execute(
            select(
                _count_where(
                    Order.payment_status.in_([PaymentStatus.PENDING, PaymentStatus.PROCESSING]),
                    not_cancelled,
                ),
                _count_where(paid, Order.updated_at >= today),
                _count_where(paid),
                func.coalesce(
                    func.sum(case((and_(paid, not_cancelled), effective_total_bdt), else_=0)),
                    0,
                ),
            )
        )
    ).one()
    total_amount = round_money(Decimal(str(summary_row[3])))

    return AdminPaymentListResponse(
        payments=[_payment_out(order, user) for order, user in rows],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
        summary=PaymentSummary(
            pending_confirmation=summary_row[0],
            confirmed_today=summary_row[1],
            total_confirmed=summary_row[2],
            total_amount=total_amount,
            formatted_total_amount=format_bdt(total_amount),
        ),
    )
