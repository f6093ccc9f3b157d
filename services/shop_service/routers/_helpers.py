"""Shared helpers for shop routers: admin session check, audit, order lookup."""

import uuid
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request, status
from libs.auth.dependencies import get_admin_claims
from libs.auth.models import AdminPrincipal, AuthUser
from libs.common.datetime_utils import ensure_aware, utc_now
from libs.common.rate_limit import get_client_ip
from libs.db.session import get_async_db
from services.shop_service.models import (
    Admin,
    AdminAuditLog,
    AdminSession,
    AuditAction,
    Order,
)
from services.shop_service.schemas import DisplayAmountsOut, OrderResponse
from services.shop_service.services.pricing import get_display_amounts
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


async def get_current_admin(
    claims: AdminPrincipal = Depends(get_admin_claims),
    db: AsyncSession = Depends(get_async_db),
) -> Admin:
    """
    Resolve the admin behind a valid token that is backed by a live,
    unexpired AdminSession row and an active account.
    """
    result = await db.execute(
        select(AdminSession).where(AdminSession.token == claims.token)
    )
    session = result.scalar_one_or_none()
    if session is None or ensure_aware(session.expires_at) <= utc_now():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin session expired or revoked",
        )

    admin = await db.get(Admin, session.admin_id)
    if admin is None or not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is disabled"
        )
    return admin


async def log_admin_audit(
    db: AsyncSession,
    request: Optional[Request],
    action: AuditAction,
    admin_id: Optional[uuid.UUID] = None,
    resource: Optional[str] = None,
    resource_id: Optional[Any] = None,
    details: Optional[dict] = None,
):
    """Log an audit event. The caller commits."""
    db.add(
        AdminAuditLog(
            admin_id=admin_id,
            action=action.value,
            resource=resource,
            resource_id=str(resource_id) if resource_id is not None else None,
            ip_address=get_client_ip(request) if request is not None else None,
            user_agent=request.headers.get("user-agent") if request is not None else None,
            details=details,
        )
    )


def user_uuid(current_user: AuthUser) -> uuid.UUID:
    try:
        return uuid.UUID(current_user.user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthorized")


async def get_order_or_404(db: AsyncSession, order_id: uuid.UUID) -> Order:
    order = await db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def order_to_response(order: Order) -> OrderResponse:
    """Serialize an order together with its customer-facing amounts."""
    response = OrderResponse.model_validate(order)
    response.display_amounts = DisplayAmountsOut(**get_display_amounts(order).to_dict())
    return response
