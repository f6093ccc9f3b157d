"""Admin authentication: cookie sessions backed by AdminSession rows."""

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from libs.auth.dependencies import get_admin_claims
from libs.auth.models import AdminPrincipal
from libs.auth.security import create_admin_token, verify_password
from libs.common.config import get_settings
from libs.common.datetime_utils import ensure_aware, utc_now
from libs.common.logging import get_logger
from libs.common.rate_limit import auth_limit, get_client_ip
from libs.db.session import get_async_db
from services.shop_service.models import Admin, AdminSession, AuditAction
from services.shop_service.routers._helpers import get_current_admin, log_admin_audit
from services.shop_service.schemas import (
    AdminLoginRequest,
    AdminLoginResponse,
    AdminResponse,
)
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/admin/auth", tags=["admin-auth"])


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


@router.post("/login", response_model=AdminLoginResponse)
@auth_limit
async def admin_login(
    payload: AdminLoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
):
    """Authenticate by username or email. Repeated failures lock the account."""
    identifier = payload.username.strip()
    result = await db.execute(
        select(Admin).where(
            or_(
                Admin.username == identifier,
                func.lower(Admin.email) == identifier.lower(),
            )
        )
    )
    admin = result.scalar_one_or_none()

    if admin is None:
        await log_admin_audit(
            db,
            request,
            AuditAction.ADMIN_LOGIN_FAILED,
            details={"username": identifier, "reason": "unknown_admin"},
        )
        await db.commit()
        raise _unauthorized("Invalid credentials")

    if not admin.is_active:
        raise _unauthorized("Account is disabled")

    now = utc_now()
    locked_until = ensure_aware(admin.locked_until)
    if locked_until and locked_until > now:
        raise _unauthorized("Account is temporarily locked")

    if not verify_password(payload.password, admin.password_hash):
        admin.login_attempts = (admin.login_attempts or 0) + 1
        if admin.login_attempts >= settings.ADMIN_MAX_LOGIN_ATTEMPTS:
            admin.locked_until = now + timedelta(minutes=settings.ADMIN_LOCKOUT_MINUTES)
            logger.warning(
                f"Admin {admin.username} locked after {admin.login_attempts} failed logins"
            )
        await log_admin_audit(
            db,
            request,
            AuditAction.ADMIN_LOGIN_FAILED,
            admin_id=admin.id,
            details={"attempts": admin.login_attempts, "reason": "bad_password"},
        )
        await db.commit()
        raise _unauthorized("Invalid credentials")

    admin.login_attempts = 0
    admin.locked_until = None
    admin.last_login_at = now
    admin.last_login_ip = get_client_ip(request)

    token = create_admin_token(str(admin.id), admin.email, admin.role.value)
    expires_at = now + timedelta(hours=settings.ADMIN_SESSION_HOURS)
    db.add(
        AdminSession(
            admin_id=admin.id,
            token=token,
            ip_address=admin.last_login_ip,
            user_agent=request.headers.get("user-agent"),
            expires_at=expires_at,
        )
    )
    await log_admin_audit(
        db,
        request,
        AuditAction.ADMIN_LOGIN,
        admin_id=admin.id,
        details={"method": "password", "success": True},
    )
    await db.commit()
    await db.refresh(admin)

    response.set_cookie(
        key=settings.ADMIN_COOKIE_NAME,
        value=token,
        max_age=settings.ADMIN_SESSION_HOURS * 3600,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
        path="/",
    )
    logger.info(f"Admin {admin.username} logged in")
    return AdminLoginResponse(admin=AdminResponse.model_validate(admin), expires_at=expires_at)


@router.post("/logout")
async def admin_logout(
    request: Request,
    response: Response,
    claims: AdminPrincipal = Depends(get_admin_claims),
    admin: Admin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Revoke the current admin session and clear the cookie."""
    await db.execute(delete(AdminSession).where(AdminSession.token == claims.token))
    await log_admin_audit(db, request, AuditAction.ADMIN_LOGOUT, admin_id=admin.id)
    await db.commit()

    response.delete_cookie(settings.ADMIN_COOKIE_NAME, path="/")
    return {"success": True}


@router.get("/me", response_model=AdminResponse)
async def get_admin_me(admin: Admin = Depends(get_current_admin)):
    return admin
