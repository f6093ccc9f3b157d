from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError

from libs.auth.models import AdminPrincipal, AuthUser
from libs.auth.security import (
    InvalidTokenError,
    decode_admin_token,
    decode_session_token,
)
from libs.common.config import get_settings
from libs.common.logging import set_user_context

security = HTTPBearer(auto_error=False)


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_optional_user(
    request: Request,
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[AuthUser]:
    """
    Return the customer behind a valid session token, or None for guests.

    A present but invalid token is still rejected.
    """
    if token is None:
        return None

    try:
        payload = decode_session_token(token.credentials)
        user = AuthUser(**payload)
    except (InvalidTokenError, ValidationError):
        raise _credentials_exception()

    request.state.user_id = user.user_id
    set_user_context(user.user_id)
    return user


async def get_current_user(
    user: Annotated[Optional[AuthUser], Depends(get_optional_user)],
) -> AuthUser:
    """
    Validate the customer session JWT and return the authenticated user.
    """
    if user is None:
        raise _credentials_exception("Unauthorized")
    return user


async def get_admin_claims(
    request: Request,
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> AdminPrincipal:
    """
    Decode the admin session from the httpOnly cookie (or a Bearer header).

    This only checks the signature and expiry. Services must additionally
    confirm the session is still live in their AdminSession table.
    """
    settings = get_settings()
    raw = request.cookies.get(settings.ADMIN_COOKIE_NAME)
    if not raw and token is not None:
        raw = token.credentials
    if not raw:
        raise _credentials_exception("Admin authentication required")

    try:
        payload = decode_admin_token(raw)
        principal = AdminPrincipal(**payload, token=raw)
    except (InvalidTokenError, ValidationError):
        raise _credentials_exception("Invalid or expired admin session")

    request.state.user_id = f"admin:{principal.admin_id}"
    set_user_context(f"admin:{principal.admin_id}")
    return principal
