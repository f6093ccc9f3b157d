"""Rate limiting configuration for the UniShopper API.

Uses slowapi. Limiter state lives in the configured storage backend
(in-process memory by default) so it resets on restart and is not shared
between instances unless RATE_LIMIT_STORAGE_URI points at a shared store.
"""

from functools import lru_cache
from typing import Callable, Mapping, Optional

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings


def client_ip_from_headers(headers: Mapping[str, str], fallback: Optional[str] = None) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then Cloudflare's header."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return headers.get("x-real-ip") or headers.get("cf-connecting-ip") or fallback or ""


def get_client_ip(request: Request) -> str:
    """Client IP behind the CDN and load balancer, else the peer address."""
    return client_ip_from_headers(request.headers, get_remote_address(request))


def _get_user_or_ip(request: Request) -> str:
    """
    Rate limit by principal if authenticated, otherwise by IP.

    Admin principals arrive already prefixed with "admin:".
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return user_id if user_id.startswith("admin:") else f"user:{user_id}"
    return f"ip:{get_client_ip(request)}"


@lru_cache
def get_limiter() -> Limiter:
    """
    Create and return a cached Limiter instance.
    """
    settings = get_settings()

    return Limiter(
        key_func=_get_user_or_ip,
        default_limits=["100/minute"],
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """
    Custom handler for rate limit exceeded errors.

    Returns a JSON response with clear error message and retry-after header.
    """
    retry_after = exc.detail.split("per")[0].strip() if exc.detail else "1 minute"

    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded. Try again in {retry_after}.",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={
            "Retry-After": str(getattr(exc, "retry_after", 60)),
            "X-RateLimit-Limit": str(getattr(exc, "limit", "unknown")),
        },
    )


# Decorator shortcuts for common rate limit tiers
def auth_limit(func: Callable) -> Callable:
    """Apply strict limit for signup and login, customer and admin (5/minute)."""
    return limiter.limit("5/minute")(func)


def payment_limit(func: Callable) -> Callable:
    """Apply checkout limit: each call creates an order and a Stripe intent (10/minute)."""
    return limiter.limit("10/minute")(func)


def capture_limit(func: Callable) -> Callable:
    """Apply the product capture limit (15/hour per client)."""
    return limiter.limit("15/hour")(func)


def api_limit(func: Callable) -> Callable:
    """Apply standard rate limit for general API endpoints (100/minute)."""
    return limiter.limit("100/minute")(func)


def admin_limit(func: Callable) -> Callable:
    """Apply back-office limit, keyed per admin (200/minute)."""
    return limiter.limit("200/minute")(func)
