"""FastAPI application for the UniShopper shop service."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.shop_service.routers import (
    account_dashboard_router,
    accounts_router,
    addresses_router,
    admin_auth_router,
    admin_dashboard_router,
    admin_orders_router,
    capture_router,
    cart_router,
    checkout_router,
    location_router,
    orders_router,
    webhooks_router,
)
from slowapi.errors import RateLimitExceeded


def create_app() -> FastAPI:
    """Create and configure the shop service FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title="UniShopper Shop Service",
        version="0.1.0",
        description=(
            "Proxy shopping for Bangladesh - product capture, checkout, "
            "order fulfillment workflow and admin back-office."
        ),
    )

    # Add rate limiter state to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "shop"}

    # Storefront
    app.include_router(capture_router, prefix="/api")
    app.include_router(cart_router, prefix="/api")
    app.include_router(checkout_router, prefix="/api")
    app.include_router(location_router, prefix="/api")

    # Customer account
    app.include_router(accounts_router, prefix="/api")
    app.include_router(addresses_router, prefix="/api")
    app.include_router(orders_router, prefix="/api")
    app.include_router(account_dashboard_router, prefix="/api")

    # Payment provider callbacks
    app.include_router(webhooks_router, prefix="/api")

    # Admin back-office
    app.include_router(admin_auth_router, prefix="/api")
    app.include_router(admin_orders_router, prefix="/api")
    app.include_router(admin_dashboard_router, prefix="/api")

    return app


app = create_app()
