"""Shop service routers package."""

from services.shop_service.routers.accounts import router as accounts_router
from services.shop_service.routers.addresses import router as addresses_router
from services.shop_service.routers.admin_auth import router as admin_auth_router
from services.shop_service.routers.admin_dashboard import (
    router as admin_dashboard_router,
)
from services.shop_service.routers.admin_orders import router as admin_orders_router
from services.shop_service.routers.capture import router as capture_router
from services.shop_service.routers.cart import router as cart_router
from services.shop_service.routers.checkout import router as checkout_router
from services.shop_service.routers.location import router as location_router
from services.shop_service.routers.orders import (
    dashboard_router as account_dashboard_router,
)
from services.shop_service.routers.orders import router as orders_router
from services.shop_service.routers.webhooks import router as webhooks_router

__all__ = [
    "account_dashboard_router",
    "accounts_router",
    "addresses_router",
    "admin_auth_router",
    "admin_dashboard_router",
    "admin_orders_router",
    "capture_router",
    "cart_router",
    "checkout_router",
    "location_router",
    "orders_router",
    "webhooks_router",
]
