"""Shop Service models package."""

from services.shop_service.models.account import Address, User
from services.shop_service.models.admin import Admin, AdminAuditLog, AdminSession
from services.shop_service.models.enums import (
    AdminRole,
    AuditAction,
    DeliveredStatus,
    DomesticFulfillmentStatus,
    OrderStatus,
    PaymentStatus,
    ShippedToBdStatus,
    ShippedToUsStatus,
)
from services.shop_service.models.order import Order

__all__ = [
    "Address",
    "Admin",
    "AdminAuditLog",
    "AdminRole",
    "AdminSession",
    "AuditAction",
    "DeliveredStatus",
    "DomesticFulfillmentStatus",
    "Order",
    "OrderStatus",
    "PaymentStatus",
    "ShippedToBdStatus",
    "ShippedToUsStatus",
    "User",
]
