"""Enum definitions for shop service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


# ----------------------------------------------------------------------------
# Fulfillment workflow fields
# ----------------------------------------------------------------------------


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class ShippedToUsStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"


class ShippedToBdStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"


class DomesticFulfillmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PICKUP = "PICKUP"
    DELIVERY = "DELIVERY"


class DeliveredStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PICKUP_COMPLETE = "PICKUP_COMPLETE"
    DELIVERY_COMPLETE = "DELIVERY_COMPLETE"


# ----------------------------------------------------------------------------
# Admin
# ----------------------------------------------------------------------------


class AdminRole(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"


class AuditAction(str, enum.Enum):
    ADMIN_LOGIN = "ADMIN_LOGIN"
    ADMIN_LOGIN_FAILED = "ADMIN_LOGIN_FAILED"
    ADMIN_LOGOUT = "ADMIN_LOGOUT"
    UPDATE_ORDER_STATUS = "UPDATE_ORDER_STATUS"
    UPDATE_ORDER_PRICING = "UPDATE_ORDER_PRICING"
    SEND_ORDER_EMAIL = "SEND_ORDER_EMAIL"
    APPROVE_PRODUCT = "APPROVE_PRODUCT"
