"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    order = OrderFactory.create(customer_email="custom@test.com")
    db_session.add(order)
    await db_session.commit()
"""

import itertools
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

TEST_PASSWORD = "Sup3r$ecret"

_order_numbers = itertools.count(100000)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex[:8]}@test.com"


def _password_hash() -> str:
    from libs.auth.security import hash_password

    return hash_password(TEST_PASSWORD)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class UserFactory:
    @staticmethod
    def create(**overrides):
        from services.shop_service.models import User

        defaults = {
            "id": _uuid(),
            "email": _unique_email(),
            "first_name": "Rahim",
            "last_name": "Uddin",
            "phone": "+8801711000000",
            "password_hash": None,
            "is_guest": False,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return User(**defaults)


class AddressFactory:
    @staticmethod
    def create(user_id, **overrides):
        from services.shop_service.models import Address

        defaults = {
            "id": _uuid(),
            "user_id": user_id,
            "first_name": "Rahim",
            "last_name": "Uddin",
            "street1": "House 12, Road 5",
            "street2": None,
            "city": "Dhaka",
            "state": "Dhaka Division",
            "postal_code": "1205",
            "country": "Bangladesh",
            "phone": "+8801711000000",
            "is_default": False,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Address(**defaults)


# ---------------------------------------------------------------------------
# Admins
# ---------------------------------------------------------------------------


class AdminFactory:
    @staticmethod
    def create(**overrides):
        from services.shop_service.models import Admin, AdminRole

        defaults = {
            "id": _uuid(),
            "username": f"admin-{uuid.uuid4().hex[:6]}",
            "email": _unique_email(),
            "password_hash": _password_hash(),
            "first_name": "Shop",
            "last_name": "Admin",
            "role": AdminRole.ADMIN,
            "permissions": ["orders:read", "orders:write"],
            "is_active": True,
            "login_attempts": 0,
            "locked_until": None,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Admin(**defaults)


class AdminSessionFactory:
    @staticmethod
    def create(admin, **overrides):
        from libs.auth.security import create_admin_token
        from services.shop_service.models import AdminSession

        defaults = {
            "id": _uuid(),
            "admin_id": admin.id,
            "token": create_admin_token(str(admin.id), admin.email, admin.role.value),
            "ip_address": "127.0.0.1",
            "user_agent": "pytest",
            "expires_at": _now() + timedelta(hours=8),
            "created_at": _now(),
        }
        defaults.update(overrides)
        return AdminSession(**defaults)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class OrderFactory:
    """A paid-for-nothing-yet order: one item, estimate pricing at 120 BDT/USD."""

    @staticmethod
    def create(**overrides):
        from services.shop_service.models import (
            DeliveredStatus,
            DomesticFulfillmentStatus,
            Order,
            OrderStatus,
            PaymentStatus,
            ShippedToBdStatus,
            ShippedToUsStatus,
        )

        defaults = {
            "id": _uuid(),
            "order_number": next(_order_numbers),
            "user_id": None,
            "customer_email": _unique_email(),
            "customer_name": "Rahim Uddin",
            "customer_phone": "+8801711000000",
            "items": [
                {
                    "id": "amazon-1",
                    "title": "Wireless Earbuds",
                    "price": 6000.0,
                    "quantity": 2,
                    "originalPriceValue": 50.0,
                    "url": "https://www.amazon.com/dp/B0TESTASIN",
                    "image": "https://m.media-amazon.com/images/I/earbuds.jpg",
                    "store": "amazon",
                }
            ],
            "product_cost_bdt": Decimal("12000.00"),
            "service_charge_bdt": Decimal("600.00"),
            "shipping_cost_bdt": Decimal("0.00"),
            "tax_bdt": Decimal("1065.00"),
            "total_amount_bdt": Decimal("13665.00"),
            "product_cost_usd": Decimal("100.00"),
            "service_charge_usd": Decimal("5.00"),
            "shipping_cost_usd": Decimal("0.00"),
            "tax_usd": Decimal("8.88"),
            "total_amount_usd": Decimal("113.88"),
            "exchange_rate": Decimal("120"),
            "final_pricing_updated": False,
            "status": OrderStatus.PENDING,
            "payment_status": PaymentStatus.PENDING,
            "shipped_to_us_status": ShippedToUsStatus.PENDING,
            "shipped_to_bd_status": ShippedToBdStatus.PENDING,
            "domestic_fulfillment_status": DomesticFulfillmentStatus.PENDING,
            "delivered_status": DeliveredStatus.PENDING,
            "final_items": None,
            "shipping_address": {
                "name": "Rahim Uddin",
                "line1": "House 12, Road 5",
                "city": "Dhaka",
                "postal_code": "1205",
                "country": "BD",
            },
            "stripe_payment_intent_id": f"pi_{uuid.uuid4().hex[:12]}",
            "refund_deadline": _now() + timedelta(hours=24),
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Order(**defaults)


def with_final_pricing(order, **overrides):
    """Mark ``order`` as carrying admin-confirmed final pricing."""
    values = {
        "final_pricing_updated": True,
        "final_product_cost_bdt": Decimal("12500.00"),
        "final_service_charge_bdt": Decimal("625.00"),
        "final_shipping_cost_bdt": Decimal("2400.00"),
        "final_shipping_only_bdt": Decimal("2000.00"),
        "final_additional_fees_bdt": Decimal("400.00"),
        "fee_description": "Customs handling",
        "final_tax_bdt": Decimal("1109.00"),
        "final_total_amount_bdt": Decimal("16634.00"),
    }
    values.update(overrides)
    for name, value in values.items():
        setattr(order, name, value)
    return order


def auth_headers_for(user) -> dict:
    """Bearer header carrying a customer session for ``user``."""
    from libs.auth.security import create_session_token

    token = create_session_token(str(user.id), user.email, user.full_name)
    return {"Authorization": f"Bearer {token}"}
