"""Order model: pricing in two currencies, estimate vs. final, and the
five fulfillment workflow fields."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.shop_service.models.enums import (
    DeliveredStatus,
    DomesticFulfillmentStatus,
    OrderStatus,
    PaymentStatus,
    ShippedToBdStatus,
    ShippedToUsStatus,
    enum_values,
)
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Order(Base):
    """Customer orders. Never hard-deleted; cancellation is a status."""

    __tablename__ = "shop_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[int] = mapped_column(Integer, unique=True, index=True)

    # Customer
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("shop_users.id", ondelete="SET NULL"), index=True, nullable=True
    )
    customer_email: Mapped[str] = mapped_column(String(255))
    customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Product snapshots: [{id, title, price, quantity, image, url, store, originalPriceValue}]
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)

    # ------------------------------------------------------------------
    # Estimate pricing (set at checkout)
    # ------------------------------------------------------------------
    product_cost_bdt: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    service_charge_bdt: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    shipping_cost_bdt: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    tax_bdt: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    total_amount_bdt: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    product_cost_usd: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    service_charge_usd: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    shipping_cost_usd: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    tax_usd: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    total_amount_usd: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    # BDT per USD; read paths fall back to the configured default when unset
    exchange_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 4), nullable=True
    )

    # ------------------------------------------------------------------
    # Final pricing (admin-confirmed); authoritative once final_pricing_updated
    # ------------------------------------------------------------------
    final_pricing_updated: Mapped[bool] = mapped_column(Boolean, default=False)
    final_product_cost_bdt: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_service_charge_bdt: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_shipping_cost_bdt: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_shipping_only_bdt: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_additional_fees_bdt: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_tax_bdt: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_total_amount_bdt: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    final_product_cost_usd: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_service_charge_usd: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_shipping_cost_usd: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_shipping_only_usd: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_additional_fees_usd: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_tax_usd: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    final_total_amount_usd: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    fee_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # [{id, finalPriceBdt, finalPriceUsd?}]
    final_items: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(
        JSONType, nullable=True
    )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, values_callable=enum_values, name="shop_order_status_enum"),
        default=OrderStatus.PENDING,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, values_callable=enum_values, name="shop_payment_status_enum"),
        default=PaymentStatus.PENDING,
    )
    shipped_to_us_status: Mapped[ShippedToUsStatus] = mapped_column(
        SAEnum(
            ShippedToUsStatus,
            values_callable=enum_values,
            name="shop_shipped_to_us_status_enum",
        ),
        default=ShippedToUsStatus.PENDING,
    )
    shipped_to_bd_status: Mapped[ShippedToBdStatus] = mapped_column(
        SAEnum(
            ShippedToBdStatus,
            values_callable=enum_values,
            name="shop_shipped_to_bd_status_enum",
        ),
        default=ShippedToBdStatus.PENDING,
    )
    domestic_fulfillment_status: Mapped[DomesticFulfillmentStatus] = mapped_column(
        SAEnum(
            DomesticFulfillmentStatus,
            values_callable=enum_values,
            name="shop_domestic_fulfillment_status_enum",
        ),
        default=DomesticFulfillmentStatus.PENDING,
    )
    delivered_status: Mapped[DeliveredStatus] = mapped_column(
        SAEnum(
            DeliveredStatus,
            values_callable=enum_values,
            name="shop_delivered_status_enum",
        ),
        default=DeliveredStatus.PENDING,
    )

    # Shipping / payment
    shipping_address: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSONType, nullable=True
    )
    stripe_payment_intent_id: Mapped[Optional[str]] = mapped_column(
        String(255), index=True, nullable=True
    )
    refund_deadline: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Delivery options offered to the customer
    warehouse_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    home_delivery_fee: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    pickup_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivery_options_sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    pickup_details: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSONType, nullable=True
    )
    notes: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )
