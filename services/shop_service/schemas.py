"""Pydantic schemas for shop service.

Request and response bodies use camelCase on the wire; Python code uses
snake_case attributes.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel
from services.shop_service.models import (
    AdminRole,
    DeliveredStatus,
    DomesticFulfillmentStatus,
    OrderStatus,
    PaymentStatus,
    ShippedToBdStatus,
    ShippedToUsStatus,
)

# Decimal internally, JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# ============================================================================
# ACCOUNT SCHEMAS
# ============================================================================


class SignupRequest(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field("", max_length=100)
    email: EmailStr
    password: str
    phone: Optional[str] = None


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserResponse(CamelModel):
    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    is_guest: bool = False
    created_at: datetime


class SessionResponse(CamelModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


# ============================================================================
# ADDRESS SCHEMAS
# ============================================================================


class AddressBase(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    street1: str = Field(..., min_length=1, max_length=255)
    street2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field("Bangladesh", max_length=100)
    phone: str = Field(..., min_length=5, max_length=50)


class AddressCreate(AddressBase):
    is_default: bool = False


class AddressUpdate(CamelModel):
    action: Optional[Literal["set-default"]] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    street1: Optional[str] = Field(None, min_length=1, max_length=255)
    street2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, min_length=1, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, min_length=5, max_length=50)

    # Omitting a field leaves it unchanged; only the optional lines may be cleared
    @field_validator(
        "first_name", "last_name", "street1", "city", "postal_code", "country", "phone"
    )
    @classmethod
    def not_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("This field cannot be cleared")
        return v


class AddressResponse(AddressBase):
    id: uuid.UUID
    is_default: bool
    created_at: datetime
    updated_at: datetime


class AddressValidationResponse(CamelModel):
    status: str = "VALID"
    is_valid: bool = True
    message: str = "Address accepted"


# ============================================================================
# CART / CHECKOUT SCHEMAS
# ============================================================================


class CartItemIn(CamelModel):
    id: str
    title: str = Field(..., min_length=1)
    price: Money
    quantity: int = Field(1, ge=1, le=99)
    original_price_value: Optional[Money] = None
    url: str = ""
    image: str = ""
    store: str = ""


class CartTotalsRequest(CamelModel):
    items: list[CartItemIn]


class CartTotalsResponse(CamelModel):
    subtotal: Money
    shipping_cost: Money
    service_charge: Money
    tax: Money
    total: Money
    item_count: int


class ShippingAddressIn(CamelModel):
    name: Optional[str] = None
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = Field(None, alias="postal_code")
    country: Optional[str] = None
    phone: Optional[str] = None


class CreatePaymentIntentRequest(CamelModel):
    items: list[CartItemIn] = Field(..., min_length=1)
    customer_email: Optional[EmailStr] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    address_id: Optional[uuid.UUID] = None
    shipping_address: Optional[ShippingAddressIn] = None


class CreatePaymentIntentResponse(CamelModel):
    client_secret: str
    payment_intent_id: str
    order_id: uuid.UUID
    order_number: int
    amount: int  # USD cents
    exchange_rate: Money


# ============================================================================
# PRODUCT CAPTURE SCHEMAS
# ============================================================================


class CaptureProductRequest(CamelModel):
    url: str = Field(..., min_length=1)


class CapturedProductOut(CamelModel):
    id: str
    url: str
    store: str
    store_name: str
    title: str
    price: Money
    original_currency: str
    original_price_value: Money
    original_list_price: Optional[Money] = None
    image: str
    rating: float
    review_count: int
    weight: Optional[Money] = None
    description: str = ""
    features: list[str] = []
    availability: str
    missing_fields: list[str] = []
    requires_approval: bool = False
    approved: bool = False


class CaptureProductResponse(CamelModel):
    success: bool
    product: Optional[CapturedProductOut] = None
    error: Optional[str] = None


class UpdateProductRequest(CamelModel):
    product: CapturedProductOut
    title: str
    price: Money
    currency: str = "BDT"
    image: Optional[str] = None


class ApproveProductRequest(CamelModel):
    product_id: str
    approved: bool


class ApproveProductResponse(CamelModel):
    success: bool
    product_id: str
    approved: bool
    message: str


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class DisplayAmountsOut(CamelModel):
    product_cost_bdt: Money
    service_charge_bdt: Money
    shipping_cost_bdt: Money
    tax_bdt: Money
    total_amount_bdt: Money
    shipping_only_bdt: Optional[Money] = None
    additional_fees_bdt: Optional[Money] = None
    fee_description: Optional[str] = None
    exchange_rate: Money
    is_updated: bool
    product_cost_usd: Optional[Money] = None
    service_charge_usd: Optional[Money] = None
    shipping_cost_usd: Optional[Money] = None
    tax_usd: Optional[Money] = None
    total_amount_usd: Optional[Money] = None
    shipping_only_usd: Optional[Money] = None
    additional_fees_usd: Optional[Money] = None


class OrderResponse(CamelModel):
    id: uuid.UUID
    order_number: int
    customer_email: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    items: list[dict[str, Any]]

    product_cost_bdt: Money
    service_charge_bdt: Money
    shipping_cost_bdt: Money
    tax_bdt: Money
    total_amount_bdt: Money
    exchange_rate: Optional[Money] = None

    final_pricing_updated: bool
    final_product_cost_bdt: Optional[Money] = None
    final_service_charge_bdt: Optional[Money] = None
    final_shipping_cost_bdt: Optional[Money] = None
    final_shipping_only_bdt: Optional[Money] = None
    final_additional_fees_bdt: Optional[Money] = None
    final_tax_bdt: Optional[Money] = None
    final_total_amount_bdt: Optional[Money] = None
    fee_description: Optional[str] = None
    final_items: Optional[list[dict[str, Any]]] = None

    status: OrderStatus
    payment_status: PaymentStatus
    shipped_to_us_status: ShippedToUsStatus
    shipped_to_bd_status: ShippedToBdStatus
    domestic_fulfillment_status: DomesticFulfillmentStatus
    delivered_status: DeliveredStatus

    shipping_address: Optional[dict[str, Any]] = None
    stripe_payment_intent_id: Optional[str] = None
    refund_deadline: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    display_amounts: Optional[DisplayAmountsOut] = None


class OrderListResponse(CamelModel):
    orders: list[OrderResponse]
    count: int


class UpdateCustomerInfoRequest(CamelModel):
    payment_intent_id: str
    shipping_address: ShippingAddressIn


class AccountOrderStats(CamelModel):
    total: int
    total_spent: Money
    status_breakdown: dict[str, int]


class AccountProfileStats(CamelModel):
    completion_percentage: int


class AccountActivity(CamelModel):
    has_orders: bool
    has_addresses: bool


class AccountDashboardStats(CamelModel):
    orders: AccountOrderStats
    profile: AccountProfileStats
    activity: AccountActivity


class RecentOrderItem(CamelModel):
    product_id: str
    title: str
    image: str
    price: Money
    quantity: int


class RecentOrder(CamelModel):
    id: uuid.UUID
    order_number: int
    status: OrderStatus
    payment_status: PaymentStatus
    total_amount_bdt: Money
    item_count: int
    items: list[RecentOrderItem]
    has_more_items: bool
    created_at: datetime
    updated_at: datetime


class RecentOrdersResponse(CamelModel):
    orders: list[RecentOrder]
    total: int


# ============================================================================
# ADMIN SCHEMAS
# ============================================================================


class AdminLoginRequest(CamelModel):
    username: str = Field(..., min_length=1, description="Username or email")
    password: str = Field(..., min_length=1)


class AdminResponse(CamelModel):
    id: uuid.UUID
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: AdminRole
    permissions: list[str] = []
    last_login_at: Optional[datetime] = None


class AdminLoginResponse(CamelModel):
    success: bool = True
    admin: AdminResponse
    expires_at: datetime


class StatusUpdateRequest(CamelModel):
    # Plain strings: the workflow validates both and answers 400 with the valid set
    status_type: str
    value: str


class StatusUpdateResponse(CamelModel):
    success: bool
    message: str
    order_id: uuid.UUID
    updated_fields: dict[str, str]


class FinalItemIn(CamelModel):
    id: str
    final_price_bdt: Money
    final_price_usd: Optional[Money] = None


class PricingUpdateRequest(CamelModel):
    exchange_rate: Money = Field(..., gt=0)
    final_product_cost_bdt: Money
    final_service_charge_bdt: Money
    final_shipping_cost_bdt: Money
    final_tax_bdt: Money
    final_total_amount_bdt: Money

    final_shipping_only_bdt: Optional[Money] = None
    final_additional_fees_bdt: Optional[Money] = None
    fee_description: Optional[str] = None
    final_product_cost_usd: Optional[Money] = None
    final_service_charge_usd: Optional[Money] = None
    final_shipping_cost_usd: Optional[Money] = None
    final_shipping_only_usd: Optional[Money] = None
    final_additional_fees_usd: Optional[Money] = None
    final_tax_usd: Optional[Money] = None
    final_total_amount_usd: Optional[Money] = None
    final_items: Optional[list[FinalItemIn]] = None

    @field_validator(
        "final_product_cost_bdt",
        "final_service_charge_bdt",
        "final_shipping_cost_bdt",
        "final_tax_bdt",
        "final_total_amount_bdt",
    )
    @classmethod
    def non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Amounts cannot be negative")
        return v


class PricingUpdateResponse(CamelModel):
    success: bool
    message: str
    order: OrderResponse


class DeliveryOptionsRequest(CamelModel):
    warehouse_location: str = "Bangladesh Warehouse"
    package_weight: str = "To be calculated"
    arrival_date: Optional[str] = None
    home_delivery_estimate: str = "2-3 business days"
    home_delivery_fee: Money = Decimal("150")
    pickup_available_date: str = "Available now"
    pickup_hours: str = "10:00 AM - 6:00 PM"
    pickup_address: str = (
        "UniShopper Dhaka Office\n123 Main Street, Dhanmondi\nDhaka 1205, Bangladesh"
    )
    support_phone: str = "+880 1234567890"
    whatsapp_number: str = "+880 1234567890"


class StageEmailRequest(CamelModel):
    # Stored on the order before pickup emails are sent
    pickup_details: Optional[dict[str, Any]] = None


class SendEmailResponse(CamelModel):
    success: bool
    message: str
    event_id: Optional[str] = None
    updated_fields: dict[str, str] = {}


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AdminOrderListResponse(CamelModel):
    orders: list[OrderResponse]
    pagination: Pagination


class DashboardStats(CamelModel):
    total_orders: int
    pending_payment: int
    paid_orders: int
    cancelled_orders: int
    awaiting_us_arrival: int
    in_international_transit: int
    awaiting_domestic_fulfillment: int
    completed_orders: int
    total_customers: int
    total_revenue_bdt: Money


class CustomerSummary(CamelModel):
    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    is_guest: bool
    order_count: int
    total_spent_bdt: Money
    created_at: datetime


class CustomerListResponse(CamelModel):
    customers: list[CustomerSummary]
    pagination: Pagination


class PaymentCustomer(CamelModel):
    name: str
    email: str


class PaymentAmount(CamelModel):
    bdt: Money
    usd: Money
    formatted_bdt: str
    formatted_usd: str


class AdminPaymentOut(CamelModel):
    id: uuid.UUID
    order_number: int
    customer: PaymentCustomer
    amount: PaymentAmount
    status: OrderStatus
    payment_status: PaymentStatus
    stripe_payment_intent_id: str = ""
    payment_method: str = "Stripe"
    created_at: datetime
    updated_at: datetime


class PaymentSummary(CamelModel):
    pending_confirmation: int
    confirmed_today: int
    total_confirmed: int
    total_amount: Money
    formatted_total_amount: str


class AdminPaymentListResponse(CamelModel):
    payments: list[AdminPaymentOut]
    pagination: Pagination
    summary: PaymentSummary


# ============================================================================
# LOCATION SCHEMAS
# ============================================================================


class LocationOut(CamelModel):
    country: str
    country_code: str
    region: Optional[str] = None
    city: Optional[str] = None
    timezone: Optional[str] = None
    is_bangladesh: bool
    detection_method: str
    confidence: float


class LocationResponse(CamelModel):
    success: bool = True
    location: LocationOut
    ip: str
