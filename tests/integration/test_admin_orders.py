"""Integration tests for admin order management: workflow status, final
pricing and lifecycle emails."""

import uuid

import pytest
from services.shop_service.models import (
    AdminAuditLog,
    DomesticFulfillmentStatus,
    PaymentStatus,
    ShippedToUsStatus,
)
from sqlalchemy import select
from tests.factories import OrderFactory, with_final_pricing

PRICING_PAYLOAD = {
    "exchangeRate": 125,
    "finalProductCostBdt": 12500,
    "finalServiceChargeBdt": 625,
    "finalShippingCostBdt": 2500,
    "finalShippingOnlyBdt": 2100,
    "finalAdditionalFeesBdt": 400,
    "feeDescription": "Customs handling",
    "finalTaxBdt": 1125,
    "finalTotalAmountBdt": 16750,
}


async def _audit_actions(db_session) -> list[str]:
    result = await db_session.execute(select(AdminAuditLog.action))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_routes_require_session(client, order):
    response = await client.get(f"/api/admin/orders/{order.id}")
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_token_is_not_an_admin_session(client, order, customer_headers):
    response = await client.get(f"/api/admin/orders/{order.id}", headers=customer_headers)
    assert response.status_code == 401


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_orders_paginates(admin_client, db_session):
    for _ in range(3):
        db_session.add(OrderFactory.create())
    await db_session.commit()

    response = await admin_client.get("/api/admin/orders", params={"limit": 2})

    assert response.status_code == 200
    data = response.json()
    assert len(data["orders"]) == 2
    assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_orders_search_by_email(admin_client, db_session):
    db_session.add(OrderFactory.create(customer_email="findme@shopper.com"))
    db_session.add(OrderFactory.create())
    await db_session.commit()

    response = await admin_client.get("/api/admin/orders", params={"search": "FINDME"})

    data = response.json()
    assert data["pagination"]["total"] == 1
    assert data["orders"][0]["customerEmail"] == "findme@shopper.com"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_order_includes_display_amounts(admin_client, order):
    response = await admin_client.get(f"/api/admin/orders/{order.id}")

    assert response.status_code == 200
    data = response.json()
    assert data["orderNumber"] == order.order_number
    assert data["displayAmounts"]["totalAmountBdt"] == 13665.0
    assert data["displayAmounts"]["isUpdated"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_missing_order_is_404(admin_client):
    response = await admin_client.get(f"/api/admin/orders/{uuid.uuid4()}")
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Workflow status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_paid_status_cascades_and_is_audited(admin_client, order, db_session):
    response = await admin_client.post(
        f"/api/admin/orders/{order.id}/update-status",
        json={"statusType": "paymentStatus", "value": "PAID"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "paymentStatus updated to PAID"
    assert data["updatedFields"] == {"paymentStatus": "PAID", "shippedToUsStatus": "PROCESSING"}

    await db_session.refresh(order)
    assert order.payment_status == PaymentStatus.PAID
    assert order.shipped_to_us_status == ShippedToUsStatus.PROCESSING

    log = (
        await db_session.execute(
            select(AdminAuditLog).where(AdminAuditLog.action == "UPDATE_ORDER_STATUS")
        )
    ).scalar_one()
    assert log.resource_id == str(order.id)
    assert log.details["previous"] == {"paymentStatus": "PENDING", "shippedToUsStatus": "PENDING"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_bd_complete_cascades_domestic_processing(admin_client, order, db_session):
    response = await admin_client.post(
        f"/api/admin/orders/{order.id}/update-status",
        json={"statusType": "shippedToBdStatus", "value": "COMPLETE"},
    )

    assert response.status_code == 200
    await db_session.refresh(order)
    assert order.domestic_fulfillment_status == DomesticFulfillmentStatus.PROCESSING


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_status_type_rejected(admin_client, order):
    response = await admin_client.post(
        f"/api/admin/orders/{order.id}/update-status",
        json={"statusType": "trackingStatus", "value": "PENDING"},
    )
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid statusType")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_status_value_rejected_without_changes(admin_client, order, db_session):
    response = await admin_client.post(
        f"/api/admin/orders/{order.id}/update-status",
        json={"statusType": "paymentStatus", "value": "SETTLED"},
    )

    assert response.status_code == 400
    assert "Valid values: PENDING, PROCESSING, PAID, FAILED, REFUNDED" in response.json()["detail"]
    await db_session.refresh(order)
    assert order.payment_status == PaymentStatus.PENDING
    assert "UPDATE_ORDER_STATUS" not in await _audit_actions(db_session)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_status_missing_order(admin_client):
    response = await admin_client.post(
        f"/api/admin/orders/{uuid.uuid4()}/update-status",
        json={"statusType": "paymentStatus", "value": "PAID"},
    )
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Final pricing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_pricing_supersedes_estimate(admin_client, order, db_session):
    response = await admin_client.post(
        f"/api/admin/orders/{order.id}/update-pricing", json=PRICING_PAYLOAD
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    amounts = body["order"]["displayAmounts"]
    assert amounts["isUpdated"] is True
    assert amounts["totalAmountBdt"] == 16750.0
    assert amounts["shippingCostUsd"] == 20.0
    assert amounts["feeDescription"] == "Customs handling"

    await db_session.refresh(order)
    assert order.final_pricing_updated is True
    assert "UPDATE_ORDER_PRICING" in await _audit_actions(db_session)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_pricing_with_itemized_prices(admin_client, order):
    payload = {**PRICING_PAYLOAD, "finalItems": [{"id": "amazon-1", "finalPriceBdt": 6300}]}

    response = await admin_client.post(
        f"/api/admin/orders/{order.id}/update-pricing", json=payload
    )

    assert response.status_code == 200
    data = response.json()["order"]
    assert data["finalItems"] == [{"id": "amazon-1", "finalPriceBdt": 6300.0, "finalPriceUsd": None}]
    assert data["displayAmounts"]["productCostBdt"] == 12600.0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_pricing_requires_all_final_fields(admin_client, order):
    payload = {k: v for k, v in PRICING_PAYLOAD.items() if k != "finalTaxBdt"}
    response = await admin_client.post(
        f"/api/admin/orders/{order.id}/update-pricing", json=payload
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid request data"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_pricing_rejects_negative_amounts(admin_client, order):
    response = await admin_client.post(
        f"/api/admin/orders/{order.id}/update-pricing",
        json={**PRICING_PAYLOAD, "finalShippingCostBdt": -1},
    )
    assert response.status_code == 400


# ---------------------------------------------------------------------------
# Lifecycle emails
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_price_confirmation_email_moves_payment_to_processing(
    admin_client, db_session, customer, klaviyo_transport
):
    order = with_final_pricing(OrderFactory.create(user_id=customer.id))
    db_session.add(order)
    await db_session.commit()

    response = await admin_client.post(f"/api/admin/orders/{order.id}/send-confirmation-email")

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == f"confirmation email sent to {order.customer_email}"
    assert data["updatedFields"] == {"paymentStatus": "PROCESSING"}

    event = klaviyo_transport.json_bodies("/events/")[0]["data"]["attributes"]
    assert event["metric"]["data"]["attributes"]["name"] == "Price Confirmation"
    assert event["properties"]["total_amount_bdt"] == 16634.0

    await db_session.refresh(order)
    assert order.payment_status == PaymentStatus.PROCESSING
    assert "SEND_ORDER_EMAIL" in await _audit_actions(db_session)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_price_confirmation_blocked_without_final_pricing(admin_client, order, klaviyo_transport):
    response = await admin_client.post(f"/api/admin/orders/{order.id}/send-confirmation-email")

    assert response.status_code == 400
    assert "Final pricing must be updated" in response.json()["detail"]
    assert klaviyo_transport.requests == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_pickup_email_status_mismatch_sends_nothing(admin_client, order, klaviyo_transport):
    response = await admin_client.post(f"/api/admin/orders/{order.id}/send-pickup-email")

    assert response.status_code == 400
    assert response.json()["detail"] == (
        "Pickup confirmation email can only be sent when domestic fulfillment "
        "status is PICKUP. Current status: PENDING"
    )
    assert klaviyo_transport.requests == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_pickup_email_with_details(admin_client, db_session, klaviyo_transport):
    order = OrderFactory.create(domestic_fulfillment_status=DomesticFulfillmentStatus.PICKUP)
    db_session.add(order)
    await db_session.commit()

    response = await admin_client.post(
        f"/api/admin/orders/{order.id}/send-pickup-email",
        json={"pickupDetails": {"code": "PK-7", "window": "10am-6pm"}},
    )

    assert response.status_code == 200
    properties = klaviyo_transport.json_bodies("/events/")[0]["data"]["attributes"]["properties"]
    assert properties["pickup_details"] == {"code": "PK-7", "window": "10am-6pm"}
    await db_session.refresh(order)
    assert order.pickup_details == {"code": "PK-7", "window": "10am-6pm"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_informational_email_has_no_precondition(admin_client, order, klaviyo_transport):
    response = await admin_client.post(f"/api/admin/orders/{order.id}/send-us-facility-email")

    assert response.status_code == 200
    assert response.json()["updatedFields"] == {}
    assert len(klaviyo_transport.json_bodies("/events/")) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delivery_options_email_stores_offer(admin_client, order, db_session, klaviyo_transport):
    response = await admin_client.post(
        f"/api/admin/orders/{order.id}/send-delivery-options-email",
        json={"warehouseLocation": "Dhaka Hub", "homeDeliveryFee": 180},
    )

    assert response.status_code == 200
    properties = klaviyo_transport.json_bodies("/events/")[0]["data"]["attributes"]["properties"]
    assert properties["warehouse_location"] == "Dhaka Hub"

    await db_session.refresh(order)
    assert order.warehouse_location == "Dhaka Hub"
    assert order.notes["awaitingDeliveryChoice"] is True
    assert order.delivery_options_sent_at is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_email_stage_is_rejected(admin_client, order):
    response = await admin_client.post(f"/api/admin/orders/{order.id}/send-birthday-email")
    assert response.status_code == 400
