"""Unit tests for Stripe webhook signature verification and the API client."""

import httpx
import pytest
from services.shop_service.stripe_client import (
    StripeClient,
    StripeError,
    compute_signature,
    verify_webhook_signature,
)

SECRET = "whsec_unit"
PAYLOAD = b'{"id":"evt_1","type":"payment_intent.succeeded"}'
NOW = 1_700_000_000


def _header(timestamp=NOW, payload=PAYLOAD, secret=SECRET) -> str:
    return f"t={timestamp},v1={compute_signature(payload, timestamp, secret)}"


@pytest.mark.unit
def test_valid_signature():
    assert verify_webhook_signature(PAYLOAD, _header(), SECRET, now=NOW) is True


@pytest.mark.unit
def test_any_matching_v1_signature_is_accepted():
    header = f"t={NOW},v1=deadbeef,v1={compute_signature(PAYLOAD, NOW, SECRET)}"
    assert verify_webhook_signature(PAYLOAD, header, SECRET, now=NOW) is True


@pytest.mark.unit
def test_tampered_payload_rejected():
    assert verify_webhook_signature(PAYLOAD + b" ", _header(), SECRET, now=NOW) is False


@pytest.mark.unit
def test_wrong_secret_rejected():
    assert verify_webhook_signature(PAYLOAD, _header(secret="other"), SECRET, now=NOW) is False


@pytest.mark.unit
def test_stale_timestamp_rejected():
    assert verify_webhook_signature(PAYLOAD, _header(), SECRET, now=NOW + 301) is False


@pytest.mark.unit
@pytest.mark.parametrize(
    "header",
    [None, "", "garbage", f"t={NOW}", "t=abc,v1=00", f"t={NOW},v1=é", f"t={NOW},v1=ü,v1=00"],
)
def test_malformed_headers_rejected(header):
    assert verify_webhook_signature(PAYLOAD, header, SECRET, now=NOW) is False


@pytest.mark.unit
def test_missing_secret_rejected():
    assert verify_webhook_signature(PAYLOAD, _header(), "", now=NOW) is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_payment_intent_sends_form(stripe_transport):
    client = StripeClient(secret_key="sk_test", transport=stripe_transport)

    intent = await client.create_payment_intent(
        11388, metadata={"orderId": "o-1", "orderNumber": 100001}, receipt_email="a@test.com"
    )

    assert intent.id == "pi_test_123"
    assert intent.amount == 11388
    request = stripe_transport.requests[0]
    form = dict(httpx.QueryParams(request.content.decode()))
    assert form["metadata[orderId]"] == "o-1"
    assert form["metadata[orderNumber]"] == "100001"
    assert form["automatic_payment_methods[enabled]"] == "true"
    assert request.headers["Authorization"] == "Bearer sk_test"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stripe_error_response_raises():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(402, json={"error": {"message": "Card declined"}})
    )
    client = StripeClient(secret_key="sk_test", transport=transport)

    with pytest.raises(StripeError) as exc:
        await client.create_payment_intent(100)
    assert exc.value.message == "Card declined"
    assert exc.value.status_code == 402
