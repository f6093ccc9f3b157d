"""
Stripe API client for payment intents and webhook verification.

Provides:
- Creating payment intents for checkout (amounts in USD cents)
- Verifying the Stripe-Signature header on webhook deliveries
"""

import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PaymentIntent:
    """Subset of a Stripe PaymentIntent used by checkout."""

    id: str
    client_secret: str
    amount: int  # in cents
    currency: str
    status: str


class StripeError(Exception):
    """Base exception for Stripe API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


class StripeClient:
    """Async client for the Stripe REST API."""

    def __init__(
        self,
        secret_key: str = None,
        base_url: str = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        if not self.secret_key:
            raise ValueError("STRIPE_SECRET_KEY is required")
        self.base_url = (base_url or settings.STRIPE_API_BASE).rstrip("/")
        self._transport = transport
        self._headers = {"Authorization": f"Bearer {self.secret_key}"}

    async def _request(self, method: str, endpoint: str, data: dict = None) -> dict:
        """Make an async form-encoded request to the Stripe API."""
        url = f"{self.base_url}{endpoint}"

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.request(
                    method=method, url=url, headers=self._headers, data=data
                )
        except httpx.HTTPError as e:
            logger.error(f"Stripe request failed: {e}")
            raise StripeError(message=f"Stripe request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.is_success:
            error = payload.get("error") or {}
            logger.error(f"Stripe API error: {response.status_code} - {error}")
            raise StripeError(
                message=error.get("message", "Unknown Stripe error"),
                status_code=response.status_code,
                response_data=payload,
            )
        return payload

    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: str = "usd",
        metadata: Optional[dict[str, str]] = None,
        receipt_email: Optional[str] = None,
    ) -> PaymentIntent:
        form = {
            "amount": str(amount_cents),
            "currency": currency,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in (metadata or {}).items():
            form[f"metadata[{key}]"] = str(value)
        if receipt_email:
            form["receipt_email"] = receipt_email

        data = await self._request("POST", "/payment_intents", data=form)
        return PaymentIntent(
            id=data["id"],
            client_secret=data.get("client_secret", ""),
            amount=int(data.get("amount", amount_cents)),
            currency=data.get("currency", currency),
            status=data.get("status", ""),
        )


def get_stripe_client() -> StripeClient:
    """FastAPI dependency for the Stripe client."""
    return StripeClient()


# ============================================================================
# WEBHOOK SIGNATURES
# ============================================================================


def compute_signature(payload: bytes, timestamp: int, secret: str) -> str:
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def verify_webhook_signature(
    payload: bytes,
    signature_header: Optional[str],
    secret: str,
    tolerance_seconds: int = 300,
    now: Optional[float] = None,
) -> bool:
    """
    Verify a ``Stripe-Signature`` header (``t=<ts>,v1=<hex>[,v1=...]``).

    The signature is HMAC-SHA256 over ``"<ts>.<raw body>"``. Deliveries older
    than ``tolerance_seconds`` are rejected.
    """
    if not signature_header or not secret:
        return False

    timestamp: Optional[int] = None
    signatures: list[str] = []
    for part in signature_header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return False
        elif key == "v1":
            signatures.append(value)

    if timestamp is None or not signatures:
        return False

    current = time.time() if now is None else now
    if tolerance_seconds and abs(current - timestamp) > tolerance_seconds:
        return False

    # Bytes comparison; compare_digest rejects non-ASCII str operands
    expected = compute_signature(payload, timestamp, secret).encode()
    return any(
        hmac.compare_digest(expected, sig.encode("utf-8", "replace")) for sig in signatures
    )
