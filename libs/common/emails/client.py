"""
Klaviyo client for lifecycle email dispatch.

Templates live in Klaviyo: every customer email is a Klaviyo *event* on a
stage-specific metric ("Order Placed", "Pickup Confirmation", ...), and the
flows configured in Klaviyo render and send the message. This client only
upserts the customer's profile and records the event.

Calls never raise. Failures are logged and returned as an unsuccessful
EmailResult so callers can treat notifications as best-effort.

Usage:
    from libs.common.emails.client import get_email_client

    email_client = get_email_client()
    result = await email_client.create_event(
        metric="Order Placed",
        email="customer@example.com",
        properties={"order_number": 100001},
        value=228.0,
    )
"""

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger

logger = get_logger(__name__)


@dataclass
class EmailResult:
    """Outcome of a single event dispatch."""

    success: bool
    event_id: Optional[str] = None
    profile_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "eventId": self.event_id}
        return {"success": False, "error": self.error}


@dataclass
class Profile:
    email: str
    first_name: str = "Customer"
    last_name: str = ""
    properties: dict[str, Any] = field(default_factory=dict)


class KlaviyoError(Exception):
    """Raised internally for non-success Klaviyo responses."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


class KlaviyoClient:
    """Async client for the Klaviyo profiles and events APIs."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        revision: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.KLAVIYO_API_KEY
        self.base_url = (base_url or settings.KLAVIYO_API_BASE).rstrip("/")
        self.revision = revision or settings.KLAVIYO_REVISION
        self.timeout = timeout
        self._transport = transport

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Klaviyo-API-Key {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "revision": self.revision,
        }

    async def _post(self, client: httpx.AsyncClient, path: str, payload: dict) -> dict:
        response = await client.post(
            f"{self.base_url}{path}", json=payload, headers=self._headers
        )
        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}

        if not response.is_success:
            raise KlaviyoError(
                message=f"Klaviyo API returned {response.status_code}",
                status_code=response.status_code,
                response_data=data,
            )
        return data

    async def _resolve_profile(self, client: httpx.AsyncClient, profile: Profile) -> str:
        """Create the profile, or resolve the existing one on a duplicate conflict."""
        payload = {
            "data": {
                "type": "profile",
                "attributes": {
                    "email": profile.email,
                    "first_name": profile.first_name,
                    "last_name": profile.last_name,
                    "properties": profile.properties,
                },
            }
        }
        try:
            data = await self._post(client, "/profiles/", payload)
        except KlaviyoError as e:
            errors = e.response_data.get("errors") or []
            if errors and errors[0].get("code") == "duplicate_profile":
                return errors[0].get("meta", {}).get("duplicate_profile_id", "")
            raise
        return (data.get("data") or {}).get("id", "")

    async def upsert_profile(
        self,
        email: str,
        first_name: str = "Customer",
        last_name: str = "",
        properties: Optional[dict[str, Any]] = None,
    ) -> EmailResult:
        """Create or find the customer's profile. Returns an EmailResult; never raises."""
        if not self.api_key:
            logger.warning(f"Klaviyo API key not configured; skipping profile for {email}")
            return EmailResult(success=False, error="Klaviyo API key not configured")

        profile = Profile(
            email=email,
            first_name=first_name or "Customer",
            last_name=last_name or "",
            properties=properties or {},
        )
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                profile_id = await self._resolve_profile(client, profile)
        except KlaviyoError as e:
            logger.error(
                f"Klaviyo rejected profile for {email}: {e.message}",
                extra={"extra_fields": {"status_code": e.status_code}},
            )
            return EmailResult(success=False, error="Failed to save customer profile")
        except httpx.HTTPError as e:
            logger.error(f"Failed to reach Klaviyo for profile {email}: {e}")
            return EmailResult(success=False, error="Failed to save customer profile")
        return EmailResult(success=True, profile_id=profile_id)

    async def create_event(
        self,
        metric: str,
        email: str,
        properties: dict[str, Any],
        value: Optional[float] = None,
        first_name: str = "Customer",
        last_name: str = "",
        profile_properties: Optional[dict[str, Any]] = None,
    ) -> EmailResult:
        """
        Record a metric event for a customer, creating their profile if needed.

        Returns an EmailResult; never raises.
        """
        if not self.api_key:
            logger.warning(f"Klaviyo API key not configured; skipping '{metric}' for {email}")
            return EmailResult(success=False, error="Klaviyo API key not configured")

        profile = Profile(
            email=email,
            first_name=first_name or "Customer",
            last_name=last_name or "",
            properties=profile_properties or {},
        )

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                profile_id = await self._resolve_profile(client, profile)

                attributes: dict[str, Any] = {
                    "properties": properties,
                    "time": utc_now().isoformat(),
                    "metric": {
                        "data": {"type": "metric", "attributes": {"name": metric}}
                    },
                    "profile": {"data": {"type": "profile", "id": profile_id}}
                    if profile_id
                    else {"data": {"type": "profile", "attributes": {"email": email}}},
                }
                if value is not None:
                    attributes["value"] = value
                    attributes["value_currency"] = "USD"

                data = await self._post(
                    client, "/events/", {"data": {"type": "event", "attributes": attributes}}
                )
        except KlaviyoError as e:
            logger.error(
                f"Klaviyo rejected '{metric}' event for {email}: {e.message}",
                extra={"extra_fields": {"status_code": e.status_code, "metric": metric}},
            )
            return EmailResult(success=False, error=f"Failed to send {metric} email")
        except httpx.HTTPError as e:
            logger.error(f"Failed to reach Klaviyo for '{metric}' event: {e}")
            return EmailResult(success=False, error=f"Failed to send {metric} email")

        # Klaviyo answers 202 with an empty body for accepted events
        event_id = (data.get("data") or {}).get("id") or properties.get("$event_id")
        logger.info(f"Klaviyo '{metric}' event sent to {email}")
        return EmailResult(success=True, event_id=event_id, profile_id=profile_id)


# Singleton instance for convenience
_email_client: Optional[KlaviyoClient] = None


def get_email_client() -> KlaviyoClient:
    """Get or create the singleton KlaviyoClient instance."""
    global _email_client
    if _email_client is None:
        _email_client = KlaviyoClient()
    return _email_client
