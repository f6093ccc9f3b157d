"""Visitor location detection, used to default the storefront to BDT."""

from dataclasses import asdict, dataclass
from typing import Mapping, Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

BANGLADESH_TIMEZONES = ("Asia/Dhaka", "Asia/Dacca")


@dataclass
class Location:
    country: str
    country_code: str
    is_bangladesh: bool
    detection_method: str
    confidence: float
    region: Optional[str] = None
    city: Optional[str] = None
    timezone: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


UNKNOWN_LOCATION = Location(
    country="Unknown",
    country_code="",
    is_bangladesh=False,
    detection_method="Fallback",
    confidence=0.1,
)


def detect_from_headers(headers: Mapping[str, str]) -> Optional[Location]:
    """Bengali language preference or a Dhaka timezone header implies Bangladesh."""
    accept_language = (headers.get("accept-language") or "").lower()
    has_bengali = "bn" in accept_language or "bengali" in accept_language
    is_dhaka = headers.get("x-timezone", "") in BANGLADESH_TIMEZONES

    if not (has_bengali or is_dhaka):
        return None
    return Location(
        country="Bangladesh",
        country_code="BD",
        timezone="Asia/Dhaka",
        is_bangladesh=True,
        detection_method="Language Headers" if has_bengali else "Timezone Headers",
        confidence=0.8 if has_bengali else 0.7,
    )


class IpGeolocator:
    """ipapi.co lookups. Returns None on any failure."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or get_settings().IPAPI_BASE_URL).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def lookup(self, ip: str) -> Optional[Location]:
        if not ip:
            return None
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(f"{self.base_url}/{ip}/json/")
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"IP geolocation failed for {ip}: {e}")
            return None

        if not isinstance(data, dict) or data.get("error"):
            logger.warning(f"IP geolocation returned an error for {ip}: {data}")
            return None

        country_code = data.get("country_code") or ""
        return Location(
            country=data.get("country_name") or "Unknown",
            country_code=country_code,
            region=data.get("region"),
            city=data.get("city"),
            timezone=data.get("timezone"),
            is_bangladesh=country_code == "BD",
            detection_method="IP Geolocation",
            confidence=0.95 if country_code == "BD" else 0.85,
        )


def get_ip_geolocator() -> IpGeolocator:
    """FastAPI dependency for the geolocation collaborator."""
    return IpGeolocator()


async def detect_location(
    headers: Mapping[str, str], ip: str, geolocator: IpGeolocator
) -> Location:
    from_headers = detect_from_headers(headers)
    if from_headers is not None:
        return from_headers
    return await geolocator.lookup(ip) or UNKNOWN_LOCATION
