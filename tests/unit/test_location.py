"""Unit tests for visitor location detection."""

import httpx
import pytest
from libs.common.rate_limit import client_ip_from_headers
from services.shop_service.services.location import (
    UNKNOWN_LOCATION,
    IpGeolocator,
    detect_from_headers,
    detect_location,
)


def _geolocator(payload, status=200) -> IpGeolocator:
    transport = httpx.MockTransport(lambda request: httpx.Response(status, json=payload))
    return IpGeolocator(base_url="https://ipapi.test", transport=transport)


@pytest.mark.unit
def test_client_ip_prefers_first_forwarded_address():
    headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1", "x-real-ip": "10.0.0.2"}
    assert client_ip_from_headers(headers, "127.0.0.1") == "203.0.113.7"


@pytest.mark.unit
def test_client_ip_falls_back():
    assert client_ip_from_headers({"x-real-ip": "10.0.0.2"}) == "10.0.0.2"
    assert client_ip_from_headers({}, "127.0.0.1") == "127.0.0.1"


@pytest.mark.unit
def test_bengali_language_header_detects_bangladesh():
    location = detect_from_headers({"accept-language": "bn-BD,bn;q=0.9,en;q=0.8"})
    assert location.is_bangladesh is True
    assert location.detection_method == "Language Headers"
    assert location.confidence == 0.8


@pytest.mark.unit
def test_dhaka_timezone_header_detects_bangladesh():
    location = detect_from_headers({"x-timezone": "Asia/Dhaka"})
    assert location.detection_method == "Timezone Headers"
    assert location.confidence == 0.7


@pytest.mark.unit
def test_other_headers_give_no_hint():
    assert detect_from_headers({"accept-language": "en-US"}) is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ip_lookup_in_bangladesh():
    geolocator = _geolocator(
        {"country_name": "Bangladesh", "country_code": "BD", "city": "Dhaka", "timezone": "Asia/Dhaka"}
    )
    location = await geolocator.lookup("103.4.145.1")
    assert location.is_bangladesh is True
    assert location.confidence == 0.95
    assert location.city == "Dhaka"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ip_lookup_elsewhere():
    location = await _geolocator({"country_name": "Germany", "country_code": "DE"}).lookup("1.2.3.4")
    assert location.is_bangladesh is False
    assert location.confidence == 0.85


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ip_lookup_failures_return_none():
    assert await _geolocator({"error": True}).lookup("127.0.0.1") is None
    assert await _geolocator({}, status=500).lookup("1.2.3.4") is None
    assert await _geolocator({}).lookup("") is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_detect_location_headers_win_over_ip():
    geolocator = _geolocator({"country_name": "Germany", "country_code": "DE"})
    location = await detect_location({"accept-language": "bn"}, "1.2.3.4", geolocator)
    assert location.country_code == "BD"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_detect_location_falls_back_to_unknown():
    location = await detect_location({}, "127.0.0.1", _geolocator({"error": True}))
    assert location == UNKNOWN_LOCATION
