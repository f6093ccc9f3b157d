"""Visitor location detection."""

from fastapi import APIRouter, Depends, Request
from libs.common.rate_limit import api_limit, get_client_ip
from services.shop_service.schemas import LocationOut, LocationResponse
from services.shop_service.services.location import (
    IpGeolocator,
    detect_location,
    get_ip_geolocator,
)

router = APIRouter(tags=["location"])


@router.get("/detect-location", response_model=LocationResponse)
@api_limit
async def detect_visitor_location(
    request: Request,
    geolocator: IpGeolocator = Depends(get_ip_geolocator),
):
    """Best-effort location; unknown visitors get a low-confidence fallback."""
    ip = get_client_ip(request)
    location = await detect_location(request.headers, ip, geolocator)
    return LocationResponse(location=LocationOut(**location.to_dict()), ip=ip)
