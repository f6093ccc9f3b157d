"""Product capture: turn a retailer link into a cart-ready product."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from libs.common.currency import (
    CurrencyConverter,
    ExchangeRateUnavailable,
    get_currency_converter,
    round_money,
    to_decimal,
)
from libs.common.logging import get_logger
from libs.common.rate_limit import api_limit, capture_limit
from services.shop_service.schemas import (
    ApproveProductRequest,
    ApproveProductResponse,
    CaptureProductRequest,
    CaptureProductResponse,
    CapturedProductOut,
    UpdateProductRequest,
)
from services.shop_service.services.capture import (
    CaptureError,
    ScraperClient,
    capture_product,
    get_scraper_client,
    validate_product_update,
)

logger = get_logger(__name__)

router = APIRouter(tags=["capture"])


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, **extra},
    )


@router.post("/capture-product", response_model=CaptureProductResponse)
@capture_limit
async def capture_product_endpoint(
    payload: CaptureProductRequest,
    request: Request,
    scraper: ScraperClient = Depends(get_scraper_client),
    converter: CurrencyConverter = Depends(get_currency_converter),
):
    """Capture product details from a supported marketplace URL."""
    url = payload.url.strip()
    try:
        product = await capture_product(url, scraper, converter)
    except CaptureError as e:
        logger.warning(f"Capture failed for {url}: {e.message}")
        return _error(e.status_code, e.message)

    return CaptureProductResponse(
        success=True, product=CapturedProductOut(**product.to_dict())
    )


@router.post("/update-product", response_model=CaptureProductResponse)
@api_limit
async def update_product(
    payload: UpdateProductRequest,
    request: Request,
    converter: CurrencyConverter = Depends(get_currency_converter),
):
    """
    Apply the customer's corrections to a captured product. The edited
    product still needs explicit approval before it can be added to the cart.
    """
    errors = validate_product_update(
        payload.title,
        payload.price,
        payload.currency,
        url=payload.product.url,
        image=payload.image,
    )
    if errors:
        return _error(400, "Validation failed", validationErrors=errors)

    currency = payload.currency.upper()
    price_bdt = payload.price
    if currency != "BDT":
        try:
            price_bdt = await converter.convert(payload.price, currency)
        except ExchangeRateUnavailable as e:
            logger.error(f"Cannot convert edited price from {currency}: {e}")
            return _error(503, "Currency conversion is temporarily unavailable")

    provided = {"title", "price"} | ({"image"} if payload.image else set())
    product = payload.product.model_copy(
        update={
            "title": payload.title.strip(),
            "price": round_money(price_bdt),
            "original_currency": currency,
            "original_price_value": to_decimal(payload.price),
            "image": payload.image or payload.product.image,
            "missing_fields": [
                f for f in payload.product.missing_fields if f not in provided
            ],
            "requires_approval": True,
            "approved": False,
        }
    )
    return CaptureProductResponse(success=True, product=product)


@router.post("/approve-product", response_model=ApproveProductResponse)
async def approve_product(payload: ApproveProductRequest):
    """Record the customer's decision on an edited product."""
    logger.info(
        f"Product {payload.product_id} {'approved' if payload.approved else 'rejected'}"
    )
    message = (
        "Product approved and ready to add to cart"
        if payload.approved
        else "Product rejected"
    )
    return ApproveProductResponse(
        success=True,
        product_id=payload.product_id,
        approved=payload.approved,
        message=message,
    )
