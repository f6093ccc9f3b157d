"""Product capture: retailer URL -> normalized product record.

Marketplace detection is by hostname and product-path pattern. Extraction
is delegated to ScraperAPI's structured endpoint; only Amazon is enabled
end-to-end. Whatever the scraper could not extract is filled with a
default and listed in ``missing_fields`` so the storefront can ask the
customer to complete the product before it goes into the cart.
"""

import enum
import re
import secrets
import time
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
from libs.common.config import get_settings
from libs.common.currency import (
    CurrencyConverter,
    ExchangeRateUnavailable,
    detect_currency,
    parse_price_text,
    round_money,
    validate_price,
)
from libs.common.logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER_IMAGE = "/api/placeholder/300/300"
GENERIC_CAPTURE_ERROR = (
    "We were unable to process this product URL. Please verify the link is "
    "correct or contact our support team for assistance."
)


class Store(str, enum.Enum):
    AMAZON = "amazon"
    WALMART = "walmart"
    EBAY = "ebay"


STORE_DISPLAY_NAMES = {Store.AMAZON: "Amazon", Store.WALMART: "Walmart", Store.EBAY: "eBay"}

# (hostname marker, product path patterns)
STORE_PATTERNS: dict[Store, tuple[str, tuple[str, ...]]] = {
    Store.AMAZON: ("amazon.", ("/dp/", "/gp/product/")),
    Store.WALMART: ("walmart.", ("/ip/",)),
    Store.EBAY: ("ebay.", ("/itm/",)),
}

ENABLED_STORES = frozenset({Store.AMAZON})

ASIN_PATTERNS = (
    re.compile(r"/dp/([A-Z0-9]{10})"),
    re.compile(r"/gp/product/([A-Z0-9]{10})"),
    re.compile(r"/exec/obidos/ASIN/([A-Z0-9]{10})"),
    re.compile(r"[?&]asin=([A-Z0-9]{10})", re.IGNORECASE),
)

WEIGHT_PATTERN = re.compile(
    r"(\d+(?:\.\d+)?)\s*(kilograms?|kg|pounds?|lbs?|grams?|g|ounces?|oz)\b",
    re.IGNORECASE,
)
KG_PER_UNIT = {
    "kg": Decimal("1"),
    "lb": Decimal("0.453592"),
    "g": Decimal("0.001"),
    "oz": Decimal("0.0283495"),
}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class CaptureError(Exception):
    """Capture failed; ``message`` is safe to show the customer."""

    status_code = 500

    def __init__(self, message: str = GENERIC_CAPTURE_ERROR):
        self.message = message
        super().__init__(message)


class UnsupportedStoreError(CaptureError):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# URL handling
# ---------------------------------------------------------------------------


def detect_store(url: str) -> Optional[Store]:
    """Identify the marketplace from hostname + product path; None if unknown."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    hostname = (parsed.hostname or "").lower()
    path = parsed.path or ""
    for store, (host_marker, paths) in STORE_PATTERNS.items():
        if host_marker in hostname and any(p in path for p in paths):
            return store
    return None


def extract_asin(url: str) -> Optional[str]:
    for pattern in ASIN_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1).upper()
    return None


def is_valid_url(url: Optional[str]) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def generate_product_id(store: Store) -> str:
    return f"{store.value}-{int(time.time() * 1000)}-{secrets.token_hex(5)[:9]}"


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


@dataclass
class CapturedProduct:
    id: str
    url: str
    store: str
    store_name: str
    title: str
    price: Decimal  # BDT
    original_currency: str
    original_price_value: Decimal
    original_list_price: Optional[Decimal] = None
    image: str = PLACEHOLDER_IMAGE
    rating: float = 0
    review_count: int = 0
    weight: Optional[Decimal] = None  # kg
    description: str = ""
    features: list[str] = field(default_factory=list)
    availability: str = "limited"
    missing_fields: list[str] = field(default_factory=list)
    requires_approval: bool = False
    approved: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def parse_weight_kg(*sources: Any) -> Optional[Decimal]:
    """First parsable weight across ``sources``, converted to kilograms."""
    for source in sources:
        if not source or not isinstance(source, str):
            continue
        match = WEIGHT_PATTERN.search(source)
        if not match:
            continue
        unit = match.group(2).lower()
        if unit.startswith("kilo") or unit == "kg":
            key = "kg"
        elif unit.startswith("pound") or unit.startswith("lb"):
            key = "lb"
        elif unit.startswith("ounce") or unit == "oz":
            key = "oz"
        else:
            key = "g"
        return (Decimal(match.group(1)) * KG_PER_UNIT[key]).quantize(Decimal("0.001"))
    return None


def parse_rating(value: Any) -> float:
    """Leading number of "4.6", 4.6 or "4.6 out of 5 stars"; 0 when absent."""
    parsed = parse_price_text(str(value)) if value else None
    return float(parsed) if parsed is not None else 0


def parse_review_count(value: Any) -> int:
    """Leading integer of 1204, "1,204" or "1,204 ratings"; 0 when absent."""
    parsed = parse_price_text(str(value)) if value else None
    return int(parsed) if parsed is not None else 0


def parse_availability(status: Optional[str]) -> str:
    if status == "In Stock":
        return "in_stock"
    if status == "Out of Stock":
        return "out_of_stock"
    return "limited"


def _first_price(*fields: Any) -> tuple[Optional[Decimal], str]:
    for value in fields:
        if not value:
            continue
        parsed = parse_price_text(value)
        if parsed is not None and parsed > 0:
            currency = detect_currency(value) if isinstance(value, str) else "USD"
            return parsed, currency
    return None, "USD"


async def normalize_product(
    store: Store,
    url: str,
    data: dict[str, Any],
    converter: CurrencyConverter,
) -> CapturedProduct:
    """Map a ScraperAPI structured response onto a CapturedProduct."""
    missing: list[str] = []

    title = (data.get("name") or "").strip()
    if not title:
        missing.append("title")

    price_value, currency = _first_price(
        data.get("pricing"),
        data.get("price"),
        data.get("current_price"),
        data.get("list_price"),
        data.get("sale_price"),
    )
    list_price, _ = _first_price(data.get("list_price"))
    if list_price == price_value:
        list_price = None

    price_bdt = Decimal("0")
    if price_value is None:
        missing.append("price")
        price_value = Decimal("0")
    else:
        try:
            price_bdt = await converter.convert(price_value, currency)
        except ExchangeRateUnavailable as e:
            logger.warning(f"Could not convert captured price for {url}: {e}")
            missing.append("price")

    images = data.get("images") or []
    image = images[0] if images else ""
    if not image:
        missing.append("image")

    info = data.get("product_information") or {}
    weight = parse_weight_kg(
        info.get("item_weight"),
        info.get("shipping_weight"),
        info.get("package_weight"),
        data.get("item_weight"),
        data.get("shipping_weight"),
        data.get("weight"),
    )
    if weight is None:
        missing.append("weight")

    features = [f for f in (data.get("feature_bullets") or []) if isinstance(f, str)]

    return CapturedProduct(
        id=generate_product_id(store),
        url=url,
        store=store.value,
        store_name=STORE_DISPLAY_NAMES[store],
        title=title or "Untitled product",
        price=round_money(price_bdt),
        original_currency=currency,
        original_price_value=price_value,
        original_list_price=list_price,
        image=image or PLACEHOLDER_IMAGE,
        rating=parse_rating(data.get("average_rating")),
        review_count=parse_review_count(data.get("total_reviews")),
        weight=weight,
        description=". ".join(features[:3]) or f"Product captured from {STORE_DISPLAY_NAMES[store]}",
        features=features,
        availability=parse_availability(data.get("availability_status")),
        missing_fields=missing,
        # weight alone does not block checkout; it only affects the later shipping quote
        requires_approval=any(f in missing for f in ("title", "price", "image")),
    )


# ---------------------------------------------------------------------------
# Scraper collaborator
# ---------------------------------------------------------------------------


class ScraperClient:
    """Async client for ScraperAPI's structured Amazon product endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.SCRAPER_API_KEY
        self.base_url = (base_url or settings.SCRAPER_API_BASE).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def fetch_amazon_product(self, asin: str) -> dict[str, Any]:
        if not self.api_key:
            logger.error("ScraperAPI key not configured")
            raise CaptureError()

        params = {
            "api_key": self.api_key,
            "asin": asin,
            "domain": "amazon.com",
            "device_type": "desktop",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(
                    f"{self.base_url}/structured/amazon/product", params=params
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"ScraperAPI request failed for ASIN {asin}: {e}")
            raise CaptureError() from e

        if not isinstance(data, dict) or not data.get("name"):
            logger.error(f"ScraperAPI returned no product data for ASIN {asin}")
            raise CaptureError()
        return data


def get_scraper_client() -> ScraperClient:
    """FastAPI dependency for the scraping collaborator."""
    return ScraperClient()


async def capture_product(
    url: str,
    scraper: ScraperClient,
    converter: CurrencyConverter,
) -> CapturedProduct:
    if not is_valid_url(url):
        raise UnsupportedStoreError("Please enter a valid product URL")

    store = detect_store(url)
    if store is None:
        raise UnsupportedStoreError(
            "This store is not supported yet. Please use an Amazon product link."
        )
    if store not in ENABLED_STORES:
        raise UnsupportedStoreError(
            f"{STORE_DISPLAY_NAMES[store]} scraping temporarily unavailable. "
            "Please use Amazon or other links.",
            status_code=501,
        )

    asin = extract_asin(url)
    if not asin:
        raise CaptureError()

    data = await scraper.fetch_amazon_product(asin)
    try:
        product = await normalize_product(store, url, data, converter)
    except (ValueError, TypeError, ArithmeticError) as e:
        logger.warning(f"Unreadable scraper payload for {asin}: {e}")
        raise CaptureError() from e
    logger.info(
        f"Captured {store.value} product {asin}",
        extra={"extra_fields": {"missing_fields": product.missing_fields}},
    )
    return product


# ---------------------------------------------------------------------------
# Customer edits
# ---------------------------------------------------------------------------


def validate_product_update(
    title: Optional[str],
    price: Optional[Any],
    currency: str = "BDT",
    url: Optional[str] = None,
    image: Optional[str] = None,
) -> list[str]:
    """Errors for a customer-edited product; empty when the edit is acceptable."""
    errors = []
    title = (title or "").strip()
    if len(title) < 3:
        errors.append("Title must be at least 3 characters")
    elif len(title) > 200:
        errors.append("Title cannot exceed 200 characters")

    ok, price_error = validate_price(price, currency)
    if not ok:
        errors.append(price_error)

    if url is not None and not is_valid_url(url):
        errors.append("Product URL is not valid")

    if image and not (image.startswith(("http://", "https://")) or image.startswith("/assets/")):
        errors.append("Image must be an http(s) URL or a bundled asset")

    return errors
