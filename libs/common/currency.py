"""Currency conversion for UniShopper.

Settlement/display currency: BDT (Bangladeshi Taka).
Source prices arrive in the retailer's currency (usually USD).

Rate tables are expressed as "units of currency per 1 USD", the shape the
upstream rates API returns. BDT per unit of X is therefore
``rates["BDT"] / rates[X]``.

Usage:
    from libs.common.currency import get_currency_converter

    converter = get_currency_converter()
    bdt = await converter.convert(Decimal("19.99"), "USD")
"""

from __future__ import annotations

import re
import time
from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from functools import lru_cache
from typing import Callable, Optional, Union

import httpx

from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

Number = Union[Decimal, float, int, str]
RateTable = dict[str, Decimal]

TWO_PLACES = Decimal("0.01")
SETTLEMENT_CURRENCY = "BDT"

# (min, max) accepted price per currency
PRICE_RANGES: dict[str, tuple[Decimal, Decimal]] = {
    "USD": (Decimal("0.01"), Decimal("100000")),
    "GBP": (Decimal("0.01"), Decimal("80000")),
    "EUR": (Decimal("0.01"), Decimal("90000")),
    "CAD": (Decimal("0.01"), Decimal("130000")),
    "AUD": (Decimal("0.01"), Decimal("150000")),
    "BDT": (Decimal("1"), Decimal("10000000")),
}


class ExchangeRateUnavailable(Exception):
    """Raised when no usable exchange rate can be produced."""


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Number) -> Decimal:
    """Round to 2 decimal places, half-up."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


# ─── rate providers ──────────────────────────────────────────────────────────


class RateProvider(ABC):
    """Source of a USD-based rate table."""

    @abstractmethod
    async def get_rates(self) -> RateTable:
        """Return the current rate table or raise ExchangeRateUnavailable."""


class HttpRateProvider(RateProvider):
    """Fetches rates from the configured exchange-rate API over HTTP."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or get_settings().EXCHANGE_RATE_API_URL
        self.timeout = timeout
        self._transport = transport

    async def get_rates(self) -> RateTable:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Exchange rate API request failed: {e}")
            raise ExchangeRateUnavailable(f"Exchange rate API request failed: {e}") from e

        raw_rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(raw_rates, dict) or not raw_rates:
            raise ExchangeRateUnavailable("Exchange rate API returned no rates")

        rates: RateTable = {}
        for code, value in raw_rates.items():
            try:
                rate = to_decimal(value)
            except (InvalidOperation, TypeError):
                continue
            if rate > 0:
                rates[code.upper()] = rate
        if SETTLEMENT_CURRENCY not in rates:
            raise ExchangeRateUnavailable("Exchange rate API returned no BDT rate")
        return rates


class StaticRateProvider(RateProvider):
    """Serves a fixed rate table."""

    def __init__(self, rates: dict[str, Number]):
        self.rates: RateTable = {k.upper(): to_decimal(v) for k, v in rates.items()}

    async def get_rates(self) -> RateTable:
        return dict(self.rates)


class CachedRateProvider(RateProvider):
    """
    Wraps another provider with an in-memory TTL cache.

    - fresh cache: served without a fetch
    - expired cache: refetched; if the refetch fails the stale table is
      served and a warning logged
    - nothing cached yet: the first fetch blocks, and its failure propagates
    """

    def __init__(
        self,
        provider: RateProvider,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._rates: Optional[RateTable] = None
        self._fetched_at: Optional[float] = None

    def is_fresh(self) -> bool:
        if self._rates is None or self._fetched_at is None:
            return False
        return (self._clock() - self._fetched_at) < self.ttl_seconds

    def invalidate(self) -> None:
        self._rates = None
        self._fetched_at = None

    async def get_rates(self) -> RateTable:
        if self.is_fresh():
            return self._rates

        try:
            rates = await self.provider.get_rates()
        except ExchangeRateUnavailable:
            if self._rates is not None:
                logger.warning("Exchange rate refresh failed; serving stale rates")
                return self._rates
            raise

        self._rates = rates
        self._fetched_at = self._clock()
        logger.info(f"Exchange rates refreshed ({len(rates)} currencies)")
        return rates


# ─── converter ───────────────────────────────────────────────────────────────


class CurrencyConverter:
    """Converts source-currency prices to BDT using a RateProvider."""

    def __init__(self, provider: RateProvider, default_usd_rate: Optional[Number] = None):
        self.provider = provider
        self.default_usd_rate = to_decimal(
            default_usd_rate
            if default_usd_rate is not None
            else get_settings().DEFAULT_EXCHANGE_RATE
        )

    async def rate_for(self, currency: str) -> Decimal:
        """BDT per one unit of ``currency``."""
        currency = currency.upper()
        if currency == SETTLEMENT_CURRENCY:
            return Decimal("1")

        rates = await self.provider.get_rates()
        bdt = rates.get(SETTLEMENT_CURRENCY)
        source = Decimal("1") if currency == "USD" else rates.get(currency)
        if not bdt or not source:
            raise ExchangeRateUnavailable(f"No exchange rate for {currency}")
        return bdt / source

    async def convert(self, amount: Number, currency: str) -> Decimal:
        """Convert ``amount`` in ``currency`` to BDT, rounded to 2 decimals."""
        rate = await self.rate_for(currency)
        return round_money(to_decimal(amount) * rate)

    async def usd_to_bdt_rate(self) -> Decimal:
        """
        USD to BDT rate for checkout. Falls back to the configured default
        when no rate can be fetched.
        """
        try:
            return round_money(await self.rate_for("USD"))
        except ExchangeRateUnavailable as e:
            logger.warning(
                f"Using default exchange rate {self.default_usd_rate}: {e}"
            )
            return self.default_usd_rate


@lru_cache
def get_rate_provider() -> CachedRateProvider:
    settings = get_settings()
    return CachedRateProvider(
        HttpRateProvider(settings.EXCHANGE_RATE_API_URL),
        ttl_seconds=settings.EXCHANGE_RATE_CACHE_SECONDS,
    )


def get_currency_converter() -> CurrencyConverter:
    """FastAPI dependency returning a converter over the process-wide rate cache."""
    return CurrencyConverter(get_rate_provider())


# ─── price text helpers ──────────────────────────────────────────────────────

_CURRENCY_MARKERS: list[tuple[str, str]] = [
    ("৳", "BDT"),
    ("BDT", "BDT"),
    ("TK", "BDT"),
    ("C$", "CAD"),
    ("CA$", "CAD"),
    ("A$", "AUD"),
    ("AU$", "AUD"),
    ("£", "GBP"),
    ("€", "EUR"),
    ("$", "USD"),
]


def detect_currency(text: Optional[str]) -> str:
    """Guess the currency of a scraped price string. Defaults to USD."""
    if not text:
        return "USD"
    upper = text.upper()
    for marker, code in _CURRENCY_MARKERS:
        if marker in upper:
            return code
    return "USD"


def parse_price_text(text: Union[str, Number, None]) -> Optional[Decimal]:
    """
    Extract a numeric price from text like "$1,299.99" or "Tk 12,500".

    Returns None when nothing numeric is present.
    """
    if text is None:
        return None
    if isinstance(text, (int, float, Decimal)):
        return to_decimal(text)

    match = re.search(r"\d[\d,]*(?:\.\d+)?", text)
    if not match:
        return None
    try:
        return Decimal(match.group(0).replace(",", ""))
    except InvalidOperation:
        return None


def validate_price(amount: Optional[Number], currency: str = "USD") -> tuple[bool, Optional[str]]:
    """Check a price against the accepted range for its currency."""
    if amount is None:
        return False, "Price is required"
    try:
        value = to_decimal(amount)
    except (InvalidOperation, TypeError):
        return False, "Price must be a number"

    low, high = PRICE_RANGES.get(currency.upper(), PRICE_RANGES["USD"])
    if value < low:
        return False, f"Price must be at least {low} {currency.upper()}"
    if value > high:
        return False, f"Price cannot exceed {high} {currency.upper()}"
    return True, None


def format_bdt(amount: Optional[Number]) -> str:
    if amount is None:
        return "N/A"
    return f"৳{round_money(amount):,.2f}"


def format_usd(amount: Optional[Number]) -> str:
    if amount is None:
        return "N/A"
    return f"${round_money(amount):,.2f}"
