import json
import os
from typing import AsyncGenerator

# Test settings must be in place before any libs module builds its settings
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_unishopper"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_unishopper"
os.environ["KLAVIYO_API_KEY"] = "pk_test_unishopper"
os.environ["SCRAPER_API_KEY"] = "scraper_test_key"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["ADMIN_SESSION_SECRET"] = "test-admin-session-secret"

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.common.config import get_settings

get_settings.cache_clear()
settings = get_settings()

from libs.common.currency import CurrencyConverter, StaticRateProvider, get_currency_converter
from libs.common.emails.client import KlaviyoClient
from libs.db.base import Base
from libs.db.session import get_async_db
from services.shop_service import models as _shop_models  # noqa: F401
from services.shop_service.app.main import app
from services.shop_service.services.capture import ScraperClient, get_scraper_client
from services.shop_service.services.location import IpGeolocator, get_ip_geolocator
from services.shop_service.services.notifications import OrderNotifier, get_order_notifier
from services.shop_service.stripe_client import StripeClient, get_stripe_client

# USD-based table: 1 USD = 120 BDT
TEST_RATES = {"USD": 1, "BDT": 120, "GBP": 0.8, "EUR": 0.9, "CAD": 1.35, "AUD": 1.5}


# ---------------------------------------------------------------------------
# External API fakes (httpx.MockTransport)
# ---------------------------------------------------------------------------


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it answered."""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def json_bodies(self, path_suffix: str = "") -> list[dict]:
        return [
            json.loads(r.content)
            for r in self.requests
            if r.url.path.endswith(path_suffix) and r.content
        ]


def _klaviyo_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/profiles/"):
        return httpx.Response(201, json={"data": {"type": "profile", "id": "prof_test"}})
    if request.url.path.endswith("/events/"):
        return httpx.Response(202)
    return httpx.Response(404, json={"errors": [{"detail": "not found"}]})


def _stripe_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/payment_intents"):
        form = dict(httpx.QueryParams(request.content.decode()))
        return httpx.Response(
            200,
            json={
                "id": "pi_test_123",
                "client_secret": "pi_test_123_secret_abc",
                "amount": int(form["amount"]),
                "currency": form.get("currency", "usd"),
                "status": "requires_payment_method",
            },
        )
    return httpx.Response(404, json={"error": {"message": "Unknown endpoint"}})


def _ipapi_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"error": True, "reason": "Reserved IP Address"})


@pytest.fixture
def klaviyo_transport() -> RecordingTransport:
    return RecordingTransport(_klaviyo_handler)


@pytest.fixture
def stripe_transport() -> RecordingTransport:
    return RecordingTransport(_stripe_handler)


@pytest.fixture
def scraper_payload() -> dict:
    """ScraperAPI structured response returned by the default scraper fake."""
    return {
        "name": "Wireless Earbuds with Charging Case",
        "pricing": "$49.99",
        "list_price": "$59.99",
        "images": ["https://m.media-amazon.com/images/I/earbuds.jpg"],
        "average_rating": 4.4,
        "total_reviews": "1,204",
        "availability_status": "In Stock",
        "feature_bullets": ["Bluetooth 5.3", "30h battery", "IPX4"],
        "product_information": {"item_weight": "1.6 ounces"},
    }


@pytest.fixture
def scraper_transport(scraper_payload) -> RecordingTransport:
    return RecordingTransport(lambda request: httpx.Response(200, json=scraper_payload))


@pytest.fixture
def converter() -> CurrencyConverter:
    return CurrencyConverter(StaticRateProvider(TEST_RATES), default_usd_rate="121.5")


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    db_session,
    converter,
    klaviyo_transport,
    stripe_transport,
    scraper_transport,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient for the shop app with the database and every
    external collaborator overridden.
    """

    async def _override_db():
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_async_db] = _override_db
    app.dependency_overrides[get_currency_converter] = lambda: converter
    app.dependency_overrides[get_order_notifier] = lambda: OrderNotifier(
        KlaviyoClient(api_key="pk_test", transport=klaviyo_transport)
    )
    app.dependency_overrides[get_stripe_client] = lambda: StripeClient(
        secret_key="sk_test", transport=stripe_transport
    )
    app.dependency_overrides[get_scraper_client] = lambda: ScraperClient(
        api_key="scraper_test_key", transport=scraper_transport
    )
    app.dependency_overrides[get_ip_geolocator] = lambda: IpGeolocator(
        transport=httpx.MockTransport(_ipapi_handler)
    )

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
