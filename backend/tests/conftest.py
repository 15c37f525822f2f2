"""Pytest configuration and shared fixtures."""

import os

# Settings are read at import time, so the environment is fixed first
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["JWT_AUDIENCE"] = ""
os.environ["EMAIL_TRANSPORT"] = "log"
os.environ["SCHEDULER_ENABLED"] = "false"

from decimal import Decimal
from typing import Callable, Dict, List, Optional, Union
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pricedrop.core.exceptions import ScrapeError
from pricedrop.models import Base, TrackedProduct, TrackingSubscription, UserProfile
from pricedrop.scrapers.base import ScrapedProduct
from pricedrop.scrapers.platform import Platform, detect_platform
from pricedrop.scrapers.utils.retry import ScrapeRetryPolicy
from pricedrop.services.email_transport import LogTransport
from pricedrop.services.notification_service import NotificationService


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


# ============================================================================
# DATABASE
# ============================================================================

@pytest_asyncio.fixture
async def test_db():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with SessionLocal() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def make_profile(test_db):
    """Factory for persisted user profiles."""

    async def _make(
        email: str = "alice@example.com",
        full_name: Optional[str] = None,
        plan: str = "free",
        email_notifications: bool = True,
    ) -> UserProfile:
        profile = UserProfile(
            id=uuid4(),
            email=email,
            full_name=full_name,
            plan=plan,
            email_notifications=email_notifications,
        )
        test_db.add(profile)
        await test_db.commit()
        await test_db.refresh(profile)
        return profile

    return _make


@pytest.fixture
def make_product(test_db):
    """Factory for persisted tracked products."""

    async def _make(
        url: str = "https://www.ebay.com/itm/123456789",
        name: str = "Test Product",
        current_price: Optional[Decimal] = Decimal("100.00"),
        currency: str = "USD",
        **kwargs,
    ) -> TrackedProduct:
        product = TrackedProduct(
            url=url,
            platform=detect_platform(url).value,
            name=name,
            current_price=current_price,
            original_price=current_price,
            currency=currency,
            **kwargs,
        )
        test_db.add(product)
        await test_db.commit()
        await test_db.refresh(product)
        return product

    return _make


@pytest.fixture
def subscribe(test_db):
    """Factory linking a profile to a product."""

    async def _subscribe(
        profile: UserProfile,
        product: TrackedProduct,
        target_price: Optional[Decimal] = None,
        notify_on_any_drop: bool = True,
    ) -> TrackingSubscription:
        subscription = TrackingSubscription(
            user_id=profile.id,
            product_id=product.id,
            target_price=target_price,
            notify_on_any_drop=notify_on_any_drop,
        )
        test_db.add(subscription)
        await test_db.commit()
        await test_db.refresh(subscription)
        return subscription

    return _subscribe


# ============================================================================
# COLLABORATORS
# ============================================================================

class FakeScraper:
    """Scraper double returning canned results per URL.

    A result may be a ScrapedProduct, an exception to raise, or a list of
    either consumed one per call. Unknown URLs raise a non-retryable
    ScrapeError.
    """

    def __init__(self):
        self.results: Dict[str, Union[ScrapedProduct, Exception, List]] = {}
        self.calls: List[str] = []
        self.on_scrape: Optional[Callable[[str], None]] = None

    async def scrape(self, url: str) -> ScrapedProduct:
        self.calls.append(url)
        if self.on_scrape is not None:
            self.on_scrape(url)

        result = self.results.get(url)
        if isinstance(result, list):
            result = result.pop(0)
        if result is None:
            raise ScrapeError(url, "no canned page")
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def fake_scraper():
    return FakeScraper()


@pytest.fixture
def scraped():
    """Build a ScrapedProduct for a URL at a price."""

    def _scraped(
        url: str,
        price: str,
        title: str = "Test Product",
        in_stock: bool = True,
        original_price: Optional[str] = None,
    ) -> ScrapedProduct:
        return ScrapedProduct(
            url=url,
            title=title,
            price=Decimal(price),
            in_stock=in_stock,
            platform=detect_platform(url) if url else Platform.UNKNOWN,
            original_price=Decimal(original_price) if original_price else None,
        )

    return _scraped


@pytest.fixture
def transport():
    return LogTransport()


@pytest.fixture
def notifier(transport):
    return NotificationService(transport=transport, app_url="https://pricedrop.test")


@pytest.fixture
def no_retry():
    return ScrapeRetryPolicy(max_attempts=1, min_wait=0, max_wait=0)
