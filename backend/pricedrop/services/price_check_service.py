"""Scheduled price reconciliation.

One run walks the least recently checked active products, re-scrapes
each one, records price changes, emails subscribers owed a drop alert and
trips the failure circuit breaker for products that keep failing. Items
are handled strictly one after another with a fixed delay between them so
retailers never see parallel requests from us.
"""

import asyncio
import dataclasses
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Protocol

import httpx
import structlog
from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pricedrop.config import settings
from pricedrop.core.exceptions import DispatchError, PriceCheckError, ScrapeError
from pricedrop.models import (
    ErrorLog,
    JobRun,
    Notification,
    PriceObservation,
    TrackedProduct,
    TrackingSubscription,
    UserProfile,
)
from pricedrop.models.base import utcnow
from pricedrop.models.error_log import PERSISTENCE_FAILED, SCRAPE_FAILED
from pricedrop.scrapers.base import ScrapedProduct
from pricedrop.scrapers.scraper_service import ScraperService, to_cents
from pricedrop.scrapers.utils.retry import ScrapeRetryPolicy
from pricedrop.services.job_lock import JobLockService
from pricedrop.services.notification_service import NotificationService, format_price

logger = structlog.get_logger(__name__)

JOB_NAME = "check_prices"


class Scraper(Protocol):
    async def scrape(self, url: str) -> ScrapedProduct: ...


@dataclass
class ProductSnapshot:
    """Plain copy of a product row taken when the batch is selected."""

    id: uuid.UUID
    url: str
    name: str
    image_url: Optional[str]
    current_price: Optional[Decimal]
    currency: str
    in_stock: bool

    @classmethod
    def from_model(cls, product: TrackedProduct) -> "ProductSnapshot":
        return cls(
            id=product.id,
            url=product.url,
            name=product.name,
            image_url=product.image_url,
            current_price=product.current_price,
            currency=product.currency,
            in_stock=product.in_stock,
        )


@dataclass
class Subscriber:
    """Active subscription joined with its owner's profile."""

    user_id: uuid.UUID
    email: str
    display_name: str
    email_notifications: bool
    notify_on_any_drop: bool
    target_price: Optional[Decimal] = None


def alert_owed(subscriber: Subscriber, new_price: Decimal) -> bool:
    """Whether a drop to ``new_price`` earns this subscriber an email."""
    if not subscriber.email_notifications:
        return False
    if subscriber.notify_on_any_drop:
        return True
    return subscriber.target_price is not None and new_price <= subscriber.target_price


@dataclass
class JobSummary:
    """Counters reported for one run.

    ``status`` is one of 'success', 'partial' (deadline reached),
    'failed' or 'skipped' (another run held the lock).
    """

    status: str = "success"
    products_checked: int = 0
    products_updated: int = 0
    alerts_sent: int = 0
    errors: int = 0
    duration_ms: int = 0
    error_message: Optional[str] = None
    price_drops: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


class PriceCheckService:
    """Runs the price check job against one database session.

    Collaborators are injectable: ``scraper`` (anything with an async
    ``scrape(url)``), ``notifier``, ``retry_policy``, ``clock`` and
    ``sleep``. When no scraper is given, a ScraperService sharing one
    httpx client for the whole run is used.
    """

    def __init__(
        self,
        db: AsyncSession,
        scraper: Optional[Scraper] = None,
        notifier: Optional[NotificationService] = None,
        retry_policy: Optional[ScrapeRetryPolicy] = None,
        batch_size: Optional[int] = None,
        delay_seconds: Optional[float] = None,
        max_duration_seconds: Optional[float] = None,
        safety_margin_seconds: Optional[float] = None,
        failure_threshold: Optional[int] = None,
        failure_window_hours: Optional[int] = None,
        item_budget_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.db = db
        self.scraper = scraper
        self.notifier = notifier or NotificationService()
        self.retry_policy = retry_policy or ScrapeRetryPolicy.from_settings()
        self.lock = JobLockService(db)

        self.batch_size = batch_size or settings.PRICE_CHECK_BATCH_SIZE
        self.delay_seconds = settings.PRICE_CHECK_DELAY_SECONDS if delay_seconds is None else delay_seconds
        self.max_duration_seconds = max_duration_seconds or settings.PRICE_CHECK_MAX_DURATION_SECONDS
        self.safety_margin_seconds = (
            settings.PRICE_CHECK_SAFETY_MARGIN_SECONDS
            if safety_margin_seconds is None
            else safety_margin_seconds
        )
        self.failure_threshold = failure_threshold or settings.FAILURE_THRESHOLD
        self.failure_window_hours = failure_window_hours or settings.FAILURE_WINDOW_HOURS
        # Worst case for one item: every scrape attempt times out, then the delay
        self.item_budget_seconds = (
            self.retry_policy.worst_case_seconds(settings.SCRAPE_TIMEOUT_SECONDS) + self.delay_seconds
            if item_budget_seconds is None
            else item_budget_seconds
        )

        self.clock = clock
        self.sleep = sleep
        self._started = 0.0
        self.logger = logger.bind(service="price_check")

    # ================================================================
    # Run
    # ================================================================

    async def run(self) -> JobSummary:
        """Execute one price check run.

        Returns:
            JobSummary; status 'skipped' when another run holds the lock

        Raises:
            PriceCheckError: When a fault escapes per-item handling. A
                'failed' JobRun has been recorded by then.
        """
        started = self._started = self.clock()

        owner = await self.lock.acquire(JOB_NAME, ttl_seconds=self.max_duration_seconds)
        if owner is None:
            self.logger.warning("price_check_skipped", reason="lock_held")
            return JobSummary(status="skipped")

        summary = JobSummary()
        try:
            products = await self._select_due_products()
            self.logger.info("price_check_started", products=len(products))

            async with self._open_scraper() as scraper:
                for index, product in enumerate(products):
                    if self._deadline_reached(started):
                        summary.status = "partial"
                        self.logger.warning(
                            "price_check_deadline_reached",
                            remaining=len(products) - index,
                        )
                        break

                    await self._process_product(scraper, product, summary)
                    await self.sleep(self.delay_seconds)

            summary.duration_ms = self._elapsed_ms(started)
            await self._record_run(summary)

            self.logger.info(
                "price_check_completed",
                status=summary.status,
                checked=summary.products_checked,
                updated=summary.products_updated,
                alerts_sent=summary.alerts_sent,
                errors=summary.errors,
                duration_ms=summary.duration_ms,
            )
            return summary

        except Exception as e:
            await self.db.rollback()
            summary.status = "failed"
            summary.error_message = str(e)
            summary.duration_ms = self._elapsed_ms(started)
            self.logger.error("price_check_failed", error=str(e), exc_info=True)
            await self._record_run(summary)
            raise PriceCheckError(str(e)) from e

        finally:
            await self.lock.release(JOB_NAME, owner)

    @asynccontextmanager
    async def _open_scraper(self) -> AsyncIterator[Scraper]:
        if self.scraper is not None:
            yield self.scraper
            return

        async with httpx.AsyncClient(
            timeout=settings.SCRAPE_TIMEOUT_SECONDS, follow_redirects=True
        ) as client:
            yield ScraperService(http_client=client)

    def _elapsed_ms(self, started: float) -> int:
        return int((self.clock() - started) * 1000)

    def _deadline_reached(self, started: float) -> bool:
        """Whether a worst-case item started now could overrun the margin."""
        latest_start = self.max_duration_seconds - self.safety_margin_seconds - self.item_budget_seconds
        return self.clock() - started > latest_start

    def _no_time_for(self, seconds: float) -> bool:
        return self.clock() - self._started + seconds > self.max_duration_seconds

    async def _select_due_products(self) -> List[ProductSnapshot]:
        """Active products, never-checked first, then least recently checked."""
        result = await self.db.execute(
            select(TrackedProduct)
            .where(TrackedProduct.is_active == True)
            .order_by(TrackedProduct.last_checked.asc().nulls_first(), TrackedProduct.created_at.asc())
            .limit(self.batch_size)
            .execution_options(populate_existing=True)
        )
        return [ProductSnapshot.from_model(p) for p in result.scalars().all()]

    async def _record_run(self, summary: JobSummary) -> None:
        self.db.add(JobRun(
            job_name=JOB_NAME,
            status=summary.status,
            products_checked=summary.products_checked,
            products_updated=summary.products_updated,
            alerts_sent=summary.alerts_sent,
            errors=summary.errors,
            duration_ms=summary.duration_ms,
            error_message=summary.error_message,
        ))
        await self.db.commit()

    # ================================================================
    # Per item
    # ================================================================

    async def _process_product(
        self, scraper: Scraper, product: ProductSnapshot, summary: JobSummary
    ) -> None:
        """Check one product; store faults are contained to this item."""
        try:
            await self._check_product(scraper, product, summary)
        except SQLAlchemyError as e:
            await self.db.rollback()
            summary.errors += 1
            self.logger.error(
                "price_check_item_persistence_failed",
                product_id=str(product.id),
                error=str(e),
                exc_info=True,
            )
            await self._record_persistence_failure(product, e)

    async def _check_product(
        self, scraper: Scraper, product: ProductSnapshot, summary: JobSummary
    ) -> None:
        try:
            scraped = await self.retry_policy.call(scraper.scrape, product.url)
            new_price = to_cents(product.url, scraped.price)
        except ScrapeError as e:
            summary.errors += 1
            self.logger.warning("price_check_scrape_failed", product_id=str(product.id), error=str(e))
            await self._record_scrape_failure(product, e)
            return

        summary.products_checked += 1
        old_price = product.current_price
        now = utcnow()

        if old_price is not None and new_price == old_price:
            await self.db.execute(
                update(TrackedProduct)
                .where(TrackedProduct.id == product.id)
                .values(last_checked=now, in_stock=scraped.in_stock)
            )
            await self.db.commit()
            return

        values: Dict[str, Any] = {
            "current_price": new_price,
            "currency": scraped.currency,
            "in_stock": scraped.in_stock,
            "last_checked": now,
        }
        if scraped.title:
            values["name"] = scraped.title[:500]
        if scraped.image_url:
            values["image_url"] = scraped.image_url

        await self.db.execute(
            update(TrackedProduct).where(TrackedProduct.id == product.id).values(**values)
        )
        await self.db.execute(
            insert(PriceObservation).values(
                id=uuid.uuid4(),
                product_id=product.id,
                price=new_price,
                currency=scraped.currency,
                in_stock=scraped.in_stock,
                source="price_check",
                recorded_at=now,
            )
        )
        await self.db.commit()
        summary.products_updated += 1

        self.logger.info(
            "price_changed",
            product_id=str(product.id),
            old_price=str(old_price) if old_price is not None else None,
            new_price=str(new_price),
        )

        if old_price is not None and new_price < old_price:
            summary.price_drops.append({
                "product_id": str(product.id),
                "old_price": str(old_price),
                "new_price": str(new_price),
                "savings": str(old_price - new_price),
            })
            current = dataclasses.replace(
                product,
                name=values.get("name", product.name),
                image_url=values.get("image_url", product.image_url),
                currency=scraped.currency,
            )
            await self._notify_subscribers(current, old_price, new_price, summary)

    async def _load_subscribers(self, product_id: uuid.UUID) -> List[Subscriber]:
        result = await self.db.execute(
            select(TrackingSubscription, UserProfile)
            .join(UserProfile, TrackingSubscription.user_id == UserProfile.id)
            .where(
                TrackingSubscription.product_id == product_id,
                TrackingSubscription.is_active == True,
            )
        )
        return [
            Subscriber(
                user_id=profile.id,
                email=profile.email,
                display_name=profile.display_name,
                email_notifications=profile.email_notifications,
                notify_on_any_drop=subscription.notify_on_any_drop,
                target_price=subscription.target_price,
            )
            for subscription, profile in result.all()
        ]

    async def _notify_subscribers(
        self,
        product: ProductSnapshot,
        old_price: Decimal,
        new_price: Decimal,
        summary: JobSummary,
    ) -> None:
        """Email every subscriber owed an alert; one failure never stops the rest."""
        subscribers = await self._load_subscribers(product.id)
        owed = [s for s in subscribers if alert_owed(s, new_price)]
        dispatch_timeout = self.notifier.transport.timeout

        for index, subscriber in enumerate(owed):
            if self._no_time_for(dispatch_timeout):
                summary.status = "partial"
                self.logger.warning(
                    "price_drop_alerts_skipped",
                    product_id=str(product.id),
                    skipped=len(owed) - index,
                )
                break

            try:
                await self.notifier.send_price_drop(
                    subscriber, product, old_price, new_price, product.currency
                )
            except DispatchError as e:
                self.logger.warning(
                    "price_drop_alert_failed",
                    product_id=str(product.id),
                    user_id=str(subscriber.user_id),
                    error=str(e),
                )
                continue

            self.db.add(Notification(
                user_id=subscriber.user_id,
                product_id=product.id,
                type="price_drop",
                title="Price Drop Alert!",
                message=f"{product.name} dropped to {format_price(new_price, product.currency)}",
                metadata_={
                    "old_price": float(old_price),
                    "new_price": float(new_price),
                    "savings": float(old_price - new_price),
                },
                read=False,
            ))
            await self.db.execute(
                update(UserProfile)
                .where(UserProfile.id == subscriber.user_id)
                .values(alert_count=UserProfile.alert_count + 1)
            )
            await self.db.commit()
            summary.alerts_sent += 1

    # ================================================================
    # Failure bookkeeping
    # ================================================================

    async def _record_scrape_failure(self, product: ProductSnapshot, error: ScrapeError) -> None:
        """Log the failure and deactivate the product past the threshold."""
        await self.db.execute(
            insert(ErrorLog).values(
                id=uuid.uuid4(),
                product_id=product.id,
                error_type=SCRAPE_FAILED,
                error_message=str(error)[:2000],
                created_at=utcnow(),
            )
        )

        cutoff = utcnow() - timedelta(hours=self.failure_window_hours)
        recent_failures = await self.db.scalar(
            select(func.count())
            .select_from(ErrorLog)
            .where(
                ErrorLog.product_id == product.id,
                ErrorLog.error_type == SCRAPE_FAILED,
                ErrorLog.created_at >= cutoff,
            )
        )

        if (recent_failures or 0) >= self.failure_threshold:
            await self.db.execute(
                update(TrackedProduct)
                .where(TrackedProduct.id == product.id)
                .values(is_active=False)
            )
            self.logger.warning(
                "product_deactivated",
                product_id=str(product.id),
                failures=recent_failures,
                window_hours=self.failure_window_hours,
            )

        await self.db.commit()

    async def _record_persistence_failure(self, product: ProductSnapshot, error: Exception) -> None:
        try:
            await self.db.execute(
                insert(ErrorLog).values(
                    id=uuid.uuid4(),
                    product_id=product.id,
                    error_type=PERSISTENCE_FAILED,
                    error_message=str(error)[:2000],
                    created_at=utcnow(),
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error(
                "error_log_write_failed",
                product_id=str(product.id),
                error=str(e),
            )
