"""User-initiated product tracking: subscribe, unsubscribe, list."""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pricedrop.core.exceptions import AlreadyTrackingError, NotFoundError, PlanLimitError
from pricedrop.models import (
    PriceObservation,
    TrackedProduct,
    TrackingSubscription,
    UserProfile,
    get_plan_limit,
)
from pricedrop.models.base import utcnow
from pricedrop.scrapers.platform import detect_platform
from pricedrop.scrapers.scraper_service import ScraperService, to_cents
from pricedrop.scrapers.utils.normalizer import extract_product_id, normalize_url

logger = structlog.get_logger(__name__)


@dataclass
class TrackResult:
    subscription: TrackingSubscription
    product: TrackedProduct
    product_created: bool


class TrackingService:
    """Manages a user's tracked products and the tracked_count counter.

    ``tracked_count`` is always recomputed from the subscription rows in
    the same transaction that changes them.
    """

    def __init__(self, db: AsyncSession, scraper: Optional[ScraperService] = None):
        self.db = db
        self.scraper = scraper or ScraperService()
        self.logger = logger.bind(service="tracking_service")

    async def count_subscriptions(self, user_id: uuid.UUID) -> int:
        result = await self.db.scalar(
            select(func.count())
            .select_from(TrackingSubscription)
            .where(TrackingSubscription.user_id == user_id)
        )
        return result or 0

    async def get_product_by_url(self, url: str) -> Optional[TrackedProduct]:
        result = await self.db.execute(select(TrackedProduct).where(TrackedProduct.url == url))
        return result.scalar_one_or_none()

    async def track(
        self,
        profile: UserProfile,
        url: str,
        target_price: Optional[Decimal] = None,
        notify_on_drop: bool = True,
    ) -> TrackResult:
        """Subscribe a user to a product URL.

        Args:
            profile: Authenticated user's profile
            url: Product page URL (normalized before lookup)
            target_price: Optional alert threshold
            notify_on_drop: Alert on every drop, not only at the target

        Returns:
            TrackResult with the new subscription and its product

        Raises:
            PlanLimitError: The user's plan ceiling is reached
            AlreadyTrackingError: The user already tracks this product
            ScrapeError: A new product's page could not be scraped
        """
        user_id = profile.id
        plan = profile.plan

        limit = get_plan_limit(plan)
        current = await self.count_subscriptions(user_id)
        if current >= limit:
            self.logger.info("plan_limit_reached", user_id=str(user_id), plan=plan, limit=limit)
            raise PlanLimitError(plan, limit)

        normalized = normalize_url(url)
        product = await self.get_product_by_url(normalized)
        created = False

        if product is not None:
            existing = await self.db.scalar(
                select(TrackingSubscription.id).where(
                    TrackingSubscription.user_id == user_id,
                    TrackingSubscription.product_id == product.id,
                )
            )
            if existing is not None:
                raise AlreadyTrackingError(str(product.id))
            if not product.is_active:
                product.is_active = True
                self.logger.info("product_reactivated", product_id=str(product.id))
        else:
            product = await self._create_product(normalized)
            created = True

        subscription = TrackingSubscription(
            user_id=user_id,
            product_id=product.id,
            product=product,
            target_price=target_price,
            notify_on_any_drop=notify_on_drop,
        )
        self.db.add(subscription)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            raise AlreadyTrackingError(str(product.id)) from e

        await self._sync_tracked_count(user_id)
        await self.db.commit()
        await self.db.refresh(profile)

        self.logger.info(
            "product_tracked",
            user_id=str(user_id),
            product_id=str(product.id),
            product_created=created,
        )
        return TrackResult(subscription=subscription, product=product, product_created=created)

    async def _create_product(self, url: str) -> TrackedProduct:
        """Scrape a new URL and insert its product row with the first observation."""
        scraped = await self.scraper.scrape(url)
        price = to_cents(url, scraped.price)
        original = to_cents(url, scraped.original_price or scraped.price)
        external_id = extract_product_id(url)

        product = TrackedProduct(
            url=url,
            platform=detect_platform(url).value,
            external_id=external_id[:500] if external_id else None,
            name=(scraped.title or url)[:500],
            image_url=scraped.image_url or None,
            current_price=price,
            original_price=original,
            currency=scraped.currency,
            in_stock=scraped.in_stock,
            last_checked=utcnow(),
        )
        self.db.add(product)
        await self.db.flush()

        self.db.add(PriceObservation(
            product_id=product.id,
            price=price,
            currency=scraped.currency,
            in_stock=scraped.in_stock,
            source="tracking",
        ))
        return product

    async def _sync_tracked_count(self, user_id: uuid.UUID) -> None:
        count_subquery = (
            select(func.count())
            .select_from(TrackingSubscription)
            .where(TrackingSubscription.user_id == user_id)
            .scalar_subquery()
        )
        await self.db.execute(
            update(UserProfile)
            .where(UserProfile.id == user_id)
            .values(tracked_count=count_subquery)
            .execution_options(synchronize_session=False)
        )

    async def untrack(self, profile: UserProfile, product_id: uuid.UUID) -> None:
        """Remove a user's subscription.

        Raises:
            NotFoundError: The user does not track this product
        """
        subscription = await self.get_subscription(profile.id, product_id)
        if subscription is None:
            raise NotFoundError("Tracked product", str(product_id))

        await self.db.delete(subscription)
        await self.db.flush()
        await self._sync_tracked_count(profile.id)
        await self.db.commit()
        await self.db.refresh(profile)

        self.logger.info("product_untracked", user_id=str(profile.id), product_id=str(product_id))

    async def get_subscription(
        self, user_id: uuid.UUID, product_id: uuid.UUID
    ) -> Optional[TrackingSubscription]:
        result = await self.db.execute(
            select(TrackingSubscription)
            .options(selectinload(TrackingSubscription.product))
            .where(
                TrackingSubscription.user_id == user_id,
                TrackingSubscription.product_id == product_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_tracked(self, profile: UserProfile) -> List[TrackingSubscription]:
        """User's subscriptions with their products, newest first."""
        result = await self.db.execute(
            select(TrackingSubscription)
            .options(selectinload(TrackingSubscription.product))
            .where(TrackingSubscription.user_id == profile.id)
            .order_by(TrackingSubscription.created_at.desc())
        )
        return list(result.scalars().all())
