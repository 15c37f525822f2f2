"""Weekly savings digest.

For every subscriber with email notifications on, compares each tracked
product's price at the start of the window with its latest observation
and emails a summary of the drops.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pricedrop.core.exceptions import DispatchError
from pricedrop.models import PriceObservation, TrackedProduct, TrackingSubscription, UserProfile
from pricedrop.models.base import utcnow
from pricedrop.services.notification_service import DigestDrop, NotificationService

logger = structlog.get_logger(__name__)


class DigestService:
    """Builds and sends the weekly digest."""

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier or NotificationService()
        self.logger = logger.bind(service="digest_service")

    async def _price_at(self, product_id: UUID, moment: datetime) -> Optional[Decimal]:
        """Price in effect at ``moment``: last observation before it, else the first after."""
        before = await self.db.scalar(
            select(PriceObservation.price)
            .where(PriceObservation.product_id == product_id, PriceObservation.recorded_at < moment)
            .order_by(PriceObservation.recorded_at.desc())
            .limit(1)
        )
        if before is not None:
            return before

        return await self.db.scalar(
            select(PriceObservation.price)
            .where(PriceObservation.product_id == product_id, PriceObservation.recorded_at >= moment)
            .order_by(PriceObservation.recorded_at.asc())
            .limit(1)
        )

    async def _latest_price(self, product_id: UUID) -> Optional[Decimal]:
        return await self.db.scalar(
            select(PriceObservation.price)
            .where(PriceObservation.product_id == product_id)
            .order_by(PriceObservation.recorded_at.desc())
            .limit(1)
        )

    async def collect_drops(self, user_id: UUID, window_start: datetime) -> List[DigestDrop]:
        result = await self.db.execute(
            select(TrackedProduct)
            .join(TrackingSubscription, TrackingSubscription.product_id == TrackedProduct.id)
            .where(
                TrackingSubscription.user_id == user_id,
                TrackingSubscription.is_active == True,
            )
        )

        drops = []
        for product in result.scalars().all():
            start_price = await self._price_at(product.id, window_start)
            latest_price = await self._latest_price(product.id)
            if start_price is None or latest_price is None:
                continue
            if latest_price < start_price:
                drops.append(DigestDrop(
                    name=product.name,
                    url=product.url,
                    old_price=start_price,
                    new_price=latest_price,
                    currency=product.currency,
                ))
        return drops

    async def run(self, days: int = 7) -> Dict[str, int]:
        """Send digests for the trailing ``days``.

        Returns:
            Counters: profiles considered, digests sent, digests failed
        """
        window_start = utcnow() - timedelta(days=days)
        stats = {"profiles": 0, "sent": 0, "failed": 0}

        result = await self.db.execute(
            select(UserProfile).where(UserProfile.email_notifications == True)
        )
        profiles = list(result.scalars().all())

        for profile in profiles:
            stats["profiles"] += 1
            drops = await self.collect_drops(profile.id, window_start)
            if not drops:
                continue

            try:
                await self.notifier.send_weekly_digest(profile, drops)
                stats["sent"] += 1
            except DispatchError as e:
                stats["failed"] += 1
                self.logger.warning("weekly_digest_failed", user_id=str(profile.id), error=str(e))

        self.logger.info("weekly_digest_completed", days=days, **stats)
        return stats
