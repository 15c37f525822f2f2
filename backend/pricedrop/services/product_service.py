"""Price history reads, statistics and CSV export for tracked products."""

import csv
import io
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from pricedrop.core.exceptions import NotFoundError
from pricedrop.models import PriceObservation, TrackedProduct
from pricedrop.models.base import utcnow

logger = structlog.get_logger(__name__)

CSV_COLUMNS = ["recorded_at", "price", "currency", "in_stock"]


class ProductService:
    """Read-side queries over tracked products and their price history."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="product_service")

    async def get_product(self, product_id: UUID) -> TrackedProduct:
        """Raises NotFoundError when the product does not exist."""
        product = await self.db.get(TrackedProduct, product_id)
        if product is None:
            raise NotFoundError("Product", str(product_id))
        return product

    async def get_price_history(
        self,
        product_id: UUID,
        days: int = 30,
    ) -> List[PriceObservation]:
        """Get price history for a product within a time window.

        Args:
            product_id: Product UUID
            days: Number of days to look back (default: 30)

        Returns:
            List of PriceObservation records, ordered chronologically
        """
        cutoff = utcnow() - timedelta(days=days)

        result = await self.db.execute(
            select(PriceObservation)
            .where(and_(
                PriceObservation.product_id == product_id,
                PriceObservation.recorded_at >= cutoff,
            ))
            .order_by(PriceObservation.recorded_at.asc())
        )
        history = list(result.scalars().all())

        self.logger.info(
            "price_history_fetched",
            product_id=str(product_id),
            days=days,
            count=len(history),
        )
        return history

    async def get_price_statistics(
        self,
        product_id: UUID,
        days: int = 90,
    ) -> Optional[dict]:
        """Min, max, average and current price over the window.

        Returns:
            Dict with statistics, or None when there is no history
        """
        history = await self.get_price_history(product_id, days)
        if not history:
            return None

        prices = [h.price for h in history]
        return {
            "product_id": str(product_id),
            "days_analyzed": days,
            "min_price": min(prices),
            "max_price": max(prices),
            "avg_price": round(sum(prices) / len(prices), 2),
            "current_price": prices[-1],
            "data_points": len(prices),
            "first_recorded": history[0].recorded_at.isoformat(),
            "last_recorded": history[-1].recorded_at.isoformat(),
        }

    async def export_history_csv(self, product_id: UUID, days: int = 365) -> str:
        """Price history as CSV with a header row."""
        history = await self.get_price_history(product_id, days)

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_COLUMNS)
        for observation in history:
            writer.writerow([
                observation.recorded_at.isoformat(),
                f"{observation.price:.2f}",
                observation.currency,
                "true" if observation.in_stock else "false",
            ])
        return buffer.getvalue()
