"""Tracked product model: one row per distinct product URL."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Boolean, Numeric, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pricedrop.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from pricedrop.models.price_history import PriceObservation
    from pricedrop.models.tracking import TrackingSubscription


class TrackedProduct(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Product page whose price is re-checked by the price check job.

    The normalized URL is the dedup key: every user tracking the same page
    shares one row. Price, stock and last_checked are written by the
    price check job; the tracking path creates the row.
    """

    __tablename__ = "products"

    url: Mapped[str] = mapped_column(
        String(2000), nullable=False, unique=True,
        comment="Normalized product URL (dedup key)"
    )
    platform: Mapped[str] = mapped_column(
        String(20), nullable=False, default="unknown",
        comment="Detected retailer: 'amazon', 'ebay', 'walmart', 'unknown'"
    )
    external_id: Mapped[Optional[str]] = mapped_column(
        String(500), nullable=True,
        comment="Retailer item id parsed from the URL"
    )

    # Product info
    name: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    image_url: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)

    # Pricing
    current_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True,
        comment="Latest scraped price"
    )
    original_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True,
        comment="Reference price captured when the product was first tracked"
    )
    currency: Mapped[str] = mapped_column(String(5), nullable=False, default="USD")

    # Status
    in_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
        comment="False once the failure circuit breaker trips"
    )
    last_checked: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
        comment="Last time the price check job scraped this product"
    )

    __table_args__ = (
        Index("idx_products_active_checked", "is_active", "last_checked"),
    )

    # Relationships
    price_history: Mapped[list["PriceObservation"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="PriceObservation.recorded_at",
    )
    subscriptions: Mapped[list["TrackingSubscription"]] = relationship(
        back_populates="product", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<TrackedProduct(id={self.id}, platform='{self.platform}', url='{self.url[:60]}')>"
