"""Price history tracking for products."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import String, Boolean, ForeignKey, Numeric, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pricedrop.models.base import Base, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from pricedrop.models.product import TrackedProduct


class PriceObservation(UUIDPrimaryKeyMixin, Base):
    """Append-only price record for a product.

    Rows are never updated or deleted by the application; they form the
    time series behind history charts, CSV export and the weekly digest.
    """

    __tablename__ = "price_history"

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, comment="Price at this point in time")
    currency: Mapped[str] = mapped_column(String(5), nullable=False, default="USD")
    in_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    source: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="price_check",
        comment="Who recorded it: 'tracking' or 'price_check'"
    )

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="When this price was recorded"
    )

    __table_args__ = (
        Index("idx_price_history_product_recorded", "product_id", "recorded_at"),
    )

    product: Mapped["TrackedProduct"] = relationship(back_populates="price_history")

    def __repr__(self) -> str:
        return f"<PriceObservation(product_id={self.product_id}, price={self.price}, recorded_at={self.recorded_at})>"
