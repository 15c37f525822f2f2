"""Per-item failure log used by the deactivation circuit breaker."""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, ForeignKey, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from pricedrop.models.base import Base, UUIDPrimaryKeyMixin, utcnow

SCRAPE_FAILED = "price_check_failed"
PERSISTENCE_FAILED = "persistence_failed"


class ErrorLog(UUIDPrimaryKeyMixin, Base):
    """One failed price check of one product."""

    __tablename__ = "error_logs"

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    error_type: Mapped[str] = mapped_column(
        String(40), nullable=False, default=SCRAPE_FAILED,
        comment="'price_check_failed' or 'persistence_failed'"
    )
    error_message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_error_logs_product_created", "product_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ErrorLog(product_id={self.product_id}, type='{self.error_type}')>"
