"""TrackingSubscription model linking a user to a tracked product."""

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Numeric, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pricedrop.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from pricedrop.models.user import UserProfile
    from pricedrop.models.product import TrackedProduct


class TrackingSubscription(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """User's subscription to price changes of a product."""

    __tablename__ = "user_tracking"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    target_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True,
        comment="Alert when price drops to or below this"
    )
    notify_on_any_drop: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
        comment="Alert on every drop regardless of target price"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_user_tracking_user_product"),
    )

    user: Mapped["UserProfile"] = relationship(back_populates="subscriptions")
    product: Mapped["TrackedProduct"] = relationship(back_populates="subscriptions")

    def __repr__(self) -> str:
        return f"<TrackingSubscription(user={self.user_id}, product={self.product_id}, target={self.target_price})>"
