"""User profile model: plan tier, counters and notification preferences."""

import enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pricedrop.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from pricedrop.models.tracking import TrackingSubscription


class PlanTier(str, enum.Enum):
    """Subscription plans sold through the payments provider."""

    FREE = "free"
    PRO = "pro"
    ULTRA = "ultra"
    MEGA = "mega"


# Maximum number of products each plan may track
PLAN_LIMITS = {
    PlanTier.FREE: 5,
    PlanTier.PRO: 999,
    PlanTier.ULTRA: 999,
    PlanTier.MEGA: 999,
}


def get_plan_limit(plan: str) -> int:
    """Products-tracked ceiling for a plan name; unknown plans get the free ceiling."""
    try:
        return PLAN_LIMITS[PlanTier(plan)]
    except ValueError:
        return PLAN_LIMITS[PlanTier.FREE]


class UserProfile(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Profile of a user authenticated by the external auth provider.

    ``id`` is the provider's user id. ``tracked_count`` mirrors the number
    of TrackingSubscription rows and is maintained by TrackingService.
    """

    __tablename__ = "user_profiles"

    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    plan: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PlanTier.FREE.value,
        comment="Plan tier: 'free', 'pro', 'ultra', 'mega'"
    )

    # Counters
    tracked_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    alert_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
        comment="Price drop alerts delivered"
    )

    # Notification preferences
    email_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sms_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    subscriptions: Mapped[List["TrackingSubscription"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        return self.full_name or self.email.split("@")[0]

    def __repr__(self) -> str:
        return f"<UserProfile(id={self.id}, plan='{self.plan}')>"
