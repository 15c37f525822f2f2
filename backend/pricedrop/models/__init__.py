"""SQLAlchemy models for PriceDrop.

All models are imported here so they register with Base.metadata.
"""

from pricedrop.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from pricedrop.models.product import TrackedProduct
from pricedrop.models.price_history import PriceObservation
from pricedrop.models.tracking import TrackingSubscription
from pricedrop.models.user import UserProfile, PlanTier, PLAN_LIMITS, get_plan_limit
from pricedrop.models.notification import Notification
from pricedrop.models.job_run import JobRun
from pricedrop.models.error_log import ErrorLog
from pricedrop.models.job_lock import JobLock

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "TrackedProduct",
    "PriceObservation",
    "TrackingSubscription",
    "UserProfile",
    "PlanTier",
    "PLAN_LIMITS",
    "get_plan_limit",
    "Notification",
    "JobRun",
    "ErrorLog",
    "JobLock",
]
