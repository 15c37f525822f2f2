"""Business logic services."""

from pricedrop.services.email_transport import (
    EmailTransport,
    LogTransport,
    SendGridTransport,
    SmtpTransport,
    get_email_transport,
)
from pricedrop.services.notification_service import NotificationService
from pricedrop.services.job_lock import JobLockService
from pricedrop.services.price_check_service import PriceCheckService, JobSummary
from pricedrop.services.tracking_service import TrackingService, TrackResult
from pricedrop.services.profile_service import ProfileService
from pricedrop.services.digest_service import DigestService
from pricedrop.services.product_service import ProductService

__all__ = [
    "EmailTransport",
    "LogTransport",
    "SendGridTransport",
    "SmtpTransport",
    "get_email_transport",
    "NotificationService",
    "JobLockService",
    "PriceCheckService",
    "JobSummary",
    "TrackingService",
    "TrackResult",
    "ProfileService",
    "DigestService",
    "ProductService",
]
