"""Custom exception classes for the application."""

from typing import Optional


class PriceDropException(Exception):
    """Base exception for all PriceDrop errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(PriceDropException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class ScrapeError(PriceDropException):
    """Raised when a product page cannot be fetched or parsed.

    Attributes:
        url: The product URL that failed
        cause: Underlying exception or reason string
        retryable: True for transient failures (timeouts, 429, 5xx)
    """

    def __init__(self, url: str, cause: object, retryable: bool = False):
        self.url = url
        self.cause = cause
        self.retryable = retryable
        super().__init__(f"Failed to scrape {url}: {cause}")


class DispatchError(PriceDropException):
    """Raised when a notification cannot be delivered."""

    def __init__(self, recipient: str, cause: object):
        self.recipient = recipient
        self.cause = cause
        super().__init__(f"Failed to notify {recipient}: {cause}")


class AlreadyTrackingError(PriceDropException):
    """Raised when a user subscribes to a product they already track."""

    def __init__(self, product_id: Optional[str] = None):
        self.product_id = product_id
        super().__init__("You are already tracking this product")


class PlanLimitError(PriceDropException):
    """Raised when tracking another product would exceed the plan ceiling."""

    def __init__(self, plan: str, limit: int):
        self.plan = plan
        self.limit = limit
        super().__init__(
            f"Your {plan} plan allows {limit} products. Please upgrade to track more."
        )


class PriceCheckError(PriceDropException):
    """Raised when a price check run fails outside per-item handling."""
