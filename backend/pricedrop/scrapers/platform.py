"""Retailer detection from product URLs."""

import enum


class Platform(str, enum.Enum):
    """Retailers whose page structure the adapters understand."""

    AMAZON = "amazon"
    EBAY = "ebay"
    WALMART = "walmart"
    UNKNOWN = "unknown"


# Host substring -> platform, checked in order
PLATFORM_DOMAINS = (
    ("ebay.com", Platform.EBAY),
    ("amazon.com", Platform.AMAZON),
    ("walmart.com", Platform.WALMART),
)


def detect_platform(url: str) -> Platform:
    """Classify a product URL into a known retailer.

    Pure substring test with no network access. Anything unmatched,
    including empty or malformed input, is ``Platform.UNKNOWN``.
    """
    if not isinstance(url, str) or not url:
        return Platform.UNKNOWN

    lowered = url.lower()
    for domain, platform in PLATFORM_DOMAINS:
        if domain in lowered:
            return platform
    return Platform.UNKNOWN
