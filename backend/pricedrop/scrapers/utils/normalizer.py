"""Data normalization utilities for price parsing and URL handling."""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse


# Currency symbols stripped by the parser, mapped to ISO codes
CURRENCY_SYMBOLS = {
    "$": "USD",
    "£": "GBP",
    "€": "EUR",
    "¥": "JPY",
}

_STRIP_SYMBOLS = re.compile(r"[$£€¥,\s]")
_NON_NUMERIC = re.compile(r"[^\d.]")

# Integer digits that fit the Numeric(12, 2) price columns
MAX_PRICE_DIGITS = 10

# Query parameters that never change which product a URL points to
TRACKING_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "ref",
    "ref_",
    "tag",
    "fbclid",
    "gclid",
    "mc_cid",
    "mc_eid",
    "_trkparms",
    "_trksid",
}


class PriceNormalizer:
    """Price parsing utilities shared by every scraper adapter.

    ``parse`` never raises: a zero result means the price is unknown and
    callers must not treat it as a free item.
    """

    @staticmethod
    def parse(raw: Optional[str]) -> Decimal:
        """Parse a price string into a Decimal.

        Handles various formats:
        - "$1,299.99" -> 1299.99
        - "£ 45" -> 45
        - "Free!" -> 0
        - "" -> 0

        Args:
            raw: Raw price string

        Returns:
            Decimal price value, Decimal("0") if parsing fails
        """
        if not raw:
            return Decimal("0")

        cleaned = _STRIP_SYMBOLS.sub("", raw)
        cleaned = _NON_NUMERIC.sub("", cleaned)

        if not cleaned:
            return Decimal("0")

        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            # e.g. "1.2.3" from a price range or version string
            match = re.match(r"\d*\.?\d+", cleaned)
            if not match:
                return Decimal("0")
            value = Decimal(match.group(0))

        # Digit runs this long are SKUs or counts swept up with the price
        if not value.is_finite() or value.adjusted() >= MAX_PRICE_DIGITS:
            return Decimal("0")
        return value

    @staticmethod
    def detect_currency(raw: Optional[str], default: str = "USD") -> str:
        """Return the ISO currency code for the first symbol found in ``raw``."""
        if raw:
            for symbol, code in CURRENCY_SYMBOLS.items():
                if symbol in raw:
                    return code
        return default


def normalize_url(url: str) -> str:
    """Normalize a product URL by removing tracking parameters and fragments.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    if not url:
        return url

    parsed = urlparse(url.strip())
    query_params = parse_qs(parsed.query)

    filtered_params = {
        k: v for k, v in query_params.items() if k.lower() not in TRACKING_PARAMS
    }
    new_query = urlencode(filtered_params, doseq=True)

    return urlunparse(
        (parsed.scheme.lower(), parsed.netloc.lower(), parsed.path, parsed.params, new_query, "")
    )


def extract_product_id(url: str) -> Optional[str]:
    """Extract the retailer's item id from a product URL.

    eBay: /itm/123456789, Amazon: /dp/B0ABCD1234, Walmart: /ip/<slug>/123;
    anything else falls back to the URL path.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None

    if "ebay.com" in url:
        match = re.search(r"/itm/(?:[^/]+/)?(\d+)", url)
        return match.group(1) if match else None

    if "amazon.com" in url:
        match = re.search(r"/(?:dp|gp/product)/([A-Z0-9]{10})", url)
        return match.group(1) if match else None

    if "walmart.com" in url:
        match = re.search(r"/ip/(?:[^/]+/)?(\d+)", url)
        return match.group(1) if match else None

    return parsed.path or None


def is_valid_url(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
