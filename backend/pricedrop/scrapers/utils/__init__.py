"""Scraper utilities for price parsing, URL handling, headers and retry."""

from .normalizer import (
    PriceNormalizer,
    CURRENCY_SYMBOLS,
    normalize_url,
    extract_product_id,
    is_valid_url,
)
from .user_agents import get_random_user_agent, browser_headers, USER_AGENTS
from .retry import ScrapeRetryPolicy, is_retryable_scrape_error


__all__ = [
    # Normalization
    "PriceNormalizer",
    "CURRENCY_SYMBOLS",
    "normalize_url",
    "extract_product_id",
    "is_valid_url",
    # User agents
    "get_random_user_agent",
    "browser_headers",
    "USER_AGENTS",
    # Retry
    "ScrapeRetryPolicy",
    "is_retryable_scrape_error",
]
