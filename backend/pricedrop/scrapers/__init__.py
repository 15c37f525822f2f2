"""Scraper system for reading prices from retailer product pages.

This package provides:
- Platform detection from product URLs
- Rule-driven adapters for Amazon, eBay, Walmart and a generic fallback
- Price parsing and URL utilities
- Factory and service for routing a URL to its adapter
"""

from .platform import Platform, detect_platform
from .base import BaseScraperAdapter, ExtractionRule, ScrapedProduct
from .factory import AdapterFactory, adapter_factory, get_adapter_factory
from .scraper_service import ScraperService

__all__ = [
    # Platform detection
    "Platform",
    "detect_platform",
    # Base classes
    "BaseScraperAdapter",
    "ExtractionRule",
    # Data structures
    "ScrapedProduct",
    # Factory
    "AdapterFactory",
    "adapter_factory",
    "get_adapter_factory",
    "ScraperService",
]
