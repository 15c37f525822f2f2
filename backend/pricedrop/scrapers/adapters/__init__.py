"""Retailer-specific adapter implementations.

Each adapter is a ``BaseScraperAdapter`` subclass declaring its
extraction rules. ``GenericAdapter`` handles any unrecognized retailer.
"""

from .amazon import AmazonAdapter
from .ebay import EbayAdapter
from .walmart import WalmartAdapter
from .generic import GenericAdapter

__all__ = [
    "AmazonAdapter",
    "EbayAdapter",
    "WalmartAdapter",
    "GenericAdapter",
]
