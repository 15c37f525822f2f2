"""PriceDrop backend: product price tracking with drop alerts."""

__version__ = "0.1.0"
