"""Factory for creating scraper adapter instances by platform."""

from typing import Dict, Optional, Type

import httpx
import structlog

from pricedrop.scrapers.adapters import (
    AmazonAdapter,
    EbayAdapter,
    GenericAdapter,
    WalmartAdapter,
)
from pricedrop.scrapers.base import BaseScraperAdapter
from pricedrop.scrapers.platform import Platform


logger = structlog.get_logger(__name__)


class AdapterFactory:
    """Registry of adapter classes keyed by platform.

    Unregistered platforms, including ``Platform.UNKNOWN``, resolve to the
    fallback adapter so every URL gets a scrape attempt.
    """

    def __init__(self, fallback: Type[BaseScraperAdapter] = GenericAdapter):
        """Initialize the adapter factory.

        Args:
            fallback: Adapter class used for unregistered platforms
        """
        self.fallback = fallback
        self._adapter_registry: Dict[Platform, Type[BaseScraperAdapter]] = {}

    def register_adapter(self, platform: Platform, adapter_class: Type[BaseScraperAdapter]) -> None:
        """Register an adapter class for a platform.

        Args:
            platform: Platform the adapter understands
            adapter_class: Adapter class (must inherit from BaseScraperAdapter)
        """
        if not issubclass(adapter_class, BaseScraperAdapter):
            raise ValueError(f"Adapter class must inherit from BaseScraperAdapter: {adapter_class}")

        self._adapter_registry[platform] = adapter_class
        logger.debug("adapter_registered", platform=platform.value, adapter=adapter_class.__name__)

    def create_adapter(
        self,
        platform: Platform,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> BaseScraperAdapter:
        """Create an adapter instance for ``platform``.

        Args:
            platform: Detected platform
            http_client: Optional shared client injected into the adapter

        Returns:
            Adapter instance, the fallback adapter when none is registered
        """
        adapter_class = self._adapter_registry.get(platform, self.fallback)
        return adapter_class(http_client=http_client)

    def get_registered_platforms(self) -> list[Platform]:
        return list(self._adapter_registry.keys())

    def has_adapter(self, platform: Platform) -> bool:
        return platform in self._adapter_registry


def build_default_factory() -> AdapterFactory:
    """Create a factory with the built-in retailer adapters registered."""
    factory = AdapterFactory()
    factory.register_adapter(Platform.AMAZON, AmazonAdapter)
    factory.register_adapter(Platform.EBAY, EbayAdapter)
    factory.register_adapter(Platform.WALMART, WalmartAdapter)
    return factory


# Global factory instance
adapter_factory = build_default_factory()


def get_adapter_factory() -> AdapterFactory:
    """Get the global adapter factory instance."""
    return adapter_factory
