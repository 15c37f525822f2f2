"""Single-URL scrape orchestration.

Bridges platform detection and the adapter layer: one call turns a
product URL into a ``ScrapedProduct`` or raises ``ScrapeError``.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx
import structlog

from pricedrop.core.exceptions import ScrapeError
from pricedrop.scrapers.base import ScrapedProduct
from pricedrop.scrapers.factory import AdapterFactory, get_adapter_factory
from pricedrop.scrapers.platform import detect_platform

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def to_cents(url: str, price: Decimal) -> Decimal:
    """Round a scraped price to cents.

    Raises:
        ScrapeError: If the value cannot be represented as a price
    """
    try:
        return price.quantize(CENT)
    except InvalidOperation as e:
        raise ScrapeError(url, f"unusable price value {price}") from e


class ScraperService:
    """Routes product URLs to the matching retailer adapter.

    A shared ``httpx.AsyncClient`` may be passed in so a batch of scrapes
    reuses connections; the caller owns its lifecycle.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        factory: Optional[AdapterFactory] = None,
    ):
        self.http_client = http_client
        self.adapter_factory = factory or get_adapter_factory()
        self.logger = logger.bind(service="scraper_service")

    async def scrape(self, url: str) -> ScrapedProduct:
        """Scrape one product page.

        Args:
            url: Product page URL

        Returns:
            ScrapedProduct with a positive price

        Raises:
            ScrapeError: On fetch failure, or when no price could be found.
                A missing price is never retryable and never a price drop.
        """
        platform = detect_platform(url)
        adapter = self.adapter_factory.create_adapter(platform, http_client=self.http_client)

        product = await adapter.scrape(url)
        product.price = to_cents(url, product.price)
        if product.original_price is not None:
            original = to_cents(url, product.original_price)
            product.original_price = original if original > 0 and original != product.price else None
        if product.price <= 0:
            self.logger.warning("price_not_found", url=url, platform=platform.value)
            raise ScrapeError(url, "no price found on page")

        return product
