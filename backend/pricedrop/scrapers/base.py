"""Base scraper adapter interface.

Every retailer adapter is a ``BaseScraperAdapter`` subclass that only
declares data: ordered ``ExtractionRule`` lists per field. The base class
performs the single page fetch, evaluates the rules (first non-empty value
wins), runs price text through ``PriceNormalizer`` and derives stock
status. Adding a retailer means adding a rule set, not new control flow.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

import httpx
import structlog
from bs4 import BeautifulSoup

from pricedrop.config import settings
from pricedrop.core.exceptions import ScrapeError
from pricedrop.scrapers.platform import Platform
from pricedrop.scrapers.utils.normalizer import PriceNormalizer
from pricedrop.scrapers.utils.user_agents import browser_headers


@dataclass
class ScrapedProduct:
    """Normalized product data returned by all adapters."""

    url: str
    title: str
    price: Decimal
    currency: str = "USD"
    image_url: str = ""
    in_stock: bool = True
    platform: Platform = Platform.UNKNOWN
    original_price: Optional[Decimal] = None

    def __post_init__(self):
        """Validate data after initialization."""
        if not isinstance(self.price, Decimal):
            raise ValueError("price must be a Decimal")
        if self.price < 0:
            raise ValueError("price must be non-negative")


@dataclass(frozen=True)
class ExtractionRule:
    """One candidate location of a field in a product page.

    Attributes:
        selector: CSS selector; the first matching element is used
        attribute: Attribute to read, or None to read the element text
    """

    selector: str
    attribute: Optional[str] = None

    def extract(self, soup: BeautifulSoup) -> str:
        element = soup.select_one(self.selector)
        if element is None:
            return ""
        if self.attribute:
            value = element.get(self.attribute)
            if isinstance(value, list):
                value = " ".join(value)
            return " ".join((value or "").split())
        return " ".join(element.get_text(" ", strip=True).split())


def first_match(soup: BeautifulSoup, rules: Sequence[ExtractionRule]) -> str:
    """Evaluate rules in order and return the first non-empty value."""
    for rule in rules:
        value = rule.extract(soup)
        if value:
            return value
    return ""


class BaseScraperAdapter:
    """Base class for HTML product page adapters.

    Subclasses set ``platform`` and the ``*_rules`` tuples. An
    ``httpx.AsyncClient`` may be injected to share connections across a
    batch; otherwise one is created per request.
    """

    platform: Platform = Platform.UNKNOWN
    default_currency: str = "USD"

    title_rules: Sequence[ExtractionRule] = ()
    price_rules: Sequence[ExtractionRule] = ()
    original_price_rules: Sequence[ExtractionRule] = ()
    image_rules: Sequence[ExtractionRule] = ()
    stock_rules: Sequence[ExtractionRule] = ()

    # Availability text containing any of these means out of stock
    out_of_stock_phrases: Sequence[str] = (
        "out of stock",
        "currently unavailable",
        "sold out",
    )
    # True when the page carries no reliable stock signal
    assume_in_stock: bool = False

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the adapter.

        Args:
            http_client: Optional shared async client
            timeout: Request timeout in seconds (defaults to SCRAPE_TIMEOUT_SECONDS)
        """
        self.http_client = http_client
        self.timeout = timeout if timeout is not None else settings.SCRAPE_TIMEOUT_SECONDS
        self.logger = structlog.get_logger(__name__).bind(adapter=self.platform.value)

    async def scrape(self, url: str) -> ScrapedProduct:
        """Fetch a product page and extract its details.

        Args:
            url: Product page URL

        Returns:
            ScrapedProduct with a parsed Decimal price (0 when not found)

        Raises:
            ScrapeError: On network error, timeout or non-2xx status
        """
        html = await self._fetch_html(url)
        product = self.parse_html(html, url)
        self.logger.info(
            "product_scraped",
            url=url,
            price=str(product.price),
            in_stock=product.in_stock,
        )
        return product

    async def _fetch_html(self, url: str) -> str:
        """Issue the single GET for ``url`` and return the body text."""
        headers = browser_headers()
        try:
            if self.http_client is not None:
                response = await self.http_client.get(
                    url, headers=headers, timeout=self.timeout, follow_redirects=True
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            raise ScrapeError(
                url,
                f"HTTP {status_code}",
                retryable=status_code == 429 or status_code >= 500,
            ) from e
        except httpx.TimeoutException as e:
            raise ScrapeError(url, f"timed out after {self.timeout}s", retryable=True) from e
        except httpx.TransportError as e:
            raise ScrapeError(url, e, retryable=not isinstance(e, httpx.UnsupportedProtocol)) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ScrapeError(url, e) from e

        return response.text

    def parse_html(self, html: str, url: str) -> ScrapedProduct:
        """Extract product fields from page HTML using the adapter's rules."""
        soup = BeautifulSoup(html, "html.parser")

        title = first_match(soup, self.title_rules)

        price_text = first_match(soup, self.price_rules)
        price = PriceNormalizer.parse(price_text)
        currency = PriceNormalizer.detect_currency(price_text, self.default_currency)

        original_price: Optional[Decimal] = None
        original_text = first_match(soup, self.original_price_rules)
        if original_text:
            parsed = PriceNormalizer.parse(original_text)
            if parsed > 0 and parsed != price:
                original_price = parsed

        image_url = first_match(soup, self.image_rules)

        return ScrapedProduct(
            url=url,
            title=title,
            price=price,
            currency=currency,
            image_url=image_url,
            in_stock=self._derive_stock(first_match(soup, self.stock_rules)),
            platform=self.platform,
            original_price=original_price,
        )

    def _derive_stock(self, availability_text: str) -> bool:
        """Optimistic stock policy: only negative evidence marks out of stock."""
        if self.assume_in_stock:
            return True
        lowered = availability_text.lower()
        return not any(phrase in lowered for phrase in self.out_of_stock_phrases)
