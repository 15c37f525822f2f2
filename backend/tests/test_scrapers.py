"""Tests for retailer adapters, the adapter factory, the scraper service
and the scrape retry policy.

Pages are served through ``httpx.MockTransport`` so no test touches the
network.
"""

from decimal import Decimal

import httpx
import pytest

from pricedrop.core.exceptions import ScrapeError
from pricedrop.scrapers import ScraperService
from pricedrop.scrapers.scraper_service import to_cents
from pricedrop.scrapers.adapters import AmazonAdapter, EbayAdapter, GenericAdapter, WalmartAdapter
from pricedrop.scrapers.base import BaseScraperAdapter, ScrapedProduct
from pricedrop.scrapers.factory import AdapterFactory, build_default_factory
from pricedrop.scrapers.platform import Platform
from pricedrop.scrapers.utils.retry import ScrapeRetryPolicy


# ============================================================================
# PAGES
# ============================================================================

AMAZON_PAGE = """
<html><body>
  <span id="productTitle">  Echo Dot (5th Gen)  </span>
  <div class="a-price"><span class="a-offscreen">$49.99</span></div>
  <span class="a-text-price"><span class="a-offscreen">$59.99</span></span>
  <img id="landingImage" src="https://m.media-amazon.com/images/I/echo.jpg">
  <div id="availability"><span>In Stock</span></div>
</body></html>
"""

AMAZON_UNAVAILABLE_PAGE = """
<html><body>
  <span id="productTitle">Echo Dot (5th Gen)</span>
  <div class="a-price"><span class="a-offscreen">$49.99</span></div>
  <div id="availability"><span>Currently unavailable.</span></div>
</body></html>
"""

EBAY_PAGE = """
<html><body>
  <h1 class="x-item-title__mainTitle"><span class="ux-textspans">Vintage Film Camera</span></h1>
  <div class="x-price-primary"><span class="ux-textspans">US $1,299.99</span></div>
  <img class="ux-image-magnify__image--original" src="https://i.ebayimg.com/camera.jpg">
  <div class="d-quantity__availability"><span>More than 10 available</span></div>
</body></html>
"""

EBAY_ENDED_PAGE = """
<html><body>
  <h1 class="x-item-title__mainTitle"><span class="ux-textspans">Vintage Film Camera</span></h1>
  <div class="x-price-primary"><span class="ux-textspans">US $899.00</span></div>
  <div class="ux-action">This listing has ended</div>
</body></html>
"""

WALMART_PAGE = """
<html><body>
  <h1 itemprop="name">Great Value Whole Milk, 1 Gallon</h1>
  <span itemprop="price" content="3.48">$3.48</span>
  <div class="prod-hero-image"><img src="https://i5.walmartimages.com/milk.jpg"></div>
  <div data-testid="fulfillment-badge">Out of stock</div>
</body></html>
"""

GENERIC_META_PAGE = """
<html><head>
  <title>Kitchen Shop - Electric Kettle</title>
  <meta property="og:title" content="Electric Kettle">
  <meta property="product:price:amount" content="24.50">
  <meta property="og:image" content="https://shop.example/kettle.jpg">
</head><body>
  <h1>Electric Kettle 1.7L</h1>
  <span class="price">$30.00</span>
  <p>Out of stock</p>
</body></html>
"""

GENERIC_CLASS_PAGE = """
<html><body>
  <h1>Wool Scarf</h1>
  <div class="product-detail__price">£18.00</div>
</body></html>
"""

NO_PRICE_PAGE = "<html><body><h1>Coming soon</h1></body></html>"

WRAPPED_TITLE_PAGE = """
<html><body>
  <span id="productTitle">
        Sony WH-1000XM5
        Wireless Headphones
  </span>
  <div class="a-price"><span class="a-offscreen">$348.00</span></div>
</body></html>
"""

SKU_IN_PRICE_PAGE = """
<html><body>
  <h1>Desk Lamp</h1>
  <div class="price">SKU 1234567890 1234567890 123456789 $19.99</div>
</body></html>
"""


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _serve(html: str, status_code: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=html)

    return handler


# ============================================================================
# ADAPTER PARSING
# ============================================================================

class TestAdapterParsing:

    def test_amazon_page(self):
        product = AmazonAdapter().parse_html(AMAZON_PAGE, "https://www.amazon.com/dp/B09B8V1LZ3")

        assert product.title == "Echo Dot (5th Gen)"
        assert product.price == Decimal("49.99")
        assert product.original_price == Decimal("59.99")
        assert product.currency == "USD"
        assert product.image_url == "https://m.media-amazon.com/images/I/echo.jpg"
        assert product.in_stock is True
        assert product.platform is Platform.AMAZON

    def test_amazon_unavailable(self):
        product = AmazonAdapter().parse_html(AMAZON_UNAVAILABLE_PAGE, "https://www.amazon.com/dp/B09B8V1LZ3")
        assert product.in_stock is False
        assert product.original_price is None

    def test_ebay_page(self):
        product = EbayAdapter().parse_html(EBAY_PAGE, "https://www.ebay.com/itm/123456789")

        assert product.title == "Vintage Film Camera"
        assert product.price == Decimal("1299.99")
        assert product.image_url == "https://i.ebayimg.com/camera.jpg"
        assert product.in_stock is True
        assert product.platform is Platform.EBAY

    def test_ebay_ended_listing_is_out_of_stock(self):
        product = EbayAdapter().parse_html(EBAY_ENDED_PAGE, "https://www.ebay.com/itm/123456789")
        assert product.price == Decimal("899.00")
        assert product.in_stock is False

    def test_walmart_prefers_microdata_amount(self):
        product = WalmartAdapter().parse_html(WALMART_PAGE, "https://www.walmart.com/ip/milk/10450114")

        assert product.title == "Great Value Whole Milk, 1 Gallon"
        assert product.price == Decimal("3.48")
        assert product.image_url == "https://i5.walmartimages.com/milk.jpg"
        assert product.in_stock is False

    def test_generic_prefers_meta_price_and_assumes_in_stock(self):
        product = GenericAdapter().parse_html(GENERIC_META_PAGE, "https://shop.example/kettle")

        assert product.title == "Electric Kettle 1.7L"
        assert product.price == Decimal("24.50")
        assert product.image_url == "https://shop.example/kettle.jpg"
        assert product.in_stock is True
        assert product.platform is Platform.UNKNOWN

    def test_generic_falls_back_to_price_class(self):
        product = GenericAdapter().parse_html(GENERIC_CLASS_PAGE, "https://shop.example/scarf")
        assert product.price == Decimal("18.00")
        assert product.currency == "GBP"

    def test_missing_price_parses_to_zero(self):
        product = GenericAdapter().parse_html(NO_PRICE_PAGE, "https://shop.example/soon")
        assert product.price == Decimal("0")
        assert product.title == "Coming soon"

    def test_wrapped_title_is_collapsed_to_one_line(self):
        product = AmazonAdapter().parse_html(WRAPPED_TITLE_PAGE, "https://www.amazon.com/dp/B09XS7JWHH")
        assert product.title == "Sony WH-1000XM5 Wireless Headphones"

    def test_scraped_product_rejects_float_price(self):
        with pytest.raises(ValueError):
            ScrapedProduct(url="https://shop.example/p", title="x", price=9.99)


# ============================================================================
# ADAPTER FETCH
# ============================================================================

class TestAdapterFetch:

    async def test_single_get_with_browser_headers(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text=AMAZON_PAGE)

        async with _client(handler) as client:
            product = await AmazonAdapter(http_client=client).scrape(
                "https://www.amazon.com/dp/B09B8V1LZ3"
            )

        assert product.price == Decimal("49.99")
        assert len(requests) == 1
        assert requests[0].method == "GET"
        assert requests[0].headers.get("User-Agent")

    async def test_not_found_is_permanent(self):
        async with _client(_serve("gone", 404)) as client:
            with pytest.raises(ScrapeError) as exc_info:
                await EbayAdapter(http_client=client).scrape("https://www.ebay.com/itm/1")

        assert exc_info.value.retryable is False
        assert "HTTP 404" in str(exc_info.value)

    @pytest.mark.parametrize("status_code", [429, 500, 503])
    async def test_throttling_and_server_errors_are_transient(self, status_code):
        async with _client(_serve("busy", status_code)) as client:
            with pytest.raises(ScrapeError) as exc_info:
                await EbayAdapter(http_client=client).scrape("https://www.ebay.com/itm/1")

        assert exc_info.value.retryable is True

    async def test_timeout_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        async with _client(handler) as client:
            with pytest.raises(ScrapeError) as exc_info:
                await WalmartAdapter(http_client=client, timeout=1.0).scrape(
                    "https://www.walmart.com/ip/10450114"
                )

        assert exc_info.value.retryable is True
        assert exc_info.value.url == "https://www.walmart.com/ip/10450114"

    async def test_connection_error_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(ScrapeError) as exc_info:
                await GenericAdapter(http_client=client).scrape("https://shop.example/p")

        assert exc_info.value.retryable is True


# ============================================================================
# FACTORY
# ============================================================================

class TestAdapterFactory:

    def test_default_registrations(self):
        factory = build_default_factory()

        assert set(factory.get_registered_platforms()) == {
            Platform.AMAZON,
            Platform.EBAY,
            Platform.WALMART,
        }
        assert isinstance(factory.create_adapter(Platform.AMAZON), AmazonAdapter)
        assert isinstance(factory.create_adapter(Platform.EBAY), EbayAdapter)
        assert isinstance(factory.create_adapter(Platform.WALMART), WalmartAdapter)

    def test_unknown_platform_uses_fallback(self):
        factory = build_default_factory()
        assert not factory.has_adapter(Platform.UNKNOWN)
        assert isinstance(factory.create_adapter(Platform.UNKNOWN), GenericAdapter)

    def test_register_rejects_non_adapter(self):
        with pytest.raises(ValueError):
            AdapterFactory().register_adapter(Platform.EBAY, dict)

    def test_client_is_injected(self):
        client = object()
        adapter = build_default_factory().create_adapter(Platform.EBAY, http_client=client)
        assert adapter.http_client is client

    def test_custom_fallback(self):
        class NullAdapter(BaseScraperAdapter):
            pass

        factory = AdapterFactory(fallback=NullAdapter)
        assert isinstance(factory.create_adapter(Platform.AMAZON), NullAdapter)


# ============================================================================
# SCRAPER SERVICE
# ============================================================================

class TestScraperService:

    async def test_routes_by_platform(self):
        async with _client(_serve(WALMART_PAGE)) as client:
            product = await ScraperService(http_client=client).scrape(
                "https://www.walmart.com/ip/milk/10450114"
            )

        assert product.platform is Platform.WALMART
        assert product.price == Decimal("3.48")

    async def test_unknown_retailer_uses_generic_rules(self):
        async with _client(_serve(GENERIC_META_PAGE)) as client:
            product = await ScraperService(http_client=client).scrape("https://shop.example/kettle")

        assert product.platform is Platform.UNKNOWN
        assert product.price == Decimal("24.50")

    async def test_missing_price_is_a_permanent_failure(self):
        async with _client(_serve(NO_PRICE_PAGE)) as client:
            with pytest.raises(ScrapeError) as exc_info:
                await ScraperService(http_client=client).scrape("https://www.amazon.com/dp/B09B8V1LZ3")

        assert exc_info.value.retryable is False
        assert "no price found" in str(exc_info.value)

    async def test_price_swept_up_with_a_sku_is_not_a_price(self):
        async with _client(_serve(SKU_IN_PRICE_PAGE)) as client:
            with pytest.raises(ScrapeError) as exc_info:
                await ScraperService(http_client=client).scrape("https://shop.example/lamp")

        assert exc_info.value.retryable is False

    def test_to_cents(self):
        assert to_cents("https://shop.example/p", Decimal("19.999")) == Decimal("20.00")
        with pytest.raises(ScrapeError):
            to_cents("https://shop.example/p", Decimal("1E+40"))


# ============================================================================
# RETRY POLICY
# ============================================================================

class TestScrapeRetryPolicy:

    async def test_retries_transient_failures(self):
        attempts = []

        async def flaky(url):
            attempts.append(url)
            if len(attempts) < 3:
                raise ScrapeError(url, "HTTP 503", retryable=True)
            return "page"

        policy = ScrapeRetryPolicy(max_attempts=3, min_wait=0, max_wait=0)
        assert await policy.call(flaky, "https://www.ebay.com/itm/1") == "page"
        assert len(attempts) == 3

    async def test_permanent_failure_is_not_retried(self):
        attempts = []

        async def missing(url):
            attempts.append(url)
            raise ScrapeError(url, "HTTP 404")

        policy = ScrapeRetryPolicy(max_attempts=3, min_wait=0, max_wait=0)
        with pytest.raises(ScrapeError):
            await policy.call(missing, "https://www.ebay.com/itm/1")
        assert len(attempts) == 1

    async def test_gives_up_after_max_attempts(self):
        attempts = []

        async def down(url):
            attempts.append(url)
            raise ScrapeError(url, "timed out", retryable=True)

        policy = ScrapeRetryPolicy(max_attempts=2, min_wait=0, max_wait=0)
        with pytest.raises(ScrapeError) as exc_info:
            await policy.call(down, "https://www.ebay.com/itm/1")

        assert exc_info.value.retryable is True
        assert len(attempts) == 2

    async def test_other_exceptions_propagate_untouched(self):
        async def broken(url):
            raise RuntimeError("bug")

        policy = ScrapeRetryPolicy(max_attempts=3, min_wait=0, max_wait=0)
        with pytest.raises(RuntimeError):
            await policy.call(broken, "https://www.ebay.com/itm/1")

    @pytest.mark.parametrize(
        "attempts,max_wait,expected",
        [(3, 10.0, 50.0), (1, 10.0, 10.0), (0, 5.0, 10.0)],
    )
    def test_worst_case_seconds(self, attempts, max_wait, expected):
        policy = ScrapeRetryPolicy(max_attempts=attempts, min_wait=0, max_wait=max_wait)
        assert policy.worst_case_seconds(10.0) == expected
