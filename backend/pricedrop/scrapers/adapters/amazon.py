"""Amazon product page adapter.

Amazon renders the buy-box price twice: a visually hidden
``.a-offscreen`` span with the full string ("$1,299.99") and split
whole/fraction spans. The hidden span is preferred since it parses in
one piece.
"""

from pricedrop.scrapers.base import BaseScraperAdapter, ExtractionRule
from pricedrop.scrapers.platform import Platform


class AmazonAdapter(BaseScraperAdapter):
    """Scrapes amazon.com product detail pages."""

    platform = Platform.AMAZON

    title_rules = (
        ExtractionRule("#productTitle"),
        ExtractionRule("h1 span"),
    )
    price_rules = (
        ExtractionRule(".a-price .a-offscreen"),
        ExtractionRule("#priceblock_ourprice"),
        ExtractionRule("#priceblock_dealprice"),
        ExtractionRule(".a-price-whole"),
    )
    original_price_rules = (
        ExtractionRule(".a-text-price .a-offscreen"),
        ExtractionRule("#priceblock_saleprice"),
    )
    image_rules = (
        ExtractionRule("#landingImage", "src"),
        ExtractionRule(".imgTagWrapper img", "src"),
    )
    stock_rules = (
        ExtractionRule("#availability span"),
        ExtractionRule("#availability"),
    )
