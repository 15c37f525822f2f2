"""Walmart product page adapter."""

from pricedrop.scrapers.base import BaseScraperAdapter, ExtractionRule
from pricedrop.scrapers.platform import Platform


class WalmartAdapter(BaseScraperAdapter):
    """Scrapes walmart.com /ip/ product pages."""

    platform = Platform.WALMART

    title_rules = (
        ExtractionRule('h1[itemprop="name"]'),
        ExtractionRule("h1"),
    )
    price_rules = (
        # Microdata carries the bare amount in the content attribute
        ExtractionRule('[itemprop="price"]', "content"),
        ExtractionRule('[itemprop="price"]'),
        ExtractionRule(".price-characteristic"),
    )
    image_rules = (
        ExtractionRule(".prod-hero-image img", "src"),
        ExtractionRule('img[data-testid="hero-image-carousel"]', "src"),
    )
    stock_rules = (
        ExtractionRule(".prod-ProductOffer-oosMsg"),
        ExtractionRule('[data-testid="fulfillment-badge"]'),
    )
