"""Fallback adapter for retailers without a dedicated rule set.

Relies on common markup conventions: Open Graph meta tags, schema.org
microdata and class names containing "price". There is no reliable
availability signal on arbitrary pages, so products are always reported
in stock.
"""

from pricedrop.scrapers.base import BaseScraperAdapter, ExtractionRule
from pricedrop.scrapers.platform import Platform


class GenericAdapter(BaseScraperAdapter):
    """Best-effort scraper for any product page."""

    platform = Platform.UNKNOWN
    assume_in_stock = True

    title_rules = (
        ExtractionRule("h1"),
        ExtractionRule('meta[property="og:title"]', "content"),
        ExtractionRule("title"),
    )
    price_rules = (
        ExtractionRule('meta[property="product:price:amount"]', "content"),
        ExtractionRule('meta[property="og:price:amount"]', "content"),
        ExtractionRule('[itemprop="price"]', "content"),
        ExtractionRule('[itemprop="price"]'),
        ExtractionRule(".price"),
        ExtractionRule(".product-price"),
        ExtractionRule('[class*="price"]'),
        ExtractionRule('[id*="price"]'),
    )
    image_rules = (
        ExtractionRule('meta[property="og:image"]', "content"),
        ExtractionRule("img", "src"),
    )
