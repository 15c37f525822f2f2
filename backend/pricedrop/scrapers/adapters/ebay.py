"""eBay item page adapter.

Covers both the current ``x-``/``ux-`` item layout and the legacy
``vi-`` layout still served for some listings.
"""

from pricedrop.scrapers.base import BaseScraperAdapter, ExtractionRule
from pricedrop.scrapers.platform import Platform


class EbayAdapter(BaseScraperAdapter):
    """Scrapes ebay.com /itm/ listing pages."""

    platform = Platform.EBAY

    title_rules = (
        ExtractionRule("h1.x-item-title__mainTitle span"),
        ExtractionRule(".it-ttl"),
        ExtractionRule("h1"),
    )
    price_rules = (
        ExtractionRule(".x-price-primary span.ux-textspans"),
        ExtractionRule(".notranslate"),
        ExtractionRule(".vi-VR-cvipPrice"),
        ExtractionRule(".mainPrice"),
    )
    original_price_rules = (
        ExtractionRule(".x-price-approx__price span"),
        ExtractionRule(".vi-originalPrice"),
    )
    image_rules = (
        ExtractionRule("img.ux-image-magnify__image--original", "src"),
        ExtractionRule("img#icImg", "src"),
        ExtractionRule(".ux-image-carousel-item img", "src"),
    )
    stock_rules = (
        ExtractionRule(".d-quantity__availability"),
        ExtractionRule(".d-shipping-minview"),
        ExtractionRule(".vi-acc-del-range"),
        ExtractionRule(".ux-action"),
    )
    out_of_stock_phrases = (
        "out of stock",
        "sold out",
        "no longer available",
        "this listing has ended",
    )
