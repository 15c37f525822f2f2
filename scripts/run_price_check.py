"""Manual runner for the price check job and single-URL scrapes.

Usage:
    python scripts/run_price_check.py                  # run the price check job once
    python scripts/run_price_check.py --url <URL>      # scrape one product page
    python scripts/run_price_check.py --digest         # send the weekly digest now
"""

import argparse
import asyncio
import os
import sys

# Add backend to path so we can import pricedrop modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from pricedrop.core.exceptions import PriceCheckError, ScrapeError
from pricedrop.db.session import async_session_factory, engine
from pricedrop.models import Base
from pricedrop.scrapers.platform import detect_platform
from pricedrop.scrapers.scraper_service import ScraperService
from pricedrop.services.digest_service import DigestService
from pricedrop.services.notification_service import format_price
from pricedrop.services.price_check_service import PriceCheckService


async def scrape_url(url: str) -> int:
    """Scrape one URL and print the extracted fields."""
    print(f"\n{'='*70}")
    print(f"  Scraping ({detect_platform(url).value})")
    print(f"  {url[:66]}")
    print(f"{'='*70}\n")

    try:
        product = await ScraperService().scrape(url)
    except ScrapeError as e:
        print(f"Scrape failed: {e}")
        print(f"   Retryable: {e.retryable}\n")
        return 1

    print(f"  Title:     {product.title}")
    print(f"  Price:     {format_price(product.price, product.currency)}")
    if product.original_price:
        print(f"  Original:  {format_price(product.original_price, product.currency)}")
    print(f"  In stock:  {product.in_stock}")
    print(f"  Image:     {product.image_url or '-'}\n")
    return 0


async def run_price_check() -> int:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        try:
            summary = await PriceCheckService(db).run()
        except PriceCheckError as e:
            print(f"Price check failed: {e}")
            return 1

    print(f"\n{'='*70}")
    print(f"  Price check: {summary.status}")
    print(f"{'='*70}")
    print(f"  Checked:     {summary.products_checked}")
    print(f"  Updated:     {summary.products_updated}")
    print(f"  Alerts sent: {summary.alerts_sent}")
    print(f"  Errors:      {summary.errors}")
    print(f"  Duration:    {summary.duration_ms} ms")
    for drop in summary.price_drops:
        print(f"    - {drop['product_id']}: {drop['old_price']} -> {drop['new_price']}")
    print()
    return 0


async def run_digest(days: int) -> int:
    async with async_session_factory() as db:
        stats = await DigestService(db).run(days=days)
    print(f"Digest: {stats['sent']} sent, {stats['failed']} failed, {stats['profiles']} profiles")
    return 0


async def _main(args: argparse.Namespace) -> int:
    try:
        if args.url:
            return await scrape_url(args.url)
        if args.digest:
            return await run_digest(args.days)
        return await run_price_check()
    finally:
        await engine.dispose()


def main():
    """Parse arguments and run the selected job."""
    parser = argparse.ArgumentParser(
        description="Run the price check job or scrape a single product URL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_price_check.py
  python scripts/run_price_check.py --url https://www.ebay.com/itm/123456789
  python scripts/run_price_check.py --digest --days 7
        """,
    )
    parser.add_argument("--url", help="Scrape this product URL and print the result")
    parser.add_argument("--digest", action="store_true", help="Send the weekly digest")
    parser.add_argument("--days", type=int, default=7, help="Digest window in days (default: 7)")

    args = parser.parse_args()
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
