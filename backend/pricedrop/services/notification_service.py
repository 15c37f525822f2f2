"""Price drop, welcome and weekly digest emails.

Messages are rendered here (subject, HTML and plain text) and handed to
an ``EmailTransport``. Savings and percent off are derived at render time
and never stored.
"""

import html
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Protocol, Sequence

import structlog

from pricedrop.config import settings
from pricedrop.core.exceptions import DispatchError
from pricedrop.scrapers.utils.normalizer import CURRENCY_SYMBOLS
from pricedrop.services.email_transport import EmailTransport, get_email_transport

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_SYMBOL_FOR_CURRENCY = {code: symbol for symbol, code in CURRENCY_SYMBOLS.items()}


class Recipient(Protocol):
    email: str
    display_name: str


class ProductInfo(Protocol):
    name: str
    url: str
    image_url: Optional[str]


@dataclass
class RenderedEmail:
    subject: str
    html_body: str
    text_body: str


@dataclass
class DigestDrop:
    """One product's price movement over the digest window."""

    name: str
    url: str
    old_price: Decimal
    new_price: Decimal
    currency: str = "USD"

    @property
    def savings(self) -> Decimal:
        return self.old_price - self.new_price


def format_price(amount: Decimal, currency: str = "USD") -> str:
    symbol = _SYMBOL_FOR_CURRENCY.get(currency)
    if symbol:
        return f"{symbol}{amount:,.2f}"
    return f"{amount:,.2f} {currency}"


def percent_off(old_price: Decimal, new_price: Decimal) -> int:
    """Whole-number discount, rounded half up."""
    if old_price <= 0:
        return 0
    ratio = (old_price - new_price) / old_price * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_valid_email(address: str) -> bool:
    return bool(address) and EMAIL_PATTERN.match(address) is not None


def one_line(text: str) -> str:
    """Collapse runs of whitespace, including line breaks, to single spaces."""
    return " ".join(text.split())


_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>
    body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; margin: 0; padding: 0; background-color: #f7f7f7; }}
    .container {{ max-width: 600px; margin: 0 auto; background-color: #ffffff; }}
    .header {{ background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); padding: 40px 20px; text-align: center; color: #ffffff; }}
    .content {{ padding: 40px 30px; }}
    .card {{ border: 2px solid #e0e0e0; border-radius: 12px; padding: 20px; margin: 20px 0; }}
    .old-price {{ text-decoration: line-through; color: #999; }}
    .new-price {{ color: #10b981; font-size: 28px; font-weight: bold; }}
    .savings {{ background-color: #10b981; color: white; padding: 8px 16px; border-radius: 20px; font-weight: bold; display: inline-block; }}
    .cta-button {{ display: inline-block; background: #667eea; color: white; padding: 15px 40px; text-decoration: none; border-radius: 8px; font-weight: bold; }}
    .footer {{ background-color: #f7f7f7; padding: 30px; text-align: center; color: #666; font-size: 14px; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{title}</h1></div>
    <div class="content">
{content}
    </div>
    <div class="footer">
      <p><a href="{settings_url}">Manage email preferences</a></p>
      <p>&copy; {year} PriceDrop. All rights reserved.</p>
    </div>
  </div>
</body>
</html>
"""


class NotificationService:
    """Renders and sends user-facing emails.

    All send methods raise ``DispatchError`` for invalid addresses and
    transport failures; callers decide whether that is fatal.
    """

    def __init__(self, transport: Optional[EmailTransport] = None, app_url: Optional[str] = None):
        self.transport = transport or get_email_transport()
        self.app_url = (app_url or settings.APP_URL).rstrip("/")
        self.logger = logger.bind(service="notification_service")

    # ================================================================
    # Rendering
    # ================================================================

    def _layout(self, title: str, content: str) -> str:
        return _LAYOUT.format(
            title=html.escape(title),
            content=content,
            settings_url=html.escape(f"{self.app_url}/settings"),
            year=datetime.now(timezone.utc).year,
        )

    def render_price_drop(
        self,
        subscriber: Recipient,
        product: ProductInfo,
        old_price: Decimal,
        new_price: Decimal,
        currency: str = "USD",
    ) -> RenderedEmail:
        savings = old_price - new_price
        off = percent_off(old_price, new_price)
        was = format_price(old_price, currency)
        now = format_price(new_price, currency)
        saved = format_price(savings, currency)

        name = html.escape(product.name or "Your product")
        url = html.escape(product.url)
        image = ""
        if product.image_url:
            image = f'      <p style="text-align:center"><img src="{html.escape(product.image_url)}" alt="{name}" style="max-width:200px"></p>\n'

        content = (
            f"      <p>Hi {html.escape(subscriber.display_name)},</p>\n"
            "      <p>Great news! The price has dropped on a product you're tracking:</p>\n"
            '      <div class="card">\n'
            f"{image}"
            f"        <h2>{name}</h2>\n"
            f'        <div class="old-price">Was {was}</div>\n'
            f'        <div class="new-price">Now {now}</div>\n'
            f'        <div class="savings">Save {saved} ({off}% OFF)</div>\n'
            f'        <p style="text-align:center"><a href="{url}" class="cta-button">Buy Now</a></p>\n'
            "      </div>\n"
            "      <p>Prices can change quickly, so act fast!</p>"
        )

        text = (
            "Price Drop Alert!\n\n"
            f"Hi {subscriber.display_name},\n\n"
            f"Great news! {product.name} has dropped in price:\n\n"
            f"Was: {was}\n"
            f"Now: {now}\n"
            f"Save: {saved} ({off}% OFF)\n\n"
            f"Buy now: {product.url}\n\n"
            "---\n"
            f"Manage your settings: {self.app_url}/settings\n"
        )

        return RenderedEmail(
            subject=f"Price Drop Alert: {one_line(product.name)} is now {now}!",
            html_body=self._layout("Price Drop Alert!", content),
            text_body=text,
        )

    def render_welcome(self, profile: Recipient) -> RenderedEmail:
        dashboard = f"{self.app_url}/dashboard"
        content = (
            f"      <p>Hi {html.escape(profile.display_name)},</p>\n"
            "      <p>Welcome to PriceDrop! We're excited to help you save money on your online purchases.</p>\n"
            '      <div class="card"><strong>1. Add your first product</strong><br>'
            "Copy any product URL from eBay, Amazon or Walmart and paste it into PriceDrop.</div>\n"
            '      <div class="card"><strong>2. Set a target price (optional)</strong><br>'
            "We'll alert you when the price drops to that amount.</div>\n"
            '      <div class="card"><strong>3. Sit back and save</strong><br>'
            "We check prices around the clock and email you when there's a drop.</div>\n"
            f'      <p style="text-align:center"><a href="{html.escape(dashboard)}" class="cta-button">Start Tracking Products</a></p>'
        )
        text = (
            f"Hi {profile.display_name},\n\n"
            "Welcome to PriceDrop!\n\n"
            "1. Add your first product: paste any eBay, Amazon or Walmart product URL.\n"
            "2. Set a target price (optional).\n"
            "3. Sit back and save: we'll email you when the price drops.\n\n"
            f"Start tracking: {dashboard}\n"
        )
        return RenderedEmail(
            subject="Welcome to PriceDrop - Start Saving Today!",
            html_body=self._layout("Welcome to PriceDrop!", content),
            text_body=text,
        )

    def render_weekly_digest(self, profile: Recipient, drops: Sequence[DigestDrop]) -> RenderedEmail:
        total_savings = sum((drop.savings for drop in drops), Decimal("0"))
        total = format_price(total_savings)

        items = []
        lines = []
        for drop in drops:
            was = format_price(drop.old_price, drop.currency)
            now = format_price(drop.new_price, drop.currency)
            items.append(
                '      <div class="card">'
                f"<strong>{html.escape(drop.name)}</strong><br>"
                f'<span class="old-price">{was}</span> &rarr; <span class="new-price">{now}</span><br>'
                f'<a href="{html.escape(drop.url)}">View Product</a></div>'
            )
            lines.append(f"- {drop.name}: {was} -> {now} ({drop.url})")

        content = (
            f"      <p>Hi {html.escape(profile.display_name)},</p>\n"
            f'      <p>You saved this week: <span class="new-price">{total}</span></p>\n'
            f"      <h2>Price Drops This Week ({len(drops)})</h2>\n"
            + "\n".join(items)
            + f'\n      <p style="text-align:center"><a href="{html.escape(self.app_url)}/dashboard" class="cta-button">View Dashboard</a></p>'
        )
        text = (
            f"Hi {profile.display_name},\n\n"
            f"You saved this week: {total}\n\n"
            f"Price drops this week ({len(drops)}):\n"
            + "\n".join(lines)
            + f"\n\nView dashboard: {self.app_url}/dashboard\n"
        )
        return RenderedEmail(
            subject=f"Your Weekly Report: {total} in Savings!",
            html_body=self._layout("Your Weekly Savings Report", content),
            text_body=text,
        )

    # ================================================================
    # Sending
    # ================================================================

    async def _deliver(self, to: str, message: RenderedEmail, kind: str) -> None:
        if not is_valid_email(to):
            raise DispatchError(to, "invalid email address")

        await self.transport.send(to, message.subject, message.html_body, message.text_body)
        self.logger.info("notification_sent", kind=kind, subject=message.subject)

    async def send_price_drop(
        self,
        subscriber: Recipient,
        product: ProductInfo,
        old_price: Decimal,
        new_price: Decimal,
        currency: str = "USD",
    ) -> None:
        """Email a subscriber that a tracked product got cheaper.

        Raises:
            DispatchError: Invalid address or transport failure
        """
        message = self.render_price_drop(subscriber, product, old_price, new_price, currency)
        await self._deliver(subscriber.email, message, "price_drop")

    async def send_welcome(self, profile: Recipient) -> None:
        await self._deliver(profile.email, self.render_welcome(profile), "welcome")

    async def send_weekly_digest(self, profile: Recipient, drops: Sequence[DigestDrop]) -> None:
        await self._deliver(profile.email, self.render_weekly_digest(profile, drops), "weekly_digest")
