"""Tests for email rendering, the notification service and email transports."""

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from unittest.mock import AsyncMock

import httpx
import pytest

from pricedrop.core.exceptions import DispatchError
from pricedrop.services.email_transport import (
    LogTransport,
    SendGridTransport,
    SmtpTransport,
    get_email_transport,
)
from pricedrop.services.notification_service import (
    DigestDrop,
    NotificationService,
    format_price,
    is_valid_email,
    percent_off,
)


@dataclass
class Person:
    email: str
    display_name: str


@dataclass
class Item:
    name: str
    url: str
    image_url: Optional[str] = None


# ============================================================================
# HELPERS
# ============================================================================

class TestFormatting:

    @pytest.mark.parametrize(
        "amount,currency,expected",
        [
            (Decimal("80"), "USD", "$80.00"),
            (Decimal("1299.9"), "USD", "$1,299.90"),
            (Decimal("45.5"), "GBP", "£45.50"),
            (Decimal("10"), "CAD", "10.00 CAD"),
        ],
    )
    def test_format_price(self, amount, currency, expected):
        assert format_price(amount, currency) == expected

    @pytest.mark.parametrize(
        "old,new,expected",
        [
            ("100", "80", 20),
            ("3", "2", 33),
            ("8", "7", 13),
            ("60", "60", 0),
            ("0", "10", 0),
        ],
    )
    def test_percent_off_rounds_half_up(self, old, new, expected):
        assert percent_off(Decimal(old), Decimal(new)) == expected

    @pytest.mark.parametrize(
        "address,valid",
        [
            ("alice@example.com", True),
            ("a.b+tag@mail.example.co.uk", True),
            ("no-at-sign.example.com", False),
            ("two@@example.com", False),
            ("spaces in@example.com", False),
            ("", False),
        ],
    )
    def test_is_valid_email(self, address, valid):
        assert is_valid_email(address) is valid


# ============================================================================
# RENDERING
# ============================================================================

class TestRendering:

    def test_price_drop_email(self, notifier):
        message = notifier.render_price_drop(
            Person("alice@example.com", "Alice"),
            Item("Echo Dot", "https://www.amazon.com/dp/B09B8V1LZ3", "https://img.example/e.jpg"),
            Decimal("100.00"),
            Decimal("80.00"),
        )

        assert message.subject == "Price Drop Alert: Echo Dot is now $80.00!"
        assert "Was $100.00" in message.html_body
        assert "Now $80.00" in message.html_body
        assert "Save $20.00 (20% OFF)" in message.html_body
        assert "https://img.example/e.jpg" in message.html_body
        assert "https://pricedrop.test/settings" in message.html_body

        assert "Was: $100.00" in message.text_body
        assert "Save: $20.00 (20% OFF)" in message.text_body
        assert "https://www.amazon.com/dp/B09B8V1LZ3" in message.text_body

    def test_price_drop_escapes_scraped_text(self, notifier):
        message = notifier.render_price_drop(
            Person("alice@example.com", "Alice"),
            Item('<script>alert("x")</script>', "https://shop.example/p?a=1&b=2"),
            Decimal("10"),
            Decimal("5"),
        )

        assert "<script>" not in message.html_body
        assert "&lt;script&gt;" in message.html_body
        assert "https://shop.example/p?a=1&amp;b=2" in message.html_body

    def test_price_drop_subject_is_one_line(self, notifier):
        message = notifier.render_price_drop(
            Person("alice@example.com", "Alice"),
            Item("Sony WH-1000XM5\n  Wireless Headphones", "https://www.amazon.com/dp/B09XS7JWHH"),
            Decimal("399.99"),
            Decimal("348.00"),
        )

        assert message.subject == "Price Drop Alert: Sony WH-1000XM5 Wireless Headphones is now $348.00!"

    def test_price_drop_uses_product_currency(self, notifier):
        message = notifier.render_price_drop(
            Person("alice@example.com", "Alice"),
            Item("Scarf", "https://shop.example/scarf"),
            Decimal("20"),
            Decimal("15"),
            currency="GBP",
        )
        assert message.subject.endswith("is now £15.00!")

    def test_welcome_email(self, notifier):
        message = notifier.render_welcome(Person("bob@example.com", "Bob"))

        assert message.subject == "Welcome to PriceDrop - Start Saving Today!"
        assert "Hi Bob," in message.html_body
        assert "https://pricedrop.test/dashboard" in message.text_body

    def test_weekly_digest_totals_savings(self, notifier):
        drops = [
            DigestDrop("Kettle", "https://shop.example/kettle", Decimal("30.00"), Decimal("24.50")),
            DigestDrop("Camera", "https://www.ebay.com/itm/1", Decimal("100.00"), Decimal("90.00")),
        ]
        message = notifier.render_weekly_digest(Person("alice@example.com", "Alice"), drops)

        assert message.subject == "Your Weekly Report: $15.50 in Savings!"
        assert "Price Drops This Week (2)" in message.html_body
        assert "- Kettle: $30.00 -> $24.50 (https://shop.example/kettle)" in message.text_body

    def test_digest_drop_savings(self):
        drop = DigestDrop("Kettle", "https://shop.example/kettle", Decimal("30.00"), Decimal("24.50"))
        assert drop.savings == Decimal("5.50")


# ============================================================================
# SENDING
# ============================================================================

class TestSending:

    async def test_send_price_drop_hands_message_to_transport(self, notifier, transport):
        await notifier.send_price_drop(
            Person("alice@example.com", "Alice"),
            Item("Echo Dot", "https://www.amazon.com/dp/B09B8V1LZ3"),
            Decimal("100.00"),
            Decimal("80.00"),
        )

        assert len(transport.outbox) == 1
        sent = transport.outbox[0]
        assert sent.to == "alice@example.com"
        assert sent.subject == "Price Drop Alert: Echo Dot is now $80.00!"

    async def test_invalid_address_never_reaches_transport(self):
        transport = AsyncMock(spec=LogTransport)
        notifier = NotificationService(transport=transport)

        with pytest.raises(DispatchError):
            await notifier.send_welcome(Person("not-an-email", "Nobody"))

        transport.send.assert_not_called()

    async def test_transport_failure_surfaces_as_dispatch_error(self):
        transport = AsyncMock(spec=LogTransport)
        transport.send.side_effect = DispatchError("alice@example.com", "rejected")
        notifier = NotificationService(transport=transport)

        with pytest.raises(DispatchError):
            await notifier.send_welcome(Person("alice@example.com", "Alice"))


# ============================================================================
# TRANSPORTS
# ============================================================================

class TestTransports:

    async def test_sendgrid_request(self):
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(202)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            transport = SendGridTransport(
                api_key="SG.test",
                http_client=client,
                from_email="alerts@pricedrop.test",
                from_name="PriceDrop",
            )
            await transport.send("alice@example.com", "Hello", "<p>Hi</p>", "Hi")

        request = captured[0]
        assert str(request.url) == SendGridTransport.API_URL
        assert request.headers["Authorization"] == "Bearer SG.test"

        payload = json.loads(request.content)
        assert payload["personalizations"] == [{"to": [{"email": "alice@example.com"}]}]
        assert payload["from"] == {"email": "alerts@pricedrop.test", "name": "PriceDrop"}
        assert [c["type"] for c in payload["content"]] == ["text/plain", "text/html"]

    async def test_sendgrid_error_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text="bad key")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            transport = SendGridTransport(api_key="SG.bad", http_client=client)
            with pytest.raises(DispatchError) as exc_info:
                await transport.send("alice@example.com", "Hello", "<p>Hi</p>", "Hi")

        assert "401" in str(exc_info.value)

    async def test_sendgrid_without_key(self):
        with pytest.raises(DispatchError):
            await SendGridTransport(api_key="").send("alice@example.com", "Hello", "<p>Hi</p>", "Hi")

    def test_smtp_message_has_both_parts(self):
        transport = SmtpTransport(
            host="smtp.example.com",
            port=587,
            from_email="alerts@pricedrop.test",
            from_name="PriceDrop",
        )
        message = transport.build_message("alice@example.com", "Hello", "<p>Hi</p>", "Hi")

        assert message["To"] == "alice@example.com"
        assert message["From"] == "PriceDrop <alerts@pricedrop.test>"
        assert message.get_body(("plain",)).get_content().strip() == "Hi"
        assert message.get_body(("html",)).get_content().strip() == "<p>Hi</p>"

    async def test_smtp_unencodable_header_is_a_dispatch_error(self, monkeypatch):
        transport = SmtpTransport(host="smtp.example.com", port=587, from_email="alerts@pricedrop.test")
        sent = []
        monkeypatch.setattr(transport, "_send_sync", sent.append)

        with pytest.raises(DispatchError):
            await transport.send("alice@example.com", "Price Drop Alert: Vintage\nCamera", "<p>Hi</p>", "Hi")

        assert sent == []

    async def test_smtp_send_runs_in_worker_thread(self, monkeypatch):
        transport = SmtpTransport(host="smtp.example.com", port=587, from_email="alerts@pricedrop.test")
        sent = []
        monkeypatch.setattr(transport, "_send_sync", sent.append)

        await transport.send("alice@example.com", "Hello", "<p>Hi</p>", "Hi")

        assert [m["Subject"] for m in sent] == ["Hello"]

    async def test_log_outbox_keeps_only_recent_messages(self):
        transport = LogTransport(max_outbox=2)
        for n in range(5):
            await transport.send("alice@example.com", f"Message {n}", "<p>Hi</p>", "Hi")

        assert [m.subject for m in transport.outbox] == ["Message 3", "Message 4"]

    @pytest.mark.parametrize(
        "name,cls",
        [("sendgrid", SendGridTransport), ("smtp", SmtpTransport), ("log", LogTransport), ("bogus", LogTransport)],
    )
    def test_get_email_transport(self, name, cls):
        assert isinstance(get_email_transport(name), cls)
