import pytest

from storefront.core.errors import NotificationError
from storefront.schemas.cart import LineItem, Money, Variant
from storefront.schemas.order import Order
from storefront.services import notifications
from storefront.services.notifications import OrderConfirmationSender, format_money, render_order_confirmation


def make_order(**fields) -> Order:
    data = dict(
        order_id="order-1",
        order_number="N-1",
        cart_id="cart-1",
        line_items=[
            LineItem(
                name="Mug <large>",
                count=2,
                total_price=Money(cent_amount=2400, currency_code="USD"),
                variant=Variant(sku="MUG-L"),
            )
        ],
        sum=Money(cent_amount=2400, currency_code="USD"),
    )
    data.update(fields)
    return Order(**data)


def test_format_money():
    assert format_money(Money(cent_amount=123456, currency_code="EUR")) == "1234.56 EUR"
    assert format_money(Money(cent_amount=5, currency_code="JPY", fraction_digits=0)) == "5 JPY"
    assert format_money(None) == "-"


def test_confirmation_lists_items_and_total():
    html = render_order_confirmation(make_order())
    assert "N-1" in html
    assert "Mug &lt;large&gt;" in html
    assert "24.00 USD" in html


@pytest.mark.asyncio
async def test_skipped_without_smtp(monkeypatch):
    sent = []

    async def fake_send(*args, **kwargs):
        sent.append(args)

    monkeypatch.setattr(notifications, "smtp_configured", lambda: False)
    monkeypatch.setattr(notifications, "send_email", fake_send)

    assert await OrderConfirmationSender().send_order_confirmation(make_order(), "ada@example.com") is False
    assert sent == []


@pytest.mark.asyncio
async def test_skipped_without_address(monkeypatch):
    monkeypatch.setattr(notifications, "smtp_configured", lambda: True)
    assert await OrderConfirmationSender().send_order_confirmation(make_order(), None) is False


@pytest.mark.asyncio
async def test_sent_when_configured(monkeypatch):
    sent = []

    async def fake_send(to, subject, html, sender_name=None, text=None):
        sent.append((to, subject))
        assert "24.00 USD" in text

    monkeypatch.setattr(notifications, "smtp_configured", lambda: True)
    monkeypatch.setattr(notifications, "send_email", fake_send)

    assert await OrderConfirmationSender().send_order_confirmation(make_order(), "ada@example.com") is True
    assert sent == [("ada@example.com", "Order confirmation N-1")]


@pytest.mark.asyncio
async def test_smtp_failure_is_notification_error(monkeypatch):
    async def broken_send(*args, **kwargs):
        raise OSError("connection refused")

    monkeypatch.setattr(notifications, "smtp_configured", lambda: True)
    monkeypatch.setattr(notifications, "send_email", broken_send)

    with pytest.raises(NotificationError) as exc:
        await OrderConfirmationSender().send_order_confirmation(make_order(), "ada@example.com")

    assert exc.value.status_code == 502
    assert "connection refused" in exc.value.message
