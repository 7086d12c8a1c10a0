# storefront/services/notifications.py
"""
Order confirmation e-mail.

Sent through the SMTP helper. With no SMTP configuration the mail is skipped (and logged),
the same way a missing provider key turns an integration into a no-op in development.
A failing SMTP server is a NotificationError; the order already exists upstream by then.
"""
from __future__ import annotations

import html
import logging
from decimal import Decimal
from typing import Optional

from storefront.config import settings
from storefront.core.email_utils import send_email, smtp_configured
from storefront.core.errors import NotificationError
from storefront.schemas.cart import Money
from storefront.schemas.order import Order

logger = logging.getLogger("storefront.notifications")


def format_money(m: Optional[Money]) -> str:
    if m is None:
        return "-"
    amount = Decimal(m.cent_amount).scaleb(-m.fraction_digits)
    return f"{amount:.{m.fraction_digits}f} {m.currency_code}"


def render_order_confirmation(order: Order) -> str:
    rows = "".join(
        f"<tr><td>{html.escape(li.name or (li.variant.sku if li.variant else '') or '')}</td>"
        f"<td style=\"text-align:right\">{li.count}</td>"
        f"<td style=\"text-align:right\">{format_money(li.total_price)}</td></tr>"
        for li in order.line_items
    )
    number = html.escape(order.order_number or order.order_id)
    return f"""<div style="font-family:Arial,sans-serif">
      <h2>Thank you for your order</h2>
      <p>Order number: <strong>{number}</strong></p>
      <table style="border-collapse:collapse;width:100%">
        <tr><th style="text-align:left">Item</th><th>Qty</th><th>Total</th></tr>
        {rows}
      </table>
      <p style="font-size:18px;font-weight:bold">Total: {format_money(order.sum)}</p>
    </div>"""


class OrderConfirmationSender:
    async def send_order_confirmation(self, order: Order, email: Optional[str]) -> bool:
        """Returns True when a mail went out, False when it was skipped."""
        if not email:
            logger.info("Order %s has no e-mail address, confirmation skipped", order.order_id)
            return False
        if not smtp_configured():
            logger.info("SMTP not configured, confirmation for order %s skipped", order.order_id)
            return False

        subject = f"Order confirmation {order.order_number or order.order_id}"
        try:
            await send_email(
                email,
                subject,
                render_order_confirmation(order),
                settings.order_email_sender_name,
                text=f"Thank you for your order {order.order_number or order.order_id}. Total: {format_money(order.sum)}",
            )
        except Exception as e:
            logger.warning("Order confirmation for %s failed: %s", order.order_id, e)
            raise NotificationError(f"Order confirmation could not be sent: {e}", status_code=502) from e
        return True


def get_notifier() -> OrderConfirmationSender:
    return OrderConfirmationSender()
