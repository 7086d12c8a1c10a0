# storefront/services/checkout.py
"""
Address/e-mail update and the cart -> order transition.

A checkout call is accept-and-finalize: pending e-mail/address changes from the same
request are applied first, then the order is created from the resulting cart version.
"""
from __future__ import annotations

from typing import Optional

from storefront.schemas.cart import Cart
from storefront.schemas.order import Order
from storefront.schemas.requests import CartUpdateIntent
from storefront.services.cart_api import CartApi
from storefront.services.notifications import OrderConfirmationSender


async def apply_cart_update(cart_api: CartApi, cart: Cart, intent: Optional[CartUpdateIntent]) -> Cart:
    """E-mail first, then shipping and billing; each step works on the previous step's cart."""
    if intent is None or intent.is_empty:
        return cart
    if intent.email is not None:
        cart = await cart_api.set_email(cart, intent.email)
    if intent.shipping_address is not None:
        cart = await cart_api.set_shipping_address(cart, intent.shipping_address)
    if intent.billing_address is not None:
        cart = await cart_api.set_billing_address(cart, intent.billing_address)
    return cart


async def place_order(
    cart_api: CartApi,
    notifier: OrderConfirmationSender,
    cart: Cart,
    purchase_order_number: Optional[str] = None,
) -> Order:
    order = await cart_api.order(cart, purchase_order_number)
    # The backend does not always echo the e-mail back on the order.
    await notifier.send_order_confirmation(order, order.email or cart.email)
    return order
