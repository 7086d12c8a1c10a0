# storefront/services/cart_fetcher.py
"""
Session cart resolution. The only place that decides which cart a request acts on.

- fetch_active_cart_from_session: the session's cart if it is still active and belongs to the
  caller, else None. Never creates a cart.
- fetch_cart: the session's active cart, else the account's active cart (created if missing),
  else a fresh anonymous cart. A cart always exists afterwards.

A session cart that carries an account is only ever used by that account; anonymous callers
never see it.
"""
from __future__ import annotations

import logging
from typing import Optional

from storefront.schemas.cart import Cart
from storefront.schemas.session import SessionData
from storefront.services.cart_api import CartApi

logger = logging.getLogger("storefront.cart_fetcher")


def _owned_by(cart: Cart, account_id: Optional[str]) -> bool:
    if cart.account_id is None:
        return True
    return cart.account_id == account_id


async def fetch_active_cart_from_session(
    cart_api: CartApi, session: SessionData, account_id: Optional[str] = None
) -> Optional[Cart]:
    if not session.cart_id:
        return None
    cart = await cart_api.get_by_id(session.cart_id)
    if cart is None:
        logger.info("Session cart %s not found", session.cart_id)
        return None
    if not cart.is_active:
        logger.info("Session cart %s is %s, ignoring it", cart.cart_id, cart.cart_state)
        return None
    if not _owned_by(cart, account_id):
        logger.warning("Session cart %s belongs to another account, ignoring it", cart.cart_id)
        return None
    return cart


async def fetch_cart(cart_api: CartApi, session: SessionData, account_id: Optional[str] = None) -> Cart:
    cart = await fetch_active_cart_from_session(cart_api, session, account_id)
    if cart is not None:
        return cart
    if account_id:
        return await cart_api.get_for_user(account_id)
    return await cart_api.get_anonymous()
