"""
storefront/routers/orders.py
Checkout and order reads.

- POST /orders/checkout: applies e-mail/address changes from the same body, creates the order,
  sends the confirmation and unbinds the consumed cart from the session.
- GET  /orders: the logged-in shopper's orders (401 for anonymous shoppers).
- GET  /orders/order?orderId=...: one order. Anonymous shoppers only get the order of
  their own session cart.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from storefront.core.context import ActionContext, get_action_context, respond
from storefront.core.errors import ActionRoute, AuthenticationRequiredError
from storefront.schemas.requests import CheckoutBody
from storefront.services.cart_fetcher import fetch_cart
from storefront.services.checkout import apply_cart_update, place_order
from storefront.services.notifications import OrderConfirmationSender, get_notifier
from storefront.services.order_access import build_order_query, get_order

router = APIRouter(prefix="/orders", tags=["Orders"], route_class=ActionRoute)


@router.post("/checkout")
async def checkout(
    body: Optional[CheckoutBody] = None,
    ctx: ActionContext = Depends(get_action_context),
    notifier: OrderConfirmationSender = Depends(get_notifier),
):
    cart = await fetch_cart(ctx.cart_api, ctx.session, ctx.account_id)
    cart = await apply_cart_update(ctx.cart_api, cart, body.to_intent() if body is not None else None)
    order = await place_order(
        ctx.cart_api,
        notifier,
        cart,
        body.purchase_order_number if body is not None else None,
    )
    return await respond(ctx, order, clear_cart=True)


@router.get("")
async def query_orders(request: Request, ctx: ActionContext = Depends(get_action_context)):
    if not ctx.account_id:
        raise AuthenticationRequiredError()
    query = build_order_query(request.query_params.multi_items(), ctx.account_id)
    result = await ctx.cart_api.query_orders(query)
    return await respond(ctx, result)


@router.get("/order")
async def get_single_order(
    order_id: Optional[str] = Query(None, alias="orderId"),
    ctx: ActionContext = Depends(get_action_context),
):
    order = await get_order(ctx.cart_api, ctx.session, ctx.account_id, order_id)
    return await respond(ctx, order if order is not None else {})
