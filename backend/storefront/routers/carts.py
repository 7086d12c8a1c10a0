"""
storefront/routers/carts.py
Cart actions for anonymous and logged-in shoppers.

Behavior
- Every action resolves its cart through the cart fetcher and answers with the new cart value;
  the session projection (cart id + checkout artifacts) goes back through `respond`.
- GET /cart only peeks: without an active session cart it answers `{}` and creates nothing.
- Line item counts are parsed permissively (see schemas/requests.py).
- Failures become JSON error responses via ActionRoute; GET /cart reports resolution
  failures as a plain 400 with the upstream message.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from storefront.core.context import ActionContext, get_action_context, respond
from storefront.core.errors import ActionRoute, ValidationError
from storefront.schemas.requests import (
    AddPaymentBody,
    AddToCartBody,
    PaymentDraft,
    RedeemDiscountBody,
    RemoveDiscountBody,
    RemoveLineItemBody,
    SetShippingMethodBody,
    UpdateCartBody,
    UpdateLineItemBody,
    UpdatePaymentBody,
)
from storefront.services.cart_fetcher import fetch_active_cart_from_session, fetch_cart
from storefront.services.checkout import apply_cart_update

logger = logging.getLogger("storefront.routers.carts")

router = APIRouter(prefix="/cart", tags=["Cart"], route_class=ActionRoute)


# ---------- cart ----------
@router.get("")
async def get_cart(ctx: ActionContext = Depends(get_action_context)):
    try:
        cart = await fetch_active_cart_from_session(ctx.cart_api, ctx.session, ctx.account_id)
    except Exception as e:
        logger.warning("Session cart could not be resolved: %s", e)
        return JSONResponse(status_code=400, content={"message": getattr(e, "message", None) or str(e)})

    if cart is None:
        return await respond(ctx, {})
    return await respond(ctx, cart, cart_id=cart.cart_id)


@router.post("/reset")
async def reset_cart(ctx: ActionContext = Depends(get_action_context)):
    ctx.cart_api.invalidate_session_checkout_data()
    return await respond(ctx, {}, clear_cart=True)


@router.put("")
async def update_cart(body: Optional[UpdateCartBody] = None, ctx: ActionContext = Depends(get_action_context)):
    cart = await fetch_cart(ctx.cart_api, ctx.session, ctx.account_id)
    cart = await apply_cart_update(ctx.cart_api, cart, body.to_intent() if body is not None else None)
    return await respond(ctx, cart, cart_id=cart.cart_id)


@router.post("/replicate")
async def replicate_cart(
    order_id: Optional[str] = Query(None, alias="orderId"),
    ctx: ActionContext = Depends(get_action_context),
):
    if not order_id:
        raise ValidationError("orderId is required")
    cart = await ctx.cart_api.replicate_cart(order_id)
    return await respond(ctx, cart, cart_id=cart.cart_id)


# ---------- line items ----------
@router.post("/line-items")
async def add_to_cart(body: AddToCartBody, ctx: ActionContext = Depends(get_action_context)):
    cart = await fetch_cart(ctx.cart_api, ctx.session, ctx.account_id)
    cart = await ctx.cart_api.add_to_cart(cart, body.to_line_item())
    return await respond(ctx, cart, cart_id=cart.cart_id)


@router.patch("/line-items")
async def update_line_item(body: UpdateLineItemBody, ctx: ActionContext = Depends(get_action_context)):
    cart = await fetch_cart(ctx.cart_api, ctx.session, ctx.account_id)
    cart = await ctx.cart_api.update_line_item(cart, body.to_line_item())
    return await respond(ctx, cart, cart_id=cart.cart_id)


@router.delete("/line-items")
async def remove_line_item(body: RemoveLineItemBody, ctx: ActionContext = Depends(get_action_context)):
    cart = await fetch_cart(ctx.cart_api, ctx.session, ctx.account_id)
    cart = await ctx.cart_api.remove_line_item(cart, body.to_line_item())
    return await respond(ctx, cart, cart_id=cart.cart_id)


# ---------- shipping ----------
@router.get("/shipping-methods")
async def get_shipping_methods(
    only_matching: bool = Query(False, alias="onlyMatching"),
    ctx: ActionContext = Depends(get_action_context),
):
    methods = await ctx.cart_api.get_shipping_methods(only_matching)
    return await respond(ctx, methods)


@router.get("/available-shipping-methods")
async def get_available_shipping_methods(ctx: ActionContext = Depends(get_action_context)):
    cart = await fetch_cart(ctx.cart_api, ctx.session, ctx.account_id)
    methods = await ctx.cart_api.get_available_shipping_methods(cart)
    return await respond(ctx, methods, cart_id=cart.cart_id)


@router.put("/shipping-method")
async def set_shipping_method(body: SetShippingMethodBody, ctx: ActionContext = Depends(get_action_context)):
    cart = await fetch_cart(ctx.cart_api, ctx.session, ctx.account_id)
    cart = await ctx.cart_api.set_shipping_method(cart, body.shipping_method.id)
    return await respond(ctx, cart, cart_id=cart.cart_id)


# ---------- payments ----------
@router.post("/payments")
async def add_payment_by_invoice(
    body: Optional[AddPaymentBody] = None,
    ctx: ActionContext = Depends(get_action_context),
):
    body = body or AddPaymentBody()
    cart = await fetch_cart(ctx.cart_api, ctx.session, ctx.account_id)
    cart = await ctx.cart_api.add_payment(cart, body.payment or PaymentDraft())
    return await respond(ctx, cart, cart_id=cart.cart_id)


@router.patch("/payments")
async def update_payment(body: UpdatePaymentBody, ctx: ActionContext = Depends(get_action_context)):
    cart = await fetch_cart(ctx.cart_api, ctx.session, ctx.account_id)
    payment = await ctx.cart_api.update_payment(cart, body.payment)
    return await respond(ctx, payment, cart_id=cart.cart_id)


# ---------- discounts ----------
@router.post("/discounts")
async def redeem_discount(body: RedeemDiscountBody, ctx: ActionContext = Depends(get_action_context)):
    cart = await fetch_cart(ctx.cart_api, ctx.session, ctx.account_id)
    cart = await ctx.cart_api.redeem_discount_code(cart, body.code)
    return await respond(ctx, cart, cart_id=cart.cart_id)


@router.delete("/discounts")
async def remove_discount(body: RemoveDiscountBody, ctx: ActionContext = Depends(get_action_context)):
    cart = await fetch_cart(ctx.cart_api, ctx.session, ctx.account_id)
    cart = await ctx.cart_api.remove_discount_code(cart, body.discount_code_id)
    return await respond(ctx, cart, cart_id=cart.cart_id)


# ---------- checkout session ----------
@router.get("/checkout-session-token")
async def get_checkout_session_token(ctx: ActionContext = Depends(get_action_context)):
    # The bound cart may already be inactive; the token is still issued for it.
    if not ctx.session.cart_id:
        return await respond(ctx, {})
    token = await ctx.cart_api.get_checkout_session_token(ctx.session.cart_id)
    return await respond(ctx, token)
