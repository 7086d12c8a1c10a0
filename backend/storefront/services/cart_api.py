# storefront/services/cart_api.py
"""
Cart API: the cart mutation pipeline and the order operations, on top of the commerce client.

Every mutator takes the cart value it should act on and returns the backend's new version
of it. Updates are sent with the cart version they were computed from; a lost race comes
back as VersionConflictError and is never retried here.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from storefront.core.errors import ValidationError, VersionConflictError
from storefront.integrations.commerce import CommerceClient, UpdateOutcome
from storefront.schemas.cart import Address, Cart, LineItem, Money, Payment, PaymentStatus, ShippingMethod
from storefront.schemas.order import Order, OrderQuery, PaginatedResult, SortOrder
from storefront.schemas.requests import PaymentDraft, PaymentUpdate
from storefront.schemas.session import CheckoutToken, SessionData
from storefront.services import cart_mapper as mapper

logger = logging.getLogger("storefront.cart_api")

PAYMENT_PROVIDER = "storefront"
PAYMENT_METHOD_INVOICE = "invoice"

DEFAULT_ORDER_LIMIT = 24
MAX_ORDER_LIMIT = 500


def _quote(value: str) -> str:
    return '"' + str(value).replace("\\", "\\\\").replace('"', '\\"') + '"'


def _in_predicate(field: str, values: List[str]) -> str:
    return f"{field} in ({', '.join(_quote(v) for v in values)})"


def parse_cursor(cursor: Optional[str]) -> int:
    """`offset:<n>` -> n. A missing cursor is the first page."""
    if not cursor:
        return 0
    prefix, _, raw = cursor.partition(":")
    if prefix != "offset" or not raw.isdigit():
        raise ValidationError(f"Invalid cursor: {cursor}")
    return int(raw)


class CartApi:
    def __init__(
        self,
        client: CommerceClient,
        session: Optional[SessionData] = None,
        *,
        locale: str,
        currency: str,
        country: str,
        checkout_application_key: str = "",
    ):
        self.client = client
        self.locale = locale
        self.currency = currency
        self.country = country
        self.checkout_application_key = checkout_application_key
        self._checkout_token: Optional[CheckoutToken] = session.checkout_session_token if session else None

    # ---------- session artifacts ----------
    def get_session_data(self) -> Dict[str, Any]:
        """Backend-issued state that has to survive into the shopper's session."""
        return {"checkout_session_token": self._checkout_token}

    def invalidate_session_checkout_data(self) -> None:
        self._checkout_token = None

    # ---------- reads / creation ----------
    async def get_by_id(self, cart_id: str) -> Optional[Cart]:
        raw = await self.client.get_cart(cart_id)
        return mapper.cart(raw, self.locale) if raw else None

    def _cart_draft(self, **owner: str) -> Dict[str, Any]:
        return {"currency": self.currency, "country": self.country, "locale": self.locale, **owner}

    async def get_for_user(self, account_id: str) -> Cart:
        raw = await self.client.get_active_cart_for_customer(account_id)
        if raw is None:
            logger.info("No active cart for account %s, creating one", account_id)
            raw = await self.client.create_cart(self._cart_draft(customerId=account_id))
        return mapper.cart(raw, self.locale)

    async def get_anonymous(self) -> Cart:
        raw = await self.client.create_cart(self._cart_draft(anonymousId=str(uuid.uuid4())))
        return mapper.cart(raw, self.locale)

    async def replicate_cart(self, order_id: str) -> Cart:
        return mapper.cart(await self.client.replicate_cart(order_id), self.locale)

    # ---------- mutation pipeline ----------
    def _cart_from(self, cart: Cart, outcome: UpdateOutcome) -> Cart:
        if outcome.conflict:
            raise VersionConflictError("Cart", cart.cart_id, cart.cart_version, body=outcome.body)
        return mapper.cart(outcome.resource, self.locale)

    async def _update(self, cart: Cart, actions: List[Dict[str, Any]]) -> Cart:
        outcome = await self.client.update_cart(cart.cart_id, cart.cart_version, actions)
        return self._cart_from(cart, outcome)

    async def set_email(self, cart: Cart, email: str) -> Cart:
        return await self._update(cart, [{"action": "setCustomerEmail", "email": email}])

    async def set_shipping_address(self, cart: Cart, address: Address) -> Cart:
        return await self._update(
            cart, [{"action": "setShippingAddress", "address": mapper.address_to_backend(address)}]
        )

    async def set_billing_address(self, cart: Cart, address: Address) -> Cart:
        return await self._update(
            cart, [{"action": "setBillingAddress", "address": mapper.address_to_backend(address)}]
        )

    async def add_to_cart(self, cart: Cart, line_item: LineItem) -> Cart:
        sku = line_item.variant.sku if line_item.variant else None
        if not sku:
            raise ValidationError("variant.sku is required")
        return await self._update(cart, [{"action": "addLineItem", "sku": sku, "quantity": line_item.count}])

    async def update_line_item(self, cart: Cart, line_item: LineItem) -> Cart:
        if not line_item.line_item_id:
            raise ValidationError("lineItem.id is required")
        return await self._update(
            cart,
            [{"action": "changeLineItemQuantity", "lineItemId": line_item.line_item_id, "quantity": line_item.count}],
        )

    async def remove_line_item(self, cart: Cart, line_item: LineItem) -> Cart:
        if not line_item.line_item_id:
            raise ValidationError("lineItem.id is required")
        return await self._update(cart, [{"action": "removeLineItem", "lineItemId": line_item.line_item_id}])

    async def set_shipping_method(self, cart: Cart, shipping_method_id: str) -> Cart:
        return await self._update(
            cart,
            [{"action": "setShippingMethod", "shippingMethod": {"typeId": "shipping-method", "id": shipping_method_id}}],
        )

    async def add_payment(self, cart: Cart, draft: PaymentDraft) -> Cart:
        """Attach a pending invoice payment; the planned amount defaults to the cart total."""
        amount = draft.amount_planned
        cent_amount = amount.cent_amount if amount and amount.cent_amount is not None else None
        currency_code = amount.currency_code if amount and amount.currency_code else None
        if cent_amount is None and cart.sum is not None:
            cent_amount = cart.sum.cent_amount
        if currency_code is None and cart.sum is not None:
            currency_code = cart.sum.currency_code
        if cent_amount is None or not currency_code:
            raise ValidationError("payment.amountPlanned is required for a cart without a total")

        payment_draft: Dict[str, Any] = {
            "amountPlanned": mapper.money_to_backend(Money(cent_amount=cent_amount, currency_code=currency_code)),
            "paymentMethodInfo": {
                "paymentInterface": PAYMENT_PROVIDER,
                "method": PAYMENT_METHOD_INVOICE,
            },
            "paymentStatus": {"interfaceCode": PaymentStatus.PENDING.value},
        }
        if draft.payment_id:
            payment_draft["interfaceId"] = draft.payment_id
        if draft.debug:
            payment_draft["paymentStatus"]["interfaceText"] = draft.debug

        created = await self.client.create_payment(payment_draft)
        return await self._update(cart, [{"action": "addPayment", "payment": {"typeId": "payment", "id": created["id"]}}])

    async def update_payment(self, cart: Cart, update: PaymentUpdate) -> Payment:
        """Apply provider-side changes to a payment of this cart and return the payment."""
        current = cart.find_payment(update.id)
        if current is None:
            raise ValidationError(f"Payment {update.id} not found in cart {cart.cart_id}")

        actions: List[Dict[str, Any]] = []
        if update.payment_status is not None:
            actions.append({"action": "setStatusInterfaceCode", "interfaceCode": update.payment_status})
        if update.debug is not None:
            actions.append({"action": "setStatusInterfaceText", "interfaceText": update.debug})
        if update.payment_id is not None:
            actions.append({"action": "setInterfaceId", "interfaceId": update.payment_id})
        if not actions:
            return current

        outcome = await self.client.update_payment(update.id, current.version, actions)
        if outcome.conflict:
            raise VersionConflictError("Payment", update.id, current.version, body=outcome.body)
        return mapper.payment(outcome.resource)

    async def redeem_discount_code(self, cart: Cart, code: str) -> Cart:
        cart = await self._update(cart, [{"action": "addDiscountCode", "code": code}])

        redeemed = next(
            (d for d in cart.discount_codes if (d.code or "").casefold() == code.casefold()),
            None,
        )
        if redeemed is not None and redeemed.state not in (None, "MatchesCart"):
            # Accepted by the backend but not applicable: take it off again.
            await self.remove_discount_code(cart, redeemed.discount_code_id)
            raise ValidationError(
                f"Redeem discount code '{code}' failed with state '{redeemed.state}'",
                error_code=redeemed.state,
            )
        return cart

    async def remove_discount_code(self, cart: Cart, discount_code_id: str) -> Cart:
        return await self._update(
            cart,
            [{"action": "removeDiscountCode", "discountCode": {"typeId": "discount-code", "id": discount_code_id}}],
        )

    # ---------- shipping ----------
    async def get_shipping_methods(self, only_matching: bool = False) -> List[ShippingMethod]:
        if only_matching:
            raw = await self.client.get_shipping_methods_matching_location(self.country)
        else:
            raw = await self.client.get_shipping_methods()
        return [mapper.shipping_method(m, self.locale) for m in raw]

    async def get_available_shipping_methods(self, cart: Cart) -> List[ShippingMethod]:
        raw = await self.client.get_shipping_methods_matching_cart(cart.cart_id)
        return [mapper.shipping_method(m, self.locale) for m in raw]

    # ---------- orders ----------
    async def order(self, cart: Cart, purchase_order_number: Optional[str] = None) -> Order:
        outcome = await self.client.create_order_from_cart(cart.cart_id, cart.cart_version, purchase_order_number)
        if outcome.conflict:
            raise VersionConflictError("Cart", cart.cart_id, cart.cart_version, body=outcome.body)
        order = mapper.order(outcome.resource, self.locale)
        logger.info("Order %s created from cart %s", order.order_number or order.order_id, cart.cart_id)
        return order

    def _order_where(self, query: OrderQuery) -> List[str]:
        where: List[str] = []
        if query.account_id:
            where.append(f"customerId={_quote(query.account_id)}")
        if query.order_numbers:
            where.append(_in_predicate("orderNumber", query.order_numbers))
        if query.order_ids:
            where.append(_in_predicate("id", query.order_ids))
        if query.order_state:
            where.append(_in_predicate("orderState", [s.value for s in query.order_state]))
        if query.query:
            q = _quote(query.query)
            where.append(f"(orderNumber={q} or purchaseOrderNumber={q} or customerEmail={q})")
        return where

    async def query_orders(self, query: OrderQuery) -> PaginatedResult:
        limit = min(query.limit or DEFAULT_ORDER_LIMIT, MAX_ORDER_LIMIT)
        offset = parse_cursor(query.cursor)

        params: Dict[str, Any] = {"limit": limit, "offset": offset, "withTotal": "true"}
        where = self._order_where(query)
        if where:
            params["where"] = where
        if query.sort_attributes:
            params["sort"] = [
                f"{field} {'desc' if order == SortOrder.DESCENDING else 'asc'}"
                for field, order in query.sort_attributes.items()
            ]

        data = await self.client.query_orders(params)
        items = [mapper.order(o, self.locale) for o in data.get("results", [])]
        count = data.get("count", len(items))
        total = data.get("total")

        next_cursor = None
        if total is not None and offset + count < total:
            next_cursor = f"offset:{offset + count}"
        previous_cursor = f"offset:{max(offset - limit, 0)}" if offset > 0 else None

        return PaginatedResult(
            total=total,
            count=count,
            previous_cursor=previous_cursor,
            next_cursor=next_cursor,
            items=items,
            query=query,
        )

    # ---------- checkout session ----------
    async def get_checkout_session_token(self, cart_id: str) -> CheckoutToken:
        if self._checkout_token is not None and self._checkout_token.is_valid_for(cart_id):
            return self._checkout_token

        raw = await self.client.create_checkout_session(cart_id, self.checkout_application_key)
        self._checkout_token = CheckoutToken(
            token=raw["id"],
            expires_at=mapper.parse_datetime(raw.get("expiryAt")),
            cart_id=cart_id,
        )
        return self._checkout_token
