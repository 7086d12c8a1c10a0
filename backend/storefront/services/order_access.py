# storefront/services/order_access.py
"""
Order query parameters and the single-order access guard.

Query strings reach us as flat (key, value) pairs, so the list-shaped parameters are
accepted in every form a client library produces:

    orderIds=a&orderIds=b      orderIds[]=a&orderIds[]=b
    orderIds[0]=a&orderIds[1]=b      orderIds=a,b

Sort attributes arrive as `sortAttributes[<i>][<field>]=<direction>` (or without the index).
"""
from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

from storefront.core.errors import OwnershipMismatchError, ValidationError
from storefront.schemas.order import Order, OrderQuery, OrderState, SortOrder
from storefront.schemas.session import SessionData
from storefront.services.cart_api import CartApi

logger = logging.getLogger("storefront.order_access")

QueryItems = Iterable[Tuple[str, str]]

_SORT_KEY = re.compile(r"^sortAttributes(?:\[\d+\])?\[([^\[\]]+)\]$")
_DESCENDING = {"desc", "descending"}


def _key_pattern(key: str) -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(key)}(?:\[\d*\])?$")


def query_params_to_ids(key: str, items: QueryItems) -> List[str]:
    pattern = _key_pattern(key)
    ids: List[str] = []
    for k, v in items:
        if not pattern.match(k):
            continue
        for part in str(v).split(","):
            part = part.strip()
            if part and part not in ids:
                ids.append(part)
    return ids


def query_params_to_states(key: str, items: QueryItems) -> List[OrderState]:
    """Unknown states are dropped, not rejected."""
    known = {s.value.lower(): s for s in OrderState}
    states: List[OrderState] = []
    for raw in query_params_to_ids(key, items):
        state = known.get(raw.lower())
        if state is None:
            logger.debug("Ignoring unknown order state %r", raw)
        elif state not in states:
            states.append(state)
    return states


def query_params_to_sort_attributes(items: QueryItems) -> Dict[str, SortOrder]:
    # later entries for the same field win
    sort_attributes: Dict[str, SortOrder] = {}
    for k, v in items:
        m = _SORT_KEY.match(k)
        if not m:
            continue
        direction = (v or "").strip().lower()
        sort_attributes[m.group(1)] = SortOrder.DESCENDING if direction in _DESCENDING else SortOrder.ASCENDING
    return sort_attributes


def _parse_limit(raw: Optional[str]) -> Optional[int]:
    if raw in (None, ""):
        return None
    try:
        limit = int(raw)
    except ValueError:
        raise ValidationError(f"limit must be an integer, got {raw!r}")
    if limit < 1:
        raise ValidationError("limit must be a positive integer")
    return limit


def build_order_query(items: QueryItems, account_id: Optional[str]) -> OrderQuery:
    items = list(items)
    single = dict(items)
    return OrderQuery(
        account_id=account_id,
        limit=_parse_limit(single.get("limit")),
        cursor=single.get("cursor") or None,
        order_numbers=query_params_to_ids("orderNumbers", items),
        order_ids=query_params_to_ids("orderIds", items),
        order_state=query_params_to_states("orderStates", items),
        sort_attributes=query_params_to_sort_attributes(items),
        query=single.get("query") or None,
    )


async def get_order(
    cart_api: CartApi,
    session: SessionData,
    account_id: Optional[str],
    order_id: Optional[str],
) -> Optional[Order]:
    """
    Read one order by id.

    Logged-in shoppers get the order only if it is theirs (the query is account scoped),
    otherwise None. Anonymous shoppers may only read the order created from the cart their
    session is bound to, and never one placed by an account. Anything else fails with the same
    OwnershipMismatchError, whether the order exists or not.
    """
    if not order_id:
        raise ValidationError("orderId is required")

    result = await cart_api.query_orders(OrderQuery(account_id=account_id, order_ids=[order_id], limit=1))
    order = result.items[0] if result.items else None

    if account_id is None:
        if order is None or order.account_id or not session.cart_id or order.cart_id != session.cart_id:
            logger.info("Anonymous read of order %s refused", order_id)
            raise OwnershipMismatchError()
    return order
