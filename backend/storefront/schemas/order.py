# storefront/schemas/order.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from storefront.schemas.cart import Cart, _Base


class OrderState(str, Enum):
    OPEN = "Open"
    CONFIRMED = "Confirmed"
    COMPLETE = "Complete"
    CANCELLED = "Cancelled"


class SortOrder(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


# Order = immutable snapshot of the cart it was created from.
# `cart_id` (inherited) is the originating cart, used by the anonymous access guard.
class Order(Cart):
    order_id: str
    order_number: Optional[str] = None
    order_version: Optional[int] = None
    order_state: Optional[str] = None
    purchase_order_number: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"frozen": True}


class OrderQuery(_Base):
    account_id: Optional[str] = None
    order_numbers: List[str] = Field(default_factory=list)
    order_ids: List[str] = Field(default_factory=list)
    order_state: List[OrderState] = Field(default_factory=list)
    sort_attributes: Dict[str, SortOrder] = Field(default_factory=dict)
    query: Optional[str] = None
    limit: Optional[int] = None
    cursor: Optional[str] = None


class PaginatedResult(_Base):
    total: Optional[int] = None
    count: int = 0
    previous_cursor: Optional[str] = None
    next_cursor: Optional[str] = None
    items: List[Order] = Field(default_factory=list)
    query: Optional[OrderQuery] = None
