"""
storefront/schemas/cart.py - Pydantic models for the Cart and its parts.

Field names are snake_case in Python and camelCase on the wire (cartId, lineItems, ...).
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Base(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Money(_Base):
    cent_amount: int = Field(..., description="Amount in the smallest currency unit")
    currency_code: str = Field(..., description="ISO 4217 currency code")
    fraction_digits: int = 2


class Address(_Base):
    address_id: Optional[str] = None
    salutation: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    street_name: Optional[str] = None
    street_number: Optional[str] = None
    additional_street_info: Optional[str] = None
    additional_address_info: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class Variant(_Base):
    id: Optional[str] = None
    sku: Optional[str] = None
    images: List[str] = Field(default_factory=list)


class LineItem(_Base):
    line_item_id: Optional[str] = None
    product_id: Optional[str] = None
    name: Optional[str] = None
    count: int = Field(1, ge=1)
    price: Optional[Money] = None
    discounted_price: Optional[Money] = None
    total_price: Optional[Money] = None
    variant: Optional[Variant] = None


class ShippingRate(_Base):
    name: Optional[str] = Field(None, description="Zone the rate applies to")
    price: Optional[Money] = None
    free_above: Optional[Money] = None
    is_matching: Optional[bool] = None


class ShippingMethod(_Base):
    shipping_method_id: str
    name: Optional[str] = None
    description: Optional[str] = None
    rates: List[ShippingRate] = Field(default_factory=list)


class ShippingInfo(_Base):
    shipping_method_id: Optional[str] = None
    name: Optional[str] = None
    price: Optional[Money] = None
    discounted_price: Optional[Money] = None


class PaymentStatus(str, Enum):
    INIT = "init"
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Payment(_Base):
    id: Optional[str] = Field(None, description="Backend payment id")
    payment_provider: Optional[str] = None
    payment_id: Optional[str] = Field(None, description="Id issued by the payment provider")
    payment_method: Optional[str] = None
    amount_planned: Optional[Money] = None
    payment_status: Optional[str] = None
    debug: Optional[str] = None
    version: Optional[int] = None


class DiscountCode(_Base):
    discount_code_id: Optional[str] = None
    code: Optional[str] = None
    state: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None


class Cart(_Base):
    cart_id: str
    cart_version: Optional[int] = None
    cart_state: Optional[str] = None
    account_id: Optional[str] = None
    anonymous_id: Optional[str] = None
    line_items: List[LineItem] = Field(default_factory=list)
    email: Optional[str] = None
    shipping_info: Optional[ShippingInfo] = None
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None
    sum: Optional[Money] = None
    taxed: Optional[Money] = None
    payments: List[Payment] = Field(default_factory=list)
    discount_codes: List[DiscountCode] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.cart_state in (None, "Active")

    def find_payment(self, payment_id: str) -> Optional[Payment]:
        return next((p for p in self.payments if p.id == payment_id), None)
