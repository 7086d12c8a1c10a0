"""
storefront/schemas/requests.py - Request bodies of the cart/checkout actions.

Each action owns one body model. Bodies are validated at the boundary and turned into
strict intents (LineItem, CartUpdateIntent, PaymentDraft, ...) before the mutation
pipeline sees them.

Line item counts are parsed permissively: a missing, zero, negative or non-numeric
count becomes 1. It is never read as a removal.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import Field, field_validator

from storefront.schemas.cart import Address, LineItem, Variant, _Base


def coerce_count(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        return 1
    try:
        count = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return 1
    return count if count >= 1 else 1


def _clean_id(value: Any, field: str) -> str:
    value = "" if value is None else str(value).strip()
    for ch in ("\u200b", "\u200c", "\u200d", "\ufeff", "\xa0"):
        value = value.replace(ch, "")
    if not value:
        raise ValueError(f"{field} cannot be empty")
    return value


# ---------- line items ----------
class VariantInput(_Base):
    sku: str = Field(..., description="SKU of the variant to add")
    count: int = Field(1, description="Quantity; invalid or < 1 becomes 1")

    @field_validator("sku", mode="before")
    @classmethod
    def _clean_sku(cls, v: Any) -> str:
        return _clean_id(v, "sku")

    @field_validator("count", mode="before")
    @classmethod
    def _coerce_count(cls, v: Any) -> int:
        return coerce_count(v)


class AddToCartBody(_Base):
    variant: VariantInput

    def to_line_item(self) -> LineItem:
        return LineItem(variant=Variant(sku=self.variant.sku), count=self.variant.count)


class LineItemRef(_Base):
    id: str = Field(..., description="Line item id inside the cart")

    @field_validator("id", mode="before")
    @classmethod
    def _clean(cls, v: Any) -> str:
        return _clean_id(v, "lineItem.id")


class LineItemCountInput(LineItemRef):
    count: int = 1

    @field_validator("count", mode="before")
    @classmethod
    def _coerce_count(cls, v: Any) -> int:
        return coerce_count(v)


class UpdateLineItemBody(_Base):
    line_item: LineItemCountInput

    def to_line_item(self) -> LineItem:
        return LineItem(line_item_id=self.line_item.id, count=self.line_item.count)


class RemoveLineItemBody(_Base):
    line_item: LineItemRef

    def to_line_item(self) -> LineItem:
        return LineItem(line_item_id=self.line_item.id)


# ---------- addresses / email ----------
class AccountInput(_Base):
    email: Optional[str] = None


class CartUpdateIntent(_Base):
    email: Optional[str] = None
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        return self.email is None and self.shipping_address is None and self.billing_address is None


class UpdateCartBody(_Base):
    account: Optional[AccountInput] = None
    shipping: Optional[Address] = None
    billing: Optional[Address] = None

    def to_intent(self) -> CartUpdateIntent:
        # A single supplied address is meant for both shipping and billing.
        shipping = self.shipping if self.shipping is not None else self.billing
        billing = self.billing if self.billing is not None else self.shipping
        return CartUpdateIntent(
            email=self.account.email if self.account is not None else None,
            shipping_address=shipping,
            billing_address=billing,
        )


class CheckoutBody(UpdateCartBody):
    purchase_order_number: Optional[str] = None


# ---------- shipping ----------
class ShippingMethodRef(_Base):
    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _clean(cls, v: Any) -> str:
        return _clean_id(v, "shippingMethod.id")


class SetShippingMethodBody(_Base):
    shipping_method: ShippingMethodRef


# ---------- payments ----------
class AmountInput(_Base):
    cent_amount: Optional[int] = None
    currency_code: Optional[str] = None


class PaymentDraft(_Base):
    """Payment as supplied by the client; provider, method and status are set by the cart API."""

    payment_id: Optional[str] = None
    amount_planned: Optional[AmountInput] = None
    debug: Optional[str] = None


class AddPaymentBody(_Base):
    payment: Optional[PaymentDraft] = None


class PaymentUpdate(_Base):
    id: str = Field(..., description="Backend payment id")
    payment_id: Optional[str] = None
    payment_status: Optional[str] = None
    debug: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _clean(cls, v: Any) -> str:
        return _clean_id(v, "payment.id")


class UpdatePaymentBody(_Base):
    payment: PaymentUpdate


# ---------- discounts ----------
class RedeemDiscountBody(_Base):
    code: str

    @field_validator("code", mode="before")
    @classmethod
    def _clean(cls, v: Any) -> str:
        return _clean_id(v, "code")


class RemoveDiscountBody(_Base):
    discount_code_id: str

    @field_validator("discount_code_id", mode="before")
    @classmethod
    def _clean(cls, v: Any) -> str:
        return _clean_id(v, "discountCodeId")
