# storefront/services/cart_mapper.py
"""
Commerce backend JSON <-> storefront models.

The backend sends localized strings as {"en-US": "..."} maps; `localized` picks the exact
locale, then the language, then whatever is there.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from storefront.schemas.cart import (
    Address,
    Cart,
    DiscountCode,
    LineItem,
    Money,
    Payment,
    ShippingInfo,
    ShippingMethod,
    ShippingRate,
    Variant,
)
from storefront.schemas.order import Order

_ADDRESS_FIELDS = {
    "salutation": "salutation",
    "first_name": "firstName",
    "last_name": "lastName",
    "street_name": "streetName",
    "street_number": "streetNumber",
    "additional_street_info": "additionalStreetInfo",
    "additional_address_info": "additionalAddressInfo",
    "postal_code": "postalCode",
    "city": "city",
    "country": "country",
    "state": "state",
    "phone": "phone",
    "email": "email",
}


def localized(value: Any, locale: Optional[str]) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if not isinstance(value, dict) or not value:
        return None
    if locale and locale in value:
        return value[locale]
    if locale:
        language = locale.split("-")[0]
        for key, text in value.items():
            if key.split("-")[0] == language:
                return text
    return next(iter(value.values()))


def money(raw: Optional[Dict[str, Any]]) -> Optional[Money]:
    if not raw:
        return None
    # TypedMoney, or a price/discounted price wrapping it under "value"
    if "centAmount" not in raw and isinstance(raw.get("value"), dict):
        raw = raw["value"]
    if "centAmount" not in raw:
        return None
    return Money(
        cent_amount=int(raw["centAmount"]),
        currency_code=raw.get("currencyCode", ""),
        fraction_digits=int(raw.get("fractionDigits", 2)),
    )


def money_to_backend(m: Money) -> Dict[str, Any]:
    return {"centAmount": m.cent_amount, "currencyCode": m.currency_code}


def address(raw: Optional[Dict[str, Any]]) -> Optional[Address]:
    if not raw:
        return None
    data = {field: raw.get(key) for field, key in _ADDRESS_FIELDS.items()}
    return Address(address_id=raw.get("id"), **data)


def address_to_backend(addr: Address) -> Dict[str, Any]:
    out = {key: getattr(addr, field) for field, key in _ADDRESS_FIELDS.items() if getattr(addr, field) is not None}
    if addr.address_id:
        out["id"] = addr.address_id
    return out


def _variant(raw: Optional[Dict[str, Any]]) -> Optional[Variant]:
    if not raw:
        return None
    images = [img.get("url") for img in raw.get("images") or [] if isinstance(img, dict) and img.get("url")]
    variant_id = raw.get("id")
    return Variant(id=str(variant_id) if variant_id is not None else None, sku=raw.get("sku"), images=images)


def _discounted_price(raw: Dict[str, Any]) -> Optional[Money]:
    per_quantity = raw.get("discountedPricePerQuantity") or []
    if not per_quantity:
        return None
    return money((per_quantity[0].get("discountedPrice") or {}).get("value"))


def line_item(raw: Dict[str, Any], locale: Optional[str]) -> LineItem:
    return LineItem(
        line_item_id=raw.get("id"),
        product_id=raw.get("productId"),
        name=localized(raw.get("name"), locale),
        count=max(1, int(raw.get("quantity") or 1)),
        price=money(raw.get("price")),
        discounted_price=_discounted_price(raw),
        total_price=money(raw.get("totalPrice")),
        variant=_variant(raw.get("variant")),
    )


def payment(raw: Dict[str, Any]) -> Payment:
    # Expanded references carry the payment under "obj"
    if "obj" in raw:
        raw = raw.get("obj") or {"id": raw.get("id")}
    method_info = raw.get("paymentMethodInfo") or {}
    status = raw.get("paymentStatus") or {}
    return Payment(
        id=raw.get("id"),
        payment_provider=method_info.get("paymentInterface"),
        payment_id=raw.get("interfaceId"),
        payment_method=method_info.get("method"),
        amount_planned=money(raw.get("amountPlanned")),
        payment_status=status.get("interfaceCode"),
        debug=status.get("interfaceText"),
        version=raw.get("version"),
    )


def discount_code(raw: Dict[str, Any], locale: Optional[str]) -> DiscountCode:
    ref = raw.get("discountCode") or {}
    obj = ref.get("obj") or {}
    return DiscountCode(
        discount_code_id=ref.get("id"),
        code=obj.get("code"),
        state=raw.get("state"),
        name=localized(obj.get("name"), locale),
        description=localized(obj.get("description"), locale),
    )


def shipping_info(raw: Optional[Dict[str, Any]]) -> Optional[ShippingInfo]:
    if not raw:
        return None
    method_ref = raw.get("shippingMethod") or {}
    return ShippingInfo(
        shipping_method_id=method_ref.get("id"),
        name=raw.get("shippingMethodName"),
        price=money(raw.get("price")),
        discounted_price=money((raw.get("discountedPrice") or {}).get("value")),
    )


def shipping_method(raw: Dict[str, Any], locale: Optional[str]) -> ShippingMethod:
    rates: List[ShippingRate] = []
    for zone_rate in raw.get("zoneRates") or []:
        zone = (zone_rate.get("zone") or {}).get("obj") or {}
        for rate in zone_rate.get("shippingRates") or []:
            rates.append(
                ShippingRate(
                    name=zone.get("name"),
                    price=money(rate.get("price")),
                    free_above=money(rate.get("freeAbove")),
                    is_matching=rate.get("isMatching"),
                )
            )
    return ShippingMethod(
        shipping_method_id=raw["id"],
        name=localized(raw.get("localizedName"), locale) or raw.get("name"),
        description=localized(raw.get("localizedDescription"), locale) or raw.get("description"),
        rates=rates,
    )


def _cart_fields(raw: Dict[str, Any], locale: Optional[str]) -> Dict[str, Any]:
    taxed = raw.get("taxedPrice") or {}
    payments = (raw.get("paymentInfo") or {}).get("payments") or []
    return {
        "account_id": raw.get("customerId"),
        "anonymous_id": raw.get("anonymousId"),
        "line_items": [line_item(li, locale) for li in raw.get("lineItems") or []],
        "email": raw.get("customerEmail"),
        "shipping_info": shipping_info(raw.get("shippingInfo")),
        "shipping_address": address(raw.get("shippingAddress")),
        "billing_address": address(raw.get("billingAddress")),
        "sum": money(raw.get("totalPrice")),
        "taxed": money(taxed.get("totalGross")),
        "payments": [payment(p) for p in payments],
        "discount_codes": [discount_code(d, locale) for d in raw.get("discountCodes") or []],
    }


def cart(raw: Dict[str, Any], locale: Optional[str] = None) -> Cart:
    return Cart(
        cart_id=raw["id"],
        cart_version=raw.get("version"),
        cart_state=raw.get("cartState"),
        **_cart_fields(raw, locale),
    )


def parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    s = str(value)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


def order(raw: Dict[str, Any], locale: Optional[str] = None) -> Order:
    return Order(
        order_id=raw["id"],
        order_number=raw.get("orderNumber"),
        order_version=raw.get("version"),
        order_state=raw.get("orderState"),
        purchase_order_number=raw.get("purchaseOrderNumber"),
        created_at=parse_datetime(raw.get("createdAt")),
        cart_id=(raw.get("cart") or {}).get("id") or "",
        **_cart_fields(raw, locale),
    )
