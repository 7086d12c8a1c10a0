"""
storefront/integrations/commerce.py - Commerce backend (commercetools HTTP API) client.

Carts and orders live in the commerce backend; this module is the only place that talks to it.
- OAuth2 client-credentials token, reused until shortly before it expires.
- Every non-2xx response becomes ExternalSystemError with the upstream status, message and body.
- Version-checked updates return an UpdateOutcome instead of raising on a 409, so the caller
  decides what a lost race means (the cart API reports it, it never retries).
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from storefront.config import Settings
from storefront.core.errors import ExternalSystemError

logger = logging.getLogger("storefront.commerce")

CART_EXPAND = ["paymentInfo.payments[*]", "discountCodes[*].discountCode"]
ORDER_EXPAND = CART_EXPAND

_TOKEN_LEEWAY_SECONDS = 60


@dataclass
class UpdateOutcome:
    """Result of a version-checked update: the new resource, or a conflict."""

    resource: Optional[Dict[str, Any]] = None
    conflict: bool = False
    body: Any = None


def _body_of(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


def _json_of(resp: httpx.Response, what: str) -> Any:
    """Decoded success body; a 2xx that is not JSON is an upstream failure."""
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError as e:
        logger.warning("Commerce backend %s returned a non-JSON body (HTTP %s)", what, resp.status_code)
        raise ExternalSystemError(
            f"Commerce backend {what} returned an unreadable response",
            status_code=502,
            body=resp.text or None,
        ) from e


def _error_from_response(resp: httpx.Response, what: str) -> ExternalSystemError:
    body = _body_of(resp)
    message = None
    error_code = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error_description")
        errors = body.get("errors") or []
        if errors and isinstance(errors[0], dict):
            error_code = errors[0].get("code")
    return ExternalSystemError(
        message or f"Commerce backend {what} failed with HTTP {resp.status_code}",
        status_code=resp.status_code,
        error_code=error_code,
        body=body,
    )


class CommerceClient:
    def __init__(
        self,
        *,
        api_url: str,
        auth_url: str,
        session_url: str,
        project_key: str,
        client_id: str,
        client_secret: str,
        scopes: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.project_url = f"{api_url.rstrip('/')}/{project_key}"
        self.session_project_url = f"{session_url.rstrip('/')}/{project_key}"
        self.auth_url = auth_url.rstrip("/")
        self._client_id = client_id
        self._client_secret = client_secret
        self._scopes = scopes
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "CommerceClient":
        return cls(
            api_url=settings.commerce_api_url,
            auth_url=settings.commerce_auth_url,
            session_url=settings.commerce_session_url,
            project_key=settings.commerce_project_key,
            client_id=settings.commerce_client_id,
            client_secret=settings.commerce_client_secret,
            scopes=settings.commerce_scopes,
            timeout=settings.commerce_timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    # ---------- transport ----------
    async def _access_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        data = {"grant_type": "client_credentials"}
        if self._scopes:
            data["scope"] = self._scopes
        try:
            resp = await self._http.post(
                f"{self.auth_url}/oauth/token",
                data=data,
                auth=(self._client_id, self._client_secret),
            )
        except httpx.HTTPError as e:
            raise ExternalSystemError(f"Commerce auth unreachable: {e}") from e
        if resp.status_code != 200:
            raise _error_from_response(resp, "authentication")

        payload = _json_of(resp, "authentication") or {}
        if not payload.get("access_token"):
            raise ExternalSystemError("Commerce auth returned no access token", status_code=502)
        self._token = payload["access_token"]
        expires_in = int(payload.get("expires_in") or 0)
        self._token_expires_at = time.monotonic() + max(expires_in - _TOKEN_LEEWAY_SECONDS, 0)
        return self._token

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bearer {await self._access_token()}"}
        try:
            return await self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Commerce backend %s %s unreachable: %s", method, url, e)
            raise ExternalSystemError(f"Commerce backend unreachable: {e}") from e

    async def request(self, method: str, path: str, *, params: Any = None, json: Any = None) -> Any:
        resp = await self._send(method, f"{self.project_url}{path}", params=params, json=json)
        if resp.status_code >= 400:
            raise _error_from_response(resp, f"{method} {path}")
        return _json_of(resp, f"{method} {path}")

    async def _get_or_none(self, path: str, params: Any = None) -> Optional[Dict[str, Any]]:
        resp = await self._send("GET", f"{self.project_url}{path}", params=params)
        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise _error_from_response(resp, f"GET {path}")
        return _json_of(resp, f"GET {path}")

    async def _versioned_update(self, path: str, version: int, actions: List[Dict[str, Any]], params: Any = None) -> UpdateOutcome:
        resp = await self._send(
            "POST",
            f"{self.project_url}{path}",
            params=params,
            json={"version": version, "actions": actions},
        )
        if resp.status_code == 409:
            logger.warning("Version conflict on %s (sent version %s)", path, version)
            return UpdateOutcome(conflict=True, body=_body_of(resp))
        if resp.status_code >= 400:
            raise _error_from_response(resp, f"POST {path}")
        return UpdateOutcome(resource=_json_of(resp, f"POST {path}"))

    # ---------- carts ----------
    async def get_cart(self, cart_id: str) -> Optional[Dict[str, Any]]:
        return await self._get_or_none(f"/carts/{cart_id}", params={"expand": CART_EXPAND})

    async def get_active_cart_for_customer(self, customer_id: str) -> Optional[Dict[str, Any]]:
        return await self._get_or_none(f"/carts/customer-id={customer_id}", params={"expand": CART_EXPAND})

    async def create_cart(self, draft: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("POST", "/carts", params={"expand": CART_EXPAND}, json=draft)

    async def update_cart(self, cart_id: str, version: int, actions: List[Dict[str, Any]]) -> UpdateOutcome:
        return await self._versioned_update(f"/carts/{cart_id}", version, actions, params={"expand": CART_EXPAND})

    async def replicate_cart(self, order_id: str) -> Dict[str, Any]:
        return await self.request(
            "POST",
            "/carts/replicate",
            params={"expand": CART_EXPAND},
            json={"reference": {"typeId": "order", "id": order_id}},
        )

    # ---------- orders ----------
    async def create_order_from_cart(
        self, cart_id: str, version: int, purchase_order_number: Optional[str] = None
    ) -> UpdateOutcome:
        draft: Dict[str, Any] = {"id": cart_id, "version": version}
        if purchase_order_number:
            draft["purchaseOrderNumber"] = purchase_order_number
        resp = await self._send("POST", f"{self.project_url}/orders", params={"expand": ORDER_EXPAND}, json=draft)
        if resp.status_code == 409:
            logger.warning("Version conflict creating order from cart %s (sent version %s)", cart_id, version)
            return UpdateOutcome(conflict=True, body=_body_of(resp))
        if resp.status_code >= 400:
            raise _error_from_response(resp, "POST /orders")
        return UpdateOutcome(resource=_json_of(resp, "POST /orders"))

    async def query_orders(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("GET", "/orders", params={**params, "expand": ORDER_EXPAND})

    # ---------- payments ----------
    async def create_payment(self, draft: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("POST", "/payments", json=draft)

    async def update_payment(self, payment_id: str, version: int, actions: List[Dict[str, Any]]) -> UpdateOutcome:
        return await self._versioned_update(f"/payments/{payment_id}", version, actions)

    # ---------- shipping ----------
    async def get_shipping_methods(self) -> List[Dict[str, Any]]:
        data = await self.request("GET", "/shipping-methods", params={"expand": "zoneRates[*].zone", "limit": 500})
        return data.get("results", [])

    async def get_shipping_methods_matching_location(self, country: str) -> List[Dict[str, Any]]:
        data = await self.request(
            "GET",
            "/shipping-methods/matching-location",
            params={"country": country, "expand": "zoneRates[*].zone"},
        )
        return data.get("results", [])

    async def get_shipping_methods_matching_cart(self, cart_id: str) -> List[Dict[str, Any]]:
        data = await self.request(
            "GET",
            "/shipping-methods/matching-cart",
            params={"cartId": cart_id, "expand": "zoneRates[*].zone"},
        )
        return data.get("results", [])

    # ---------- checkout sessions ----------
    async def create_checkout_session(self, cart_id: str, application_key: str) -> Dict[str, Any]:
        resp = await self._send(
            "POST",
            f"{self.session_project_url}/sessions",
            json={"cart": {"cartRef": {"id": cart_id}}, "metadata": {"applicationKey": application_key}},
        )
        if resp.status_code >= 400:
            raise _error_from_response(resp, "checkout session")
        return _json_of(resp, "checkout session")
