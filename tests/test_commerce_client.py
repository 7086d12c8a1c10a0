"""CommerceClient against an httpx.MockTransport."""

import json

import httpx
import pytest

from storefront.core.errors import ExternalSystemError
from storefront.integrations.commerce import CommerceClient


class Backend:
    """Routes (method, path) to canned responses and records every request."""

    def __init__(self):
        self.requests = []
        self.routes = {}
        self.token_requests = 0

    def on(self, method, path, status_code=200, body=None):
        self.routes[(method, path)] = (status_code, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/oauth/token":
            self.token_requests += 1
            return httpx.Response(200, json={"access_token": f"token-{self.token_requests}", "expires_in": 172800})
        status_code, body = self.routes.get((request.method, request.url.path), (404, {"message": "Not found"}))
        return httpx.Response(status_code, json=body)


def make_client(backend: Backend) -> CommerceClient:
    return CommerceClient(
        api_url="https://api.test",
        auth_url="https://auth.test",
        session_url="https://session.test",
        project_key="shop",
        client_id="id",
        client_secret="secret",
        scopes="manage_project:shop",
        transport=httpx.MockTransport(backend),
    )


@pytest.mark.asyncio
async def test_token_is_fetched_once_and_sent_as_bearer():
    backend = Backend()
    backend.on("GET", "/shop/carts/cart-1", body={"id": "cart-1", "version": 3})
    client = make_client(backend)

    await client.get_cart("cart-1")
    await client.get_cart("cart-1")

    assert backend.token_requests == 1
    token_request = backend.requests[0]
    assert b"grant_type=client_credentials" in token_request.content
    assert token_request.headers["Authorization"].startswith("Basic ")
    api_requests = [r for r in backend.requests if r.url.path != "/oauth/token"]
    assert all(r.headers["Authorization"] == "Bearer token-1" for r in api_requests)
    assert api_requests[0].url.params.get_list("expand") == ["paymentInfo.payments[*]", "discountCodes[*].discountCode"]
    await client.aclose()


@pytest.mark.asyncio
async def test_missing_cart_is_none():
    client = make_client(Backend())
    assert await client.get_cart("cart-404") is None
    await client.aclose()


@pytest.mark.asyncio
async def test_versioned_update_sends_version_and_actions():
    backend = Backend()
    backend.on("POST", "/shop/carts/cart-1", body={"id": "cart-1", "version": 4})
    client = make_client(backend)

    outcome = await client.update_cart("cart-1", 3, [{"action": "setCustomerEmail", "email": "a@b.c"}])

    assert not outcome.conflict
    assert outcome.resource["version"] == 4
    sent = json.loads(backend.requests[-1].content)
    assert sent == {"version": 3, "actions": [{"action": "setCustomerEmail", "email": "a@b.c"}]}
    await client.aclose()


@pytest.mark.asyncio
async def test_version_conflict_is_an_outcome_not_an_exception():
    backend = Backend()
    conflict = {"statusCode": 409, "message": "Object cart-1 has a different version.", "errors": [{"code": "ConcurrentModification"}]}
    backend.on("POST", "/shop/carts/cart-1", status_code=409, body=conflict)
    client = make_client(backend)

    outcome = await client.update_cart("cart-1", 1, [])

    assert outcome.conflict
    assert outcome.resource is None
    assert outcome.body == conflict
    await client.aclose()


@pytest.mark.asyncio
async def test_order_creation_conflict_is_an_outcome():
    backend = Backend()
    backend.on("POST", "/shop/orders", status_code=409, body={"message": "conflict"})
    client = make_client(backend)

    outcome = await client.create_order_from_cart("cart-1", 2, "PO-1")

    assert outcome.conflict
    assert json.loads(backend.requests[-1].content) == {"id": "cart-1", "version": 2, "purchaseOrderNumber": "PO-1"}
    await client.aclose()


@pytest.mark.asyncio
async def test_upstream_error_is_passed_through_verbatim():
    backend = Backend()
    body = {
        "statusCode": 400,
        "message": "The discount code 'X' was not found.",
        "errors": [{"code": "DiscountCodeNonApplicable", "message": "The discount code 'X' was not found."}],
    }
    backend.on("POST", "/shop/carts/cart-1", status_code=400, body=body)
    client = make_client(backend)

    with pytest.raises(ExternalSystemError) as exc:
        await client.update_cart("cart-1", 1, [{"action": "addDiscountCode", "code": "X"}])

    assert exc.value.status_code == 400
    assert exc.value.message == "The discount code 'X' was not found."
    assert exc.value.error_code == "DiscountCodeNonApplicable"
    assert exc.value.body == body
    await client.aclose()


@pytest.mark.asyncio
async def test_failed_authentication_is_external_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "invalid_client", "error_description": "Please provide valid client credentials."})

    client = CommerceClient(
        api_url="https://api.test",
        auth_url="https://auth.test",
        session_url="https://session.test",
        project_key="shop",
        client_id="id",
        client_secret="wrong",
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(ExternalSystemError) as exc:
        await client.get_cart("cart-1")

    assert exc.value.status_code == 401
    assert exc.value.message == "Please provide valid client credentials."
    await client.aclose()


@pytest.mark.asyncio
async def test_unreachable_backend_is_503():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "t", "expires_in": 3600})
        raise httpx.ConnectError("connection refused", request=request)

    client = CommerceClient(
        api_url="https://api.test",
        auth_url="https://auth.test",
        session_url="https://session.test",
        project_key="shop",
        client_id="id",
        client_secret="secret",
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(ExternalSystemError) as exc:
        await client.query_orders({"limit": 1})

    assert exc.value.status_code == 503
    await client.aclose()


@pytest.mark.asyncio
async def test_checkout_session_goes_to_session_api():
    backend = Backend()
    backend.on("POST", "/shop/sessions", body={"id": "session-1", "expiryAt": "2099-01-01T00:00:00.000Z"})
    client = make_client(backend)

    data = await client.create_checkout_session("cart-1", "app-key")

    request = backend.requests[-1]
    assert request.url.host == "session.test"
    assert json.loads(request.content) == {"cart": {"cartRef": {"id": "cart-1"}}, "metadata": {"applicationKey": "app-key"}}
    assert data["id"] == "session-1"
    await client.aclose()


@pytest.mark.asyncio
async def test_shipping_methods_unwrap_results():
    backend = Backend()
    backend.on("GET", "/shop/shipping-methods/matching-location", body={"results": [{"id": "sm-1"}]})
    client = make_client(backend)

    methods = await client.get_shipping_methods_matching_location("US")

    assert methods == [{"id": "sm-1"}]
    assert backend.requests[-1].url.params["country"] == "US"
    await client.aclose()


@pytest.mark.asyncio
async def test_conflict_with_non_json_body_is_still_a_conflict():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "t", "expires_in": 3600})
        return httpx.Response(409, text="<html>Conflict</html>")

    backend_client = CommerceClient(
        api_url="https://api.test",
        auth_url="https://auth.test",
        session_url="https://session.test",
        project_key="shop",
        client_id="id",
        client_secret="secret",
        transport=httpx.MockTransport(handler),
    )

    cart_outcome = await backend_client.update_cart("cart-1", 1, [])
    order_outcome = await backend_client.create_order_from_cart("cart-1", 1)

    assert cart_outcome.conflict
    assert cart_outcome.body == "<html>Conflict</html>"
    assert order_outcome.conflict
    await backend_client.aclose()


@pytest.mark.asyncio
async def test_non_json_error_and_success_bodies_are_external_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "t", "expires_in": 3600})
        if request.method == "GET":
            return httpx.Response(200, text="<html>maintenance</html>")
        return httpx.Response(502, text="Bad gateway")

    backend_client = CommerceClient(
        api_url="https://api.test",
        auth_url="https://auth.test",
        session_url="https://session.test",
        project_key="shop",
        client_id="id",
        client_secret="secret",
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(ExternalSystemError) as unreadable:
        await backend_client.get_cart("cart-1")
    with pytest.raises(ExternalSystemError) as upstream:
        await backend_client.update_cart("cart-1", 1, [])

    assert unreadable.value.status_code == 502
    assert unreadable.value.body == "<html>maintenance</html>"
    assert upstream.value.status_code == 502
    assert upstream.value.body == "Bad gateway"
    await backend_client.aclose()
