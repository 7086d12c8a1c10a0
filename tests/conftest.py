"""Pytest fixtures for storefront tests."""

import pytest
from fastapi.testclient import TestClient

from storefront.core.auth import get_optional_principal
from storefront.core.context import get_cart_api_factory
from storefront.core.session import get_session_store
from storefront.main import app
from storefront.schemas.principal import Principal
from storefront.schemas.session import SessionData
from storefront.services.cart_api import CartApi
from storefront.services.notifications import get_notifier
from tests.fakes import FakeCommerce, InMemorySessionStore, RecordingNotifier


def make_cart_api(backend, session=None) -> CartApi:
    return CartApi(backend, session or SessionData(), locale="en-US", currency="USD", country="US")


@pytest.fixture
def backend():
    return FakeCommerce()


@pytest.fixture
def cart_api(backend):
    return make_cart_api(backend)


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(backend, session_store, notifier):
    """TestClient wired to the in-memory backend; anonymous unless `login` is used."""
    app.dependency_overrides[get_cart_api_factory] = lambda: (lambda session: make_cart_api(backend, session))
    app.dependency_overrides[get_session_store] = lambda: session_store
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_optional_principal] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """Call with a customer id to make every following request come from that account."""

    def _login(customer_id: str = "customer-1", uid: str = "uid-1"):
        principal = Principal(uid=uid, role="user", email=f"{uid}@example.com", customer_id=customer_id)
        app.dependency_overrides[get_optional_principal] = lambda: principal
        return principal

    return _login
