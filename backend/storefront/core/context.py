# storefront/core/context.py
"""
Per-request action context.

Resolves the session binding and the shopper's account, builds a CartApi for the request,
and writes the session projection back once the action produced its result. The session
is passed into every action explicitly and returned through `respond`.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from storefront.config import settings
from storefront.core.auth import account_id_of, get_optional_principal
from storefront.core.session import SessionStore, get_session_store, new_session_id, session_id_from_request
from storefront.integrations.commerce import CommerceClient
from storefront.schemas.principal import Principal
from storefront.schemas.session import SessionData
from storefront.services.cart_api import CartApi
from storefront.services.session_projection import project_session

SESSION_DATA_HEADER = "X-Session-Data"

CartApiFactory = Callable[[SessionData], CartApi]


@dataclass
class ActionContext:
    session_id: str
    session: SessionData
    store: SessionStore
    cart_api: CartApi
    account_id: Optional[str] = None


def get_commerce_client(request: Request) -> CommerceClient:
    return request.app.state.commerce_client


def get_cart_api_factory(client: CommerceClient = Depends(get_commerce_client)) -> CartApiFactory:
    def factory(session: SessionData) -> CartApi:
        return CartApi(
            client,
            session,
            locale=settings.default_locale,
            currency=settings.default_currency,
            country=settings.default_country,
            checkout_application_key=settings.commerce_checkout_application_key,
        )

    return factory


async def get_action_context(
    request: Request,
    principal: Optional[Principal] = Depends(get_optional_principal),
    store: SessionStore = Depends(get_session_store),
    cart_api_factory: CartApiFactory = Depends(get_cart_api_factory),
) -> ActionContext:
    session_id = session_id_from_request(request) or new_session_id()
    session = await store.load(session_id) or SessionData()
    return ActionContext(
        session_id=session_id,
        session=session,
        store=store,
        cart_api=cart_api_factory(session),
        account_id=account_id_of(principal),
    )


async def respond(
    ctx: ActionContext,
    body: Any,
    *,
    cart_id: Optional[str] = None,
    clear_cart: bool = False,
    status_code: int = 200,
) -> JSONResponse:
    """Persist the session projection and return `body` with the session attached."""
    session = project_session(ctx.session, ctx.cart_api.get_session_data(), cart_id=cart_id, clear_cart=clear_cart)
    await ctx.store.save(ctx.session_id, session)

    response = JSONResponse(status_code=status_code, content=jsonable_encoder(body, by_alias=True))
    response.headers[SESSION_DATA_HEADER] = json.dumps(session.model_dump(mode="json", by_alias=True))
    response.headers[settings.session_header_name] = ctx.session_id
    response.set_cookie(settings.session_cookie_name, ctx.session_id, httponly=True, samesite="lax")
    return response
