# storefront/services/session_projection.py
from __future__ import annotations

from typing import Any, Dict, Optional

from storefront.schemas.session import SessionData


def project_session(
    current: SessionData,
    artifacts: Dict[str, Any],
    *,
    cart_id: Optional[str] = None,
    clear_cart: bool = False,
) -> SessionData:
    """
    Session state to persist after an action.

    Backend artifacts (e.g. the checkout session token) overwrite what the session held.
    The cart binding is replaced by `cart_id` when the action produced a cart, dropped when
    `clear_cart` is set (checkout, reset), and kept as-is otherwise.
    """
    data = current.model_dump()
    data.update(artifacts)
    if clear_cart:
        data["cart_id"] = None
    elif cart_id is not None:
        data["cart_id"] = cart_id
    return SessionData(**data)
