"""
storefront/schemas/session.py - Session binding carried between actions.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import Field

from storefront.schemas.cart import _Base


class CheckoutToken(_Base):
    token: str
    expires_at: Optional[datetime] = None
    cart_id: Optional[str] = None

    def is_valid_for(self, cart_id: str, now: Optional[datetime] = None) -> bool:
        if self.cart_id != cart_id:
            return False
        if self.expires_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at > now


class SessionData(_Base):
    """Per-shopper state persisted outside this service."""

    cart_id: Optional[str] = Field(None, description="Active cart bound to the session")
    checkout_session_token: Optional[CheckoutToken] = None
