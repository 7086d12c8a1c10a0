# storefront/core/session.py
"""
Session binding: which session a request belongs to and where its projection lives.

The session id travels in a cookie or a header; a request without one starts a new session.
"""
from __future__ import annotations

import uuid
from typing import Optional, Protocol

from fastapi import Request

from storefront.config import settings
from storefront.repositories.sessions import FirestoreSessionStore
from storefront.schemas.session import SessionData


class SessionStore(Protocol):
    async def load(self, session_id: str) -> Optional[SessionData]: ...

    async def save(self, session_id: str, data: SessionData) -> None: ...


def session_id_from_request(request: Request) -> Optional[str]:
    session_id = request.headers.get(settings.session_header_name) or request.cookies.get(settings.session_cookie_name)
    session_id = (session_id or "").strip()
    return session_id or None


def new_session_id() -> str:
    return uuid.uuid4().hex


def get_session_store() -> SessionStore:
    return FirestoreSessionStore()
