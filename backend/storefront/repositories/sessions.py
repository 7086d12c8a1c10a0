from typing import Any, Dict, Optional

from google.cloud import firestore as gcf
from starlette.concurrency import run_in_threadpool

from storefront.config import get_db, settings
from storefront.schemas.session import SessionData


def _collection():
    return get_db().collection(settings.prefixed(settings.session_collection))


def get(session_id: str) -> Optional[Dict[str, Any]]:
    doc = _collection().document(session_id).get()
    return doc.to_dict() if doc.exists else None


def put(session_id: str, data: Dict[str, Any]) -> None:
    _collection().document(session_id).set({
        "session_id": session_id,
        "data": data,
        "updated_at": gcf.SERVER_TIMESTAMP,
    })


class FirestoreSessionStore:
    """Session projection per session id, one document each. Firestore calls run off the event loop."""

    async def load(self, session_id: str) -> Optional[SessionData]:
        doc = await run_in_threadpool(get, session_id)
        if not doc:
            return None
        return SessionData.model_validate(doc.get("data") or {})

    async def save(self, session_id: str, data: SessionData) -> None:
        await run_in_threadpool(put, session_id, data.model_dump(mode="json", by_alias=True))
