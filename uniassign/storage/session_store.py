from __future__ import annotations

import logging
from datetime import datetime, timezone

from uniassign.core.models import ChatSession
from uniassign.storage.document_store import DocumentStore

LOGGER = logging.getLogger(__name__)

SESSIONS_COLLECTION = "chat_sessions"


class ChatSessionStore:
    """At most one in-progress conversation per chat.

    ``timeout_seconds=0`` keeps sessions until they are cleared explicitly.
    """

    def __init__(self, documents: DocumentStore, *, timeout_seconds: int = 0) -> None:
        self._documents = documents
        self._timeout_seconds = max(0, int(timeout_seconds))

    async def load(
        self,
        chat_id: int,
        *,
        now: datetime | None = None,
    ) -> tuple[ChatSession | None, bool]:
        payload = self._documents.get(SESSIONS_COLLECTION, str(chat_id))
        if payload is None:
            return None, False
        session = ChatSession.from_dict(chat_id, payload)
        if session is None:
            LOGGER.warning("Dropping unreadable chat session: chat_id=%s", chat_id)
            await self.clear(chat_id)
            return None, False
        if self._timeout_seconds:
            current = now or datetime.now(timezone.utc)
            if (current - session.updated_at).total_seconds() > self._timeout_seconds:
                LOGGER.info("Chat session expired: chat_id=%s step=%s", chat_id, session.step.value)
                await self.clear(chat_id)
                return None, True
        return session, False

    async def save(self, session: ChatSession) -> None:
        self._documents.set(SESSIONS_COLLECTION, str(session.chat_id), session.to_dict())

    async def clear(self, chat_id: int) -> bool:
        return self._documents.delete(SESSIONS_COLLECTION, str(chat_id))
