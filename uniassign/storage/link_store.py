from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from uniassign.core.models import AccountLink
from uniassign.storage.document_store import DocumentStore

LOGGER = logging.getLogger(__name__)

LINKS_COLLECTION = "account_links"


class AccountLinkRegistry:
    def __init__(
        self,
        documents: DocumentStore,
        *,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._documents = documents
        self._now_provider = now_provider or (lambda: datetime.now(timezone.utc))

    async def link_account(self, link_key: str, chat_id: int, external_user_id: int | None) -> AccountLink:
        link = AccountLink(
            link_key=link_key,
            chat_id=chat_id,
            external_user_id=external_user_id,
            linked_at=self._now_provider(),
        )
        self._documents.set(LINKS_COLLECTION, link_key, link.to_dict())
        LOGGER.info("Account linked: chat_id=%s user_id=%s", chat_id, external_user_id)
        return link

    async def resolve_account_by_chat(self, chat_id: int) -> str | None:
        matches = [link for link in await self.list_links() if link.chat_id == chat_id]
        if not matches:
            return None
        latest = max(matches, key=lambda link: link.linked_at)
        return latest.link_key

    async def list_links(self) -> list[AccountLink]:
        links: list[AccountLink] = []
        for doc_id, payload in self._documents.list(LINKS_COLLECTION):
            link = AccountLink.from_dict(doc_id, payload)
            if link is None:
                LOGGER.warning("Skipping malformed account link: link_key=%s", doc_id)
                continue
            links.append(link)
        return links
