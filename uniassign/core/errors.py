from __future__ import annotations


class BotError(Exception):
    """Base class for failures the router turns into a user-facing reply."""


class NotLinkedError(BotError):
    def __init__(self, chat_id: int) -> None:
        super().__init__(f"Chat is not linked: chat_id={chat_id}")
        self.chat_id = chat_id


class NotFoundError(BotError):
    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"{kind} not found: id={item_id}")
        self.kind = kind
        self.item_id = item_id


class SessionCorruptedError(BotError):
    def __init__(self, chat_id: int, reason: str) -> None:
        super().__init__(f"Session corrupted: chat_id={chat_id} reason={reason}")
        self.chat_id = chat_id
        self.reason = reason
