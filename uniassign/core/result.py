"""Reply contract shared by the router and the conversation engine.

Handlers return a BotReply (text, status, intent, keyboard, edit flag);
only the notifier talks to the messaging transport.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from uniassign.bot.keyboards import InlineKeyboard

ReplyStatus = Literal["ok", "refused", "noop"]


@dataclass(frozen=True)
class BotReply:
    text: str
    status: ReplyStatus
    intent: str
    keyboard: InlineKeyboard | None = None
    edit: bool = False

    def to_log_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "intent": self.intent,
            "text_len": len(self.text),
            "buttons": self.keyboard.button_count() if self.keyboard else 0,
            "edit": self.edit,
        }


def ok(text: str, *, intent: str, keyboard: InlineKeyboard | None = None, edit: bool = False) -> BotReply:
    return BotReply(text=text, status="ok", intent=intent, keyboard=keyboard, edit=edit)


def refused(text: str, *, intent: str, keyboard: InlineKeyboard | None = None, edit: bool = False) -> BotReply:
    return BotReply(text=text, status="refused", intent=intent, keyboard=keyboard, edit=edit)


def noop(*, intent: str) -> BotReply:
    return BotReply(text="", status="noop", intent=intent)
