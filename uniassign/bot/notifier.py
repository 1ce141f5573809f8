from __future__ import annotations

import logging
from typing import Any

from telegram.constants import ParseMode
from telegram.error import BadRequest, TelegramError

from uniassign.bot.keyboards import InlineKeyboard
from uniassign.core.result import BotReply

LOGGER = logging.getLogger(__name__)

EMPTY_MESSAGE_PLACEHOLDER = "(empty message)"


class Notifier:
    """Outbound side of the bot: send, edit, and acknowledge button presses.

    ``bot`` is a ``telegram.Bot`` or anything exposing the same three
    coroutines. Delivery failures are logged and swallowed; nothing is retried.
    """

    def __init__(self, bot: Any) -> None:
        self._bot = bot

    async def send_message(self, chat_id: int, text: str, keyboard: InlineKeyboard | None = None) -> bool:
        payload = text if text and text.strip() else EMPTY_MESSAGE_PLACEHOLDER
        try:
            await self._bot.send_message(
                chat_id=chat_id,
                text=payload,
                parse_mode=ParseMode.HTML,
                reply_markup=keyboard.to_markup() if keyboard else None,
            )
        except TelegramError:
            LOGGER.exception("Failed to send message: chat_id=%s", chat_id)
            return False
        return True

    async def edit_message(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        keyboard: InlineKeyboard | None = None,
    ) -> bool:
        payload = text if text and text.strip() else EMPTY_MESSAGE_PLACEHOLDER
        try:
            await self._bot.edit_message_text(
                chat_id=chat_id,
                message_id=message_id,
                text=payload,
                parse_mode=ParseMode.HTML,
                reply_markup=keyboard.to_markup() if keyboard else None,
            )
        except BadRequest as exc:
            if "message is not modified" in str(exc).lower():
                return True
            LOGGER.warning("Telegram rejected edit, sending instead: chat_id=%s error=%s", chat_id, exc)
            return await self.send_message(chat_id, payload, keyboard)
        except TelegramError:
            LOGGER.exception("Failed to edit message: chat_id=%s message_id=%s", chat_id, message_id)
            return False
        return True

    async def answer_callback(self, query_id: str) -> bool:
        try:
            await self._bot.answer_callback_query(callback_query_id=query_id)
        except TelegramError as exc:
            # Stale queries are normal for old buttons.
            LOGGER.info("Callback answer failed: query_id=%s error=%s", query_id, exc)
            return False
        return True

    async def deliver(self, reply: BotReply, *, chat_id: int, message_id: int | None = None) -> bool:
        if reply.status == "noop":
            return False
        if reply.edit and message_id is not None:
            return await self.edit_message(chat_id, message_id, reply.text, reply.keyboard)
        return await self.send_message(chat_id, reply.text, reply.keyboard)
