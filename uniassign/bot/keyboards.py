from __future__ import annotations

import logging
from dataclasses import dataclass, field

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from uniassign.bot.callbacks import MAX_CALLBACK_BYTES, CallbackAction

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class InlineButton:
    label: str
    action: CallbackAction


@dataclass(frozen=True)
class InlineKeyboard:
    rows: list[list[InlineButton]] = field(default_factory=list)

    def button_count(self) -> int:
        return sum(len(row) for row in self.rows)

    def callback_codes(self) -> list[str]:
        return [button.action.encode() for row in self.rows for button in row]

    def to_markup(self) -> InlineKeyboardMarkup | None:
        rows: list[list[InlineKeyboardButton]] = []
        for row in self.rows:
            buttons: list[InlineKeyboardButton] = []
            for button in row:
                data = button.action.encode()
                if len(data.encode("utf-8")) > MAX_CALLBACK_BYTES:
                    LOGGER.warning("Callback data too long: kind=%s data=%s", button.action.kind.value, data)
                    continue
                buttons.append(InlineKeyboardButton(button.label, callback_data=data))
            if buttons:
                rows.append(buttons)
        return InlineKeyboardMarkup(rows) if rows else None


def single_column(buttons: list[InlineButton]) -> InlineKeyboard:
    return InlineKeyboard(rows=[[button] for button in buttons])


def grid(buttons: list[InlineButton], *, columns: int = 2) -> InlineKeyboard:
    rows: list[list[InlineButton]] = []
    row: list[InlineButton] = []
    for index, button in enumerate(buttons, start=1):
        row.append(button)
        if len(row) == columns or index == len(buttons):
            rows.append(row)
            row = []
    return InlineKeyboard(rows=rows)
