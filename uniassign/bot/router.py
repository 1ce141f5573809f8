from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone, tzinfo
from html import escape
from typing import Callable, Literal

from telegram import Update

from uniassign.bot import texts
from uniassign.bot.callbacks import ActionKind, CallbackAction, parse_callback_data
from uniassign.bot.conversation import ConversationEngine
from uniassign.bot.keyboards import InlineButton, InlineKeyboard
from uniassign.bot.notifier import Notifier
from uniassign.core.errors import NotFoundError, NotLinkedError
from uniassign.core.models import Assignment, Reminder, ReminderPreset, Status
from uniassign.core.reminder_time import format_reminder_text, is_past_due, trigger_time
from uniassign.core.result import BotReply, noop, ok, refused
from uniassign.storage.link_store import AccountLinkRegistry
from uniassign.storage.repository import AssignmentRepository

LOGGER = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 10
ACCOUNT_COMMANDS = frozenset({"/assignments", "/remind", "/add"})


@dataclass(frozen=True)
class InboundEvent:
    kind: Literal["message", "callback"]
    chat_id: int
    user_id: int | None
    text: str = ""
    callback_data: str | None = None
    callback_query_id: str | None = None
    message_id: int | None = None


def inbound_event_from_update(update: Update) -> InboundEvent | None:
    query = update.callback_query
    if query is not None:
        message = query.message
        chat_id = message.chat.id if message is not None else query.from_user.id
        return InboundEvent(
            kind="callback",
            chat_id=chat_id,
            user_id=query.from_user.id if query.from_user else None,
            callback_data=query.data,
            callback_query_id=query.id,
            message_id=message.message_id if message is not None else None,
        )
    message = update.message
    if message is None or message.text is None:
        return None
    return InboundEvent(
        kind="message",
        chat_id=message.chat.id,
        user_id=message.from_user.id if message.from_user else None,
        text=message.text,
        message_id=message.message_id,
    )


def split_command(text: str) -> tuple[str | None, str]:
    value = text.strip()
    if not value.startswith("/"):
        return None, value
    head, _, args = value.partition(" ")
    command = head.split("@", 1)[0].lower()
    return command, args.strip()


class Router:
    """Entry point for inbound events: commands, free text, and button presses."""

    def __init__(
        self,
        *,
        links: AccountLinkRegistry,
        repository: AssignmentRepository,
        conversation: ConversationEngine,
        notifier: Notifier,
        tz: tzinfo,
        list_limit: int = DEFAULT_LIST_LIMIT,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._links = links
        self._repository = repository
        self._conversation = conversation
        self._notifier = notifier
        self._tz = tz
        self._list_limit = list_limit
        self._now_provider = now_provider or (lambda: datetime.now(timezone.utc))

    async def handle_update(self, update: Update) -> BotReply:
        event = inbound_event_from_update(update)
        if event is None:
            LOGGER.debug("Update ignored: update_id=%s", update.update_id)
            return noop(intent="update.ignored")
        return await self.handle_event(event)

    async def handle_event(self, event: InboundEvent) -> BotReply:
        if event.kind == "callback":
            reply = await self._handle_callback(event)
        else:
            reply = await self._handle_message(event)
        LOGGER.info(
            "Update routed: chat_id=%s kind=%s reply=%s",
            event.chat_id,
            event.kind,
            reply.to_log_dict(),
        )
        await self._notifier.deliver(reply, chat_id=event.chat_id, message_id=event.message_id)
        return reply

    async def _handle_message(self, event: InboundEvent) -> BotReply:
        text = event.text or ""
        command, args = split_command(text)
        if command == "/cancel":
            return await self._conversation.cancel(event.chat_id)
        if command == "/help":
            return ok(texts.HELP_TEXT, intent="command.help")
        session, expired = await self._conversation.load(event.chat_id)
        if session is not None:
            return await self._conversation.handle_text(session, text)
        if expired:
            await self._notifier.deliver(self._conversation.expired_reply(), chat_id=event.chat_id)
        if command == "/start":
            return await self._start(event, args)
        if command is None:
            return refused(
                "Send /add to create an assignment or /help to see what I can do.",
                intent="message.unrouted",
            )
        if command not in ACCOUNT_COMMANDS:
            return refused("Unknown command. Send /help.", intent="command.unknown")
        try:
            account_id = await self._require_account(event.chat_id)
        except NotLinkedError:
            return refused(texts.NOT_LINKED_TEXT, intent="account.not_linked")
        if command == "/assignments":
            return await self._list_assignments(account_id)
        if command == "/remind":
            return await self._remind_list(account_id)
        return await self._conversation.start_add(event.chat_id, account_id)

    async def _start(self, event: InboundEvent, link_key: str) -> BotReply:
        if not link_key:
            return ok(texts.WELCOME_TEXT, intent="command.start")
        await self._links.link_account(link_key, event.chat_id, event.user_id)
        return ok(texts.LINKED_TEXT, intent="account.linked")

    async def _handle_callback(self, event: InboundEvent) -> BotReply:
        if event.callback_query_id:
            await self._notifier.answer_callback(event.callback_query_id)
        action = parse_callback_data(event.callback_data)
        if action is None:
            LOGGER.info("Unknown callback ignored: chat_id=%s data=%s", event.chat_id, event.callback_data)
            return noop(intent="callback.unknown")
        try:
            account_id = await self._require_account(event.chat_id)
            return await self._dispatch_callback(event, account_id, action)
        except NotLinkedError:
            return refused(texts.NOT_LINKED_TEXT, intent="account.not_linked", edit=True)
        except NotFoundError as exc:
            LOGGER.info("Callback target missing: chat_id=%s kind=%s id=%s", event.chat_id, action.kind.value, exc.item_id)
            return refused(
                "❌ Assignment not found. It may have been deleted.",
                intent="callback.not_found",
                keyboard=_back_to_list_keyboard(),
                edit=True,
            )

    async def _dispatch_callback(self, event: InboundEvent, account_id: str, action: CallbackAction) -> BotReply:
        if action.kind == ActionKind.LIST_ALL:
            await self._conversation.clear(event.chat_id)
            reply = await self._list_assignments(account_id)
            return replace(reply, edit=True)
        assignment = await self._require_assignment(account_id, action.assignment_id)
        if action.kind == ActionKind.VIEW:
            return await self._render_detail(account_id, assignment, intent="assignment.view")
        if action.kind == ActionKind.TOGGLE:
            next_status = Status.PENDING if assignment.status == Status.COMPLETED else Status.COMPLETED
            updated = await self._repository.update_assignment(account_id, assignment.id, status=next_status)
            if updated is None:
                raise NotFoundError("assignment", assignment.id)
            return await self._render_detail(account_id, updated, intent="assignment.toggle")
        if action.kind == ActionKind.COMPLETE:
            if assignment.status == Status.COMPLETED:
                return await self._render_detail(account_id, assignment, intent="assignment.complete")
            updated = await self._repository.update_assignment(account_id, assignment.id, status=Status.COMPLETED)
            if updated is None:
                raise NotFoundError("assignment", assignment.id)
            return await self._render_detail(account_id, updated, intent="assignment.complete")
        if action.kind == ActionKind.DELETE_CONFIRM:
            return ok(
                texts.delete_confirm_text(assignment),
                intent="assignment.delete_confirm",
                keyboard=texts.delete_confirm_keyboard(assignment),
                edit=True,
            )
        if action.kind == ActionKind.DELETE_FINAL:
            if not await self._repository.delete_assignment(account_id, assignment.id):
                raise NotFoundError("assignment", assignment.id)
            return ok(
                f"🗑 Deleted <b>{escape(assignment.title)}</b>.",
                intent="assignment.deleted",
                keyboard=_back_to_list_keyboard(),
                edit=True,
            )
        if action.kind == ActionKind.EDIT_MENU:
            return ok(
                texts.edit_menu_text(assignment),
                intent="assignment.edit_menu",
                keyboard=texts.edit_menu_keyboard(assignment),
                edit=True,
            )
        if action.kind == ActionKind.EDIT_FIELD and action.field is not None:
            return await self._conversation.start_edit(event.chat_id, account_id, assignment, action.field)
        if action.kind == ActionKind.REMIND_SET:
            return ok(
                texts.reminder_menu_text(assignment, tz=self._tz, now=self._now_provider()),
                intent="reminder.menu",
                keyboard=texts.reminder_menu_keyboard(assignment),
                edit=True,
            )
        if action.kind == ActionKind.REMIND_PRESET and action.preset is not None:
            return await self._set_preset(account_id, assignment, action.preset)
        if action.kind == ActionKind.REMIND_DISABLE:
            return await self._disable_reminder(account_id, assignment)
        if action.kind == ActionKind.REMIND_CUSTOM:
            return await self._conversation.start_custom_reminder(event.chat_id, account_id, assignment)
        return noop(intent="callback.unknown")

    async def _set_preset(self, account_id: str, assignment: Assignment, preset: ReminderPreset) -> BotReply:
        reminder = Reminder(enabled=True, preset=preset)
        updated = await self._repository.set_reminder(account_id, assignment.id, reminder)
        if updated is None:
            raise NotFoundError("assignment", assignment.id)
        now = self._now_provider()
        trigger = trigger_time(updated.due_date, reminder)
        warning = ""
        if trigger is not None and is_past_due(trigger, now):
            warning = "\n⚠️ This time has already passed, so the reminder will not be sent."
        return ok(
            f"🔔 Reminder set: {format_reminder_text(updated.due_date, reminder, tz=self._tz)} "
            f"for <b>{escape(updated.title)}</b>.{warning}",
            intent="reminder.preset",
            keyboard=_view_keyboard(updated),
            edit=True,
        )

    async def _disable_reminder(self, account_id: str, assignment: Assignment) -> BotReply:
        if assignment.reminder is None or not assignment.reminder.enabled:
            return ok(
                "🔕 The reminder is already off.",
                intent="reminder.disable",
                keyboard=_view_keyboard(assignment),
                edit=True,
            )
        updated = await self._repository.set_reminder(
            account_id,
            assignment.id,
            replace(assignment.reminder, enabled=False, sent_at=None),
        )
        if updated is None:
            raise NotFoundError("assignment", assignment.id)
        return ok(
            f"🔕 Reminder disabled for <b>{escape(updated.title)}</b>.",
            intent="reminder.disable",
            keyboard=_view_keyboard(updated),
            edit=True,
        )

    async def _render_detail(self, account_id: str, assignment: Assignment, *, intent: str) -> BotReply:
        subject = await self._repository.get_subject(account_id, assignment.subject_id)
        return ok(
            texts.assignment_detail_text(assignment, subject, tz=self._tz, now=self._now_provider()),
            intent=intent,
            keyboard=texts.assignment_detail_keyboard(assignment),
            edit=True,
        )

    async def _list_assignments(self, account_id: str) -> BotReply:
        assignments = await self._repository.list_assignments(account_id, limit=self._list_limit)
        return ok(
            texts.assignment_list_text(assignments, self._tz),
            intent="assignment.list",
            keyboard=texts.assignment_list_keyboard(assignments),
        )

    async def _remind_list(self, account_id: str) -> BotReply:
        pending = await self._repository.list_pending(account_id, limit=self._list_limit)
        return ok(
            texts.remind_list_text(pending),
            intent="reminder.list",
            keyboard=texts.remind_list_keyboard(pending),
        )

    async def _require_account(self, chat_id: int) -> str:
        account_id = await self._links.resolve_account_by_chat(chat_id)
        if account_id is None:
            raise NotLinkedError(chat_id)
        return account_id

    async def _require_assignment(self, account_id: str, assignment_id: str | None) -> Assignment:
        if not assignment_id:
            raise NotFoundError("assignment", "")
        assignment = await self._repository.get_assignment(account_id, assignment_id)
        if assignment is None:
            raise NotFoundError("assignment", assignment_id)
        return assignment


def _view_keyboard(assignment: Assignment) -> InlineKeyboard:
    return InlineKeyboard(
        rows=[[InlineButton("⬅️ Back", CallbackAction(kind=ActionKind.VIEW, assignment_id=assignment.id))]]
    )


def _back_to_list_keyboard() -> InlineKeyboard:
    return InlineKeyboard(rows=[[InlineButton("📚 All assignments", CallbackAction(kind=ActionKind.LIST_ALL))]])
