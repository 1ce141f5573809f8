from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone, tzinfo
from html import escape
from typing import Callable

from uniassign.bot import texts
from uniassign.bot.callbacks import ActionKind, CallbackAction, EditField
from uniassign.bot.keyboards import InlineButton, InlineKeyboard
from uniassign.core.date_parse import DateParser, parse_relative_minutes
from uniassign.core.errors import NotFoundError, SessionCorruptedError
from uniassign.core.models import (
    CHAT_DESCRIPTION,
    Assignment,
    ChatSession,
    Priority,
    Reminder,
    ReminderPreset,
    SessionStep,
    Status,
)
from uniassign.core.reminder_time import format_reminder_text, is_past_due, trigger_time
from uniassign.core.result import BotReply, ok, refused
from uniassign.storage.repository import AssignmentRepository
from uniassign.storage.session_store import ChatSessionStore

LOGGER = logging.getLogger(__name__)

RESTART_TEXT = "⚠️ Something went wrong with this conversation. Please start again."
EXPIRED_TEXT = "⌛ The previous action timed out. Please start again."


class ConversationEngine:
    """Multi-step flows (add assignment, edit a field, custom reminder) persisted per chat."""

    def __init__(
        self,
        sessions: ChatSessionStore,
        repository: AssignmentRepository,
        *,
        date_parser: DateParser,
        tz: tzinfo,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._sessions = sessions
        self._repository = repository
        self._date_parser = date_parser
        self._tz = tz
        self._now_provider = now_provider or (lambda: datetime.now(timezone.utc))

    async def load(self, chat_id: int) -> tuple[ChatSession | None, bool]:
        return await self._sessions.load(chat_id, now=self._now_provider())

    async def cancel(self, chat_id: int) -> BotReply:
        cleared = await self._sessions.clear(chat_id)
        if not cleared:
            return refused("Nothing to cancel.", intent="session.cancel")
        LOGGER.info("Session cancelled: chat_id=%s", chat_id)
        return ok("❌ Action cancelled.", intent="session.cancel")

    async def clear(self, chat_id: int) -> None:
        await self._sessions.clear(chat_id)

    def expired_reply(self) -> BotReply:
        return refused(EXPIRED_TEXT, intent="session.expired")

    async def start_add(self, chat_id: int, account_id: str) -> BotReply:
        await self._save_new(chat_id, account_id, SessionStep.AWAITING_TITLE, {})
        return ok("📝 What is the title of the assignment?\nSend /cancel to stop.", intent="add.title")

    async def start_edit(self, chat_id: int, account_id: str, assignment: Assignment, field: EditField) -> BotReply:
        await self._save_new(
            chat_id,
            account_id,
            SessionStep.AWAITING_EDIT_VALUE,
            {"assignmentId": assignment.id, "editField": field.value},
        )
        if field == EditField.DATE:
            prompt = (
                f"📅 Send the new due date for <b>{escape(assignment.title)}</b>.\n"
                f"Current: {texts.format_due(assignment.due_date, self._tz)}\n{texts.DATE_HINT}"
            )
        else:
            prompt = f"✏️ Send the new title for <b>{escape(assignment.title)}</b>."
        return ok(prompt, intent="edit.prompt", edit=True)

    async def start_custom_reminder(self, chat_id: int, account_id: str, assignment: Assignment) -> BotReply:
        await self._save_new(
            chat_id,
            account_id,
            SessionStep.AWAITING_REMINDER_PRESET,
            {"assignmentId": assignment.id},
        )
        return ok(
            f"🔔 Custom reminder for <b>{escape(assignment.title)}</b>\n"
            f"📅 Due: {texts.format_due(assignment.due_date, self._tz)}\n\n{texts.REMINDER_HINT}",
            intent="reminder.custom.prompt",
            edit=True,
        )

    async def handle_text(self, session: ChatSession, text: str) -> BotReply:
        try:
            if session.step == SessionStep.AWAITING_TITLE:
                return await self._handle_title(session, text)
            if session.step == SessionStep.AWAITING_SUBJECT:
                return await self._handle_subject(session, text)
            if session.step == SessionStep.AWAITING_DUE_DATE:
                return await self._handle_due_date(session, text)
            if session.step == SessionStep.AWAITING_EDIT_VALUE:
                return await self._handle_edit_value(session, text)
            if session.step == SessionStep.AWAITING_REMINDER_PRESET:
                return await self._handle_reminder_value(session, text)
            raise SessionCorruptedError(session.chat_id, f"unknown step {session.step}")
        except SessionCorruptedError as exc:
            LOGGER.warning("Session corrupted, clearing: chat_id=%s reason=%s", exc.chat_id, exc.reason)
            await self._sessions.clear(session.chat_id)
            return refused(RESTART_TEXT, intent="session.corrupted")
        except NotFoundError as exc:
            LOGGER.info("Session target missing, clearing: chat_id=%s item_id=%s", session.chat_id, exc.item_id)
            await self._sessions.clear(session.chat_id)
            return refused("❌ Assignment not found. It may have been deleted.", intent="session.not_found")

    async def _handle_title(self, session: ChatSession, text: str) -> BotReply:
        title = text.strip()
        if not title:
            return refused("The title cannot be empty. What is the title of the assignment?", intent="add.title")
        await self._advance(session, SessionStep.AWAITING_SUBJECT, {"title": title})
        subjects = await self._repository.list_subjects(session.account_id)
        return ok(texts.subject_prompt_text(subjects), intent="add.subject")

    async def _handle_subject(self, session: ChatSession, text: str) -> BotReply:
        name = text.strip()
        if not name:
            return refused("The subject name cannot be empty. Which subject is it for?", intent="add.subject")
        if not _data_str(session, "title"):
            raise SessionCorruptedError(session.chat_id, "missing title")
        subject, created = await self._repository.get_or_create_subject(session.account_id, name)
        await self._advance(
            session,
            SessionStep.AWAITING_DUE_DATE,
            {"subjectId": subject.id, "subjectName": subject.name},
        )
        prefix = f"🆕 Created subject <b>{escape(subject.name)}</b>.\n" if created else ""
        return ok(f"{prefix}📅 When is it due?\n{texts.DATE_HINT}", intent="add.due_date")

    async def _handle_due_date(self, session: ChatSession, text: str) -> BotReply:
        title = _data_str(session, "title")
        subject_id = _data_str(session, "subjectId")
        if not title or not subject_id:
            raise SessionCorruptedError(session.chat_id, "missing draft fields")
        due_date = self._date_parser(text, self._now_provider())
        if due_date is None:
            return refused(f"❓ I couldn't understand that date. Please try again.\n{texts.DATE_HINT}", intent="add.due_date")
        assignment = await self._repository.create_assignment(
            session.account_id,
            title=title,
            subject_id=subject_id,
            due_date=due_date,
            status=Status.PENDING,
            priority=Priority.MEDIUM,
            description=CHAT_DESCRIPTION,
        )
        await self._sessions.clear(session.chat_id)
        subject_name = _data_str(session, "subjectName") or "—"
        return ok(
            f"✅ <b>Assignment added!</b>\n\n📌 {escape(assignment.title)}\n📘 {escape(subject_name)}\n"
            f"📅 Due: {texts.format_due(assignment.due_date, self._tz)}",
            intent="add.done",
            keyboard=_open_keyboard(assignment),
        )

    async def _handle_edit_value(self, session: ChatSession, text: str) -> BotReply:
        assignment_id = _data_str(session, "assignmentId")
        field_raw = _data_str(session, "editField")
        if not assignment_id or field_raw not in {EditField.TITLE.value, EditField.DATE.value}:
            raise SessionCorruptedError(session.chat_id, "missing edit target")
        if field_raw == EditField.DATE.value:
            due_date = self._date_parser(text, self._now_provider())
            if due_date is None:
                return refused(
                    f"❓ I couldn't understand that date. Please try again.\n{texts.DATE_HINT}",
                    intent="edit.date",
                )
            updated = await self._repository.update_assignment(session.account_id, assignment_id, due_date=due_date)
        else:
            title = text.strip()
            if not title:
                return refused("The title cannot be empty. Send the new title.", intent="edit.title")
            updated = await self._repository.update_assignment(session.account_id, assignment_id, title=title)
        if updated is None:
            raise NotFoundError("assignment", assignment_id)
        await self._sessions.clear(session.chat_id)
        return ok(
            f"✅ Updated <b>{escape(updated.title)}</b>\n📅 Due: {texts.format_due(updated.due_date, self._tz)}",
            intent="edit.done",
            keyboard=_open_keyboard(updated),
        )

    async def _handle_reminder_value(self, session: ChatSession, text: str) -> BotReply:
        assignment_id = _data_str(session, "assignmentId")
        if not assignment_id:
            raise SessionCorruptedError(session.chat_id, "missing reminder target")
        assignment = await self._repository.get_assignment(session.account_id, assignment_id)
        if assignment is None:
            raise NotFoundError("assignment", assignment_id)
        now = self._now_provider()
        minutes = parse_relative_minutes(text)
        if minutes is None:
            parsed = self._date_parser(text, now)
            if parsed is not None and parsed > now:
                minutes = round((assignment.due_date - parsed).total_seconds() / 60)
        if minutes is None or minutes <= 0:
            return refused(f"❓ I couldn't use that.\n{texts.REMINDER_HINT}", intent="reminder.custom.value")
        reminder = Reminder(enabled=True, preset=ReminderPreset.CUSTOM, custom_minutes=minutes)
        updated = await self._repository.set_reminder(session.account_id, assignment_id, reminder)
        if updated is None:
            raise NotFoundError("assignment", assignment_id)
        await self._sessions.clear(session.chat_id)
        label = format_reminder_text(updated.due_date, reminder, tz=self._tz)
        trigger = trigger_time(updated.due_date, reminder)
        warning = ""
        if trigger is not None and is_past_due(trigger, now):
            warning = "\n⚠️ This time has already passed, so the reminder will not be sent."
        LOGGER.info(
            "Custom reminder set: chat_id=%s assignment_id=%s minutes=%s",
            session.chat_id,
            assignment_id,
            minutes,
        )
        return ok(
            f"🔔 Reminder set: {label} for <b>{escape(updated.title)}</b>.{warning}",
            intent="reminder.custom.done",
            keyboard=_open_keyboard(updated),
        )

    async def _save_new(self, chat_id: int, account_id: str, step: SessionStep, data: dict[str, object]) -> None:
        session = ChatSession(
            chat_id=chat_id,
            step=step,
            account_id=account_id,
            updated_at=self._now_provider(),
            data=dict(data),
        )
        await self._sessions.save(session)
        LOGGER.info("Session started: chat_id=%s step=%s", chat_id, step.value)

    async def _advance(self, session: ChatSession, step: SessionStep, data: dict[str, object]) -> ChatSession:
        updated = replace(
            session,
            step=step,
            data={**session.data, **data},
            updated_at=self._now_provider(),
        )
        await self._sessions.save(updated)
        return updated


def _data_str(session: ChatSession, key: str) -> str | None:
    value = session.data.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _open_keyboard(assignment: Assignment) -> InlineKeyboard:
    return InlineKeyboard(
        rows=[
            [
                InlineButton("📄 Open", CallbackAction(kind=ActionKind.VIEW, assignment_id=assignment.id)),
                InlineButton("📚 All assignments", CallbackAction(kind=ActionKind.LIST_ALL)),
            ]
        ]
    )
