from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Status(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ReminderPreset(str, Enum):
    ONE_HOUR = "1h"
    SIX_HOURS = "6h"
    ONE_DAY = "1d"
    THREE_DAYS = "3d"
    ONE_WEEK = "1w"
    CUSTOM = "custom"


class SessionStep(str, Enum):
    AWAITING_TITLE = "AWAITING_TITLE"
    AWAITING_SUBJECT = "AWAITING_SUBJECT"
    AWAITING_DUE_DATE = "AWAITING_DUE_DATE"
    AWAITING_EDIT_VALUE = "AWAITING_EDIT_VALUE"
    AWAITING_REMINDER_PRESET = "AWAITING_REMINDER_PRESET"


DEFAULT_SUBJECT_COLOR = "bg-blue-500"
CHAT_DESCRIPTION = "Added via chat"


@dataclass(frozen=True)
class Reminder:
    enabled: bool
    preset: ReminderPreset
    custom_minutes: int | None = None
    custom_time: datetime | None = None
    sent_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"enabled": self.enabled, "preset": self.preset.value}
        if self.custom_minutes is not None:
            payload["customMinutes"] = self.custom_minutes
        if self.custom_time is not None:
            payload["customTime"] = self.custom_time.isoformat()
        if self.sent_at is not None:
            payload["sentAt"] = self.sent_at.isoformat()
        return payload

    @staticmethod
    def from_dict(payload: object) -> Reminder | None:
        if not isinstance(payload, dict):
            return None
        try:
            preset = ReminderPreset(payload.get("preset"))
        except ValueError:
            return None
        minutes = payload.get("customMinutes")
        if isinstance(minutes, bool) or not isinstance(minutes, (int, float)):
            minutes = None
        return Reminder(
            enabled=bool(payload.get("enabled")),
            preset=preset,
            custom_minutes=int(minutes) if minutes is not None else None,
            custom_time=parse_datetime(payload.get("customTime")),
            sent_at=parse_datetime(payload.get("sentAt")),
        )


@dataclass(frozen=True)
class Subject:
    id: str
    name: str
    color: str
    created_at: datetime
    last_updated: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "color": self.color,
            "createdAt": self.created_at.isoformat(),
            "lastUpdated": self.last_updated.isoformat(),
        }

    @staticmethod
    def from_dict(doc_id: str, payload: dict[str, Any]) -> Subject | None:
        name = payload.get("name")
        if not isinstance(name, str):
            return None
        created_at = parse_datetime(payload.get("createdAt")) or _epoch()
        return Subject(
            id=doc_id,
            name=name,
            color=str(payload.get("color") or DEFAULT_SUBJECT_COLOR),
            created_at=created_at,
            last_updated=parse_datetime(payload.get("lastUpdated")) or created_at,
        )


@dataclass(frozen=True)
class Assignment:
    id: str
    title: str
    subject_id: str
    due_date: datetime
    status: Status
    priority: Priority
    created_at: datetime
    description: str = ""
    exam_type: str | None = None
    reminder: Reminder | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "title": self.title,
            "subjectId": self.subject_id,
            "dueDate": self.due_date.isoformat(),
            "status": self.status.value,
            "priority": self.priority.value,
            "description": self.description,
            "examType": self.exam_type,
            "createdAt": self.created_at.isoformat(),
        }
        if self.reminder is not None:
            payload["reminder"] = self.reminder.to_dict()
        return payload

    @staticmethod
    def from_dict(doc_id: str, payload: dict[str, Any]) -> Assignment | None:
        title = payload.get("title")
        due_date = parse_datetime(payload.get("dueDate"))
        if not isinstance(title, str) or due_date is None:
            return None
        try:
            status = Status(payload.get("status", Status.PENDING.value))
        except ValueError:
            status = Status.PENDING
        try:
            priority = Priority(payload.get("priority", Priority.MEDIUM.value))
        except ValueError:
            priority = Priority.MEDIUM
        exam_type = payload.get("examType")
        return Assignment(
            id=doc_id,
            title=title,
            subject_id=str(payload.get("subjectId") or ""),
            due_date=due_date,
            status=status,
            priority=priority,
            created_at=parse_datetime(payload.get("createdAt")) or _epoch(),
            description=str(payload.get("description") or ""),
            exam_type=exam_type if exam_type in {"midterm", "final"} else None,
            reminder=Reminder.from_dict(payload.get("reminder")),
        )


@dataclass(frozen=True)
class AccountLink:
    link_key: str
    chat_id: int
    external_user_id: int | None
    linked_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "chatId": self.chat_id,
            "telegramUserId": self.external_user_id,
            "linkedAt": self.linked_at.isoformat(),
        }

    @staticmethod
    def from_dict(link_key: str, payload: dict[str, Any]) -> AccountLink | None:
        chat_id = _coerce_int(payload.get("chatId"))
        if chat_id is None:
            return None
        return AccountLink(
            link_key=link_key,
            chat_id=chat_id,
            external_user_id=_coerce_int(payload.get("telegramUserId")),
            linked_at=parse_datetime(payload.get("linkedAt")) or _epoch(),
        )


@dataclass(frozen=True)
class ChatSession:
    chat_id: int
    step: SessionStep
    account_id: str
    updated_at: datetime
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step.value,
            "data": self.data,
            "accountId": self.account_id,
            "updatedAt": self.updated_at.isoformat(),
        }

    @staticmethod
    def from_dict(chat_id: int, payload: dict[str, Any]) -> ChatSession | None:
        try:
            step = SessionStep(payload.get("step"))
        except ValueError:
            return None
        account_id = payload.get("accountId")
        updated_at = parse_datetime(payload.get("updatedAt"))
        if not isinstance(account_id, str) or not account_id or updated_at is None:
            return None
        data = payload.get("data")
        return ChatSession(
            chat_id=chat_id,
            step=step,
            account_id=account_id,
            updated_at=updated_at,
            data=data if isinstance(data, dict) else {},
        )


def parse_datetime(value: object) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coerce_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _epoch() -> datetime:
    return datetime.fromtimestamp(0, tz=timezone.utc)
