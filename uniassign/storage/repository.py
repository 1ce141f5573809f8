from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable

from uniassign.core.models import (
    DEFAULT_SUBJECT_COLOR,
    Assignment,
    Priority,
    Reminder,
    Status,
    Subject,
)
from uniassign.storage.document_store import DocumentStore

LOGGER = logging.getLogger(__name__)


def subjects_collection(account_id: str) -> str:
    return f"users/{account_id}/subjects"


def assignments_collection(account_id: str) -> str:
    return f"users/{account_id}/assignments"


class AssignmentRepository:
    """Per-account subjects and assignments, read and written on request."""

    def __init__(
        self,
        documents: DocumentStore,
        *,
        now_provider: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._documents = documents
        self._now_provider = now_provider or (lambda: datetime.now(timezone.utc))
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)

    async def list_subjects(self, account_id: str) -> list[Subject]:
        subjects = []
        for doc_id, payload in self._documents.list(subjects_collection(account_id)):
            subject = Subject.from_dict(doc_id, payload)
            if subject is not None:
                subjects.append(subject)
        return sorted(subjects, key=lambda item: (item.created_at, item.name))

    async def get_subject(self, account_id: str, subject_id: str) -> Subject | None:
        payload = self._documents.get(subjects_collection(account_id), subject_id)
        if payload is None:
            return None
        return Subject.from_dict(subject_id, payload)

    async def find_subject_by_name(self, account_id: str, name: str) -> Subject | None:
        for subject in await self.list_subjects(account_id):
            if subject.name == name:
                return subject
        return None

    async def create_subject(self, account_id: str, name: str, *, color: str = DEFAULT_SUBJECT_COLOR) -> Subject:
        now = self._now_provider()
        subject = Subject(id=self._id_factory(), name=name, color=color, created_at=now, last_updated=now)
        self._documents.set(subjects_collection(account_id), subject.id, subject.to_dict())
        LOGGER.info("Subject created: account_id=%s subject_id=%s", account_id, subject.id)
        return subject

    async def get_or_create_subject(self, account_id: str, name: str) -> tuple[Subject, bool]:
        existing = await self.find_subject_by_name(account_id, name)
        if existing is not None:
            return existing, False
        return await self.create_subject(account_id, name), True

    async def create_assignment(
        self,
        account_id: str,
        *,
        title: str,
        subject_id: str,
        due_date: datetime,
        status: Status = Status.PENDING,
        priority: Priority = Priority.MEDIUM,
        description: str = "",
        exam_type: str | None = None,
        reminder: Reminder | None = None,
    ) -> Assignment:
        assignment = Assignment(
            id=self._id_factory(),
            title=title,
            subject_id=subject_id,
            due_date=due_date,
            status=status,
            priority=priority,
            created_at=self._now_provider(),
            description=description,
            exam_type=exam_type,
            reminder=reminder,
        )
        self._save(account_id, assignment)
        LOGGER.info("Assignment created: account_id=%s assignment_id=%s", account_id, assignment.id)
        return assignment

    async def get_assignment(self, account_id: str, assignment_id: str) -> Assignment | None:
        payload = self._documents.get(assignments_collection(account_id), assignment_id)
        if payload is None:
            return None
        return Assignment.from_dict(assignment_id, payload)

    async def list_assignments(self, account_id: str, *, limit: int | None = None) -> list[Assignment]:
        assignments = []
        for doc_id, payload in self._documents.list(assignments_collection(account_id)):
            assignment = Assignment.from_dict(doc_id, payload)
            if assignment is None:
                LOGGER.warning("Skipping malformed assignment: account_id=%s assignment_id=%s", account_id, doc_id)
                continue
            assignments.append(assignment)
        assignments.sort(key=lambda item: item.due_date)
        if limit is not None:
            return assignments[:limit]
        return assignments

    async def list_pending(self, account_id: str, *, limit: int | None = None) -> list[Assignment]:
        pending = [item for item in await self.list_assignments(account_id) if item.status != Status.COMPLETED]
        if limit is not None:
            return pending[:limit]
        return pending

    async def list_reminder_candidates(self, account_id: str) -> list[Assignment]:
        return [
            item
            for item in await self.list_assignments(account_id)
            if item.status != Status.COMPLETED
            and item.reminder is not None
            and item.reminder.enabled
            and item.reminder.sent_at is None
        ]

    async def update_assignment(self, account_id: str, assignment_id: str, **changes: Any) -> Assignment | None:
        current = await self.get_assignment(account_id, assignment_id)
        if current is None:
            return None
        updated = replace(current, **changes)
        self._save(account_id, updated)
        LOGGER.info(
            "Assignment updated: account_id=%s assignment_id=%s fields=%s",
            account_id,
            assignment_id,
            ",".join(sorted(changes)),
        )
        return updated

    async def set_reminder(self, account_id: str, assignment_id: str, reminder: Reminder | None) -> Assignment | None:
        return await self.update_assignment(account_id, assignment_id, reminder=reminder)

    async def mark_reminder_sent(self, account_id: str, assignment_id: str, sent_at: datetime) -> Assignment | None:
        current = await self.get_assignment(account_id, assignment_id)
        if current is None or current.reminder is None:
            return None
        return await self.set_reminder(account_id, assignment_id, replace(current.reminder, sent_at=sent_at))

    async def delete_assignment(self, account_id: str, assignment_id: str) -> bool:
        deleted = self._documents.delete(assignments_collection(account_id), assignment_id)
        if deleted:
            LOGGER.info("Assignment deleted: account_id=%s assignment_id=%s", account_id, assignment_id)
        return deleted

    def _save(self, account_id: str, assignment: Assignment) -> None:
        self._documents.set(assignments_collection(account_id), assignment.id, assignment.to_dict())
