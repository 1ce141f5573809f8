"""Periodic sweep that sends each configured assignment reminder once.

A sweep runs every ``interval_minutes`` and fires reminders whose trigger time
falls within half an interval of ``now`` on either side. Delivery happens
before ``sent_at`` is persisted, so two overlapping sweeps can both send the
same reminder; nothing serializes them.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from uniassign.bot import texts
from uniassign.bot.notifier import Notifier
from uniassign.core.reminder_time import is_reminder_due
from uniassign.storage.link_store import AccountLinkRegistry
from uniassign.storage.repository import AssignmentRepository

LOGGER = logging.getLogger(__name__)

DEFAULT_INTERVAL_MINUTES = 15
SWEEP_JOB_ID = "reminder_sweep"


class ReminderSweeper:
    def __init__(
        self,
        *,
        links: AccountLinkRegistry,
        repository: AssignmentRepository,
        notifier: Notifier,
        tz: tzinfo,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._links = links
        self._repository = repository
        self._notifier = notifier
        self._tz = tz
        self._interval_minutes = max(1, interval_minutes)
        self._now_provider = now_provider or (lambda: datetime.now(timezone.utc))

    @property
    def interval_minutes(self) -> int:
        return self._interval_minutes

    def window(self, now: datetime) -> tuple[datetime, datetime]:
        half = timedelta(minutes=self._interval_minutes / 2)
        return now - half, now + half

    async def run_once(self, now: datetime | None = None) -> int:
        """Run one sweep and return the number of reminders delivered."""
        current = now or self._now_provider()
        window_start, window_end = self.window(current)
        sent = 0
        for link in await self._links.list_links():
            candidates = await self._repository.list_reminder_candidates(link.link_key)
            for assignment in candidates:
                if assignment.reminder is None:
                    continue
                if not is_reminder_due(assignment.reminder, assignment.due_date, window_start, window_end):
                    continue
                subject = await self._repository.get_subject(link.link_key, assignment.subject_id)
                delivered = await self._notifier.send_message(
                    link.chat_id,
                    texts.reminder_notification_text(assignment, subject, tz=self._tz, now=current),
                    texts.reminder_notification_keyboard(assignment),
                )
                if not delivered:
                    LOGGER.warning(
                        "Reminder send failed: assignment_id=%s chat_id=%s",
                        assignment.id,
                        link.chat_id,
                    )
                    continue
                await self._repository.mark_reminder_sent(link.link_key, assignment.id, current)
                sent += 1
                LOGGER.info(
                    "Reminder sent: assignment_id=%s chat_id=%s due_date=%s",
                    assignment.id,
                    link.chat_id,
                    assignment.due_date.isoformat(),
                )
        LOGGER.info(
            "Reminder sweep done: sent=%s window_start=%s window_end=%s",
            sent,
            window_start.isoformat(),
            window_end.isoformat(),
        )
        return sent


class SweepScheduler:
    """Runs ``ReminderSweeper.run_once`` on an APScheduler interval job."""

    def __init__(self, sweeper: ReminderSweeper) -> None:
        self._sweeper = sweeper
        self._scheduler = AsyncIOScheduler()

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        if self._scheduler.running:
            LOGGER.info("SweepScheduler already started, skipping")
            return
        self._scheduler.add_job(
            self._run_sweep,
            trigger=IntervalTrigger(minutes=self._sweeper.interval_minutes),
            id=SWEEP_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        LOGGER.info("SweepScheduler started: interval_minutes=%s", self._sweeper.interval_minutes)

    def shutdown(self, wait: bool = False) -> None:
        if not self._scheduler.running:
            return
        self._scheduler.shutdown(wait=wait)
        LOGGER.info("SweepScheduler shutdown")

    def get_job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    async def _run_sweep(self) -> None:
        try:
            await self._sweeper.run_once()
        except asyncio.CancelledError:
            raise
        except Exception:
            LOGGER.exception("Reminder sweep failed")
