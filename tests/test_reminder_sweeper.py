from __future__ import annotations

import asyncio
from datetime import timedelta

from uniassign.bot.notifier import Notifier
from uniassign.core.models import Reminder, ReminderPreset, Status
from uniassign.core.reminder_sweeper import SWEEP_JOB_ID, ReminderSweeper, SweepScheduler

ONE_DAY = Reminder(enabled=True, preset=ReminderPreset.ONE_DAY)


class YieldingBot:
    """Gives control back to the event loop mid-send so two sweeps can interleave."""

    def __init__(self) -> None:
        self.sent: list[dict] = []

    async def send_message(self, **kwargs):
        await asyncio.sleep(0)
        self.sent.append(kwargs)


def test_due_reminder_fires_exactly_once(linked) -> None:
    assignment = linked.add_assignment("Essay", due_in=timedelta(days=1), reminder=ONE_DAY)

    assert asyncio.run(linked.sweeper.run_once()) == 1
    assert linked.get_assignment(assignment.id).reminder.sent_at == linked.clock.now
    assert asyncio.run(linked.sweeper.run_once()) == 0
    linked.clock.advance(minutes=5)
    assert asyncio.run(linked.sweeper.run_once()) == 0

    assert len(linked.bot.sent) == 1
    message = linked.bot.sent[0]
    assert message["chat_id"] == linked.chat_id
    assert "Essay" in message["text"]
    codes = [button.callback_data for row in message["reply_markup"].inline_keyboard for button in row]
    assert codes == [f"view_{assignment.id}", f"complete_{assignment.id}"]


def test_already_sent_reminder_is_never_resent(linked) -> None:
    sent = Reminder(enabled=True, preset=ReminderPreset.ONE_DAY, sent_at=linked.clock.now - timedelta(hours=1))
    linked.add_assignment(due_in=timedelta(days=1), reminder=sent)

    assert asyncio.run(linked.sweeper.run_once()) == 0
    assert asyncio.run(linked.sweeper.run_once()) == 0
    assert linked.bot.sent == []


def test_window_is_half_an_interval_each_side(linked) -> None:
    inside_late = linked.add_assignment("late edge", due_in=timedelta(days=1, minutes=7, seconds=30), reminder=ONE_DAY)
    inside_early = linked.add_assignment("early edge", due_in=timedelta(days=1, minutes=-7, seconds=-30), reminder=ONE_DAY)
    outside = linked.add_assignment("too late", due_in=timedelta(days=1, minutes=8), reminder=ONE_DAY)
    too_early = linked.add_assignment("too early", due_in=timedelta(days=1, minutes=-8), reminder=ONE_DAY)

    assert asyncio.run(linked.sweeper.run_once()) == 2

    assert linked.get_assignment(inside_late.id).reminder.sent_at is not None
    assert linked.get_assignment(inside_early.id).reminder.sent_at is not None
    assert linked.get_assignment(outside.id).reminder.sent_at is None
    assert linked.get_assignment(too_early.id).reminder.sent_at is None


def test_completed_and_disabled_are_skipped(linked) -> None:
    linked.add_assignment(due_in=timedelta(days=1), reminder=ONE_DAY, status=Status.COMPLETED)
    linked.add_assignment(due_in=timedelta(days=1), reminder=Reminder(enabled=False, preset=ReminderPreset.ONE_DAY))
    linked.add_assignment(due_in=timedelta(days=1))

    assert asyncio.run(linked.sweeper.run_once()) == 0
    assert linked.bot.sent == []


def test_custom_minutes_reminder_fires(linked) -> None:
    custom = Reminder(enabled=True, preset=ReminderPreset.CUSTOM, custom_minutes=90)
    linked.add_assignment(due_in=timedelta(minutes=90), reminder=custom)
    inert = Reminder(enabled=True, preset=ReminderPreset.CUSTOM, custom_minutes=0)
    linked.add_assignment(due_in=timedelta(minutes=0), reminder=inert)

    assert asyncio.run(linked.sweeper.run_once()) == 1


def test_failed_send_leaves_reminder_unsent(linked) -> None:
    assignment = linked.add_assignment(due_in=timedelta(days=1), reminder=ONE_DAY)
    linked.bot.fail_send = True

    assert asyncio.run(linked.sweeper.run_once()) == 0
    assert linked.get_assignment(assignment.id).reminder.sent_at is None

    linked.bot.fail_send = False
    linked.clock.advance(minutes=5)
    assert asyncio.run(linked.sweeper.run_once()) == 1


def test_reminders_go_to_each_linked_chat(harness) -> None:
    harness.link(chat_id=100, account_id="uid-alice")
    harness.link(chat_id=200, account_id="uid-bob")
    harness.add_assignment("Alice essay", due_in=timedelta(days=1), reminder=ONE_DAY)
    asyncio.run(
        harness.repository.create_assignment(
            "uid-bob",
            title="Bob lab",
            subject_id="subj",
            due_date=harness.clock.now + timedelta(days=1),
            reminder=ONE_DAY,
        )
    )

    assert asyncio.run(harness.sweeper.run_once()) == 2
    by_chat = {message["chat_id"]: message["text"] for message in harness.bot.sent}
    assert "Alice essay" in by_chat[100]
    assert "Bob lab" in by_chat[200]


def test_overlapping_sweeps_can_send_twice(linked) -> None:
    # Delivery happens before sent_at is written, so concurrent sweeps race.
    linked.add_assignment(due_in=timedelta(days=1), reminder=ONE_DAY)
    bot = YieldingBot()
    sweeper = ReminderSweeper(
        links=linked.links,
        repository=linked.repository,
        notifier=Notifier(bot),
        tz=linked.clock.now.tzinfo,
        now_provider=linked.clock,
    )

    async def _run_both():
        return await asyncio.gather(sweeper.run_once(), sweeper.run_once())

    assert asyncio.run(_run_both()) == [1, 1]
    assert len(bot.sent) == 2
    assert asyncio.run(sweeper.run_once()) == 0


def test_sweep_scheduler_registers_interval_job(linked) -> None:
    scheduler = SweepScheduler(linked.sweeper)

    async def _lifecycle():
        scheduler.start()
        scheduler.start()
        job_ids = scheduler.get_job_ids()
        running = scheduler.running
        scheduler.shutdown()
        return job_ids, running

    job_ids, running = asyncio.run(_lifecycle())
    assert job_ids == [SWEEP_JOB_ID]
    assert running is True
    assert scheduler.running is False


def test_sweep_job_logs_and_swallows_errors() -> None:
    class BrokenSweeper:
        interval_minutes = 15

        async def run_once(self):
            raise RuntimeError("store unavailable")

    scheduler = SweepScheduler(BrokenSweeper())
    asyncio.run(scheduler._run_sweep())
