from __future__ import annotations

from datetime import datetime, timedelta, timezone

from uniassign.core.models import Reminder, ReminderPreset
from uniassign.core.reminder_time import (
    PRESET_MINUTES,
    format_reminder_text,
    is_past_due,
    is_reminder_due,
    trigger_time,
)

DUE = datetime(2026, 5, 20, 23, 59, tzinfo=timezone.utc)


def test_preset_table() -> None:
    assert PRESET_MINUTES == {
        ReminderPreset.ONE_HOUR: 60,
        ReminderPreset.SIX_HOURS: 360,
        ReminderPreset.ONE_DAY: 1440,
        ReminderPreset.THREE_DAYS: 4320,
        ReminderPreset.ONE_WEEK: 10080,
    }


def test_trigger_time_for_named_presets() -> None:
    for preset, minutes in PRESET_MINUTES.items():
        reminder = Reminder(enabled=True, preset=preset)
        assert trigger_time(DUE, reminder) == DUE - timedelta(minutes=minutes)


def test_trigger_time_custom_minutes() -> None:
    reminder = Reminder(enabled=True, preset=ReminderPreset.CUSTOM, custom_minutes=90)
    assert trigger_time(DUE, reminder) == DUE - timedelta(minutes=90)


def test_trigger_time_custom_time_wins_over_minutes() -> None:
    at = datetime(2026, 5, 19, 9, 0, tzinfo=timezone.utc)
    reminder = Reminder(enabled=True, preset=ReminderPreset.CUSTOM, custom_minutes=90, custom_time=at)
    assert trigger_time(DUE, reminder) == at


def test_trigger_time_custom_without_value_is_none() -> None:
    assert trigger_time(DUE, Reminder(enabled=True, preset=ReminderPreset.CUSTOM)) is None
    zero = Reminder(enabled=True, preset=ReminderPreset.CUSTOM, custom_minutes=0)
    assert trigger_time(DUE, zero) is None


def test_is_past_due() -> None:
    now = datetime(2026, 5, 20, 12, 0, tzinfo=timezone.utc)
    assert is_past_due(now - timedelta(seconds=1), now) is True
    assert is_past_due(now, now) is False
    assert is_past_due(now + timedelta(minutes=5), now) is False


def test_is_reminder_due_window_is_inclusive() -> None:
    reminder = Reminder(enabled=True, preset=ReminderPreset.ONE_HOUR)
    trigger = DUE - timedelta(hours=1)
    assert is_reminder_due(reminder, DUE, trigger, trigger + timedelta(minutes=15))
    assert is_reminder_due(reminder, DUE, trigger - timedelta(minutes=15), trigger)
    assert not is_reminder_due(reminder, DUE, trigger + timedelta(seconds=1), trigger + timedelta(minutes=15))


def test_is_reminder_due_skips_disabled_and_sent() -> None:
    trigger = DUE - timedelta(hours=1)
    start, end = trigger - timedelta(minutes=5), trigger + timedelta(minutes=5)
    disabled = Reminder(enabled=False, preset=ReminderPreset.ONE_HOUR)
    sent = Reminder(enabled=True, preset=ReminderPreset.ONE_HOUR, sent_at=trigger)
    assert not is_reminder_due(disabled, DUE, start, end)
    assert not is_reminder_due(sent, DUE, start, end)


def test_format_reminder_text_presets() -> None:
    assert format_reminder_text(DUE, Reminder(enabled=True, preset=ReminderPreset.ONE_HOUR)) == "1 hour before due"
    assert format_reminder_text(DUE, Reminder(enabled=True, preset=ReminderPreset.SIX_HOURS)) == "6 hours before due"
    assert format_reminder_text(DUE, Reminder(enabled=True, preset=ReminderPreset.ONE_DAY)) == "1 day before due"
    assert format_reminder_text(DUE, Reminder(enabled=True, preset=ReminderPreset.ONE_WEEK)) == "7 days before due"


def test_format_reminder_text_custom() -> None:
    minutes = Reminder(enabled=True, preset=ReminderPreset.CUSTOM, custom_minutes=30)
    assert format_reminder_text(DUE, minutes) == "30 minutes before due"
    days = Reminder(enabled=True, preset=ReminderPreset.CUSTOM, custom_minutes=4320)
    assert format_reminder_text(DUE, days) == "3 days before due"
    at = Reminder(
        enabled=True,
        preset=ReminderPreset.CUSTOM,
        custom_time=datetime(2026, 5, 19, 9, 30, tzinfo=timezone.utc),
    )
    assert format_reminder_text(DUE, at, tz=timezone.utc) == "On 2026-05-19 at 09:30"
    assert format_reminder_text(DUE, Reminder(enabled=True, preset=ReminderPreset.CUSTOM)) == "Reminder set"
