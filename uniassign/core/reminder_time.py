"""Reminder trigger computation.

Pure helpers: no clock reads and no I/O. Callers pass ``now`` explicitly
wherever a comparison against the current time is needed.
"""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo

from uniassign.core.models import Reminder, ReminderPreset

PRESET_MINUTES: dict[ReminderPreset, int] = {
    ReminderPreset.ONE_HOUR: 60,
    ReminderPreset.SIX_HOURS: 360,
    ReminderPreset.ONE_DAY: 1440,
    ReminderPreset.THREE_DAYS: 4320,
    ReminderPreset.ONE_WEEK: 10080,
}

PRESET_LABELS: dict[ReminderPreset, str] = {
    ReminderPreset.ONE_HOUR: "1 hour before",
    ReminderPreset.SIX_HOURS: "6 hours before",
    ReminderPreset.ONE_DAY: "1 day before",
    ReminderPreset.THREE_DAYS: "3 days before",
    ReminderPreset.ONE_WEEK: "1 week before",
    ReminderPreset.CUSTOM: "Custom",
}


def trigger_time(due_date: datetime, reminder: Reminder) -> datetime | None:
    if reminder.preset != ReminderPreset.CUSTOM:
        minutes = PRESET_MINUTES.get(reminder.preset)
        if minutes is None:
            return None
        return due_date - timedelta(minutes=minutes)
    if reminder.custom_time is not None:
        return reminder.custom_time
    if reminder.custom_minutes:
        return due_date - timedelta(minutes=reminder.custom_minutes)
    return None


def is_past_due(trigger: datetime, now: datetime) -> bool:
    return trigger < now


def is_reminder_due(
    reminder: Reminder,
    due_date: datetime,
    window_start: datetime,
    window_end: datetime,
) -> bool:
    if not reminder.enabled or reminder.sent_at is not None:
        return False
    trigger = trigger_time(due_date, reminder)
    if trigger is None:
        return False
    return window_start <= trigger <= window_end


def preset_label(preset: ReminderPreset) -> str:
    return PRESET_LABELS[preset]


def format_reminder_text(due_date: datetime, reminder: Reminder, *, tz: tzinfo | None = None) -> str:
    trigger = trigger_time(due_date, reminder)
    if trigger is None:
        return "Reminder set"
    if reminder.preset != ReminderPreset.CUSTOM:
        hours = (due_date - trigger).total_seconds() / 3600
        return f"{_format_time_before_due(hours)} before due"
    if reminder.custom_time is not None:
        local = trigger.astimezone(tz) if tz is not None else trigger
        return f"On {local.strftime('%Y-%m-%d')} at {local.strftime('%H:%M')}"
    if reminder.custom_minutes:
        return f"{_format_time_before_due(reminder.custom_minutes / 60)} before due"
    return "Custom reminder"


def _format_time_before_due(hours: float) -> str:
    if hours < 1:
        minutes = round(hours * 60)
        return f"{minutes} minute{'' if minutes == 1 else 's'}"
    if hours < 24:
        value = int(hours) if float(hours).is_integer() else round(hours, 1)
        return f"{value} hour{'' if value == 1 else 's'}"
    days = round(hours / 24)
    return f"{days} day{'' if days == 1 else 's'}"
