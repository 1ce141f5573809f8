"""Message texts and inline keyboards shown by the bot. All texts are HTML."""

from __future__ import annotations

from datetime import datetime, tzinfo
from html import escape

from uniassign.bot.callbacks import ActionKind, CallbackAction, EditField
from uniassign.bot.keyboards import InlineButton, InlineKeyboard, grid, single_column
from uniassign.core.models import Assignment, ReminderPreset, Status, Subject
from uniassign.core.reminder_time import PRESET_MINUTES, format_reminder_text, is_past_due, preset_label, trigger_time

STATUS_EMOJI = {
    Status.COMPLETED: "✅",
    Status.IN_PROGRESS: "🔄",
    Status.PENDING: "⏳",
}

WELCOME_TEXT = (
    "👋 <b>Welcome to UniAssignment Bot!</b>\n\n"
    "To link your account, please use the link from your web app Settings page.\n\n"
    "Commands:\n"
    "/assignments - View your assignments\n"
    "/help - Get help"
)

LINKED_TEXT = (
    "✅ <b>Account Linked Successfully!</b>\n\n"
    "You will now receive notifications for your upcoming assignments.\n\n"
    "Use /assignments to view your current tasks."
)

NOT_LINKED_TEXT = (
    "❌ Your account is not linked yet.\n\n"
    "Please link your account from the web app Settings page first."
)

HELP_TEXT = (
    "📖 <b>UniAssignment Bot Help</b>\n\n"
    "This bot helps you track your university assignments.\n\n"
    "<b>Commands:</b>\n"
    "/assignments - View your upcoming assignments\n"
    "/add - Add a new assignment\n"
    "/remind - Set a reminder for an assignment\n"
    "/cancel - Cancel the current action\n"
    "/help - Show this help message\n\n"
    "You will automatically receive reminders for assignments you set them on."
)

DATE_HINT = "Examples: <i>tomorrow 18:00</i>, <i>next friday</i>, <i>2026-05-20 23:59</i>"
REMINDER_HINT = (
    "Send how long before the deadline to remind you, e.g. <i>2 hours</i>, <i>3 days</i>, <i>1 week</i>, "
    "or an exact date and time such as <i>2026-05-19 09:00</i>."
)


def format_due(value: datetime, tz: tzinfo) -> str:
    return value.astimezone(tz).strftime("%Y-%m-%d %H:%M")


def assignment_list_text(assignments: list[Assignment], tz: tzinfo) -> str:
    if not assignments:
        return "📚 You have no assignments yet!"
    lines = ["📚 <b>Your Assignments:</b>", ""]
    for index, item in enumerate(assignments, start=1):
        lines.append(f"{index}. {STATUS_EMOJI[item.status]} <b>{escape(item.title)}</b>")
        lines.append(f"   📅 Due: {format_due(item.due_date, tz)}")
    return "\n".join(lines)


def assignment_list_keyboard(assignments: list[Assignment]) -> InlineKeyboard | None:
    if not assignments:
        return None
    return single_column(
        [
            InlineButton(
                f"{STATUS_EMOJI[item.status]} {item.title}",
                CallbackAction(kind=ActionKind.VIEW, assignment_id=item.id),
            )
            for item in assignments
        ]
    )


def assignment_detail_text(
    assignment: Assignment,
    subject: Subject | None,
    *,
    tz: tzinfo,
    now: datetime,
) -> str:
    subject_name = escape(subject.name) if subject else "—"
    lines = [
        f"{STATUS_EMOJI[assignment.status]} <b>{escape(assignment.title)}</b>",
        "",
        f"📘 Subject: {subject_name}",
        f"📅 Due: {format_due(assignment.due_date, tz)}",
        f"📌 Status: {assignment.status.value}",
        f"⚡ Priority: {assignment.priority.value}",
    ]
    if assignment.exam_type:
        lines.append(f"📝 Exam: {assignment.exam_type.capitalize()}")
    if assignment.description:
        lines.append(f"🗒 {escape(assignment.description)}")
    lines.append(f"🔔 Reminder: {reminder_summary(assignment, tz=tz, now=now)}")
    return "\n".join(lines)


def reminder_summary(assignment: Assignment, *, tz: tzinfo, now: datetime) -> str:
    reminder = assignment.reminder
    if reminder is None or not reminder.enabled:
        return "off"
    label = format_reminder_text(assignment.due_date, reminder, tz=tz)
    if reminder.sent_at is not None:
        return f"{label} (sent)"
    trigger = trigger_time(assignment.due_date, reminder)
    if trigger is not None and is_past_due(trigger, now):
        return f"{label} ⚠️ past due"
    return label


def assignment_detail_keyboard(assignment: Assignment) -> InlineKeyboard:
    toggle_label = "↩️ Mark pending" if assignment.status == Status.COMPLETED else "✅ Mark done"
    assignment_id = assignment.id
    return InlineKeyboard(
        rows=[
            [
                InlineButton(toggle_label, CallbackAction(kind=ActionKind.TOGGLE, assignment_id=assignment_id)),
                InlineButton("✏️ Edit", CallbackAction(kind=ActionKind.EDIT_MENU, assignment_id=assignment_id)),
            ],
            [
                InlineButton("🔔 Reminder", CallbackAction(kind=ActionKind.REMIND_SET, assignment_id=assignment_id)),
                InlineButton(
                    "🗑 Delete",
                    CallbackAction(kind=ActionKind.DELETE_CONFIRM, assignment_id=assignment_id),
                ),
            ],
            [InlineButton("⬅️ Back", CallbackAction(kind=ActionKind.LIST_ALL))],
        ]
    )


def delete_confirm_text(assignment: Assignment) -> str:
    return f"🗑 Delete <b>{escape(assignment.title)}</b>? This cannot be undone."


def delete_confirm_keyboard(assignment: Assignment) -> InlineKeyboard:
    return InlineKeyboard(
        rows=[
            [
                InlineButton(
                    "Yes, delete",
                    CallbackAction(kind=ActionKind.DELETE_FINAL, assignment_id=assignment.id),
                ),
                InlineButton("Cancel", CallbackAction(kind=ActionKind.VIEW, assignment_id=assignment.id)),
            ]
        ]
    )


def edit_menu_text(assignment: Assignment) -> str:
    return f"✏️ What do you want to change in <b>{escape(assignment.title)}</b>?"


def edit_menu_keyboard(assignment: Assignment) -> InlineKeyboard:
    return InlineKeyboard(
        rows=[
            [
                InlineButton(
                    "Title",
                    CallbackAction(kind=ActionKind.EDIT_FIELD, assignment_id=assignment.id, field=EditField.TITLE),
                ),
                InlineButton(
                    "Due date",
                    CallbackAction(kind=ActionKind.EDIT_FIELD, assignment_id=assignment.id, field=EditField.DATE),
                ),
            ],
            [InlineButton("⬅️ Back", CallbackAction(kind=ActionKind.VIEW, assignment_id=assignment.id))],
        ]
    )


def reminder_menu_text(assignment: Assignment, *, tz: tzinfo, now: datetime) -> str:
    return (
        f"🔔 Reminder for <b>{escape(assignment.title)}</b>\n"
        f"📅 Due: {format_due(assignment.due_date, tz)}\n"
        f"Current: {reminder_summary(assignment, tz=tz, now=now)}\n\n"
        "When should I remind you?"
    )


def reminder_menu_keyboard(assignment: Assignment) -> InlineKeyboard:
    buttons = [
        InlineButton(
            preset_label(preset),
            CallbackAction(kind=ActionKind.REMIND_PRESET, assignment_id=assignment.id, preset=preset),
        )
        for preset in PRESET_MINUTES
    ]
    buttons.append(
        InlineButton(
            f"✍️ {preset_label(ReminderPreset.CUSTOM)}",
            CallbackAction(kind=ActionKind.REMIND_CUSTOM, assignment_id=assignment.id),
        )
    )
    keyboard = grid(buttons, columns=2)
    rows = list(keyboard.rows)
    if assignment.reminder is not None and assignment.reminder.enabled:
        rows.append(
            [InlineButton("🔕 Disable", CallbackAction(kind=ActionKind.REMIND_DISABLE, assignment_id=assignment.id))]
        )
    rows.append([InlineButton("⬅️ Back", CallbackAction(kind=ActionKind.VIEW, assignment_id=assignment.id))])
    return InlineKeyboard(rows=rows)


def remind_list_text(assignments: list[Assignment]) -> str:
    if not assignments:
        return "🎉 No pending assignments to set reminders for."
    return "🔔 <b>Choose an assignment to set a reminder:</b>"


def remind_list_keyboard(assignments: list[Assignment]) -> InlineKeyboard | None:
    if not assignments:
        return None
    return single_column(
        [
            InlineButton(
                f"🔔 {item.title}",
                CallbackAction(kind=ActionKind.REMIND_SET, assignment_id=item.id),
            )
            for item in assignments
        ]
    )


def subject_prompt_text(subjects: list[Subject]) -> str:
    if not subjects:
        return "📘 Which subject is it for? Send a name and I will create it."
    names = ", ".join(f"<code>{escape(subject.name)}</code>" for subject in subjects)
    return f"📘 Which subject is it for?\nExisting subjects: {names}\nSend a new name to create one."


def reminder_notification_text(
    assignment: Assignment,
    subject: Subject | None,
    *,
    tz: tzinfo,
    now: datetime,
) -> str:
    remaining = assignment.due_date - now
    hours_left = max(0, round(remaining.total_seconds() / 3600))
    lines = [
        "⏰ <b>Reminder</b>",
        "",
        f"📌 <b>{escape(assignment.title)}</b>",
    ]
    if subject is not None:
        lines.append(f"📘 {escape(subject.name)}")
    lines.append(f"📅 Due: {format_due(assignment.due_date, tz)}")
    if remaining.total_seconds() > 0:
        lines.append(f"⏳ {hours_left} hours left")
    else:
        lines.append("⚠️ The deadline has passed")
    return "\n".join(lines)


def reminder_notification_keyboard(assignment: Assignment) -> InlineKeyboard:
    return InlineKeyboard(
        rows=[
            [
                InlineButton("📄 Open", CallbackAction(kind=ActionKind.VIEW, assignment_id=assignment.id)),
                InlineButton("✅ Mark done", CallbackAction(kind=ActionKind.COMPLETE, assignment_id=assignment.id)),
            ]
        ]
    )
