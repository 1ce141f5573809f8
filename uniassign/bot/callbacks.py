"""Inline-button action codes.

Callback data travels as short strings such as ``view_<id>`` or
``remind_preset_1d_<id>``. They are parsed once, at the router boundary,
into a CallbackAction; handlers never slice strings themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from uniassign.core.models import ReminderPreset

MAX_CALLBACK_BYTES = 64


class ActionKind(str, Enum):
    VIEW = "view"
    TOGGLE = "toggle"
    COMPLETE = "complete"
    DELETE_CONFIRM = "delete_confirm"
    DELETE_FINAL = "delete_final"
    EDIT_MENU = "edit_menu"
    EDIT_FIELD = "edit_field"
    REMIND_SET = "remind_set"
    REMIND_PRESET = "remind_preset"
    REMIND_DISABLE = "remind_disable"
    REMIND_CUSTOM = "remind_custom"
    LIST_ALL = "list_all"


class EditField(str, Enum):
    TITLE = "title"
    DATE = "date"


@dataclass(frozen=True)
class CallbackAction:
    kind: ActionKind
    assignment_id: str | None = None
    preset: ReminderPreset | None = None
    field: EditField | None = None

    def encode(self) -> str:
        if self.kind == ActionKind.LIST_ALL:
            return ActionKind.LIST_ALL.value
        if not self.assignment_id:
            raise ValueError(f"{self.kind.value} requires an assignment id")
        if self.kind == ActionKind.EDIT_FIELD:
            if self.field is None:
                raise ValueError("edit_field requires a field")
            return f"edit_field_{self.field.value}_{self.assignment_id}"
        if self.kind == ActionKind.REMIND_PRESET:
            if self.preset is None or self.preset == ReminderPreset.CUSTOM:
                raise ValueError("remind_preset requires a named preset")
            return f"remind_preset_{self.preset.value}_{self.assignment_id}"
        return f"{self.kind.value}_{self.assignment_id}"


# Longest prefixes first so that e.g. "delete_confirm_" never falls into a shorter branch.
_ID_PREFIXES: list[tuple[str, ActionKind]] = [
    ("delete_confirm_", ActionKind.DELETE_CONFIRM),
    ("delete_final_", ActionKind.DELETE_FINAL),
    ("remind_disable_", ActionKind.REMIND_DISABLE),
    ("remind_custom_", ActionKind.REMIND_CUSTOM),
    ("remind_set_", ActionKind.REMIND_SET),
    ("edit_menu_", ActionKind.EDIT_MENU),
    ("toggle_", ActionKind.TOGGLE),
    ("complete_", ActionKind.COMPLETE),
    ("view_", ActionKind.VIEW),
]

_EDIT_FIELD_PREFIXES: list[tuple[str, EditField]] = [
    ("edit_field_title_", EditField.TITLE),
    ("edit_field_date_", EditField.DATE),
]

_PRESET_PREFIX = "remind_preset_"


def parse_callback_data(data: str | None) -> CallbackAction | None:
    if not data:
        return None
    value = data.strip()
    if value == ActionKind.LIST_ALL.value:
        return CallbackAction(kind=ActionKind.LIST_ALL)
    for prefix, edit_field in _EDIT_FIELD_PREFIXES:
        if value.startswith(prefix):
            assignment_id = value[len(prefix) :]
            if not assignment_id:
                return None
            return CallbackAction(kind=ActionKind.EDIT_FIELD, assignment_id=assignment_id, field=edit_field)
    if value.startswith(_PRESET_PREFIX):
        preset_raw, sep, assignment_id = value[len(_PRESET_PREFIX) :].partition("_")
        if not sep or not assignment_id:
            return None
        try:
            preset = ReminderPreset(preset_raw)
        except ValueError:
            return None
        if preset == ReminderPreset.CUSTOM:
            return None
        return CallbackAction(kind=ActionKind.REMIND_PRESET, assignment_id=assignment_id, preset=preset)
    for prefix, kind in _ID_PREFIXES:
        if value.startswith(prefix):
            assignment_id = value[len(prefix) :]
            if not assignment_id:
                return None
            return CallbackAction(kind=kind, assignment_id=assignment_id)
    return None
