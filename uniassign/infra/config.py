from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("data/uniassign.db")
DEFAULT_TIMEZONE = "UTC"
DEFAULT_WEBHOOK_HOST = "0.0.0.0"
DEFAULT_WEBHOOK_PORT = 8080
DEFAULT_WEBHOOK_PATH = "/telegram/webhook"
DRY_RUN_TOKEN = "000000:DRY_RUN_TOKEN"


@dataclass(frozen=True)
class Settings:
    bot_token: str
    dry_run: bool
    db_path: Path
    timezone_name: str
    webhook_host: str
    webhook_port: int
    webhook_path: str
    webhook_secret: str | None
    reminder_sweep_minutes: int
    reminders_enabled: bool
    session_timeout_seconds: int
    assignment_list_limit: int
    log_level: str
    log_file: str | None

    @property
    def tz(self) -> tzinfo:
        return ZoneInfo(self.timezone_name)


def load_settings(env: dict[str, str] | None = None) -> Settings:
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    dry_run = _parse_optional_bool(env.get("DRY_RUN")) is True
    token = (env.get("BOT_TOKEN") or "").strip()
    if not token:
        if not dry_run:
            raise RuntimeError("BOT_TOKEN is not set")
        token = DRY_RUN_TOKEN

    db_path = Path(env.get("BOT_DB_PATH") or DEFAULT_DB_PATH)
    timezone_name = _parse_timezone(env.get("BOT_TIMEZONE"))
    webhook_path = (env.get("WEBHOOK_PATH") or DEFAULT_WEBHOOK_PATH).strip()
    if not webhook_path.startswith("/"):
        webhook_path = f"/{webhook_path}"
    reminders_enabled = _parse_optional_bool(env.get("REMINDERS_ENABLED"))
    if reminders_enabled is None:
        reminders_enabled = True

    return Settings(
        bot_token=token,
        dry_run=dry_run,
        db_path=db_path,
        timezone_name=timezone_name,
        webhook_host=(env.get("WEBHOOK_HOST") or DEFAULT_WEBHOOK_HOST).strip(),
        webhook_port=_parse_int_with_default(env, "WEBHOOK_PORT", DEFAULT_WEBHOOK_PORT),
        webhook_path=webhook_path,
        webhook_secret=(env.get("WEBHOOK_SECRET") or "").strip() or None,
        reminder_sweep_minutes=max(1, _parse_int_with_default(env, "REMINDER_SWEEP_MINUTES", 15)),
        reminders_enabled=reminders_enabled,
        session_timeout_seconds=max(0, _parse_int_with_default(env, "SESSION_TIMEOUT_SECONDS", 0)),
        assignment_list_limit=max(1, _parse_int_with_default(env, "ASSIGNMENT_LIST_LIMIT", 10)),
        log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
        log_file=(env.get("LOG_FILE") or "").strip() or None,
    )


def _parse_timezone(value: str | None) -> str:
    name = (value or "").strip() or DEFAULT_TIMEZONE
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        LOGGER.warning("Unknown BOT_TIMEZONE=%s, falling back to %s", name, DEFAULT_TIMEZONE)
        return DEFAULT_TIMEZONE
    return name


def _parse_optional_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    trimmed = value.strip().lower()
    if not trimmed:
        return None
    return trimmed in {"1", "true", "yes", "on"}


def _parse_int_with_default(env: dict[str, str], name: str, default: int) -> int:
    value = env.get(name)
    if value is None:
        return default
    trimmed = value.strip()
    if not trimmed:
        return default
    try:
        return int(trimmed)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {trimmed!r}") from exc
