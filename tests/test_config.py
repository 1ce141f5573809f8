from __future__ import annotations

from pathlib import Path

import pytest

from uniassign.infra.config import DRY_RUN_TOKEN, load_settings


def test_defaults() -> None:
    settings = load_settings({"BOT_TOKEN": "123:abc"})

    assert settings.bot_token == "123:abc"
    assert settings.dry_run is False
    assert settings.db_path == Path("data/uniassign.db")
    assert settings.timezone_name == "UTC"
    assert settings.webhook_host == "0.0.0.0"
    assert settings.webhook_port == 8080
    assert settings.webhook_path == "/telegram/webhook"
    assert settings.webhook_secret is None
    assert settings.reminder_sweep_minutes == 15
    assert settings.reminders_enabled is True
    assert settings.session_timeout_seconds == 0
    assert settings.assignment_list_limit == 10
    assert settings.log_file is None


def test_missing_token_fails_unless_dry_run() -> None:
    with pytest.raises(RuntimeError):
        load_settings({})
    assert load_settings({"DRY_RUN": "1"}).bot_token == DRY_RUN_TOKEN


def test_overrides() -> None:
    settings = load_settings(
        {
            "BOT_TOKEN": "t",
            "BOT_DB_PATH": "/tmp/x.db",
            "BOT_TIMEZONE": "Europe/Berlin",
            "WEBHOOK_PORT": "9000",
            "WEBHOOK_PATH": "hook",
            "WEBHOOK_SECRET": "s3cret",
            "REMINDER_SWEEP_MINUTES": "5",
            "REMINDERS_ENABLED": "off",
            "SESSION_TIMEOUT_SECONDS": "600",
            "ASSIGNMENT_LIST_LIMIT": "25",
            "LOG_LEVEL": "debug",
        }
    )

    assert settings.db_path == Path("/tmp/x.db")
    assert str(settings.tz) == "Europe/Berlin"
    assert settings.webhook_port == 9000
    assert settings.webhook_path == "/hook"
    assert settings.webhook_secret == "s3cret"
    assert settings.reminder_sweep_minutes == 5
    assert settings.reminders_enabled is False
    assert settings.session_timeout_seconds == 600
    assert settings.assignment_list_limit == 25
    assert settings.log_level == "DEBUG"


def test_unknown_timezone_falls_back_to_utc() -> None:
    assert load_settings({"BOT_TOKEN": "t", "BOT_TIMEZONE": "Mars/Olympus"}).timezone_name == "UTC"


def test_sweep_interval_is_at_least_one_minute() -> None:
    assert load_settings({"BOT_TOKEN": "t", "REMINDER_SWEEP_MINUTES": "0"}).reminder_sweep_minutes == 1


def test_non_numeric_integer_names_the_variable() -> None:
    with pytest.raises(RuntimeError, match="WEBHOOK_PORT"):
        load_settings({"BOT_TOKEN": "t", "WEBHOOK_PORT": "abc"})
    with pytest.raises(RuntimeError, match="REMINDER_SWEEP_MINUTES"):
        load_settings({"BOT_TOKEN": "t", "REMINDER_SWEEP_MINUTES": "soon"})


def test_main_exits_cleanly_on_bad_settings(monkeypatch) -> None:
    from uniassign import main as entrypoint

    monkeypatch.setattr(entrypoint, "load_settings", lambda: load_settings({"BOT_TOKEN": "t", "WEBHOOK_PORT": "abc"}))
    monkeypatch.setattr(entrypoint, "configure_logging", lambda **kwargs: None)
    with pytest.raises(SystemExit, match="WEBHOOK_PORT"):
        entrypoint.main()
