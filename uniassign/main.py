from __future__ import annotations

import logging

from aiohttp import web
from telegram import Bot

from uniassign.bot.conversation import ConversationEngine
from uniassign.bot.notifier import Notifier
from uniassign.bot.router import Router
from uniassign.core.date_parse import build_date_parser
from uniassign.core.reminder_sweeper import ReminderSweeper, SweepScheduler
from uniassign.infra.config import Settings, load_settings
from uniassign.infra.logging_config import configure_logging, resolve_level
from uniassign.storage.document_store import DocumentStore
from uniassign.storage.link_store import AccountLinkRegistry
from uniassign.storage.repository import AssignmentRepository
from uniassign.storage.session_store import ChatSessionStore
from uniassign.web.webhook_app import create_webhook_app

LOGGER = logging.getLogger(__name__)


def build_application(settings: Settings, *, bot: Bot | None = None) -> web.Application:
    tz = settings.tz
    documents = DocumentStore(settings.db_path)
    links = AccountLinkRegistry(documents)
    repository = AssignmentRepository(documents)
    sessions = ChatSessionStore(documents, timeout_seconds=settings.session_timeout_seconds)
    conversation = ConversationEngine(
        sessions,
        repository,
        date_parser=build_date_parser(tz),
        tz=tz,
    )
    telegram_bot = bot or Bot(settings.bot_token)
    notifier = Notifier(telegram_bot)
    router = Router(
        links=links,
        repository=repository,
        conversation=conversation,
        notifier=notifier,
        tz=tz,
        list_limit=settings.assignment_list_limit,
    )
    scheduler = SweepScheduler(
        ReminderSweeper(
            links=links,
            repository=repository,
            notifier=notifier,
            tz=tz,
            interval_minutes=settings.reminder_sweep_minutes,
        )
    )

    app = create_webhook_app(
        router,
        path=settings.webhook_path,
        secret=settings.webhook_secret,
        bot=telegram_bot,
    )

    async def _on_startup(_: web.Application) -> None:
        if not settings.dry_run:
            await telegram_bot.initialize()
        if settings.reminders_enabled:
            scheduler.start()
        else:
            LOGGER.info("Reminder sweep disabled via REMINDERS_ENABLED")
        LOGGER.info(
            "Bot started: path=%s timezone=%s dry_run=%s",
            settings.webhook_path,
            settings.timezone_name,
            settings.dry_run,
        )

    async def _on_cleanup(_: web.Application) -> None:
        scheduler.shutdown()
        if not settings.dry_run:
            await telegram_bot.shutdown()
        documents.close()
        LOGGER.info("Bot stopped")

    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)
    return app


def main() -> None:
    try:
        settings = load_settings()
    except RuntimeError as exc:
        configure_logging()
        LOGGER.exception("Startup failed: %s", exc)
        raise SystemExit(str(exc)) from exc
    configure_logging(level=resolve_level(settings.log_level), log_file=settings.log_file)
    app = build_application(settings)
    web.run_app(app, host=settings.webhook_host, port=settings.webhook_port, print=None)


if __name__ == "__main__":
    main()
