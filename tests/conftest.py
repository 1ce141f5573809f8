import asyncio
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from itertools import count
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from telegram.error import TelegramError  # noqa: E402

from uniassign.bot.conversation import ConversationEngine  # noqa: E402
from uniassign.bot.notifier import Notifier  # noqa: E402
from uniassign.bot.router import InboundEvent, Router  # noqa: E402
from uniassign.core.models import parse_datetime  # noqa: E402
from uniassign.core.reminder_sweeper import ReminderSweeper  # noqa: E402
from uniassign.storage.document_store import DocumentStore  # noqa: E402
from uniassign.storage.link_store import AccountLinkRegistry  # noqa: E402
from uniassign.storage.repository import AssignmentRepository  # noqa: E402
from uniassign.storage.session_store import ChatSessionStore  # noqa: E402

NOW = datetime(2026, 5, 18, 12, 0, tzinfo=timezone.utc)
CHAT_ID = 100
USER_ID = 500
ACCOUNT_ID = "uid-alice"


class FakeBot:
    """Records outbound calls; flip ``fail_send`` / ``edit_error`` to simulate Telegram failures."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.edited: list[dict] = []
        self.answered: list[str] = []
        self.fail_send = False
        self.edit_error: Exception | None = None

    async def send_message(self, **kwargs):
        if self.fail_send:
            raise TelegramError("network down")
        self.sent.append(kwargs)

    async def edit_message_text(self, **kwargs):
        if self.edit_error is not None:
            raise self.edit_error
        self.edited.append(kwargs)

    async def answer_callback_query(self, **kwargs):
        self.answered.append(kwargs["callback_query_id"])

    @property
    def outbound(self) -> list[dict]:
        return self.sent + self.edited


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def fixed_date_parser(text: str, now: datetime) -> datetime | None:
    value = text.strip().lower()
    if value == "tomorrow":
        return (now + timedelta(days=1)).replace(hour=23, minute=59, second=0, microsecond=0)
    if value == "next week":
        return now + timedelta(days=7)
    return parse_datetime(text.strip())


@dataclass
class BotHarness:
    documents: DocumentStore
    links: AccountLinkRegistry
    repository: AssignmentRepository
    sessions: ChatSessionStore
    conversation: ConversationEngine
    notifier: Notifier
    router: Router
    sweeper: ReminderSweeper
    bot: FakeBot
    clock: Clock
    account_id: str = ACCOUNT_ID
    chat_id: int = CHAT_ID

    def add_assignment(self, title: str = "Essay", *, due_in: timedelta = timedelta(days=5), **fields):
        fields.setdefault("subject_id", "subj")
        return asyncio.run(
            self.repository.create_assignment(
                self.account_id,
                title=title,
                due_date=self.clock.now + due_in,
                **fields,
            )
        )

    def get_assignment(self, assignment_id: str):
        return asyncio.run(self.repository.get_assignment(self.account_id, assignment_id))

    def session(self, chat_id: int = CHAT_ID):
        session, _ = asyncio.run(self.sessions.load(chat_id, now=self.clock.now))
        return session

    def send_text(self, text: str, *, chat_id: int = CHAT_ID):
        event = InboundEvent(kind="message", chat_id=chat_id, user_id=USER_ID, text=text, message_id=1)
        return asyncio.run(self.router.handle_event(event))

    def press(self, data: str, *, chat_id: int = CHAT_ID, query_id: str = "q1"):
        event = InboundEvent(
            kind="callback",
            chat_id=chat_id,
            user_id=USER_ID,
            callback_data=data,
            callback_query_id=query_id,
            message_id=42,
        )
        return asyncio.run(self.router.handle_event(event))

    def link(self, *, chat_id: int = CHAT_ID, account_id: str = ACCOUNT_ID) -> None:
        asyncio.run(self.links.link_account(account_id, chat_id, USER_ID))

    def snapshot(self) -> list:
        collections = [
            "account_links",
            "chat_sessions",
            f"users/{ACCOUNT_ID}/subjects",
            f"users/{ACCOUNT_ID}/assignments",
        ]
        return [(collection, self.documents.list(collection)) for collection in collections]


def build_harness(tmp_path: Path, *, timeout_seconds: int = 0, interval_minutes: int = 15) -> BotHarness:
    clock = Clock(NOW)
    ids = count(1)
    documents = DocumentStore(tmp_path / "bot.db")
    links = AccountLinkRegistry(documents, now_provider=clock)
    repository = AssignmentRepository(documents, now_provider=clock, id_factory=lambda: f"id{next(ids)}")
    sessions = ChatSessionStore(documents, timeout_seconds=timeout_seconds)
    conversation = ConversationEngine(
        sessions,
        repository,
        date_parser=fixed_date_parser,
        tz=timezone.utc,
        now_provider=clock,
    )
    bot = FakeBot()
    notifier = Notifier(bot)
    router = Router(
        links=links,
        repository=repository,
        conversation=conversation,
        notifier=notifier,
        tz=timezone.utc,
        now_provider=clock,
    )
    sweeper = ReminderSweeper(
        links=links,
        repository=repository,
        notifier=notifier,
        tz=timezone.utc,
        interval_minutes=interval_minutes,
        now_provider=clock,
    )
    return BotHarness(
        documents=documents,
        links=links,
        repository=repository,
        sessions=sessions,
        conversation=conversation,
        notifier=notifier,
        router=router,
        sweeper=sweeper,
        bot=bot,
        clock=clock,
    )


@pytest.fixture
def harness(tmp_path):
    built = build_harness(tmp_path)
    yield built
    built.documents.close()


@pytest.fixture
def linked(harness):
    harness.link()
    return harness


@pytest.fixture
def harness_factory(tmp_path):
    built: list[BotHarness] = []

    def _build(**kwargs) -> BotHarness:
        item = build_harness(tmp_path / f"harness{len(built)}", **kwargs)
        built.append(item)
        return item

    yield _build
    for item in built:
        item.documents.close()
