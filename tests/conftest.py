from __future__ import annotations

from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from lembre_ai.ai.contracts import ImageDateExtractor, TextExtractor
from lembre_ai.ai.extraction import ExtractionAdapter
from lembre_ai.api.app import create_app
from lembre_ai.application.conversation import ConversationService
from lembre_ai.application.scheduler import ReminderScheduler
from lembre_ai.config.settings import Settings, get_settings
from lembre_ai.domain.draft import ExtractionResult
from lembre_ai.infra.reminder_store import InMemoryReminderStore
from lembre_ai.infra.session_store import InMemorySessionStore

# 19/10/2026 12:00 UTC (09:00 em São Paulo)
FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
CHAT_ID = "5511999998888"


class RecordingSender:
    """MessageSender que guarda tudo o que foi enviado."""

    def __init__(self, deliver: bool = True) -> None:
        self.deliver = deliver
        self.sent: list[tuple[str, str]] = []

    async def send(self, conversation_id: str, text: str) -> bool:
        self.sent.append((conversation_id, text))
        return self.deliver

    def texts(self) -> list[str]:
        return [text for _, text in self.sent]


class StubTextExtractor(TextExtractor):
    """Extrator de texto com respostas fixas por mensagem."""

    def __init__(self, answers: dict[str, ExtractionResult] | None = None) -> None:
        self.answers = answers or {}
        self.calls: list[str] = []

    async def extract(self, text: str) -> ExtractionResult | None:
        self.calls.append(text)
        return self.answers.get(text)


class StubImageExtractor(ImageDateExtractor):
    def __init__(self, validade: str | None = None) -> None:
        self.validade = validade
        self.calls = 0

    async def extract_date(self, image: bytes) -> str | None:
        self.calls += 1
        return self.validade


@pytest.fixture()
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture()
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def reminder_store() -> InMemoryReminderStore:
    return InMemoryReminderStore()


@pytest.fixture()
def scheduler(reminder_store: InMemoryReminderStore, sender: RecordingSender) -> ReminderScheduler:
    return ReminderScheduler(reminder_store, sender, clock=lambda: FIXED_NOW)


@pytest.fixture()
def text_extractor() -> StubTextExtractor:
    return StubTextExtractor()


@pytest.fixture()
def image_extractor() -> StubImageExtractor:
    return StubImageExtractor()


@pytest.fixture()
def extraction(
    text_extractor: StubTextExtractor, image_extractor: StubImageExtractor
) -> ExtractionAdapter:
    return ExtractionAdapter(text_extractor, image_extractor)


@pytest.fixture()
def service(
    session_store: InMemorySessionStore,
    extraction: ExtractionAdapter,
    scheduler: ReminderScheduler,
    sender: RecordingSender,
) -> ConversationService:
    counter = iter(range(1, 1000))
    return ConversationService(
        session_store,
        extraction,
        scheduler,
        sender,
        id_factory=lambda: f"rem-{next(counter)}",
    )


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, sender: RecordingSender, reminder_store):
    monkeypatch.setenv("WHATSAPP_VERIFY_TOKEN", "test-token")
    monkeypatch.setenv("ADMIN_TOKEN", "admin-secret")
    get_settings.cache_clear()
    app = create_app(Settings(), sender=sender, reminder_store=reminder_store)
    with TestClient(app) as test_client:
        yield test_client
    get_settings.cache_clear()
