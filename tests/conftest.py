"""
Shared fixtures: isolated settings, a temporary database and fake extractors.
"""
import asyncio
from types import SimpleNamespace

import pytest

from core.config import Settings, reset_settings
from core.exceptions import ExtractionError
from core.schema import ReceiptRecord, SourceFile
from services.session import reset_session

ENV_VARS = [
    "OPENAI_API_KEY", "OPENAI_BASE_URL", "OPENAI_MODEL", "OPENAI_TIMEOUT", "PORT", "LOG_LEVEL",
    "AUTO_START", "EXTRACTION_TIMEOUT", "NOTIFICATION_TTL_SECONDS", "DATABASE_PATH", "STORAGE_KEY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Every test starts from defaults with its own database file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "receipts.db"))
    # Keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)
    reset_settings()
    reset_session()
    yield
    reset_settings()
    reset_session()


@pytest.fixture
def settings(tmp_path):
    return Settings(DATABASE_PATH=str(tmp_path / "receipts.db"))


def make_file(name: str = "scan.pdf", media_type: str = "application/pdf", content: bytes = b"%PDF-1.4") -> SourceFile:
    return SourceFile(filename=name, media_type=media_type, content=content)


def make_record(merchant: str = "Acme", total: float = 10.0, **overrides) -> ReceiptRecord:
    fields = {"date": "2024-03-01", "merchant": merchant, "description": "coffee", "total": total}
    fields.update(overrides)
    return ReceiptRecord(**fields)


class FakeExtractor:
    """
    Stand-in for ExtractionClient.

    Files whose name starts with "bad" fail; every other file becomes a receipt
    with the file name as merchant. Records how many calls overlap.
    """

    def __init__(self, delay: float = 0.0, queue=None):
        self.delay = delay
        self.queue = queue
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.processing_counts = []
        self.api_key = "test-key"

    @property
    def has_credential(self):
        return bool(self.api_key)

    def set_api_key(self, api_key):
        self.api_key = api_key or None

    async def extract(self, source_file):
        self.calls.append(source_file.filename)
        if self.queue is not None:
            self.processing_counts.append(self.queue.processing_count())
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if source_file.filename.startswith("bad"):
                raise ExtractionError(f"Could not read {source_file.filename}")
            return ReceiptRecord(
                date="2024-03-01",
                merchant=source_file.filename.rsplit(".", 1)[0],
                description="test",
                total=12.4,
            )
        finally:
            self.in_flight -= 1


class HugeTotalExtractor(FakeExtractor):
    """Returns a receipt whose total has more digits than Decimal's default precision."""

    async def extract(self, source_file):
        record = await super().extract(source_file)
        return record.model_copy(update={"total": 1e30})


def completion(content):
    """Chat completion shaped like the OpenAI SDK response."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5),
    )


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return completion(self.content)


class FakeOpenAI:
    def __init__(self, content=None, error=None):
        self.chat = SimpleNamespace(completions=FakeCompletions(content, error))
