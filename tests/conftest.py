from __future__ import annotations

import time
from email.message import EmailMessage
from pathlib import Path
from typing import Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from contact_api.api import create_app
from contact_api.config import (
    EmailSettings,
    Environment,
    LoggingSettings,
    Settings,
    StoreSettings,
)
from contact_api.notifier import NotificationResult
from contact_api.pipelines.ingest import SubmissionWorkflow
from contact_api.schemas import Submission
from contact_api.store import JsonFileSubmissionStore

ADA = {"name": "Ada", "email": "ada@x.com", "service": "Editing", "message": "Hi"}


def make_record(record_id: int, **fields) -> Submission:
    data = {**ADA, "timestamp": "2025-01-01T12:00:00.000Z", "id": record_id}
    data.update(fields)
    return Submission(**data)


class RecordingNotifier:
    """Notifier double that records calls and returns a canned result."""

    def __init__(self, result: NotificationResult | None = None, exc: Exception | None = None) -> None:
        self.result = result or NotificationResult.sent()
        self.exc = exc
        self.calls: list[Submission] = []

    async def notify(self, record: Submission) -> NotificationResult:
        self.calls.append(record)
        if self.exc is not None:
            raise self.exc
        return self.result


class FakeTransport:
    """In-memory mail transport."""

    def __init__(self, exc: Exception | None = None, delay: float = 0.0) -> None:
        self.exc = exc
        self.delay = delay
        self.sent: list[EmailMessage] = []
        self.checks = 0

    def _maybe_fail(self) -> None:
        if self.delay:
            time.sleep(self.delay)
        if self.exc is not None:
            raise self.exc

    def send(self, message: EmailMessage) -> None:
        self._maybe_fail()
        self.sent.append(message)

    def check(self) -> None:
        self.checks += 1
        self._maybe_fail()


def disabled_email() -> EmailSettings:
    return EmailSettings(user=None, password=None, verify_on_startup=False)


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "contact-submissions.json"


@pytest.fixture
def json_store(store_path: Path) -> JsonFileSubmissionStore:
    return JsonFileSubmissionStore(store_path)


@pytest_asyncio.fixture
async def ready_store(json_store: JsonFileSubmissionStore) -> JsonFileSubmissionStore:
    await json_store.init()
    return json_store


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def workflow(json_store: JsonFileSubmissionStore, notifier: RecordingNotifier) -> SubmissionWorkflow:
    return SubmissionWorkflow(json_store, notifier)


@pytest.fixture
def test_settings(store_path: Path) -> Settings:
    return Settings(
        environment=Environment.TESTING,
        store=StoreSettings(path=str(store_path)),
        email=disabled_email(),
        logging=LoggingSettings(level="DEBUG", format="text"),
    )


@pytest.fixture
def client(test_settings: Settings, workflow: SubmissionWorkflow) -> Generator[TestClient, None, None]:
    app = create_app(test_settings, workflow=workflow)
    with TestClient(app) as c:
        yield c
