import os
import pathlib
import sys
import tempfile
import threading
import time
from collections.abc import Sequence

import pytest

# Keep log files created at import time of ``triage.main`` out of the checkout.
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="triage-logs-"))

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from triage.classifier.schemas import Decision, HistoryEntry
from triage.conversations.errors import ConversationNotFoundError
from triage.conversations.models import ConversationStatus, Department
from triage.conversations.repository import (
    InMemoryConversationRepository,
    SqlAlchemyConversationRepository,
)
from triage.conversations.service import TriageService
from triage.core.db import get_engine, get_sessionmaker, init_db


def reply(message: str = "How can I help you?") -> Decision:
    return Decision(should_transfer=False, department=None, message=message)


def transfer(
    department: Department,
    message: str = "Transferring you now",
    summary: str | None = "Customer details collected",
) -> Decision:
    return Decision(
        should_transfer=True, department=department, message=message, summary=summary
    )


class ScriptedClassifier:
    """Classifier double returning queued decisions, then a default reply."""

    def __init__(self, *decisions: Decision, delay: float = 0.0) -> None:
        self._decisions = list(decisions)
        self._delay = delay
        self._lock = threading.Lock()
        self.calls: list[tuple[list[HistoryEntry], str]] = []

    def queue(self, *decisions: Decision) -> None:
        with self._lock:
            self._decisions.extend(decisions)

    def classify(self, history: Sequence[HistoryEntry], new_message: str) -> Decision:
        with self._lock:
            self.calls.append((list(history), new_message))
            decision = self._decisions.pop(0) if self._decisions else reply()
        if self._delay:
            time.sleep(self._delay)
        return decision


class ClosableConversationRepository(InMemoryConversationRepository):
    """In-memory store that lets tests force a status, as an agent console would."""

    def set_status(self, conversation_id, status: ConversationStatus) -> None:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise ConversationNotFoundError(conversation_id)
            conversation.status = status


@pytest.fixture
def classifier() -> ScriptedClassifier:
    return ScriptedClassifier()


@pytest.fixture
def sql_repository(tmp_path) -> SqlAlchemyConversationRepository:
    engine = get_engine(f"sqlite+pysqlite:///{tmp_path / 'triage.db'}")
    init_db(engine)
    yield SqlAlchemyConversationRepository(get_sessionmaker(engine))
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def repository(request):
    if request.param == "memory":
        return InMemoryConversationRepository()
    return request.getfixturevalue("sql_repository")


@pytest.fixture
def service(classifier) -> TriageService:
    return TriageService(InMemoryConversationRepository(), classifier)
