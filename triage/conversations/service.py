"""Triage flow orchestration: the conversation state machine."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional, Protocol
from uuid import UUID

from ..classifier.gateway import create_gateway
from ..classifier.schemas import Decision, HistoryEntry
from ..core.db import get_engine, get_sessionmaker, init_db
from ..core.settings import Settings
from . import schemas
from .errors import (
    ConflictError,
    ConversationNotFoundError,
    ConversationStateError,
    ValidationError,
)
from .locks import ConversationLockRegistry
from .models import ConversationFilter, ConversationStatus, Department, MessageRole
from .repository import (
    ConversationRepository,
    SqlAlchemyConversationRepository,
    ensure_accepts_messages,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_LENGTH = 2000


class Classifier(Protocol):
    def classify(self, history: Sequence[HistoryEntry], new_message: str) -> Decision: ...


class TriageService:
    """Coordinates the store and the classifier for each customer turn.

    A conversation starts ``OPEN`` and moves to ``TRANSFERRED`` at most once,
    when the classifier asks for a hand-off and names a department.  Submits
    against the same conversation are serialized through
    :class:`ConversationLockRegistry`; the store's conditional transition
    covers writers in other processes.
    """

    def __init__(
        self,
        repository: ConversationRepository,
        classifier: Classifier,
        *,
        locks: ConversationLockRegistry | None = None,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
    ) -> None:
        self._repository = repository
        self._classifier = classifier
        self._locks = locks or ConversationLockRegistry()
        self._max_message_length = max_message_length

    # ------------------------------------------------------------------
    # Message submission

    def submit_message(
        self, content: str, conversation_id: Optional[UUID] = None
    ) -> schemas.ConversationDetail:
        """Record a customer message, reply to it and transfer if required."""

        self._validate_content(content)

        if conversation_id is None:
            conversation = self._repository.create_conversation()
            logger.info("Created conversation %s", conversation.id)
        else:
            conversation = self.get_conversation(conversation_id)

        with self._locks.hold(conversation.id):
            conversation = self.get_conversation(conversation.id)
            try:
                ensure_accepts_messages(conversation.id, conversation.status)
            except ConversationStateError:
                logger.info(
                    "Rejected message for conversation %s in status %s",
                    conversation.id,
                    conversation.status.value,
                )
                raise

            history = [HistoryEntry(m.role, m.content) for m in conversation.messages]
            try:
                self._repository.append_message(conversation.id, MessageRole.USER, content)
                decision = self._classifier.classify(history, content)
                self._repository.append_message(
                    conversation.id, MessageRole.ASSISTANT, decision.message
                )
                if decision.should_transfer and decision.department is not None:
                    self._repository.transition(
                        conversation.id, decision.department, decision.summary
                    )
                    logger.info(
                        "Transferred conversation %s to %s",
                        conversation.id,
                        decision.department.label,
                    )
            except ConversationStateError as exc:
                # Another writer moved the conversation on after the guard.
                logger.warning(
                    "Conversation %s changed state while a message was processed",
                    conversation.id,
                )
                raise ConflictError(
                    f"Conversation {conversation.id} changed state while the message was processed"
                ) from exc
            return self.get_conversation(conversation.id)

    def _validate_content(self, content: str) -> None:
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Message content must not be empty")
        if len(content) > self._max_message_length:
            raise ValidationError(
                f"Message content must be at most {self._max_message_length} characters"
            )

    # ------------------------------------------------------------------
    # Queries

    def get_conversation(self, conversation_id: UUID) -> schemas.ConversationDetail:
        conversation = self._repository.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def list_conversations(
        self,
        status: Optional[ConversationStatus] = None,
        department: Optional[Department] = None,
    ) -> list[schemas.ConversationDetail]:
        return self._repository.list_conversations(
            ConversationFilter(status=status, department=department)
        )

    def queue_overview(self) -> schemas.QueueOverview:
        rows = sorted(
            self._repository.queue_counts(),
            key=lambda row: (row[0] is None, row[0].value if row[0] else "", row[1].value),
        )
        queues = [
            schemas.QueueCount(
                department=department,
                label=department.label if department else None,
                status=status,
                count=count,
            )
            for department, status, count in rows
        ]
        totals = {status: 0 for status in ConversationStatus}
        for _, status, count in rows:
            totals[status] += count
        return schemas.QueueOverview(queues=queues, totals=totals, total=sum(totals.values()))


# ---------------------------------------------------------------------------
# Service factory helpers


def create_sql_service(settings: Settings) -> TriageService:
    """Build a service backed by the configured database and LLM provider."""

    engine = get_engine(settings.database_url, pool_pre_ping=True)
    init_db(engine)
    repository = SqlAlchemyConversationRepository(get_sessionmaker(engine))
    return TriageService(
        repository,
        create_gateway(settings),
        max_message_length=settings.message_max_length,
    )
