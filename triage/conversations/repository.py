"""Persistence for conversations and their messages."""
from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Protocol, Tuple, cast
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.orm import Session, selectinload, sessionmaker

from ..core.db import session_scope
from ..models import ConversationRecord, MessageRecord
from . import schemas
from .errors import (
    AlreadyTransferredError,
    ConflictError,
    ConversationClosedError,
    ConversationNotFoundError,
)
from .models import ConversationFilter, ConversationStatus, Department, MessageRole

QueueCountRow = Tuple[Optional[Department], ConversationStatus, int]


class ConversationRepository(Protocol):
    """Abstraction for persisting conversations used by the triage service."""

    def create_conversation(self) -> schemas.ConversationDetail: ...

    def get_conversation(self, conversation_id: UUID) -> Optional[schemas.ConversationDetail]: ...

    def append_message(
        self, conversation_id: UUID, role: MessageRole, content: str
    ) -> schemas.MessageOut: ...

    def transition(
        self, conversation_id: UUID, department: Department, summary: Optional[str]
    ) -> None: ...

    def list_conversations(
        self, filters: Optional[ConversationFilter] = None
    ) -> List[schemas.ConversationDetail]: ...

    def queue_counts(self) -> List[QueueCountRow]: ...


def ensure_accepts_messages(conversation_id: UUID, status: ConversationStatus) -> None:
    """Raise unless a conversation in ``status`` may receive new messages."""

    if status is ConversationStatus.OPEN:
        return
    if status is ConversationStatus.TRANSFERRED:
        raise AlreadyTransferredError(conversation_id)
    if status is ConversationStatus.CLOSED:
        raise ConversationClosedError(conversation_id)
    raise AssertionError(f"Unhandled conversation status {status!r}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _next_timestamp(previous: Optional[datetime]) -> datetime:
    """Return ``now``, bumped past ``previous`` so ordering stays strict."""

    now = _utcnow()
    if previous is not None:
        previous = _as_utc(previous)
        if now <= previous:
            now = previous + timedelta(microseconds=1)
    return now


# ---------------------------------------------------------------------------
# SQLAlchemy repository


class SqlAlchemyConversationRepository:
    """SQL implementation of :class:`ConversationRepository`.

    Each operation runs in its own transaction.  ``transition`` only updates
    rows that are still ``OPEN`` so a racing writer gets :class:`ConflictError`
    instead of silently overwriting a hand-off.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def create_conversation(self) -> schemas.ConversationDetail:
        with session_scope(self._session_factory) as session:
            now = _next_timestamp(
                session.scalar(select(func.max(ConversationRecord.created_at)))
            )
            record = ConversationRecord(
                id=uuid4(),
                status=ConversationStatus.OPEN,
                created_at=now,
                updated_at=now,
            )
            session.add(record)
            session.flush()
            return schemas.ConversationDetail(
                id=record.id,
                status=record.status,
                department=None,
                summary=None,
                created_at=record.created_at,
                updated_at=record.updated_at,
                messages=[],
            )

    def get_conversation(self, conversation_id: UUID) -> Optional[schemas.ConversationDetail]:
        with session_scope(self._session_factory) as session:
            record = session.scalars(
                select(ConversationRecord)
                .options(selectinload(ConversationRecord.messages))
                .where(ConversationRecord.id == conversation_id)
            ).first()
            if record is None:
                return None
            return schemas.ConversationDetail.model_validate(record)

    def append_message(
        self, conversation_id: UUID, role: MessageRole, content: str
    ) -> schemas.MessageOut:
        with session_scope(self._session_factory) as session:
            conversation = session.get(
                ConversationRecord, conversation_id, with_for_update=True
            )
            if conversation is None:
                raise ConversationNotFoundError(conversation_id)
            ensure_accepts_messages(conversation_id, conversation.status)
            last_created = session.scalar(
                select(func.max(MessageRecord.created_at)).where(
                    MessageRecord.conversation_id == conversation_id
                )
            )
            created_at = _next_timestamp(last_created)
            message = MessageRecord(
                id=uuid4(),
                conversation_id=conversation_id,
                role=role,
                content=content,
                created_at=created_at,
            )
            session.add(message)
            conversation.updated_at = created_at
            session.flush()
            return schemas.MessageOut.model_validate(message)

    def transition(
        self, conversation_id: UUID, department: Department, summary: Optional[str]
    ) -> None:
        with session_scope(self._session_factory) as session:
            result = cast(
                CursorResult,
                session.execute(
                    update(ConversationRecord)
                    .where(
                        ConversationRecord.id == conversation_id,
                        ConversationRecord.status == ConversationStatus.OPEN,
                    )
                    .values(
                        status=ConversationStatus.TRANSFERRED,
                        department=department,
                        summary=summary,
                        updated_at=_utcnow(),
                    )
                ),
            )
            if result.rowcount:
                return
            if session.get(ConversationRecord, conversation_id) is None:
                raise ConversationNotFoundError(conversation_id)
            raise ConflictError(
                f"Conversation {conversation_id} changed state before the transfer was applied"
            )

    def list_conversations(
        self, filters: Optional[ConversationFilter] = None
    ) -> List[schemas.ConversationDetail]:
        filters = filters or ConversationFilter()
        stmt = select(ConversationRecord).options(selectinload(ConversationRecord.messages))
        if filters.status is not None:
            stmt = stmt.where(ConversationRecord.status == filters.status)
        if filters.department is not None:
            stmt = stmt.where(ConversationRecord.department == filters.department)
        stmt = stmt.order_by(ConversationRecord.created_at.desc())
        with session_scope(self._session_factory) as session:
            records = session.scalars(stmt).all()
            return [schemas.ConversationDetail.model_validate(r) for r in records]

    def queue_counts(self) -> List[QueueCountRow]:
        stmt = (
            select(
                ConversationRecord.department,
                ConversationRecord.status,
                func.count(ConversationRecord.id),
            )
            .group_by(ConversationRecord.department, ConversationRecord.status)
        )
        with session_scope(self._session_factory) as session:
            rows = session.execute(stmt).all()
        return [(department, status, int(count)) for department, status, count in rows]


# ---------------------------------------------------------------------------
# In-memory repository (useful for testing and sandbox environments)


class InMemoryConversationRepository:
    def __init__(self) -> None:
        self._conversations: Dict[UUID, schemas.ConversationDetail] = {}
        self._last_created: Optional[datetime] = None
        self._lock = threading.Lock()

    def create_conversation(self) -> schemas.ConversationDetail:
        with self._lock:
            now = _next_timestamp(self._last_created)
            self._last_created = now
            conversation = schemas.ConversationDetail(
                id=uuid4(),
                status=ConversationStatus.OPEN,
                created_at=now,
                updated_at=now,
            )
            self._conversations[conversation.id] = conversation
            return conversation.model_copy(deep=True)

    def get_conversation(self, conversation_id: UUID) -> Optional[schemas.ConversationDetail]:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            return conversation.model_copy(deep=True) if conversation else None

    def append_message(
        self, conversation_id: UUID, role: MessageRole, content: str
    ) -> schemas.MessageOut:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise ConversationNotFoundError(conversation_id)
            ensure_accepts_messages(conversation_id, conversation.status)
            previous = conversation.messages[-1].created_at if conversation.messages else None
            message = schemas.MessageOut(
                id=uuid4(),
                conversation_id=conversation_id,
                role=role,
                content=content,
                created_at=_next_timestamp(previous),
            )
            conversation.messages.append(message)
            conversation.updated_at = message.created_at
            return message.model_copy()

    def transition(
        self, conversation_id: UUID, department: Department, summary: Optional[str]
    ) -> None:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise ConversationNotFoundError(conversation_id)
            if conversation.status is not ConversationStatus.OPEN:
                raise ConflictError(
                    f"Conversation {conversation_id} changed state before the transfer was applied"
                )
            conversation.status = ConversationStatus.TRANSFERRED
            conversation.department = department
            conversation.summary = summary
            conversation.updated_at = _utcnow()

    def list_conversations(
        self, filters: Optional[ConversationFilter] = None
    ) -> List[schemas.ConversationDetail]:
        filters = filters or ConversationFilter()
        with self._lock:
            items = [
                c.model_copy(deep=True)
                for c in self._conversations.values()
                if filters.matches(c.status, c.department)
            ]
        items.sort(key=lambda c: c.created_at, reverse=True)
        return items

    def queue_counts(self) -> List[QueueCountRow]:
        counts: Dict[Tuple[Optional[Department], ConversationStatus], int] = {}
        with self._lock:
            for conversation in self._conversations.values():
                key = (conversation.department, conversation.status)
                counts[key] = counts.get(key, 0) + 1
        return [(department, status, count) for (department, status), count in counts.items()]
