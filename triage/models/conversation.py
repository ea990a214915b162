"""Conversation and message tables.

Enum columns are stored as plain strings (``native_enum=False``) so the same
schema works on PostgreSQL and SQLite.
"""

from __future__ import annotations

import datetime as dt
import uuid
from typing import List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..conversations.models import ConversationStatus, Department, MessageRole
from . import Base


def _utcnow() -> dt.datetime:
    """Return the current UTC timestamp with timezone awareness."""

    return dt.datetime.now(dt.timezone.utc)


class ConversationRecord(Base):
    """A customer conversation.

    Attributes:
        id: Primary key generated client-side.
        status: Lifecycle status, ``OPEN`` until transferred.
        department: Destination queue, set only together with ``TRANSFERRED``.
        summary: Hand-off summary captured at transfer time.
        messages: Messages ordered by ``created_at``.
    """

    __tablename__ = "conversations"
    __table_args__ = (
        Index("ix_conversations_status_department", "status", "department"),
        Index("ix_conversations_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    status: Mapped[ConversationStatus] = mapped_column(
        Enum(ConversationStatus, native_enum=False, length=16),
        nullable=False,
        default=ConversationStatus.OPEN,
    )
    department: Mapped[Optional[Department]] = mapped_column(
        Enum(Department, native_enum=False, length=16), nullable=True
    )
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    messages: Mapped[List["MessageRecord"]] = relationship(
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="MessageRecord.created_at",
    )


class MessageRecord(Base):
    """A single message within a conversation."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[MessageRole] = mapped_column(
        Enum(MessageRole, native_enum=False, length=16), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    conversation: Mapped[ConversationRecord] = relationship(back_populates="messages")
