"""Pydantic schemas for conversations, messages and queue views.

Fields are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import ConversationStatus, Department, MessageRole


class _Schema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageOut(_Schema):
    id: UUID
    conversation_id: UUID
    role: MessageRole
    content: str
    created_at: datetime


class ConversationDetail(_Schema):
    id: UUID
    status: ConversationStatus
    department: Department | None = None
    summary: str | None = None
    created_at: datetime
    updated_at: datetime
    messages: list[MessageOut] = Field(default_factory=list)


class SubmitMessageRequest(_Schema):
    """Payload for ``POST /messages``.

    The upper length bound is configurable and enforced by the service.
    """

    conversation_id: UUID | None = None
    content: str = Field(min_length=1)


class QueueCount(_Schema):
    department: Department | None = None
    label: str | None = None
    status: ConversationStatus
    count: int


class QueueOverview(_Schema):
    """Conversation counts grouped by department and status."""

    queues: list[QueueCount]
    totals: dict[ConversationStatus, int]
    total: int
