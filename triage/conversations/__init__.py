"""Conversation lifecycle: domain types, store and triage service."""

from . import schemas
from .errors import (
    AlreadyTransferredError,
    ConflictError,
    ConversationClosedError,
    ConversationNotFoundError,
    TriageError,
    ValidationError,
)
from .models import ConversationFilter, ConversationStatus, Department, MessageRole

__all__ = [
    "AlreadyTransferredError",
    "ConflictError",
    "ConversationClosedError",
    "ConversationFilter",
    "ConversationNotFoundError",
    "ConversationStatus",
    "Department",
    "MessageRole",
    "TriageError",
    "ValidationError",
    "schemas",
]
