"""Errors raised by the triage flow and the conversation store."""

from __future__ import annotations

from uuid import UUID


class TriageError(RuntimeError):
    """Base class for errors reported to callers of the triage service."""


class ValidationError(TriageError):
    """Raised when a submitted message is missing, blank or too long."""


class ConversationNotFoundError(TriageError):
    """Raised when a conversation could not be located."""

    def __init__(self, conversation_id: UUID | str) -> None:
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class ConversationStateError(TriageError):
    """Raised when a conversation no longer accepts messages."""

    def __init__(self, conversation_id: UUID | str, message: str) -> None:
        super().__init__(message)
        self.conversation_id = conversation_id


class AlreadyTransferredError(ConversationStateError):
    """Raised when a message is submitted to a transferred conversation."""

    def __init__(self, conversation_id: UUID | str) -> None:
        super().__init__(
            conversation_id,
            "This conversation has already been transferred to a human agent.",
        )


class ConversationClosedError(ConversationStateError):
    """Raised when a message is submitted to a closed conversation."""

    def __init__(self, conversation_id: UUID | str) -> None:
        super().__init__(conversation_id, "This conversation has been closed.")


class ConflictError(TriageError):
    """Raised when a concurrent writer changed the conversation first."""
