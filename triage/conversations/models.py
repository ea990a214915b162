"""Domain enums and value objects used by the triage flow."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ConversationStatus(str, Enum):
    """Lifecycle status of a conversation.

    ``OPEN`` is the initial state and ``TRANSFERRED`` is terminal for the
    triage flow.  ``CLOSED`` is stored and reported but only set by external
    tooling (e.g. a human agent console).
    """

    OPEN = "OPEN"
    TRANSFERRED = "TRANSFERRED"
    CLOSED = "CLOSED"


class Department(str, Enum):
    """Human queues a conversation can be handed to."""

    SALES = "SALES"
    SUPPORT = "SUPPORT"
    FINANCE = "FINANCE"

    @property
    def label(self) -> str:
        if self is Department.SALES:
            return "Sales"
        if self is Department.SUPPORT:
            return "Support"
        if self is Department.FINANCE:
            return "Finance"
        raise AssertionError(f"Unhandled department {self!r}")

    @classmethod
    def parse(cls, value: str) -> "Department":
        """Return the department named by ``value`` (case insensitive)."""

        try:
            return cls(value.strip().upper())
        except ValueError as exc:
            raise ValueError(f"Unknown department {value!r}") from exc


class MessageRole(str, Enum):
    """Author of a message.  ``SYSTEM`` is reserved for presentation."""

    USER = "USER"
    ASSISTANT = "ASSISTANT"
    SYSTEM = "SYSTEM"


@dataclass(frozen=True)
class ConversationFilter:
    """Optional filters for conversation listings."""

    status: ConversationStatus | None = None
    department: Department | None = None

    def matches(self, status: ConversationStatus, department: Department | None) -> bool:
        if self.status is not None and status != self.status:
            return False
        if self.department is not None and department != self.department:
            return False
        return True
