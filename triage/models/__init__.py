"""SQLAlchemy declarative base and triage models.

This package hosts the SQLAlchemy models used by the conversation store.  It
exposes a single declarative ``Base`` class used when creating tables.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


from .conversation import ConversationRecord, MessageRecord


__all__ = [
    "Base",
    "ConversationRecord",
    "MessageRecord",
]
